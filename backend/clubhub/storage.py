from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .contracts import Club, ClubEvent, QuizOption, QuizQuestion, UserPreferenceProfile
from .db.core import SessionLocal
from .db.models import (
    ClubEventRecord,
    ClubFollowRecord,
    ClubRecord,
    EventSignupRecord,
    ProfileRecord,
    QuizOptionRecord,
    QuizQuestionRecord,
    QuizResponseRecord,
    TagCatalogRecord,
)
from .validators import normalize_label, normalize_tags, tag_keys

logger = logging.getLogger(__name__)


class StoreUnavailable(RuntimeError):
    """Raised when the backing database cannot serve a query."""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _club_from_record(record: ClubRecord) -> Club:
    return Club(
        id=record.id,
        name=record.name,
        description=record.description or "",
        category=record.category or "",
        tags=record.tags or [],
        image=record.image,
    )


def _event_from_record(record: ClubEventRecord) -> ClubEvent:
    return ClubEvent(
        id=record.id,
        club_id=record.club_id,
        title=record.title,
        time=record.time,
        location=record.location,
        description=record.description,
    )


def _profile_from_record(record: ProfileRecord) -> UserPreferenceProfile:
    return UserPreferenceProfile(
        user_id=record.user_id,
        preference_tags=record.preference_tags or [],
        completed_onboarding=bool(record.took_quiz),
    )


async def _write_preference_tags(
    session: AsyncSession,
    user_id: str,
    tags: list[str],
    completed_onboarding: bool | None,
) -> ProfileRecord:
    record = await session.get(ProfileRecord, str(user_id))
    if record is None:
        record = ProfileRecord(user_id=str(user_id), took_quiz=False)
        session.add(record)
    record.preference_tags = tags
    if completed_onboarding is not None:
        record.took_quiz = completed_onboarding
    return record


async def _write_quiz_responses(
    session: AsyncSession, user_id: str, selections: Mapping[str, Iterable[str]]
) -> None:
    await session.execute(
        delete(QuizResponseRecord).where(QuizResponseRecord.user_id == str(user_id))
    )
    for question_id, option_ids in selections.items():
        for option_id in dict.fromkeys(option_ids):
            session.add(
                QuizResponseRecord(
                    user_id=str(user_id),
                    question_id=str(question_id),
                    option_id=str(option_id),
                )
            )


class ClubStore:
    """
    Query surface over the club database.

    Every method converts rows into the pydantic entity types before returning, so
    loosely typed JSON columns never leak past this class. Database failures surface
    as `StoreUnavailable`; lookups that find nothing return `None` or an empty list.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.warning("Club store query failed: %s", exc.__class__.__name__)
            raise StoreUnavailable("Club data is temporarily unavailable") from exc

    # -------- clubs --------
    async def list_clubs(self, limit: int | None = None) -> list[Club]:
        async with self.session() as session:
            stmt = select(ClubRecord).order_by(ClubRecord.name, ClubRecord.id)
            if limit is not None:
                stmt = stmt.limit(limit)
            rows = (await session.execute(stmt)).scalars().all()
            return [_club_from_record(row) for row in rows]

    async def get_club(self, club_id: str) -> Club | None:
        async with self.session() as session:
            record = await session.get(ClubRecord, str(club_id))
            return _club_from_record(record) if record else None

    async def search_clubs(self, text: str, limit: int | None = None) -> list[Club]:
        needle = normalize_label(text)
        if not needle:
            return await self.list_clubs(limit=limit)
        pattern = f"%{_escape_like(needle)}%"
        async with self.session() as session:
            stmt = (
                select(ClubRecord)
                .where(
                    or_(
                        ClubRecord.name.ilike(pattern, escape="\\"),
                        ClubRecord.description.ilike(pattern, escape="\\"),
                        ClubRecord.category.ilike(pattern, escape="\\"),
                    )
                )
                .order_by(ClubRecord.name, ClubRecord.id)
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            rows = (await session.execute(stmt)).scalars().all()
            return [_club_from_record(row) for row in rows]

    async def clubs_with_tags(self, tags: Iterable[str], limit: int | None = None) -> list[Club]:
        """Clubs sharing at least one tag with `tags` (case-insensitive)."""
        wanted = tag_keys(tags)
        if not wanted:
            return []
        matches: list[Club] = []
        for club in await self.list_clubs():
            if wanted & tag_keys(club.tags):
                matches.append(club)
                if limit is not None and len(matches) >= limit:
                    break
        return matches

    async def get_tag_catalog(self) -> list[str]:
        async with self.session() as session:
            rows = (await session.execute(select(TagCatalogRecord.name))).scalars().all()
            return normalize_tags(rows)

    # -------- profiles --------
    async def get_profile(self, user_id: str) -> UserPreferenceProfile | None:
        async with self.session() as session:
            record = await session.get(ProfileRecord, str(user_id))
            return _profile_from_record(record) if record else None

    async def ensure_profile(self, user_id: str) -> UserPreferenceProfile:
        async with self.session() as session:
            record = await session.get(ProfileRecord, str(user_id))
            if record is None:
                record = ProfileRecord(user_id=str(user_id), preference_tags=[], took_quiz=False)
                session.add(record)
                await session.commit()
                logger.info("Created preference profile for %s", user_id)
            return _profile_from_record(record)

    async def get_user_preference_tags(self, user_id: str) -> list[str]:
        profile = await self.get_profile(user_id)
        return list(profile.preference_tags) if profile else []

    async def update_user_preference_tags(
        self,
        user_id: str,
        tags: Iterable[str],
        *,
        completed_onboarding: bool | None = None,
    ) -> UserPreferenceProfile:
        cleaned = normalize_tags(tags)
        async with self.session() as session:
            record = await _write_preference_tags(session, user_id, cleaned, completed_onboarding)
            await session.commit()
            return _profile_from_record(record)

    # -------- quiz --------
    async def get_quiz_questions(self) -> list[QuizQuestion]:
        async with self.session() as session:
            questions = (
                await session.execute(
                    select(QuizQuestionRecord).order_by(
                        QuizQuestionRecord.position, QuizQuestionRecord.id
                    )
                )
            ).scalars().all()
            options = (
                await session.execute(
                    select(QuizOptionRecord).order_by(
                        QuizOptionRecord.position, QuizOptionRecord.id
                    )
                )
            ).scalars().all()
        grouped: dict[str, list[QuizOption]] = {}
        for option in options:
            grouped.setdefault(option.question_id, []).append(
                QuizOption(
                    id=option.id,
                    question_id=option.question_id,
                    text=option.text,
                    tags=option.tags or [],
                )
            )
        return [
            QuizQuestion(id=question.id, text=question.text, options=grouped.get(question.id, []))
            for question in questions
        ]

    async def get_quiz_responses(self, user_id: str) -> dict[str, list[str]]:
        async with self.session() as session:
            stmt = (
                select(QuizResponseRecord)
                .where(QuizResponseRecord.user_id == str(user_id))
                .order_by(QuizResponseRecord.created_at, QuizResponseRecord.id)
            )
            rows = (await session.execute(stmt)).scalars().all()
        selections: dict[str, list[str]] = {}
        for row in rows:
            selections.setdefault(row.question_id, []).append(row.option_id)
        return selections

    async def record_quiz_submission(
        self,
        user_id: str,
        selections: Mapping[str, Iterable[str]],
        tags: Iterable[str],
    ) -> UserPreferenceProfile:
        """Store raw answers and the derived tags together, in one transaction."""
        cleaned = normalize_tags(tags)
        async with self.session() as session:
            await _write_quiz_responses(session, user_id, selections)
            record = await _write_preference_tags(session, user_id, cleaned, True)
            await session.commit()
            return _profile_from_record(record)

    # -------- follows --------
    async def follow_club(self, user_id: str, club_id: str) -> bool:
        async with self.session() as session:
            if await session.get(ClubRecord, str(club_id)) is None:
                return False
            key = {"user_id": str(user_id), "club_id": str(club_id)}
            if await session.get(ClubFollowRecord, key) is None:
                session.add(ClubFollowRecord(**key))
                await session.commit()
            return True

    async def unfollow_club(self, user_id: str, club_id: str) -> None:
        async with self.session() as session:
            await session.execute(
                delete(ClubFollowRecord)
                .where(ClubFollowRecord.user_id == str(user_id))
                .where(ClubFollowRecord.club_id == str(club_id))
            )
            await session.commit()

    async def get_followed_clubs(self, user_id: str) -> list[Club]:
        async with self.session() as session:
            stmt = (
                select(ClubRecord)
                .join(ClubFollowRecord, ClubFollowRecord.club_id == ClubRecord.id)
                .where(ClubFollowRecord.user_id == str(user_id))
                .order_by(ClubRecord.name, ClubRecord.id)
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [_club_from_record(row) for row in rows]

    # -------- events --------
    async def get_club_events(self, club_id: str) -> list[ClubEvent]:
        async with self.session() as session:
            stmt = (
                select(ClubEventRecord)
                .where(ClubEventRecord.club_id == str(club_id))
                .order_by(ClubEventRecord.id)
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [_event_from_record(row) for row in rows]

    async def sign_up_for_event(self, user_id: str, event_id: str) -> bool:
        async with self.session() as session:
            if await session.get(ClubEventRecord, str(event_id)) is None:
                return False
            key = {"user_id": str(user_id), "event_id": str(event_id)}
            if await session.get(EventSignupRecord, key) is None:
                session.add(EventSignupRecord(**key))
                await session.commit()
            return True

    async def remove_event_signup(self, user_id: str, event_id: str) -> None:
        async with self.session() as session:
            await session.execute(
                delete(EventSignupRecord)
                .where(EventSignupRecord.user_id == str(user_id))
                .where(EventSignupRecord.event_id == str(event_id))
            )
            await session.commit()

    async def get_user_event_signups(self, user_id: str) -> list[ClubEvent]:
        async with self.session() as session:
            stmt = (
                select(ClubEventRecord)
                .join(EventSignupRecord, EventSignupRecord.event_id == ClubEventRecord.id)
                .where(EventSignupRecord.user_id == str(user_id))
                .order_by(ClubEventRecord.id)
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [_event_from_record(row) for row in rows]


DB = ClubStore()


def get_store() -> ClubStore:
    """FastAPI dependency; tests override it with a store bound to their own engine."""
    return DB
