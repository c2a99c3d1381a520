"""Load the bundled club, quiz and event seed into an empty database."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from sqlalchemy import func, select

from .db.models import (
    ClubEventRecord,
    ClubRecord,
    QuizOptionRecord,
    QuizQuestionRecord,
    TagCatalogRecord,
)
from .storage import ClubStore
from .validators import normalize_tags, title_case

logger = logging.getLogger(__name__)

SEED_PATH = Path(__file__).resolve().parent / "data" / "seed.json"


def load_seed_payload(path: Path = SEED_PATH) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    payload = raw.strip()
    if not payload:
        return {}
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Invalid club seed data: {path}") from exc
    return data if isinstance(data, dict) else {}


async def seed_database(store: ClubStore, payload: dict[str, Any] | None = None) -> bool:
    """Insert seed rows when the clubs table is empty. Returns True if anything was written."""
    if payload is None:
        payload = load_seed_payload()
    async with store.session() as session:
        existing = (await session.execute(select(func.count(ClubRecord.id)))).scalar_one()
        if existing:
            return False

        for item in payload.get("clubs") or []:
            if not isinstance(item, dict) or not item.get("id") or not item.get("name"):
                continue
            club_id = str(item["id"])
            session.add(
                ClubRecord(
                    id=club_id,
                    name=str(item["name"]).strip(),
                    description=item.get("description") or "",
                    category=title_case(item.get("category")),
                    tags=normalize_tags(item.get("tags")),
                    image=item.get("image"),
                )
            )
            for event in item.get("events") or []:
                if not isinstance(event, dict) or not event.get("id"):
                    continue
                session.add(
                    ClubEventRecord(
                        id=str(event["id"]),
                        club_id=club_id,
                        title=event.get("title") or str(item["name"]),
                        time=event.get("time") or "",
                        location=event.get("location"),
                        description=event.get("description"),
                    )
                )

        for tag in normalize_tags(payload.get("tag_catalog")):
            session.add(TagCatalogRecord(name=tag))

        for q_index, question in enumerate(payload.get("quiz") or []):
            if not isinstance(question, dict) or not question.get("id"):
                continue
            question_id = str(question["id"])
            session.add(
                QuizQuestionRecord(id=question_id, text=question.get("text") or "", position=q_index)
            )
            for o_index, option in enumerate(question.get("options") or []):
                if not isinstance(option, dict) or not option.get("id"):
                    continue
                session.add(
                    QuizOptionRecord(
                        id=str(option["id"]),
                        question_id=question_id,
                        text=option.get("text") or "",
                        tags=normalize_tags(option.get("tags")),
                        position=o_index,
                    )
                )
        await session.commit()
    logger.info("Seeded club database with %d clubs", len(payload.get("clubs") or []))
    return True
