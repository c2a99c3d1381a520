from __future__ import annotations

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)

from .core import Base


class ClubRecord(Base):
    __tablename__ = "clubs"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(128), nullable=True, index=True)
    tags = Column(JSON, nullable=True)
    image = Column(String(1024), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class TagCatalogRecord(Base):
    __tablename__ = "tag_catalog"

    name = Column(String(128), primary_key=True)


class ProfileRecord(Base):
    __tablename__ = "profiles"

    user_id = Column(String(128), primary_key=True)
    preference_tags = Column(JSON, nullable=False, default=list, server_default=text("'[]'"))
    took_quiz = Column(Boolean, nullable=False, default=False, server_default=text("0"))

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class QuizQuestionRecord(Base):
    __tablename__ = "quiz_questions"

    id = Column(String(64), primary_key=True)
    text = Column(Text, nullable=False)
    position = Column(Integer, nullable=False, default=0)


class QuizOptionRecord(Base):
    __tablename__ = "quiz_options"

    id = Column(String(64), primary_key=True)
    question_id = Column(
        String(64), ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text = Column(Text, nullable=False)
    tags = Column(JSON, nullable=True)
    position = Column(Integer, nullable=False, default=0)


class QuizResponseRecord(Base):
    __tablename__ = "quiz_responses"
    __table_args__ = (
        UniqueConstraint("user_id", "question_id", "option_id", name="uq_quiz_response"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    question_id = Column(String(64), nullable=False)
    option_id = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ClubFollowRecord(Base):
    __tablename__ = "club_follows"

    user_id = Column(String(128), primary_key=True)
    club_id = Column(String(64), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ClubEventRecord(Base):
    __tablename__ = "club_events"

    id = Column(String(64), primary_key=True)
    club_id = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    time = Column(String(128), nullable=False)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)


class EventSignupRecord(Base):
    __tablename__ = "event_signups"

    user_id = Column(String(128), primary_key=True)
    event_id = Column(String(64), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
