"""SQLModel models for the homework feedback service."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    """Random URL-safe identifier handed to students when a session starts."""
    return secrets.token_urlsafe(16)


class User(SQLModel, table=True):
    """A teacher account. Students never get a User row."""

    __table_args__ = (UniqueConstraint("email", name="uq_user_email"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str
    name: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class Assignment(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("link_slug", name="uq_assignment_link_slug"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    teacher_id: int = Field(foreign_key="user.id", index=True)
    title: str
    # Never updated after creation: misconception matching is keyed on it
    topic: str
    link_slug: str
    class_code: str
    is_closed: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)


class Question(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("assignment_id", "order", name="uq_question_assignment_order"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    assignment_id: int = Field(foreign_key="assignment.id", index=True)
    question_text: str
    correct_answer: str
    question_type: str = Field(default="short_answer")
    order: int


class Misconception(SQLModel, table=True):
    """A catalogued, topic-scoped student error pattern (seeded data)."""

    id: Optional[int] = Field(default=None, primary_key=True)
    topic: str = Field(index=True)  # or "general" for the cross-subject catch-all
    category: str
    description: str
    teaching_suggestion: Optional[str] = None


class QuestionMisconceptionPattern(SQLModel, table=True):
    """Author-defined wrong-answer rule linking a question to a misconception."""

    id: Optional[int] = Field(default=None, primary_key=True)
    question_id: int = Field(foreign_key="question.id", index=True)
    misconception_id: int = Field(foreign_key="misconception.id")
    wrong_answer_pattern: str  # regex or literal answer text
    explanation: Optional[str] = None
    follow_up_question: Optional[str] = None
    follow_up_answer: Optional[str] = None


class StudentSession(SQLModel, table=True):
    """Ephemeral per-assignment student identity."""

    id: str = Field(default_factory=new_session_id, primary_key=True)
    assignment_id: int = Field(foreign_key="assignment.id", index=True)
    student_name: str
    class_code: str
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None


class StudentResponse(SQLModel, table=True):
    """One graded submission. Rows are appended, never upserted."""

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: str = Field(foreign_key="studentsession.id", index=True)
    question_id: int = Field(foreign_key="question.id", index=True)
    answer: str
    is_correct: bool
    misconception_id: Optional[int] = Field(default=None, foreign_key="misconception.id")
    ai_explanation: Optional[str] = None
    follow_up_answer: Optional[str] = None
    follow_up_correct: Optional[bool] = None
    answered_at: datetime = Field(default_factory=utc_now)
