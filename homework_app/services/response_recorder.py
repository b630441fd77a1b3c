"""Persistence of graded student responses."""

import logging
from typing import Optional

from homework_app.exceptions import NotFoundError, PersistenceError
from homework_app.models import StudentResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

logger = logging.getLogger(__name__)


def record_response(
    session: Session,
    session_id: str,
    question_id: int,
    answer: str,
    is_correct: bool,
    misconception_id: Optional[int] = None,
    explanation: Optional[str] = None,
) -> StudentResponse:
    """Append one response row; correctness and explanation are committed together.

    Raises:
        PersistenceError: If the write fails (the transaction is rolled back)
    """
    response = StudentResponse(
        session_id=session_id,
        question_id=question_id,
        answer=answer.strip(),
        is_correct=is_correct,
        misconception_id=misconception_id,
        ai_explanation=explanation,
    )
    try:
        session.add(response)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to record response for session %s question %s", session_id, question_id)
        raise PersistenceError("Failed to submit answer")
    session.refresh(response)
    return response


def latest_response(session: Session, session_id: str, question_id: int) -> Optional[StudentResponse]:
    """Most recently answered response for a (session, question) pair."""
    stmt = (
        select(StudentResponse)
        .where(
            (StudentResponse.session_id == session_id)
            & (StudentResponse.question_id == question_id)
        )
        .order_by(StudentResponse.answered_at.desc(), StudentResponse.id.desc())
    )
    return session.exec(stmt).first()


def record_follow_up(
    session: Session, session_id: str, question_id: int, follow_up_answer: str
) -> StudentResponse:
    """Attach a follow-up answer to the latest response of the pair.

    The follow-up is always recorded as correct; the student has already
    seen the explanation and the expected answer.

    Raises:
        NotFoundError: If the pair has no response yet
        PersistenceError: If the update fails
    """
    response = latest_response(session, session_id, question_id)
    if not response:
        raise NotFoundError("Response not found")

    response.follow_up_answer = follow_up_answer.strip()
    response.follow_up_correct = True
    try:
        session.add(response)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to record follow-up for response %s", response.id)
        raise PersistenceError("Failed to submit answer")
    session.refresh(response)
    return response
