"""Assignment authoring, sharing and the student session lifecycle."""

import logging
from typing import List, Optional

from homework_app.exceptions import (
    AssignmentClosedError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
)
from homework_app.models import (
    Assignment,
    Misconception,
    Question,
    QuestionMisconceptionPattern,
    StudentSession,
    User,
    utc_now,
)
from homework_app.services.misconception_catalog import is_known_topic
from homework_app.utils import (
    generate_class_code,
    generate_link_slug,
    sanitize_text,
    validate_class_code,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

logger = logging.getLogger(__name__)

MAX_SLUG_ATTEMPTS = 10


def _unique_link_slug(session: Session) -> str:
    for _ in range(MAX_SLUG_ATTEMPTS):
        slug = generate_link_slug()
        taken = session.exec(select(Assignment).where(Assignment.link_slug == slug)).first()
        if not taken:
            return slug
    raise PersistenceError("Failed to create assignment")


def create_assignment(
    session: Session,
    teacher: User,
    title: str,
    topic: str,
    questions: List[dict],
) -> Assignment:
    """Create an assignment and its questions in a single commit.

    Args:
        session: Database session
        teacher: Owning teacher
        title: Assignment title (HTML is stripped)
        topic: One of the catalog topics
        questions: Dicts with ``question_text``, ``correct_answer`` and
            optional ``question_type`` / ``order``

    Returns:
        The new Assignment

    Raises:
        InvalidInputError: If the title, topic or any question is invalid
        PersistenceError: If the write fails
    """
    clean_title = sanitize_text(title or "")
    if not clean_title:
        raise InvalidInputError("Title is required")

    if not topic or not is_known_topic(topic):
        raise InvalidInputError("Topic is required")

    if not questions:
        raise InvalidInputError("At least one question is required")

    prepared = []
    for position, q in enumerate(questions, start=1):
        text = sanitize_text(q.get("question_text") or "")
        answer = (q.get("correct_answer") or "").strip()
        if not text or not answer:
            raise InvalidInputError("Each question must have text and a correct answer")
        prepared.append(
            {
                "question_text": text,
                "correct_answer": answer,
                "question_type": q.get("question_type") or "short_answer",
                "order": q.get("order") or position,
            }
        )

    orders = [p["order"] for p in prepared]
    if len(set(orders)) != len(orders):
        raise InvalidInputError("Question order must be unique within an assignment")

    assignment = Assignment(
        teacher_id=teacher.id,
        title=clean_title,
        topic=topic,
        link_slug=_unique_link_slug(session),
        class_code=generate_class_code(),
    )
    try:
        session.add(assignment)
        session.flush()
        session.add_all(Question(assignment_id=assignment.id, **p) for p in prepared)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to create assignment for teacher %s", teacher.id)
        raise PersistenceError("Failed to create assignment")

    session.refresh(assignment)
    logger.info("Teacher %s created assignment %s (%s)", teacher.id, assignment.id, topic)
    return assignment


def list_assignments(session: Session, teacher: User) -> List[Assignment]:
    stmt = (
        select(Assignment)
        .where(Assignment.teacher_id == teacher.id)
        .order_by(Assignment.created_at.desc(), Assignment.id.desc())
    )
    return list(session.exec(stmt).all())


def get_owned_assignment(session: Session, teacher: User, assignment_id: int) -> Assignment:
    """Fetch an assignment owned by ``teacher``; others' assignments look missing."""
    assignment = session.get(Assignment, assignment_id)
    if not assignment or assignment.teacher_id != teacher.id:
        raise NotFoundError("Assignment not found")
    return assignment


def close_assignment(session: Session, teacher: User, assignment_id: int) -> Assignment:
    assignment = get_owned_assignment(session, teacher, assignment_id)
    assignment.is_closed = True
    try:
        session.add(assignment)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to close assignment %s", assignment_id)
        raise PersistenceError("Failed to close assignment")
    session.refresh(assignment)
    return assignment


def list_questions(session: Session, assignment_id: int) -> List[Question]:
    stmt = select(Question).where(Question.assignment_id == assignment_id).order_by(Question.order)
    return list(session.exec(stmt).all())


def add_pattern(
    session: Session,
    teacher: User,
    assignment_id: int,
    question_id: int,
    misconception_id: int,
    wrong_answer_pattern: str,
    explanation: Optional[str] = None,
    follow_up_question: Optional[str] = None,
    follow_up_answer: Optional[str] = None,
) -> QuestionMisconceptionPattern:
    """Attach a wrong-answer pattern to one of the teacher's questions."""
    assignment = get_owned_assignment(session, teacher, assignment_id)

    question = session.get(Question, question_id)
    if not question or question.assignment_id != assignment.id:
        raise NotFoundError("Question not found")

    if not session.get(Misconception, misconception_id):
        raise NotFoundError("Misconception not found")

    if not wrong_answer_pattern or not wrong_answer_pattern.strip():
        raise InvalidInputError("A wrong-answer pattern is required")

    pattern = QuestionMisconceptionPattern(
        question_id=question.id,
        misconception_id=misconception_id,
        wrong_answer_pattern=wrong_answer_pattern.strip(),
        explanation=sanitize_text(explanation) if explanation else None,
        follow_up_question=sanitize_text(follow_up_question) if follow_up_question else None,
        follow_up_answer=follow_up_answer.strip() if follow_up_answer else None,
    )
    try:
        session.add(pattern)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to add pattern to question %s", question.id)
        raise PersistenceError("Failed to save pattern")
    session.refresh(pattern)
    return pattern


def get_assignment_by_slug(session: Session, slug: str) -> Optional[Assignment]:
    return session.exec(select(Assignment).where(Assignment.link_slug == slug)).first()


def start_session(session: Session, slug: str, student_name: str, class_code: str) -> StudentSession:
    """Verify the class code and open a student session.

    Raises:
        InvalidInputError: Blank name, malformed or incorrect class code
        NotFoundError: Unknown link
        AssignmentClosedError: The assignment no longer accepts answers
    """
    name = (student_name or "").strip()
    if not name:
        raise InvalidInputError("Please enter your name")

    try:
        validate_class_code(class_code or "")
    except ValueError as e:
        raise InvalidInputError(str(e))

    assignment = get_assignment_by_slug(session, slug)
    if not assignment:
        raise NotFoundError("Assignment not found")

    if assignment.is_closed:
        raise AssignmentClosedError()

    code = class_code.strip().upper()
    if assignment.class_code != code:
        raise InvalidInputError("Incorrect class code")

    student_session = StudentSession(
        assignment_id=assignment.id,
        student_name=name,
        class_code=code,
    )
    try:
        session.add(student_session)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to start session for assignment %s", assignment.id)
        raise PersistenceError("Failed to start homework")
    session.refresh(student_session)
    return student_session


def complete_session(session: Session, session_id: str) -> StudentSession:
    """Mark a session complete. A session is only ever completed once."""
    student_session = session.get(StudentSession, session_id)
    if not student_session:
        raise NotFoundError("Session not found")

    if student_session.completed_at is None:
        student_session.completed_at = utc_now()
        try:
            session.add(student_session)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Failed to complete session %s", session_id)
            raise PersistenceError("Failed to complete homework")
        session.refresh(student_session)
    return student_session
