"""Answer submission: correctness check, misconception resolution, feedback, persistence."""

import logging
from dataclasses import dataclass
from typing import Optional

from homework_app.exceptions import AssignmentClosedError, InvalidInputError, NotFoundError
from homework_app.models import Assignment, Misconception, Question, StudentResponse, StudentSession
from homework_app.services.answer_matching import is_correct
from homework_app.services.explanation import Explanation, ExplanationRequest, generate_explanation
from homework_app.services.llm_client import LLMClient
from homework_app.services.misconception_selector import select_misconception
from homework_app.services.pattern_resolver import find_misconception_by_pattern
from homework_app.services.response_recorder import record_follow_up, record_response
from sqlmodel import Session

logger = logging.getLogger(__name__)


@dataclass
class GradeResult:
    is_correct: bool
    response: StudentResponse
    feedback: Optional[Explanation] = None
    misconception: Optional[Misconception] = None

    def as_dict(self) -> dict:
        if self.is_correct:
            return {"is_correct": True}
        return {
            "is_correct": False,
            "feedback": {
                "explanation": self.feedback.explanation,
                "follow_up_question": self.feedback.follow_up_question,
                "follow_up_answer": self.feedback.follow_up_answer,
                "misconception_id": self.misconception.id if self.misconception else None,
            },
        }


def _load_open_context(session: Session, session_id: str, question_id: int):
    student_session = session.get(StudentSession, session_id)
    if not student_session:
        raise NotFoundError("Session not found")

    assignment = session.get(Assignment, student_session.assignment_id)
    if not assignment or assignment.is_closed:
        raise AssignmentClosedError("Assignment is closed")

    question = session.get(Question, question_id)
    if not question or question.assignment_id != assignment.id:
        raise NotFoundError("Question not found")

    return student_session, assignment, question


def grade_answer(
    session: Session,
    llm: LLMClient,
    session_id: str,
    question_id: int,
    answer: str,
) -> GradeResult:
    """Grade one submission and record it.

    Raises:
        InvalidInputError: Missing session/question id or blank answer
        NotFoundError: Unknown session, or question outside the session's assignment
        AssignmentClosedError: The assignment is closed
        PersistenceError: The response could not be recorded
    """
    if not session_id or not question_id or not answer or not answer.strip():
        raise InvalidInputError("Missing required fields")

    student_session, assignment, question = _load_open_context(session, session_id, question_id)

    if is_correct(answer, question.correct_answer):
        response = record_response(session, student_session.id, question.id, answer, is_correct=True)
        return GradeResult(is_correct=True, response=response)

    misconception: Optional[Misconception] = None
    static_explanation: Optional[str] = None
    static_follow_up = None

    pattern_match = find_misconception_by_pattern(session, question.id, answer)
    if pattern_match:
        misconception = pattern_match.misconception
        static_explanation = pattern_match.static_explanation
        static_follow_up = pattern_match.static_follow_up
    else:
        misconception = select_misconception(
            session,
            llm,
            topic=assignment.topic,
            question_text=question.question_text,
            correct_answer=question.correct_answer,
            student_answer=answer,
        )

    feedback = generate_explanation(
        llm,
        ExplanationRequest(
            question=question.question_text,
            correct_answer=question.correct_answer,
            student_answer=answer.strip(),
            topic=assignment.topic,
            misconception_category=misconception.category if misconception else None,
            misconception_description=misconception.description if misconception else None,
            static_explanation=static_explanation,
            static_follow_up=static_follow_up,
        ),
    )
    logger.info(
        "Incorrect answer on question %s: misconception=%s confidence=%s",
        question.id,
        misconception.id if misconception else None,
        feedback.confidence,
    )

    response = record_response(
        session,
        student_session.id,
        question.id,
        answer,
        is_correct=False,
        misconception_id=misconception.id if misconception else None,
        explanation=feedback.explanation,
    )
    return GradeResult(is_correct=False, response=response, feedback=feedback, misconception=misconception)


def submit_follow_up(
    session: Session, session_id: str, question_id: int, follow_up_answer: str
) -> StudentResponse:
    if not session_id or not question_id or not follow_up_answer or not follow_up_answer.strip():
        raise InvalidInputError("Missing required fields")

    if not session.get(StudentSession, session_id):
        raise NotFoundError("Session not found")

    return record_follow_up(session, session_id, question_id, follow_up_answer)
