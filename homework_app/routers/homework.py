"""Student-facing JSON API: open a shared assignment, answer, follow up, finish.

Students have no accounts; the session id returned by ``/start`` is their
identity for the rest of the assignment.
"""

from homework_app.database import get_session
from homework_app.deps import get_llm_client
from homework_app.exceptions import InvalidInputError, NotFoundError
from homework_app.services.assignment_service import (
    complete_session,
    get_assignment_by_slug,
    list_questions,
    start_session,
)
from homework_app.services.grading_service import grade_answer, submit_follow_up
from homework_app.services.llm_client import LLMClient
from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlmodel import Session

router = APIRouter()


class StartIn(BaseModel):
    student_name: str = ""
    class_code: str = ""


class AnswerIn(BaseModel):
    session_id: str = ""
    question_id: int = 0
    answer: str = ""


class FollowUpIn(BaseModel):
    session_id: str = ""
    question_id: int = 0
    follow_up_answer: str = ""


class CompleteIn(BaseModel):
    session_id: str = ""


@router.get("/{slug}")
def api_get_homework(slug: str, session: Session = Depends(get_session)):
    """Assignment info for students; reference answers are never included."""
    assignment = get_assignment_by_slug(session, slug)
    if not assignment:
        raise NotFoundError("Assignment not found")

    if assignment.is_closed:
        return {"is_closed": True, "assignment": {"title": assignment.title}}

    return {
        "is_closed": False,
        "assignment": {
            "id": assignment.id,
            "title": assignment.title,
            "topic": assignment.topic,
        },
        "questions": [
            {
                "id": q.id,
                "question_text": q.question_text,
                "question_type": q.question_type,
                "order": q.order,
            }
            for q in list_questions(session, assignment.id)
        ],
    }


@router.post("/{slug}/start")
def api_start(slug: str, payload: StartIn = Body(...), session: Session = Depends(get_session)):
    student_session = start_session(session, slug, payload.student_name, payload.class_code)
    return {"session_id": student_session.id}


@router.post("/{slug}/answer")
def api_answer(
    slug: str,
    payload: AnswerIn = Body(...),
    session: Session = Depends(get_session),
    llm: LLMClient = Depends(get_llm_client),
):
    result = grade_answer(session, llm, payload.session_id, payload.question_id, payload.answer)
    return result.as_dict()


@router.post("/{slug}/followup")
def api_follow_up(slug: str, payload: FollowUpIn = Body(...), session: Session = Depends(get_session)):
    submit_follow_up(session, payload.session_id, payload.question_id, payload.follow_up_answer)
    return {"success": True}


@router.post("/{slug}/complete")
def api_complete(slug: str, payload: CompleteIn = Body(...), session: Session = Depends(get_session)):
    if not payload.session_id:
        raise InvalidInputError("Missing session ID")
    complete_session(session, payload.session_id)
    return {"success": True}
