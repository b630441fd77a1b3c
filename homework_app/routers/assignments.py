"""Teacher routes for authoring assignments and reviewing results."""

from typing import List, Optional

from homework_app.database import get_session
from homework_app.deps import get_llm_client, require_teacher
from homework_app.models import User
from homework_app.services.assignment_service import (
    add_pattern,
    close_assignment,
    create_assignment,
    get_owned_assignment,
    list_assignments,
    list_questions,
)
from homework_app.services.insights import build_insights, list_sessions
from homework_app.services.llm_client import LLMClient
from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlmodel import Session

router = APIRouter()


class QuestionIn(BaseModel):
    question_text: str = ""
    correct_answer: str = ""
    question_type: Optional[str] = None
    order: Optional[int] = None


class CreateAssignmentIn(BaseModel):
    title: str = ""
    topic: str = ""
    questions: List[QuestionIn] = []


class PatternIn(BaseModel):
    misconception_id: int
    wrong_answer_pattern: str
    explanation: Optional[str] = None
    follow_up_question: Optional[str] = None
    follow_up_answer: Optional[str] = None


def _assignment_out(a) -> dict:
    return {
        "id": a.id,
        "title": a.title,
        "topic": a.topic,
        "link_slug": a.link_slug,
        "class_code": a.class_code,
        "is_closed": a.is_closed,
        "created_at": a.created_at,
    }


@router.get("")
def api_list_assignments(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    return {"assignments": [_assignment_out(a) for a in list_assignments(session, current_user)]}


@router.post("")
def api_create_assignment(
    payload: CreateAssignmentIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    assignment = create_assignment(
        session,
        current_user,
        title=payload.title,
        topic=payload.topic,
        questions=[q.model_dump() for q in payload.questions],
    )
    return {
        "assignment_id": assignment.id,
        "link_slug": assignment.link_slug,
        "class_code": assignment.class_code,
    }


@router.get("/{assignment_id}")
def api_assignment_detail(
    assignment_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
    llm: LLMClient = Depends(get_llm_client),
):
    """Assignment, questions, student sessions and misconception insights."""
    assignment = get_owned_assignment(session, current_user, assignment_id)
    insights = build_insights(session, llm, assignment)

    return {
        "assignment": _assignment_out(assignment),
        "questions": [
            {
                "id": q.id,
                "question_text": q.question_text,
                "correct_answer": q.correct_answer,
                "question_type": q.question_type,
                "order": q.order,
            }
            for q in list_questions(session, assignment.id)
        ],
        "sessions": [
            {
                "id": s.id,
                "student_name": s.student_name,
                "started_at": s.started_at,
                "completed_at": s.completed_at,
            }
            for s in list_sessions(session, assignment.id)
        ],
        "insights": insights.as_dict(),
    }


@router.post("/{assignment_id}/close")
def api_close_assignment(
    assignment_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    close_assignment(session, current_user, assignment_id)
    return {"success": True}


@router.post("/{assignment_id}/questions/{question_id}/patterns")
def api_add_pattern(
    assignment_id: int,
    question_id: int,
    payload: PatternIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    pattern = add_pattern(
        session,
        current_user,
        assignment_id=assignment_id,
        question_id=question_id,
        misconception_id=payload.misconception_id,
        wrong_answer_pattern=payload.wrong_answer_pattern,
        explanation=payload.explanation,
        follow_up_question=payload.follow_up_question,
        follow_up_answer=payload.follow_up_answer,
    )
    return {"pattern_id": pattern.id, "question_id": pattern.question_id}
