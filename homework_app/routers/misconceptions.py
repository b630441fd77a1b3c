"""Misconception catalog lookups used while authoring assignments."""

from homework_app.database import get_session
from homework_app.deps import get_llm_client, require_teacher
from homework_app.exceptions import InvalidInputError
from homework_app.models import User
from homework_app.services.llm_client import LLMClient
from homework_app.services.misconception_catalog import (
    AVAILABLE_TOPICS,
    GENERAL_TOPIC,
    QUESTION_TEMPLATES,
    list_for_topic,
)
from homework_app.services.misconception_selector import suggest_misconceptions
from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel
from sqlmodel import Session

router = APIRouter()


class SuggestIn(BaseModel):
    topic: str = ""
    question_text: str = ""


@router.get("")
def api_list_misconceptions(
    topic: str = Query(""),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    if not topic:
        raise InvalidInputError("Topic is required")

    return {
        "misconceptions": [
            {
                "id": m.id,
                "category": m.category,
                "description": m.description,
                "teaching_suggestion": m.teaching_suggestion,
            }
            for m in list_for_topic(session, topic)
        ]
    }


@router.get("/topics")
def api_list_topics():
    return {"topics": AVAILABLE_TOPICS}


@router.get("/templates")
def api_question_templates(topic: str = Query("")):
    return {"templates": QUESTION_TEMPLATES.get(topic, [])}


@router.post("/suggest")
def api_suggest_misconceptions(
    payload: SuggestIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
    llm: LLMClient = Depends(get_llm_client),
):
    """Suggest the misconceptions most likely to apply to a question being written."""
    if not payload.topic or not payload.question_text:
        raise InvalidInputError("Topic and question text are required")

    candidates = list_for_topic(session, payload.topic)
    if payload.topic != GENERAL_TOPIC:
        candidates += list_for_topic(session, GENERAL_TOPIC)

    suggestions = suggest_misconceptions(llm, payload.topic, payload.question_text, candidates)
    return {
        "suggestions": [
            {"id": m.id, "category": m.category, "description": m.description}
            for m in suggestions
        ]
    }
