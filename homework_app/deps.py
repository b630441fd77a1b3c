"""Shared FastAPI dependencies for database access, authentication and the LLM client."""

from functools import lru_cache
from typing import Optional

from homework_app.config import settings
from homework_app.database import get_session
from homework_app.models import User
from homework_app.services.llm_client import LLMClient
from fastapi import Depends, HTTPException, Request
from sqlmodel import Session


@lru_cache(maxsize=1)
def get_llm_client() -> LLMClient:
    """One backend client per process, built from the loaded settings."""
    return LLMClient(settings.llm)


def get_current_user(
    request: Request, session: Session = Depends(get_session)
) -> Optional[User]:
    """Return the currently logged-in teacher based on the session cookie, if any."""
    user_id = request.session.get("user_id")
    if not user_id:
        return None

    user = session.get(User, user_id)
    if not user:
        # Clear any stale session
        request.session.clear()
        return None
    return user


def require_teacher(current_user: Optional[User] = Depends(get_current_user)) -> User:
    """Ensure that a teacher is logged in."""
    if current_user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return current_user
