"""Minimal teacher authentication backed by the signed session cookie.

Only the development email login is provided; real identity providers sit
outside this service.
"""

import logging
from typing import Optional

from homework_app.config import settings
from homework_app.database import get_session
from homework_app.deps import get_current_user
from homework_app.exceptions import InvalidInputError, NotFoundError, PersistenceError
from homework_app.models import User
from homework_app.utils import sanitize_text
from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

logger = logging.getLogger(__name__)

router = APIRouter()


class DevLoginIn(BaseModel):
    email: str = ""


def _user_out(user: User) -> dict:
    return {"id": user.id, "email": user.email, "name": user.name}


@router.post("/dev-login")
def dev_login(
    request: Request,
    payload: DevLoginIn = Body(...),
    session: Session = Depends(get_session),
):
    """Find or create a teacher by email and start a cookie session."""
    if not settings.dev_login_enabled:
        raise NotFoundError("Not found")

    email = sanitize_text(payload.email).lower()
    if not email or "@" not in email:
        raise InvalidInputError("Please enter a valid email address")

    user = session.exec(select(User).where(User.email == email)).first()
    if not user:
        user = User(email=email, name=email.split("@")[0])
        try:
            session.add(user)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Failed to create teacher account")
            raise PersistenceError("Failed to sign in")
        session.refresh(user)

    request.session["user_id"] = user.id
    return _user_out(user)


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"success": True}


@router.get("/me")
def me(current_user: Optional[User] = Depends(get_current_user)):
    if current_user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return _user_out(current_user)
