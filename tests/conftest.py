import asyncio
import sys
from pathlib import Path
from typing import Callable, List, Optional, Union

import pytest
from sqlmodel import Session, SQLModel, create_engine, text


def _ensure_app_on_path():
    repo_root = Path(__file__).resolve().parent.parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))
    return repo_root


_ensure_app_on_path()

# ============================================================================
# IN-MEMORY DATABASE FOR TESTING
# ============================================================================

import httpx
from sqlalchemy.pool import StaticPool

from homework_app.models import (
    Assignment,
    Misconception,
    Question,
    StudentSession,
    User,
)

# StaticPool: every connection shares the same in-memory database
test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create all tables in the test database once per session."""
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(autouse=True)
def cleanup_db_between_tests():
    """Clean up test data after each test."""
    yield

    # FK-safe order
    with Session(test_engine) as session:
        session.exec(text("DELETE FROM studentresponse"))
        session.exec(text("DELETE FROM studentsession"))
        session.exec(text("DELETE FROM questionmisconceptionpattern"))
        session.exec(text("DELETE FROM question"))
        session.exec(text("DELETE FROM assignment"))
        session.exec(text("DELETE FROM misconception"))
        session.exec(text('DELETE FROM "user"'))
        session.commit()


# ============================================================================
# FAKE TEXT GENERATION BACKEND
# ============================================================================

Reply = Union[None, str, Callable[[str], Optional[str]]]


class FakeLLM:
    """Scriptable stand-in for LLMClient that records every prompt it receives.

    ``replies`` are consumed in order, one per ``generate`` call; once they
    run out every call returns ``default``. A reply may be a callable taking
    the prompt.
    """

    def __init__(self, replies: Optional[List[Reply]] = None, default: Reply = None, available: bool = False):
        self.replies = list(replies or [])
        self.default = default
        self.available = available
        self.calls: List[dict] = []

    def generate(self, prompt: str, max_tokens: int = 200, timeout: Optional[float] = None) -> Optional[str]:
        self.calls.append({"prompt": prompt, "max_tokens": max_tokens, "timeout": timeout})
        reply = self.replies.pop(0) if self.replies else self.default
        if callable(reply):
            return reply(prompt)
        return reply

    def is_available(self) -> bool:
        return self.available


@pytest.fixture
def fake_llm():
    """Backend that never answers (every call returns None)."""
    return FakeLLM()


# ============================================================================
# FASTAPI APP & TEST CLIENT
# ============================================================================

from homework_app.database import get_session
from homework_app.deps import get_llm_client
from homework_app.main import app


@pytest.fixture
def client(fake_llm):
    """Create test client using httpx AsyncClient with sync wrapper."""

    def override_get_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_llm_client] = lambda: fake_llm

    loop = asyncio.new_event_loop()
    transport = httpx.ASGITransport(app=app)
    async_client = httpx.AsyncClient(transport=transport, base_url="http://testserver")

    class SyncClientWrapper:
        def __init__(self, async_client, loop):
            self.async_client = async_client
            self.loop = loop

        def get(self, *args, **kwargs):
            return self.loop.run_until_complete(self.async_client.get(*args, **kwargs))

        def post(self, *args, **kwargs):
            return self.loop.run_until_complete(self.async_client.post(*args, **kwargs))

    yield SyncClientWrapper(async_client, loop)

    loop.run_until_complete(async_client.aclose())
    loop.close()
    app.dependency_overrides.clear()


@pytest.fixture
def session():
    """Provide a database session for tests."""
    with Session(test_engine) as session:
        yield session


# ============================================================================
# ENTITY FIXTURES
# ============================================================================


@pytest.fixture
def teacher():
    with Session(test_engine) as session:
        user = User(email="teacher@school.edu", name="teacher")
        session.add(user)
        session.commit()
        session.refresh(user)
        user_id = user.id

    with Session(test_engine) as session:
        return session.get(User, user_id)


@pytest.fixture
def logged_in_client(client, teacher):
    response = client.post("/auth/dev-login", json={"email": teacher.email})
    assert response.status_code == 200
    return client


def add_misconceptions(topic: str, *categories: str) -> List[int]:
    """Insert misconceptions for ``topic`` in the given order; returns their ids."""
    ids = []
    with Session(test_engine) as session:
        for category in categories:
            m = Misconception(
                topic=topic,
                category=category,
                description=f"{category} description",
                teaching_suggestion=f"Revisit {category.lower()}",
            )
            session.add(m)
            session.commit()
            session.refresh(m)
            ids.append(m.id)
    return ids


@pytest.fixture
def fraction_assignment(teacher):
    """Open fractions assignment with one question: 1/4 + 1/2 = 3/4."""
    with Session(test_engine) as session:
        assignment = Assignment(
            teacher_id=teacher.id,
            title="Fractions homework",
            topic="fractions",
            link_slug="frac001",
            class_code="AB23",
        )
        session.add(assignment)
        session.commit()
        session.refresh(assignment)

        question = Question(
            assignment_id=assignment.id,
            question_text="What is 1/4 + 1/2?",
            correct_answer="3/4",
            order=1,
        )
        session.add(question)
        session.commit()
        assignment_id = assignment.id

    with Session(test_engine) as session:
        return session.get(Assignment, assignment_id)


@pytest.fixture
def fraction_question(fraction_assignment):
    from sqlmodel import select

    with Session(test_engine) as session:
        return session.exec(
            select(Question).where(Question.assignment_id == fraction_assignment.id)
        ).first()


@pytest.fixture
def student_session(fraction_assignment):
    with Session(test_engine) as session:
        s = StudentSession(
            assignment_id=fraction_assignment.id,
            student_name="Sam",
            class_code=fraction_assignment.class_code,
        )
        session.add(s)
        session.commit()
        session.refresh(s)
        session_id = s.id

    with Session(test_engine) as session:
        return session.get(StudentSession, session_id)


@pytest.fixture
def make_misconceptions():
    return add_misconceptions
