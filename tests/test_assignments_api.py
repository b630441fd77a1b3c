"""Teacher-facing API: authentication, assignments, patterns and the catalog."""

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from homework_app.models import Assignment, Question, StudentResponse, StudentSession, User
from homework_app.services.misconception_catalog import AVAILABLE_TOPICS


def _create(client, **overrides):
    payload = {
        "title": "Fractions <b>practice</b>",
        "topic": "fractions",
        "questions": [
            {"question_text": "What is 1/4 + 1/2?", "correct_answer": "3/4"},
            {"question_text": "What is 2/3 of 9?", "correct_answer": "6"},
        ],
    }
    payload.update(overrides)
    return client.post("/assignments", json=payload)


# ============================================================================
# AUTH
# ============================================================================


def test_requires_login(client):
    assert client.get("/assignments").status_code == 401
    assert _create(client).status_code == 401
    assert client.get("/misconceptions?topic=fractions").status_code == 401


def test_dev_login_creates_user(client, session):
    r = client.post("/auth/dev-login", json={"email": "New.Teacher@School.edu"})
    assert r.status_code == 200
    assert r.json()["email"] == "new.teacher@school.edu"
    assert r.json()["name"] == "new.teacher"

    assert client.get("/auth/me").json()["email"] == "new.teacher@school.edu"
    assert session.exec(select(User).where(User.email == "new.teacher@school.edu")).first()


def test_dev_login_rejects_bad_email(client):
    assert client.post("/auth/dev-login", json={"email": "nobody"}).status_code == 400


def test_logout(logged_in_client):
    assert logged_in_client.post("/auth/logout").json() == {"success": True}
    assert logged_in_client.get("/auth/me").status_code == 401


# ============================================================================
# ASSIGNMENTS
# ============================================================================


def test_create_assignment(logged_in_client, session):
    r = _create(logged_in_client)

    assert r.status_code == 200
    body = r.json()
    assert len(body["link_slug"]) == 7
    assert len(body["class_code"]) == 4
    assert body["class_code"] == body["class_code"].upper()

    questions = session.exec(
        select(Question).where(Question.assignment_id == body["assignment_id"]).order_by(Question.order)
    ).all()
    assert [(q.order, q.correct_answer) for q in questions] == [(1, "3/4"), (2, "6")]

    detail = logged_in_client.get(f"/assignments/{body['assignment_id']}").json()
    assert detail["assignment"]["title"] == "Fractions practice"


def test_create_assignment_validation(logged_in_client):
    assert _create(logged_in_client, title="").status_code == 400
    assert _create(logged_in_client, topic="astrology").status_code == 400
    assert _create(logged_in_client, questions=[]).status_code == 400
    assert _create(logged_in_client, questions=[{"question_text": "Q?", "correct_answer": ""}]).status_code == 400
    duplicate_orders = [
        {"question_text": "A?", "correct_answer": "1", "order": 1},
        {"question_text": "B?", "correct_answer": "2", "order": 1},
    ]
    assert _create(logged_in_client, questions=duplicate_orders).status_code == 400


def test_list_assignments_is_scoped_to_teacher(logged_in_client, fraction_assignment, session):
    other = User(email="other@school.edu", name="other")
    session.add(other)
    session.commit()

    r = logged_in_client.get("/assignments")

    assert [a["link_slug"] for a in r.json()["assignments"]] == ["frac001"]


def test_other_teachers_assignment_looks_missing(client, fraction_assignment):
    client.post("/auth/dev-login", json={"email": "other@school.edu"})

    assert client.get(f"/assignments/{fraction_assignment.id}").status_code == 404
    assert client.post(f"/assignments/{fraction_assignment.id}/close").status_code == 404


def test_close_assignment(logged_in_client, fraction_assignment):
    r = logged_in_client.post(f"/assignments/{fraction_assignment.id}/close")
    assert r.json() == {"success": True}

    assert logged_in_client.get("/homework/frac001").json()["is_closed"] is True


def test_assignment_detail_includes_insights(
    logged_in_client, student_session, fraction_question, make_misconceptions, session
):
    (adding_id,) = make_misconceptions("fractions", "Adding fractions")
    session.add(
        StudentResponse(
            session_id=student_session.id,
            question_id=fraction_question.id,
            answer="2/6",
            is_correct=False,
            misconception_id=adding_id,
        )
    )
    session.commit()

    r = logged_in_client.get(f"/assignments/{fraction_question.assignment_id}")

    assert r.status_code == 200
    body = r.json()
    assert body["questions"][0]["correct_answer"] == "3/4"
    assert [s["student_name"] for s in body["sessions"]] == ["Sam"]
    insights = body["insights"]
    assert insights["stats"]["total_students"] == 1
    assert insights["stats"]["accuracy"] == 0
    assert insights["top_misconceptions"][0]["examples"] == ["2/6"]
    assert "Adding fractions" in insights["summary"]


def test_add_pattern_validation(logged_in_client, fraction_question, make_misconceptions):
    (mid,) = make_misconceptions("fractions", "Adding fractions")
    url = f"/assignments/{fraction_question.assignment_id}/questions/{fraction_question.id}/patterns"

    assert logged_in_client.post(url, json={"misconception_id": mid, "wrong_answer_pattern": " "}).status_code == 400
    assert logged_in_client.post(url, json={"misconception_id": 999999, "wrong_answer_pattern": "x"}).status_code == 404
    bad_question = f"/assignments/{fraction_question.assignment_id}/questions/999999/patterns"
    assert logged_in_client.post(bad_question, json={"misconception_id": mid, "wrong_answer_pattern": "x"}).status_code == 404


def test_teacher_and_student_flow(logged_in_client, session):
    created = _create(logged_in_client).json()
    slug, code = created["link_slug"], created["class_code"]

    session_id = logged_in_client.post(
        f"/homework/{slug}/start", json={"student_name": "Kai", "class_code": code.lower()}
    ).json()["session_id"]
    question_id = logged_in_client.get(f"/homework/{slug}").json()["questions"][1]["id"]

    r = logged_in_client.post(
        f"/homework/{slug}/answer",
        json={"session_id": session_id, "question_id": question_id, "answer": "6.0"},
    )

    assert r.json() == {"is_correct": True}
    assert session.get(StudentSession, session_id).student_name == "Kai"


# ============================================================================
# MISCONCEPTION CATALOG
# ============================================================================


def test_list_misconceptions_by_topic(logged_in_client, make_misconceptions):
    ids = make_misconceptions("fractions", "Adding fractions", "Comparing fractions")
    make_misconceptions("algebra", "Equation solving")

    r = logged_in_client.get("/misconceptions?topic=fractions")

    assert [m["id"] for m in r.json()["misconceptions"]] == ids
    assert logged_in_client.get("/misconceptions").status_code == 400


def test_topics_and_templates(client):
    assert client.get("/misconceptions/topics").json()["topics"] == AVAILABLE_TOPICS

    templates = client.get("/misconceptions/templates?topic=fractions").json()["templates"]
    assert templates
    assert {"question", "correct_answer", "type"} <= set(templates[0])
    assert client.get("/misconceptions/templates?topic=unknown").json() == {"templates": []}


def test_suggest_includes_general_candidates(logged_in_client, fake_llm, make_misconceptions):
    fraction_ids = make_misconceptions("fractions", "Adding fractions")
    general_ids = make_misconceptions("general", "Careless error")
    fake_llm.replies = ["2"]

    r = logged_in_client.post(
        "/misconceptions/suggest", json={"topic": "fractions", "question_text": "What is 1/2 + 1/3?"}
    )

    assert r.status_code == 200
    assert [s["id"] for s in r.json()["suggestions"]] == general_ids
    assert fraction_ids[0] not in [s["id"] for s in r.json()["suggestions"]]


def test_suggest_requires_question(logged_in_client):
    r = logged_in_client.post("/misconceptions/suggest", json={"topic": "fractions"})
    assert r.status_code == 400


def test_health_reports_backend(client, fake_llm):
    assert client.get("/health").json() == {"status": "ok", "llm_available": False}
    fake_llm.available = True
    assert client.get("/health").json()["llm_available"] is True


# ============================================================================
# PERSISTENCE FAILURES
# ============================================================================


def _failing_commit(self):
    raise SQLAlchemyError("database is locked")


def test_failed_close_is_reported(logged_in_client, fraction_assignment, session, monkeypatch):
    monkeypatch.setattr(Session, "commit", _failing_commit)

    r = logged_in_client.post(f"/assignments/{fraction_assignment.id}/close")

    assert r.status_code == 500
    assert r.json() == {"detail": "Failed to close assignment"}
    monkeypatch.undo()
    assert session.get(Assignment, fraction_assignment.id).is_closed is False


def test_failed_pattern_save_is_reported(logged_in_client, fraction_question, make_misconceptions, monkeypatch):
    (mid,) = make_misconceptions("fractions", "Adding fractions")
    url = f"/assignments/{fraction_question.assignment_id}/questions/{fraction_question.id}/patterns"
    monkeypatch.setattr(Session, "commit", _failing_commit)

    r = logged_in_client.post(url, json={"misconception_id": mid, "wrong_answer_pattern": "2/6"})

    assert r.status_code == 500
    assert r.json() == {"detail": "Failed to save pattern"}


def test_failed_sign_up_is_reported(client, monkeypatch):
    monkeypatch.setattr(Session, "commit", _failing_commit)

    r = client.post("/auth/dev-login", json={"email": "fresh@school.edu"})

    assert r.status_code == 500
    assert r.json() == {"detail": "Failed to sign in"}
