"""Read-only roll-up of recorded responses into teacher-facing analytics."""

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from homework_app.models import Assignment, Misconception, StudentResponse, StudentSession
from homework_app.services.llm_client import LLMClient
from sqlmodel import Session, select

logger = logging.getLogger(__name__)

TOP_MISCONCEPTIONS = 5
MAX_EXAMPLES = 3
NO_MISCONCEPTIONS_SUMMARY = (
    "No misconceptions identified in this assignment. Students performed well overall."
)

ResponseRow = Tuple[StudentResponse, Optional[Misconception]]


@dataclass
class MisconceptionStat:
    misconception_id: int
    category: str
    description: str
    count: int = 0
    examples: List[str] = field(default_factory=list)


@dataclass
class AssignmentStats:
    total_students: int
    completed_students: int
    total_responses: int
    correct_responses: int
    accuracy: int


@dataclass
class AssignmentInsights:
    stats: AssignmentStats
    top_misconceptions: List[MisconceptionStat]
    summary: str

    def as_dict(self) -> dict:
        return asdict(self)


def aggregate_misconceptions(rows: Sequence[ResponseRow]) -> List[MisconceptionStat]:
    """Count incorrect responses per misconception; top five by count."""
    by_id: Dict[int, MisconceptionStat] = {}
    for response, misconception in rows:
        if response.is_correct or misconception is None:
            continue
        stat = by_id.get(misconception.id)
        if stat is None:
            stat = MisconceptionStat(
                misconception_id=misconception.id,
                category=misconception.category,
                description=misconception.description,
            )
            by_id[misconception.id] = stat
        stat.count += 1
        if len(stat.examples) < MAX_EXAMPLES:
            stat.examples.append(response.answer)

    # sorted() is stable: equal counts keep first-seen order
    ranked = sorted(by_id.values(), key=lambda s: s.count, reverse=True)
    return ranked[:TOP_MISCONCEPTIONS]


def compute_stats(
    sessions: Sequence[StudentSession], responses: Sequence[StudentResponse]
) -> AssignmentStats:
    total_responses = len(responses)
    correct = sum(1 for r in responses if r.is_correct)
    # Half-up rounding: 1 of 8 correct reports 13, not 12
    accuracy = int(correct / total_responses * 100 + 0.5) if total_responses > 0 else 0
    return AssignmentStats(
        total_students=len(sessions),
        completed_students=sum(1 for s in sessions if s.completed_at),
        total_responses=total_responses,
        correct_responses=correct,
        accuracy=accuracy,
    )


def static_summary(top: Sequence[MisconceptionStat]) -> str:
    if not top:
        return NO_MISCONCEPTIONS_SUMMARY
    leader = top[0]
    return (
        f'The most common issue was "{leader.category}" ({leader.count} students). '
        f"Consider revisiting {leader.description.lower()} in your next lesson."
    )


def generate_teacher_summary(llm: LLMClient, top: Sequence[MisconceptionStat]) -> str:
    """One factual sentence about the leading misconception."""
    if not top:
        return NO_MISCONCEPTIONS_SUMMARY

    data = "\n".join(f"- {m.category}: {m.description} ({m.count} students)" for m in top)
    prompt = f"""Given the following list of misconception counts, produce a single-sentence summary describing the most common misunderstanding.

Do not suggest lesson plans.
Do not include advice.
Keep it factual and brief.

Data:
{data}

Summary:"""

    response = llm.generate(prompt, max_tokens=100)
    if response and 10 < len(response) < 500:
        return response.strip("\"'").strip()

    logger.info("Using templated teacher summary")
    return static_summary(top)


def load_response_rows(session: Session, assignment_id: int) -> List[ResponseRow]:
    stmt = (
        select(StudentResponse, Misconception)
        .join(StudentSession, StudentResponse.session_id == StudentSession.id)
        .join(
            Misconception,
            StudentResponse.misconception_id == Misconception.id,
            isouter=True,
        )
        .where(StudentSession.assignment_id == assignment_id)
        .order_by(StudentResponse.answered_at, StudentResponse.id)
    )
    return list(session.exec(stmt).all())


def list_sessions(session: Session, assignment_id: int) -> List[StudentSession]:
    stmt = (
        select(StudentSession)
        .where(StudentSession.assignment_id == assignment_id)
        .order_by(StudentSession.started_at.desc())
    )
    return list(session.exec(stmt).all())


def build_insights(session: Session, llm: LLMClient, assignment: Assignment) -> AssignmentInsights:
    sessions = list_sessions(session, assignment.id)
    rows = load_response_rows(session, assignment.id)

    top = aggregate_misconceptions(rows)
    summary = generate_teacher_summary(llm, top) if top else ""
    return AssignmentInsights(
        stats=compute_stats(sessions, [response for response, _ in rows]),
        top_misconceptions=top,
        summary=summary,
    )
