"""Narrow a topic's misconceptions down to one best guess for a wrong answer.

Used only when no authored pattern matched. The generative backend is
consulted only when there is an actual choice to make; every other step is
deterministic and ties always resolve to the first entry in catalog order.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from homework_app.models import Misconception
from homework_app.services.llm_client import LLMClient
from homework_app.services.misconception_catalog import GENERAL_TOPIC, list_for_topic
from sqlmodel import Session

logger = logging.getLogger(__name__)

_BRACKETED_ID_RE = re.compile(r"\[([^\]]+)\]")
_LEADING_ORDINAL_RE = re.compile(r"^(\d+)")
_NUMBER_RE = re.compile(r"\d+")

MAX_SUGGESTIONS = 3
DEFAULT_SUGGESTIONS = 2


@dataclass
class MisconceptionMapRequest:
    question: str
    correct_answer: str
    student_answer: str
    topic: str
    candidates: Sequence[Misconception] = field(default_factory=list)


def build_mapping_prompt(request: MisconceptionMapRequest) -> str:
    misconception_list = "\n".join(
        f"{i + 1}. [{m.id}] {m.category}: {m.description}"
        for i, m in enumerate(request.candidates)
    )
    return f"""Given a student's wrong answer, identify which misconception best explains their error.

Question: {request.question}
Correct answer: {request.correct_answer}
Student's wrong answer: {request.student_answer}
Topic: {request.topic}

Available misconceptions:
{misconception_list}

Return ONLY the misconception ID (the text in brackets like [12]) that best matches this error. If none match well, return "none".

Answer:"""


def parse_mapping_response(response: str, candidates: Sequence[Misconception]) -> Optional[Misconception]:
    """Resolve a backend reply to one of the presented candidates.

    A bracketed id is tried first, then a leading ordinal ("2. ..." -> second
    candidate). Anything that does not resolve to a presented candidate is
    treated as no answer.
    """
    id_match = _BRACKETED_ID_RE.search(response)
    if id_match:
        wanted = id_match.group(1).strip()
        for candidate in candidates:
            if str(candidate.id) == wanted:
                return candidate

    ordinal_match = _LEADING_ORDINAL_RE.match(response.strip())
    if ordinal_match:
        index = int(ordinal_match.group(1)) - 1
        if 0 <= index < len(candidates):
            return candidates[index]

    return None


def map_misconception(llm: LLMClient, request: MisconceptionMapRequest) -> Optional[Misconception]:
    """Ask the backend to pick one candidate; None when it cannot or will not."""
    if not request.candidates:
        return None

    response = llm.generate(build_mapping_prompt(request), max_tokens=50)
    if not response:
        return None

    picked = parse_mapping_response(response, request.candidates)
    if picked is None:
        logger.info("LLM misconception pick did not resolve to a candidate: %r", response[:80])
    return picked


def select_misconception(
    session: Session,
    llm: LLMClient,
    topic: str,
    question_text: str,
    correct_answer: str,
    student_answer: str,
) -> Optional[Misconception]:
    """Pick the misconception that best explains a wrong answer, or None."""
    candidates = list_for_topic(session, topic)

    if len(candidates) == 1:
        return candidates[0]

    if len(candidates) > 1:
        picked = map_misconception(
            llm,
            MisconceptionMapRequest(
                question=question_text,
                correct_answer=correct_answer,
                student_answer=student_answer,
                topic=topic,
                candidates=candidates,
            ),
        )
        if picked is not None:
            return picked
        return candidates[0]

    general = list_for_topic(session, GENERAL_TOPIC)
    if general:
        return general[0]

    logger.info("No misconceptions catalogued for topic %r or %r", topic, GENERAL_TOPIC)
    return None


def suggest_misconceptions(
    llm: LLMClient,
    topic: str,
    question_text: str,
    candidates: Sequence[Misconception],
) -> List[Misconception]:
    """Suggest the 1-3 candidates most relevant to a question being authored."""
    if not candidates:
        return []

    listing = "\n".join(f"{i + 1}. {m.category}: {m.description}" for i, m in enumerate(candidates))
    prompt = f"""For a {topic} question, identify which of these common misconceptions might apply.

Question: {question_text}

Common misconceptions for this topic:
{listing}

Return the numbers of the 1-3 most relevant misconceptions, separated by commas. Example: "1, 3"

Most relevant:"""

    response = llm.generate(prompt, max_tokens=30)
    if response:
        suggestions: List[Misconception] = []
        for number in _NUMBER_RE.findall(response)[:MAX_SUGGESTIONS]:
            index = int(number) - 1
            if 0 <= index < len(candidates) and candidates[index] not in suggestions:
                suggestions.append(candidates[index])
        if suggestions:
            return suggestions

    return list(candidates[:DEFAULT_SUGGESTIONS])
