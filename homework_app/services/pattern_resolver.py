"""Deterministic first-pass lookup of a wrong answer against authored patterns.

Teachers may type either a regular expression or a literal wrong answer as
a pattern. A rule that compiles is matched as a case-insensitive regex; a
rule that does not compile is compared literally (case-insensitive
equality). The first matching pattern in stored order wins.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Pattern, Tuple

from homework_app.models import Misconception, QuestionMisconceptionPattern
from homework_app.services.misconception_catalog import list_patterns_for_question
from sqlmodel import Session

logger = logging.getLogger(__name__)


@dataclass
class PatternMatch:
    misconception: Misconception
    static_explanation: Optional[str] = None
    static_follow_up: Optional[Tuple[str, str]] = None  # (question, answer)
    pattern_id: Optional[int] = None


def compile_pattern(rule: str) -> Optional[Pattern[str]]:
    """Compile an authored rule as a case-insensitive regex, or None if it is not valid regex syntax."""
    try:
        return re.compile(rule, re.IGNORECASE)
    except re.error:
        return None


def pattern_matches(rule: str, normalized_answer: str) -> bool:
    compiled = compile_pattern(rule)
    if compiled is not None:
        return compiled.search(normalized_answer) is not None
    # Literal branch for rules such as "(1/2" that are not valid regex
    return rule.strip().lower() == normalized_answer


def resolve_pattern(
    candidates: Iterable[Tuple[QuestionMisconceptionPattern, Misconception]],
    answer: str,
) -> Optional[PatternMatch]:
    """Return the first pattern matching ``answer``, or None."""
    normalized_answer = answer.strip().lower()

    for pattern, misconception in candidates:
        if not pattern_matches(pattern.wrong_answer_pattern, normalized_answer):
            continue

        follow_up = None
        if pattern.follow_up_question and pattern.follow_up_answer:
            follow_up = (pattern.follow_up_question, pattern.follow_up_answer)
        logger.debug("Answer matched pattern %s (misconception %s)", pattern.id, misconception.id)
        return PatternMatch(
            misconception=misconception,
            static_explanation=pattern.explanation or None,
            static_follow_up=follow_up,
            pattern_id=pattern.id,
        )

    return None


def find_misconception_by_pattern(
    session: Session, question_id: int, answer: str
) -> Optional[PatternMatch]:
    candidates = list_patterns_for_question(session, question_id)
    if not candidates:
        return None
    return resolve_pattern(candidates, answer)
