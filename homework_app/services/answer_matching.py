"""Tolerant short-answer comparison.

Both the student's answer and the reference answer go through the same
normalization before any comparison. Numeric answers are compared with a
fixed tolerance so that fraction, decimal, currency and percentage spellings
of the same value are accepted.
"""

import re
from typing import Optional

# Absorbs floating point rounding; not user-configurable
TOLERANCE = 1e-4

_WHITESPACE_RE = re.compile(r"\s+")
_MIXED_NUMBER_RE = re.compile(r"^(-?)(\d+)\s+(\d+)/(\d+)$")
_FRACTION_RE = re.compile(r"^(-?\d+)/(\d+)$")
_LEADING_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_NUMERIC_NOISE_RE = re.compile(r"[£$%,]")


def normalize_answer(answer: str) -> str:
    """Trim, lowercase and collapse runs of whitespace to a single space."""
    return _WHITESPACE_RE.sub(" ", answer.strip().lower())


def parse_number(text: str) -> Optional[float]:
    """Parse the leading decimal number of ``text`` ("12.5 cm" -> 12.5)."""
    match = _LEADING_NUMBER_RE.match(text.strip())
    if not match:
        return None
    return float(match.group(0))


def parse_fraction(text: str) -> Optional[float]:
    """Parse a mixed number ("1 1/2"), a fraction ("3/4") or a decimal.

    Returns None for a zero denominator and for values too large to
    represent as a float.
    """
    mixed = _MIXED_NUMBER_RE.match(text)
    fraction = _FRACTION_RE.match(text)
    if not mixed and not fraction:
        return parse_number(text)

    try:
        if mixed:
            sign, whole, num, den = mixed.groups()
            whole, num, den = int(whole), int(num), int(den)
            if den == 0:
                return None
            value = whole + num / den
            return -value if sign else value

        num, den = (int(g) for g in fraction.groups())
        if den == 0:
            return None
        return num / den
    except (ValueError, OverflowError):
        # int() digit limit or a quotient beyond float range
        return None


def _close_enough(a: float, b: float) -> bool:
    return abs(a - b) < TOLERANCE


def is_correct(student_answer: str, correct_answer: str) -> bool:
    """Decide whether a student's answer matches the reference answer."""
    student = normalize_answer(student_answer)
    correct = normalize_answer(correct_answer)

    if student == correct:
        return True

    if "/" in correct_answer:
        student_value = parse_fraction(student)
        correct_value = parse_fraction(correct)
        if student_value is not None and correct_value is not None:
            return _close_enough(student_value, correct_value)

    student_value = parse_number(_NUMERIC_NOISE_RE.sub("", student))
    correct_value = parse_number(_NUMERIC_NOISE_RE.sub("", correct))
    if student_value is not None and correct_value is not None:
        return _close_enough(student_value, correct_value)

    return False
