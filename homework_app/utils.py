"""Utility functions for sanitization, share links and class codes."""

import secrets
import string

import bleach

CLASS_CODE_LENGTH = 4
# Confusable characters (0/O, 1/I) are left out
CLASS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
LINK_SLUG_LENGTH = 7
LINK_SLUG_ALPHABET = string.ascii_lowercase + string.digits


def sanitize_text(text: str) -> str:
    """Strip all HTML from teacher-authored text (titles, questions, explanations)."""
    sanitized = bleach.clean(text, tags=[], strip=True)
    return sanitized.strip()


def generate_link_slug() -> str:
    """Generate a URL-safe random token for a shareable assignment link."""
    return "".join(secrets.choice(LINK_SLUG_ALPHABET) for _ in range(LINK_SLUG_LENGTH))


def generate_class_code() -> str:
    """Generate the short code students type in to join an assignment."""
    return "".join(secrets.choice(CLASS_CODE_ALPHABET) for _ in range(CLASS_CODE_LENGTH))


def validate_class_code(code: str) -> bool:
    """Check the shape of a class code typed by a student.

    Returns:
        True if valid, raises ValueError if not

    Raises:
        ValueError: If the trimmed code is not exactly four characters
    """
    if len(code.strip()) != CLASS_CODE_LENGTH:
        raise ValueError(
            f"Please enter a valid {CLASS_CODE_LENGTH}-character class code"
        )

    return True
