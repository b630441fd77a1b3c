import pytest

from homework_app.utils import (
    CLASS_CODE_ALPHABET,
    generate_class_code,
    generate_link_slug,
    sanitize_text,
    validate_class_code,
)


def test_sanitize_strips_markup():
    assert sanitize_text("  <i>What</i> is <b>1/2</b>? ") == "What is 1/2?"


def test_class_code_shape():
    for _ in range(20):
        code = generate_class_code()
        assert len(code) == 4
        assert set(code) <= set(CLASS_CODE_ALPHABET)


def test_link_slug_shape():
    slug = generate_link_slug()
    assert len(slug) == 7
    assert slug == slug.lower()
    assert slug.isalnum()


def test_validate_class_code():
    assert validate_class_code(" ab23 ")
    with pytest.raises(ValueError, match="4-character"):
        validate_class_code("AB2")
