"""Application package for the homework feedback service."""

from .main import app  # noqa: F401
