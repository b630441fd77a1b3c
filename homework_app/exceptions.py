"""Error types raised by the service layer and mapped to HTTP responses in main.py."""


class HomeworkError(Exception):
    """Base class for errors reported to API callers."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(HomeworkError, ValueError):
    """Missing or malformed input, rejected before any grading logic runs."""

    status_code = 400


class NotFoundError(HomeworkError, LookupError):
    """Unknown (or not owned) session, question or assignment."""

    status_code = 404


class AssignmentClosedError(HomeworkError):
    status_code = 409

    def __init__(self, message: str = "This assignment is closed"):
        super().__init__(message)


class PersistenceError(HomeworkError):
    """A database write failed and was rolled back."""

    status_code = 500
