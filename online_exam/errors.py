"""
errors.py

Exception hierarchy for the exam core.

  - ParseError:       question bank could not produce any question
  - SessionError:     invalid call against an ExamSession (caller bug)
  - FetchError:       question bank transport failure, never retried here
  - ResultStoreError: result could not be persisted
"""

from typing import List, Optional


class ExamError(Exception):
    """Base class for every error raised by the exam core."""


# ── Parser ───────────────────────────────────────────────────────────────────

class ParseError(ExamError, ValueError):
    pass


class EmptyInputError(ParseError):
    def __init__(self, message: str = "Question bank is empty") -> None:
        super().__init__(message)


class NoValidQuestionsError(ParseError):
    """Every candidate line was rejected. `errors` holds the per-line reasons."""

    def __init__(self, errors: Optional[List] = None) -> None:
        self.errors = list(errors or [])
        super().__init__(f"No valid questions found ({len(self.errors)} lines rejected)")


# ── Session ──────────────────────────────────────────────────────────────────

class SessionError(ExamError, RuntimeError):
    pass


class EmptyQuestionSetError(SessionError):
    def __init__(self) -> None:
        super().__init__("Cannot start an exam without questions")


class IndexOutOfRangeError(SessionError, IndexError):
    def __init__(self, index: int, size: int) -> None:
        self.index = index
        self.size = size
        super().__init__(f"Index {index} out of range [0, {size - 1}]")


class SessionNotActiveError(SessionError):
    def __init__(self, phase) -> None:
        self.phase = phase
        super().__init__(f"Exam session is not active (phase: {getattr(phase, 'value', phase)})")


class AlreadySubmittedError(SessionError):
    def __init__(self) -> None:
        super().__init__("Exam has already been submitted")


# ── Collaborators ────────────────────────────────────────────────────────────

class FetchError(ExamError, RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ResultStoreError(ExamError, RuntimeError):
    pass
