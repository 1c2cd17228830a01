"""
models/session_state.py

Exam progress state (the answer sheet) and the per-render view handed to the UI.
Pydantic BaseModel based. No UI code.
"""

import time
from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, Field

from online_exam.models.question_model import Question

UNANSWERED = -1


class SessionPhase(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    SUBMITTED = "submitted"


class QuestionStatus(str, Enum):
    NOT_ANSWERED = "Not Answered"
    ANSWERED = "Answered"
    MARKED_FOR_REVIEW = "Marked for Review"


class ExamState(BaseModel):
    """
    Mutable state of one exam attempt. Owned and mutated only by ExamSession.

    Attributes:
        phase:             LOADING -> ACTIVE -> SUBMITTED, never backwards.
        current_index:     Question currently displayed (0-based).
        answers:           Selected option per question, UNANSWERED (-1) if none.
                           Length fixed when the exam starts.
        marked:            Question indices flagged for review.
        duration_seconds:  Total time allowed.
        remaining_seconds: Countdown, never increases while active.
        start_time:        Unix timestamp of start().
    """

    phase: SessionPhase = Field(default=SessionPhase.LOADING)
    current_index: int = Field(default=0, ge=0)
    answers: List[int] = Field(default_factory=list)
    marked: Set[int] = Field(default_factory=set)
    duration_seconds: int = Field(..., gt=0)
    remaining_seconds: int = Field(..., ge=0)
    start_time: Optional[float] = Field(default=None)

    def begin(self, question_count: int) -> None:
        self.phase = SessionPhase.ACTIVE
        self.current_index = 0
        self.answers = [UNANSWERED] * question_count
        self.marked = set()
        self.remaining_seconds = self.duration_seconds
        self.start_time = time.time()


class QuestionView(BaseModel):
    """Everything the renderer needs for one render cycle."""

    phase: SessionPhase
    index: int
    total: int
    question: Optional[Question] = None
    selected: int = UNANSWERED
    answers: List[int]
    marked: List[int]
    statuses: List[QuestionStatus]
    is_first: bool
    is_last: bool
    remaining_seconds: int
    clock: str
    time_warning: bool
    unanswered_count: int
