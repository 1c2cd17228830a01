"""
services/exam_session.py

State machine for one exam attempt.

    LOADING --start()--> ACTIVE --submit() / countdown expiry--> SUBMITTED

Mutations are only accepted while ACTIVE. After submission every user action
raises AlreadySubmittedError, while stray countdown ticks are ignored.
A second submit() raises AlreadySubmittedError and leaves the stored result
untouched.
"""

import logging
import threading
from typing import Callable, List, Optional, Sequence, Tuple

from config import EXAM_DURATION_SECONDS, OPTION_COUNT, TICK_INTERVAL
from online_exam.errors import (
    AlreadySubmittedError,
    EmptyQuestionSetError,
    IndexOutOfRangeError,
    SessionNotActiveError,
)
from online_exam.models.question_model import Question
from online_exam.models.result_model import ExamResult
from online_exam.models.session_state import (
    UNANSWERED,
    ExamState,
    QuestionStatus,
    QuestionView,
    SessionPhase,
)
from online_exam.services import exam_service
from online_exam.services.countdown import Scheduler, TimerHandle, format_clock, is_warning

logger = logging.getLogger(__name__)


class ExamSession:
    def __init__(
        self,
        duration_seconds: int = EXAM_DURATION_SECONDS,
        scheduler: Optional[Scheduler] = None,
        on_submit: Optional[Callable[[ExamResult], None]] = None,
    ) -> None:
        """
        Args:
            duration_seconds: Time allowed for the attempt.
            scheduler:        Drives tick() once per second while active.
                              None means the caller calls tick() itself.
            on_submit:        Called with the ExamResult after submission,
                              manual or automatic.
        """
        self._state = ExamState(
            duration_seconds=duration_seconds,
            remaining_seconds=duration_seconds,
        )
        self._questions: Tuple[Question, ...] = ()
        self._scheduler = scheduler
        self._timer: Optional[TimerHandle] = None
        self._on_submit = on_submit
        self._result: Optional[ExamResult] = None
        self._lock = threading.RLock()

    # ── Read-only accessors ──────────────────────────────────────────────────

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    @property
    def questions(self) -> Tuple[Question, ...]:
        return self._questions

    @property
    def current_index(self) -> int:
        return self._state.current_index

    @property
    def current_question(self) -> Question:
        self._require_started()
        return self._questions[self._state.current_index]

    @property
    def answers(self) -> List[int]:
        return list(self._state.answers)

    @property
    def marked(self) -> frozenset:
        return frozenset(self._state.marked)

    @property
    def remaining_seconds(self) -> int:
        return self._state.remaining_seconds

    @property
    def duration_seconds(self) -> int:
        return self._state.duration_seconds

    @property
    def result(self) -> Optional[ExamResult]:
        return self._result

    @property
    def is_first(self) -> bool:
        return self._state.current_index == 0

    @property
    def is_last(self) -> bool:
        return self._state.current_index == len(self._questions) - 1

    @property
    def unanswered_count(self) -> int:
        return exam_service.count_unattempted(self._state.answers)

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def start(self, questions: Sequence[Question]) -> None:
        """LOADING -> ACTIVE."""
        with self._lock:
            if self._state.phase is not SessionPhase.LOADING:
                raise SessionNotActiveError(self._state.phase)
            if not questions:
                raise EmptyQuestionSetError()

            self._questions = tuple(questions)
            self._state.begin(len(self._questions))
            if self._scheduler is not None:
                self._timer = self._scheduler.call_every(TICK_INTERVAL, self.tick)

        logger.info(
            f"exam started: {len(self._questions)} questions, "
            f"{self._state.duration_seconds}s"
        )

    def tick(self) -> Optional[ExamResult]:
        """
        Advance the countdown by one second.

        Reaching zero submits the exam and returns its result. Ticks outside
        ACTIVE are ignored and return None.
        """
        with self._lock:
            if self._state.phase is not SessionPhase.ACTIVE:
                return None
            self._state.remaining_seconds = max(0, self._state.remaining_seconds - 1)
            if self._state.remaining_seconds > 0:
                return None
            logger.info("exam time is up, submitting automatically")
            result = self._submit_locked(auto=True)
        self._notify(result)
        return result

    def submit(self) -> ExamResult:
        """
        ACTIVE -> SUBMITTED. Grades whatever is on the answer sheet.

        Raises:
            AlreadySubmittedError: the exam was already submitted.
            SessionNotActiveError: the exam was never started.
        """
        with self._lock:
            self._require_active()
            result = self._submit_locked(auto=False)
        self._notify(result)
        return result

    def close(self) -> None:
        """Stop the countdown of an abandoned attempt without grading it."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    # ── Navigation ───────────────────────────────────────────────────────────

    def navigate(self, delta: int) -> int:
        """Move by delta, clamped to the first/last question. Returns the new index."""
        with self._lock:
            self._require_active()
            last = len(self._questions) - 1
            self._state.current_index = max(0, min(self._state.current_index + delta, last))
            return self._state.current_index

    def jump_to(self, index: int) -> int:
        with self._lock:
            self._require_active()
            self._check_question_index(index)
            self._state.current_index = index
            return index

    # ── Answer sheet ─────────────────────────────────────────────────────────

    def select_answer(self, option_index: int) -> None:
        with self._lock:
            self._require_active()
            if not 0 <= option_index < OPTION_COUNT:
                raise IndexOutOfRangeError(option_index, OPTION_COUNT)
            self._state.answers[self._state.current_index] = option_index

    def clear_answer(self) -> None:
        with self._lock:
            self._require_active()
            self._state.answers[self._state.current_index] = UNANSWERED

    def toggle_mark(self) -> bool:
        """Flip the review flag of the current question. Returns True if now marked."""
        with self._lock:
            self._require_active()
            idx = self._state.current_index
            if idx in self._state.marked:
                self._state.marked.discard(idx)
                return False
            self._state.marked.add(idx)
            return True

    # ── Derived queries ──────────────────────────────────────────────────────

    def status(self, index: int) -> QuestionStatus:
        """Palette status. Marked for review wins over answered."""
        with self._lock:
            self._require_started()
            self._check_question_index(index)
            if index in self._state.marked:
                return QuestionStatus.MARKED_FOR_REVIEW
            if self._state.answers[index] != UNANSWERED:
                return QuestionStatus.ANSWERED
            return QuestionStatus.NOT_ANSWERED

    def view(self) -> QuestionView:
        with self._lock:
            self._require_started()
            idx = self._state.current_index
            remaining = self._state.remaining_seconds
            return QuestionView(
                phase=self._state.phase,
                index=idx,
                total=len(self._questions),
                question=self._questions[idx],
                selected=self._state.answers[idx],
                answers=list(self._state.answers),
                marked=sorted(self._state.marked),
                statuses=[self.status(i) for i in range(len(self._questions))],
                is_first=self.is_first,
                is_last=self.is_last,
                remaining_seconds=remaining,
                clock=format_clock(remaining),
                time_warning=is_warning(remaining),
                unanswered_count=self.unanswered_count,
            )

    # ── Internals ────────────────────────────────────────────────────────────

    def _submit_locked(self, auto: bool) -> ExamResult:
        # Stop the countdown first so a late tick cannot submit again.
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._state.phase = SessionPhase.SUBMITTED

        self._result = exam_service.grade(
            self._questions,
            self._state.answers,
            remaining_seconds=self._state.remaining_seconds,
            duration_seconds=self._state.duration_seconds,
            auto_submitted=auto,
        )
        logger.info(
            f"exam submitted ({'timeout' if auto else 'manual'}): "
            f"{self._result.score}/{self._result.total_questions}"
        )
        return self._result

    def _notify(self, result: ExamResult) -> None:
        if self._on_submit is not None:
            self._on_submit(result)

    def _require_started(self) -> None:
        if self._state.phase is SessionPhase.LOADING:
            raise SessionNotActiveError(self._state.phase)

    def _require_active(self) -> None:
        if self._state.phase is SessionPhase.SUBMITTED:
            raise AlreadySubmittedError()
        if self._state.phase is not SessionPhase.ACTIVE:
            raise SessionNotActiveError(self._state.phase)

    def _check_question_index(self, index: int) -> None:
        if not 0 <= index < len(self._questions):
            raise IndexOutOfRangeError(index, len(self._questions))
