import pytest

from online_exam.models.question_model import Question
from online_exam.services.exam_session import ExamSession


class ManualHandle:
    def __init__(self) -> None:
        self.cancel_calls = 0

    @property
    def cancelled(self) -> bool:
        return self.cancel_calls > 0

    def cancel(self) -> None:
        self.cancel_calls += 1


class ManualScheduler:
    """Scheduler test double: ticks only when fire() is called."""

    def __init__(self) -> None:
        self.callbacks = []
        self.handles = []
        self.intervals = []

    def call_every(self, interval, callback):
        handle = ManualHandle()
        self.callbacks.append(callback)
        self.handles.append(handle)
        self.intervals.append(interval)
        return handle

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            for callback, handle in zip(self.callbacks, self.handles):
                if not handle.cancelled:
                    callback()


def make_question(qid: int, correct_index: int = 1, explanation: str = "") -> Question:
    return Question(
        id=qid,
        text=f"Question {qid}?",
        options=["a", "b", "c", "d"],
        correct_index=correct_index,
        explanation=explanation,
    )


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def questions():
    return [make_question(i, correct_index=i % 4) for i in range(1, 6)]


@pytest.fixture
def session(questions, scheduler):
    s = ExamSession(duration_seconds=1800, scheduler=scheduler)
    s.start(questions)
    return s
