"""
services/countdown.py

Countdown plumbing for ExamSession.

ExamSession never talks to a real clock. It receives a Scheduler and asks it
to call tick() every second; the returned TimerHandle is cancelled when the
exam is submitted. Tests inject a manual scheduler instead.
"""

import logging
import threading
from typing import Callable, Protocol

from config import TIMER_WARNING_SECONDS

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle: ...


class _ThreadTimerHandle:
    def __init__(self) -> None:
        self._stopped = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()

    def cancel(self) -> None:
        self._stopped.set()


class ThreadingScheduler:
    """Runs each repeating callback on its own daemon thread."""

    def call_every(self, interval: float, callback: Callable[[], None]) -> _ThreadTimerHandle:
        handle = _ThreadTimerHandle()

        def _loop():
            # wait() returns True once cancelled
            while not handle._stopped.wait(interval):
                try:
                    callback()
                except Exception:
                    logger.exception("countdown callback failed")

        t = threading.Thread(target=_loop, name="exam-countdown", daemon=True)
        t.start()
        return handle


# ── Display helpers ──────────────────────────────────────────────────────────

def format_clock(seconds: int) -> str:
    """Remaining seconds -> "m:ss" (e.g. 1800 -> "30:00", 65 -> "1:05")."""
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def is_warning(seconds: int, threshold: int = TIMER_WARNING_SECONDS) -> bool:
    """True once the countdown is inside the final warning window."""
    return seconds <= threshold
