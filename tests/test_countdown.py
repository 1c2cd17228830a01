import threading

import pytest

from online_exam.services.countdown import ThreadingScheduler, format_clock, is_warning


@pytest.mark.parametrize("seconds, expected", [
    (1800, "30:00"),
    (65, "1:05"),
    (9, "0:09"),
    (0, "0:00"),
    (-3, "0:00"),
])
def test_format_clock(seconds, expected):
    assert format_clock(seconds) == expected


def test_is_warning():
    assert is_warning(30)
    assert is_warning(0)
    assert not is_warning(31)
    assert is_warning(600, threshold=600)


def test_threading_scheduler_calls_and_cancels():
    calls = []
    fired = threading.Event()

    def callback():
        calls.append(1)
        if len(calls) >= 3:
            fired.set()

    handle = ThreadingScheduler().call_every(0.01, callback)
    assert fired.wait(2.0)
    handle.cancel()
    assert handle.cancelled

    count = len(calls)
    threading.Event().wait(0.05)
    # at most one in-flight call may land after cancel()
    assert len(calls) <= count + 1
