"""
services/question_feed.py

Fetches the question bank over HTTP and turns it into a running ExamSession.
No automatic retry: a failed fetch is reported to the caller, who decides.
"""

import logging
from typing import Callable, Optional

import requests

from config import EXAM_DURATION_SECONDS, FETCH_TIMEOUT, QUESTION_BANK_URL
from online_exam.errors import FetchError
from online_exam.models.question_model import ParseResult
from online_exam.models.result_model import ExamResult
from online_exam.services.countdown import Scheduler
from online_exam.services.exam_session import ExamSession
from online_exam.services.question_parser import parse

logger = logging.getLogger(__name__)


def fetch_question_bank(
    url: str = QUESTION_BANK_URL,
    timeout: float = FETCH_TIMEOUT,
    http: Optional[requests.Session] = None,
) -> str:
    """
    GET the raw question bank text.

    Raises:
        FetchError: transport failure, non-2xx status, undecodable or empty body.
    """
    client = http or requests
    logger.info(f"fetching question bank: {url}")
    try:
        response = client.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise FetchError(f"question bank request failed: HTTP {status}", status_code=status) from e
    except requests.RequestException as e:
        raise FetchError(f"question bank request failed: {e}") from e

    # The bank is UTF-8 whatever the Content-Type says; requests would
    # fall back to ISO-8859-1 for text/* without a charset.
    try:
        text = response.content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FetchError(f"question bank is not valid UTF-8: {e}",
                         status_code=response.status_code) from e
    if not text or not text.strip():
        raise FetchError("question bank response is empty", status_code=response.status_code)

    logger.info(f"question bank received ({len(text)} chars)")
    return text


def start_exam(
    parsed: ParseResult,
    duration_seconds: int = EXAM_DURATION_SECONDS,
    scheduler: Optional[Scheduler] = None,
    on_submit: Optional[Callable[[ExamResult], None]] = None,
) -> ExamSession:
    session = ExamSession(
        duration_seconds=duration_seconds,
        scheduler=scheduler,
        on_submit=on_submit,
    )
    session.start(parsed.questions)
    return session


def load_exam(
    url: str = QUESTION_BANK_URL,
    duration_seconds: int = EXAM_DURATION_SECONDS,
    scheduler: Optional[Scheduler] = None,
    on_submit: Optional[Callable[[ExamResult], None]] = None,
    http: Optional[requests.Session] = None,
) -> ExamSession:
    """
    fetch -> parse -> start.

    Any FetchError / ParseError propagates and no session is started.
    """
    raw = fetch_question_bank(url, http=http)
    parsed = parse(raw)
    if parsed.errors:
        logger.warning(f"load_exam: {len(parsed.errors)} question lines skipped")
    return start_exam(parsed, duration_seconds, scheduler, on_submit)
