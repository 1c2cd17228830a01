"""
api/routes.py — FastAPI endpoints
"""

import asyncio
import logging
import os
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

import api.session as session
import config
from online_exam.errors import (
    AlreadySubmittedError,
    FetchError,
    IndexOutOfRangeError,
    NoValidQuestionsError,
    ParseError,
    ResultStoreError,
    SessionError,
)
from online_exam.models.question_model import ParseResult
from online_exam.models.result_model import ExamResult
from online_exam.services.countdown import ThreadingScheduler
from online_exam.services.exam_service import get_incorrect_questions
from online_exam.services.exam_session import ExamSession
from online_exam.services.question_feed import fetch_question_bank, start_exam
from online_exam.services.question_parser import (
    format_question_line,
    load_question_bank,
    parse,
    priority_questions,
)
from online_exam.services.result_store import save_result

logger = logging.getLogger(__name__)

router = APIRouter()

# Replaced in tests with a manual scheduler.
scheduler = ThreadingScheduler()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class LoadExamBody(BaseModel):
    # Only the configured bank may be fetched; anything else is refused.
    url: Optional[str] = None

class NavigateBody(BaseModel):
    delta: int = 0

class JumpBody(BaseModel):
    index: int

class AnswerBody(BaseModel):
    option: int

class SubmitBody(BaseModel):
    confirm: bool = False


# ── Helpers ──────────────────────────────────────────────────────────────────

def _sid(request: Request) -> str:
    return request.state.session_id


def _result_path(sid: str) -> str:
    return os.path.join(config.RESULT_DIR, f"exam_data_{sid}.json")


def _persist(sid: str):
    def _on_submit(result: ExamResult) -> None:
        try:
            save_result(result, _result_path(sid))
        except ResultStoreError as e:
            # The in-memory result stays authoritative.
            logger.error(f"result not persisted for session {sid[:8]}: {e}")
    return _on_submit


def _start(sid: str, parsed: ParseResult) -> ExamSession:
    previous: Optional[ExamSession] = session.get(sid, "exam")
    if previous is not None:
        previous.close()

    exam = start_exam(
        parsed,
        duration_seconds=config.EXAM_DURATION_SECONDS,
        scheduler=scheduler,
        on_submit=_persist(sid),
    )
    session.put(sid, "exam", exam)
    session.put(sid, "parse_errors", _load_errors(parsed))
    return exam


def _exam(request: Request) -> ExamSession:
    exam: Optional[ExamSession] = session.get(_sid(request), "exam")
    if exam is None:
        raise HTTPException(status_code=404, detail="No exam in progress.")
    return exam


def _session_error(e: SessionError) -> HTTPException:
    if isinstance(e, IndexOutOfRangeError):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=409, detail=str(e))


def _load_errors(parsed: ParseResult) -> list[dict]:
    return [err.model_dump() for err in parsed.errors]


# ── Question bank feed ───────────────────────────────────────────────────────

@router.get("/api/questions")
async def get_questions(question_id: Optional[int] = Query(None, alias="id")):
    try:
        parsed = await asyncio.to_thread(load_question_bank, config.QUESTION_BANK_FILE)
    except (OSError, ParseError) as e:
        logger.error(f"question bank unavailable: {e}")
        raise HTTPException(status_code=404, detail="No questions available")

    if question_id is not None:
        for q in parsed.questions:
            if q.id == question_id:
                return q.model_dump()
        raise HTTPException(status_code=404, detail=f"Question {question_id} not found")

    body = "".join(format_question_line(q) + "\n" for q in parsed.questions)
    return PlainTextResponse(body, media_type="text/plain; charset=utf-8")


@router.get("/api/priority-questions")
async def get_priority_questions(count: int = config.PRIORITY_DEFAULT_COUNT):
    try:
        parsed = await asyncio.to_thread(load_question_bank, config.QUESTION_BANK_FILE)
    except (OSError, ParseError) as e:
        logger.error(f"question bank unavailable: {e}")
        raise HTTPException(status_code=404, detail="No questions available")

    return [
        {**q.model_dump(), "difficulty": q.difficulty}
        for q in priority_questions(parsed.questions, count)
    ]


# ── Exam lifecycle ───────────────────────────────────────────────────────────

@router.post("/api/load-exam")
async def load_exam(body: LoadExamBody, request: Request):
    sid = _sid(request)
    url = config.QUESTION_BANK_URL
    if body.url is not None and body.url != url:
        logger.warning(f"load-exam: refused question bank url {body.url!r}")
        raise HTTPException(status_code=400, detail="Only the configured question bank can be loaded.")
    try:
        raw = await asyncio.to_thread(fetch_question_bank, url)
        parsed = parse(raw)
    except FetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except NoValidQuestionsError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "errors": [err.model_dump() for err in e.errors]},
        )
    except ParseError as e:
        raise HTTPException(status_code=422, detail=str(e))

    exam = _start(sid, parsed)
    return {"total": len(exam.questions), "rejected": _load_errors(parsed), "ok": True}


@router.post("/api/load-sample-exam")
async def load_sample_exam(request: Request):
    sid = _sid(request)
    try:
        parsed = await asyncio.to_thread(load_question_bank, config.QUESTION_BANK_FILE)
    except (OSError, ParseError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    exam = _start(sid, parsed)
    return {"total": len(exam.questions), "rejected": _load_errors(parsed), "ok": True}


@router.get("/api/exam-state")
async def get_exam_state(request: Request):
    exam = _exam(request)
    return exam.view().model_dump(mode="json")


@router.post("/api/navigate")
async def navigate(body: NavigateBody, request: Request):
    exam = _exam(request)
    try:
        idx = exam.navigate(body.delta)
    except SessionError as e:
        raise _session_error(e)
    return {"index": idx, "ok": True}


@router.post("/api/jump")
async def jump(body: JumpBody, request: Request):
    exam = _exam(request)
    try:
        idx = exam.jump_to(body.index)
    except SessionError as e:
        raise _session_error(e)
    return {"index": idx, "ok": True}


@router.post("/api/answer")
async def answer(body: AnswerBody, request: Request):
    exam = _exam(request)
    try:
        exam.select_answer(body.option)
    except SessionError as e:
        raise _session_error(e)
    return {"ok": True, "unanswered_count": exam.unanswered_count}


@router.post("/api/clear-answer")
async def clear_answer(request: Request):
    exam = _exam(request)
    try:
        exam.clear_answer()
    except SessionError as e:
        raise _session_error(e)
    return {"ok": True, "unanswered_count": exam.unanswered_count}


@router.post("/api/mark")
async def toggle_mark(request: Request):
    exam = _exam(request)
    try:
        marked = exam.toggle_mark()
    except SessionError as e:
        raise _session_error(e)
    return {"index": exam.current_index, "marked": marked, "ok": True}


@router.post("/api/submit-exam")
async def submit_exam(request: Request, body: Optional[SubmitBody] = None):
    exam = _exam(request)

    # Confirmation is a UI concern layered on top of ExamSession.submit().
    unanswered = exam.unanswered_count
    confirmed = body.confirm if body else False
    if unanswered > 0 and not confirmed and exam.result is None:
        raise HTTPException(
            status_code=409,
            detail={
                "message": f"You have {unanswered} unanswered questions. Are you sure you want to submit?",
                "unanswered": unanswered,
            },
        )

    try:
        # submit() runs the result-file write in the on_submit callback
        result = await asyncio.to_thread(exam.submit)
    except AlreadySubmittedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SessionError as e:
        raise _session_error(e)
    return {"score": result.score, "percentage": result.percentage, "ok": True}


@router.get("/api/results")
async def get_results(request: Request):
    exam = _exam(request)
    if exam.result is None:
        raise HTTPException(status_code=400, detail="The exam has not been submitted yet.")
    body = exam.result.to_json_dict()
    body["incorrectCount"] = exam.result.incorrect_count
    return body


@router.get("/api/review")
async def get_review(request: Request):
    """Questions answered wrongly or left unanswered, after submission."""
    exam = _exam(request)
    if exam.result is None:
        raise HTTPException(status_code=400, detail="The exam has not been submitted yet.")
    wrong = get_incorrect_questions(exam.questions, exam.answers)
    return {"count": len(wrong), "questions": [q.model_dump() for q in wrong]}


@router.get("/api/load-errors")
async def get_load_errors(request: Request):
    """Bank lines skipped by the last load."""
    exam = _exam(request)
    return {"total": len(exam.questions), "rejected": session.get(_sid(request), "parse_errors", [])}


@router.post("/api/reset")
async def reset_session(request: Request):
    session.reset(_sid(request))
    return {"ok": True}
