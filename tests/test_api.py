import asyncio
import json

import pytest
from fastapi.testclient import TestClient

import api.routes as routes
import config
from api.app import create_app
from conftest import ManualScheduler
from online_exam.errors import FetchError

BANK = "1|2+2=?|3|4|5|6|2|Basic arithmetic\n2|Capital of France?|Rome|Paris|Oslo|Bern|2|\nnot a question\n"


@pytest.fixture
def scheduler(monkeypatch):
    s = ManualScheduler()
    monkeypatch.setattr(routes, "scheduler", s)
    return s


@pytest.fixture
def client(monkeypatch, tmp_path, scheduler):
    monkeypatch.setattr(config, "RESULT_DIR", str(tmp_path / "results"))
    monkeypatch.setattr(config, "EXAM_DURATION_SECONDS", 120)
    monkeypatch.setattr(routes, "fetch_question_bank", lambda url: BANK)
    return TestClient(create_app(start_cleanup=False))


@pytest.fixture
def loaded(client):
    r = client.post("/api/load-exam", json={})
    assert r.status_code == 200
    return client


# ── question bank feed ───────────────────────────────────────────────────────

def test_questions_feed_is_pipe_delimited(client):
    r = client.get("/api/questions")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    lines = r.text.splitlines()
    assert len(lines) == 10
    assert lines[0] == "1|What is 2 + 2?|3|4|5|6|2|Basic arithmetic: 2 + 2 = 4."


def test_question_by_id(client):
    r = client.get("/api/questions", params={"id": 3})
    assert r.status_code == 200
    assert r.json()["correct_index"] == 1
    assert client.get("/api/questions", params={"id": 999}).status_code == 404


def test_questions_missing_bank(client, monkeypatch, tmp_path):
    monkeypatch.setattr(config, "QUESTION_BANK_FILE", str(tmp_path / "missing.txt"))
    assert client.get("/api/questions").status_code == 404


def test_priority_questions(client):
    r = client.get("/api/priority-questions", params={"count": 3})
    assert r.status_code == 200
    body = r.json()
    assert [q["id"] for q in body] == [9, 8, 7]
    assert [q["difficulty"] for q in body] == [10, 9, 8]
    assert len(body[0]["options"]) == 4


@pytest.mark.parametrize("count", [0, 500])
def test_priority_questions_count_sanitized(client, count):
    r = client.get("/api/priority-questions", params={"count": count})
    assert len(r.json()) == 5


def test_priority_questions_default_count(client):
    assert len(client.get("/api/priority-questions").json()) == 5


# ── loading ──────────────────────────────────────────────────────────────────

def test_load_exam_reports_rejected_lines(client):
    r = client.post("/api/load-exam", json={})
    body = r.json()
    assert body["total"] == 2
    assert len(body["rejected"]) == 1
    assert body["rejected"][0]["line_number"] == 3


def test_load_exam_refuses_foreign_url(client, monkeypatch):
    fetched = []
    monkeypatch.setattr(routes, "fetch_question_bank", lambda url: fetched.append(url) or BANK)

    r = client.post("/api/load-exam", json={"url": "http://169.254.169.254/latest/meta-data"})
    assert r.status_code == 400
    assert fetched == []
    assert client.get("/api/exam-state").status_code == 404

    assert client.post("/api/load-exam", json={"url": config.QUESTION_BANK_URL}).status_code == 200
    assert fetched == [config.QUESTION_BANK_URL]


def test_load_errors_kept_for_session(loaded):
    body = loaded.get("/api/load-errors").json()
    assert body["total"] == 2
    assert [e["line_number"] for e in body["rejected"]] == [3]
    assert body["rejected"][0]["line"] == "not a question"


def test_load_exam_fetch_error(client, monkeypatch):
    def _fail(url):
        raise FetchError("connection refused")
    monkeypatch.setattr(routes, "fetch_question_bank", _fail)

    assert client.post("/api/load-exam", json={}).status_code == 502
    assert client.get("/api/exam-state").status_code == 404


def test_load_exam_no_valid_questions(client, monkeypatch):
    monkeypatch.setattr(routes, "fetch_question_bank", lambda url: "junk\nmore junk")
    r = client.post("/api/load-exam", json={})
    assert r.status_code == 422
    assert len(r.json()["detail"]["errors"]) == 2
    assert client.get("/api/exam-state").status_code == 404


def test_load_sample_exam(client):
    r = client.post("/api/load-sample-exam")
    assert r.status_code == 200
    assert r.json()["total"] == 10


def test_no_exam_yet(client):
    assert client.get("/api/exam-state").status_code == 404
    assert client.post("/api/navigate", json={"delta": 1}).status_code == 404


# ── exam flow ────────────────────────────────────────────────────────────────

def test_exam_state(loaded):
    state = loaded.get("/api/exam-state").json()
    assert state["phase"] == "active"
    assert state["index"] == 0
    assert state["total"] == 2
    assert state["question"]["text"] == "2+2=?"
    assert state["is_first"] is True
    assert state["is_last"] is False
    assert state["clock"] == "2:00"
    assert state["statuses"] == ["Not Answered", "Not Answered"]


def test_navigate_jump_answer_mark(loaded):
    assert loaded.post("/api/navigate", json={"delta": 5}).json()["index"] == 1
    assert loaded.post("/api/answer", json={"option": 1}).json()["unanswered_count"] == 1
    assert loaded.post("/api/mark").json()["marked"] is True
    assert loaded.post("/api/jump", json={"index": 0}).json()["index"] == 0

    state = loaded.get("/api/exam-state").json()
    assert state["answers"] == [-1, 1]
    assert state["marked"] == [1]
    assert state["statuses"] == ["Not Answered", "Marked for Review"]


def test_invalid_jump_and_option(loaded):
    assert loaded.post("/api/jump", json={"index": 7}).status_code == 400
    assert loaded.post("/api/answer", json={"option": 4}).status_code == 400


def test_clear_answer(loaded):
    loaded.post("/api/answer", json={"option": 0})
    assert loaded.post("/api/clear-answer").json()["unanswered_count"] == 2


def test_submit_requires_confirmation_when_unanswered(loaded):
    loaded.post("/api/answer", json={"option": 1})
    r = loaded.post("/api/submit-exam", json={})
    assert r.status_code == 409
    assert r.json()["detail"]["unanswered"] == 1
    assert loaded.get("/api/exam-state").json()["phase"] == "active"

    r = loaded.post("/api/submit-exam", json={"confirm": True})
    assert r.status_code == 200
    assert r.json()["score"] == 1
    assert r.json()["percentage"] == 50.0


def test_submit_all_answered_needs_no_confirmation(loaded, tmp_path):
    loaded.post("/api/answer", json={"option": 1})
    loaded.post("/api/navigate", json={"delta": 1})
    loaded.post("/api/answer", json={"option": 1})
    assert loaded.post("/api/submit-exam").status_code == 200

    results = loaded.get("/api/results").json()
    assert results["score"] == 2
    assert results["totalQuestions"] == 2
    assert results["questionDetails"][1]["explanation"] == "No explanation provided"

    saved = list((tmp_path / "results").glob("exam_data_*.json"))
    assert len(saved) == 1
    assert json.loads(saved[0].read_text(encoding="utf-8"))["score"] == 2


def test_double_submit_and_actions_after_submit(loaded):
    assert loaded.post("/api/submit-exam", json={"confirm": True}).status_code == 200
    first = loaded.get("/api/results").json()

    assert loaded.post("/api/submit-exam", json={"confirm": True}).status_code == 409
    assert loaded.post("/api/navigate", json={"delta": 1}).status_code == 409
    assert loaded.post("/api/answer", json={"option": 0}).status_code == 409
    assert loaded.get("/api/results").json() == first


def test_results_before_submit(loaded):
    assert loaded.get("/api/results").status_code == 400
    assert loaded.get("/api/review").status_code == 400


def test_review_lists_wrong_and_unanswered(loaded):
    loaded.post("/api/answer", json={"option": 0})
    loaded.post("/api/submit-exam", json={"confirm": True})

    review = loaded.get("/api/review").json()
    assert review["count"] == 2
    assert [q["id"] for q in review["questions"]] == [1, 2]
    assert loaded.get("/api/results").json()["incorrectCount"] == 1


def test_submit_saves_off_the_event_loop(loaded, monkeypatch):
    loops = []

    def _save(result, path):
        try:
            loops.append(asyncio.get_running_loop())
        except RuntimeError:
            loops.append(None)
        return path
    monkeypatch.setattr(routes, "save_result", _save)

    assert loaded.post("/api/submit-exam", json={"confirm": True}).status_code == 200
    assert loops == [None]


def test_timer_expiry_submits(loaded, scheduler):
    scheduler.fire(120)
    state = loaded.get("/api/exam-state").json()
    assert state["phase"] == "submitted"
    assert state["remaining_seconds"] == 0

    results = loaded.get("/api/results").json()
    assert results["autoSubmitted"] is True
    assert results["timeSpent"] == 120
    assert results["unattemptedCount"] == 2


def test_reset(loaded, scheduler):
    assert loaded.post("/api/reset").json() == {"ok": True}
    assert loaded.get("/api/exam-state").status_code == 404
    assert scheduler.handles[0].cancelled


def test_sessions_are_isolated(loaded, client):
    other = TestClient(client.app)
    assert other.get("/api/exam-state").status_code == 404
