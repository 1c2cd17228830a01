"""
services/result_store.py

Persists the scorecard of the last exam attempt as JSON (camelCase keys).

A save is verified by reading the file back. The previous file is only
replaced once the new content has been fully written.
"""

import json
import logging
import os
import tempfile
from typing import Optional

from pydantic import ValidationError

from config import RESULT_FILE
from online_exam.errors import ResultStoreError
from online_exam.models.result_model import ExamResult

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = ("score", "totalQuestions", "questionDetails")


def save_result(result: ExamResult, path: str = RESULT_FILE) -> str:
    """
    Write result to path and verify it.

    Returns:
        The path written.

    Raises:
        ResultStoreError: write failed or the saved data is incomplete.
    """
    directory = os.path.dirname(os.path.abspath(path))
    payload = json.dumps(result.to_json_dict(), ensure_ascii=False, indent=2)

    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".exam_data.", suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        raise ResultStoreError(f"failed to save exam data: {e}") from e
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)

    saved = _read_json(path)
    if saved is None:
        raise ResultStoreError("exam data was not saved")
    missing = [k for k in _REQUIRED_KEYS if k not in saved]
    if missing:
        raise ResultStoreError(f"exam data is incomplete: missing {', '.join(missing)}")

    logger.info(f"exam data saved: {path}")
    return path


def load_result(path: str = RESULT_FILE) -> Optional[ExamResult]:
    """Last saved result, or None when nothing has been saved yet."""
    data = _read_json(path)
    if data is None:
        return None
    try:
        return ExamResult.model_validate(data)
    except ValidationError as e:
        raise ResultStoreError(f"stored exam data is invalid: {e}") from e


def _read_json(path: str) -> Optional[dict]:
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ResultStoreError(f"failed to read exam data: {e}") from e
