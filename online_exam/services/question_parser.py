"""
services/question_parser.py

Question bank parser (pipe-delimited text).
Public API:
  - clean_text(raw) -> str                  : normalization pipeline
  - parse(raw_text) -> ParseResult          : text -> Question list + skipped lines
  - load_question_bank(path) -> ParseResult : parse a bank file from disk
  - format_question_line(question) -> str   : Question -> feed line
  - priority_questions(qs, count) -> list   : top-N by difficulty

Line format:
  id|question|option1|option2|option3|option4|correct(1-based)|explanation|...

Design:
- Normalization is a chain of small pure functions, each testable on its own
- A bad line is logged and skipped, it never aborts the batch
- Input order is preserved
"""

import logging
import re
import unicodedata
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from config import (
    FIELD_DELIMITER,
    MIN_FIELDS,
    OPTION_COUNT,
    PRIORITY_DEFAULT_COUNT,
    PRIORITY_MAX_COUNT,
)
from online_exam.errors import EmptyInputError, NoValidQuestionsError
from online_exam.models.question_model import LineError, ParseResult, Question

logger = logging.getLogger(__name__)

# Anything outside printable ASCII, the non-ASCII planes and \t\n\v\f\r
# (i.e. the other C0 control characters and DEL).
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\u0080-\U0010FFFF\t\n\v\f\r]")
_BOM = "\ufeff"
_INTEGER = re.compile(r"[+-]?[0-9]+")


# ══════════════════════════════════════════════════════════════════════════════
# Normalization stages
# ══════════════════════════════════════════════════════════════════════════════

def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def strip_bom(text: str) -> str:
    return text[1:] if text.startswith(_BOM) else text


def strip_control_chars(line: str) -> str:
    return _NON_PRINTABLE.sub("", line)


def normalize_unicode(line: str) -> str:
    return unicodedata.normalize("NFKC", line)


def clean_line(line: str) -> str:
    return normalize_unicode(strip_control_chars(line.strip()))


def clean_text(raw: Optional[str]) -> str:
    """
    Raw feed text -> cleaned text, one non-empty line per candidate question.

    Stages: line endings -> BOM -> per line (trim, control chars, NFKC) -> drop empty lines.
    """
    if not raw:
        return ""
    text = strip_bom(normalize_line_endings(raw))
    lines = (clean_line(line) for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


# ══════════════════════════════════════════════════════════════════════════════
# Public API
# ══════════════════════════════════════════════════════════════════════════════

def parse(raw_text: Optional[str]) -> ParseResult:
    """
    Question bank text -> ParseResult.

    Raises:
        EmptyInputError:       nothing left after cleaning.
        NoValidQuestionsError: every line was rejected.
    """
    text = clean_text(raw_text)
    if not text:
        raise EmptyInputError()

    lines = text.split("\n")
    logger.info(f"parse: {len(lines)} candidate lines")

    questions: List[Question] = []
    errors: List[LineError] = []

    for line_number, line in enumerate(lines, start=1):
        question, reason = _parse_line(line)
        if question is None:
            logger.warning(f"line {line_number}: skipped - {reason}: {line!r}")
            errors.append(LineError(line_number=line_number, line=line, reason=reason))
            continue
        questions.append(question)

    if not questions:
        raise NoValidQuestionsError(errors)

    logger.info(f"parse: {len(questions)} questions loaded, {len(errors)} lines skipped")
    return ParseResult(questions=questions, errors=errors)


def load_question_bank(path: str) -> ParseResult:
    """Read a bank file (UTF-8) and parse it."""
    with open(path, "r", encoding="utf-8") as f:
        return parse(f.read())


def format_question_line(question: Question) -> str:
    """Question -> feed line. correct_index goes back to 1-based."""
    fields = [
        str(question.id),
        question.text,
        *question.options,
        str(question.correct_index + 1),
        question.explanation,
    ]
    return FIELD_DELIMITER.join(fields)


def priority_questions(
    questions: Sequence[Question],
    count: int = PRIORITY_DEFAULT_COUNT,
) -> List[Question]:
    """
    Hardest questions first.

    Args:
        questions: Bank in input order.
        count:     How many to return. Values outside 1..PRIORITY_MAX_COUNT
                   fall back to PRIORITY_DEFAULT_COUNT.

    Returns:
        At most count questions, by difficulty descending. Equal difficulty
        keeps input order.
    """
    if count <= 0 or count > PRIORITY_MAX_COUNT:
        count = PRIORITY_DEFAULT_COUNT
    return sorted(questions, key=lambda q: q.difficulty, reverse=True)[:count]


# ══════════════════════════════════════════════════════════════════════════════
# Internals
# ══════════════════════════════════════════════════════════════════════════════

def _parse_line(line: str) -> Tuple[Optional[Question], str]:
    """One cleaned line -> (Question, "") or (None, reason)."""
    parts = [p.strip() for p in line.split(FIELD_DELIMITER)]
    if len(parts) < MIN_FIELDS:
        return None, f"expected at least {MIN_FIELDS} fields, got {len(parts)}"

    raw_id, text = parts[0], parts[1]
    options = parts[2:2 + OPTION_COUNT]
    raw_correct = parts[2 + OPTION_COUNT]
    explanation = parts[3 + OPTION_COUNT]
    # parts[8:] are ignored

    correct = _to_int(raw_correct)
    if correct is None:
        return None, f"correct answer is not a number: {raw_correct!r}"
    correct_index = correct - 1
    if not 0 <= correct_index < OPTION_COUNT:
        return None, f"correct answer out of range [1, {OPTION_COUNT}]: {correct}"

    question_id = _to_int(raw_id)
    if question_id is None:
        return None, f"id is not a number: {raw_id!r}"

    try:
        question = Question(
            id=question_id,
            text=text,
            options=options,
            correct_index=correct_index,
            explanation=explanation,
        )
    except ValidationError as e:
        return None, f"invalid question: {e.errors()[0]['msg']}"
    return question, ""


def _to_int(value: str) -> Optional[int]:
    # ASCII digits only; int() alone would also take "1_0" and other scripts' digits
    if not _INTEGER.fullmatch(value):
        return None
    return int(value)
