"""
services/exam_service.py

Exam grading logic.
Pure Python functions — no UI code, no global state.
"""

import logging
from typing import List, Sequence

from config import DEFAULT_EXPLANATION
from online_exam.models.question_model import Question
from online_exam.models.result_model import ExamResult, QuestionDetail
from online_exam.models.session_state import UNANSWERED

logger = logging.getLogger(__name__)


def calculate_score(
    questions: Sequence[Question],
    answers: Sequence[int],
) -> int:
    """
    Number of questions whose selected option equals correct_index.

    An unanswered question (UNANSWERED) never matches, since correct_index is >= 0.
    """
    return sum(1 for q, a in zip(questions, answers) if a == q.correct_index)


def count_unattempted(answers: Sequence[int]) -> int:
    return sum(1 for a in answers if a == UNANSWERED)


def calculate_percentage(score: int, total: int) -> float:
    """
    Score as a percentage, not rounded.

    Returns:
        0.0 ~ 100.0. 0.0 if total is 0.
    """
    if total <= 0:
        return 0.0
    return 100 * score / total


def get_incorrect_questions(
    questions: Sequence[Question],
    answers: Sequence[int],
) -> List[Question]:
    """
    Questions answered wrongly or left unanswered (review list).

    Returns:
        Question list in original order.
    """
    return [q for q, a in zip(questions, answers) if a != q.correct_index]


def build_question_details(
    questions: Sequence[Question],
    answers: Sequence[int],
) -> List[QuestionDetail]:
    return [
        QuestionDetail(
            question_number=i + 1,
            question_text=q.text,
            options=list(q.options),
            user_answer=answer,
            correct_answer=q.correct_index,
            is_correct=answer == q.correct_index,
            explanation=q.explanation or DEFAULT_EXPLANATION,
        )
        for i, (q, answer) in enumerate(zip(questions, answers))
    ]


def grade(
    questions: Sequence[Question],
    answers: Sequence[int],
    remaining_seconds: int,
    duration_seconds: int,
    auto_submitted: bool = False,
) -> ExamResult:
    """
    Grade an answer sheet and build the scorecard.

    Args:
        questions:         Questions in exam order.
        answers:           Selected option per question, UNANSWERED if none.
                           Must be the same length as questions.
        remaining_seconds: Countdown value at submission.
        duration_seconds:  Total time allowed.
        auto_submitted:    True when the countdown ran out.

    Returns:
        ExamResult.
    """
    if len(questions) != len(answers):
        raise ValueError(
            f"answers ({len(answers)}) do not match questions ({len(questions)})"
        )

    score = calculate_score(questions, answers)
    total = len(questions)
    result = ExamResult(
        score=score,
        total_questions=total,
        unattempted_count=count_unattempted(answers),
        percentage=calculate_percentage(score, total),
        time_spent=max(0, duration_seconds - remaining_seconds),
        question_details=build_question_details(questions, answers),
        auto_submitted=auto_submitted,
    )
    logger.info(
        f"grade: {score}/{total} correct, {result.unattempted_count} unattempted, "
        f"{result.time_spent}s spent"
    )
    return result
