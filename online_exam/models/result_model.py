"""
models/result_model.py

Grading output of a submitted exam. Serialized with camelCase keys
(model_dump(by_alias=True)) for the scorecard page.
"""

import time
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class QuestionDetail(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question_number: int = Field(..., ge=1, alias="questionNumber")
    question_text: str = Field(..., alias="questionText")
    options: List[str]
    user_answer: int = Field(..., alias="userAnswer", description="-1 when unattempted")
    correct_answer: int = Field(..., alias="correctAnswer")
    is_correct: bool = Field(..., alias="isCorrect")
    explanation: str


class ExamResult(BaseModel):
    """
    Immutable scorecard of one exam attempt.

    percentage is not rounded; rounding is left to the display.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    score: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=1, alias="totalQuestions")
    unattempted_count: int = Field(..., ge=0, alias="unattemptedCount")
    percentage: float = Field(..., ge=0.0, le=100.0)
    time_spent: int = Field(..., ge=0, alias="timeSpent")
    question_details: List[QuestionDetail] = Field(..., alias="questionDetails")
    auto_submitted: bool = Field(False, alias="autoSubmitted")
    submitted_at: float = Field(default_factory=time.time, alias="submittedAt")

    @property
    def incorrect_count(self) -> int:
        return self.total_questions - self.score - self.unattempted_count

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
