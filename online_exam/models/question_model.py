from typing import List, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import DIFFICULTY_LEVELS, OPTION_COUNT


class Question(BaseModel):
    """
    Multiple-choice exam question parsed from one question bank line.
    Immutable once constructed.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(
        ...,
        description="Identifier taken from the source line (uniqueness not checked)"
    )
    text: str = Field(
        ...,
        description="Question text, already normalized"
    )
    options: Tuple[str, ...] = Field(
        ...,
        description="Answer options, exactly four"
    )
    correct_index: int = Field(
        ...,
        ge=0,
        lt=OPTION_COUNT,
        description="Zero-based index of the correct option"
    )
    explanation: str = Field(
        "",
        description="Explanation shown on the scorecard. Empty means none was given."
    )

    @field_validator('options')
    @classmethod
    def validate_options_length(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(v) != OPTION_COUNT:
            raise ValueError(f"options must contain exactly {OPTION_COUNT} entries, got {len(v)}")
        return tuple(v)

    @property
    def difficulty(self) -> int:
        """1..DIFFICULTY_LEVELS, derived from the id's last digit."""
        return (self.id % DIFFICULTY_LEVELS) + 1


class LineError(BaseModel):
    """A question bank line that was skipped, and why."""
    model_config = ConfigDict(frozen=True)

    line_number: int = Field(..., ge=1, description="1-based line number in the cleaned text")
    line: str
    reason: str


class ParseResult(BaseModel):
    questions: List[Question] = Field(default_factory=list)
    errors: List[LineError] = Field(default_factory=list)
