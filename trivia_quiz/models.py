"""
Core data models for the Trivia Quiz Bot.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Difficulty(Enum):
    """Question difficulty accepted by the trivia API."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value) -> Optional["Difficulty"]:
        """
        Convert a user-supplied value to a Difficulty.

        Args:
            value: Difficulty, case-insensitive string, or None

        Returns:
            Matching Difficulty, or None when value is None or empty

        Raises:
            ValueError: If value is not a known difficulty
        """
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if not text or text == "any":
                return None
            return cls(text)
        raise ValueError(f"Unsupported difficulty: {value!r}")


@dataclass(frozen=True)
class Question:
    """A single decoded multiple-choice question."""
    text: str
    correct_answer: str
    incorrect_answers: Tuple[str, ...] = ()

    def all_answers(self) -> List[str]:
        """Incorrect answers followed by the correct one."""
        return list(self.incorrect_answers) + [self.correct_answer]

    def is_correct(self, answer: str) -> bool:
        return answer == self.correct_answer


@dataclass(frozen=True)
class Category:
    """A trivia category as listed by the remote API."""
    id: int
    name: str


@dataclass
class QuizSettings:
    """Configuration settings for a quiz session."""
    question_count: int = 10
    difficulty: Optional[Difficulty] = Difficulty.EASY
    category_id: Optional[int] = None


@dataclass(frozen=True)
class ResultsSummary:
    """Final score of a completed quiz."""
    score: int
    total: int

    @classmethod
    def from_session(cls, session) -> "ResultsSummary":
        return cls(score=session.score, total=len(session.questions))

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.score / self.total) * 100


@dataclass
class FetchResult:
    """Outcome of a single question fetch."""
    success: bool
    questions: List[Question] = field(default_factory=list)
    reason: Optional[str] = None
    generation: Optional[int] = None
    stale: bool = False
