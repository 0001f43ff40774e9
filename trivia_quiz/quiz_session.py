"""
Quiz session state machine for the Trivia Quiz Bot.

A QuizSession holds the questions of a single quiz run together with the
progress index, score and answer-lock state. It is mutated only through its
own operations from the event loop that owns it.
"""
import logging
import time
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .models import Difficulty, FetchResult, Question, QuizSettings, ResultsSummary
from .quiz_engine import QuizEngine, clamp_question_count
from .text_decoder import decode_question


class SessionState(Enum):
    """Observable states of a quiz session."""
    EMPTY = "empty"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class QuizSession:
    """
    One run of a quiz, from the first question to completion or abandonment.

    Every call to start() bumps the session generation. A fetch that
    completes after a newer start() is discarded, so a late response never
    overwrites a newer quiz.
    """

    def __init__(self, engine: QuizEngine, session_id: Optional[int] = None):
        """
        Initialize an empty session.

        Args:
            engine: Quiz engine used to fetch questions
            session_id: Optional identifier used in log records
        """
        self.logger = logging.getLogger(__name__)
        self.engine = engine
        self.session_id = session_id
        self.settings: Optional[QuizSettings] = None
        self.generation = 0
        self.reset()

    def reset(self) -> None:
        """Clear every mutable field back to the EMPTY state."""
        self.questions: List[Question] = []
        self.current_index = 0
        self.score = 0
        self.selected_answer: Optional[str] = None
        self.answer_locked = False
        self.last_error: Optional[str] = None

    async def start(self, settings: QuizSettings) -> FetchResult:
        """
        Reset the session and fetch a new set of questions.

        Args:
            settings: Settings for the new quiz; question_count is clamped
                to [1, 50] regardless of earlier validation

        Returns:
            FetchResult of the fetch; result.stale is True when a newer
            start() superseded this one and the result was dropped
        """
        self.reset()
        self.generation += 1
        generation = self.generation

        amount = clamp_question_count(settings.question_count)
        try:
            difficulty = Difficulty.parse(settings.difficulty)
        except ValueError as e:
            self.settings = None
            self.on_fetch_failed(f"Invalid difficulty: {e}", generation)
            return FetchResult(success=False, reason=self.last_error, generation=generation)

        self.settings = QuizSettings(
            question_count=amount,
            difficulty=difficulty,
            category_id=settings.category_id,
        )

        self.logger.info(
            f"Starting quiz generation {generation} for session {self.session_id}: "
            f"amount={amount}, difficulty={difficulty}, category={settings.category_id}",
            extra={
                'event_type': 'session_start',
                'session_id': self.session_id,
                'generation': generation,
                'amount': amount,
                'timestamp': time.time()
            }
        )

        result = await self.engine.fetch_questions(
            amount, settings.category_id, difficulty, decode_entities=False
        )
        result.generation = generation

        if self._is_stale(generation):
            result.stale = True
            return result

        if result.success:
            self.on_fetch_succeeded(result.questions, generation)
            result.questions = list(self.questions)
        else:
            self.on_fetch_failed(result.reason, generation)
        return result

    def on_fetch_succeeded(self, raw_questions: Iterable[Question], generation: Optional[int] = None) -> bool:
        """
        Decode and install fetched questions.

        Args:
            raw_questions: Questions as returned by the API, still entity-encoded
            generation: Generation the fetch was issued under, if known

        Returns:
            True if the questions were applied, False if the result was stale
        """
        if self._is_stale(generation):
            return False

        self.questions = [decode_question(q) for q in raw_questions]
        self.last_error = None
        self.logger.debug(
            f"Session {self.session_id} loaded {len(self.questions)} questions",
            extra={
                'event_type': 'session_questions_loaded',
                'session_id': self.session_id,
                'generation': self.generation,
                'count': len(self.questions),
                'timestamp': time.time()
            }
        )
        return True

    def on_fetch_failed(self, reason: Optional[str], generation: Optional[int] = None) -> bool:
        """
        Record a failed fetch. The session stays EMPTY.

        Returns:
            True if the failure was recorded, False if the result was stale
        """
        if self._is_stale(generation):
            return False

        self.questions = []
        self.last_error = reason or "Unknown error fetching questions"
        self.logger.warning(
            f"Session {self.session_id} failed to load questions: {self.last_error}",
            extra={
                'event_type': 'session_fetch_failed',
                'session_id': self.session_id,
                'generation': self.generation,
                'reason': self.last_error,
                'timestamp': time.time()
            }
        )
        return True

    def select_answer(self, answer: str) -> bool:
        """
        Lock in an answer for the current question.

        Only the first selection per question counts; later calls are
        ignored until advance() moves on.

        Returns:
            True if the selection was accepted
        """
        if self.answer_locked:
            return False

        question = self.current_question()
        if question is None:
            return False

        self.selected_answer = answer
        self.answer_locked = True
        if question.is_correct(answer):
            self.score += 1
        return True

    def advance(self) -> bool:
        """
        Move to the next question. Does nothing on the last question.

        Returns:
            True if the index moved
        """
        if self.current_index >= len(self.questions) - 1:
            return False

        self.current_index += 1
        self.selected_answer = None
        self.answer_locked = False
        return True

    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    def is_last_question(self) -> bool:
        return bool(self.questions) and self.current_index == len(self.questions) - 1

    def is_complete(self) -> bool:
        return self.is_last_question() and self.answer_locked

    @property
    def state(self) -> SessionState:
        if not self.questions:
            return SessionState.EMPTY
        if self.is_complete():
            return SessionState.COMPLETED
        return SessionState.IN_PROGRESS

    def results_summary(self) -> ResultsSummary:
        return ResultsSummary.from_session(self)

    def get_progress(self) -> Dict[str, Any]:
        """Snapshot of the session for status displays."""
        return {
            'state': self.state.value,
            'current_question': self.current_index + 1 if self.questions else 0,
            'total_questions': len(self.questions),
            'score': self.score,
            'answer_locked': self.answer_locked,
            'selected_answer': self.selected_answer,
            'generation': self.generation,
            'last_error': self.last_error,
        }

    def _is_stale(self, generation: Optional[int]) -> bool:
        if generation is None or generation == self.generation:
            return False
        self.logger.info(
            f"Discarding stale fetch result for session {self.session_id} "
            f"(generation {generation}, current {self.generation})",
            extra={
                'event_type': 'stale_fetch_discarded',
                'session_id': self.session_id,
                'generation': generation,
                'current_generation': self.generation,
                'timestamp': time.time()
            }
        )
        return True
