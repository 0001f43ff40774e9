"""
Quiz engine core logic for the Trivia Quiz Bot.
Handles question fetching, entity decoding and answer ordering.
"""
import random
import logging
import time
from typing import List, Optional

from .models import Category, Difficulty, FetchResult, Question
from .text_decoder import decode, decode_question
from .trivia_client import TriviaClient, TriviaClientError, TriviaHTTPError

logger = logging.getLogger(__name__)

MIN_QUESTION_COUNT = 1
MAX_QUESTION_COUNT = 50

# Open Trivia DB response codes
RESPONSE_CODE_MESSAGES = {
    1: "No Results: not enough questions for the requested query",
    2: "Invalid Parameter: the request contained an invalid argument",
    3: "Token Not Found: the session token does not exist",
    4: "Token Empty: the session token has returned all possible questions",
    5: "Rate Limit: too many requests, wait before trying again",
}


def clamp_question_count(count: int) -> int:
    """Coerce a question count into the range the API accepts."""
    return max(MIN_QUESTION_COUNT, min(MAX_QUESTION_COUNT, int(count)))


class QuizEngine:
    """Orchestrates trivia fetches and prepares questions for a session."""

    def __init__(self, client: TriviaClient):
        """
        Initialize the quiz engine.

        Args:
            client: Trivia API client used for every network call
        """
        self.client = client

    async def fetch_questions(
        self,
        amount: int,
        category_id: Optional[int] = None,
        difficulty: Optional[Difficulty] = None,
        decode_entities: bool = True,
    ) -> FetchResult:
        """
        Fetch a batch of multiple-choice questions.

        No retry is attempted; any failure is reported once through the
        returned FetchResult.

        Args:
            amount: Number of questions, clamped to [1, 50]
            category_id: Optional category filter
            difficulty: Optional difficulty filter
            decode_entities: Decode HTML entities; pass False when the caller decodes

        Returns:
            FetchResult with questions or a failure reason
        """
        amount = clamp_question_count(amount)
        fetch_start = time.time()

        try:
            response = await self.client.fetch_questions(amount, category_id, difficulty)
        except TriviaHTTPError as e:
            return self._failure(f"Error fetching questions: HTTP {e.status_code}", amount)
        except TriviaClientError as e:
            return self._failure(f"Error fetching questions: {e}", amount)

        if response.response_code != 0:
            message = RESPONSE_CODE_MESSAGES.get(
                response.response_code,
                f"Unknown response code {response.response_code}"
            )
            return self._failure(f"Error fetching questions: {message}", amount)

        if not response.results:
            return self._failure("Error fetching questions: response contained no questions", amount)

        questions = [
            Question(
                text=raw.question,
                correct_answer=raw.correct_answer,
                incorrect_answers=tuple(raw.incorrect_answers),
            )
            for raw in response.results
        ]
        if decode_entities:
            questions = [decode_question(q) for q in questions]

        logger.info(
            f"Fetched {len(questions)} questions in {time.time() - fetch_start:.3f}s",
            extra={
                'event_type': 'questions_fetched',
                'requested': amount,
                'received': len(questions),
                'category_id': category_id,
                'difficulty': difficulty.value if isinstance(difficulty, Difficulty) else difficulty,
                'timestamp': time.time()
            }
        )
        return FetchResult(success=True, questions=questions)

    async def fetch_categories(self, current: Optional[List[Category]] = None) -> List[Category]:
        """
        Fetch the category list, keeping the current list on failure.

        Args:
            current: Categories already known to the caller

        Returns:
            Freshly fetched categories, or current (empty if None) on failure
        """
        current = list(current) if current else []
        try:
            categories = await self.client.fetch_categories()
        except TriviaClientError as e:
            logger.warning(
                f"Category fetch failed, keeping {len(current)} known categories: {e}",
                extra={
                    'event_type': 'categories_fetch_failed',
                    'kept': len(current),
                    'timestamp': time.time()
                }
            )
            return current

        logger.info(f"Fetched {len(categories)} categories")
        return [Category(id=c.id, name=decode(c.name)) for c in categories]

    def answer_options(self, question: Question) -> List[str]:
        """
        Shuffle the correct answer in among the incorrect ones.

        Args:
            question: Question to build options for

        Returns:
            New list with every answer in random order
        """
        options = question.all_answers()
        random.shuffle(options)
        return options

    @staticmethod
    def _failure(reason: str, amount: int) -> FetchResult:
        logger.warning(
            reason,
            extra={
                'event_type': 'questions_fetch_failed',
                'requested': amount,
                'timestamp': time.time()
            }
        )
        return FetchResult(success=False, reason=reason)
