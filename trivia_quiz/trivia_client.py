"""
HTTP client for the Open Trivia DB API.
"""
import logging
import time
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from .models import Category, Difficulty

logger = logging.getLogger(__name__)


class TriviaQuestionPayload(BaseModel):
    question: str
    correct_answer: str
    incorrect_answers: List[str] = []


class QuestionsResponse(BaseModel):
    response_code: int = 0
    results: List[TriviaQuestionPayload] = []


class CategoryPayload(BaseModel):
    id: int
    name: str


class CategoriesResponse(BaseModel):
    trivia_categories: List[CategoryPayload] = []


class TriviaClientError(Exception):
    """Base exception for trivia API failures (transport errors included)."""
    pass


class TriviaHTTPError(TriviaClientError):
    """Raised when the API answers with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class TriviaPayloadError(TriviaClientError):
    """Raised when the response body is empty or cannot be parsed."""
    pass


ResponseModel = TypeVar("ResponseModel", bound=BaseModel)


class TriviaClient:
    """
    Thin async wrapper around the two trivia API endpoints.

    The query parameter names and paths are the remote service's wire
    contract and must not change.
    """

    DEFAULT_BASE_URL = "https://opentdb.com"
    DEFAULT_TIMEOUT = 10.0
    QUESTIONS_PATH = "/api.php"
    CATEGORIES_PATH = "/api_category.php"
    QUESTION_TYPE = "multiple"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Root URL of the trivia service
            timeout: Request timeout in seconds
            transport: Optional httpx transport, mainly for tests
        """
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def fetch_questions(
        self,
        amount: int,
        category_id: Optional[int] = None,
        difficulty: Union[Difficulty, str, None] = None,
        question_type: str = QUESTION_TYPE,
    ) -> QuestionsResponse:
        """
        Fetch a batch of questions.

        Args:
            amount: Number of questions to request
            category_id: Optional category filter
            difficulty: Optional difficulty filter
            question_type: Question type, multiple choice by default

        Returns:
            Parsed QuestionsResponse

        Raises:
            TriviaClientError: On transport, status or payload failure
        """
        params: Dict[str, Any] = {"amount": amount}
        if category_id is not None:
            params["category"] = category_id
        if difficulty is not None:
            params["difficulty"] = difficulty.value if isinstance(difficulty, Difficulty) else difficulty
        params["type"] = question_type

        response = await self._get(self.QUESTIONS_PATH, params)
        return self._parse(response, QuestionsResponse)

    async def fetch_categories(self) -> List[Category]:
        """
        Fetch the list of available categories.

        Raises:
            TriviaClientError: On transport, status or payload failure
        """
        response = await self._get(self.CATEGORIES_PATH)
        payload = self._parse(response, CategoriesResponse)
        return [Category(id=c.id, name=c.name) for c in payload.trivia_categories]

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        request_start = time.time()
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            logger.error(
                f"Trivia API transport error for {path}: {e}",
                extra={
                    'event_type': 'trivia_transport_error',
                    'path': path,
                    'timestamp': time.time()
                }
            )
            raise TriviaClientError(f"Transport error while calling {path}: {e}") from e

        logger.debug(
            f"GET {response.request.url} -> {response.status_code} in {time.time() - request_start:.3f}s",
            extra={
                'event_type': 'trivia_request',
                'path': path,
                'status_code': response.status_code,
                'timestamp': time.time()
            }
        )

        if not response.is_success:
            raise TriviaHTTPError(
                response.status_code,
                f"Trivia API returned HTTP {response.status_code} for {path}"
            )
        return response

    @staticmethod
    def _parse(response: httpx.Response, model: Type[ResponseModel]) -> ResponseModel:
        if not response.content or not response.content.strip():
            raise TriviaPayloadError("Trivia API returned an empty body")
        try:
            data = response.json()
        except ValueError as e:
            raise TriviaPayloadError(f"Trivia API returned invalid JSON: {e}") from e
        if not data:
            raise TriviaPayloadError("Trivia API returned an empty body")
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise TriviaPayloadError(f"Unexpected trivia payload: {e.error_count()} validation error(s)") from e

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "TriviaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
