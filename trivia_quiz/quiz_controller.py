"""
Quiz session controller for the Trivia Quiz Bot.
Manages one quiz session per Discord channel plus the shared settings and
category list.
"""
import logging
import time
from typing import Any, Dict, List, Optional

from .config_manager import SettingsStore
from .models import Category, Question
from .quiz_engine import QuizEngine
from .quiz_session import QuizSession, SessionState


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class SessionNotFoundError(QuizControllerError):
    """Raised when attempting to operate on a non-existent session."""
    pass


class InvalidSessionStateError(QuizControllerError):
    """Raised when session is in an invalid state for the requested operation."""
    pass


class QuizController:
    """
    Orchestrates quiz sessions across Discord channels.

    Each channel has at most one session. Returning to the home state
    (stopping or finishing a quiz) discards the channel's session; the
    settings store outlives all sessions.
    """

    def __init__(self, engine: QuizEngine, settings_store: SettingsStore):
        """
        Initialize the quiz controller.

        Args:
            engine: Quiz engine shared by every session
            settings_store: Store holding the settings for the next quiz
        """
        self.logger = logging.getLogger(__name__)
        self.engine = engine
        self.settings_store = settings_store

        # Sessions mapped by channel ID
        self._sessions: Dict[int, QuizSession] = {}
        self._categories: List[Category] = []

        self.logger.info("QuizController initialized")

    # ------------------------------------------------------------------
    # Settings and categories
    # ------------------------------------------------------------------

    def update_settings(
        self,
        question_count: int,
        difficulty: Any = None,
        category_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Validate and store settings for the next quiz."""
        if category_id is not None and self._categories and self.get_category_name(category_id) is None:
            self.logger.warning(f"Category {category_id} is not in the known category list")
        return self.settings_store.update(question_count, difficulty, category_id)

    async def load_categories(self) -> List[Category]:
        """
        Refresh the category list. A failed fetch keeps the previous list.

        Returns:
            Current category list
        """
        self._categories = await self.engine.fetch_categories(self._categories)
        return list(self._categories)

    def get_category_name(self, category_id: Optional[int]) -> Optional[str]:
        if category_id is None:
            return None
        for category in self._categories:
            if category.id == category_id:
                return category.name
        return None

    def get_settings_summary(self) -> str:
        category_name = self.get_category_name(self.settings_store.get_category_id())
        return self.settings_store.get_settings_summary(category_name)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def get_session(self, channel_id: int) -> Optional[QuizSession]:
        """
        Get the session for a channel.

        Args:
            channel_id: Discord channel identifier

        Returns:
            QuizSession if one exists, None otherwise
        """
        return self._sessions.get(channel_id)

    def has_active_session(self, channel_id: int) -> bool:
        session = self._sessions.get(channel_id)
        return session is not None and session.state != SessionState.EMPTY

    async def start_quiz(self, channel_id: int) -> Dict[str, Any]:
        """
        Start a new quiz in a channel using the stored settings.

        Starting again while a previous start is still fetching supersedes
        it; the earlier call reports a stale result.

        Args:
            channel_id: Discord channel identifier

        Returns:
            Dictionary with success status, messages and session info
        """
        session = self._sessions.get(channel_id)
        if session is None:
            session = QuizSession(self.engine, session_id=channel_id)
            self._sessions[channel_id] = session

        settings = self.settings_store.get_quiz_settings()
        result = await session.start(settings)

        if self._sessions.get(channel_id) is not session:
            self.logger.info(
                f"Quiz for channel {channel_id} was abandoned while loading",
                extra={
                    'event_type': 'session_abandoned',
                    'channel_id': channel_id,
                    'generation': result.generation,
                    'timestamp': time.time()
                }
            )
            return {
                'success': False,
                'abandoned': True,
                'message': f"Quiz for channel {channel_id} was stopped while loading",
                'user_message': "ℹ️ The quiz was stopped before questions finished loading"
            }

        if result.stale:
            return {
                'success': False,
                'stale': True,
                'message': f"Superseded quiz start for channel {channel_id}",
                'user_message': "ℹ️ A newer quiz was started in this channel"
            }

        if not result.success:
            return {
                'success': False,
                'error': result.reason,
                'message': f"Failed to start quiz for channel {channel_id}: {result.reason}",
                'user_message': f"❌ Could not load questions ({result.reason}). Use /start to try again."
            }

        self.logger.info(
            f"Started quiz for channel {channel_id} with {len(session.questions)} questions",
            extra={
                'event_type': 'session_started',
                'channel_id': channel_id,
                'generation': result.generation,
                'question_count': len(session.questions),
                'timestamp': time.time()
            }
        )
        return {
            'success': True,
            'message': f"Quiz started with {len(session.questions)} questions",
            'session_info': self.get_session_progress(channel_id)
        }

    def stop_quiz(self, channel_id: int) -> Dict[str, Any]:
        """
        Discard the channel's session, returning it to the home state.

        An in-flight fetch is not cancelled; its result is ignored.
        """
        session = self._sessions.pop(channel_id, None)
        if session is None:
            return {
                'success': False,
                'message': f"No quiz session for channel {channel_id}",
                'user_message': "❌ There is no quiz running in this channel"
            }

        self.logger.info(
            f"Stopped quiz for channel {channel_id}",
            extra={
                'event_type': 'session_stopped',
                'channel_id': channel_id,
                'timestamp': time.time()
            }
        )
        return {
            'success': True,
            'message': f"Quiz stopped for channel {channel_id}",
            'user_message': "🛑 Quiz stopped",
            'results': session.results_summary()
        }

    # ------------------------------------------------------------------
    # Question flow
    # ------------------------------------------------------------------

    def get_current_question(self, channel_id: int) -> Optional[Question]:
        session = self._sessions.get(channel_id)
        if session is None:
            return None
        return session.current_question()

    def get_answer_options(self, channel_id: int) -> List[str]:
        """Shuffled answer options for the channel's current question."""
        question = self.get_current_question(channel_id)
        if question is None:
            return []
        return self.engine.answer_options(question)

    def select_answer(self, channel_id: int, answer: str) -> Dict[str, Any]:
        """
        Submit an answer for the channel's current question.

        Returns:
            Dictionary describing whether the answer was accepted and correct
        """
        try:
            session = self._require_session(channel_id)
            question = session.current_question()
            if question is None:
                raise InvalidSessionStateError("No question is loaded")

            accepted = session.select_answer(answer)
            return {
                'success': True,
                'accepted': accepted,
                'correct': question.is_correct(session.selected_answer),
                'selected_answer': session.selected_answer,
                'correct_answer': question.correct_answer,
                'score': session.score,
                'is_last_question': session.is_last_question(),
            }
        except QuizControllerError as e:
            return self._error_result(channel_id, e, "select_answer")

    def next_question(self, channel_id: int) -> Dict[str, Any]:
        """
        Advance to the next question, or finish the quiz on the last one.

        Returns:
            Dictionary with 'completed' and either session info or results
        """
        try:
            session = self._require_session(channel_id)
            if not session.answer_locked:
                raise InvalidSessionStateError("Select an answer before moving on")

            if session.is_last_question():
                return self.finish_quiz(channel_id)

            session.advance()
            return {
                'success': True,
                'completed': False,
                'session_info': self.get_session_progress(channel_id)
            }
        except QuizControllerError as e:
            return self._error_result(channel_id, e, "next_question")

    def finish_quiz(self, channel_id: int) -> Dict[str, Any]:
        """
        Compute the results of a completed quiz and discard the session.
        """
        try:
            session = self._require_session(channel_id)
            if not session.is_complete():
                raise InvalidSessionStateError("The quiz is not finished yet")

            results = session.results_summary()
            del self._sessions[channel_id]
            self.logger.info(
                f"Quiz completed for channel {channel_id}: {results.score}/{results.total}",
                extra={
                    'event_type': 'session_completed',
                    'channel_id': channel_id,
                    'score': results.score,
                    'total': results.total,
                    'timestamp': time.time()
                }
            )
            return {
                'success': True,
                'completed': True,
                'results': results,
                'message': f"You answered {results.score} out of {results.total} questions correctly."
            }
        except QuizControllerError as e:
            return self._error_result(channel_id, e, "finish_quiz")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_session_progress(self, channel_id: int) -> Optional[Dict[str, Any]]:
        """
        Get progress information for a session.

        Args:
            channel_id: Discord channel identifier

        Returns:
            Dictionary with progress info, None if no session
        """
        session = self._sessions.get(channel_id)
        if session is None:
            return None

        progress = session.get_progress()
        settings = session.settings
        progress['settings'] = {
            'question_count': settings.question_count if settings else None,
            'difficulty': settings.difficulty.value if settings and settings.difficulty else None,
            'category_id': settings.category_id if settings else None,
        }
        return progress

    def get_session_status_summary(self, channel_id: int) -> str:
        progress = self.get_session_progress(channel_id)
        if progress is None:
            return "No quiz running. Use /start to begin."
        if progress['state'] == SessionState.EMPTY.value:
            if progress['last_error']:
                return f"Status: Failed to load | {progress['last_error']}"
            return "Status: Loading questions..."
        status = "Completed" if progress['state'] == SessionState.COMPLETED.value else "Active"
        return (
            f"Status: {status} | "
            f"Progress: {progress['current_question']}/{progress['total_questions']} | "
            f"Score: {progress['score']}"
        )

    def _require_session(self, channel_id: int) -> QuizSession:
        session = self._sessions.get(channel_id)
        if session is None:
            raise SessionNotFoundError(f"No quiz session for channel {channel_id}")
        return session

    def _error_result(self, channel_id: int, error: QuizControllerError, operation: str) -> Dict[str, Any]:
        self.logger.warning(
            f"{operation} failed for channel {channel_id}: {error}",
            extra={
                'event_type': 'session_operation_failed',
                'channel_id': channel_id,
                'operation': operation,
                'error_type': type(error).__name__,
                'timestamp': time.time()
            }
        )
        if isinstance(error, SessionNotFoundError):
            user_message = "❌ There is no quiz running in this channel. Use /start to begin."
        else:
            user_message = f"⚠️ {error}"
        return {
            'success': False,
            'error': str(error),
            'user_message': user_message
        }
