"""
Settings store for pending quiz configuration.
"""
import logging
from typing import Any, Dict, Optional

from .models import Difficulty, QuizSettings


class SettingsStore:
    """
    Holds the settings the next quiz will start with.

    Settings survive across quiz sessions for the lifetime of the process
    and change only through update() or reset_to_defaults().
    """

    # Default configuration values
    DEFAULT_QUESTION_COUNT = 10
    DEFAULT_DIFFICULTY = Difficulty.EASY
    DEFAULT_CATEGORY_ID = None

    # Validation limits
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 50

    def __init__(self):
        """Initialize SettingsStore with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings(
            question_count=self.DEFAULT_QUESTION_COUNT,
            difficulty=self.DEFAULT_DIFFICULTY,
            category_id=self.DEFAULT_CATEGORY_ID,
        )

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            Copy of the stored QuizSettings
        """
        return QuizSettings(
            question_count=self._settings.question_count,
            difficulty=self._settings.difficulty,
            category_id=self._settings.category_id,
        )

    def update(
        self,
        question_count: int,
        difficulty: Any = None,
        category_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Replace all three settings at once.

        Out-of-range question counts are clamped into [1, 50] rather than
        rejected. Values of the wrong type leave the store unchanged.

        Args:
            question_count: Number of questions for the next quiz
            difficulty: Difficulty, difficulty name, or None for any
            category_id: Category id, or None for any category

        Returns:
            Dictionary with success status, message, and user-friendly message
        """
        # bool is an int subclass but never a valid count
        if not isinstance(question_count, int) or isinstance(question_count, bool):
            error_msg = f"Question count must be an integer, got {type(question_count).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(question_count).__name__}"
            }

        try:
            parsed_difficulty = Difficulty.parse(difficulty)
        except ValueError:
            error_msg = f"Unknown difficulty: {difficulty!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Difficulty must be one of: easy, medium, hard"
            }

        if category_id is not None and (not isinstance(category_id, int) or isinstance(category_id, bool)):
            error_msg = f"Category id must be an integer, got {type(category_id).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid category"
            }

        count = max(self.MIN_QUESTION_COUNT, min(self.MAX_QUESTION_COUNT, question_count))
        clamped = count != question_count
        if clamped:
            self.logger.warning(f"Question count {question_count} clamped to {count}")

        self._settings = QuizSettings(
            question_count=count,
            difficulty=parsed_difficulty,
            category_id=category_id,
        )

        message = f"Settings updated: {self.get_settings_summary()}"
        self.logger.info(message)
        return {
            'success': True,
            'clamped': clamped,
            'message': message,
            'user_message': (
                f"✅ Settings saved. Question count adjusted to {count} (allowed range "
                f"{self.MIN_QUESTION_COUNT}-{self.MAX_QUESTION_COUNT})"
                if clamped else "✅ Settings saved"
            )
        }

    def get_question_count(self) -> int:
        return self._settings.question_count

    def get_difficulty(self) -> Optional[Difficulty]:
        return self._settings.difficulty

    def get_category_id(self) -> Optional[int]:
        return self._settings.category_id

    def reset_to_defaults(self) -> None:
        """Reset all settings to default values."""
        self._settings = QuizSettings(
            question_count=self.DEFAULT_QUESTION_COUNT,
            difficulty=self.DEFAULT_DIFFICULTY,
            category_id=self.DEFAULT_CATEGORY_ID,
        )
        self.logger.info("Settings reset to defaults")

    def get_settings_summary(self, category_name: Optional[str] = None) -> str:
        """
        Get a human-readable summary of current settings.

        Args:
            category_name: Display name for the stored category, if known

        Returns:
            Formatted string describing current settings
        """
        difficulty = self._settings.difficulty.value.capitalize() if self._settings.difficulty else "Any"
        if self._settings.category_id is None:
            category = "Any Category"
        else:
            category = category_name or f"#{self._settings.category_id}"
        return (
            f"Questions: {self._settings.question_count} | "
            f"Difficulty: {difficulty} | "
            f"Category: {category}"
        )
