"""
Unit tests for the SettingsStore class.
"""
import unittest
import logging

from trivia_quiz.config_manager import SettingsStore
from trivia_quiz.models import Difficulty, QuizSettings


class TestSettingsStore(unittest.TestCase):
    """Test cases for SettingsStore functionality."""

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.store = SettingsStore()

        # Suppress logging during tests
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        """Clean up after each test method."""
        logging.disable(logging.NOTSET)

    def test_initialization_with_defaults(self):
        """Test that SettingsStore initializes with correct default values."""
        settings = self.store.get_quiz_settings()

        self.assertIsInstance(settings, QuizSettings)
        self.assertEqual(settings.question_count, 10)
        self.assertEqual(settings.difficulty, Difficulty.EASY)
        self.assertIsNone(settings.category_id)

    def test_update_stores_all_fields(self):
        result = self.store.update(25, "hard", 9)

        self.assertTrue(result['success'])
        self.assertFalse(result['clamped'])
        settings = self.store.get_quiz_settings()
        self.assertEqual(settings.question_count, 25)
        self.assertEqual(settings.difficulty, Difficulty.HARD)
        self.assertEqual(settings.category_id, 9)

    def test_update_accepts_enum_difficulty(self):
        self.store.update(5, Difficulty.MEDIUM, None)
        self.assertEqual(self.store.get_difficulty(), Difficulty.MEDIUM)

    def test_update_unset_difficulty(self):
        """Test None and 'any' both mean no difficulty filter."""
        self.store.update(5, None, None)
        self.assertIsNone(self.store.get_difficulty())

        self.store.update(5, "Any", None)
        self.assertIsNone(self.store.get_difficulty())

    def test_update_clamps_question_count(self):
        """Test out-of-range counts are clamped, not rejected."""
        result = self.store.update(0, "easy", None)
        self.assertTrue(result['success'])
        self.assertTrue(result['clamped'])
        self.assertEqual(self.store.get_question_count(), 1)

        result = self.store.update(75, "easy", None)
        self.assertTrue(result['success'])
        self.assertTrue(result['clamped'])
        self.assertEqual(self.store.get_question_count(), 50)
        self.assertIn("50", result['user_message'])

    def test_update_boundaries_not_clamped(self):
        for value in (1, 50):
            result = self.store.update(value, "easy", None)
            self.assertFalse(result['clamped'])
            self.assertEqual(self.store.get_question_count(), value)

    def test_update_rejects_non_integer_count(self):
        """Test invalid types leave the store unchanged."""
        self.store.update(20, "medium", 10)

        for invalid in ("12", 3.5, None, True):
            result = self.store.update(invalid, "easy", None)
            self.assertFalse(result['success'])
            self.assertIn('error', result)

        self.assertEqual(self.store.get_question_count(), 20)
        self.assertEqual(self.store.get_difficulty(), Difficulty.MEDIUM)
        self.assertEqual(self.store.get_category_id(), 10)

    def test_update_rejects_unknown_difficulty(self):
        result = self.store.update(10, "impossible", None)

        self.assertFalse(result['success'])
        self.assertIn("easy, medium, hard", result['user_message'])
        self.assertEqual(self.store.get_difficulty(), Difficulty.EASY)

    def test_update_rejects_non_integer_category(self):
        result = self.store.update(10, "easy", "science")

        self.assertFalse(result['success'])
        self.assertIsNone(self.store.get_category_id())

    def test_get_quiz_settings_returns_copy(self):
        settings = self.store.get_quiz_settings()
        settings.question_count = 42

        self.assertEqual(self.store.get_question_count(), 10)

    def test_settings_persist_across_reads(self):
        """Test settings survive until explicitly updated again."""
        self.store.update(7, "hard", 11)
        for _ in range(3):
            settings = self.store.get_quiz_settings()
            self.assertEqual(settings, QuizSettings(7, Difficulty.HARD, 11))

    def test_reset_to_defaults(self):
        self.store.update(30, "hard", 12)
        self.store.reset_to_defaults()

        self.assertEqual(self.store.get_quiz_settings(), QuizSettings(10, Difficulty.EASY, None))

    def test_settings_summary(self):
        self.store.update(15, "medium", None)
        summary = self.store.get_settings_summary()

        self.assertIn("Questions: 15", summary)
        self.assertIn("Difficulty: Medium", summary)
        self.assertIn("Any Category", summary)

    def test_settings_summary_with_category_name(self):
        self.store.update(15, None, 9)

        self.assertIn("Difficulty: Any", self.store.get_settings_summary())
        self.assertIn("#9", self.store.get_settings_summary())
        self.assertIn("General Knowledge", self.store.get_settings_summary("General Knowledge"))


class TestDifficultyParsing(unittest.TestCase):
    """Test cases for Difficulty.parse."""

    def test_parse_names(self):
        self.assertEqual(Difficulty.parse("easy"), Difficulty.EASY)
        self.assertEqual(Difficulty.parse(" HARD "), Difficulty.HARD)
        self.assertEqual(Difficulty.parse(Difficulty.MEDIUM), Difficulty.MEDIUM)

    def test_parse_empty(self):
        self.assertIsNone(Difficulty.parse(None))
        self.assertIsNone(Difficulty.parse(""))

    def test_parse_invalid(self):
        with self.assertRaises(ValueError):
            Difficulty.parse("extreme")
        with self.assertRaises(ValueError):
            Difficulty.parse(3)


if __name__ == '__main__':
    unittest.main()
