"""
Unit tests for QuizController session management.
"""
import asyncio
import unittest
import logging

import httpx

from trivia_quiz.config_manager import SettingsStore
from trivia_quiz.models import Category, QuizSettings, ResultsSummary
from trivia_quiz.quiz_controller import QuizController
from trivia_quiz.quiz_engine import QuizEngine
from trivia_quiz.trivia_client import TriviaClientError
from tests.test_fixtures import TestFixtures, MockTrivia, DeferredTriviaClient, async_test


class TestQuizControllerSessions(unittest.TestCase):
    """Test cases for per-channel session lifecycle."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.requests = []
        self.store = SettingsStore()
        self.store.update(3, "easy", None)
        self.controller = QuizController(
            QuizEngine(MockTrivia.create_client(
                questions=TestFixtures.create_questions_response(3),
                requests=self.requests
            )),
            self.store
        )

    def tearDown(self):
        logging.disable(logging.NOTSET)

    async def test_start_quiz_success(self):
        result = await self.controller.start_quiz(12345)

        self.assertTrue(result['success'])
        self.assertEqual(result['session_info']['total_questions'], 3)
        self.assertEqual(result['session_info']['settings']['difficulty'], 'easy')
        self.assertTrue(self.controller.has_active_session(12345))
        self.assertEqual(self.requests[0].url.params["amount"], "3")

    async def test_start_quiz_uses_latest_settings(self):
        self.controller.update_settings(8, "hard", 21)
        await self.controller.start_quiz(12345)

        params = self.requests[0].url.params
        self.assertEqual(params["amount"], "8")
        self.assertEqual(params["difficulty"], "hard")
        self.assertEqual(params["category"], "21")

    async def test_start_quiz_with_difficulty_name_in_settings(self):
        self.store._settings = QuizSettings(3, "hard", None)
        result = await self.controller.start_quiz(12345)

        self.assertTrue(result['success'])
        self.assertEqual(result['session_info']['settings']['difficulty'], "hard")
        self.assertIn("Active", self.controller.get_session_status_summary(12345))

    async def test_start_quiz_failure(self):
        controller = QuizController(QuizEngine(MockTrivia.create_client(status_code=500)), self.store)
        result = await controller.start_quiz(12345)

        self.assertFalse(result['success'])
        self.assertIn("HTTP 500", result['error'])
        self.assertIn("/start", result['user_message'])
        self.assertFalse(controller.has_active_session(12345))
        self.assertIn("Failed to load", controller.get_session_status_summary(12345))

    async def test_sessions_are_per_channel(self):
        await self.controller.start_quiz(1)
        await self.controller.start_quiz(2)
        self.controller.select_answer(1, "Right & 1")

        self.assertEqual(self.controller.get_session(1).score, 1)
        self.assertEqual(self.controller.get_session(2).score, 0)
        self.assertTrue(self.controller.has_active_session(1))
        self.assertTrue(self.controller.has_active_session(2))

    async def test_select_answer_reports_correctness(self):
        await self.controller.start_quiz(12345)

        result = self.controller.select_answer(12345, "Right & 1")
        self.assertTrue(result['success'])
        self.assertTrue(result['accepted'])
        self.assertTrue(result['correct'])
        self.assertEqual(result['score'], 1)

        again = self.controller.select_answer(12345, "Wrong 1a")
        self.assertTrue(again['success'])
        self.assertFalse(again['accepted'])
        self.assertTrue(again['correct'])
        self.assertEqual(again['selected_answer'], "Right & 1")
        self.assertEqual(again['score'], 1)

    async def test_next_question_requires_answer(self):
        await self.controller.start_quiz(12345)
        result = self.controller.next_question(12345)

        self.assertFalse(result['success'])
        self.assertEqual(self.controller.get_session(12345).current_index, 0)

    async def test_full_quiz_flow_finishes_with_results(self):
        await self.controller.start_quiz(12345)

        for i in range(3):
            self.controller.select_answer(12345, "Right & 1" if i == 0 else f"Wrong {i + 1}a")
            result = self.controller.next_question(12345)

        self.assertTrue(result['success'])
        self.assertTrue(result['completed'])
        self.assertEqual(result['results'], ResultsSummary(score=1, total=3))
        self.assertIn("1 out of 3", result['message'])
        # Finishing returns the channel to the home state
        self.assertIsNone(self.controller.get_session(12345))

    async def test_stop_quiz_discards_session(self):
        await self.controller.start_quiz(12345)
        self.controller.select_answer(12345, "Right & 1")

        result = self.controller.stop_quiz(12345)

        self.assertTrue(result['success'])
        self.assertEqual(result['results'], ResultsSummary(1, 3))
        self.assertIsNone(self.controller.get_session(12345))
        self.assertFalse(self.controller.has_active_session(12345))

    async def test_settings_survive_stop_and_restart(self):
        self.controller.update_settings(2, "medium", None)
        await self.controller.start_quiz(12345)
        self.controller.stop_quiz(12345)
        await self.controller.start_quiz(12345)

        self.assertEqual([r.url.params["amount"] for r in self.requests], ["2", "2"])

    async def test_restart_in_same_channel_resets(self):
        await self.controller.start_quiz(12345)
        self.controller.select_answer(12345, "Right & 1")
        session = self.controller.get_session(12345)

        await self.controller.start_quiz(12345)

        self.assertIs(self.controller.get_session(12345), session)
        self.assertEqual(session.score, 0)
        self.assertEqual(session.generation, 2)

    async def test_get_answer_options(self):
        await self.controller.start_quiz(12345)
        options = self.controller.get_answer_options(12345)

        self.assertEqual(len(options), 4)
        self.assertIn("Right & 1", options)
        self.assertEqual(self.controller.get_answer_options(999), [])

    async def test_status_summary(self):
        self.assertIn("No quiz running", self.controller.get_session_status_summary(12345))

        await self.controller.start_quiz(12345)
        self.controller.select_answer(12345, "Right & 1")
        summary = self.controller.get_session_status_summary(12345)

        self.assertIn("Active", summary)
        self.assertIn("1/3", summary)
        self.assertIn("Score: 1", summary)

    def test_operations_without_session(self):
        for result in (
            self.controller.select_answer(404, "x"),
            self.controller.next_question(404),
            self.controller.finish_quiz(404),
            self.controller.stop_quiz(404),
        ):
            self.assertFalse(result['success'])
            self.assertIn('user_message', result)
        self.assertIsNone(self.controller.get_current_question(404))
        self.assertIsNone(self.controller.get_session_progress(404))


class TestQuizControllerConcurrency(unittest.TestCase):
    """Test cases for overlapping starts and abandoned loads."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.client = DeferredTriviaClient()
        self.controller = QuizController(QuizEngine(self.client), SettingsStore())

    def tearDown(self):
        logging.disable(logging.NOTSET)

    async def test_second_start_supersedes_first(self):
        first = asyncio.ensure_future(self.controller.start_quiz(1))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(self.controller.start_quiz(1))
        await asyncio.sleep(0)

        self.client.resolve(1, TestFixtures.create_questions_response(2, prefix="new-"))
        self.client.resolve(0, TestFixtures.create_questions_response(4, prefix="old-"))
        first_result, second_result = await asyncio.gather(first, second)

        self.assertFalse(first_result['success'])
        self.assertTrue(first_result['stale'])
        self.assertTrue(second_result['success'])
        session = self.controller.get_session(1)
        self.assertEqual(len(session.questions), 2)
        self.assertTrue(session.current_question().text.startswith("new-"))

    async def test_stop_while_loading_ignores_result(self):
        pending = asyncio.ensure_future(self.controller.start_quiz(1))
        await asyncio.sleep(0)

        self.controller.stop_quiz(1)
        self.client.resolve(0, TestFixtures.create_questions_response(3))
        result = await pending

        self.assertFalse(result['success'])
        self.assertTrue(result['abandoned'])
        self.assertIsNone(self.controller.get_session(1))

    async def test_failed_fetch_reports_reason(self):
        self.controller.update_settings(75, "medium", 12)
        pending = asyncio.ensure_future(self.controller.start_quiz(1))
        await asyncio.sleep(0)

        self.assertEqual(self.client.calls[0]['amount'], 50)
        self.assertEqual(self.client.calls[0]['category_id'], 12)
        self.client.fail(0, TriviaClientError("connection reset"))
        result = await pending

        self.assertFalse(result['success'])
        self.assertIn("connection reset", result['user_message'])
        self.assertEqual(self.controller.get_session(1).last_error, result['error'])


class TestQuizControllerCategories(unittest.TestCase):
    """Test cases for category loading."""

    def setUp(self):
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    async def test_load_categories(self):
        controller = QuizController(QuizEngine(MockTrivia.create_client()), SettingsStore())
        categories = await controller.load_categories()

        self.assertEqual(len(categories), 3)
        self.assertEqual(controller.get_category_name(9), "General Knowledge")
        self.assertIsNone(controller.get_category_name(999))
        self.assertIsNone(controller.get_category_name(None))

    async def test_failed_reload_keeps_previous_categories(self):
        controller = QuizController(QuizEngine(MockTrivia.create_client()), SettingsStore())
        await controller.load_categories()

        controller.engine = QuizEngine(MockTrivia.create_client(error=httpx.ConnectError("down")))
        categories = await controller.load_categories()

        self.assertEqual(len(categories), 3)
        self.assertEqual(categories[0], Category(9, "General Knowledge"))

    async def test_failed_first_load_leaves_empty_list(self):
        controller = QuizController(QuizEngine(MockTrivia.create_client(status_code=500)), SettingsStore())

        self.assertEqual(await controller.load_categories(), [])

    async def test_settings_summary_uses_category_name(self):
        controller = QuizController(QuizEngine(MockTrivia.create_client()), SettingsStore())
        await controller.load_categories()
        controller.update_settings(5, "easy", 9)

        self.assertIn("General Knowledge", controller.get_settings_summary())


# Helper to run async tests
for _case in (TestQuizControllerSessions, TestQuizControllerConcurrency, TestQuizControllerCategories):
    for _name in [n for n in vars(_case) if n.startswith('test_') and n != 'test_operations_without_session']:
        setattr(_case, _name, async_test(getattr(_case, _name)))


if __name__ == '__main__':
    unittest.main()
