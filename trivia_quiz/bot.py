import discord
from discord import app_commands
from discord.ext import commands
import logging
import os
from typing import List, Optional

from .config_manager import SettingsStore
from .models import Question
from .quiz_controller import QuizController
from .quiz_engine import QuizEngine
from .trivia_client import TriviaClient

logger = logging.getLogger(__name__)

COLOR_OK = 0x00ff00
COLOR_ERROR = 0xff0000
COLOR_WARNING = 0xffaa00
COLOR_INFO = 0x6699ff

DIFFICULTY_CHOICES = [
    app_commands.Choice(name="Easy", value="easy"),
    app_commands.Choice(name="Medium", value="medium"),
    app_commands.Choice(name="Hard", value="hard"),
    app_commands.Choice(name="Any", value="any"),
]


class AnswerButton(discord.ui.Button):
    """One answer option of a question."""

    def __init__(self, answer: str, row: int):
        # Discord caps button labels at 80 characters
        super().__init__(label=answer[:80], style=discord.ButtonStyle.primary, row=row)
        self.answer = answer

    async def callback(self, interaction: discord.Interaction):
        await self.view.bot.handle_answer(interaction, self.view, self.answer)


class NextButton(discord.ui.Button):
    """Moves on to the next question, or finishes the quiz."""

    def __init__(self, is_last: bool):
        super().__init__(
            label="Finish Quiz" if is_last else "Next Question",
            style=discord.ButtonStyle.secondary,
            disabled=True,
            row=4
        )

    async def callback(self, interaction: discord.Interaction):
        await self.view.bot.handle_next(interaction, self.view)


class QuestionView(discord.ui.View):
    """Buttons for a single question of a channel's quiz."""

    def __init__(
        self,
        bot: "QuizBot",
        channel_id: int,
        generation: int,
        question_index: int,
        options: List[str],
        is_last: bool,
    ):
        super().__init__(timeout=None)
        self.bot = bot
        self.channel_id = channel_id
        self.generation = generation
        self.question_index = question_index
        self.answer_buttons: List[AnswerButton] = []

        for i, option in enumerate(options[:8]):
            button = AnswerButton(option, row=i // 2)
            self.answer_buttons.append(button)
            self.add_item(button)

        self.next_button = NextButton(is_last)
        self.add_item(self.next_button)

    def lock(self, selected_answer: str, correct_answer: str) -> None:
        """Disable answers and colour them by correctness."""
        for button in self.answer_buttons:
            button.disabled = True
            if button.answer == correct_answer:
                button.style = discord.ButtonStyle.success
            elif button.answer == selected_answer:
                button.style = discord.ButtonStyle.danger
            else:
                button.style = discord.ButtonStyle.secondary
        self.next_button.disabled = False

    def close(self) -> None:
        for item in self.children:
            item.disabled = True
        self.stop()


class QuizBot(commands.Bot):
    """Discord bot for running trivia quizzes"""

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.trivia_client: Optional[TriviaClient] = None
        self.settings_store: Optional[SettingsStore] = None
        self.quiz_controller: Optional[QuizController] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")
            self.setup_components()
            await self.setup_commands()
            logger.info("Bot setup completed successfully")
        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def setup_components(self):
        """Create the trivia client, settings store and controller."""
        trivia_config = self.app_config.get('trivia', {})
        self.trivia_client = TriviaClient(
            base_url=trivia_config.get('base_url', TriviaClient.DEFAULT_BASE_URL),
            timeout=trivia_config.get('timeout', TriviaClient.DEFAULT_TIMEOUT)
        )
        self.settings_store = SettingsStore()
        self.apply_configuration()
        self.quiz_controller = QuizController(QuizEngine(self.trivia_client), self.settings_store)

    def apply_configuration(self):
        """Apply default quiz settings from the configuration file."""
        quiz_config = self.app_config.get('quiz', {})
        if not quiz_config:
            return

        result = self.settings_store.update(
            quiz_config.get('default_question_count', SettingsStore.DEFAULT_QUESTION_COUNT),
            quiz_config.get('default_difficulty', SettingsStore.DEFAULT_DIFFICULTY),
            quiz_config.get('default_category')
        )
        if result['success']:
            logger.info("Configuration applied successfully")
        else:
            # Keep defaults if config is invalid
            logger.error(f"Error applying configuration: {result['error']}")

    async def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="help", description="Display available commands and their descriptions")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="settings", description="Set question count, difficulty and category for the next quiz")
        @app_commands.describe(
            number="Number of questions (1-50)",
            difficulty="Question difficulty",
            category="Category id from /categories (leave empty for any)"
        )
        @app_commands.choices(difficulty=DIFFICULTY_CHOICES)
        async def settings_command(
            interaction: discord.Interaction,
            number: int,
            difficulty: Optional[app_commands.Choice[str]] = None,
            category: Optional[int] = None
        ):
            await self.handle_settings(interaction, number, difficulty.value if difficulty else None, category)

        @self.tree.command(name="categories", description="List the available trivia categories")
        async def categories_command(interaction: discord.Interaction):
            await self.handle_categories(interaction)

        @self.tree.command(name="start", description="Start a quiz with current settings")
        async def start_command(interaction: discord.Interaction):
            await self.handle_start(interaction)

        @self.tree.command(name="stop", description="Stop the current quiz and return home")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="status", description="Show current quiz status and progress")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        if self.trivia_client is not None:
            await self.trivia_client.aclose()
        await super().close()

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="📚 Trivia Quiz Bot",
                description="Answer multiple-choice trivia questions from the Open Trivia DB.",
                color=COLOR_INFO
            )
            help_embed.add_field(
                name="🎮 Quiz",
                value=(
                    "`/start` - Start a quiz with the current settings\n"
                    "`/stop` - Stop the quiz and return home\n"
                    "`/status` - Show progress and score"
                ),
                inline=False
            )
            help_embed.add_field(
                name="⚙️ Settings",
                value=(
                    "`/settings number difficulty category` - Configure the next quiz\n"
                    "`/categories` - List category ids"
                ),
                inline=False
            )
            help_embed.add_field(
                name="Current Settings",
                value=self.quiz_controller.get_settings_summary(),
                inline=False
            )
            await interaction.response.send_message(embed=help_embed)
        except discord.HTTPException as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "Failed to display help", "❌ Help Error")

    async def handle_settings(
        self,
        interaction: discord.Interaction,
        number: int,
        difficulty: Optional[str],
        category: Optional[int]
    ):
        """Handle /settings command"""
        try:
            result = self.quiz_controller.update_settings(number, difficulty, category)
            if not result['success']:
                await interaction.response.send_message(result['user_message'], ephemeral=True)
                return

            embed = discord.Embed(
                title="✅ Settings Updated",
                description=self.quiz_controller.get_settings_summary(),
                color=COLOR_WARNING if result['clamped'] else COLOR_OK
            )
            if result['clamped']:
                embed.add_field(name="⚠️ Adjusted", value=result['user_message'], inline=False)
            await interaction.response.send_message(embed=embed)
        except discord.HTTPException as e:
            logger.error(f"Error in settings command: {e}")
            await self.send_error_response(interaction, "Failed to update settings", "❌ Configuration Error")

    async def handle_categories(self, interaction: discord.Interaction):
        """Handle /categories command"""
        try:
            await interaction.response.defer(thinking=True)
            categories = await self.quiz_controller.load_categories()

            if not categories:
                await interaction.followup.send(embed=discord.Embed(
                    title="⚠️ No Categories Available",
                    description="Categories could not be loaded. Quizzes will use any category.",
                    color=COLOR_WARNING
                ))
                return

            lines = [f"`{c.id}` {c.name}" for c in categories]
            await interaction.followup.send(embed=discord.Embed(
                title="📂 Categories",
                description="\n".join(lines)[:4000],
                color=COLOR_INFO
            ))
        except discord.HTTPException as e:
            logger.error(f"Error in categories command: {e}")
            await self.send_error_response(interaction, "Failed to list categories", "❌ Category Error")

    async def handle_start(self, interaction: discord.Interaction):
        """Handle /start command"""
        channel_id = interaction.channel_id
        try:
            await interaction.response.defer(thinking=True)
            result = await self.quiz_controller.start_quiz(channel_id)

            if not result['success']:
                if result.get('stale') or result.get('abandoned'):
                    await interaction.followup.send(result['user_message'], ephemeral=True)
                    return
                await interaction.followup.send(embed=discord.Embed(
                    title="❌ Quiz Start Failed",
                    description=result['user_message'],
                    color=COLOR_ERROR
                ))
                return

            info = result['session_info']
            embed = discord.Embed(
                title="🎯 Quiz Started!",
                description=self.quiz_controller.get_settings_summary(),
                color=COLOR_OK
            )
            embed.add_field(name="Questions", value=str(info['total_questions']), inline=True)
            embed.set_footer(text="Use /stop to quit at any time")
            await interaction.followup.send(embed=embed)
            await self.present_question(interaction, channel_id)
        except discord.HTTPException as e:
            logger.error(f"Error in start command for channel {channel_id}: {e}")
            await self.send_error_response(interaction, "Failed to start quiz", "❌ Quiz Start Error")

    async def handle_stop(self, interaction: discord.Interaction):
        """Handle /stop command"""
        try:
            result = self.quiz_controller.stop_quiz(interaction.channel_id)
            if not result['success']:
                await interaction.response.send_message(result['user_message'], ephemeral=True)
                return

            results = result['results']
            embed = discord.Embed(
                title="🛑 Quiz Stopped",
                description=f"Score so far: {results.score}/{results.total}",
                color=COLOR_WARNING
            )
            await interaction.response.send_message(embed=embed)
        except discord.HTTPException as e:
            logger.error(f"Error in stop command: {e}")
            await self.send_error_response(interaction, "Failed to stop quiz", "❌ Stop Error")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        try:
            embed = discord.Embed(
                title="📊 Quiz Status",
                description=self.quiz_controller.get_session_status_summary(interaction.channel_id),
                color=COLOR_INFO
            )
            embed.add_field(
                name="Settings",
                value=self.quiz_controller.get_settings_summary(),
                inline=False
            )
            await interaction.response.send_message(embed=embed)
        except discord.HTTPException as e:
            logger.error(f"Error in status command: {e}")
            await self.send_error_response(interaction, "Failed to get quiz status", "❌ Status Error")

    # ------------------------------------------------------------------
    # Question presentation
    # ------------------------------------------------------------------

    def build_question_embed(self, question: Question, index: int, total: int, score: int) -> discord.Embed:
        embed = discord.Embed(
            title=f"❓ Question {index + 1}/{total}",
            description=question.text,
            color=COLOR_INFO
        )
        embed.set_footer(text=f"Score: {score}")
        return embed

    async def present_question(self, interaction: discord.Interaction, channel_id: int) -> Optional[QuestionView]:
        """
        Send the channel's current question with answer buttons.

        Returns:
            The view attached to the question message, None if there is no question
        """
        session = self.quiz_controller.get_session(channel_id)
        question = self.quiz_controller.get_current_question(channel_id)
        if session is None or question is None:
            logger.warning(f"No current question available for channel {channel_id}")
            return None

        view = QuestionView(
            self,
            channel_id,
            session.generation,
            session.current_index,
            self.quiz_controller.get_answer_options(channel_id),
            session.is_last_question()
        )
        embed = self.build_question_embed(question, session.current_index, len(session.questions), session.score)
        await interaction.followup.send(embed=embed, view=view)
        return view

    def _view_is_current(self, view: QuestionView) -> bool:
        session = self.quiz_controller.get_session(view.channel_id)
        return (
            session is not None
            and session.generation == view.generation
            and session.current_index == view.question_index
        )

    async def handle_answer(self, interaction: discord.Interaction, view: QuestionView, answer: str):
        """Handle a click on an answer button"""
        try:
            if not self._view_is_current(view):
                view.close()
                await interaction.response.send_message("This question is no longer active.", ephemeral=True)
                return

            result = self.quiz_controller.select_answer(view.channel_id, answer)
            if not result['success']:
                await interaction.response.send_message(result['user_message'], ephemeral=True)
                return
            if not result['accepted']:
                await interaction.response.send_message("An answer was already selected.", ephemeral=True)
                return

            view.lock(result['selected_answer'], result['correct_answer'])
            verdict = "✅ Correct!" if result['correct'] else f"❌ Wrong! The answer was **{result['correct_answer']}**"
            session = self.quiz_controller.get_session(view.channel_id)
            question = session.current_question()
            embed = self.build_question_embed(question, session.current_index, len(session.questions), session.score)
            embed.color = COLOR_OK if result['correct'] else COLOR_ERROR
            embed.add_field(name="Result", value=verdict, inline=False)
            await interaction.response.edit_message(embed=embed, view=view)
        except discord.HTTPException as e:
            logger.error(f"Error handling answer in channel {view.channel_id}: {e}")
            await self.send_error_response(interaction, "Failed to record answer", "❌ Answer Error")

    async def handle_next(self, interaction: discord.Interaction, view: QuestionView):
        """Handle a click on the Next Question / Finish Quiz button"""
        try:
            if not self._view_is_current(view):
                view.close()
                await interaction.response.send_message("This question is no longer active.", ephemeral=True)
                return

            result = self.quiz_controller.next_question(view.channel_id)
            if not result['success']:
                await interaction.response.send_message(result['user_message'], ephemeral=True)
                return

            view.close()
            await interaction.response.edit_message(view=view)

            if result['completed']:
                results = result['results']
                embed = discord.Embed(
                    title="🎉 Quiz Completed!",
                    description=f"You answered {results.score} out of {results.total} questions correctly.",
                    color=COLOR_OK
                )
                embed.add_field(name="Accuracy", value=f"{results.percentage:.0f}%", inline=True)
                embed.set_footer(text="Use /start to play again")
                await interaction.followup.send(embed=embed)
            else:
                await self.present_question(interaction, view.channel_id)
        except discord.HTTPException as e:
            logger.error(f"Error advancing quiz in channel {view.channel_id}: {e}")
            await self.send_error_response(interaction, "Failed to load the next question", "❌ Quiz Error")

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=COLOR_ERROR
            )
            embed.set_footer(text="If this error persists, try using /help for available commands")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting Trivia Quiz Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
