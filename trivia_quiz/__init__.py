"""
Trivia Quiz Bot: Open Trivia DB quizzes played through Discord.
"""
