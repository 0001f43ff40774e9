"""
HTML entity decoding for trivia payloads.

The trivia API encodes question and answer text with HTML entities
(``&quot;``, ``&#039;``, ``&amp;`` and friends).
"""
import html
from typing import Iterable, List

from .models import Question


def decode(text: str) -> str:
    """Convert named and numeric HTML character references to plain text."""
    if not text:
        return text
    return html.unescape(text)


def decode_all(texts: Iterable[str]) -> List[str]:
    return [decode(t) for t in texts]


def decode_question(question: Question) -> Question:
    """Return a copy of question with every text field decoded."""
    return Question(
        text=decode(question.text),
        correct_answer=decode(question.correct_answer),
        incorrect_answers=tuple(decode_all(question.incorrect_answers)),
    )
