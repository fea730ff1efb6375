"""Word, sentence and character counts of input text."""

import re

from .models import TextStats

_SENTENCE_END_RE = re.compile(r"[.!?]+")


def calculate_text_stats(text: str) -> TextStats:
    """
    Count words, sentences and characters.

    Words are whitespace-separated tokens. Sentences are runs of terminal
    punctuation; text without any counts as one sentence.
    """
    word_count = len(text.split())
    sentence_count = len(_SENTENCE_END_RE.findall(text)) or 1
    return TextStats(word_count=word_count, sentence_count=sentence_count, char_count=len(text))
