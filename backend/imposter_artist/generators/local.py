from __future__ import annotations

import random

from ..game.words import DEFAULT_WORDS_EN, pick_words
from .base import Generator


CHAT_LINES = [
    "Hmm, this is coming together nicely.",
    "Interesting choice of lines there.",
    "I think I see where this is going.",
    "Those colors work well together.",
    "Not sure about that last stroke...",
]


class LocalGenerator(Generator):
    """Offline stand-in used when no AI backend is configured."""

    def __init__(self, words: list[str] | None = None, rng: random.Random | None = None) -> None:
        self.words = list(words or DEFAULT_WORDS_EN)
        self.rng = rng or random.Random()

    def suggest_word(self) -> str:
        picked = pick_words(self.words, 1, rng=self.rng)
        return picked[0] if picked else "tree"

    def generate_drawing(self, word, is_imposter, round, color):
        return None

    def generate_chat(self, player_name, role, word, log):
        return self.rng.choice(CHAT_LINES)

    def generate_vote(self, player_name, role, candidates, log):
        return self.rng.choice(candidates)["id"]
