from __future__ import annotations

import random


DEFAULT_WORDS_EN = [
    "apple",
    "banana",
    "bicycle",
    "bridge",
    "butterfly",
    "cactus",
    "camera",
    "candle",
    "car",
    "castle",
    "cat",
    "clock",
    "cloud",
    "crown",
    "dog",
    "dragon",
    "drum",
    "elephant",
    "fish",
    "flower",
    "ghost",
    "giraffe",
    "guitar",
    "hamburger",
    "hat",
    "house",
    "ice cream",
    "kite",
    "ladder",
    "lamp",
    "lighthouse",
    "moon",
    "mountain",
    "mushroom",
    "octopus",
    "owl",
    "penguin",
    "pizza",
    "rainbow",
    "robot",
    "rocket",
    "snail",
    "snowman",
    "spider",
    "sun",
    "sword",
    "tree",
    "umbrella",
    "volcano",
    "whale",
]


def pick_words(words: list[str], count: int, rng: random.Random | None = None) -> list[str]:
    """Pick up to ``count`` distinct words, keeping the first occurrence of duplicates."""
    rng = rng or random
    unique = list(dict.fromkeys(w.strip() for w in words if w and w.strip()))
    if count <= 0 or not unique:
        return []
    if count >= len(unique):
        rng.shuffle(unique)
        return unique
    return rng.sample(unique, count)
