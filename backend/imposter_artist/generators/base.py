from __future__ import annotations

from abc import ABC, abstractmethod


class Generator(ABC):
    """AI-assisted moves. Called by the realtime layer only, never from game.service."""

    @abstractmethod
    def suggest_word(self) -> str:
        ...

    @abstractmethod
    def generate_drawing(self, word: str | None, is_imposter: bool, round: int, color: str) -> str | None:
        """Return a ``data:`` image URL, or None when no drawing could be made."""

    @abstractmethod
    def generate_chat(self, player_name: str, role: str, word: str | None, log: list[str]) -> str:
        ...

    @abstractmethod
    def generate_vote(self, player_name: str, role: str, candidates: list[dict], log: list[str]) -> str:
        """Return the id of one of ``candidates`` (dicts with ``id`` and ``name``)."""
