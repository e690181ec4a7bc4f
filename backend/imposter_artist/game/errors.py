from __future__ import annotations


class GameError(Exception):
    """A rejected game action. ``reason`` is shown to the requesting client."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class RoomNotFound(GameError):
    def __init__(self, reason: str = "Room not found") -> None:
        super().__init__(reason)


class PreconditionFailed(GameError):
    pass


class CapacityExceeded(GameError):
    pass
