from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from threading import RLock
from typing import Callable, Iterator

from ..config import Config
from . import service
from .errors import RoomNotFound
from .models import DEFAULT_AVATAR, Phase, Room

logger = logging.getLogger(__name__)


class RoomStore:
    """In-memory room registry.

    The map itself is guarded by one lock; each room additionally has its own
    lock, and every read-modify-write of a room must happen inside
    :meth:`locked` so actions on one room are applied one at a time.
    """

    def __init__(self, code_length: int | None = None, rng: random.Random | None = None) -> None:
        self.code_length = code_length or Config.ROOM_CODE_LENGTH
        self._rng = rng or random.SystemRandom()
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self._room_locks: dict[str, RLock] = {}

    def __contains__(self, code: object) -> bool:
        with self._lock:
            return code in self._rooms

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def _new_code(self) -> str:
        while True:
            code = "".join(self._rng.choice("0123456789") for _ in range(self.code_length))
            if code not in self._rooms:
                return code

    def create_room(self, host_id: str, host_name: str, avatar: str = DEFAULT_AVATAR) -> Room:
        """Open a room with its host already seated, so no empty room is ever visible."""
        with self._lock:
            code = self._new_code()
            room = service.create_room(code, host_id)
            service.add_player(room, host_id, host_name, avatar)
            self._rooms[code] = room
            self._room_locks[code] = RLock()
        logger.info("Room %s created by %s", code, host_id)
        return room

    def get(self, code: str) -> Room | None:
        with self._lock:
            return self._rooms.get(code)

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def delete(self, code: str) -> bool:
        with self._lock:
            if code not in self._rooms:
                return False
            del self._rooms[code]
            self._room_locks.pop(code, None)
        logger.info("Room %s deleted", code)
        return True

    @contextmanager
    def locked(self, code: str) -> Iterator[Room]:
        with self._lock:
            room = self._rooms.get(code)
            room_lock = self._room_locks.get(code)
        if room is None or room_lock is None:
            raise RoomNotFound()

        with room_lock:
            # The room may have been deleted while we waited for its lock.
            if self.get(code) is not room:
                raise RoomNotFound()
            yield room

    def leave(
        self,
        code: str,
        player_id: str,
        on_left: Callable[[Room, Phase], None] | None = None,
    ) -> Room | None:
        """Remove a player and drop the room once it is empty.

        ``on_left(room, previous_phase)`` runs with the room lock still held
        when the room survives. Returns the surviving room, or None when the
        room is gone.
        """
        try:
            with self.locked(code) as room:
                previous_phase = room.phase
                if not service.remove_player(room, player_id):
                    return room
                if not room.players:
                    self.delete(code)
                    return None
                if on_left is not None:
                    on_left(room, previous_phase)
                return room
        except RoomNotFound:
            return None
