from __future__ import annotations

from dataclasses import dataclass
from threading import Lock


@dataclass(frozen=True)
class Binding:
    room_code: str
    player_id: str


class ConnectionRegistry:
    """socket id -> the one room/player that connection is seated as."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._bindings: dict[str, Binding] = {}

    def bind(self, sid: str, room_code: str, player_id: str) -> Binding:
        binding = Binding(room_code=room_code, player_id=player_id)
        with self._lock:
            self._bindings[sid] = binding
        return binding

    def get(self, sid: str) -> Binding | None:
        with self._lock:
            return self._bindings.get(sid)

    def unbind(self, sid: str) -> Binding | None:
        with self._lock:
            return self._bindings.pop(sid, None)

    def is_member(self, sid: str, room_code: str) -> bool:
        binding = self.get(sid)
        return binding is not None and binding.room_code == room_code

    def __len__(self) -> int:
        with self._lock:
            return len(self._bindings)
