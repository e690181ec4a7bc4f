from __future__ import annotations

import logging
import re
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, join_room, leave_room

from ..game import service
from ..game.errors import GameError, PreconditionFailed, RoomNotFound
from ..game.models import DEFAULT_AVATAR, Phase, Role, Room
from ..game.store import RoomStore
from ..generators import Generator
from .sessions import Binding, ConnectionRegistry

logger = logging.getLogger(__name__)

ERR_INVALID_NAME = "Invalid player name"
ERR_NOT_IN_ROOM = "Not in this room"
ERR_START_HOST = "Only host can start game"
ERR_RESET_HOST = "Only host can reset game"
ERR_SETTINGS_HOST = "Only host can change settings"
ERR_GENERATION = "Generation failed"

MAX_NAME_LENGTH = 16
# Angle brackets and ASCII control characters.
_BAD_NAME_CHARS = re.compile(r"[<>\x00-\x1f]")


def _clean_name(raw: Any) -> str | None:
    """Trimmed display name, or None if it cannot be shown to other players."""
    if not isinstance(raw, str):
        return None
    name = raw.strip()
    if not 0 < len(name) <= MAX_NAME_LENGTH or _BAD_NAME_CHARS.search(name):
        return None
    return name


def _turn_version(room: Room) -> tuple:
    # Any drawing, turn change, phase change or new game alters this.
    return (room.game_number, room.phase, room.round, room.current_turn_index, len(room.drawings))


def _normalize_avatar(raw: Any) -> str:
    a = str(raw or "").strip()
    if not a or len(a) > 8:
        return DEFAULT_AVATAR
    return a


def _payload(data: Any) -> dict:
    return data if isinstance(data, dict) else {}


def _room_code_of(data: Any) -> str:
    # Some events send the bare room code instead of an object.
    if isinstance(data, dict):
        return str(data.get("roomCode", "")).strip()
    if data is None:
        return ""
    return str(data).strip()


def _optional_int(raw: Any) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise PreconditionFailed(service.ERR_INVALID_SETTINGS)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise PreconditionFailed(service.ERR_INVALID_SETTINGS)


def _ok(**extra: Any) -> dict:
    return {"success": True, **extra}


def _fail(reason: str) -> dict:
    return {"success": False, "error": reason}


def _game_log(room: Room, limit: int = 10) -> list[str]:
    names = {p.id: p.name for p in room.players}
    lines = [f"{names.get(d.player_id, d.player_id)} drew in round {d.round}" for d in room.drawings]
    lines.extend(f"{m.sender_name}: {m.text}" for m in room.chat_messages)
    return lines[-limit:]


def register_socketio_handlers(
    socketio: SocketIO,
    store: RoomStore,
    generator: Generator,
    sessions: ConnectionRegistry | None = None,
) -> ConnectionRegistry:
    sessions = sessions if sessions is not None else ConnectionRegistry()

    # All emitters below expect the caller to hold the room lock, so every
    # member sees a room's updates in the order they were applied.
    def _broadcast_room(room: Room) -> None:
        socketio.emit("room_update", service.public_state(room), to=room.room_code)

    def _send_word_reveals(room: Room) -> None:
        for p in room.players:
            reveal = service.word_reveal(room, p.id)
            if reveal is not None:
                # Player ids are socket ids, so this reaches that one connection only.
                socketio.emit("word_reveal", reveal, to=p.id)

    def _announce_departure(player_id: str) -> Callable[[Room, Phase], None]:
        def _announce(room: Room, previous_phase: Phase) -> None:
            _broadcast_room(room)
            socketio.emit("player_left", {"playerId": player_id}, to=room.room_code)
            if previous_phase == Phase.WORD_SUBMISSION and room.phase == Phase.DRAWING:
                _send_word_reveals(room)

        return _announce

    def _leave_current(sid: str) -> None:
        binding = sessions.unbind(sid)
        if binding is None:
            return
        leave_room(binding.room_code)
        store.leave(binding.room_code, binding.player_id, on_left=_announce_departure(binding.player_id))

    def _seat(room_code: str, failure: str) -> Binding:
        if not room_code or room_code not in store:
            raise RoomNotFound()
        binding = sessions.get(request.sid)
        if binding is None or binding.room_code != room_code:
            raise PreconditionFailed(failure)
        return binding

    def _room_action(
        event: str,
        data: Any,
        failure: str,
        action: Callable[[Room, Binding], dict | None],
    ) -> dict:
        room_code = _room_code_of(data)
        try:
            binding = _seat(room_code, failure)
            with store.locked(room_code) as room:
                extra = action(room, binding) or {}
        except GameError as e:
            logger.debug("Rejected %s from %s in room %s: %s", event, request.sid, room_code, e.reason)
            return _fail(e.reason)
        return _ok(**extra)

    @socketio.on("connect")
    def on_connect(auth=None):
        logger.debug("Client connected: %s", request.sid)

    @socketio.on("create_room")
    def create_room(data=None):
        if isinstance(data, dict):
            name = _clean_name(data.get("playerName"))
            avatar = _normalize_avatar(data.get("avatar"))
        else:
            name = _clean_name(data)
            avatar = DEFAULT_AVATAR

        if name is None:
            return _fail(ERR_INVALID_NAME)

        _leave_current(request.sid)

        room = store.create_room(host_id=request.sid, host_name=name, avatar=avatar)
        try:
            with store.locked(room.room_code) as room:
                join_room(room.room_code)
                sessions.bind(request.sid, room.room_code, request.sid)
                _broadcast_room(room)
                player = room.get_player(request.sid)
                return _ok(
                    roomCode=room.room_code,
                    player=player.to_dict(),
                    room=service.public_state(room),
                )
        except GameError as e:
            return _fail(e.reason)

    @socketio.on("join_room")
    def join_room_event(data=None):
        payload = _payload(data)
        room_code = str(payload.get("roomCode", "")).strip()
        name = _clean_name(payload.get("playerName"))
        avatar = _normalize_avatar(payload.get("avatar"))

        if name is None:
            return _fail(ERR_INVALID_NAME)
        if not room_code or room_code not in store:
            return _fail(RoomNotFound().reason)

        if not sessions.is_member(request.sid, room_code):
            _leave_current(request.sid)

        try:
            with store.locked(room_code) as room:
                player = room.get_player(request.sid)
                if player is None:
                    service.check_can_join(room)
                    player = service.add_player(room, request.sid, name, avatar)
                    join_room(room_code)
                    sessions.bind(request.sid, room_code, request.sid)
                    _broadcast_room(room)
                return _ok(player=player.to_dict(), room=service.public_state(room))
        except GameError as e:
            logger.debug("Join to %s rejected for %s: %s", room_code, request.sid, e.reason)
            return _fail(e.reason)

    @socketio.on("leave_room")
    def leave_room_event(data=None):
        room_code = _room_code_of(data)
        if not sessions.is_member(request.sid, room_code):
            return _fail(ERR_NOT_IN_ROOM)
        _leave_current(request.sid)
        return _ok()

    @socketio.on("update_settings")
    def update_settings(data=None):
        payload = _payload(data)

        def action(room: Room, binding: Binding):
            service.require_host(room, binding.player_id, ERR_SETTINGS_HOST)
            service.update_settings(
                room,
                max_players=_optional_int(payload.get("maxPlayers")),
                max_rounds=_optional_int(payload.get("maxRounds")),
            )
            _broadcast_room(room)

        return _room_action("update_settings", data, ERR_SETTINGS_HOST, action)

    @socketio.on("start_game")
    def start_game(data=None):
        def action(room: Room, binding: Binding):
            service.require_host(room, binding.player_id, ERR_START_HOST)
            service.start_game(room)
            _broadcast_room(room)

        return _room_action("start_game", data, ERR_START_HOST, action)

    @socketio.on("submit_word")
    def submit_word(data=None):
        word = str(_payload(data).get("word", ""))

        def action(room: Room, binding: Binding):
            service.submit_word(room, binding.player_id, word)
            _broadcast_room(room)
            if room.phase == Phase.DRAWING:
                _send_word_reveals(room)

        return _room_action("submit_word", data, service.ERR_INVALID_SUBMISSION, action)

    @socketio.on("suggest_word")
    def suggest_word(data=None):
        room_code = _room_code_of(data)
        try:
            _seat(room_code, service.ERR_INVALID_SUBMISSION)
        except GameError as e:
            return _fail(e.reason)
        return _ok(word=generator.suggest_word())

    def _accept_drawing(room: Room, binding: Binding, image_data: Any) -> None:
        drawing = service.submit_drawing(room, binding.player_id, image_data)
        _broadcast_room(room)
        socketio.emit("new_drawing", drawing.to_dict(), to=room.room_code)

    @socketio.on("submit_drawing")
    def submit_drawing(data=None):
        image_data = _payload(data).get("drawingData")

        def action(room: Room, binding: Binding):
            _accept_drawing(room, binding, image_data)

        return _room_action("submit_drawing", data, service.ERR_NOT_YOUR_TURN, action)

    @socketio.on("ai_drawing")
    def ai_drawing(data=None):
        snapshot: dict = {}

        def read_turn(room: Room, binding: Binding):
            current = room.current_player()
            if current is None or current.id != binding.player_id:
                raise PreconditionFailed(service.ERR_NOT_YOUR_TURN)
            is_imposter = current.role is Role.IMPOSTER
            snapshot.update(
                version=_turn_version(room),
                word=None if is_imposter else room.word,
                is_imposter=is_imposter,
                round=room.round,
                color=current.color,
            )

        result = _room_action("ai_drawing", data, service.ERR_NOT_YOUR_TURN, read_turn)
        if not result["success"]:
            return result

        # Generation runs without the room lock held.
        image_data = generator.generate_drawing(
            snapshot["word"], snapshot["is_imposter"], snapshot["round"], snapshot["color"]
        )
        if not image_data:
            return _fail(ERR_GENERATION)

        def apply(room: Room, binding: Binding):
            if _turn_version(room) != snapshot["version"]:
                raise PreconditionFailed(service.ERR_NOT_YOUR_TURN)
            _accept_drawing(room, binding, image_data)

        return _room_action("ai_drawing", data, service.ERR_NOT_YOUR_TURN, apply)

    @socketio.on("submit_guess")
    def submit_guess(data=None):
        guess_text = str(_payload(data).get("guess", ""))

        def action(room: Room, binding: Binding):
            guess = service.submit_guess(room, binding.player_id, guess_text)
            socketio.emit(
                "player_guessed",
                {"playerId": binding.player_id, "isCorrect": guess.is_correct, "isLocked": guess.is_correct},
                to=room.room_code,
            )
            _broadcast_room(room)
            return {"isCorrect": guess.is_correct, "word": room.word if guess.is_correct else None}

        return _room_action("submit_guess", data, service.ERR_INVALID_GUESS, action)

    def _accept_message(room: Room, binding: Binding, text: str) -> None:
        message = service.submit_message(room, binding.player_id, text)
        _broadcast_room(room)
        socketio.emit("new_message", message.to_dict(), to=room.room_code)

    @socketio.on("submit_message")
    def submit_message(data=None):
        text = str(_payload(data).get("message", ""))

        def action(room: Room, binding: Binding):
            _accept_message(room, binding, text)

        return _room_action("submit_message", data, service.ERR_MESSAGE, action)

    @socketio.on("ai_message")
    def ai_message(data=None):
        snapshot: dict = {}

        def read_context(room: Room, binding: Binding):
            player = room.get_player(binding.player_id)
            if player is None:
                raise PreconditionFailed(service.ERR_MESSAGE)
            role = player.role.to_json() or "UNKNOWN"
            snapshot.update(
                game=room.game_number,
                name=player.name,
                role=role,
                word=room.word if player.role is Role.ARTIST else None,
                log=_game_log(room),
            )

        result = _room_action("ai_message", data, service.ERR_MESSAGE, read_context)
        if not result["success"]:
            return result

        text = generator.generate_chat(snapshot["name"], snapshot["role"], snapshot["word"], snapshot["log"])

        def apply(room: Room, binding: Binding):
            # The chat was written for the word and role of that game.
            if room.game_number != snapshot["game"]:
                raise PreconditionFailed(service.ERR_MESSAGE)
            _accept_message(room, binding, text)

        return _room_action("ai_message", data, service.ERR_MESSAGE, apply)

    def _accept_vote(room: Room, binding: Binding, candidate_id: str) -> None:
        service.submit_vote(room, binding.player_id, candidate_id)
        _broadcast_room(room)
        socketio.emit("vote_cast", {"voterId": binding.player_id}, to=room.room_code)

    @socketio.on("submit_vote")
    def submit_vote(data=None):
        candidate_id = str(_payload(data).get("candidateId", ""))

        def action(room: Room, binding: Binding):
            _accept_vote(room, binding, candidate_id)

        return _room_action("submit_vote", data, service.ERR_INVALID_VOTE, action)

    @socketio.on("ai_vote")
    def ai_vote(data=None):
        snapshot: dict = {}

        def read_ballot(room: Room, binding: Binding):
            player = room.get_player(binding.player_id)
            candidates = [{"id": p.id, "name": p.name} for p in room.players if p.id != binding.player_id]
            if room.phase != Phase.VOTING or player is None or not candidates:
                raise PreconditionFailed(service.ERR_INVALID_VOTE)
            snapshot.update(
                version=(room.game_number, room.phase),
                name=player.name,
                role=player.role.to_json() or "UNKNOWN",
                candidates=candidates,
                log=_game_log(room),
            )

        result = _room_action("ai_vote", data, service.ERR_INVALID_VOTE, read_ballot)
        if not result["success"]:
            return result

        candidate_id = generator.generate_vote(
            snapshot["name"], snapshot["role"], snapshot["candidates"], snapshot["log"]
        )

        def apply(room: Room, binding: Binding):
            if (room.game_number, room.phase) != snapshot["version"]:
                raise PreconditionFailed(service.ERR_INVALID_VOTE)
            _accept_vote(room, binding, candidate_id)
            return {"candidateId": candidate_id}

        return _room_action("ai_vote", data, service.ERR_INVALID_VOTE, apply)

    @socketio.on("force_vote")
    def force_vote(data=None):
        def action(room: Room, binding: Binding):
            service.force_vote(room, binding.player_id)
            _broadcast_room(room)

        return _room_action("force_vote", data, service.ERR_FORCE_VOTE, action)

    @socketio.on("reset_game")
    def reset_game(data=None):
        def action(room: Room, binding: Binding):
            service.require_host(room, binding.player_id, ERR_RESET_HOST)
            service.reset_game(room)
            _broadcast_room(room)

        return _room_action("reset_game", data, ERR_RESET_HOST, action)

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        logger.debug("Client disconnected: %s", request.sid)
        _leave_current(request.sid)

    return sessions
