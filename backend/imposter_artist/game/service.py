from __future__ import annotations

import logging
import random
import time
import uuid
from collections import Counter

from ..config import Config
from .errors import CapacityExceeded, PreconditionFailed
from .models import (
    CHAT_HISTORY_LIMIT,
    DEFAULT_AVATAR,
    ChatMessage,
    Drawing,
    Guess,
    Phase,
    Player,
    Role,
    Room,
    Settings,
    Winner,
    WordSubmission,
    assign_color,
)

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2
MAX_WORD_LENGTH = 40
MAX_MESSAGE_LENGTH = 300
MAX_ROUNDS_LIMIT = 10
MAX_PLAYERS_LIMIT = 12

ERR_IN_PROGRESS = "Game already in progress"
ERR_ROOM_FULL = "Room is full"
ERR_NOT_ENOUGH_PLAYERS = "Not enough players"
ERR_INVALID_SUBMISSION = "Invalid submission"
ERR_NOT_YOUR_TURN = "Not your turn or invalid action"
ERR_MESSAGE = "Failed to send message"
ERR_INVALID_GUESS = "Invalid guess"
ERR_INVALID_VOTE = "Invalid vote"
ERR_FORCE_VOTE = "Failed to force vote (only host can do this)"
ERR_INVALID_SETTINGS = "Invalid settings"

ACTIVE_PHASES = (Phase.WORD_SUBMISSION, Phase.DRAWING, Phase.VOTING)


def now_ms() -> int:
    return int(time.time() * 1000)


def create_room(code: str, host_id: str, settings: Settings | None = None) -> Room:
    if settings is None:
        settings = Settings(max_players=Config.MAX_PLAYERS, max_rounds=Config.MAX_ROUNDS)
    return Room(room_code=code, host_id=host_id, settings=settings)


def require_host(room: Room, player_id: str, reason: str) -> None:
    if not room.is_host(player_id):
        raise PreconditionFailed(reason)


def check_can_join(room: Room) -> None:
    if room.phase != Phase.LOBBY:
        raise PreconditionFailed(ERR_IN_PROGRESS)
    if len(room.players) >= room.settings.max_players:
        raise CapacityExceeded(ERR_ROOM_FULL)


def add_player(room: Room, player_id: str, name: str, avatar: str = DEFAULT_AVATAR) -> Player:
    if room.get_player(player_id) is not None:
        raise PreconditionFailed("Already in room")

    used = {p.color for p in room.players}
    player = Player(id=player_id, name=name, avatar=avatar or DEFAULT_AVATAR, color=assign_color(used))
    room.players.append(player)
    logger.info("Player %s joined room %s (%d players)", player_id, room.room_code, len(room.players))
    return player


def remove_player(room: Room, player_id: str) -> bool:
    """Remove a player from any phase.

    Keeps the turn pointer on the same next player, drops the leaver's word
    submission and votes, and re-runs completion checks so a departure can
    never stall the game. With fewer than two players left a running game
    falls back to the lobby; if the impostor leaves mid-game the artists win.
    """
    idx = room.player_index(player_id)
    if idx is None:
        return False

    leaver = room.players.pop(idx)
    logger.info("Player %s left room %s (%d players)", player_id, room.room_code, len(room.players))

    if room.host_id == player_id and room.players:
        room.host_id = room.players[0].id
        logger.info("Host of room %s reassigned to %s", room.room_code, room.host_id)

    if not room.players or room.phase not in ACTIVE_PHASES:
        return True

    if len(room.players) < MIN_PLAYERS:
        logger.info("Room %s dropped below %d players, back to lobby", room.room_code, MIN_PLAYERS)
        reset_game(room)
        return True

    if room.phase == Phase.WORD_SUBMISSION:
        room.word_submissions = [s for s in room.word_submissions if s.player_id != player_id]
        _finish_submissions_if_complete(room, random)
        return True

    if player_id == room.imposter_id:
        _finish(room, Winner.ARTISTS, f"The Imposter ({leaver.name}) left the game!")
        return True

    if room.phase == Phase.DRAWING:
        if idx < room.current_turn_index:
            room.current_turn_index -= 1
        if room.current_turn_index >= len(room.players):
            _complete_round(room)
    elif room.phase == Phase.VOTING:
        room.votes = {v: c for v, c in room.votes.items() if player_id not in (v, c)}
        _resolve_if_everyone_voted(room)

    return True


def update_settings(room: Room, max_players: int | None = None, max_rounds: int | None = None) -> Room:
    if room.phase != Phase.LOBBY:
        raise PreconditionFailed(ERR_INVALID_SETTINGS)

    if max_rounds is not None:
        if not isinstance(max_rounds, int) or isinstance(max_rounds, bool):
            raise PreconditionFailed(ERR_INVALID_SETTINGS)
        if max_rounds < 1 or max_rounds > MAX_ROUNDS_LIMIT:
            raise PreconditionFailed(ERR_INVALID_SETTINGS)

    if max_players is not None:
        if not isinstance(max_players, int) or isinstance(max_players, bool):
            raise PreconditionFailed(ERR_INVALID_SETTINGS)
        if max_players < MIN_PLAYERS or max_players > MAX_PLAYERS_LIMIT:
            raise PreconditionFailed(ERR_INVALID_SETTINGS)
        if max_players < len(room.players):
            raise PreconditionFailed(ERR_INVALID_SETTINGS)

    if max_rounds is not None:
        room.settings.max_rounds = max_rounds
    if max_players is not None:
        room.settings.max_players = max_players
    return room


def start_game(room: Room) -> Room:
    if len(room.players) < MIN_PLAYERS:
        raise CapacityExceeded(ERR_NOT_ENOUGH_PLAYERS)
    if room.phase != Phase.LOBBY:
        raise PreconditionFailed(ERR_IN_PROGRESS)

    room.game_number += 1
    room.phase = Phase.WORD_SUBMISSION
    room.word_submissions = []
    for p in room.players:
        p.has_submitted_word = False

    logger.info("Room %s started game %d with %d players", room.room_code, room.game_number, len(room.players))
    return room


def submit_word(room: Room, player_id: str, word: str, rng: random.Random | None = None) -> Room:
    if room.phase != Phase.WORD_SUBMISSION:
        raise PreconditionFailed(ERR_INVALID_SUBMISSION)

    player = room.get_player(player_id)
    if player is None or player.has_submitted_word:
        raise PreconditionFailed(ERR_INVALID_SUBMISSION)

    w = (word or "").strip()
    if not w or len(w) > MAX_WORD_LENGTH:
        raise PreconditionFailed(ERR_INVALID_SUBMISSION)

    room.word_submissions.append(WordSubmission(player_id=player_id, word=w))
    player.has_submitted_word = True
    logger.debug(
        "Word submitted in room %s (%d/%d)",
        room.room_code,
        len(room.word_submissions),
        len(room.players),
    )

    _finish_submissions_if_complete(room, rng or random)
    return room


def _finish_submissions_if_complete(room: Room, rng) -> None:
    if not room.players or not all(p.has_submitted_word for p in room.players):
        return
    _assign_roles(room, rng)


def _assign_roles(room: Room, rng) -> None:
    imposter = rng.choice(room.players)
    room.imposter_id = imposter.id

    candidates = [s for s in room.word_submissions if s.player_id != imposter.id]
    if candidates:
        room.word = rng.choice(candidates).word
    else:
        logger.warning("Room %s: only the imposter submitted, using the first word", room.room_code)
        room.word = room.word_submissions[0].word

    for p in room.players:
        p.role = Role.IMPOSTER if p.id == imposter.id else Role.ARTIST

    room.phase = Phase.DRAWING
    room.current_turn_index = 0
    room.round = 1

    logger.info("Room %s: roles assigned, drawing begins", room.room_code)
    logger.debug("Room %s: imposter=%s word=%r", room.room_code, room.imposter_id, room.word)


def submit_drawing(room: Room, player_id: str, image_data: str) -> Drawing:
    current = room.current_player()
    if current is None or current.id != player_id:
        raise PreconditionFailed(ERR_NOT_YOUR_TURN)
    if not isinstance(image_data, str) or not image_data:
        raise PreconditionFailed(ERR_NOT_YOUR_TURN)

    drawing = Drawing(player_id=player_id, round=room.round, image_data=image_data, timestamp=now_ms())
    room.drawings.append(drawing)
    current.actions_taken = 0

    room.current_turn_index += 1
    if room.current_turn_index >= len(room.players):
        _complete_round(room)

    return drawing


def _complete_round(room: Room) -> None:
    room.current_turn_index = 0
    room.round += 1
    logger.debug("Room %s: round complete, now round %d", room.room_code, room.round)
    if room.round > room.max_rounds:
        _enter_voting(room)


def _enter_voting(room: Room) -> None:
    room.phase = Phase.VOTING
    room.current_turn_index = 0
    room.votes = {}
    logger.info("Room %s: voting begins", room.room_code)


def submit_message(room: Room, player_id: str, text: str) -> ChatMessage:
    player = room.get_player(player_id)
    if player is None:
        raise PreconditionFailed(ERR_MESSAGE)

    t = (text or "").strip()
    if not t or len(t) > MAX_MESSAGE_LENGTH:
        raise PreconditionFailed(ERR_MESSAGE)

    message = ChatMessage(
        id=uuid.uuid4().hex,
        sender_id=player_id,
        sender_name=player.name,
        text=t,
        timestamp=now_ms(),
        color=player.color,
    )
    room.chat_messages.append(message)
    if len(room.chat_messages) > CHAT_HISTORY_LIMIT:
        del room.chat_messages[:-CHAT_HISTORY_LIMIT]
    return message


def submit_guess(room: Room, player_id: str, guess: str) -> Guess:
    if room.phase != Phase.DRAWING:
        raise PreconditionFailed(ERR_INVALID_GUESS)

    player = room.get_player(player_id)
    if player is None or player.has_guessed:
        raise PreconditionFailed(ERR_INVALID_GUESS)

    g = (guess or "").strip()
    if not g or len(g) > MAX_WORD_LENGTH:
        raise PreconditionFailed(ERR_INVALID_GUESS)

    is_correct = g.lower() == (room.word or "").strip().lower()
    player.has_guessed = True
    record = Guess(player_id=player_id, guess=g, is_correct=is_correct, timestamp=now_ms())
    room.guesses.append(record)

    if is_correct:
        player.is_locked = True
        if player.id == room.imposter_id:
            _finish(room, Winner.IMPOSTER, f"{player.name} (Imposter) guessed the word correctly!")

    return record


def submit_vote(room: Room, voter_id: str, candidate_id: str) -> Room:
    if voter_id == candidate_id:
        raise PreconditionFailed(ERR_INVALID_VOTE)
    if room.phase != Phase.VOTING:
        raise PreconditionFailed(ERR_INVALID_VOTE)
    if room.get_player(voter_id) is None or room.get_player(candidate_id) is None:
        raise PreconditionFailed(ERR_INVALID_VOTE)

    room.votes[voter_id] = candidate_id
    _resolve_if_everyone_voted(room)
    return room


def _resolve_if_everyone_voted(room: Room) -> None:
    if room.players and all(p.id in room.votes for p in room.players):
        resolve_votes(room)


def force_vote(room: Room, requester_id: str) -> Room:
    if not room.is_host(requester_id) or room.phase != Phase.DRAWING:
        raise PreconditionFailed(ERR_FORCE_VOTE)
    logger.info("Room %s: host forced voting in round %d", room.room_code, room.round)
    _enter_voting(room)
    return room


def resolve_votes(room: Room) -> Room:
    """Tally the votes and end the game.

    Only a strict single leader is ejected. A tie at the top, or no votes at
    all, lets the impostor survive.
    """
    ranking = Counter(room.votes.values()).most_common()
    leaders = [cid for cid, count in ranking if count == ranking[0][1]] if ranking else []

    if len(leaders) != 1:
        _finish(room, Winner.IMPOSTER, "Vote ended in a tie. Imposter survives!")
        return room

    ejected_id = leaders[0]
    ejected = room.get_player(ejected_id)
    if ejected is not None:
        ejected.voted_out = True

    if ejected_id == room.imposter_id:
        _finish(room, Winner.ARTISTS, "The Imposter was voted out!")
    else:
        name = ejected.name if ejected is not None else ejected_id
        _finish(room, Winner.IMPOSTER, f"Wrong player voted out! {name} was innocent.")
    return room


def _finish(room: Room, winner: Winner, reason: str) -> None:
    room.phase = Phase.GAME_OVER
    room.current_turn_index = 0
    room.winner = winner
    room.win_reason = reason
    logger.info("Room %s: game over, %s win (%s)", room.room_code, winner.value, reason)


def reset_game(room: Room) -> Room:
    room.phase = Phase.LOBBY
    room.word = None
    room.imposter_id = None
    room.current_turn_index = 0
    room.round = 1
    room.drawings = []
    room.guesses = []
    room.chat_messages = []
    room.votes = {}
    room.winner = None
    room.win_reason = None
    room.word_submissions = []
    for p in room.players:
        p.reset_flags()
    return room


def public_state(room: Room) -> dict:
    """Room snapshot safe to broadcast to every member.

    Until the game is over the word, the impostor, roles, submitted words and
    guess texts stay hidden.
    """
    reveal = room.phase == Phase.GAME_OVER
    return {
        "roomCode": room.room_code,
        "hostId": room.host_id,
        "phase": room.phase.value,
        "players": [p.to_dict(reveal_role=reveal) for p in room.players],
        "settings": room.settings.to_dict(),
        "word": room.word if reveal else None,
        "imposterId": room.imposter_id if reveal else None,
        "currentTurnIndex": room.current_turn_index,
        "round": room.round,
        "maxRounds": room.max_rounds,
        "drawings": [d.to_dict() for d in room.drawings],
        "guesses": [g.to_dict(reveal_text=reveal) for g in room.guesses],
        "chatMessages": [m.to_dict() for m in room.chat_messages],
        "votes": dict(room.votes),
        "winner": room.winner.value if room.winner else None,
        "winReason": room.win_reason,
        "wordSubmissions": [
            {"playerId": s.player_id, "word": s.word if reveal else None} for s in room.word_submissions
        ],
        "submittedCount": len(room.word_submissions),
    }


def word_reveal(room: Room, player_id: str) -> dict | None:
    player = room.get_player(player_id)
    if player is None or player.role is Role.UNASSIGNED:
        return None
    is_imposter = player.role is Role.IMPOSTER
    return {
        "role": player.role.value,
        "word": None if is_imposter else room.word,
        "isImposter": is_imposter,
    }
