from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Phase(str, Enum):
    LOBBY = "LOBBY"
    WORD_SUBMISSION = "WORD_SUBMISSION"
    DRAWING = "DRAWING"
    VOTING = "VOTING"
    GAME_OVER = "GAME_OVER"


class Role(str, Enum):
    UNASSIGNED = "UNASSIGNED"
    ARTIST = "ARTIST"
    IMPOSTER = "IMPOSTER"

    def to_json(self) -> str | None:
        # Clients only know ARTIST / IMPOSTER / null.
        if self is Role.UNASSIGNED:
            return None
        return self.value


class Winner(str, Enum):
    ARTISTS = "ARTISTS"
    IMPOSTER = "IMPOSTER"


PALETTE: tuple[str, ...] = (
    "#ef4444",
    "#3b82f6",
    "#22c55e",
    "#eab308",
    "#a855f7",
    "#ec4899",
    "#14b8a6",
    "#f97316",
)

CHAT_HISTORY_LIMIT = 50

DEFAULT_AVATAR = "👤"


def assign_color(used: set[str] | list[str]) -> str:
    """First palette color nobody holds yet, or the first palette color once all are taken."""
    for color in PALETTE:
        if color not in used:
            return color
    return PALETTE[0]


@dataclass
class Settings:
    max_players: int = 8
    max_rounds: int = 3
    strokes_per_turn: int = 2
    allow_extra_color: bool = True

    def to_dict(self) -> dict:
        return {
            "maxPlayers": self.max_players,
            "maxRounds": self.max_rounds,
            "strokesPerTurn": self.strokes_per_turn,
            "allowExtraColor": self.allow_extra_color,
        }


@dataclass
class Player:
    id: str
    name: str
    avatar: str = DEFAULT_AVATAR
    color: str = PALETTE[0]
    role: Role = Role.UNASSIGNED
    has_submitted_word: bool = False
    is_locked: bool = False
    has_guessed: bool = False
    actions_taken: int = 0
    voted_out: bool = False

    def reset_flags(self) -> None:
        self.role = Role.UNASSIGNED
        self.has_submitted_word = False
        self.is_locked = False
        self.has_guessed = False
        self.actions_taken = 0
        self.voted_out = False

    def to_dict(self, reveal_role: bool = True) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "avatar": self.avatar,
            "color": self.color,
            "role": self.role.to_json() if reveal_role else None,
            "hasSubmittedWord": self.has_submitted_word,
            "isLocked": self.is_locked,
            "hasGuessed": self.has_guessed,
            "actionsTaken": self.actions_taken,
            "votedOut": self.voted_out,
        }


@dataclass
class Drawing:
    player_id: str
    round: int
    image_data: str
    timestamp: int

    def to_dict(self) -> dict:
        return {
            "playerId": self.player_id,
            "round": self.round,
            "data": self.image_data,
            "timestamp": self.timestamp,
        }


@dataclass
class Guess:
    player_id: str
    guess: str
    is_correct: bool
    timestamp: int

    def to_dict(self, reveal_text: bool = True) -> dict:
        return {
            "playerId": self.player_id,
            "guess": self.guess if reveal_text else None,
            "isCorrect": self.is_correct,
            "timestamp": self.timestamp,
        }


@dataclass
class ChatMessage:
    id: str
    sender_id: str
    sender_name: str
    text: str
    timestamp: int
    color: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "senderName": self.sender_name,
            "text": self.text,
            "timestamp": self.timestamp,
            "color": self.color,
        }


@dataclass
class WordSubmission:
    player_id: str
    word: str


@dataclass
class Room:
    room_code: str
    host_id: str
    phase: Phase = Phase.LOBBY
    players: list[Player] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)
    word: str | None = None
    imposter_id: str | None = None
    current_turn_index: int = 0
    round: int = 1
    drawings: list[Drawing] = field(default_factory=list)
    guesses: list[Guess] = field(default_factory=list)
    chat_messages: list[ChatMessage] = field(default_factory=list)
    # voter id -> candidate id
    votes: dict[str, str] = field(default_factory=dict)
    winner: Winner | None = None
    win_reason: str | None = None
    word_submissions: list[WordSubmission] = field(default_factory=list)
    # Bumped by every start_game; tells one game in this room from the next.
    game_number: int = 0

    @property
    def max_rounds(self) -> int:
        return self.settings.max_rounds

    def get_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def player_index(self, player_id: str) -> int | None:
        for idx, p in enumerate(self.players):
            if p.id == player_id:
                return idx
        return None

    def is_host(self, player_id: str) -> bool:
        return bool(player_id) and self.host_id == player_id

    def current_player(self) -> Player | None:
        if self.phase != Phase.DRAWING or not self.players:
            return None
        if 0 <= self.current_turn_index < len(self.players):
            return self.players[self.current_turn_index]
        return None
