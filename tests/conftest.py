import os
import random

import pytest

# Must be set before create_app() picks an async mode.
os.environ.setdefault("SOCKETIO_ASYNC_MODE", "threading")

from imposter_artist.game import service
from imposter_artist.game.models import Settings
from imposter_artist.game.store import RoomStore
from imposter_artist.generators.base import Generator
from imposter_artist.server import create_app


class StubGenerator(Generator):
    def __init__(self):
        self.drawing = "data:image/png;base64,QUlEUkFX"
        self.chat = "Looks like a masterpiece."
        self.vote_for = None
        # Called in the middle of a generation, before the result is returned.
        self.during = None
        self.calls = []

    def _run_during(self):
        if self.during is not None:
            self.during()

    def suggest_word(self):
        return "lantern"

    def generate_drawing(self, word, is_imposter, round, color):
        self.calls.append(("drawing", word, is_imposter, round, color))
        self._run_during()
        return self.drawing

    def generate_chat(self, player_name, role, word, log):
        self.calls.append(("chat", player_name, role, word))
        self._run_during()
        return self.chat

    def generate_vote(self, player_name, role, candidates, log):
        self.calls.append(("vote", player_name, role, [c["id"] for c in candidates]))
        self._run_during()
        return self.vote_for or candidates[0]["id"]


def make_room(names=("A", "B", "C"), max_rounds=3, max_players=8):
    """Lobby room whose player ids are the lowercase names; the first player hosts."""
    ids = [n.lower() for n in names]
    room = service.create_room("123456", ids[0], Settings(max_players=max_players, max_rounds=max_rounds))
    for pid, name in zip(ids, names):
        service.add_player(room, pid, name)
    return room


def start_drawing(room, words=None, seed=0):
    """Run a room from the lobby through word submission into DRAWING."""
    rng = random.Random(seed)
    service.start_game(room)
    words = words or [f"word{i}" for i in range(len(room.players))]
    for p, w in zip(list(room.players), words):
        service.submit_word(room, p.id, w, rng=rng)
    return room


def draw_full_game(room):
    """Every player draws in turn until the room reaches VOTING."""
    while room.phase.value == "DRAWING":
        current = room.current_player()
        service.submit_drawing(room, current.id, "data:image/png;base64,AAAA")
    return room


@pytest.fixture
def store():
    return RoomStore()


@pytest.fixture
def generator():
    return StubGenerator()


@pytest.fixture
def app_bundle(store, generator):
    app, socketio = create_app(store=store, generator=generator)
    app.config["TESTING"] = True
    return app, socketio


@pytest.fixture
def connect(app_bundle):
    app, socketio = app_bundle
    clients = []

    def _connect():
        client = socketio.test_client(app)
        clients.append(client)
        return client

    yield _connect

    for client in clients:
        if client.is_connected():
            client.disconnect()
