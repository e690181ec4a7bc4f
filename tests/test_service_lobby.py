import pytest

from conftest import make_room, start_drawing
from imposter_artist.game import service
from imposter_artist.game.errors import CapacityExceeded, PreconditionFailed
from imposter_artist.game.models import PALETTE, Phase, Role


def test_create_room_defaults():
    room = service.create_room("654321", "host")
    assert room.phase == Phase.LOBBY
    assert room.players == []
    assert room.settings.max_players == 8
    assert room.max_rounds == 3
    assert room.word is None and room.imposter_id is None


def test_add_player_keeps_join_order_and_unique_colors():
    room = make_room(("A", "B", "C"))
    assert [p.id for p in room.players] == ["a", "b", "c"]
    assert [p.color for p in room.players] == list(PALETTE[:3])


def test_color_reuses_freed_slot_first():
    room = make_room(("A", "B", "C"))
    service.remove_player(room, "b")
    d = service.add_player(room, "d", "D")
    assert d.color == PALETTE[1]


def test_add_player_rejects_duplicate_id():
    room = make_room(("A", "B"))
    with pytest.raises(PreconditionFailed):
        service.add_player(room, "a", "Again")


def test_check_can_join_room_full():
    room = make_room(("A", "B"), max_players=2)
    with pytest.raises(CapacityExceeded) as exc:
        service.check_can_join(room)
    assert exc.value.reason == "Room is full"


def test_check_can_join_game_in_progress():
    room = make_room(("A", "B"))
    service.start_game(room)
    with pytest.raises(PreconditionFailed) as exc:
        service.check_can_join(room)
    assert exc.value.reason == "Game already in progress"


def test_host_leaving_lobby_reassigns_to_next_oldest():
    room = make_room(("A", "B", "C"))
    assert service.remove_player(room, "a") is True
    assert room.host_id == "b"
    assert [p.id for p in room.players] == ["b", "c"]
    assert room.phase == Phase.LOBBY


def test_remove_unknown_player_is_noop():
    room = make_room(("A", "B"))
    assert service.remove_player(room, "zzz") is False
    assert len(room.players) == 2


def test_start_game_needs_two_players():
    room = make_room(("A",))
    with pytest.raises(CapacityExceeded) as exc:
        service.start_game(room)
    assert exc.value.reason == "Not enough players"
    assert room.phase == Phase.LOBBY


def test_start_game_enters_word_submission():
    room = make_room(("A", "B"))
    room.players[0].has_submitted_word = True
    service.start_game(room)
    assert room.phase == Phase.WORD_SUBMISSION
    assert room.word_submissions == []
    assert not any(p.has_submitted_word for p in room.players)


def test_start_game_twice_is_rejected():
    room = make_room(("A", "B"))
    service.start_game(room)
    with pytest.raises(PreconditionFailed):
        service.start_game(room)


def test_update_settings_in_lobby():
    room = make_room(("A", "B"))
    service.update_settings(room, max_players=4, max_rounds=5)
    assert room.settings.max_players == 4
    assert room.max_rounds == 5


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_rounds": 0},
        {"max_rounds": 11},
        {"max_players": 1},
        {"max_players": 13},
        {"max_players": 2, "max_rounds": 3},
    ],
)
def test_update_settings_rejects_out_of_range(kwargs):
    room = make_room(("A", "B", "C"))
    with pytest.raises(PreconditionFailed):
        service.update_settings(room, **kwargs)
    assert room.settings.max_players == 8
    assert room.max_rounds == 3


def test_update_settings_outside_lobby():
    room = make_room(("A", "B"))
    service.start_game(room)
    with pytest.raises(PreconditionFailed):
        service.update_settings(room, max_rounds=2)


def test_reset_then_start_gives_fresh_submission_phase():
    room = start_drawing(make_room(("A", "B", "C")))
    service.submit_message(room, "a", "hello")
    service.submit_drawing(room, "a", "data:x")

    service.reset_game(room)
    assert room.phase == Phase.LOBBY
    assert room.host_id == "a"
    assert [p.id for p in room.players] == ["a", "b", "c"]
    assert room.word is None and room.imposter_id is None
    assert room.drawings == [] and room.chat_messages == [] and room.votes == {}
    assert room.round == 1 and room.current_turn_index == 0
    assert all(p.role is Role.UNASSIGNED for p in room.players)

    service.start_game(room)
    assert room.phase == Phase.WORD_SUBMISSION
    assert all(p.has_submitted_word is False for p in room.players)
    assert room.word_submissions == []


def test_each_start_is_a_new_game_number():
    room = make_room(("A", "B"))
    assert room.game_number == 0
    service.start_game(room)
    assert room.game_number == 1
    service.reset_game(room)
    assert room.game_number == 1
    service.start_game(room)
    assert room.game_number == 2
