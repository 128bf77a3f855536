import pytest

from core.exceptions import (
    DuplicatedKey,
    InvalidParam,
    InvalidPlayerList,
    RoundNotFound,
    TurnNotFound,
    GameNotFound,
)
from core.game_manager import GameManager
from core.turn_manager import TurnManager
from models import Player, PlayerGame


def test_create_game_registers_players(db):
    game = GameManager.create_game(db, name="g", players=["carol", "dave"])

    assert {p.account_id for p in db.query(Player).all()} == {"carol", "dave"}
    assert db.query(PlayerGame).filter(PlayerGame.game_id == game.id).count() == 2


def test_create_game_reuses_existing_players(db, game):
    GameManager.create_game(db, name="again", players=["alice", "erin"])

    assert db.query(Player).count() == 3


def test_create_game_rejects_duplicated_players(db):
    with pytest.raises(InvalidParam):
        GameManager.create_game(db, name="g", players=["x", "x"])


def test_get_and_delete_game(db, game):
    game_id = game.id
    assert GameManager.get_game(db, game_id).name == "demo"

    GameManager.delete_game(db, game_id)

    with pytest.raises(GameNotFound):
        GameManager.get_game(db, game_id)
    with pytest.raises(GameNotFound):
        GameManager.delete_game(db, game_id)


def test_create_turns_one_per_player(db, round_obj):
    turns = TurnManager.create_turns(db, round_obj.id, ["alice", "bob"])

    assert len(turns) == 2
    assert {t.round_id for t in turns} == {round_obj.id}
    assert len(TurnManager.list_turns(db, round_obj.id)) == 2


def test_create_turns_for_missing_round(db, game):
    with pytest.raises(RoundNotFound):
        TurnManager.create_turns(db, 999, ["alice"])


def test_create_turns_with_unknown_player(db, round_obj):
    with pytest.raises(InvalidPlayerList):
        TurnManager.create_turns(db, round_obj.id, ["alice", "mallory"])

    assert TurnManager.list_turns(db, round_obj.id) == []


def test_create_turns_with_duplicated_player(db, round_obj):
    with pytest.raises(InvalidParam):
        TurnManager.create_turns(db, round_obj.id, ["alice", "alice"])


def test_player_has_one_turn_per_round(db, round_obj, turn):
    with pytest.raises(DuplicatedKey):
        TurnManager.create_turns(db, round_obj.id, ["alice"])


def test_update_turn(db, turn):
    updated = TurnManager.update_turn(db, turn.id, scores="10,20", is_winner=True)

    assert updated.scores == "10,20"
    assert updated.is_winner is True

    # 沒傳的欄位不變
    again = TurnManager.update_turn(db, turn.id, is_winner=False)
    assert again.scores == "10,20"
    assert again.is_winner is False


def test_delete_turn(db, turn):
    turn_id = turn.id

    TurnManager.delete_turn(db, turn_id)

    with pytest.raises(TurnNotFound):
        TurnManager.get_turn(db, turn_id)
    with pytest.raises(TurnNotFound):
        TurnManager.delete_turn(db, turn_id)


def test_update_game(db, game):
    updated = GameManager.update_game(db, game.id, name="renamed", current_round=3)

    assert updated.name == "renamed"
    assert updated.current_round == 3

    # 沒傳的欄位不變
    again = GameManager.update_game(db, game.id, description="notes")
    assert again.name == "renamed"
    assert again.current_round == 3
    assert again.description == "notes"


def test_update_game_errors(db, game):
    with pytest.raises(GameNotFound):
        GameManager.update_game(db, 999, name="x")
    with pytest.raises(InvalidParam):
        GameManager.update_game(db, game.id, current_round=0)

    assert GameManager.get_game(db, game.id).current_round == 1
