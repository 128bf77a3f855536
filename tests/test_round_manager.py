import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from core.exceptions import GameNotFound, RoundNotFound, InvalidOrder
from core.game_manager import GameManager
from core.round_manager import RoundManager


def orders(db, game_id):
    return [r.order for r in RoundManager.list_rounds(db, game_id)]


def test_first_round_gets_order_one(db, game):
    round_obj = RoundManager.create_round(db, game.id, "class-1")

    assert round_obj.order == 1
    assert round_obj.game_id == game.id
    assert round_obj.test_class_id == "class-1"


def test_rounds_are_numbered_in_creation_order(db, game):
    created = [RoundManager.create_round(db, game.id, f"class-{i}") for i in range(4)]

    assert [r.order for r in created] == [1, 2, 3, 4]


def test_create_round_for_missing_game(db):
    with pytest.raises(GameNotFound):
        RoundManager.create_round(db, 999, "class-1")


def test_games_have_independent_sequences(db, game):
    other = GameManager.create_game(db, name="other", players=[])

    RoundManager.create_round(db, game.id, "a")
    RoundManager.create_round(db, game.id, "b")
    round_obj = RoundManager.create_round(db, other.id, "c")

    assert round_obj.order == 1
    assert orders(db, game.id) == [1, 2]


def test_delete_closes_gap(db, game):
    created = [RoundManager.create_round(db, game.id, f"class-{i}") for i in range(4)]
    ids = [r.id for r in created]

    RoundManager.delete_round(db, ids[1])

    remaining = RoundManager.list_rounds(db, game.id)
    assert [r.order for r in remaining] == [1, 2, 3]
    # 只有 order 改變，回合本身的 id 不變
    assert [r.id for r in remaining] == [ids[0], ids[2], ids[3]]


def test_delete_last_round(db, game):
    created = [RoundManager.create_round(db, game.id, "x") for _ in range(3)]

    RoundManager.delete_round(db, created[-1].id)

    assert orders(db, game.id) == [1, 2]


def test_create_after_delete_continues_sequence(db, game):
    created = [RoundManager.create_round(db, game.id, "x") for _ in range(3)]
    RoundManager.delete_round(db, created[0].id)

    round_obj = RoundManager.create_round(db, game.id, "x")

    assert round_obj.order == 3
    assert orders(db, game.id) == [1, 2, 3]


def test_delete_missing_round(db):
    with pytest.raises(RoundNotFound):
        RoundManager.delete_round(db, 12345)


def test_invariant_holds_after_random_sequence(db, game):
    rng = random.Random(7)
    ids = []

    for _ in range(60):
        if ids and rng.random() < 0.4:
            victim = ids.pop(rng.randrange(len(ids)))
            RoundManager.delete_round(db, victim)
        else:
            ids.append(RoundManager.create_round(db, game.id, "x").id)

        assert orders(db, game.id) == list(range(1, len(ids) + 1))


def test_update_round_moves_to_last_position(db, game):
    created = [RoundManager.create_round(db, game.id, "x") for _ in range(4)]
    ids = [r.id for r in created]

    moved = RoundManager.update_round(db, ids[0], order=4)

    assert moved.order == 4
    remaining = RoundManager.list_rounds(db, game.id)
    assert [r.id for r in remaining] == [ids[1], ids[2], ids[3], ids[0]]
    assert [r.order for r in remaining] == [1, 2, 3, 4]


def test_update_round_rejects_order_other_than_count(db, game):
    created = [RoundManager.create_round(db, game.id, "x") for _ in range(3)]

    with pytest.raises(InvalidOrder):
        RoundManager.update_round(db, created[0].id, order=2)
    with pytest.raises(InvalidOrder):
        RoundManager.update_round(db, created[0].id, order=4)

    assert orders(db, game.id) == [1, 2, 3]


def test_update_round_same_order_is_noop(db, game):
    created = [RoundManager.create_round(db, game.id, "x") for _ in range(2)]

    round_obj = RoundManager.update_round(db, created[0].id, order=1)

    assert round_obj.order == 1
    assert orders(db, game.id) == [1, 2]


def test_update_missing_round(db):
    with pytest.raises(RoundNotFound):
        RoundManager.update_round(db, 42, order=1)


def test_concurrent_creates_get_distinct_orders(db, game, session_factory):
    game_id = game.id
    # 釋放 fixture session 的 transaction，讓 worker 可以拿到寫入鎖
    db.close()

    def create(_):
        session = session_factory()
        try:
            return RoundManager.create_round(session, game_id, "x").order
        finally:
            session.close()

    n = 8
    with ThreadPoolExecutor(max_workers=n) as pool:
        result = list(pool.map(create, range(n)))

    assert sorted(result) == list(range(1, n + 1))

    check = session_factory()
    try:
        assert orders(check, game_id) == list(range(1, n + 1))
    finally:
        check.close()
