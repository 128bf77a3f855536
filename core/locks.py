"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

主要使用 PostgreSQL 的 SELECT ... FOR UPDATE 來實現悲觀鎖（Pessimistic Locking）
SQLite 會忽略 FOR UPDATE，由 database.make_engine 的 BEGIN IMMEDIATE 整個序列化
"""
from sqlalchemy.orm import Session, Query

from models import Game, Round, Metadata


def with_game_lock(game_id: int, db: Session) -> Query:
    """
    鎖定一個 Game（行級鎖）

    使用場景：
    - 新增 / 刪除 / 調整 Round 順序時
    - 同一個 game 的回合排序必須序列化：兩個同時建立回合的請求不能算出同一個 order

    為什麼鎖 Game 而不是 Round：
    - 第一個回合建立時還沒有任何 Round row 可以鎖
    - 鎖 parent row 等於鎖住整個 order 範圍，不同 game 之間不會互相等待

    範例：
        game = with_game_lock(game_id, db).first()
        if not game:
            raise GameNotFound(game_id)
        next_order = ...
        db.add(Round(game_id=game_id, order=next_order, ...))

    參數：
        game_id: Game ID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(Game).filter(
        Game.id == game_id
    ).with_for_update(nowait=False)


def with_round_lock(round_id: int, db: Session) -> Query:
    """
    鎖定一個 Round（行級鎖）

    參數：
        round_id: Round ID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）
    """
    return db.query(Round).filter(
        Round.id == round_id
    ).with_for_update(nowait=False)


def lock_orphan_metadata(db: Session) -> Query:
    """
    鎖定所有孤兒 Metadata（turn_id IS NULL）

    使用場景：
    - Reclaimer 批次刪檔時，避免兩個 sweep 同時處理同一批資料

    返回：
        Query object（呼叫 .all() 取得所有結果）
    """
    return db.query(Metadata).filter(
        Metadata.turn_id.is_(None)
    ).with_for_update(nowait=False)
