"""
Turn Manager：管理 Turn 的生命週期

刪除 Turn 不會刪除它的檔案：metadata.turn_id 由資料庫設成 NULL，留給 reclaimer 回收，
讓刪除 Turn 的請求不需要等磁碟 I/O
"""
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Player, Round, Turn
from core.exceptions import (
    RoundNotFound,
    TurnNotFound,
    InvalidParam,
    InvalidPlayerList,
    DuplicatedKey
)
from database import transactional

logger = logging.getLogger(__name__)


class TurnManager:
    """Turn 生命週期管理器"""

    @staticmethod
    @transactional
    def create_turns(
        db: Session,
        round_id: int,
        players: List[str],
        started_at: Optional[datetime] = None,
        closed_at: Optional[datetime] = None
    ) -> List[Turn]:
        """
        為回合內每位玩家建立一個 Turn

        流程：
        1. 確認 Round 存在
        2. 檢查玩家帳號沒有重複、全部存在
        3. 批次建立 Turn

        異常：
            RoundNotFound: Round 不存在
            InvalidParam: 玩家帳號重複
            InvalidPlayerList: 有帳號不存在
            DuplicatedKey: 玩家在這個回合已經有 Turn
        """
        # 1. Round
        if not db.query(Round.id).filter(Round.id == round_id).first():
            raise RoundNotFound(round_id)

        # 2. 玩家
        if len(set(players)) != len(players):
            raise InvalidParam("duplicated player in list")

        found = db.query(Player).filter(Player.account_id.in_(players)).all()
        if len(found) != len(players):
            missing = set(players) - {player.account_id for player in found}
            raise InvalidPlayerList(f"invalid player list: {sorted(missing)}")

        # 3. 建立
        turns = [
            Turn(
                round_id=round_id,
                player_id=player.id,
                started_at=started_at,
                closed_at=closed_at
            )
            for player in found
        ]
        db.add_all(turns)
        try:
            db.flush()
        except IntegrityError as e:
            raise DuplicatedKey("turn already exists for player in round") from e

        logger.info(f"Created {len(turns)} turns for round {round_id}")

        return turns

    @staticmethod
    def get_turn(db: Session, turn_id: int) -> Turn:
        """
        透過 ID 取得 Turn

        異常：
            TurnNotFound: Turn 不存在
        """
        turn = db.query(Turn).filter(Turn.id == turn_id).first()
        if not turn:
            raise TurnNotFound(turn_id)
        return turn

    @staticmethod
    def list_turns(db: Session, round_id: int) -> List[Turn]:
        return db.query(Turn).filter(Turn.round_id == round_id).order_by(Turn.id).all()

    @staticmethod
    @transactional
    def update_turn(
        db: Session,
        turn_id: int,
        scores: Optional[str] = None,
        is_winner: Optional[bool] = None,
        started_at: Optional[datetime] = None,
        closed_at: Optional[datetime] = None
    ) -> Turn:
        """
        更新 Turn 的分數、勝負和時間戳記（只更新有傳入的欄位）

        異常：
            TurnNotFound: Turn 不存在
        """
        turn = db.query(Turn).filter(Turn.id == turn_id).first()
        if not turn:
            raise TurnNotFound(turn_id)

        if scores is not None:
            turn.scores = scores
        if is_winner is not None:
            turn.is_winner = is_winner
        if started_at is not None:
            turn.started_at = started_at
        if closed_at is not None:
            turn.closed_at = closed_at

        db.flush()
        return turn

    @staticmethod
    @transactional
    def delete_turn(db: Session, turn_id: int) -> None:
        """
        刪除 Turn，它的 metadata 變成孤兒

        異常：
            TurnNotFound: Turn 不存在
        """
        deleted = db.query(Turn).filter(Turn.id == turn_id).delete(synchronize_session=False)
        if deleted < 1:
            raise TurnNotFound(turn_id)

        logger.info(f"Deleted turn {turn_id}")
