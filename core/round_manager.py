"""
Round Manager：管理 Round 的完整生命週期

職責：
1. 建立 Round（計算下一個 order）
2. 刪除 Round（關閉 order 空洞）
3. 調整 Round（時間戳記、移到最後一個位置）
4. 查詢 Round

不變量：
- 同一個 game 的 order 在每個 transaction 結束後都剛好是 1..N
- 所有會改動 order 的操作都先鎖 Game row（with_game_lock），同一個 game 的操作序列化
"""
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import Round
from core.locks import with_game_lock, with_round_lock
from core.exceptions import GameNotFound, RoundNotFound, InvalidOrder
from database import transactional

logger = logging.getLogger(__name__)


def _max_order(db: Session, game_id: int) -> int:
    """game 目前最大的 order，沒有任何回合時為 0"""
    return db.query(func.coalesce(func.max(Round.order), 0)).filter(
        Round.game_id == game_id
    ).scalar()


class RoundManager:
    """Round 生命週期管理器"""

    @staticmethod
    @transactional
    def create_round(
        db: Session,
        game_id: int,
        test_class_id: str,
        started_at: Optional[datetime] = None,
        closed_at: Optional[datetime] = None
    ) -> Round:
        """
        建立新回合

        流程：
        1. 鎖定 Game（不存在就拋出 GameNotFound）
        2. 讀取目前最大的 order（沒有回合時為 0）
        3. 以 max + 1 建立 Round

        參數：
            db: SQLAlchemy Session
            game_id: Game ID
            test_class_id: 測試類別 ID

        返回：
            新建立的 Round

        異常：
            GameNotFound: Game 不存在

        注意：
            - 讀取 max 和 insert 必須在同一把鎖內完成，否則兩個請求會算出同一個 order
        """
        # 1. 鎖定 Game
        game = with_game_lock(game_id, db).first()
        if not game:
            raise GameNotFound(game_id)

        # 2. 計算下一個 order
        next_order = _max_order(db, game_id) + 1

        # 3. 建立 Round
        round_obj = Round(
            game_id=game_id,
            order=next_order,
            test_class_id=test_class_id,
            started_at=started_at,
            closed_at=closed_at
        )
        db.add(round_obj)
        db.flush()  # 取得 round_obj.id

        logger.info(f"Created round {round_obj.id} for game {game_id} with order {next_order}")

        return round_obj

    @staticmethod
    @transactional
    def delete_round(db: Session, round_id: int) -> None:
        """
        刪除回合並關閉 order 空洞

        流程：
        1. 找到 Round，記下 game_id 和 order
        2. 鎖定 Game
        3. 刪除 Round（Turns 由 ON DELETE CASCADE 一起刪除）
        4. 同 game 中 order 大於被刪除者的回合全部 -1

        異常：
            RoundNotFound: Round 不存在

        注意：
            - 3 和 4 在同一個 transaction，第 4 步失敗會一起 rollback
        """
        # 1. 找到 Round
        round_obj = db.query(Round).filter(Round.id == round_id).first()
        if not round_obj:
            raise RoundNotFound(round_id)

        # 2. 鎖定 Game，並在鎖內重新讀取 order（可能已被其他刪除調整過）
        with_game_lock(round_obj.game_id, db).first()
        round_obj = with_round_lock(round_id, db).populate_existing().first()
        if not round_obj:
            raise RoundNotFound(round_id)

        game_id = round_obj.game_id
        order = round_obj.order

        # 3. 刪除 Round
        db.delete(round_obj)
        db.flush()

        # 4. 關閉空洞
        shifted = db.query(Round).filter(
            Round.game_id == game_id,
            Round.order > order
        ).update({Round.order: Round.order - 1}, synchronize_session=False)

        logger.info(
            f"Deleted round {round_id} (order {order}) from game {game_id}, "
            f"shifted {shifted} rounds"
        )

    @staticmethod
    @transactional
    def update_round(
        db: Session,
        round_id: int,
        order: Optional[int] = None,
        started_at: Optional[datetime] = None,
        closed_at: Optional[datetime] = None
    ) -> Round:
        """
        更新回合

        order 規則：
        - 不傳或等於目前的 order：不變
        - 等於 game 目前的回合數 N：移到最後一個位置，原本 (old, N] 的回合 -1
        - 其他值：拋出 InvalidOrder

        異常：
            RoundNotFound: Round 不存在
            InvalidOrder: order 不合法
        """
        round_obj = db.query(Round).filter(Round.id == round_id).first()
        if not round_obj:
            raise RoundNotFound(round_id)

        with_game_lock(round_obj.game_id, db).first()
        round_obj = with_round_lock(round_id, db).populate_existing().first()
        if not round_obj:
            raise RoundNotFound(round_id)

        if order is not None and order != round_obj.order:
            count = _max_order(db, round_obj.game_id)
            if order != count:
                raise InvalidOrder(round_id, order, count)

            db.query(Round).filter(
                Round.game_id == round_obj.game_id,
                Round.order > round_obj.order,
                Round.order <= count
            ).update({Round.order: Round.order - 1}, synchronize_session=False)

            logger.info(
                f"Moved round {round_id} of game {round_obj.game_id} "
                f"from order {round_obj.order} to {count}"
            )
            round_obj.order = count

        if started_at is not None:
            round_obj.started_at = started_at
        if closed_at is not None:
            round_obj.closed_at = closed_at

        db.flush()
        return round_obj

    @staticmethod
    def get_round(db: Session, round_id: int) -> Round:
        """
        透過 ID 取得 Round

        異常：
            RoundNotFound: Round 不存在
        """
        round_obj = db.query(Round).filter(Round.id == round_id).first()
        if not round_obj:
            raise RoundNotFound(round_id)
        return round_obj

    @staticmethod
    def list_rounds(db: Session, game_id: int) -> List[Round]:
        """取得 game 的所有回合，依 order 排序"""
        return db.query(Round).filter(
            Round.game_id == game_id
        ).order_by(Round.order).all()
