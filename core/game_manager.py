"""
Game Manager：管理 Game 的生命週期

職責：
1. 建立 Game（含玩家登記）
2. 查詢、更新 Game（名稱、目前回合、時間戳記）
3. 刪除 Game（Rounds、Turns 由 ON DELETE CASCADE 一起刪除，檔案變成孤兒）
"""
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from models import Game, Player, PlayerGame
from core.exceptions import GameNotFound, InvalidParam
from database import transactional

logger = logging.getLogger(__name__)


def ensure_players(db: Session, account_ids: List[str]) -> List[Player]:
    """
    取得帳號對應的 Player，不存在的帳號直接建立

    參數：
        db: SQLAlchemy Session
        account_ids: 玩家帳號 ID（不可重複）

    返回：
        Player 列表
    """
    existing = db.query(Player).filter(Player.account_id.in_(account_ids)).all()
    known = {player.account_id for player in existing}

    created = [Player(account_id=account_id) for account_id in account_ids if account_id not in known]
    if created:
        db.add_all(created)
        db.flush()
        logger.info(f"Registered {len(created)} new players")

    return existing + created


class GameManager:
    """Game 生命週期管理器"""

    @staticmethod
    @transactional
    def create_game(
        db: Session,
        name: str,
        players: List[str],
        description: Optional[str] = None,
        started_at: Optional[datetime] = None,
        closed_at: Optional[datetime] = None
    ) -> Game:
        """
        建立新遊戲

        流程：
        1. 檢查玩家帳號沒有重複
        2. 建立 Game
        3. 登記玩家（不存在就建立）
        4. 建立 player_games 關聯

        異常：
            InvalidParam: 玩家帳號重複
        """
        # 1. 檢查重複
        if len(set(players)) != len(players):
            raise InvalidParam("duplicated player in list")

        # 2. 建立 Game
        game = Game(
            name=name,
            description=description,
            started_at=started_at,
            closed_at=closed_at
        )
        db.add(game)
        db.flush()  # 取得 game.id

        # 3 + 4. 玩家
        for player in ensure_players(db, players):
            db.add(PlayerGame(game_id=game.id, player_id=player.id))

        logger.info(f"Created game {game.id} with {len(players)} players")

        return game

    @staticmethod
    def get_game(db: Session, game_id: int) -> Game:
        """
        透過 ID 取得 Game

        異常：
            GameNotFound: Game 不存在
        """
        game = db.query(Game).filter(Game.id == game_id).first()
        if not game:
            raise GameNotFound(game_id)
        return game

    @staticmethod
    @transactional
    def update_game(
        db: Session,
        game_id: int,
        name: Optional[str] = None,
        current_round: Optional[int] = None,
        description: Optional[str] = None,
        started_at: Optional[datetime] = None,
        closed_at: Optional[datetime] = None
    ) -> Game:
        """
        更新遊戲名稱、目前回合和時間戳記（只更新有傳入的欄位）

        current_round 只是標記進度，不檢查對應的 Round 是否存在

        異常：
            GameNotFound: Game 不存在
            InvalidParam: current_round 小於 1
        """
        game = db.query(Game).filter(Game.id == game_id).first()
        if not game:
            raise GameNotFound(game_id)

        if current_round is not None and current_round < 1:
            raise InvalidParam(f"current round must be positive, got {current_round}")

        if name is not None:
            game.name = name
        if current_round is not None:
            game.current_round = current_round
        if description is not None:
            game.description = description
        if started_at is not None:
            game.started_at = started_at
        if closed_at is not None:
            game.closed_at = closed_at

        db.flush()
        logger.info(f"Updated game {game_id}")

        return game

    @staticmethod
    @transactional
    def delete_game(db: Session, game_id: int) -> None:
        """
        刪除遊戲

        異常：
            GameNotFound: Game 不存在
        """
        deleted = db.query(Game).filter(Game.id == game_id).delete(synchronize_session=False)
        if deleted < 1:
            raise GameNotFound(game_id)

        logger.info(f"Deleted game {game_id}")
