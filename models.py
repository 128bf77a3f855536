"""
資料表定義

擁有關係：
- Game 擁有 Rounds（ON DELETE CASCADE）
- Round 擁有 Turns（ON DELETE CASCADE）
- Turn 弱引用 Metadata（ON DELETE SET NULL）：刪除 Turn 只會把 metadata.turn_id 設為 NULL，
  檔案和 metadata 留給 reclaimer 回收
"""
import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class PlayerGame(Base):
    """Game 與 Player 的關聯表"""

    __tablename__ = "player_games"

    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True)
    is_winner = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Game(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    current_round = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    rounds = relationship(
        "Round",
        back_populates="game",
        order_by="Round.order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    players = relationship("Player", secondary="player_games", back_populates="games", viewonly=True)


class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    games = relationship("Game", secondary="player_games", back_populates="players", viewonly=True)


class Round(Base):
    """
    回合

    不變量：同一個 game 的 order 必須剛好是 1..N（N = 回合數），不能有空洞或重複
    由 RoundManager 在每次 create / delete / update 的 transaction 內維持
    """

    __tablename__ = "rounds"
    __table_args__ = (
        Index("idx_rounds_game_order", "game_id", "order"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False)
    order = Column(Integer, nullable=False, default=1)
    test_class_id = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    game = relationship("Game", back_populates="rounds")
    turns = relationship("Turn", back_populates="round", cascade="all, delete-orphan", passive_deletes=True)


class Turn(Base):
    __tablename__ = "turns"
    __table_args__ = (
        UniqueConstraint("player_id", "round_id", name="idx_playerturn"),
        # id 不可重用，否則新的 turn 會拿到孤兒 metadata 的檔案路徑
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    round_id = Column(Integer, ForeignKey("rounds.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    scores = Column(Text, nullable=True)
    is_winner = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    round = relationship("Round", back_populates="turns")
    player = relationship("Player")
    artifact = relationship("Metadata", back_populates="turn", uselist=False, passive_deletes=True)


class Metadata(Base):
    """Turn 上傳檔案的目錄：turn_id 為 NULL 代表孤兒，等待 reclaimer 回收"""

    __tablename__ = "metadata"

    id = Column(Integer, primary_key=True, autoincrement=True)
    turn_id = Column(Integer, ForeignKey("turns.id", ondelete="SET NULL"), nullable=True, unique=True)
    path = Column(String(1024), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    turn = relationship("Turn", back_populates="artifact")


class RobotType(enum.IntEnum):
    """測試引擎類型，資料庫存整數、API 使用小寫名稱"""

    RANDOOP = 0
    EVOSUITE = 1

    @classmethod
    def parse(cls, name: str) -> "RobotType":
        """名稱不分大小寫；不認得的名稱丟 KeyError"""
        return cls[name.upper()]


class Robot(Base):
    """
    預先產生的機器人對手成績，依 (test_class_id, difficulty, type) 查詢
    """

    __tablename__ = "robots"
    __table_args__ = (
        Index("idx_robotquery", "test_class_id", "difficulty", "type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    test_class_id = Column(String(255), nullable=False)
    scores = Column(Text, nullable=True)
    difficulty = Column(String(255), nullable=False)
    type = Column(SmallInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
