"""
API request / response models

JSON 欄位使用 camelCase（gameId、testClassId），Python 端使用 snake_case
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models import RobotType


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


# ============ Game ============

class GameCreate(CamelModel):
    name: str
    description: Optional[str] = None
    players: List[str] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class GameUpdate(CamelModel):
    name: Optional[str] = None
    current_round: Optional[int] = None
    description: Optional[str] = None
    started_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class GameResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    current_round: int
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


# ============ Round ============

class RoundCreate(CamelModel):
    game_id: int
    test_class_id: str
    started_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class RoundUpdate(CamelModel):
    order: Optional[int] = None
    started_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class RoundResponse(CamelModel):
    id: int
    game_id: int
    order: int
    test_class_id: str
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


# ============ Turn ============

class TurnCreate(CamelModel):
    round_id: int
    players: List[str]
    started_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class TurnUpdate(CamelModel):
    scores: Optional[str] = None
    is_winner: Optional[bool] = None
    started_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class TurnResponse(CamelModel):
    id: int
    round_id: int
    player_id: int
    scores: Optional[str] = None
    is_winner: bool
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


# ============ Robot ============

class RobotCreate(CamelModel):
    test_class_id: str
    difficulty: str
    type: str
    scores: Optional[str] = None


class RobotCreateBulk(CamelModel):
    robots: List[RobotCreate]


class RobotResponse(CamelModel):
    id: int
    test_class_id: str
    difficulty: str
    type: str
    scores: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("type", mode="before")
    @classmethod
    def type_name(cls, value):
        # 資料庫存整數，回傳小寫名稱
        if isinstance(value, int):
            return RobotType(value).name.lower()
        return value
