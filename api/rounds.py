"""
Round API Endpoints

重點：
1. 所有 order 相關邏輯集中在 RoundManager
2. 刪除回合後，同一個 game 後面的回合 order 會自動往前補
"""
from typing import List

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

import logging

from database import get_db
from schemas import RoundCreate, RoundUpdate, RoundResponse
from core.round_manager import RoundManager
from core.exceptions import GameRepositoryException
from api.errors import http_error, internal_error
from api.limits import limit_body_size

router = APIRouter(prefix="/rounds", tags=["rounds"], dependencies=[Depends(limit_body_size)])
logger = logging.getLogger(__name__)


@router.post("", response_model=RoundResponse, status_code=201)
def create_round(round_data: RoundCreate, db: Session = Depends(get_db)):
    """
    建立回合

    order 由伺服器決定：game 目前的回合數 + 1
    """
    try:
        return RoundManager.create_round(
            db,
            round_data.game_id,
            round_data.test_class_id,
            started_at=round_data.started_at,
            closed_at=round_data.closed_at
        )

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to create round: {e}", exc_info=True)
        raise internal_error()


@router.get("", response_model=List[RoundResponse])
def list_rounds(game_id: int = Query(..., alias="gameId"), db: Session = Depends(get_db)):
    """取得 game 的所有回合（依 order 排序）"""
    try:
        return RoundManager.list_rounds(db, game_id)

    except Exception as e:
        logger.error(f"Failed to list rounds: {e}", exc_info=True)
        raise internal_error()


@router.get("/{round_id}", response_model=RoundResponse)
def get_round(round_id: int, db: Session = Depends(get_db)):
    try:
        return RoundManager.get_round(db, round_id)

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to get round: {e}", exc_info=True)
        raise internal_error()


@router.put("/{round_id}", response_model=RoundResponse)
def update_round(round_id: int, round_data: RoundUpdate, db: Session = Depends(get_db)):
    """
    更新回合

    order 只能維持不變，或設成 game 目前的回合數（移到最後），其他值回 400
    """
    try:
        return RoundManager.update_round(
            db,
            round_id,
            order=round_data.order,
            started_at=round_data.started_at,
            closed_at=round_data.closed_at
        )

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to update round: {e}", exc_info=True)
        raise internal_error()


@router.delete("/{round_id}", status_code=204)
def delete_round(round_id: int, db: Session = Depends(get_db)):
    try:
        RoundManager.delete_round(db, round_id)
        return Response(status_code=204)

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to delete round: {e}", exc_info=True)
        raise internal_error()
