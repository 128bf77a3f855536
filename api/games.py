"""
Game API Endpoints
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import GameCreate, GameResponse, GameUpdate
from core.game_manager import GameManager
from core.exceptions import GameRepositoryException
from api.errors import http_error, internal_error
from api.limits import limit_body_size

router = APIRouter(prefix="/games", tags=["games"], dependencies=[Depends(limit_body_size)])
logger = logging.getLogger(__name__)


@router.post("", response_model=GameResponse, status_code=201)
def create_game(game_data: GameCreate, db: Session = Depends(get_db)):
    """建立遊戲，players 中不存在的帳號會自動登記"""
    try:
        return GameManager.create_game(
            db,
            name=game_data.name,
            players=game_data.players,
            description=game_data.description,
            started_at=game_data.started_at,
            closed_at=game_data.closed_at
        )

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to create game: {e}", exc_info=True)
        raise internal_error()


@router.get("/{game_id}", response_model=GameResponse)
def get_game(game_id: int, db: Session = Depends(get_db)):
    try:
        return GameManager.get_game(db, game_id)

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to get game: {e}", exc_info=True)
        raise internal_error()


@router.put("/{game_id}", response_model=GameResponse)
def update_game(game_id: int, game_data: GameUpdate, db: Session = Depends(get_db)):
    try:
        return GameManager.update_game(
            db,
            game_id,
            name=game_data.name,
            current_round=game_data.current_round,
            description=game_data.description,
            started_at=game_data.started_at,
            closed_at=game_data.closed_at
        )

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to update game: {e}", exc_info=True)
        raise internal_error()


@router.delete("/{game_id}", status_code=204)
def delete_game(game_id: int, db: Session = Depends(get_db)):
    """
    刪除遊戲

    Rounds、Turns 一起刪除；已上傳的檔案變成孤兒，由 reclaimer 回收
    """
    try:
        GameManager.delete_game(db, game_id)
        return Response(status_code=204)

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to delete game: {e}", exc_info=True)
        raise internal_error()
