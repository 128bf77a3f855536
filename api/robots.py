"""
Robot API Endpoints
"""
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import RobotCreateBulk, RobotResponse
from core.robot_manager import RobotManager
from core.exceptions import GameRepositoryException
from api.errors import http_error, internal_error
from api.limits import limit_body_size

router = APIRouter(prefix="/robots", tags=["robots"], dependencies=[Depends(limit_body_size)])
logger = logging.getLogger(__name__)


@router.get("", response_model=RobotResponse)
def find_robot(
    test_class_id: str = Query("", alias="testClassId"),
    difficulty: str = Query(""),
    robot_type: str = Query("randoop", alias="type"),
    db: Session = Depends(get_db)
):
    """
    依條件挑一個機器人

    evosuite 回傳第一個符合的，randoop 隨機挑一個
    """
    try:
        return RobotManager.find_robot(db, test_class_id, difficulty, robot_type)

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to find robot: {e}", exc_info=True)
        raise internal_error()


@router.post("", status_code=201)
def create_robots(robot_data: RobotCreateBulk, db: Session = Depends(get_db)):
    try:
        created = RobotManager.create_robots(
            db,
            [robot.model_dump() for robot in robot_data.robots]
        )
        return {"created": created}

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to create robots: {e}", exc_info=True)
        raise internal_error()


@router.delete("", status_code=204)
def delete_robots(test_class_id: str = Query("", alias="testClassId"), db: Session = Depends(get_db)):
    try:
        RobotManager.delete_robots(db, test_class_id)
        return Response(status_code=204)

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to delete robots: {e}", exc_info=True)
        raise internal_error()
