"""
Robot Manager：管理機器人對手的成績

職責：
1. 批次建立機器人（每批 BATCH_SIZE 筆）
2. 依 test class、難度、引擎類型挑一個機器人
3. 依 test class 刪除機器人
"""
from typing import List
import logging
import random

from sqlalchemy.orm import Session

from models import Robot, RobotType
from core.exceptions import InvalidParam, NotFound, RobotNotFound
from database import transactional

logger = logging.getLogger(__name__)

BATCH_SIZE = 100


def parse_robot_type(name: str) -> RobotType:
    """
    把 API 傳入的引擎名稱轉成 RobotType

    異常：
        InvalidParam: 不支援的引擎
    """
    try:
        return RobotType.parse(name)
    except KeyError:
        raise InvalidParam(f"unsupported test engine: {name}")


class RobotManager:
    """機器人管理器"""

    @staticmethod
    @transactional
    def create_robots(db: Session, robots: List[dict]) -> int:
        """
        批次建立機器人

        流程：
        1. 檢查每筆的引擎類型
        2. 每 BATCH_SIZE 筆 flush 一次

        參數：
            db: SQLAlchemy Session
            robots: dict 列表，欄位為 test_class_id、difficulty、type、scores

        返回：
            int: 建立的筆數

        異常：
            InvalidParam: 有不支援的引擎類型
        """
        # 1. 全部檢查完才寫入，一筆不合法整批都不建立
        rows = [
            Robot(
                test_class_id=robot["test_class_id"],
                difficulty=robot["difficulty"],
                type=int(parse_robot_type(robot["type"])),
                scores=robot.get("scores")
            )
            for robot in robots
        ]

        # 2. 分批
        for start in range(0, len(rows), BATCH_SIZE):
            db.add_all(rows[start:start + BATCH_SIZE])
            db.flush()

        logger.info(f"Created {len(rows)} robots")

        return len(rows)

    @staticmethod
    def find_robot(db: Session, test_class_id: str, difficulty: str, robot_type: str) -> Robot:
        """
        依條件挑一個機器人

        evosuite 固定取第一個（id 最小），randoop 隨機挑一個

        異常：
            InvalidParam: 不支援的引擎
            RobotNotFound: 沒有符合條件的機器人
        """
        kind = parse_robot_type(robot_type)

        ids = [
            row.id
            for row in db.query(Robot.id)
            .filter(
                Robot.test_class_id == test_class_id,
                Robot.difficulty == difficulty,
                Robot.type == int(kind)
            )
            .order_by(Robot.id)
            .all()
        ]
        if not ids:
            raise RobotNotFound(test_class_id, difficulty)

        if kind == RobotType.EVOSUITE:
            robot_id = ids[0]
        else:
            robot_id = random.choice(ids)

        return db.query(Robot).filter(Robot.id == robot_id).one()

    @staticmethod
    @transactional
    def delete_robots(db: Session, test_class_id: str) -> int:
        """
        刪除某個 test class 的所有機器人

        返回：
            int: 刪除的筆數

        異常：
            NotFound: 這個 test class 沒有任何機器人
        """
        deleted = (
            db.query(Robot)
            .filter(Robot.test_class_id == test_class_id)
            .delete(synchronize_session=False)
        )
        if deleted < 1:
            raise NotFound(f"No robots for class {test_class_id}")

        logger.info(f"Deleted {deleted} robots of class {test_class_id}")

        return deleted
