"""
Orphan Reclaimer：回收孤兒檔案

刪除 Turn 時 metadata.turn_id 會被設成 NULL（ON DELETE SET NULL），檔案和 metadata 都還在。
這裡是唯一會刪除 metadata 和回收檔案的地方，固定週期執行，和請求流量無關。
"""
import asyncio
import logging

from sqlalchemy.orm import Session, sessionmaker

from models import Metadata
from core.locks import lock_orphan_metadata
from services import storage_service
from database import transactional

logger = logging.getLogger(__name__)


@transactional
def reclaim(db: Session) -> int:
    """
    回收所有孤兒 metadata 和對應的檔案

    流程：
    1. 鎖定並讀出所有 turn_id IS NULL 的 metadata
    2. 逐一刪除檔案
       - 檔案已不存在：視為成功
       - 其他錯誤：記 log，保留這筆 metadata 下次再試，不中斷整批
    3. 一次刪除所有檔案已消失的 metadata

    參數：
        db: SQLAlchemy Session

    返回：
        本次處理的孤兒數量
    """
    orphans = lock_orphan_metadata(db).all()

    removed = []
    for metadata in orphans:
        try:
            storage_service.remove_artifact(metadata.path)
        except OSError as e:
            logger.error(f"Failed to remove orphan artifact {metadata.path}: {e}")
            continue
        removed.append(metadata.id)

    if removed:
        db.query(Metadata).filter(
            Metadata.id.in_(removed)
        ).delete(synchronize_session=False)

    if orphans:
        logger.info(f"Reclaimed {len(removed)} of {len(orphans)} orphan artifacts")

    return len(orphans)


def _reclaim_once(session_factory: sessionmaker) -> int:
    db = session_factory()
    try:
        return reclaim(db)
    finally:
        db.close()


async def run_periodically(interval: float, session_factory: sessionmaker) -> None:
    """
    每 interval 秒執行一次 reclaim，直到被 cancel

    單次失敗（例如資料庫斷線）只記 log，不會讓迴圈停止
    """
    logger.info(f"Orphan reclaimer started, interval {interval}s")
    while True:
        await asyncio.sleep(interval)
        try:
            count = await asyncio.to_thread(_reclaim_once, session_factory)
            logger.debug(f"Reclaimer sweep processed {count} orphans")
        except Exception as e:
            logger.error(f"Reclaimer sweep failed: {e}", exc_info=True)
