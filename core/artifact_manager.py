"""
Artifact Manager：Turn 結果檔（zip）的上傳與下載

職責：
1. 驗證並保存上傳的 zip（暫存檔 -> 驗證 -> 原子 rename -> upsert metadata）
2. 取得 Turn 的檔案

檔案路徑：{data_dir}/{year}/{game_id}/{turn_id}.zip

一致性：
- rename 是檔案對讀取者「出現」的唯一時間點，讀取者不會看到寫到一半的檔案
- 同一個 turn 同時上傳：最後 rename 的檔案、最後 upsert 的 metadata 勝出，不需要額外的鎖
- rename 成功但 metadata commit 失敗：檔案會留在磁碟上沒有目錄紀錄（已知缺口，不自動修復）
"""
from pathlib import Path
from typing import BinaryIO, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Metadata, Round, Turn
from core.exceptions import (
    TurnNotFound,
    ArtifactNotFound,
    EmptyBody,
    NotAZip,
    DuplicatedKey
)
from services import storage_service
from database import transactional

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _upsert_metadata(db: Session, turn_id: int, path: str) -> None:
    """以 turn_id 為 key 新增或更新 metadata 的 path（單一 SQL 語句）"""
    insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)

    if insert is None:
        metadata = db.query(Metadata).filter(Metadata.turn_id == turn_id).first()
        if metadata:
            metadata.path = path
        else:
            db.add(Metadata(turn_id=turn_id, path=path))
        db.flush()
        return

    statement = insert(Metadata).values(turn_id=turn_id, path=path)
    statement = statement.on_conflict_do_update(
        index_elements=[Metadata.turn_id],
        set_={"path": statement.excluded.path, "updated_at": func.now()}
    )
    db.execute(statement)


class ArtifactManager:
    """Turn 檔案管理器"""

    @staticmethod
    @transactional
    def store_artifact(
        db: Session,
        turn_id: int,
        stream: Optional[BinaryIO],
        data_dir
    ) -> Metadata:
        """
        保存 Turn 的 zip 檔

        流程：
        1. 找到 Turn 所屬的 game（計算路徑需要 game_id）
        2. 檢查上傳內容不是空的
        3. 把內容完整複製到 data_dir 裡的暫存檔
        4. 用 zipfile 驗證，失敗就丟掉暫存檔
        5. 計算目的路徑 {data_dir}/{year}/{game_id}/{turn_id}.zip
        6. 建立目錄（已存在不算錯）
        7. 原子 rename 到目的路徑
        8. upsert metadata（turn_id 相同就更新 path）

        參數：
            db: SQLAlchemy Session
            turn_id: Turn ID
            stream: 可讀取 bytes 的 file-like object
            data_dir: 檔案根目錄

        返回：
            Turn 的 Metadata

        異常：
            TurnNotFound: Turn 不存在
            EmptyBody: stream 為 None
            NotAZip: 內容不是合法的 zip（空的 zip 是合法的）
        """
        # 1. 找到 game_id
        game_id = db.query(Round.game_id).join(
            Turn, Turn.round_id == Round.id
        ).filter(Turn.id == turn_id).scalar()
        if game_id is None:
            raise TurnNotFound(turn_id)

        # 2. 空內容
        if stream is None:
            raise EmptyBody()

        # 3. 寫入暫存檔
        staged = storage_service.stage_stream(stream, data_dir)

        # 4 ~ 7. 驗證並 rename，任何失敗都清掉暫存檔
        try:
            if not storage_service.is_valid_zip(staged):
                raise NotAZip()

            destination = storage_service.artifact_path(data_dir, game_id, turn_id)
            storage_service.publish(staged, destination)
        except Exception:
            storage_service.discard(staged)
            raise

        # 8. upsert metadata
        try:
            _upsert_metadata(db, turn_id, str(destination))
        except IntegrityError as e:
            raise DuplicatedKey(f"path {destination} already belongs to another turn") from e

        logger.info(f"Stored artifact for turn {turn_id} at {destination}")

        return db.query(Metadata).filter(
            Metadata.turn_id == turn_id
        ).populate_existing().one()

    @staticmethod
    def get_artifact(db: Session, turn_id: int) -> Tuple[str, BinaryIO]:
        """
        取得 Turn 的檔案

        返回：
            (檔名, 已開啟的 binary file handle)，呼叫者負責關閉

        異常：
            ArtifactNotFound: 沒有 metadata，或檔案已經不在磁碟上
                             （例如 reclaimer 在查詢和開檔之間執行）
        """
        metadata = db.query(Metadata).filter(Metadata.turn_id == turn_id).first()
        if not metadata:
            raise ArtifactNotFound(turn_id)

        try:
            handle = open(metadata.path, "rb")
        except FileNotFoundError:
            logger.warning(f"Artifact for turn {turn_id} is cataloged at {metadata.path} but missing on disk")
            raise ArtifactNotFound(turn_id)

        return Path(metadata.path).name, handle
