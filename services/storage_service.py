"""
上傳檔案的儲存工具

只做檔案系統操作，給 artifact pipeline 與 reclaimer 使用，不碰資料庫

磁碟配置::

    {data_dir}/{year}/{game_id}/{turn_id}.zip
"""
import logging
import os
import shutil
import tempfile
import zipfile
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


def artifact_path(data_dir, game_id: int, turn_id: int, now: Optional[datetime] = None) -> Path:
    """
    計算 turn 壓縮檔的目的路徑

    年份取上傳當下的系統時間，跨年後重新上傳會落在新目錄，舊檔留在原處

    參數：
        data_dir: 資料根目錄
        game_id: Game ID
        turn_id: Turn ID
        now: 指定時間（測試用），預設為現在

    返回：
        Path: {data_dir}/{year}/{game_id}/{turn_id}.zip
    """
    year = (now or datetime.now()).year
    return Path(data_dir) / str(year) / str(game_id) / f"{turn_id}.zip"


def stage_stream(stream: BinaryIO, data_dir) -> Path:
    """
    把上傳串流複製到 data_dir 內的暫存檔

    流程：
    1. 在 data_dir 建立 .upload-*.tmp（與目的地同一檔案系統，publish 才能原子 rename）
    2. 分段複製串流內容
    3. 複製失敗時刪除暫存檔再往上拋

    參數：
        stream: 可讀的二進位串流
        data_dir: 資料根目錄

    返回：
        Path: 暫存檔路徑，呼叫者負責 publish 或 discard
    """
    Path(data_dir).mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(prefix=".upload-", suffix=".tmp", dir=data_dir)
    try:
        with os.fdopen(fd, "wb") as dst:
            shutil.copyfileobj(stream, dst, COPY_CHUNK_SIZE)
    except Exception:
        discard(Path(name))
        raise

    return Path(name)


def is_valid_zip(path: Path) -> bool:
    """
    檢查檔案能否當作 zip 開啟，沒有任何成員的壓縮檔也算合法

    zipfile 對無法解析的壓縮檔不只丟 BadZipFile（例如不支援的版本會丟
    NotImplementedError），這些都視為不合法

    返回：
        bool: 能開啟為 True
    """
    try:
        with zipfile.ZipFile(path, "r"):
            return True
    except (zipfile.BadZipFile, NotImplementedError, ValueError, EOFError, OSError):
        return False


def publish(staged: Path, destination: Path) -> None:
    """把暫存檔原子地移到目的路徑，必要時建立上層目錄"""
    destination.parent.mkdir(parents=True, exist_ok=True)
    os.replace(staged, destination)


def discard(path: Path) -> None:
    """刪除檔案，檔案已不存在時忽略"""
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def remove_artifact(path) -> None:
    """
    reclaimer 用：刪除已儲存的檔案

    檔案已不存在視為刪除成功，其他 OSError 往上拋給呼叫者

    參數：
        path: 檔案路徑

    異常：
        OSError: 檔案存在但無法刪除
    """
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.debug(f"Artifact {path} already removed")
