"""
Turn API Endpoints

包含 Turn 的 CRUD，以及結果檔（zip）的上傳 / 下載：
- PUT /turns/{id}/files：body 直接是 zip 內容（application/zip）
- GET /turns/{id}/files：以 attachment 串流回傳
"""
from typing import List
import logging
import tempfile

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from database import get_db, get_settings
from schemas import TurnCreate, TurnUpdate, TurnResponse
from core.turn_manager import TurnManager
from core.artifact_manager import ArtifactManager
from core.exceptions import GameRepositoryException, PayloadTooLarge
from api.errors import http_error, internal_error
from api.limits import limit_body_size

router = APIRouter(prefix="/turns", tags=["turns"])
logger = logging.getLogger(__name__)

# 上傳內容超過這個大小才會落地到磁碟
SPOOL_MAX_SIZE = 1024 * 1024
DOWNLOAD_CHUNK_SIZE = 64 * 1024


@router.post("", response_model=List[TurnResponse], status_code=201, dependencies=[Depends(limit_body_size)])
def create_turns(turn_data: TurnCreate, db: Session = Depends(get_db)):
    """為回合內每位玩家建立一個 Turn"""
    try:
        return TurnManager.create_turns(
            db,
            turn_data.round_id,
            turn_data.players,
            started_at=turn_data.started_at,
            closed_at=turn_data.closed_at
        )

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to create turns: {e}", exc_info=True)
        raise internal_error()


@router.get("", response_model=List[TurnResponse])
def list_turns(round_id: int = Query(..., alias="roundId"), db: Session = Depends(get_db)):
    try:
        return TurnManager.list_turns(db, round_id)

    except Exception as e:
        logger.error(f"Failed to list turns: {e}", exc_info=True)
        raise internal_error()


@router.get("/{turn_id}", response_model=TurnResponse)
def get_turn(turn_id: int, db: Session = Depends(get_db)):
    try:
        return TurnManager.get_turn(db, turn_id)

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to get turn: {e}", exc_info=True)
        raise internal_error()


@router.put("/{turn_id}", response_model=TurnResponse, dependencies=[Depends(limit_body_size)])
def update_turn(turn_id: int, turn_data: TurnUpdate, db: Session = Depends(get_db)):
    try:
        return TurnManager.update_turn(
            db,
            turn_id,
            scores=turn_data.scores,
            is_winner=turn_data.is_winner,
            started_at=turn_data.started_at,
            closed_at=turn_data.closed_at
        )

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to update turn: {e}", exc_info=True)
        raise internal_error()


@router.delete("/{turn_id}", status_code=204)
def delete_turn(turn_id: int, db: Session = Depends(get_db)):
    """刪除 Turn；已上傳的檔案不會立刻刪除，由 reclaimer 回收"""
    try:
        TurnManager.delete_turn(db, turn_id)
        return Response(status_code=204)

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to delete turn: {e}", exc_info=True)
        raise internal_error()


async def _read_body(request: Request, limit: int):
    """
    把 request body 讀進 SpooledTemporaryFile

    返回：
        讀取位置在開頭的 file object；body 為空時返回 None

    異常：
        PayloadTooLarge: 超過 limit
    """
    spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
    size = 0
    try:
        async for chunk in request.stream():
            size += len(chunk)
            if size > limit:
                raise PayloadTooLarge(limit)
            spool.write(chunk)
    except Exception:
        spool.close()
        raise

    if size == 0:
        spool.close()
        return None

    spool.seek(0)
    return spool


@router.put("/{turn_id}/files", status_code=200)
async def upload_file(turn_id: int, request: Request, db: Session = Depends(get_db)):
    """
    上傳 Turn 的結果檔

    流程：
    1. 讀取 body（超過 max_upload_size 回 413）
    2. 交給 ArtifactManager 驗證、保存（在 threadpool 執行，避免阻塞 event loop）

    錯誤：
        404: Turn 不存在
        400: body 為空
        422: 不是合法的 zip
    """
    settings = get_settings()
    stream = None
    try:
        stream = await _read_body(request, settings.max_upload_size)
        await run_in_threadpool(
            ArtifactManager.store_artifact, db, turn_id, stream, settings.data_dir
        )
        return Response(status_code=200)

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to upload file for turn {turn_id}: {e}", exc_info=True)
        raise internal_error()
    finally:
        if stream is not None:
            stream.close()


@router.get("/{turn_id}/files")
def download_file(turn_id: int, db: Session = Depends(get_db)):
    """下載 Turn 的結果檔（Content-Disposition: attachment）"""
    try:
        filename, handle = ArtifactManager.get_artifact(db, turn_id)

    except GameRepositoryException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to download file for turn {turn_id}: {e}", exc_info=True)
        raise internal_error()

    return StreamingResponse(
        iter(lambda: handle.read(DOWNLOAD_CHUNK_SIZE), b""),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        background=BackgroundTask(handle.close)
    )
