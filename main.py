from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from pathlib import Path
import asyncio
import logging

from database import Base, engine, SessionLocal, get_settings
from api import games, rounds, turns, robots
from core import reclaimer
import models  # noqa: F401  註冊所有資料表

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # Startup: 建立資料庫表和檔案根目錄
    Base.metadata.create_all(bind=engine)
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)

    # 孤兒檔案回收：固定週期執行，和請求流量無關
    cleanup_task = asyncio.create_task(
        reclaimer.run_periodically(settings.cleanup_interval, SessionLocal)
    )
    yield
    # Shutdown: 停止回收
    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        logger.info("Orphan reclaimer stopped")


app = FastAPI(
    title="Game Repository API",
    description="Record-keeping service for games, rounds, turns and turn result archives",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Authorization"],
    expose_headers=["Link"],
    max_age=300,
)

# Include routers
api_router = APIRouter(prefix=get_settings().api_prefix)
api_router.include_router(games.router)
api_router.include_router(rounds.router)
api_router.include_router(turns.router)
api_router.include_router(robots.router)
app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
