from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import asyncio
from sqlalchemy.exc import SQLAlchemyError
import logging

from database import Base, engine, get_settings
from models import Track
from api import game
from api.dependencies import get_repository
from schemas import HealthResponse
from core.exceptions import InvalidRequest, RepositoryError, StateConflict, StoreUnreachable
from core.repository import RoundRepository
from core.round_manager import RoundManager
from core.scheduler import RoundScheduler
from services.period_service import validate_track_durations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    # Startup: 檢查軌道設定、建立資料表
    validate_track_durations(Track)
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        raise StoreUnreachable(f"Database unreachable at startup: {e}") from e

    manager = RoundManager(get_repository(), settings)
    for track in Track:
        try:
            manager.ensure_round(track)
        except (RepositoryError, StateConflict) as e:
            logger.warning(f"[{track.value}] Initial round not created, scheduler will retry: {e}")

    scheduler = RoundScheduler(manager, Track, settings.poll_interval_ms)
    task = asyncio.create_task(scheduler.run())
    app.state.scheduler = scheduler
    app.state.scheduler_task = task
    yield
    # Shutdown: 等待最後一輪 tick 完成
    scheduler.stop()
    await task


app = FastAPI(
    title="Color Game API",
    description="Multi-track color prediction round engine",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(game.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"detail": {"error": InvalidRequest.error_code, "message": errors}}
    )


@app.get("/")
def root():
    return {"message": "Color Game API", "status": "ok"}


@app.get("/health", response_model=HealthResponse)
def health(repository: RoundRepository = Depends(get_repository)):
    db = "connected" if repository.ping() else "not_connected"
    return HealthResponse(status="ok", db=db)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
