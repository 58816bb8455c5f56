from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from pydantic_settings import BaseSettings
from functools import lru_cache
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./color_game.db"
    db_timeout_seconds: float = 5.0

    # 封盤門檻：Round 引擎與下注檢查共用同一個值
    lock_threshold_seconds: int = 5
    poll_interval_ms: int = 1000
    min_bet_amount: float = 10

    # 期號計算使用的時區（IANA 名稱），未設定時使用系統本地時區
    period_timezone: Optional[str] = None

    history_limit: int = 20
    bets_limit: int = 20
    status_results_limit: int = 5

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()


def build_connect_args(database_url: str, timeout: float) -> dict:
    """
    依資料庫種類產生 connect_args

    SQLite 需要 check_same_thread=False（Scheduler 在 worker thread 中存取資料庫），
    其他資料庫使用 connect_timeout 讓連線失敗時能在有限時間內返回
    """
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout}
    return {"connect_timeout": int(timeout)}


engine = create_engine(
    settings.database_url,
    connect_args=build_connect_args(settings.database_url, settings.db_timeout_seconds),
    pool_pre_ping=True
)
# expire_on_commit=False：Repository 回傳的物件在 session 關閉後仍可讀取
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
Base = declarative_base()


@contextmanager
def session_scope(session_factory=None):
    """
    Transaction scope：確保資料庫操作的原子性

    使用方式：
        with session_scope() as db:
            db.add(Round(...))
            # 不需要手動 commit，離開 with 區塊時會處理

    如果區塊內發生異常：
        - 自動 rollback
        - 異常會被重新拋出（讓上層處理）

    注意：
        - IntegrityError 屬於預期內的唯一性衝突，不記錄為錯誤
        - 每次呼叫都會開一個新的 session，並在結束時關閉
    """
    factory = session_factory or SessionLocal
    db = factory()
    try:
        yield db
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except Exception as e:
        logger.error(f"Transaction failed: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()
