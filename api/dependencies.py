"""
FastAPI dependencies

測試時可以透過 app.dependency_overrides 換成 in-memory 的 repository 與固定時鐘
"""
from datetime import datetime
from functools import lru_cache
from typing import Callable

from fastapi import Depends

from database import Settings, get_settings
from models import utcnow
from core.bet_manager import BetManager
from core.repository import RoundRepository, SqlAlchemyRoundRepository


@lru_cache()
def get_repository() -> RoundRepository:
    return SqlAlchemyRoundRepository()


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_bet_manager(
    repository: RoundRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> BetManager:
    return BetManager(repository, settings, clock)
