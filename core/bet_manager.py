"""
Bet Manager：下注驗證與紀錄

職責：
1. 驗證下注內容（金額、類型對應的數值）
2. 確認軌道目前有開放下注的回合
3. 建立注單

注意：
- 封盤門檻與 RoundManager 共用 Settings.lock_threshold_seconds，
  避免注單在封盤前最後一刻被接受
- 不鎖定回合：檢查狀態到寫入之間封盤的極小競態是可接受的
"""
from datetime import datetime
from typing import Callable, List, Optional
import logging

from pydantic import ValidationError

from models import Bet, BetType, RoundStatus, Track, utcnow
from schemas import BetPlace, bet_place_adapter
from core.exceptions import (
    BetBelowMinimum,
    BettingClosed,
    InvalidBet,
    InvalidTrack,
    RoundNotOpen,
)
from core.repository import RoundRepository
from database import Settings, get_settings

logger = logging.getLogger(__name__)


def parse_track(value) -> Track:
    """
    將字串轉成 Track

    異常：
        InvalidTrack: 未知的軌道
    """
    try:
        return Track(value)
    except ValueError:
        raise InvalidTrack(value)


def parse_bet_request(payload: dict) -> BetPlace:
    """
    將原始 payload 轉成 tagged union 的下注請求

    異常：
        InvalidBet: 缺少欄位、類型不存在、數值不在允許範圍
    """
    try:
        return bet_place_adapter.validate_python(payload)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidBet(f"Invalid bet: {errors}") from e


class BetManager:
    """下注管理器"""

    def __init__(
        self,
        repository: RoundRepository,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.clock = clock

    def place_bet(self, request: BetPlace) -> Bet:
        """
        下注

        前置條件：
        1. 金額 >= 最低下注額
        2. 軌道最新一期必須是 open
        3. 剩餘時間必須 > 封盤門檻

        參數：
            request: 已通過類型驗證的下注請求

        返回：
            建立的 Bet

        異常：
            BetBelowMinimum: 金額低於最低限額
            RoundNotOpen: 沒有開放下注的回合
            BettingClosed: 即將封盤
        """
        # 1. 驗證金額
        minimum = self.settings.min_bet_amount
        if request.amount < minimum:
            raise BetBelowMinimum(request.amount, minimum)

        # 2. 找到目前的回合
        track = request.track
        round_obj = self.repository.find_latest_round(track)
        if round_obj is None or round_obj.status != RoundStatus.OPEN:
            raise RoundNotOpen(track.value)

        # 3. 檢查剩餘時間
        threshold = self.settings.lock_threshold_seconds
        if not round_obj.accepts_bets(self.clock(), threshold):
            raise BettingClosed(track.value, threshold)

        # 4. 建立注單
        bet = self.repository.create_bet(
            round_obj,
            BetType(request.bet_type),
            request.stored_value(),
            request.amount,
            request.multiplier
        )

        logger.info(
            f"[{track.value}] Bet {bet.id} on round {round_obj.period}: "
            f"{request.bet_type}={bet.bet_value} x{request.multiplier:g} total={bet.total_amount:g}"
        )
        return bet

    def list_bets(self, track: Optional[Track] = None, limit: Optional[int] = None) -> List[Bet]:
        """最新的注單（沒有使用者概念，回傳全部）"""
        return self.repository.find_bets(track, limit or self.settings.bets_limit)
