"""
Round Manager：管理 Round 的完整生命週期

職責：
1. 建立 Round（對齊時間格 + 期號編碼）
2. 封盤（open -> locked）
3. 結算（locked/open -> settled，寫入開獎結果）
4. 結算後立即建立下一期

原則：
- 不在記憶體保存排程狀態：每次 tick 都從牆鐘時間與資料庫重新推導
  （重啟、重複 tick 都會自動收斂到正確狀態）
- 所有狀態變更經過條件式更新，狀態只會往前推進
"""
from datetime import datetime
from typing import Callable, Optional
import logging

from models import Round, RoundStatus, STATUS_ORDER, Track, utcnow
from core.exceptions import DuplicateRound, InvalidStateTransition, PeriodAlreadySettled
from core.repository import RoundRepository
from services.outcome_service import Outcome, generate_outcome
from services.period_service import encode_period, resolve_timezone
from services.slot_service import align_slot
from services.grading_service import BetGrader, grade_round_bets
from database import Settings, get_settings

logger = logging.getLogger(__name__)


class RoundManager:
    """Round 生命週期管理器"""

    def __init__(
        self,
        repository: RoundRepository,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
        outcome_generator: Callable[[], Outcome] = generate_outcome,
        grader: Optional[BetGrader] = None,
        tz=None
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.clock = clock
        self.outcome_generator = outcome_generator
        self.grader = grader
        self.tz = tz or resolve_timezone(self.settings.period_timezone)

    @property
    def lock_threshold(self) -> int:
        return self.settings.lock_threshold_seconds

    def ensure_round(self, track: Track) -> Round:
        """
        確保軌道上有一個進行中的回合

        流程：
        1. 取得最新一期
        2. 如果還沒結算，直接返回（不建立新回合）
        3. 否則依目前時間對齊時間格、計算期號
        4. 該期號已存在就返回既有回合，不存在才建立

        參數：
            track: 軌道

        返回：
            目前的 Round

        注意：
            - 冪等：重複呼叫、並發呼叫都只會有一個回合
            - 重啟後會從牆鐘時間推導出同一個期號，找到既有回合而不是重建

        異常：
            PeriodAlreadySettled: 目前時段的期號已經結算（時鐘回撥或期號碰撞），
                不會把已結算的回合當成目前的回合
        """
        latest = self.repository.find_latest_round(track)
        if latest is not None and latest.status != RoundStatus.SETTLED:
            return latest

        slot = align_slot(track, self.clock())
        period = encode_period(track, slot.start, self.tz)

        existing = self.repository.find_round(track, period)
        if existing is not None:
            return self._current(existing)

        try:
            round_obj = self.repository.create_round(track, period, slot.start, slot.end)
        except DuplicateRound:
            # 另一個 writer 剛好建立了同一期
            logger.info(f"[{track.value}] Round {period} already created, reusing it")
            return self._current(self.repository.find_round(track, period))

        logger.info(
            f"[{track.value}] Opened round {period} "
            f"({slot.start.isoformat()} - {slot.end.isoformat()})"
        )
        return round_obj

    def tick(self, track: Track) -> Optional[Round]:
        """
        推進一個軌道的狀態（Scheduler 每次輪詢呼叫一次）

        規則：
        - 沒有回合或已結算 -> ensure_round
        - 0 < 剩餘時間 <= 封盤門檻，且狀態為 open -> locked
        - 剩餘時間 <= 0 且尚未結算 -> settle
        - 其他情況不做事

        返回：
            tick 之後的最新回合
        """
        round_obj = self.repository.find_latest_round(track)
        if round_obj is None or round_obj.status == RoundStatus.SETTLED:
            return self.ensure_round(track)

        time_left = round_obj.time_left(self.clock())

        if time_left <= 0:
            return self.settle(round_obj)

        if time_left <= self.lock_threshold and round_obj.status == RoundStatus.OPEN:
            return self._transition(round_obj, RoundStatus.LOCKED)

        return round_obj

    def settle(self, round_obj: Round) -> Round:
        """
        結算回合並立即開啟下一期

        流程：
        1. 產生開獎結果
        2. 一次條件式更新寫入結果與 settled 狀態
        3. 有設定 grader 時結算注單
        4. 立即 ensure_round，不等下一次輪詢

        返回：
            新開啟的下一期 Round

        注意：
            - 如果狀態已被其他 writer 結算，視為正常（不會覆寫結果）
        """
        track = round_obj.track
        if round_obj.status != RoundStatus.SETTLED:
            outcome = self.outcome_generator()
            settled = self.repository.update_round_status(
                round_obj.id, round_obj.status, RoundStatus.SETTLED, outcome
            )
            if settled:
                logger.info(
                    f"[{track.value}] Settled round {round_obj.period}: "
                    f"{outcome.number} {outcome.color.value} {outcome.size.value}"
                )
                if self.grader is not None:
                    graded = grade_round_bets(self.repository, round_obj, outcome, self.grader)
                    logger.info(f"[{track.value}] Graded {graded} bets for round {round_obj.period}")
            else:
                logger.info(f"[{track.value}] Round {round_obj.period} was already advanced by another writer")

        return self.ensure_round(track)

    def _current(self, round_obj: Round) -> Round:
        """目前時段的既有回合；已結算就拒絕，避免軌道停在舊回合上"""
        if round_obj.status == RoundStatus.SETTLED:
            logger.error(
                f"[{round_obj.track.value}] Current slot maps to settled round {round_obj.period}, "
                f"refusing to reuse it"
            )
            raise PeriodAlreadySettled(round_obj.track.value, round_obj.period)
        return round_obj

    def _transition(self, round_obj: Round, new_status: RoundStatus) -> Round:
        """
        條件式狀態轉換；被其他 writer 搶先推進時不視為錯誤

        注意：
            - tick 只會以 open -> locked 呼叫，往回或原地轉換的檢查是防呆，
              正常流程不會觸發；真正的並發保護在 update_round_status 的條件式更新
        """
        if STATUS_ORDER[new_status] <= STATUS_ORDER[round_obj.status]:
            raise InvalidStateTransition(
                f"Cannot move round {round_obj.period} from {round_obj.status.value} to {new_status.value}"
            )

        if self.repository.update_round_status(round_obj.id, round_obj.status, new_status):
            logger.info(f"[{round_obj.track.value}] Round {round_obj.period} -> {new_status.value}")
            round_obj.status = new_status
        else:
            logger.info(
                f"[{round_obj.track.value}] Round {round_obj.period} status changed concurrently, "
                f"skipping {new_status.value}"
            )
        return round_obj
