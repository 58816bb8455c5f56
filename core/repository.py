"""
Round Repository：Round 和 Bet 的儲存介面

RoundManager 與 BetManager 只透過這個介面存取資料，不直接操作 Session

並發保證（由資料庫負責，不靠應用層判斷）：
- (track, period) 有唯一性約束：重複建立會得到 DuplicateRound
- 狀態更新是條件式 UPDATE（WHERE status = expected）：
  另一個 writer 先推進狀態時，更新回傳 False
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy import text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from database import session_scope
from models import Bet, BetResult, BetType, Round, RoundStatus, Track
from core.exceptions import DuplicateRound, RepositoryUnavailable

logger = logging.getLogger(__name__)


class RoundRepository(ABC):
    """Round / Bet 儲存介面"""

    @abstractmethod
    def find_latest_round(self, track: Track) -> Optional[Round]:
        """start_time 最新的一期"""

    @abstractmethod
    def find_round(self, track: Track, period: str) -> Optional[Round]:
        """依期號查詢"""

    @abstractmethod
    def create_round(self, track: Track, period: str, start_time: datetime, end_time: datetime) -> Round:
        """建立 open 狀態的回合；(track, period) 已存在時拋出 DuplicateRound"""

    @abstractmethod
    def update_round_status(self, round_id: int, expected: RoundStatus, new: RoundStatus, outcome=None) -> bool:
        """條件式更新狀態；False 表示狀態已被其他 writer 推進"""

    @abstractmethod
    def find_settled_history(self, track: Track, limit: int) -> List[Round]:
        """已結算的回合，最新的在前"""

    @abstractmethod
    def create_bet(
        self,
        round_obj: Round,
        bet_type: BetType,
        bet_value: str,
        amount: float,
        multiplier: float
    ) -> Bet:
        """建立注單"""

    @abstractmethod
    def find_bets(self, track: Optional[Track] = None, limit: int = 20) -> List[Bet]:
        """注單列表，最新的在前"""

    @abstractmethod
    def find_pending_bets(self, round_id: int) -> List[Bet]:
        """尚未結算的注單"""

    @abstractmethod
    def grade_bet(self, bet_id: int, result: BetResult, payout: float) -> bool:
        """條件式寫入輸贏（只更新 pending 的注單）"""

    @abstractmethod
    def ping(self) -> bool:
        """資料庫是否可連線"""


class SqlAlchemyRoundRepository(RoundRepository):
    """
    SQLAlchemy 實作

    每個方法各自開一個短 session（session_scope），
    因此可以安全地在多個 worker thread 中同時使用
    """

    def __init__(self, session_factory=None):
        self._session_factory = session_factory

    @contextmanager
    def _session(self):
        try:
            with session_scope(self._session_factory) as db:
                yield db
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            raise RepositoryUnavailable(f"Repository operation failed: {e.__class__.__name__}") from e

    def find_latest_round(self, track: Track) -> Optional[Round]:
        with self._session() as db:
            return db.query(Round).filter(
                Round.track == track
            ).order_by(Round.start_time.desc(), Round.id.desc()).first()

    def find_round(self, track: Track, period: str) -> Optional[Round]:
        with self._session() as db:
            return db.query(Round).filter(
                Round.track == track,
                Round.period == period
            ).first()

    def create_round(self, track: Track, period: str, start_time: datetime, end_time: datetime) -> Round:
        try:
            with self._session() as db:
                round_obj = Round(
                    track=track,
                    period=period,
                    start_time=start_time,
                    end_time=end_time,
                    status=RoundStatus.OPEN
                )
                db.add(round_obj)
                db.flush()  # 取得 round_obj.id，唯一性衝突在這裡發生
                return round_obj
        except IntegrityError as e:
            raise DuplicateRound(track.value, period) from e

    def update_round_status(self, round_id: int, expected: RoundStatus, new: RoundStatus, outcome=None) -> bool:
        values = {"status": new}
        if outcome is not None:
            values.update(
                result_number=outcome.number,
                result_color=outcome.color,
                result_size=outcome.size
            )

        with self._session() as db:
            result = db.execute(
                update(Round)
                .where(Round.id == round_id, Round.status == expected)
                .values(**values)
            )
            return result.rowcount == 1

    def find_settled_history(self, track: Track, limit: int) -> List[Round]:
        with self._session() as db:
            return db.query(Round).filter(
                Round.track == track,
                Round.status == RoundStatus.SETTLED
            ).order_by(Round.start_time.desc()).limit(limit).all()

    def create_bet(
        self,
        round_obj: Round,
        bet_type: BetType,
        bet_value: str,
        amount: float,
        multiplier: float
    ) -> Bet:
        with self._session() as db:
            bet = Bet(
                round_id=round_obj.id,
                track=round_obj.track,
                period=round_obj.period,
                bet_type=bet_type,
                bet_value=bet_value,
                amount=amount,
                multiplier=multiplier,
                total_amount=amount * multiplier,
                result=BetResult.PENDING,
                payout=0
            )
            db.add(bet)
            db.flush()
            return bet

    def find_bets(self, track: Optional[Track] = None, limit: int = 20) -> List[Bet]:
        with self._session() as db:
            query = db.query(Bet)
            if track is not None:
                query = query.filter(Bet.track == track)
            return query.order_by(Bet.created_at.desc(), Bet.id.desc()).limit(limit).all()

    def find_pending_bets(self, round_id: int) -> List[Bet]:
        with self._session() as db:
            return db.query(Bet).filter(
                Bet.round_id == round_id,
                Bet.result == BetResult.PENDING
            ).order_by(Bet.id).all()

    def grade_bet(self, bet_id: int, result: BetResult, payout: float) -> bool:
        with self._session() as db:
            updated = db.execute(
                update(Bet)
                .where(Bet.id == bet_id, Bet.result == BetResult.PENDING)
                .values(result=result, payout=payout)
            )
            return updated.rowcount == 1

    def ping(self) -> bool:
        try:
            with self._session() as db:
                db.execute(text("SELECT 1"))
            return True
        except RepositoryUnavailable:
            logger.warning("Database ping failed")
            return False
