"""
資料模型

- Track：遊戲軌道（靜態設定，不存資料庫）
- Round：每個軌道的一期（track + period 唯一）
- Bet：下注紀錄
"""
from datetime import datetime, timezone
import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class UTCDateTime(TypeDecorator):
    """
    以 naive UTC 儲存、讀取時還原成 aware UTC 的 DateTime

    SQLite 不保存時區資訊，統一在這一層轉換，讓上層永遠拿到 aware datetime
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# ============ Enums ============

class Track(str, enum.Enum):
    """遊戲軌道，value 即對外使用的識別字"""
    THIRTY_SECONDS = "30s"
    ONE_MINUTE = "60s"
    THREE_MINUTES = "180s"
    FIVE_MINUTES = "300s"

    @property
    def duration(self) -> int:
        """每一期的長度（秒）"""
        return TRACK_DURATIONS[self]


TRACK_DURATIONS = {
    Track.THIRTY_SECONDS: 30,
    Track.ONE_MINUTE: 60,
    Track.THREE_MINUTES: 180,
    Track.FIVE_MINUTES: 300,
}


class RoundStatus(str, enum.Enum):
    OPEN = "open"
    LOCKED = "locked"
    SETTLED = "settled"


# 狀態只能往前推進
STATUS_ORDER = {
    RoundStatus.OPEN: 0,
    RoundStatus.LOCKED: 1,
    RoundStatus.SETTLED: 2,
}


class ResultColor(str, enum.Enum):
    RED_VIOLET = "red_violet"
    GREEN_VIOLET = "green_violet"
    GREEN = "green"
    RED = "red"


class Size(str, enum.Enum):
    BIG = "big"
    SMALL = "small"


class BetType(str, enum.Enum):
    COLOR = "color"
    NUMBER = "number"
    SIZE = "size"


class BetColor(str, enum.Enum):
    GREEN = "green"
    RED = "red"
    VIOLET = "violet"


class BetResult(str, enum.Enum):
    PENDING = "pending"
    WIN = "win"
    LOSE = "lose"


# ============ Tables ============

class Round(Base):
    __tablename__ = "rounds"
    __table_args__ = (
        UniqueConstraint("track", "period", name="uq_rounds_track_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    track = Column(Enum(Track, values_callable=_enum_values, native_enum=False), nullable=False, index=True)
    period = Column(String(32), nullable=False)
    start_time = Column(UTCDateTime, nullable=False, index=True)
    end_time = Column(UTCDateTime, nullable=False)
    status = Column(
        Enum(RoundStatus, values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=RoundStatus.OPEN
    )

    # 只有 settled 之後才有值
    result_number = Column(Integer, nullable=True)
    result_color = Column(Enum(ResultColor, values_callable=_enum_values, native_enum=False), nullable=True)
    result_size = Column(Enum(Size, values_callable=_enum_values, native_enum=False), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)

    bets = relationship("Bet", back_populates="round")

    def time_left(self, now: datetime) -> float:
        """距離本期結束的秒數（可能為負）"""
        return (self.end_time - now).total_seconds()

    def accepts_bets(self, now: datetime, lock_threshold: int) -> bool:
        return self.status == RoundStatus.OPEN and self.time_left(now) > lock_threshold

    def __repr__(self):
        return f"<Round {self.track.value} {self.period} {self.status.value}>"


class Bet(Base):
    __tablename__ = "bets"

    id = Column(Integer, primary_key=True, index=True)
    round_id = Column(Integer, ForeignKey("rounds.id"), nullable=False, index=True)
    track = Column(Enum(Track, values_callable=_enum_values, native_enum=False), nullable=False, index=True)
    period = Column(String(32), nullable=False)

    bet_type = Column(Enum(BetType, values_callable=_enum_values, native_enum=False), nullable=False)
    bet_value = Column(String(16), nullable=False)  # green / 7 / big ...

    amount = Column(Float, nullable=False)
    multiplier = Column(Float, nullable=False, default=1)
    total_amount = Column(Float, nullable=False)

    result = Column(
        Enum(BetResult, values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=BetResult.PENDING
    )
    payout = Column(Float, nullable=False, default=0)

    created_at = Column(UTCDateTime, default=utcnow, index=True)

    round = relationship("Round", back_populates="bets")
