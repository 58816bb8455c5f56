"""
API 的 request / response 結構

下注內容是以 bet_type 區分的 tagged union，每種類型各自驗證 bet_value：
- color：green / red / violet
- number：0-9
- size：big / small
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from models import (
    BetColor,
    BetResult,
    BetType,
    ResultColor,
    RoundStatus,
    Size,
    Track,
)


# ============ Bet requests ============

class _BetPlaceBase(BaseModel):
    track: Track
    amount: float = Field(gt=0)
    multiplier: float = Field(default=1, gt=0)


class ColorBetPlace(_BetPlaceBase):
    bet_type: Literal["color"]
    bet_value: BetColor

    def stored_value(self) -> str:
        return self.bet_value.value


class NumberBetPlace(_BetPlaceBase):
    bet_type: Literal["number"]
    bet_value: int = Field(ge=0, le=9)

    def stored_value(self) -> str:
        return str(self.bet_value)


class SizeBetPlace(_BetPlaceBase):
    bet_type: Literal["size"]
    bet_value: Size

    def stored_value(self) -> str:
        return self.bet_value.value


BetPlace = Annotated[
    Union[ColorBetPlace, NumberBetPlace, SizeBetPlace],
    Field(discriminator="bet_type")
]

bet_place_adapter = TypeAdapter(BetPlace)


# ============ Responses ============

class BetOut(BaseModel):
    id: int
    round_id: int
    track: Track
    period: str
    bet_type: BetType
    bet_value: str
    amount: float
    multiplier: float
    total_amount: float
    result: BetResult
    payout: float
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BetPlacedResponse(BaseModel):
    success: bool
    bet: BetOut


class RoundOut(BaseModel):
    id: int
    track: Track
    period: str
    start_time: datetime
    end_time: datetime
    status: RoundStatus
    result_number: Optional[int] = None
    result_color: Optional[ResultColor] = None
    result_size: Optional[Size] = None

    model_config = ConfigDict(from_attributes=True)


class RecentResult(BaseModel):
    number: int
    period: str


class TrackStatus(BaseModel):
    period: str
    status: RoundStatus
    time_left: int
    round_id: int
    results: List[RecentResult]


class HealthResponse(BaseModel):
    status: str
    db: str
