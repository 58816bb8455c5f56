"""
開獎服務：產生 0-9 的號碼，並推導顏色與大小

純計算邏輯，除了消耗亂數之外沒有副作用
"""
from dataclasses import dataclass
import secrets

from models import ResultColor, Size


@dataclass(frozen=True)
class Outcome:
    number: int
    color: ResultColor
    size: Size


def classify_color(number: int) -> ResultColor:
    """
    號碼對應的顏色

    ┌──────────┬──────────────┐
    │ 號碼      │ 顏色          │
    ├──────────┼──────────────┤
    │ 0        │ red_violet   │
    │ 5        │ green_violet │
    │ 1 3 7 9  │ green        │
    │ 2 4 6 8  │ red          │
    └──────────┴──────────────┘
    """
    if number == 0:
        return ResultColor.RED_VIOLET
    elif number == 5:
        return ResultColor.GREEN_VIOLET
    elif number % 2 == 1:
        return ResultColor.GREEN
    else:
        return ResultColor.RED


def classify_size(number: int) -> Size:
    """5-9 為大，0-4 為小"""
    return Size.BIG if number >= 5 else Size.SMALL


def classify(number: int) -> Outcome:
    if not 0 <= number <= 9:
        raise ValueError(f"Outcome number must be 0-9, got {number}")
    return Outcome(number=number, color=classify_color(number), size=classify_size(number))


def generate_outcome() -> Outcome:
    """
    產生一期的開獎結果

    注意：
        - 使用 secrets（作業系統的密碼學亂數），不使用 random
    """
    return classify(secrets.randbelow(10))
