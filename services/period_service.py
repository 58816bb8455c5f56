"""
期號服務：把 (軌道, 時段開始時間) 編碼成唯一且可排序的期號

純計算邏輯，不涉及狀態轉換

期號格式：YYYYMMDD + 軌道秒數 + 當日第幾期（4 位數補零）
範例：30 秒軌道在 2025-01-15 10:00:00 開始的那一期
    10:00:00 距午夜 36000 秒 -> 36000 // 30 + 1 = 1201
    期號 = "20250115" + "30" + "1201" = "20250115301201"
"""
from datetime import datetime, time, timezone, tzinfo
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from models import Track
from core.exceptions import InvalidTrackConfiguration

SECONDS_PER_DAY = 86400
MAX_PERIOD_NUMBER = 9999


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """
    取得期號計算用的時區

    參數：
        name: IANA 時區名稱（例如 Asia/Taipei），None 表示使用系統本地時區

    注意：
        - 整個系統必須使用同一個時區，否則同一個時段會被編成不同期號
    """
    if name:
        return ZoneInfo(name)
    return datetime.now().astimezone().tzinfo


def period_number(track: Track, start: datetime, tz: tzinfo) -> int:
    """
    當日第幾期（1 起算，每天本地午夜歸零）

    經過秒數是從本地午夜起算的實際秒數，不是時分秒欄位相加：
    日光節約時間結束那天重複的一小時仍然會得到不同的期號（當天共 25 小時）
    """
    local = start.astimezone(tz)
    midnight = datetime.combine(local.date(), time(0), tzinfo=tz)
    # 換成 UTC 再相減，同一個 tzinfo 的 aware datetime 相減會忽略 offset 變化
    elapsed = int((start.astimezone(timezone.utc) - midnight.astimezone(timezone.utc)).total_seconds())
    return elapsed // track.duration + 1


def encode_period(track: Track, start: datetime, tz: tzinfo) -> str:
    """
    將時段開始時間編碼成期號

    參數：
        track: 軌道
        start: 時段開始時間（aware datetime）
        tz: 期號使用的參考時區

    返回：
        期號字串

    異常：
        InvalidTrackConfiguration: 期號超過 4 位數（期號不再唯一）
    """
    number = period_number(track, start, tz)
    if number > MAX_PERIOD_NUMBER:
        raise InvalidTrackConfiguration(
            f"Period number {number} exceeds {MAX_PERIOD_NUMBER} for track {track.value}"
        )
    local = start.astimezone(tz)
    return f"{local:%Y%m%d}{track.duration}{number:04d}"


def validate_track_durations(tracks: Iterable[Track]) -> None:
    """
    啟動時檢查軌道設定

    規則：
    - 長度必須是正整數，且能整除 86400（每天的期數固定）
    - 每天的期數不能超過 9999（期號只保留 4 位數）

    異常：
        InvalidTrackConfiguration: 任一軌道不符合規則
    """
    for track in tracks:
        duration = track.duration
        if not isinstance(duration, int) or duration <= 0:
            raise InvalidTrackConfiguration(
                f"Track {track.value} duration must be a positive integer, got {duration!r}"
            )
        if SECONDS_PER_DAY % duration != 0:
            raise InvalidTrackConfiguration(
                f"Track {track.value} duration {duration}s does not divide one day"
            )
        if SECONDS_PER_DAY // duration > MAX_PERIOD_NUMBER:
            raise InvalidTrackConfiguration(
                f"Track {track.value} has more than {MAX_PERIOD_NUMBER} periods per day"
            )
