"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

分類（error_code 是對外穩定的錯誤分類）：
- InvalidRequest：請求格式或數值不合法，不會改變任何狀態
- StateConflict：回合狀態不允許此操作，下一個有效時段重試即可
- RepositoryError：儲存層不可用或逾時，Scheduler 會在下一次輪詢自動重試
- StartupError：啟動時的致命錯誤，程式不應該開始提供服務
"""


class ColorGameException(Exception):
    """所有遊戲異常的基類"""
    error_code = "internal_error"


# ============ 分類 ============

class InvalidRequest(ColorGameException):
    error_code = "validation_error"


class StateConflict(ColorGameException):
    error_code = "state_conflict"


class RepositoryError(ColorGameException):
    error_code = "repository_error"


class StartupError(ColorGameException):
    error_code = "startup_error"


# ============ 請求驗證 ============

class InvalidTrack(InvalidRequest):
    """未知的軌道"""
    def __init__(self, track):
        self.track = track
        super().__init__(f"Unknown track: {track}")


class InvalidBet(InvalidRequest):
    """下注內容不合法（類型或數值不在允許範圍）"""
    pass


class BetBelowMinimum(InvalidRequest):
    """下注金額低於最低限額"""
    def __init__(self, amount, minimum):
        self.amount = amount
        self.minimum = minimum
        super().__init__(f"Minimum bet is {minimum:g}, got {amount:g}")


# ============ 狀態衝突 ============

class RoundNotOpen(StateConflict):
    """目前沒有開放下注的回合"""
    def __init__(self, track):
        self.track = track
        super().__init__(f"Round is not open for betting on track {track}")


class BettingClosed(StateConflict):
    """回合即將封盤（剩餘時間 <= 封盤門檻）"""
    def __init__(self, track, lock_threshold):
        self.track = track
        self.lock_threshold = lock_threshold
        super().__init__(f"Betting is closed (time left <= {lock_threshold}s)")


class DuplicateRound(StateConflict):
    """同一個 track + period 的回合已經存在"""
    def __init__(self, track, period):
        self.track = track
        self.period = period
        super().__init__(f"Round {period} already exists on track {track}")


class InvalidStateTransition(StateConflict):
    """非法的狀態轉換（狀態只能往前推進）"""
    pass


class PeriodAlreadySettled(StateConflict):
    """目前時段的期號已經結算（不能再當成進行中的回合）"""
    def __init__(self, track, period):
        self.track = track
        self.period = period
        super().__init__(f"Round {period} on track {track} is already settled")


# ============ 儲存層 ============

class RepositoryUnavailable(RepositoryError):
    """資料庫不可用或操作逾時"""
    pass


# ============ 啟動 ============

class StoreUnreachable(StartupError):
    """啟動時無法連上資料庫"""
    pass


class InvalidTrackConfiguration(StartupError):
    """軌道長度無法產生唯一的期號"""
    pass
