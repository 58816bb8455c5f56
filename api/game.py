"""
Game API Endpoints - 短輪詢版

職責：
1. 各軌道目前的回合狀態（前端每秒輪詢）
2. 已結算的歷史紀錄
3. 下注與注單列表

錯誤回應：
    {"detail": {"error": "<error_code>", "message": "..."}}
    - validation_error -> 400
    - state_conflict -> 409
    - 其他錯誤 -> 500 "Internal error"（不回傳內部細節）
"""
from datetime import datetime
from typing import Callable, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
import logging

from database import Settings, get_settings
from models import Track
from schemas import BetOut, BetPlacedResponse, RoundOut, TrackStatus
from core.bet_manager import BetManager, parse_bet_request, parse_track
from core.exceptions import ColorGameException, InvalidRequest, StateConflict
from core.repository import RoundRepository
from services.history_service import get_game_status, get_round_history
from api.dependencies import get_bet_manager, get_clock, get_repository

router = APIRouter(prefix="/api/game", tags=["game"])
logger = logging.getLogger(__name__)


def _error(status_code: int, exc: ColorGameException) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": exc.error_code, "message": str(exc)}
    )


@router.get("/status", response_model=Dict[str, TrackStatus])
def get_status(
    repository: RoundRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock)
):
    """
    取得所有軌道的目前狀態

    返回（以軌道為 key）：
        - period: 期號
        - status: open / locked / settled
        - time_left: 剩餘秒數（無條件進位，最小 0）
        - round_id: 回合 ID
        - results: 最近 5 期的開獎號碼
    """
    try:
        return get_game_status(repository, list(Track), clock(), settings.status_results_limit)
    except Exception as e:
        logger.error(f"Failed to get game status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/history/{track}", response_model=List[RoundOut])
def get_history(
    track: str,
    repository: RoundRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings)
):
    """
    取得軌道已結算的回合（最新的在前）

    參數：
        track: 軌道（30s / 60s / 180s / 300s）
    """
    try:
        rounds = get_round_history(repository, parse_track(track), settings.history_limit)
        return [RoundOut.model_validate(r) for r in rounds]
    except InvalidRequest as e:
        raise _error(400, e)
    except Exception as e:
        logger.error(f"Failed to get history for {track}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/bet", response_model=BetPlacedResponse)
def place_bet(
    bet_data: dict = Body(...),
    manager: BetManager = Depends(get_bet_manager)
):
    """
    下注

    請求內容依 bet_type 驗證（color / number / size），不合法回傳 400

    前置條件：
    - 金額 >= 最低下注額
    - 軌道目前的回合必須是 open，且剩餘時間 > 封盤門檻

    返回：
        - success: True
        - bet: 建立的注單
    """
    try:
        bet = manager.place_bet(parse_bet_request(bet_data))
        return BetPlacedResponse(success=True, bet=BetOut.model_validate(bet))

    except InvalidRequest as e:
        raise _error(400, e)
    except StateConflict as e:
        raise _error(409, e)
    except Exception as e:
        logger.error(f"Failed to place bet: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/my-bets", response_model=List[BetOut])
def get_bets(
    track: Optional[str] = Query(None),
    manager: BetManager = Depends(get_bet_manager)
):
    """
    取得最新的注單

    沒有登入機制，無法區分使用者，因此回傳所有人的最新注單

    參數：
        track: 只看某個軌道（可省略）
    """
    try:
        track_filter = parse_track(track) if track else None
        return [BetOut.model_validate(b) for b in manager.list_bets(track_filter)]

    except InvalidRequest as e:
        raise _error(400, e)
    except Exception as e:
        logger.error(f"Failed to list bets: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
