"""
Game status and round history.

Builds the read model the API serves: one entry per track with the current
round and its most recent settled results.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List
import math

from models import Round, Track


def seconds_remaining(round_obj: Round, now: datetime) -> int:
    """Whole seconds until the round ends, rounded up and never negative."""
    return max(0, math.ceil(round_obj.time_left(now)))


def get_game_status(repository, tracks: Iterable[Track], now: datetime, results_limit: int = 5) -> Dict[str, Dict[str, Any]]:
    """
    Return the status board keyed by track id.

    Tracks without any round yet are left out.
    """
    status: Dict[str, Dict[str, Any]] = {}

    for track in tracks:
        current = repository.find_latest_round(track)
        if current is None:
            continue

        recent = repository.find_settled_history(track, results_limit)
        status[track.value] = {
            "period": current.period,
            "status": current.status,
            "time_left": seconds_remaining(current, now),
            "round_id": current.id,
            "results": [
                {"number": r.result_number, "period": r.period}
                for r in recent
            ],
        }

    return status


def get_round_history(repository, track: Track, limit: int = 20) -> List[Round]:
    """Settled rounds for ``track``, most recent first."""
    return repository.find_settled_history(track, limit)
