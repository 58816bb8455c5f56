"""
Slot alignment.

Rounds occupy fixed slots on an epoch-aligned grid, so any process (or the
same process after a restart) computes the same boundaries from the wall
clock alone. A 30-second track always starts its slots at :00 and :30.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import math

from models import Track


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime


def align_slot(track: Track, now: datetime) -> Slot:
    """
    Return the slot enclosing ``now`` for the given track.

    ``now`` must be timezone-aware. Two calls inside the same slot return the
    same Slot; adjacent slots are exactly one duration apart.
    """
    duration = track.duration
    now_ts = now.timestamp()
    start_ts = math.floor(now_ts / duration) * duration
    if start_ts + duration <= now_ts:
        start_ts += duration

    start = datetime.fromtimestamp(start_ts, tz=timezone.utc)
    return Slot(start=start, end=start + timedelta(seconds=duration))
