"""
Round Scheduler：固定間隔輪詢，驅動所有軌道的 RoundManager.tick

設計：
- 每一輪對所有軌道同時呼叫 tick（asyncio.gather + worker thread）
- 等待所有軌道完成後才排下一輪：同一時間最多只有一輪在執行
- 單一軌道失敗只記錄 log，不影響其他軌道，也不會讓迴圈停止
  （狀態每次都從資料庫重新讀取，下一輪自然重試）
"""
from typing import Iterable, List, Optional
import asyncio
import logging
import time

from models import Round, Track
from core.exceptions import RepositoryError
from core.round_manager import RoundManager

logger = logging.getLogger(__name__)


class RoundScheduler:
    """輪詢驅動器"""

    def __init__(self, manager: RoundManager, tracks: Iterable[Track], interval_ms: int = 1000):
        self.manager = manager
        self.tracks: List[Track] = list(tracks)
        self.interval = interval_ms / 1000
        self._stopping = asyncio.Event()

    async def run(self) -> None:
        """
        主迴圈：執行一輪 -> 等待剩餘的間隔時間 -> 下一輪

        直到 stop() 被呼叫為止；stop 會在當前這一輪結束後生效
        """
        logger.info(
            f"Round scheduler started for {[t.value for t in self.tracks]} "
            f"every {self.interval:g}s"
        )
        while not self._stopping.is_set():
            started = time.monotonic()
            await self.run_once()

            remaining = self.interval - (time.monotonic() - started)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=max(0, remaining))
            except asyncio.TimeoutError:
                pass

        logger.info("Round scheduler stopped")

    async def run_once(self) -> List[Optional[Round]]:
        """對所有軌道執行一次 tick，等待全部完成"""
        return await asyncio.gather(
            *(asyncio.to_thread(self._tick_track, track) for track in self.tracks)
        )

    def stop(self) -> None:
        self._stopping.set()

    def _tick_track(self, track: Track) -> Optional[Round]:
        try:
            return self.manager.tick(track)
        except RepositoryError as e:
            logger.warning(f"[{track.value}] Tick failed, retrying next poll: {e}")
        except Exception as e:
            logger.error(f"[{track.value}] Unexpected tick failure: {e}", exc_info=True)
        return None
