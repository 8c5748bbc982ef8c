"""Background loop that delivers expired timers.

Every ``interval_seconds`` the scheduler asks the API for expired timers and,
one at a time and in the order returned, sends the notification and marks
the timer completed. The timer is completed even when the notification
could not be delivered, so an unreachable channel does not cause endless
redelivery. Nothing is persisted locally: "expired and not completed" on the
API side is the only state, so a restart simply resumes polling.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from cachetools import TTLCache  # type: ignore[import-untyped]

from ..models import Timer
from .notifier import TimerNotifier
from .timer_api import CompleteOutcome, TimerAPIClient

logger = logging.getLogger("timerbot.scheduler")

DEFAULT_INTERVAL_SECONDS = 30.0
# TickResult.error when the store could not be asked for expired timers
LIST_UNAVAILABLE = "list_expired unavailable"


@dataclass
class TimerFailure:
    timer_id: int
    stage: str  # "notify" or "complete"
    reason: str


@dataclass
class TickResult:
    """What happened during one poll."""

    skipped: bool = False
    processed: int = 0
    delivered: int = 0
    completed: int = 0
    failures: list[TimerFailure] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failures


class ExpirationScheduler:
    def __init__(
        self,
        timer_api: TimerAPIClient,
        notifier: TimerNotifier,
        is_ready: Callable[[], bool],
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self.timer_api = timer_api
        self.notifier = notifier
        self.is_ready = is_ready
        self.interval_seconds = interval_seconds

        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

        # timer id -> True for timers notified whose completion has not gone through yet
        self._delivered: TTLCache = TTLCache(maxsize=1024, ttl=3600)

        self.last_result: TickResult | None = None
        self.last_tick_at: datetime | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name="timer-expiration-scheduler")

    async def stop(self) -> None:
        """Stop after the current tick; in-flight deliveries are not interrupted."""
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def run(self) -> None:
        logger.info(f"Timer scheduler started, polling every {self.interval_seconds:g}s")

        while not self._stop_event.is_set():
            self.last_result = await self.run_tick()
            self.last_tick_at = datetime.now(timezone.utc)

            if self._stop_event.is_set():
                break

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("Timer scheduler stopped")

    async def run_tick(self) -> TickResult:
        """Poll once. Never raises except on cancellation."""
        if not self.is_ready():
            logger.debug("Discord client not ready, skipping timer check")
            return TickResult(skipped=True)

        result = TickResult()
        try:
            timers = await self.timer_api.list_expired()
            if timers is None:
                logger.warning("Could not get expired timers from the API")
                result.error = LIST_UNAVAILABLE
                return result

            if not timers:
                logger.debug("No expired timers found")
                return result

            logger.info(f"Found {len(timers)} expired timer(s)")
            for timer in timers:
                await self._process(timer, result)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Error checking expired timers: {e}")
            result.error = f"{type(e).__name__}: {e}"

        if result.failures:
            logger.warning(
                f"Timer check finished with {len(result.failures)} failure(s): "
                f"{result.delivered}/{result.processed} delivered, "
                f"{result.completed}/{result.processed} completed"
            )
        return result

    async def _process(self, timer: Timer, result: TickResult) -> None:
        result.processed += 1
        logger.info(f"Processing expired timer {timer.id} for user {timer.username}")

        if timer.id in self._delivered:
            logger.info(f"Timer {timer.id} already notified, retrying completion only")
        else:
            await self._notify(timer, result)

        try:
            outcome = await self.timer_api.mark_complete(timer.id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Error completing timer {timer.id}: {e}")
            outcome = CompleteOutcome.FAILED

        if outcome.is_benign:
            result.completed += 1
            self._delivered.pop(timer.id, None)
        else:
            result.failures.append(TimerFailure(timer.id, "complete", outcome.value))

    async def _notify(self, timer: Timer, result: TickResult) -> None:
        try:
            delivered = await self.notifier.send(timer)
            reason = "channel unavailable"
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Error sending timer notification for timer {timer.id}: {e}")
            delivered = False
            reason = f"{type(e).__name__}: {e}"

        if delivered:
            result.delivered += 1
            self._delivered[timer.id] = True
        else:
            result.failures.append(TimerFailure(timer.id, "notify", reason))
