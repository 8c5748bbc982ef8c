"""Client for the timer endpoints of the timer API."""

from __future__ import annotations

import enum
import logging

from ..models import CreateTimerRequest, Timer
from .api_client import AuthorizedAPIClient

logger = logging.getLogger("timerbot.timer_api")


class CompleteOutcome(enum.Enum):
    """Result of marking a timer completed."""

    COMPLETED = "completed"
    ALREADY_COMPLETED = "already_completed"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"

    @property
    def is_benign(self) -> bool:
        """The timer will not show up as expired again; nothing to retry."""
        return self in (
            CompleteOutcome.COMPLETED,
            CompleteOutcome.ALREADY_COMPLETED,
            CompleteOutcome.NOT_FOUND,
        )


class TimerAPIClient(AuthorizedAPIClient):
    """Create, list and complete timers.

    Every method returns an explicit result and never raises on network or
    API errors: ``None`` / ``[]`` / ``CompleteOutcome.FAILED``; ``list_expired``
    keeps ``None`` for "unavailable" apart from ``[]`` for "nothing due".
    """

    async def create(self, request: CreateTimerRequest) -> Timer | None:
        """Create a timer. The duration is expected to be validated already."""
        body = request.to_api()
        logger.info(
            f"Creating {request.duration_minutes}-minute timer for "
            f"{request.username} ({request.user_id}) in channel {request.channel_id}"
        )

        response = await self._request("POST", "/api/timer", json=body)
        if response is None:
            return None

        if not response.is_success:
            logger.error(
                f"Failed to create timer. Status: {response.status_code}, Error: {response.text}"
            )
            return None

        try:
            timer = Timer.from_api(response.json())
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Malformed timer in create response: {type(e).__name__}: {e}")
            return None

        logger.info(f"Timer {timer.id} created, expires at {timer.expires_at.isoformat()}")
        return timer

    async def get(self, timer_id: int) -> Timer | None:
        response = await self._request("GET", f"/api/timer/{timer_id}")
        if response is None:
            return None

        if response.status_code == 404:
            return None

        if not response.is_success:
            logger.error(f"Failed to get timer {timer_id}. Status: {response.status_code}")
            return None

        try:
            return Timer.from_api(response.json())
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Malformed timer {timer_id}: {type(e).__name__}: {e}")
            return None

    async def list_expired(self) -> list[Timer] | None:
        """Timers that are past their expiry and not completed, in API order.

        ``None`` means the store could not be asked (no token, network error,
        error status or unreadable body); ``[]`` means nothing is due.
        """
        response = await self._request("GET", "/api/timer/expired")
        if response is None:
            return None

        if not response.is_success:
            logger.error(f"Failed to get expired timers. Status: {response.status_code}")
            return None

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Malformed expired timers response: {e}")
            return None

        # {"expiredTimers": [...]}; a bare list is accepted too
        items = payload.get("expiredTimers", []) if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            logger.error("Malformed expired timers response: expected a list")
            return None
        return self._parse_list(items, "expired timers")

    async def list_for_user(self, user_id: str, *, include_completed: bool = False) -> list[Timer]:
        """A user's timers, newest first."""
        response = await self._request(
            "GET",
            f"/api/timer/user/{user_id}",
            params={"includeCompleted": str(include_completed).lower()},
        )
        if response is None:
            return []

        if not response.is_success:
            logger.error(f"Failed to get timers for user {user_id}. Status: {response.status_code}")
            return []

        try:
            items = response.json()
        except ValueError as e:
            logger.error(f"Malformed user timers response: {e}")
            return []

        return self._parse_list(items, f"timers of user {user_id}")

    async def mark_complete(self, timer_id: int) -> CompleteOutcome:
        response = await self._request("POST", f"/api/timer/{timer_id}/complete")
        if response is None:
            return CompleteOutcome.UNAVAILABLE

        if response.is_success:
            logger.info(f"Timer {timer_id} marked as completed")
            return CompleteOutcome.COMPLETED

        if response.status_code == 404:
            logger.info(f"Timer {timer_id} no longer exists, nothing to complete")
            return CompleteOutcome.NOT_FOUND

        if response.status_code in (400, 409):
            logger.info(f"Timer {timer_id} was already completed")
            return CompleteOutcome.ALREADY_COMPLETED

        logger.error(f"Failed to complete timer {timer_id}. Status: {response.status_code}")
        return CompleteOutcome.FAILED

    @staticmethod
    def _parse_list(items: object, what: str) -> list[Timer]:
        if not isinstance(items, list):
            logger.error(f"Malformed {what} response: expected a list")
            return []

        timers: list[Timer] = []
        for item in items:
            try:
                timers.append(Timer.from_api(item))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed entry in {what}: {type(e).__name__}: {e}")
        return timers
