"""Block-list lookups against the timer API."""

from __future__ import annotations

import logging

from .api_client import AuthorizedAPIClient

logger = logging.getLogger("timerbot.blocked_users")


class BlockedUserClient(AuthorizedAPIClient):
    async def is_blocked(self, user_id: str) -> bool:
        """Whether *user_id* may not use the bot. Defaults to ``False`` on errors."""
        response = await self._request("GET", f"/api/blockedusers/check/{user_id}")
        if response is None:
            return False

        if not response.is_success:
            logger.error(
                f"Failed to check blocked status for user {user_id}. Status: {response.status_code}"
            )
            return False

        try:
            blocked = response.json()
        except ValueError as e:
            logger.error(f"Malformed blocked status for user {user_id}: {e}")
            return False

        if isinstance(blocked, dict):
            blocked = blocked.get("isBlocked", False)

        logger.debug(f"User {user_id} blocked status: {blocked}")
        return blocked is True
