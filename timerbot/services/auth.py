"""Bearer token cache for the timer API.

The API issues short-lived tokens in exchange for a static API key
(``POST /api/auth/token``). One ``CredentialCache`` is created per process
and shared by every API client; it keeps the current token and refreshes it
once it gets within the refresh margin of its expiry.

Concurrent callers that find the cache stale share a single in-flight
refresh instead of each hitting the issuer.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import httpx

from ..models import Credential
from ..models.timer import parse_api_datetime

logger = logging.getLogger("timerbot.auth")

TOKEN_PATH = "/api/auth/token"
DEFAULT_REFRESH_MARGIN = timedelta(minutes=5)


class CredentialCache:
    """Process-wide cache of the API bearer token."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        refresh_margin: timedelta = DEFAULT_REFRESH_MARGIN,
    ) -> None:
        self._http = http
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.refresh_margin = refresh_margin

        self._credential: Credential | None = None
        self._lock = asyncio.Lock()
        self._refresh_task: asyncio.Task[Credential | None] | None = None

        # Number of token requests actually sent to the issuer
        self.refresh_count = 0

    @property
    def current(self) -> Credential | None:
        return self._credential

    def invalidate(self) -> None:
        """Drop the cached token so the next call fetches a new one."""
        if self._credential is not None:
            logger.info("Cached API token invalidated")
        self._credential = None

    async def get_valid_credential(self) -> Credential | None:
        """Return a token that stays valid beyond the refresh margin.

        Returns ``None`` when no token could be obtained. Failures are not
        cached and not retried here; the next call tries again.
        """
        async with self._lock:
            credential = self._credential
            if credential is not None and credential.is_valid(self.refresh_margin):
                return credential

            if self._refresh_task is None:
                self._refresh_task = asyncio.create_task(self._refresh())
            task = self._refresh_task

        # Shielded so a cancelled caller does not cancel the refresh for the others
        return await asyncio.shield(task)

    async def _refresh(self) -> Credential | None:
        try:
            try:
                credential = await self._request_token()
            except Exception as e:
                logger.exception(f"Unexpected error requesting API token: {e}")
                credential = None

            if credential is not None and not credential.is_valid(self.refresh_margin):
                logger.warning(
                    f"Issued API token expires at {credential.expires_at.isoformat()}, "
                    f"inside the {self.refresh_margin} refresh margin; not using it"
                )
                credential = None

            async with self._lock:
                if credential is not None:
                    self._credential = credential
                return credential
        finally:
            self._refresh_task = None

    async def _request_token(self) -> Credential | None:
        if not self._api_key:
            logger.error("API_KEY is not configured, cannot request an API token")
            return None

        self.refresh_count += 1
        logger.info("Requesting new API token")

        try:
            response = await self._http.post(
                f"{self.base_url}{TOKEN_PATH}",
                json={"apiKey": self._api_key},
            )
        except httpx.HTTPError as e:
            logger.error(f"API token request failed: {type(e).__name__}: {e}")
            return None

        if response.status_code == 401:
            logger.error("API token request rejected: invalid API key")
            return None

        if not response.is_success:
            logger.error(
                f"Failed to get API token. Status: {response.status_code}, Error: {response.text}"
            )
            return None

        try:
            data = response.json()
            token = data["token"]
            expires_at = parse_api_datetime(data["expiresAt"])
            token_type = data.get("tokenType") or "Bearer"
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Malformed API token response: {type(e).__name__}: {e}")
            return None

        if not token or expires_at is None:
            logger.error("API token response was missing token or expiry")
            return None

        logger.info(f"Obtained API token, expires at {expires_at.isoformat()}")
        return Credential(token=token, expires_at=expires_at, token_type=token_type)
