"""Authorized access to the timer API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .auth import CredentialCache

logger = logging.getLogger("timerbot.api")


class AuthorizedAPIClient:
    """Base for clients that call the timer API with a bearer token.

    Shares the HTTP client and token cache with every other API client.
    """

    def __init__(self, http: httpx.AsyncClient, credentials: CredentialCache) -> None:
        self._http = http
        self.credentials = credentials

    @property
    def base_url(self) -> str:
        return self.credentials.base_url

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response | None:
        """Send an authorized request.

        Returns ``None`` when no token is available or the request could not
        be sent. A 401 drops the cached token so the next call fetches a new one.
        """
        credential = await self.credentials.get_valid_credential()
        if credential is None:
            logger.warning(f"{method} {path} skipped: no API token available")
            return None

        try:
            response = await self._http.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=credential.authorization_header,
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {type(e).__name__}: {e}")
            return None

        if response.status_code == 401:
            logger.warning(f"{method} {path} unauthorized, dropping cached API token")
            self.credentials.invalidate()

        return response
