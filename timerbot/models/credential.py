"""Bearer credential issued by the timer API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass(frozen=True)
class Credential:
    token: str
    expires_at: datetime
    token_type: str = "Bearer"

    def is_valid(self, margin: timedelta, now: datetime | None = None) -> bool:
        """True while the expiry is more than *margin* away."""
        now = now or datetime.now(timezone.utc)
        return bool(self.token) and self.expires_at > now + margin

    @property
    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"{self.token_type or 'Bearer'} {self.token}"}
