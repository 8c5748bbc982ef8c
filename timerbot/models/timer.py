"""Timer models shared by the store client, scheduler and cog."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 1440
MAX_MESSAGE_LENGTH = 500


def parse_api_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp from the API, assuming UTC when naive."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class Timer:
    id: int
    user_id: str
    username: str
    channel_id: int
    duration_minutes: int
    created_at: datetime
    expires_at: datetime
    is_completed: bool = False
    completed_at: datetime | None = None
    message: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Timer:
        """Build a Timer from the camelCase JSON representation."""
        created_at = parse_api_datetime(data["createdAt"])
        expires_at = parse_api_datetime(data["expiresAt"])
        if created_at is None or expires_at is None:
            raise ValueError("timer payload is missing createdAt/expiresAt")
        return cls(
            id=int(data["id"]),
            user_id=str(data["userId"]),
            username=data.get("username") or "",
            channel_id=int(data["channelId"]),
            duration_minutes=int(data["durationMinutes"]),
            created_at=created_at,
            expires_at=expires_at,
            is_completed=bool(data.get("isCompleted", False)),
            completed_at=parse_api_datetime(data.get("completedAt")),
            message=data.get("message") or None,
        )

    def expected_expiry(self) -> datetime:
        return self.created_at + timedelta(minutes=self.duration_minutes)

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return not self.is_completed and self.expires_at <= now


@dataclass
class CreateTimerRequest:
    user_id: str
    username: str
    channel_id: int
    duration_minutes: int
    message: str | None = None

    def to_api(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "userId": self.user_id,
            "username": self.username,
            "channelId": self.channel_id,
            "durationMinutes": self.duration_minutes,
        }
        if self.message:
            body["message"] = self.message
        return body
