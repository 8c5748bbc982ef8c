"""Fixtures shared across the suite: an in-memory timer API behind httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import discord
import httpx
import pytest

from timerbot.models import Timer
from timerbot.services import CredentialCache, TimerAPIClient

BASE_URL = "https://timer-api.test"
API_KEY = "test-api-key"


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def timer_payload(
    timer_id: int = 1,
    *,
    user_id: str = "42",
    username: str = "alice",
    channel_id: int = 1234567890123456789,
    duration: int = 5,
    created_at: datetime | None = None,
    message: str | None = None,
    completed_at: datetime | None = None,
) -> dict:
    created_at = created_at or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    return {
        "id": timer_id,
        "userId": user_id,
        "username": username,
        "channelId": channel_id,
        "durationMinutes": duration,
        "createdAt": iso(created_at),
        "expiresAt": iso(created_at + timedelta(minutes=duration)),
        "isCompleted": completed_at is not None,
        "completedAt": iso(completed_at),
        "message": message,
    }


class FakeTimerService:
    """In-memory stand-in for the timer API, driven by a settable clock."""

    def __init__(self, *, api_key: str = API_KEY, token_ttl: timedelta = timedelta(hours=24)) -> None:
        self.api_key = api_key
        self.token_ttl = token_ttl
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.timers: dict[int, dict] = {}
        self.issued_tokens: list[str] = []
        self.revoked_tokens: set[str] = set()
        self.requests: list[httpx.Request] = []
        self.token_delay = 0.0
        self._next_id = 1

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def handler(self):
        async def handle(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return await self._dispatch(request)

        return handle

    async def _dispatch(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        if path == "/api/auth/token" and request.method == "POST":
            if self.token_delay:
                await asyncio.sleep(self.token_delay)
            body = json.loads(request.content)
            if body.get("apiKey") != self.api_key:
                return httpx.Response(401, json={"message": "Invalid API key"})
            token = f"token-{len(self.issued_tokens) + 1}"
            self.issued_tokens.append(token)
            return httpx.Response(
                200,
                json={
                    # real time: the client checks expiry against its own clock
                    "token": token,
                    "expiresAt": iso(datetime.now(timezone.utc) + self.token_ttl),
                    "tokenType": "Bearer",
                },
            )

        auth = request.headers.get("Authorization", "")
        token = auth.removeprefix("Bearer ")
        if token not in self.issued_tokens or token in self.revoked_tokens:
            return httpx.Response(401)

        if path == "/api/timer" and request.method == "POST":
            body = json.loads(request.content)
            timer_id = self._next_id
            self._next_id += 1
            payload = timer_payload(
                timer_id,
                user_id=body["userId"],
                username=body["username"],
                channel_id=body["channelId"],
                duration=body["durationMinutes"],
                created_at=self.now,
                message=body.get("message"),
            )
            self.timers[timer_id] = payload
            return httpx.Response(201, json=payload)

        if path == "/api/timer/expired" and request.method == "GET":
            expired = [
                t
                for t in self.timers.values()
                if Timer.from_api(t).is_expired(self.now)
            ]
            return httpx.Response(200, json={"expiredTimers": expired})

        if path.endswith("/complete") and request.method == "POST":
            timer_id = int(path.split("/")[-2])
            timer = self.timers.get(timer_id)
            if timer is None:
                return httpx.Response(404)
            if timer["isCompleted"]:
                return httpx.Response(400, text="Timer is already completed")
            timer["isCompleted"] = True
            timer["completedAt"] = iso(self.now)
            return httpx.Response(204)

        if path.startswith("/api/timer/user/") and request.method == "GET":
            user_id = path.split("/")[-1]
            include_completed = request.url.params.get("includeCompleted") == "true"
            timers = [
                t
                for t in self.timers.values()
                if t["userId"] == user_id and (include_completed or not t["isCompleted"])
            ]
            timers.sort(key=lambda t: t["createdAt"], reverse=True)
            return httpx.Response(200, json=timers)

        if path.startswith("/api/timer/") and request.method == "GET":
            timer = self.timers.get(int(path.split("/")[-1]))
            if timer is None:
                return httpx.Response(404)
            return httpx.Response(200, json=timer)

        return httpx.Response(404)

    def store_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path != "/api/auth/token"]


class FakeChannel(discord.abc.Messageable):
    def __init__(self, channel_id: int) -> None:
        self.id = channel_id
        self.sent: list[str] = []

    async def send(self, content=None, **kwargs):  # type: ignore[override]
        self.sent.append(content)
        return SimpleNamespace(content=content)


def not_found() -> discord.NotFound:
    return discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Channel")


class FakeDiscordClient:
    """Just enough of ``discord.Client`` for channel lookups."""

    def __init__(self, channels: list[FakeChannel] | None = None) -> None:
        self.channels = {c.id: c for c in channels or []}
        self.fetched: list[int] = []

    def get_channel(self, channel_id: int):
        return self.channels.get(channel_id)

    async def fetch_channel(self, channel_id: int):
        self.fetched.append(channel_id)
        raise not_found()


@pytest.fixture
def service() -> FakeTimerService:
    return FakeTimerService()


@pytest.fixture
async def http_client(service: FakeTimerService):
    async with httpx.AsyncClient(transport=httpx.MockTransport(service.handler())) as client:
        yield client


@pytest.fixture
def credentials(http_client: httpx.AsyncClient) -> CredentialCache:
    return CredentialCache(http_client, base_url=BASE_URL, api_key=API_KEY)


@pytest.fixture
def timer_api(http_client: httpx.AsyncClient, credentials: CredentialCache) -> TimerAPIClient:
    return TimerAPIClient(http_client, credentials)
