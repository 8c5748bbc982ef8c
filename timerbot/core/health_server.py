"""HTTP health check server"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from aiohttp import web

from .config import BOT_NAME, BOT_VERSION

if TYPE_CHECKING:
    from ..bot import TimerBot

logger = logging.getLogger("timerbot.health_server")


class HealthCheckServer:
    """HTTP health check server"""

    def __init__(self, bot: "TimerBot | None" = None, host: str = "0.0.0.0", port: int = 8080) -> None:
        self.bot: Any = bot
        self.host = host
        self.port = port
        self.app = web.Application()
        self.runner: web.AppRunner | None = None
        self._start_time: float = time.time()
        self._heartbeat_task: asyncio.Task | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Configure HTTP routes"""
        self.app.router.add_get("/", self.handle_root)
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_get("/status", self.handle_status)
        self.app.router.add_get("/ping", self.handle_ping)

    def _is_ready(self) -> bool:
        return self.bot is not None and self.bot.is_ready()

    async def handle_root(self, request: web.Request) -> web.Response:
        """Root endpoint - minimal service info"""
        return web.json_response({"service": BOT_NAME, "version": BOT_VERSION, "status": "running"})

    async def handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint — always 200 (liveness)"""
        ready = self._is_ready()
        return web.json_response(
            {"status": "healthy" if ready else "starting", "ready": ready},
        )

    async def handle_status(self, request: web.Request) -> web.Response:
        """Detailed status: gateway, scheduler and API token"""
        ready = self._is_ready()
        scheduler = getattr(self.bot, "scheduler", None)
        credentials = getattr(self.bot, "credentials", None)

        last_tick: dict[str, Any] | None = None
        if scheduler is not None and scheduler.last_result is not None:
            result = scheduler.last_result
            last_tick = {
                "at": scheduler.last_tick_at.isoformat() if scheduler.last_tick_at else None,
                "skipped": result.skipped,
                "processed": result.processed,
                "delivered": result.delivered,
                "completed": result.completed,
                "failures": len(result.failures),
                "error": result.error,
            }

        token = credentials.current if credentials is not None else None
        return web.json_response(
            {
                "service": BOT_NAME,
                "bot_id": str(self.bot.user.id) if ready and self.bot.user else None,
                "uptime_seconds": int(time.time() - self._start_time),
                "connected_guilds": len(self.bot.guilds) if ready else 0,
                "scheduler": {
                    "running": scheduler.running if scheduler is not None else False,
                    "interval_seconds": scheduler.interval_seconds if scheduler is not None else None,
                    "last_tick": last_tick,
                },
                "api_token": {
                    "cached": token is not None,
                    "expires_at": token.expires_at.isoformat() if token else None,
                    "refresh_count": credentials.refresh_count if credentials is not None else 0,
                },
            }
        )

    async def handle_ping(self, request: web.Request) -> web.Response:
        """Ping endpoint"""
        return web.Response(text="pong")

    async def _heartbeat(self) -> None:
        """Periodic heartbeat — log uptime and bot status"""
        while True:
            await asyncio.sleep(300)
            uptime = int(time.time() - self._start_time)
            ready = self._is_ready()
            guilds = len(self.bot.guilds) if ready else 0
            logger.info(f"Heartbeat: uptime={uptime}s, ready={ready}, guilds={guilds}")

    async def start(self) -> None:
        """Start health check server"""
        try:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()
            site = web.TCPSite(self.runner, self.host, self.port)
            await site.start()

            self._heartbeat_task = asyncio.create_task(self._heartbeat())

            logger.info(f"Health server started on {self.host}:{self.port}")
            logger.info(f"  GET http://{self.host}:{self.port}/health - Health check")
            logger.info(f"  GET http://{self.host}:{self.port}/status - Detailed status")
        except Exception as e:
            logger.exception(f"Failed to start health server: {e}")
            raise

    async def stop(self) -> None:
        """Stop health check server"""
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
        if self.runner:
            try:
                await self.runner.cleanup()
                logger.info("Health server stopped")
            except Exception as e:
                logger.exception(f"Error stopping health server: {e}")
