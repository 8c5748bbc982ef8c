"""
Timer reminder Discord bot
discord.py 2.x, text commands and slash commands
"""

import asyncio
import logging

import discord
import httpx
from discord.ext import commands

from .core import HealthCheckServer, Settings, get_settings, setup_logging
from .services import (
    BlockedUserClient,
    CredentialCache,
    ExpirationScheduler,
    TimerAPIClient,
    TimerNotifier,
)

logger = logging.getLogger("timerbot")


class TimerBot(commands.Bot):
    """Discord client that owns the timer API clients and the expiry scheduler"""

    def __init__(self, settings: Settings):
        intents = discord.Intents.default()
        intents.message_content = True  # TIMER / PING text commands

        super().__init__(
            # no prefix commands are registered; commands.Bot still needs a prefix
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )

        self.settings = settings
        self.initial_extensions = ["timerbot.cogs.timers"]

        # One HTTP client and one token cache for every API call
        self.api_http = httpx.AsyncClient(
            timeout=settings.http_timeout_seconds, verify=settings.verify_ssl
        )
        self.credentials = CredentialCache(
            self.api_http,
            base_url=settings.api_base_url,
            api_key=settings.api_key,
            refresh_margin=settings.token_refresh_margin,
        )
        self.timer_api = TimerAPIClient(self.api_http, self.credentials)
        self.blocked_users = BlockedUserClient(self.api_http, self.credentials)
        self.notifier = TimerNotifier(self)
        self.scheduler = ExpirationScheduler(
            self.timer_api,
            self.notifier,
            is_ready=self.gateway_ready,
            interval_seconds=settings.poll_interval_seconds,
        )

        self.health_server: HealthCheckServer | None = None
        if settings.enable_health_server:
            self.health_server = HealthCheckServer(
                self, host=settings.health_host, port=settings.health_port
            )

    def gateway_ready(self) -> bool:
        return self.is_ready() and not self.is_closed()

    async def setup_hook(self):
        """Start the health server, load cogs and sync slash commands"""
        if self.health_server is not None:
            await self.health_server.start()

        loaded = []
        failed = []

        for extension in self.initial_extensions:
            try:
                await self.load_extension(extension)
                loaded.append(extension.split(".")[-1])
            except Exception as e:
                failed.append(f"{extension.split('.')[-1]} ({e})")

        if loaded:
            logger.info(f"Loaded cogs: {', '.join(loaded)}")
        if failed:
            logger.error(f"Failed to load cogs: {', '.join(failed)}")

        logger.info("Syncing slash commands...")
        guild_id = self.settings.discord_guild_id
        if guild_id:
            # Guild sync is immediate, global sync can take up to an hour
            guild = discord.Object(id=guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logger.info(f"Synced slash commands to guild {guild_id}")
        else:
            await self.tree.sync()
            logger.info("Synced slash commands globally")

        logger.info("Connecting to Discord...")

    async def on_ready(self):
        await self.change_presence(
            status=self.settings.get_status(), activity=self.settings.get_activity()
        )
        logger.info(f"{self.user} is connected! (ID: {self.user.id if self.user else '?'})")
        logger.info(f"{len(self.guilds)} guild(s) | discord.py {discord.__version__}")

    async def close(self) -> None:
        # Unloads the cogs first, which stops the scheduler
        await super().close()
        if self.health_server is not None:
            await self.health_server.stop()
        await self.api_http.aclose()


async def main(settings: Settings | None = None):
    """Bot entry point"""
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    if not settings.discord_bot_token:
        logger.error("DISCORD_BOT_TOKEN is not set")
        logger.error("Add it to .env: DISCORD_BOT_TOKEN=your_token_here")
        return

    async with TimerBot(settings) as bot:
        try:
            await bot.start(settings.discord_bot_token)
        except (KeyboardInterrupt, asyncio.CancelledError):
            if not bot.is_closed():
                await bot.close()


def run() -> None:
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Bot stopped")
    except Exception as e:
        logger.error(f"Bot crashed: {e}", exc_info=e)
