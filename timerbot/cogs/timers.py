"""Timer commands and the expiry scheduler lifecycle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from ..models import MAX_DURATION_MINUTES, MIN_DURATION_MINUTES, CreateTimerRequest, Timer
from ..services.timer_command import (
    TimerCommand,
    TimerCommandError,
    is_timer_command,
    parse_timer_command,
    validate_message,
)

if TYPE_CHECKING:
    from ..bot import TimerBot

logger = logging.getLogger("timerbot.cogs.timers")

CREATE_FAILED = "❌ Sorry, I couldn't create your timer. Please try again later."


def format_confirmation(timer: Timer, command: TimerCommand) -> str:
    minutes = command.duration_minutes
    text = f"✅ Timer set for {minutes} minute{'' if minutes == 1 else 's'}! I'll notify you when it's done."
    if command.message:
        text += f"\n💭 Reminder: {command.message}"
    text += f"\n🕐 Expires at: {discord.utils.format_dt(timer.expires_at, 'F')}"
    return text


def format_timer_list(timers: list[Timer]) -> str:
    if not timers:
        return "You have no pending timers."

    lines = ["⏳ Your pending timers:"]
    for timer in timers:
        line = f"• #{timer.id} {timer.duration_minutes} min, expires {discord.utils.format_dt(timer.expires_at, 'R')}"
        if timer.message:
            line += f" - {timer.message}"
        lines.append(line)
    return "\n".join(lines)


class TimersCog(commands.Cog):
    """Create reminder timers and deliver them when they expire."""

    def __init__(self, bot: TimerBot):
        self.bot = bot

    async def cog_load(self) -> None:
        self.bot.scheduler.start()

    async def cog_unload(self) -> None:
        await self.bot.scheduler.stop()

    async def create_timer(
        self, user: discord.abc.User, channel_id: int, command: TimerCommand
    ) -> str:
        """Create the timer through the API and return the reply for the user."""
        request = CreateTimerRequest(
            user_id=str(user.id),
            username=user.name,
            channel_id=channel_id,
            duration_minutes=command.duration_minutes,
            message=command.message,
        )
        timer = await self.bot.timer_api.create(request)
        if timer is None:
            logger.error(f"Failed to create timer for user {user.name}")
            return CREATE_FAILED

        logger.info(f"Created timer {timer.id} for user {user.name}")
        return format_confirmation(timer, command)

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return

        content = message.content.strip()
        if not content:
            return

        is_ping = content.upper() == "PING"
        if not is_ping and not is_timer_command(content):
            return

        if await self.bot.blocked_users.is_blocked(str(message.author.id)):
            logger.info(f"Blocked user {message.author.name} ({message.author.id}) attempted to use bot")
            await message.channel.send(
                f"🚫 {message.author.mention}, you are currently blocked from using bot commands."
            )
            return

        if is_ping:
            await message.channel.send("PONG")
            return

        try:
            command = parse_timer_command(content)
        except TimerCommandError as e:
            await message.channel.send(str(e))
            return

        if command is None:
            return

        logger.info(f"Creating {command.duration_minutes}-minute timer for {message.author.name}")
        reply = await self.create_timer(message.author, message.channel.id, command)
        await message.channel.send(reply)

    @app_commands.command(name="timer", description="Set a reminder timer")
    @app_commands.describe(minutes="Minutes until the reminder (1-1440)", message="What to remind you about")
    async def timer(
        self,
        interaction: discord.Interaction,
        minutes: app_commands.Range[int, MIN_DURATION_MINUTES, MAX_DURATION_MINUTES],
        message: str | None = None,
    ):
        if interaction.channel_id is None:
            await interaction.response.send_message("This command must be used in a channel", ephemeral=True)
            return

        if await self.bot.blocked_users.is_blocked(str(interaction.user.id)):
            await interaction.response.send_message(
                "🚫 You are currently blocked from using bot commands.", ephemeral=True
            )
            return

        try:
            command = TimerCommand(duration_minutes=minutes, message=validate_message(message))
        except TimerCommandError as e:
            await interaction.response.send_message(str(e), ephemeral=True)
            return

        await interaction.response.defer(thinking=True)
        reply = await self.create_timer(interaction.user, interaction.channel_id, command)
        await interaction.followup.send(reply)

    @app_commands.command(name="timers", description="List your pending timers")
    async def timers(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        pending = await self.bot.timer_api.list_for_user(str(interaction.user.id))
        await interaction.followup.send(format_timer_list(pending), ephemeral=True)


async def setup(bot: TimerBot) -> None:
    """Extension entry point."""
    await bot.add_cog(TimersCog(bot))
