"""Delivers timer expiry messages to Discord channels."""

from __future__ import annotations

import logging

import discord

from ..models import Timer

logger = logging.getLogger("timerbot.notifier")


def format_expiry_message(timer: Timer) -> str:
    """Expiry text: who the timer belongs to plus the optional reminder."""
    message = f"⏰ <@{timer.user_id}> Your {timer.duration_minutes}-minute timer is up!"
    if timer.message:
        message += f"\n💭 Reminder: {timer.message}"
    return message


class TimerNotifier:
    """Sends the expiry message for a timer to its channel."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def _resolve_channel(self, channel_id: int) -> discord.abc.Messageable | None:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(channel_id)
            except (discord.NotFound, discord.Forbidden):
                return None
            except discord.HTTPException as e:
                logger.warning(f"Could not fetch channel {channel_id}: {e}")
                return None

        if not isinstance(channel, discord.abc.Messageable):
            return None
        return channel

    async def send(self, timer: Timer) -> bool:
        """Returns ``False`` when the message could not be delivered."""
        channel = await self._resolve_channel(timer.channel_id)
        if channel is None:
            logger.warning(f"Could not find channel {timer.channel_id} for timer {timer.id}")
            return False

        try:
            await channel.send(format_expiry_message(timer))
        except discord.Forbidden:
            logger.warning(f"Cannot send to channel {timer.channel_id} for timer {timer.id}")
            return False
        except discord.HTTPException as e:
            logger.error(f"Error sending notification for timer {timer.id}: {e}")
            return False

        logger.info(f"Sent timer notification for timer {timer.id} to {timer.username}")
        return True
