"""
Repository helpers for voice sessions.

Reads voice_sessions rows (join/leave intervals) and voice_state_changes
rows. Session capture itself lives elsewhere; this side is read-only.
"""

from datetime import datetime

from app.db.helpers import fetch_all, fetch_val
from app.features.connections.domain.models import (
    VoiceInterval,
    VoiceSession,
    VoiceStateChange,
    VoiceStateEvent,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class VoiceSessionRepository:
    """Raw SQL helpers for voice session data."""

    @classmethod
    async def fetch_intervals(
        cls, guild_id: str, window_start: datetime | None
    ) -> list[VoiceInterval]:
        query = """
            SELECT guild_id, user_id, channel_id, joined_at, left_at
            FROM voice_sessions
            WHERE guild_id = %s
              AND (%s::timestamptz IS NULL OR joined_at >= %s::timestamptz)
            ORDER BY channel_id, joined_at ASC
        """

        rows = await fetch_all(query, (guild_id, window_start, window_start))
        return [
            VoiceInterval(
                guild_id=row["guild_id"],
                user_id=row["user_id"],
                channel_id=row["channel_id"],
                joined_at=row["joined_at"],
                left_at=row.get("left_at"),
            )
            for row in rows
        ]

    @classmethod
    async def has_active_sessions(cls, guild_id: str) -> bool:
        query = """
            SELECT EXISTS (
                SELECT 1 FROM voice_sessions
                WHERE guild_id = %s AND left_at IS NULL
            ) AS active
        """
        return bool(await fetch_val(query, (guild_id,)))

    @classmethod
    async def fetch_member_sessions(
        cls, guild_id: str, user_id: str, limit: int = 10
    ) -> list[VoiceSession]:
        """
        Latest sessions for a member, the open session (if any) first.
        """
        query = """
            SELECT s.id, s.guild_id, s.user_id, s.channel_id, s.joined_at, s.left_at,
                   c.name AS channel_name
            FROM voice_sessions s
            LEFT JOIN channels c ON c.id = s.channel_id
            WHERE s.guild_id = %s
              AND s.user_id = %s
            ORDER BY (s.left_at IS NULL) DESC, s.joined_at DESC
            LIMIT %s
        """

        rows = await fetch_all(query, (guild_id, user_id, limit))
        return [
            VoiceSession(
                id=row["id"],
                guild_id=row["guild_id"],
                user_id=row["user_id"],
                channel_id=row["channel_id"],
                joined_at=row["joined_at"],
                left_at=row.get("left_at"),
                channel_name=row.get("channel_name"),
            )
            for row in rows
        ]

    @classmethod
    async def fetch_state_changes(
        cls, guild_id: str, user_id: str, start: datetime, end: datetime
    ) -> list[VoiceStateChange]:
        query = """
            SELECT event_type, created_at
            FROM voice_state_changes
            WHERE guild_id = %s
              AND user_id = %s
              AND created_at >= %s
              AND created_at <= %s
            ORDER BY created_at ASC
        """

        rows = await fetch_all(query, (guild_id, user_id, start, end))
        changes: list[VoiceStateChange] = []
        for row in rows:
            try:
                event_type = VoiceStateEvent(row["event_type"])
            except ValueError:
                logger.warning("Skipping unknown voice state event", event_type=row["event_type"])
                continue
            changes.append(VoiceStateChange(event_type=event_type, created_at=row["created_at"]))
        return changes
