"""
Repository helpers for chat messages used by text interaction scoring.
"""

from datetime import datetime

from app.db.helpers import fetch_all
from app.features.connections.domain.models import MessageEvent


class MessageRepository:
    """Raw SQL helpers for message metadata."""

    @classmethod
    async def fetch_messages(
        cls, guild_id: str, window_start: datetime | None
    ) -> list[MessageEvent]:
        query = """
            SELECT guild_id, user_id, channel_id, created_at
            FROM messages
            WHERE guild_id = %s
              AND (%s::timestamptz IS NULL OR created_at >= %s::timestamptz)
            ORDER BY channel_id, created_at ASC
        """

        rows = await fetch_all(query, (guild_id, window_start, window_start))
        return [
            MessageEvent(
                guild_id=row["guild_id"],
                user_id=row["user_id"],
                channel_id=row["channel_id"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
