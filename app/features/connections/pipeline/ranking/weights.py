"""
Guild-wide voice vs text activity weighting.

One voice minute is treated as the same engagement as one message. This is
a simplifying assumption, not an empirically fitted ratio.
"""

from __future__ import annotations

from app.db.helpers import fetch_one
from app.features.connections.domain.models import ActivityWeight
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def compute_activity_weight(total_messages: int, total_voice_minutes: int) -> ActivityWeight:
    total_messages = max(0, total_messages or 0)
    total_voice_minutes = max(0, total_voice_minutes or 0)
    total = total_messages + total_voice_minutes

    if total == 0:
        return ActivityWeight(
            voice_weight=0.5,
            text_weight=0.5,
            total_voice_minutes=total_voice_minutes,
            total_messages=total_messages,
        )

    text_weight = total_messages / total
    return ActivityWeight(
        voice_weight=1.0 - text_weight,
        text_weight=text_weight,
        total_voice_minutes=total_voice_minutes,
        total_messages=total_messages,
    )


class ActivityRepository:
    @staticmethod
    async def fetch_totals(guild_id: str) -> tuple[int, int]:
        """Return (total_messages, total_voice_minutes) across members with levels."""
        row = await fetch_one(
            """
            SELECT
                COALESCE(SUM(message_count), 0) AS total_messages,
                COALESCE(SUM(voice_minutes), 0) AS total_voice_minutes
            FROM member_levels
            WHERE guild_id = %s
            """,
            (guild_id,),
        )
        if not row:
            return 0, 0
        return int(row["total_messages"]), int(row["total_voice_minutes"])


class ActivityWeightNormalizer:
    def __init__(self, repository=ActivityRepository):
        self._repository = repository

    async def compute_weight(self, guild_id: str) -> ActivityWeight:
        total_messages, total_voice_minutes = await self._repository.fetch_totals(guild_id)
        weight = compute_activity_weight(total_messages, total_voice_minutes)
        logger.debug(
            "Activity weight computed",
            guild_id=guild_id,
            voice_weight=round(weight.voice_weight, 4),
            text_weight=round(weight.text_weight, 4),
        )
        return weight
