"""
Text interaction scoring.

Two users interact when they post in the same channel within the proximity
window. Each qualifying message pair adds `1 - dt / window`: full credit for
simultaneous messages, decaying linearly to zero at the window edge.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field

from app.config import settings
from app.features.connections.domain.models import MessageEvent, TextConnection
from app.features.connections.domain.pairs import canonical_pair
from app.features.connections.domain.rounding import round_half_up
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _PairTotals:
    interaction_score: float = 0.0
    channels: set[str] = field(default_factory=set)


class TextInteractionScorer:
    def __init__(self, window_seconds: float | None = None):
        self.window_seconds = (
            window_seconds if window_seconds is not None else settings.TEXT_PROXIMITY_WINDOW_SECONDS
        )
        if self.window_seconds <= 0:
            raise ValueError("Proximity window must be positive")

    def proximity_score(self, gap_seconds: float) -> float:
        """Score for two messages `gap_seconds` apart; 0 outside the window."""
        gap = abs(gap_seconds)
        if gap >= self.window_seconds:
            return 0.0
        return 1.0 - gap / self.window_seconds

    def score(self, messages: Iterable[MessageEvent]) -> list[TextConnection]:
        by_channel: dict[str, list[MessageEvent]] = defaultdict(list)
        for message in messages:
            by_channel[message.channel_id].append(message)

        totals: dict[tuple[str, str], _PairTotals] = defaultdict(_PairTotals)
        per_channel_counts: dict[str, Counter[str]] = {}

        for channel_id, channel_messages in by_channel.items():
            channel_messages.sort(key=lambda m: m.created_at)
            per_channel_counts[channel_id] = Counter(m.user_id for m in channel_messages)
            self._score_channel(channel_id, channel_messages, totals)

        connections = []
        for (lo, hi), pair in totals.items():
            message_count = sum(
                per_channel_counts[channel_id][lo] + per_channel_counts[channel_id][hi]
                for channel_id in pair.channels
            )
            connections.append(
                TextConnection(
                    user_id_lo=lo,
                    user_id_hi=hi,
                    shared_channel_count=len(pair.channels),
                    interaction_score=round_half_up(pair.interaction_score, 2),
                    message_count=message_count,
                )
            )
        connections.sort(key=lambda c: (-c.interaction_score, c.user_id_lo, c.user_id_hi))

        logger.debug(
            "Text interactions scored",
            channel_count=len(by_channel),
            pair_count=len(connections),
        )
        return connections

    def _score_channel(
        self,
        channel_id: str,
        ordered: list[MessageEvent],
        totals: dict[tuple[str, str], _PairTotals],
    ) -> None:
        # Two-pointer window: ordered[window_start:index] are the earlier
        # messages no more than window_seconds before ordered[index].
        window_start = 0
        for index, current in enumerate(ordered):
            while (
                current.created_at - ordered[window_start].created_at
            ).total_seconds() > self.window_seconds:
                window_start += 1

            for earlier in ordered[window_start:index]:
                if earlier.user_id == current.user_id:
                    continue
                gap = (current.created_at - earlier.created_at).total_seconds()
                pair = totals[canonical_pair(current.user_id, earlier.user_id)]
                pair.interaction_score += self.proximity_score(gap)
                pair.channels.add(channel_id)


text_interaction_scorer = TextInteractionScorer()
