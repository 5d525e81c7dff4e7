"""
Voice overlap calculation.

Turns raw voice-channel intervals into one VoiceConnection per pair of
users who were ever in the same channel at the same time.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from app.features.connections.domain.models import VoiceConnection, VoiceInterval
from app.features.connections.domain.pairs import canonical_pair
from app.features.connections.domain.rounding import round_seconds
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _PairTotals:
    shared_seconds: float = 0.0
    session_count: int = 0


class VoiceOverlapCalculator:
    """
    Pairwise overlap join per channel.

    session_count is incremented once per overlapping interval pair, the
    same definition the calculate_voice_connections procedure uses.
    """

    def calculate(
        self, intervals: Iterable[VoiceInterval], now: datetime
    ) -> list[VoiceConnection]:
        by_channel: dict[str, list[VoiceInterval]] = defaultdict(list)
        for interval in intervals:
            by_channel[interval.channel_id].append(interval)

        totals: dict[tuple[str, str], _PairTotals] = defaultdict(_PairTotals)
        for channel_intervals in by_channel.values():
            self._sweep_channel(channel_intervals, now, totals)

        connections = [
            VoiceConnection(
                user_id_lo=lo,
                user_id_hi=hi,
                shared_seconds=round_seconds(pair.shared_seconds),
                session_count=pair.session_count,
            )
            for (lo, hi), pair in totals.items()
        ]
        connections.sort(key=lambda c: (-c.shared_seconds, c.user_id_lo, c.user_id_hi))

        logger.debug(
            "Voice overlaps calculated",
            channel_count=len(by_channel),
            pair_count=len(connections),
        )
        return connections

    def _sweep_channel(
        self,
        intervals: list[VoiceInterval],
        now: datetime,
        totals: dict[tuple[str, str], _PairTotals],
    ) -> None:
        ordered = sorted(intervals, key=lambda i: i.joined_at)
        open_intervals: list[VoiceInterval] = []

        for current in ordered:
            start = current.joined_at
            # Anything ending at or before this join cannot overlap it or any later join
            open_intervals = [i for i in open_intervals if i.effective_end(now) > start]

            current_end = current.effective_end(now)
            for earlier in open_intervals:
                if earlier.user_id == current.user_id:
                    continue
                end = min(current_end, earlier.effective_end(now))
                if end <= start:
                    continue
                pair = totals[canonical_pair(current.user_id, earlier.user_id)]
                pair.shared_seconds += (end - start).total_seconds()
                pair.session_count += 1

            if current_end > start:
                open_intervals.append(current)


voice_overlap_calculator = VoiceOverlapCalculator()
