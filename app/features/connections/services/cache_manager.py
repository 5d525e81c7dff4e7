"""
Staleness-gated cache of pairwise connections per (guild, time range).

A recompute fully replaces the bucket (delete-then-insert in one
transaction), so two concurrent recomputes of the same bucket end in the
same state as one. No locks are taken.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import assert_never

from app.config import settings
from app.features.connections.domain.models import (
    ConnectionKind,
    ConnectionSnapshot,
    PairConnection,
    TimeRange,
)
from app.infrastructure.observability.logging import get_logger

from ..pipeline.text.repository import MessageRepository
from ..pipeline.text.service import TextInteractionScorer
from ..pipeline.voice.repository import VoiceSessionRepository
from ..pipeline.voice.service import VoiceOverlapCalculator
from ..repository.connection_cache_repository import ConnectionCacheRepository
from .aggregation_strategy import (
    AggregationCapabilityProbe,
    LocalFallback,
    PreferRemoteAggregation,
)

logger = get_logger(__name__)


class ConnectionCacheManager:
    kind: ConnectionKind

    def __init__(
        self,
        probe: AggregationCapabilityProbe,
        cache_repository=ConnectionCacheRepository,
        batch_size: int | None = None,
    ):
        self._probe = probe
        self._cache = cache_repository
        self._batch_size = batch_size or settings.CONNECTIONS_INSERT_BATCH_SIZE

    @staticmethod
    def is_stale(
        calculated_at: datetime | None,
        max_age_hours: float,
        now: datetime | None = None,
    ) -> bool:
        """
        Stale when never calculated or older than max_age_hours. An age of
        exactly max_age_hours is still fresh.
        """
        if calculated_at is None:
            return True
        now = now or datetime.now(UTC)
        return now - calculated_at > timedelta(hours=max_age_hours)

    async def get_last_calculated(self, guild_id: str, time_range: TimeRange) -> datetime | None:
        return await self._cache.fetch_last_calculated(self.kind, guild_id, time_range)

    async def _compute_locally(
        self, guild_id: str, time_range: TimeRange, now: datetime
    ) -> list[PairConnection]:
        raise NotImplementedError

    def _procedure_args(self) -> tuple:
        """Extra arguments passed to the remote procedure after (guild, range, days)."""
        return ()

    async def recalculate(
        self, guild_id: str, time_range: TimeRange, now: datetime | None = None
    ) -> datetime:
        """Recompute and replace the bucket. Returns the new calculated_at."""
        now = now or datetime.now(UTC)
        strategy = await self._probe.select(self.kind)

        if isinstance(strategy, PreferRemoteAggregation):
            await self._cache.call_procedure(
                strategy.procedure, guild_id, time_range, *self._procedure_args()
            )
            await self._cache.mark_calculated(self.kind, guild_id, time_range, now)
        elif isinstance(strategy, LocalFallback):
            connections = await self._compute_locally(guild_id, time_range, now)
            await self._cache.replace(
                self.kind,
                guild_id,
                time_range,
                connections,
                now,
                batch_size=self._batch_size,
            )
        else:
            assert_never(strategy)

        logger.info(
            "Connections recalculated",
            kind=self.kind.value,
            guild_id=guild_id,
            time_range=time_range.value,
            strategy=type(strategy).__name__,
        )
        return now

    async def ensure_fresh(
        self,
        guild_id: str,
        time_range: TimeRange,
        max_age_hours: float | None = None,
        *,
        force: bool = False,
        now: datetime | None = None,
    ) -> tuple[datetime | None, bool]:
        """Recompute when stale (or forced). Returns (calculated_at, recalculated)."""
        now = now or datetime.now(UTC)
        if max_age_hours is None:
            max_age_hours = settings.CONNECTIONS_MAX_AGE_HOURS

        last_calculated = await self.get_last_calculated(guild_id, time_range)
        if not force and not self.is_stale(last_calculated, max_age_hours, now):
            logger.debug(
                "Connection cache fresh",
                kind=self.kind.value,
                guild_id=guild_id,
                time_range=time_range.value,
            )
            return last_calculated, False

        calculated_at = await self.recalculate(guild_id, time_range, now)
        return calculated_at, True

    async def get(
        self,
        guild_id: str,
        time_range: TimeRange,
        max_age_hours: float | None = None,
        *,
        force: bool = False,
        now: datetime | None = None,
    ) -> ConnectionSnapshot:
        calculated_at, recalculated = await self.ensure_fresh(
            guild_id, time_range, max_age_hours, force=force, now=now
        )
        connections = await self._cache.fetch_connections(self.kind, guild_id, time_range)
        return ConnectionSnapshot(
            guild_id=guild_id,
            time_range=time_range,
            connections=connections,
            calculated_at=calculated_at,
            recalculated=recalculated,
        )

    async def get_for_user(
        self,
        guild_id: str,
        time_range: TimeRange,
        user_id: str,
        max_age_hours: float | None = None,
        *,
        limit: int | None = None,
        force: bool = False,
        now: datetime | None = None,
    ) -> ConnectionSnapshot:
        calculated_at, recalculated = await self.ensure_fresh(
            guild_id, time_range, max_age_hours, force=force, now=now
        )
        connections = await self._cache.fetch_connections_for_user(
            self.kind, guild_id, time_range, user_id, limit
        )
        return ConnectionSnapshot(
            guild_id=guild_id,
            time_range=time_range,
            connections=connections,
            calculated_at=calculated_at,
            recalculated=recalculated,
        )


class VoiceConnectionCache(ConnectionCacheManager):
    kind = ConnectionKind.VOICE

    def __init__(
        self,
        probe: AggregationCapabilityProbe,
        cache_repository=ConnectionCacheRepository,
        session_repository=VoiceSessionRepository,
        calculator: VoiceOverlapCalculator | None = None,
        batch_size: int | None = None,
    ):
        super().__init__(probe, cache_repository, batch_size)
        self._sessions = session_repository
        self._calculator = calculator or VoiceOverlapCalculator()

    async def has_active_sessions(self, guild_id: str) -> bool:
        return await self._sessions.has_active_sessions(guild_id)

    async def _compute_locally(
        self, guild_id: str, time_range: TimeRange, now: datetime
    ) -> list[PairConnection]:
        intervals = await self._sessions.fetch_intervals(guild_id, time_range.window_start(now))
        return self._calculator.calculate(intervals, now)


class TextConnectionCache(ConnectionCacheManager):
    kind = ConnectionKind.TEXT

    def __init__(
        self,
        probe: AggregationCapabilityProbe,
        cache_repository=ConnectionCacheRepository,
        message_repository=MessageRepository,
        scorer: TextInteractionScorer | None = None,
        batch_size: int | None = None,
    ):
        super().__init__(probe, cache_repository, batch_size)
        self._messages = message_repository
        self._scorer = scorer or TextInteractionScorer()

    def _procedure_args(self) -> tuple:
        return (self._scorer.window_seconds,)

    async def _compute_locally(
        self, guild_id: str, time_range: TimeRange, now: datetime
    ) -> list[PairConnection]:
        messages = await self._messages.fetch_messages(guild_id, time_range.window_start(now))
        return self._scorer.score(messages)
