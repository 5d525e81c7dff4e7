"""
Connection service - the entry point the API layer calls.

Combines the voice/text caches, the graph transformer, the activity
weighting and the friend ranker, and enriches results with member display
info.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from app.db.helpers import DatabaseError
from app.features.connections.domain.models import (
    ActivityWeight,
    CombinedFriend,
    CombinedGraphResult,
    ConnectionSnapshot,
    GraphResult,
    PairConnection,
    TextConnection,
    TimeRange,
    VoiceConnection,
)
from app.infrastructure.observability.logging import get_logger

from ..pipeline.graph.service import to_combined_graph, to_graph
from ..pipeline.ranking.service import CombinedFriendRanker
from ..pipeline.ranking.weights import ActivityWeightNormalizer
from .cache_manager import TextConnectionCache, VoiceConnectionCache
from .member_directory import MemberDirectory

logger = get_logger(__name__)

# Per-user friend lists always read the unbounded bucket
FRIENDS_TIME_RANGE = TimeRange.ALL
VOICE_ONLY = ActivityWeight(voice_weight=1.0, text_weight=0.0, total_voice_minutes=0, total_messages=0)


def _participants(connections: Iterable[PairConnection]) -> set[str]:
    user_ids: set[str] = set()
    for conn in connections:
        user_ids.add(conn.user_id_lo)
        user_ids.add(conn.user_id_hi)
    return user_ids


class ConnectionService:
    DEFAULT_FRIEND_LIMIT = 5

    def __init__(
        self,
        voice_cache: VoiceConnectionCache,
        text_cache: TextConnectionCache,
        members: MemberDirectory,
        weight_normalizer: ActivityWeightNormalizer | None = None,
        ranker: CombinedFriendRanker | None = None,
    ):
        self.voice_cache = voice_cache
        self.text_cache = text_cache
        self.members = members
        self.weight_normalizer = weight_normalizer or ActivityWeightNormalizer()
        self.ranker = ranker or CombinedFriendRanker()

    # -----------------------------------------------------------------
    # Graphs
    # -----------------------------------------------------------------

    async def get_voice_graph(
        self, guild_id: str, time_range: TimeRange, max_age_hours: float | None = None
    ) -> GraphResult:
        snapshot = await self.voice_cache.get(guild_id, time_range, max_age_hours)
        return await self._build_graph(snapshot)

    async def get_text_graph(
        self, guild_id: str, time_range: TimeRange, max_age_hours: float | None = None
    ) -> GraphResult:
        snapshot = await self.text_cache.get(guild_id, time_range, max_age_hours)
        return await self._build_graph(snapshot)

    async def get_combined_graph(
        self, guild_id: str, time_range: TimeRange, max_age_hours: float | None = None
    ) -> CombinedGraphResult:
        voice = await self.voice_cache.get(guild_id, time_range, max_age_hours)
        text: ConnectionSnapshot | None
        try:
            text = await self.text_cache.get(guild_id, time_range, max_age_hours)
        except DatabaseError as e:
            logger.warning(
                "Text connections unavailable, combined graph uses voice only",
                guild_id=guild_id,
                error=str(e),
            )
            text = None
        weight = await self.get_server_activity_weight(guild_id)

        snapshots = [s for s in (voice, text) if s is not None]
        connections = [c for s in snapshots for c in s.connections]
        members = await self.members.resolve(guild_id, _participants(connections))
        graph = to_combined_graph(
            voice.connections, text.connections if text else [], weight, members
        )
        # The graph is only as fresh as its oldest input
        timestamps = [s.calculated_at for s in snapshots if s.calculated_at is not None]

        logger.info(
            "Combined graph served",
            guild_id=guild_id,
            time_range=time_range.value,
            nodes=len(graph.nodes),
            edges=len(graph.edges),
        )
        return CombinedGraphResult(
            graph=graph,
            weight=weight,
            calculated_at=min(timestamps) if timestamps else None,
            is_stale=any(s.recalculated for s in snapshots),
            has_text_data=bool(text and text.connections),
        )

    async def _build_graph(self, snapshot: ConnectionSnapshot) -> GraphResult:
        members = await self.members.resolve(
            snapshot.guild_id, _participants(snapshot.connections)
        )
        graph = to_graph(snapshot.connections, members)
        logger.info(
            "Connection graph served",
            guild_id=snapshot.guild_id,
            time_range=snapshot.time_range.value,
            nodes=len(graph.nodes),
            edges=len(graph.edges),
            recalculated=snapshot.recalculated,
        )
        return GraphResult(
            graph=graph,
            calculated_at=snapshot.calculated_at,
            is_stale=snapshot.recalculated,
        )

    # -----------------------------------------------------------------
    # Forced recomputes
    # -----------------------------------------------------------------

    async def calculate_voice_connections(self, guild_id: str, time_range: TimeRange) -> datetime:
        return await self.voice_cache.recalculate(guild_id, time_range)

    async def calculate_text_connections(self, guild_id: str, time_range: TimeRange) -> datetime:
        return await self.text_cache.recalculate(guild_id, time_range)

    # -----------------------------------------------------------------
    # Friends
    # -----------------------------------------------------------------

    async def get_server_activity_weight(self, guild_id: str) -> ActivityWeight:
        return await self.weight_normalizer.compute_weight(guild_id)

    async def _voice_for_user(
        self, guild_id: str, user_id: str, now: datetime, limit: int | None = None
    ) -> list[VoiceConnection]:
        # Open sessions keep growing their overlap, so the cached bucket is
        # refreshed regardless of age while anyone is in voice.
        force = await self.voice_cache.has_active_sessions(guild_id)
        if force:
            logger.info("Active voice sessions, refreshing voice connections", guild_id=guild_id)
        snapshot = await self.voice_cache.get_for_user(
            guild_id, FRIENDS_TIME_RANGE, user_id, limit=limit, force=force, now=now
        )
        return snapshot.connections

    async def _text_for_user(
        self, guild_id: str, user_id: str, now: datetime, limit: int | None = None
    ) -> list[TextConnection]:
        try:
            snapshot = await self.text_cache.get_for_user(
                guild_id, FRIENDS_TIME_RANGE, user_id, limit=limit, now=now
            )
        except DatabaseError as e:
            logger.warning(
                "Text connections unavailable, continuing without text signal",
                guild_id=guild_id,
                user_id=user_id,
                error=str(e),
            )
            return []
        return snapshot.connections

    async def get_combined_top_friends(
        self, guild_id: str, user_id: str, limit: int = DEFAULT_FRIEND_LIMIT
    ) -> list[CombinedFriend]:
        now = datetime.now(UTC)
        voice = await self._voice_for_user(guild_id, user_id, now)
        text = await self._text_for_user(guild_id, user_id, now)
        weight = await self.get_server_activity_weight(guild_id)

        friends = self.ranker.rank(user_id, voice, text, weight, limit)
        await self._attach_members(guild_id, friends)

        logger.info(
            "Combined friends ranked",
            guild_id=guild_id,
            user_id=user_id,
            voice_pairs=len(voice),
            text_pairs=len(text),
            returned=len(friends),
        )
        return friends

    async def get_top_voice_friends(
        self, guild_id: str, user_id: str, limit: int = DEFAULT_FRIEND_LIMIT
    ) -> list[CombinedFriend]:
        now = datetime.now(UTC)
        voice = await self._voice_for_user(guild_id, user_id, now, limit)
        friends = self.ranker.rank(user_id, voice, [], VOICE_ONLY, limit)
        await self._attach_members(guild_id, friends)
        return friends

    async def get_top_text_friends(
        self, guild_id: str, user_id: str, limit: int = DEFAULT_FRIEND_LIMIT
    ) -> list[CombinedFriend]:
        now = datetime.now(UTC)
        text = await self._text_for_user(guild_id, user_id, now, limit)
        friends = self.ranker.rank_by_text(user_id, text, limit)
        await self._attach_members(guild_id, friends)
        return friends

    async def _attach_members(self, guild_id: str, friends: list[CombinedFriend]) -> None:
        if not friends:
            return
        members = await self.members.resolve(guild_id, [f.friend_user_id for f in friends])
        for friend in friends:
            friend.member = members.get(friend.friend_user_id)
