"""
Combined friend ranking - blends voice overlap and text interaction into
one ordered "top friends" list for a viewer.
"""

from __future__ import annotations

from collections.abc import Iterable

from app.config import settings
from app.features.connections.domain.models import (
    ActivityWeight,
    CombinedFriend,
    TextConnection,
    VoiceConnection,
)
from app.features.connections.domain.pairs import other_participant
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SECONDS_PER_HOUR = 3600


class CombinedFriendRanker:
    def __init__(self, text_points_per_hour: float | None = None):
        self.text_points_per_hour = (
            text_points_per_hour
            if text_points_per_hour is not None
            else settings.TEXT_POINTS_PER_VOICE_HOUR
        )
        if self.text_points_per_hour <= 0:
            raise ValueError("text_points_per_hour must be positive")

    def combined_score(
        self, voice_seconds: float, text_interaction_score: float, weight: ActivityWeight
    ) -> float:
        voice_contribution = (voice_seconds / SECONDS_PER_HOUR) * weight.voice_weight
        text_contribution = (
            text_interaction_score / self.text_points_per_hour
        ) * weight.text_weight
        return round(voice_contribution + text_contribution, 2)

    def rank(
        self,
        viewer_id: str,
        voice_connections: Iterable[VoiceConnection],
        text_connections: Iterable[TextConnection],
        weight: ActivityWeight,
        limit: int,
    ) -> list[CombinedFriend]:
        friends: dict[str, CombinedFriend] = {}

        def ensure_friend(friend_id: str) -> CombinedFriend:
            if friend_id not in friends:
                friends[friend_id] = CombinedFriend(friend_user_id=friend_id)
            return friends[friend_id]

        for conn in voice_connections:
            if viewer_id not in (conn.user_id_lo, conn.user_id_hi):
                continue
            friend = ensure_friend(other_participant(conn.user_id_lo, conn.user_id_hi, viewer_id))
            friend.voice_seconds = conn.shared_seconds
            friend.voice_session_count = conn.session_count

        for conn in text_connections:
            if viewer_id not in (conn.user_id_lo, conn.user_id_hi):
                continue
            friend = ensure_friend(other_participant(conn.user_id_lo, conn.user_id_hi, viewer_id))
            friend.text_interaction_score = conn.interaction_score
            friend.text_shared_channel_count = conn.shared_channel_count

        for friend in friends.values():
            friend.combined_score = self.combined_score(
                friend.voice_seconds, friend.text_interaction_score, weight
            )

        # Friend id as last key keeps the order total even on full ties
        ranked = sorted(
            friends.values(),
            key=lambda f: (-f.combined_score, -f.voice_seconds, f.friend_user_id),
        )
        return ranked[: max(0, limit)]

    def rank_by_text(
        self, viewer_id: str, text_connections: Iterable[TextConnection], limit: int
    ) -> list[CombinedFriend]:
        """Text-only list: the raw interaction score is the ranking score."""
        friends = [
            CombinedFriend(
                friend_user_id=other_participant(conn.user_id_lo, conn.user_id_hi, viewer_id),
                text_interaction_score=conn.interaction_score,
                text_shared_channel_count=conn.shared_channel_count,
                combined_score=conn.interaction_score,
            )
            for conn in text_connections
            if viewer_id in (conn.user_id_lo, conn.user_id_hi)
        ]
        friends.sort(key=lambda f: (-f.text_interaction_score, f.friend_user_id))
        return friends[: max(0, limit)]


combined_friend_ranker = CombinedFriendRanker()
