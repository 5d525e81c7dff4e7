"""
Connection services.

Cache management, aggregation strategy selection, member lookups and the
ConnectionService facade used by the API layer.
"""

from .aggregation_strategy import (
    AggregationCapabilityProbe,
    AggregationStrategy,
    LocalFallback,
    PreferRemoteAggregation,
)
from .cache_manager import ConnectionCacheManager, TextConnectionCache, VoiceConnectionCache
from .connection_service import ConnectionService
from .member_directory import MemberDirectory

__all__ = [
    "AggregationCapabilityProbe",
    "AggregationStrategy",
    "ConnectionCacheManager",
    "ConnectionService",
    "LocalFallback",
    "MemberDirectory",
    "PreferRemoteAggregation",
    "TextConnectionCache",
    "VoiceConnectionCache",
]


def build_connection_service(members: MemberDirectory) -> ConnectionService:
    """Wire the default service graph against the live datastore."""
    probe = AggregationCapabilityProbe()
    return ConnectionService(
        voice_cache=VoiceConnectionCache(probe),
        text_cache=TextConnectionCache(probe),
        members=members,
    )
