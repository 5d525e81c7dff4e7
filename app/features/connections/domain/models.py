"""
Domain models for the guild connections feature.

These dataclasses describe voice/message source rows, the cached pairwise
connection records, and the derived view models (graphs, friend lists,
timelines). They carry no I/O so the pipeline functions stay pure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class TimeRange(str, Enum):
    """Lookback window used to bucket cached connections."""

    THIRTY_DAYS = "30d"
    NINETY_DAYS = "90d"
    ALL = "all"

    @property
    def days(self) -> int | None:
        return _TIME_RANGE_DAYS[self]

    def window_start(self, now: datetime) -> datetime | None:
        """Lower time bound for this range, or None when unbounded."""
        if self.days is None:
            return None
        return now - timedelta(days=self.days)


_TIME_RANGE_DAYS: dict[TimeRange, int | None] = {
    TimeRange.THIRTY_DAYS: 30,
    TimeRange.NINETY_DAYS: 90,
    TimeRange.ALL: None,
}


class ConnectionKind(str, Enum):
    VOICE = "voice"
    TEXT = "text"


@dataclass(slots=True, frozen=True)
class VoiceInterval:
    """One continuous voice-channel occupancy. left_at is None while active."""

    guild_id: str
    user_id: str
    channel_id: str
    joined_at: datetime
    left_at: datetime | None = None

    def effective_end(self, now: datetime) -> datetime:
        return self.left_at if self.left_at is not None else now


@dataclass(slots=True, frozen=True)
class MessageEvent:
    guild_id: str
    user_id: str
    channel_id: str
    created_at: datetime


def _check_canonical(lo: str, hi: str) -> None:
    if not lo < hi:
        raise ValueError(f"Connection pair must be canonical (lo < hi), got {lo!r}, {hi!r}")


@dataclass(slots=True)
class VoiceConnection:
    user_id_lo: str
    user_id_hi: str
    shared_seconds: int
    session_count: int

    def __post_init__(self) -> None:
        _check_canonical(self.user_id_lo, self.user_id_hi)

    @property
    def metric(self) -> float:
        return self.shared_seconds


@dataclass(slots=True)
class TextConnection:
    user_id_lo: str
    user_id_hi: str
    shared_channel_count: int
    interaction_score: float
    message_count: int = 0

    def __post_init__(self) -> None:
        _check_canonical(self.user_id_lo, self.user_id_hi)

    @property
    def metric(self) -> float:
        return self.interaction_score


PairConnection = VoiceConnection | TextConnection


@dataclass(slots=True)
class ConnectionSnapshot:
    """Cached connections for one (guild, time range) bucket."""

    guild_id: str
    time_range: TimeRange
    connections: list[PairConnection]
    calculated_at: datetime | None
    recalculated: bool


@dataclass(slots=True, frozen=True)
class ActivityWeight:
    voice_weight: float
    text_weight: float
    total_voice_minutes: int
    total_messages: int


@dataclass(slots=True, frozen=True)
class MemberInfo:
    user_id: str
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None


@dataclass(slots=True)
class CombinedFriend:
    friend_user_id: str
    voice_seconds: int = 0
    voice_session_count: int = 0
    text_interaction_score: float = 0.0
    text_shared_channel_count: int = 0
    combined_score: float = 0.0
    member: MemberInfo | None = None


@dataclass(slots=True)
class VoiceGraphNode:
    id: str
    total_connections: int
    total_shared_time: int
    member: MemberInfo | None = None


@dataclass(slots=True)
class TextGraphNode:
    id: str
    total_connections: int
    total_interaction_score: float
    member: MemberInfo | None = None


@dataclass(slots=True, frozen=True)
class VoiceGraphEdge:
    source: str
    target: str
    shared_seconds: int
    session_count: int


@dataclass(slots=True, frozen=True)
class TextGraphEdge:
    source: str
    target: str
    interaction_score: float
    shared_channel_count: int


@dataclass(slots=True)
class ConnectionGraph:
    nodes: list[VoiceGraphNode | TextGraphNode] = field(default_factory=list)
    edges: list[VoiceGraphEdge | TextGraphEdge] = field(default_factory=list)


@dataclass(slots=True)
class GraphResult:
    graph: ConnectionGraph
    calculated_at: datetime | None
    is_stale: bool


class EdgeSignal(str, Enum):
    """Which signals connect a pair in the combined graph."""

    VOICE = "voice"
    TEXT = "text"
    BOTH = "both"


@dataclass(slots=True)
class CombinedGraphNode:
    id: str
    voice_minutes: float = 0.0
    text_score: float = 0.0
    # Max-normalized voice/text totals blended by the activity weight, 0-100
    combined_score: float = 0.0
    member: MemberInfo | None = None


@dataclass(slots=True)
class CombinedGraphEdge:
    source: str
    target: str
    voice_seconds: int = 0
    text_score: float = 0.0
    combined_strength: float = 0.0
    primary_type: EdgeSignal = EdgeSignal.VOICE


@dataclass(slots=True)
class CombinedGraph:
    nodes: list[CombinedGraphNode] = field(default_factory=list)
    edges: list[CombinedGraphEdge] = field(default_factory=list)


@dataclass(slots=True)
class CombinedGraphResult:
    graph: CombinedGraph
    weight: ActivityWeight
    calculated_at: datetime | None
    is_stale: bool
    has_text_data: bool


# =================================================================
# Voice timeline
# =================================================================


class VoiceStateEvent(str, Enum):
    MUTE = "mute"
    UNMUTE = "unmute"
    DEAFEN = "deafen"
    UNDEAFEN = "undeafen"
    STREAM_START = "stream_start"
    STREAM_END = "stream_end"
    VIDEO_START = "video_start"
    VIDEO_END = "video_end"


class VoiceVisualState(str, Enum):
    NORMAL = "normal"
    MUTED = "muted"
    DEAFENED = "deafened"
    STREAMING = "streaming"
    VIDEO = "video"


@dataclass(slots=True, frozen=True)
class VoiceSession:
    id: int
    guild_id: str
    user_id: str
    channel_id: str
    joined_at: datetime
    left_at: datetime | None = None
    channel_name: str | None = None

    @property
    def is_active(self) -> bool:
        return self.left_at is None


@dataclass(slots=True, frozen=True)
class VoiceStateChange:
    event_type: VoiceStateEvent
    created_at: datetime


@dataclass(slots=True, frozen=True)
class TimelineSegment:
    start_percent: float
    width_percent: float
    state: VoiceVisualState
    label: str


@dataclass(slots=True)
class SessionTimeline:
    session: VoiceSession
    state_changes: list[VoiceStateChange]
    segments: list[TimelineSegment]
