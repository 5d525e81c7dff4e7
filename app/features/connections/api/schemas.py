"""
API response models for the connections endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.features.connections.domain.models import (
    ActivityWeight,
    CombinedFriend,
    CombinedGraphResult,
    GraphResult,
    MemberInfo,
    SessionTimeline,
    TextGraphEdge,
    TextGraphNode,
    TimeRange,
    VoiceGraphEdge,
    VoiceGraphNode,
)


class MemberFields(BaseModel):
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None

    @staticmethod
    def member_kwargs(member: MemberInfo | None) -> dict:
        if member is None:
            return {}
        return {
            "username": member.username,
            "display_name": member.display_name,
            "avatar_url": member.avatar_url,
        }


class VoiceGraphNodeResponse(MemberFields):
    id: str
    total_connections: int
    total_shared_time: int = Field(..., description="Sum of shared voice seconds across edges")


class TextGraphNodeResponse(MemberFields):
    id: str
    total_connections: int
    total_interaction_score: float


class VoiceGraphEdgeResponse(BaseModel):
    source: str
    target: str
    shared_seconds: int
    session_count: int


class TextGraphEdgeResponse(BaseModel):
    source: str
    target: str
    interaction_score: float
    shared_channel_count: int


class VoiceGraphResponse(BaseModel):
    nodes: list[VoiceGraphNodeResponse]
    edges: list[VoiceGraphEdgeResponse]
    calculated_at: datetime | None
    is_stale: bool = Field(..., description="True when the graph was recalculated for this request")

    @classmethod
    def from_result(cls, result: GraphResult) -> "VoiceGraphResponse":
        nodes = [n for n in result.graph.nodes if isinstance(n, VoiceGraphNode)]
        edges = [e for e in result.graph.edges if isinstance(e, VoiceGraphEdge)]
        return cls(
            nodes=[
                VoiceGraphNodeResponse(
                    id=n.id,
                    total_connections=n.total_connections,
                    total_shared_time=n.total_shared_time,
                    **MemberFields.member_kwargs(n.member),
                )
                for n in nodes
            ],
            edges=[
                VoiceGraphEdgeResponse(
                    source=e.source,
                    target=e.target,
                    shared_seconds=e.shared_seconds,
                    session_count=e.session_count,
                )
                for e in edges
            ],
            calculated_at=result.calculated_at,
            is_stale=result.is_stale,
        )


class TextGraphResponse(BaseModel):
    nodes: list[TextGraphNodeResponse]
    edges: list[TextGraphEdgeResponse]
    calculated_at: datetime | None
    is_stale: bool

    @classmethod
    def from_result(cls, result: GraphResult) -> "TextGraphResponse":
        nodes = [n for n in result.graph.nodes if isinstance(n, TextGraphNode)]
        edges = [e for e in result.graph.edges if isinstance(e, TextGraphEdge)]
        return cls(
            nodes=[
                TextGraphNodeResponse(
                    id=n.id,
                    total_connections=n.total_connections,
                    total_interaction_score=round(n.total_interaction_score, 2),
                    **MemberFields.member_kwargs(n.member),
                )
                for n in nodes
            ],
            edges=[
                TextGraphEdgeResponse(
                    source=e.source,
                    target=e.target,
                    interaction_score=e.interaction_score,
                    shared_channel_count=e.shared_channel_count,
                )
                for e in edges
            ],
            calculated_at=result.calculated_at,
            is_stale=result.is_stale,
        )


class CombinedGraphNodeResponse(MemberFields):
    id: str
    voice_minutes: float
    text_score: float
    combined_score: float = Field(..., description="Weighted blend of normalized voice/text, 0-100")


class CombinedGraphEdgeResponse(BaseModel):
    source: str
    target: str
    voice_seconds: int
    text_score: float
    combined_strength: float
    primary_type: str


class CombinedGraphResponse(BaseModel):
    nodes: list[CombinedGraphNodeResponse]
    edges: list[CombinedGraphEdgeResponse]
    voice_weight: float
    text_weight: float
    calculated_at: datetime | None
    is_stale: bool
    has_text_data: bool

    @classmethod
    def from_result(cls, result: CombinedGraphResult) -> "CombinedGraphResponse":
        return cls(
            nodes=[
                CombinedGraphNodeResponse(
                    id=n.id,
                    voice_minutes=round(n.voice_minutes, 2),
                    text_score=round(n.text_score, 2),
                    combined_score=round(n.combined_score, 2),
                    **MemberFields.member_kwargs(n.member),
                )
                for n in result.graph.nodes
            ],
            edges=[
                CombinedGraphEdgeResponse(
                    source=e.source,
                    target=e.target,
                    voice_seconds=e.voice_seconds,
                    text_score=e.text_score,
                    combined_strength=round(e.combined_strength, 4),
                    primary_type=e.primary_type.value,
                )
                for e in result.graph.edges
            ],
            voice_weight=result.weight.voice_weight,
            text_weight=result.weight.text_weight,
            calculated_at=result.calculated_at,
            is_stale=result.is_stale,
            has_text_data=result.has_text_data,
        )


class RecalculateResponse(BaseModel):
    guild_id: str
    time_range: TimeRange
    calculated_at: datetime


class FriendResponse(MemberFields):
    user_id: str
    voice_seconds: int
    voice_sessions: int
    text_interaction_score: float
    text_shared_channels: int
    combined_score: float

    @classmethod
    def from_friend(cls, friend: CombinedFriend) -> "FriendResponse":
        return cls(
            user_id=friend.friend_user_id,
            voice_seconds=friend.voice_seconds,
            voice_sessions=friend.voice_session_count,
            text_interaction_score=friend.text_interaction_score,
            text_shared_channels=friend.text_shared_channel_count,
            combined_score=friend.combined_score,
            **MemberFields.member_kwargs(friend.member),
        )


class FriendsResponse(BaseModel):
    guild_id: str
    user_id: str
    friends: list[FriendResponse]


class ActivityWeightResponse(BaseModel):
    voice_weight: float
    text_weight: float
    total_voice_minutes: int
    total_messages: int

    @classmethod
    def from_weight(cls, weight: ActivityWeight) -> "ActivityWeightResponse":
        return cls(
            voice_weight=weight.voice_weight,
            text_weight=weight.text_weight,
            total_voice_minutes=weight.total_voice_minutes,
            total_messages=weight.total_messages,
        )


class TimelineSegmentResponse(BaseModel):
    start_percent: float
    width_percent: float
    state: str
    label: str


class VoiceSessionTimelineResponse(BaseModel):
    session_id: int
    channel_id: str
    channel_name: str | None
    joined_at: datetime
    left_at: datetime | None
    is_active: bool
    segments: list[TimelineSegmentResponse]

    @classmethod
    def from_timeline(cls, timeline: SessionTimeline) -> "VoiceSessionTimelineResponse":
        session = timeline.session
        return cls(
            session_id=session.id,
            channel_id=session.channel_id,
            channel_name=session.channel_name,
            joined_at=session.joined_at,
            left_at=session.left_at,
            is_active=session.is_active,
            segments=[
                TimelineSegmentResponse(
                    start_percent=round(s.start_percent, 3),
                    width_percent=round(s.width_percent, 3),
                    state=s.state.value,
                    label=s.label,
                )
                for s in timeline.segments
            ],
        )
