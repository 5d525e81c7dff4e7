from .models import (
    ActivityWeight,
    CombinedFriend,
    CombinedGraph,
    CombinedGraphEdge,
    CombinedGraphNode,
    CombinedGraphResult,
    ConnectionGraph,
    ConnectionKind,
    ConnectionSnapshot,
    EdgeSignal,
    GraphResult,
    MemberInfo,
    MessageEvent,
    PairConnection,
    TextConnection,
    TimeRange,
    VoiceConnection,
    VoiceInterval,
)
from .pairs import canonical_pair, other_participant, pair_key

__all__ = [
    "ActivityWeight",
    "CombinedFriend",
    "CombinedGraph",
    "CombinedGraphEdge",
    "CombinedGraphNode",
    "CombinedGraphResult",
    "ConnectionGraph",
    "ConnectionKind",
    "ConnectionSnapshot",
    "EdgeSignal",
    "GraphResult",
    "MemberInfo",
    "MessageEvent",
    "PairConnection",
    "TextConnection",
    "TimeRange",
    "VoiceConnection",
    "VoiceInterval",
    "canonical_pair",
    "other_participant",
    "pair_key",
]
