"""
Fold pairwise connections into node/edge graphs for visualization: one
signal at a time, or voice and text merged per pair.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import assert_never

from app.features.connections.domain.models import (
    ActivityWeight,
    CombinedGraph,
    CombinedGraphEdge,
    CombinedGraphNode,
    ConnectionGraph,
    EdgeSignal,
    MemberInfo,
    PairConnection,
    TextConnection,
    TextGraphEdge,
    TextGraphNode,
    VoiceConnection,
    VoiceGraphEdge,
    VoiceGraphNode,
)


def to_graph(
    connections: Sequence[PairConnection],
    members: Mapping[str, MemberInfo] | None = None,
) -> ConnectionGraph:
    """
    Build one edge per connection and one node per user that appears in at
    least one connection. Nodes keep first-seen order.

    All connections must be the same variant (voice or text).
    """
    members = members or {}
    graph = ConnectionGraph()
    if not connections:
        return graph

    variant = type(connections[0])
    nodes: dict[str, VoiceGraphNode | TextGraphNode] = {}

    for conn in connections:
        if type(conn) is not variant:
            raise TypeError("Cannot mix voice and text connections in one graph")

        if isinstance(conn, VoiceConnection):
            graph.edges.append(
                VoiceGraphEdge(
                    source=conn.user_id_lo,
                    target=conn.user_id_hi,
                    shared_seconds=conn.shared_seconds,
                    session_count=conn.session_count,
                )
            )
            for user_id in (conn.user_id_lo, conn.user_id_hi):
                node = nodes.get(user_id)
                if node is None:
                    node = nodes[user_id] = VoiceGraphNode(
                        id=user_id,
                        total_connections=0,
                        total_shared_time=0,
                        member=members.get(user_id),
                    )
                node.total_connections += 1
                node.total_shared_time += conn.shared_seconds
        elif isinstance(conn, TextConnection):
            graph.edges.append(
                TextGraphEdge(
                    source=conn.user_id_lo,
                    target=conn.user_id_hi,
                    interaction_score=conn.interaction_score,
                    shared_channel_count=conn.shared_channel_count,
                )
            )
            for user_id in (conn.user_id_lo, conn.user_id_hi):
                node = nodes.get(user_id)
                if node is None:
                    node = nodes[user_id] = TextGraphNode(
                        id=user_id,
                        total_connections=0,
                        total_interaction_score=0.0,
                        member=members.get(user_id),
                    )
                node.total_connections += 1
                node.total_interaction_score += conn.interaction_score
        else:
            assert_never(conn)

    graph.nodes = list(nodes.values())
    return graph


def to_combined_graph(
    voice_connections: Iterable[VoiceConnection],
    text_connections: Iterable[TextConnection],
    weight: ActivityWeight,
    members: Mapping[str, MemberInfo] | None = None,
) -> CombinedGraph:
    """
    Merge voice and text pairs into one graph keyed by canonical pair.

    Node totals (voice minutes, summed interaction score) and edge metrics
    are max-normalized per signal and blended with the guild activity
    weight. Node combined_score ranges 0-100, edge combined_strength 0-1.
    Maxima are floored at 1.
    """
    members = members or {}
    nodes: dict[str, CombinedGraphNode] = {}
    edges: dict[tuple[str, str], CombinedGraphEdge] = {}

    def node_for(user_id: str) -> CombinedGraphNode:
        node = nodes.get(user_id)
        if node is None:
            node = nodes[user_id] = CombinedGraphNode(id=user_id, member=members.get(user_id))
        return node

    for conn in voice_connections:
        key = (conn.user_id_lo, conn.user_id_hi)
        edge = edges.get(key)
        if edge is None:
            edge = edges[key] = CombinedGraphEdge(
                source=conn.user_id_lo, target=conn.user_id_hi, primary_type=EdgeSignal.VOICE
            )
        edge.voice_seconds = conn.shared_seconds
        for user_id in key:
            node_for(user_id).voice_minutes += conn.shared_seconds / 60

    for conn in text_connections:
        key = (conn.user_id_lo, conn.user_id_hi)
        edge = edges.get(key)
        if edge is None:
            edge = edges[key] = CombinedGraphEdge(
                source=conn.user_id_lo, target=conn.user_id_hi, primary_type=EdgeSignal.TEXT
            )
        edge.text_score = conn.interaction_score
        if edge.voice_seconds > 0:
            edge.primary_type = EdgeSignal.BOTH
        for user_id in key:
            node_for(user_id).text_score += conn.interaction_score

    max_voice = max([n.voice_minutes for n in nodes.values()] + [1])
    max_text = max([n.text_score for n in nodes.values()] + [1])
    for node in nodes.values():
        node.combined_score = (node.voice_minutes / max_voice) * 100 * weight.voice_weight + (
            node.text_score / max_text
        ) * 100 * weight.text_weight

    max_edge_voice = max([e.voice_seconds for e in edges.values()] + [1])
    max_edge_text = max([e.text_score for e in edges.values()] + [1])
    for edge in edges.values():
        edge.combined_strength = (edge.voice_seconds / max_edge_voice) * weight.voice_weight + (
            edge.text_score / max_edge_text
        ) * weight.text_weight

    return CombinedGraph(nodes=list(nodes.values()), edges=list(edges.values()))
