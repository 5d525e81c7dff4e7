import copy
from datetime import UTC, datetime, timedelta

import pytest

from app.features.connections.domain.models import (
    ActivityWeight,
    EdgeSignal,
    MemberInfo,
    TextConnection,
    TextGraphNode,
    VoiceConnection,
    VoiceGraphEdge,
    VoiceInterval,
)
from app.features.connections.pipeline.graph.service import to_combined_graph, to_graph
from app.features.connections.pipeline.voice.service import VoiceOverlapCalculator

EVEN = ActivityWeight(voice_weight=0.5, text_weight=0.5, total_voice_minutes=0, total_messages=0)


def test_voice_graph_nodes_and_edges():
    connections = [
        VoiceConnection(user_id_lo="A", user_id_hi="B", shared_seconds=900, session_count=1),
        VoiceConnection(user_id_lo="A", user_id_hi="C", shared_seconds=300, session_count=2),
    ]

    graph = to_graph(connections)

    nodes = {n.id: n for n in graph.nodes}
    assert [n.id for n in graph.nodes] == ["A", "B", "C"]
    assert nodes["A"].total_connections == 2
    assert nodes["A"].total_shared_time == 1200
    assert nodes["B"].total_connections == 1
    assert nodes["B"].total_shared_time == 900
    assert nodes["C"].total_shared_time == 300
    assert graph.edges == [
        VoiceGraphEdge(source="A", target="B", shared_seconds=900, session_count=1),
        VoiceGraphEdge(source="A", target="C", shared_seconds=300, session_count=2),
    ]


def test_text_graph_sums_interaction_scores():
    connections = [
        TextConnection(user_id_lo="A", user_id_hi="B", shared_channel_count=2, interaction_score=1.5),
        TextConnection(user_id_lo="B", user_id_hi="C", shared_channel_count=1, interaction_score=0.25),
    ]

    graph = to_graph(connections)

    nodes = {n.id: n for n in graph.nodes}
    assert all(isinstance(n, TextGraphNode) for n in graph.nodes)
    assert nodes["B"].total_connections == 2
    assert nodes["B"].total_interaction_score == pytest.approx(1.75)
    assert graph.edges[0].shared_channel_count == 2


def test_empty_input_gives_empty_graph():
    graph = to_graph([])
    assert graph.nodes == []
    assert graph.edges == []


def test_every_node_has_an_edge():
    connections = [
        VoiceConnection(user_id_lo="A", user_id_hi="B", shared_seconds=10, session_count=1),
        VoiceConnection(user_id_lo="C", user_id_hi="D", shared_seconds=20, session_count=1),
    ]
    graph = to_graph(connections)

    endpoints = {e.source for e in graph.edges} | {e.target for e in graph.edges}
    assert {n.id for n in graph.nodes} == endpoints
    assert all(n.total_connections > 0 for n in graph.nodes)


def test_input_is_not_mutated_and_output_is_repeatable():
    connections = [
        VoiceConnection(user_id_lo="A", user_id_hi="B", shared_seconds=900, session_count=1),
    ]
    before = copy.deepcopy(connections)

    first = to_graph(connections)
    second = to_graph(connections)

    assert connections == before
    assert first == second


def test_members_attached_to_nodes():
    alice = MemberInfo(user_id="A", username="alice")
    graph = to_graph(
        [VoiceConnection(user_id_lo="A", user_id_hi="B", shared_seconds=5, session_count=1)],
        {"A": alice},
    )
    nodes = {n.id: n for n in graph.nodes}
    assert nodes["A"].member == alice
    assert nodes["B"].member is None


def test_mixed_variants_rejected():
    with pytest.raises(TypeError):
        to_graph(
            [
                VoiceConnection(user_id_lo="A", user_id_hi="B", shared_seconds=5, session_count=1),
                TextConnection(user_id_lo="A", user_id_hi="B", shared_channel_count=1, interaction_score=1.0),
            ]
        )


def test_overlaps_feed_graph_end_to_end():
    t0 = datetime(2025, 3, 1, 10, 0, tzinfo=UTC)

    def interval(user_id, channel_id, start, seconds):
        return VoiceInterval(
            guild_id="g1",
            user_id=user_id,
            channel_id=channel_id,
            joined_at=t0 + timedelta(seconds=start),
            left_at=t0 + timedelta(seconds=start + seconds),
        )

    intervals = [
        interval("A", "X", 0, 1800),
        interval("B", "X", 0, 1800),
        interval("B", "Y", 3600, 600),
        interval("C", "Y", 3600, 600),
    ]

    connections = VoiceOverlapCalculator().calculate(intervals, now=t0 + timedelta(hours=3))
    graph = to_graph(connections)

    nodes = {n.id: (n.total_connections, n.total_shared_time) for n in graph.nodes}
    assert nodes == {"A": (1, 1800), "B": (2, 2400), "C": (1, 600)}
    assert [(e.source, e.target, e.shared_seconds) for e in graph.edges] == [
        ("A", "B", 1800),
        ("B", "C", 600),
    ]


class TestCombinedGraph:
    def test_primary_type_reflects_signals(self):
        graph = to_combined_graph(
            [
                VoiceConnection(user_id_lo="A", user_id_hi="B", shared_seconds=600, session_count=1),
                VoiceConnection(user_id_lo="A", user_id_hi="C", shared_seconds=300, session_count=1),
            ],
            [
                TextConnection(user_id_lo="A", user_id_hi="B", shared_channel_count=1, interaction_score=4.0),
                TextConnection(user_id_lo="B", user_id_hi="D", shared_channel_count=1, interaction_score=2.0),
            ],
            EVEN,
        )

        edges = {(e.source, e.target): e for e in graph.edges}
        assert edges[("A", "B")].primary_type == EdgeSignal.BOTH
        assert edges[("A", "C")].primary_type == EdgeSignal.VOICE
        assert edges[("B", "D")].primary_type == EdgeSignal.TEXT
        assert edges[("B", "D")].voice_seconds == 0
        assert edges[("A", "B")].text_score == 4.0

    def test_node_and_edge_normalization(self):
        graph = to_combined_graph(
            [VoiceConnection(user_id_lo="A", user_id_hi="B", shared_seconds=600, session_count=1)],
            [TextConnection(user_id_lo="B", user_id_hi="C", shared_channel_count=1, interaction_score=4.0)],
            EVEN,
        )

        nodes = {n.id: n for n in graph.nodes}
        assert nodes["A"].voice_minutes == 10
        # B carries the maximum of both signals
        assert nodes["B"].combined_score == pytest.approx(100.0)
        assert nodes["A"].combined_score == pytest.approx(50.0)
        assert nodes["C"].combined_score == pytest.approx(50.0)

        edges = {(e.source, e.target): e for e in graph.edges}
        assert edges[("A", "B")].combined_strength == pytest.approx(0.5)
        assert edges[("B", "C")].combined_strength == pytest.approx(0.5)

    def test_small_maxima_are_floored_at_one(self):
        graph = to_combined_graph(
            [],
            [TextConnection(user_id_lo="A", user_id_hi="B", shared_channel_count=1, interaction_score=0.5)],
            ActivityWeight(voice_weight=0.0, text_weight=1.0, total_voice_minutes=0, total_messages=10),
        )

        assert [n.combined_score for n in graph.nodes] == [pytest.approx(50.0), pytest.approx(50.0)]
        assert graph.edges[0].combined_strength == pytest.approx(0.5)

    def test_members_attached_and_empty_input(self):
        alice = MemberInfo(user_id="A", username="alice")
        graph = to_combined_graph(
            [VoiceConnection(user_id_lo="A", user_id_hi="B", shared_seconds=60, session_count=1)],
            [],
            EVEN,
            {"A": alice},
        )

        assert {n.id: n.member for n in graph.nodes} == {"A": alice, "B": None}
        assert to_combined_graph([], [], EVEN).nodes == []
