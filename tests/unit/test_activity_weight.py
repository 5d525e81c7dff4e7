import pytest

from app.features.connections.pipeline.ranking.weights import (
    ActivityWeightNormalizer,
    compute_activity_weight,
)
from tests.fakes import FakeActivityRepository


def test_empty_guild_splits_evenly():
    weight = compute_activity_weight(0, 0)
    assert weight.voice_weight == 0.5
    assert weight.text_weight == 0.5


@pytest.mark.parametrize(
    "messages,voice_minutes",
    [(1, 0), (0, 1), (300, 100), (7, 13), (10_000, 1)],
)
def test_weights_sum_to_one(messages, voice_minutes):
    weight = compute_activity_weight(messages, voice_minutes)
    assert weight.voice_weight + weight.text_weight == pytest.approx(1.0)
    assert 0.0 <= weight.text_weight <= 1.0


def test_text_share_follows_message_ratio():
    weight = compute_activity_weight(300, 100)
    assert weight.text_weight == pytest.approx(0.75)
    assert weight.voice_weight == pytest.approx(0.25)
    assert weight.total_messages == 300
    assert weight.total_voice_minutes == 100


def test_weights_are_scale_invariant():
    small = compute_activity_weight(3, 1)
    large = compute_activity_weight(3000, 1000)
    assert small.text_weight == pytest.approx(large.text_weight)


def test_missing_totals_treated_as_zero():
    weight = compute_activity_weight(None, 0)
    assert weight.voice_weight == 0.5


@pytest.mark.asyncio
async def test_normalizer_reads_guild_totals():
    normalizer = ActivityWeightNormalizer(repository=FakeActivityRepository(50, 150))

    weight = await normalizer.compute_weight("g1")

    assert weight.text_weight == pytest.approx(0.25)
    assert weight.voice_weight == pytest.approx(0.75)
