from datetime import UTC, datetime, timedelta

from app.features.connections.domain.models import VoiceInterval
from app.features.connections.pipeline.voice.service import VoiceOverlapCalculator

T0 = datetime(2025, 3, 1, 10, 0, tzinfo=UTC)


def interval(user_id, channel_id, start_min, end_min=None):
    return VoiceInterval(
        guild_id="g1",
        user_id=user_id,
        channel_id=channel_id,
        joined_at=T0 + timedelta(minutes=start_min),
        left_at=T0 + timedelta(minutes=end_min) if end_min is not None else None,
    )


def test_partial_overlap_in_same_channel():
    calculator = VoiceOverlapCalculator()
    result = calculator.calculate(
        [interval("A", "c1", 0, 30), interval("B", "c1", 15, 45)],
        now=T0 + timedelta(hours=2),
    )

    assert len(result) == 1
    conn = result[0]
    assert (conn.user_id_lo, conn.user_id_hi) == ("A", "B")
    assert conn.shared_seconds == 900
    assert conn.session_count == 1


def test_different_channels_never_overlap():
    calculator = VoiceOverlapCalculator()
    result = calculator.calculate(
        [interval("A", "c1", 0, 30), interval("B", "c2", 0, 30)],
        now=T0 + timedelta(hours=1),
    )
    assert result == []


def test_touching_intervals_do_not_overlap():
    calculator = VoiceOverlapCalculator()
    result = calculator.calculate(
        [interval("A", "c1", 0, 30), interval("B", "c1", 30, 60)],
        now=T0 + timedelta(hours=1),
    )
    assert result == []


def test_same_user_overlapping_itself_is_ignored():
    calculator = VoiceOverlapCalculator()
    result = calculator.calculate(
        [interval("A", "c1", 0, 30), interval("A", "c1", 10, 40)],
        now=T0 + timedelta(hours=1),
    )
    assert result == []


def test_zero_length_interval_contributes_nothing():
    calculator = VoiceOverlapCalculator()
    result = calculator.calculate(
        [interval("A", "c1", 10, 10), interval("B", "c1", 0, 30)],
        now=T0 + timedelta(hours=1),
    )
    assert result == []


def test_active_session_overlap_grows_with_now():
    calculator = VoiceOverlapCalculator()
    intervals = [interval("A", "c1", 0), interval("B", "c1", 10)]

    earlier = calculator.calculate(intervals, now=T0 + timedelta(minutes=20))
    later = calculator.calculate(intervals, now=T0 + timedelta(minutes=50))

    assert earlier[0].shared_seconds == 600
    assert later[0].shared_seconds == 2400
    assert later[0].shared_seconds >= earlier[0].shared_seconds


def test_repeated_overlaps_accumulate_per_interval_pair():
    calculator = VoiceOverlapCalculator()
    result = calculator.calculate(
        [
            interval("A", "c1", 0, 10),
            interval("B", "c1", 5, 10),
            interval("A", "c1", 60, 70),
            interval("B", "c1", 60, 65),
        ],
        now=T0 + timedelta(hours=2),
    )

    assert len(result) == 1
    assert result[0].shared_seconds == 600
    assert result[0].session_count == 2


def test_input_order_does_not_change_result():
    calculator = VoiceOverlapCalculator()
    intervals = [
        interval("C", "c1", 5, 25),
        interval("A", "c1", 0, 30),
        interval("B", "c1", 15, 45),
        interval("B", "c2", 0, 10),
        interval("C", "c2", 2, 8),
    ]
    now = T0 + timedelta(hours=1)

    forward = calculator.calculate(intervals, now)
    backward = calculator.calculate(list(reversed(intervals)), now)

    assert forward == backward
    pairs = {(c.user_id_lo, c.user_id_hi): c.shared_seconds for c in forward}
    assert pairs == {("A", "C"): 1200, ("A", "B"): 900, ("B", "C"): 600 + 360}
    assert [c.shared_seconds for c in forward] == sorted(
        (c.shared_seconds for c in forward), reverse=True
    )


def test_half_second_overlap_rounds_half_up():
    calculator = VoiceOverlapCalculator()
    a = interval("A", "c1", 0, 60)
    b = VoiceInterval(
        guild_id="g1",
        user_id="B",
        channel_id="c1",
        joined_at=T0,
        left_at=T0 + timedelta(seconds=1800.5),
    )

    result = calculator.calculate([a, b], now=T0 + timedelta(hours=2))

    assert result[0].shared_seconds == 1801
