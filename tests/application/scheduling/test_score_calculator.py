from decimal import ROUND_HALF_UP, Decimal

import pytest

from wordwise.application.scheduling.score_calculator import (
    compute_score,
    latency_bonus,
    streak_bonus,
)


def test_first_correct_review_score():
    # 1 + 1/5 + (5000 - 2000) / 5000
    assert compute_score(1, 1, 2000) == 1.8


def test_score_without_bonuses():
    assert compute_score(0, 0, 5000) == 0.0
    assert compute_score(3, 0, 12000) == 3.0


def test_score_with_full_bonuses():
    assert compute_score(5, 10, 0) == 7.0


def test_streak_bonus_saturates_after_five():
    assert streak_bonus(5) == 1.0
    assert streak_bonus(50) == 1.0
    assert streak_bonus(2) == pytest.approx(0.4)


def test_negative_latency_counts_as_instant():
    assert latency_bonus(-250) == 1.0
    assert compute_score(2, 0, -100) == 3.0


def test_nan_latency_earns_no_bonus():
    assert latency_bonus(float("nan")) == 0.0


def test_out_of_range_inputs_are_clamped():
    assert compute_score(9, -3, 5000) == 5.0
    assert compute_score(-2, 0, 5000) == 0.0


def test_rounds_half_up():
    # latency bonus is exactly 0.125; banker's rounding would give 0.12
    assert compute_score(0, 0, 4375) == 0.13


def test_score_bounds_and_monotonicity():
    latencies = [0, 1000, 2500, 4999, 5000, 9000]
    for mastery in range(6):
        for streak in range(12):
            scores = [compute_score(mastery, streak, rt) for rt in latencies]
            for score in scores:
                assert mastery <= score <= mastery + 2
            # non-increasing in latency
            assert all(a >= b for a, b in zip(scores, scores[1:]))

        for rt in latencies:
            by_streak = [compute_score(mastery, s, rt) for s in range(12)]
            # non-decreasing in streak
            assert all(a <= b for a, b in zip(by_streak, by_streak[1:]))


@pytest.mark.parametrize(
    "mastery, streak, latency, expected",
    [
        # 0 + 0.2 + 3025/5000 = 0.805, which sums to 0.80499... in binary floats
        (0, 1, 1975, 0.81),
        (0, 1, 1975.0, 0.81),
        (1, 2, 825, 2.24),
        (2, 3, 1225, 3.36),
    ],
)
def test_rounds_half_up_at_decimal_midpoints(mastery, streak, latency, expected):
    assert compute_score(mastery, streak, latency) == expected


def test_half_up_holds_across_integer_latencies():
    for mastery in range(6):
        for streak in range(6):
            for latency in range(0, 5001, 5):
                exact = (
                    Decimal(mastery)
                    + Decimal(streak) / 5
                    + (Decimal(5000) - Decimal(latency)) / 5000
                )
                expected = float(exact.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
                assert compute_score(mastery, streak, latency) == expected
