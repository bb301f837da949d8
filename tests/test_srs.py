from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from study_review.review.srs import ReviewRecord, compute_next_review, round_half_up


NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


def _record(ease_factor: float, interval: int) -> ReviewRecord:
    reviewed = NOW - timedelta(days=interval)
    return ReviewRecord(
        ease_factor=ease_factor,
        interval=interval,
        last_reviewed=reviewed,
        next_review=NOW,
    )


def test_first_review_starts_with_one_day() -> None:
    record = compute_next_review(None, 5, NOW)

    assert record.interval == 1
    assert record.ease_factor == pytest.approx(2.6)
    assert record.last_reviewed == NOW
    assert record.next_review == NOW + timedelta(days=1)


def test_first_failed_review_lowers_default_ease() -> None:
    record = compute_next_review(None, 0, NOW)

    assert record.interval == 1
    assert record.ease_factor == pytest.approx(2.3)


def test_second_success_graduates_to_six_days() -> None:
    record = compute_next_review(_record(2.5, 1), 5, NOW)

    assert record.interval == 6
    assert record.ease_factor == pytest.approx(2.6)
    assert record.next_review == NOW + timedelta(days=6)


def test_mature_card_multiplies_interval_by_previous_ease() -> None:
    record = compute_next_review(_record(2.5, 6), 3, NOW)

    assert record.interval == 15
    assert record.ease_factor == pytest.approx(2.36)


def test_mature_interval_rounds_halves_up() -> None:
    # 5 * 2.5 = 12.5 and 9 * 2.5 = 22.5
    assert compute_next_review(_record(2.5, 5), 4, NOW).interval == 13
    assert compute_next_review(_record(2.5, 9), 4, NOW).interval == 23


@pytest.mark.parametrize("previous", [None, _record(2.5, 1), _record(2.0, 40), _record(1.35, 6)])
def test_failed_review_resets_interval(previous: ReviewRecord | None) -> None:
    record = compute_next_review(previous, 0, NOW)

    ease0 = previous.ease_factor if previous else 2.5
    assert record.interval == 1
    assert record.ease_factor == pytest.approx(max(1.3, ease0 - 0.2))
    assert record.next_review == NOW + timedelta(days=1)


def test_ease_factor_never_drops_below_floor() -> None:
    record = compute_next_review(_record(1.4, 6), 0, NOW)
    assert record.ease_factor == pytest.approx(1.3)

    for _ in range(5):
        record = compute_next_review(record, 0, NOW)
        assert record.ease_factor == pytest.approx(1.3)
        assert record.ease_factor >= 1.3


def test_hard_answers_keep_ease_at_floor() -> None:
    record = _record(1.3, 6)
    record = compute_next_review(record, 3, NOW)

    assert record.ease_factor == pytest.approx(1.3)
    assert record.interval == 8


def test_intermediate_qualities_follow_the_formula() -> None:
    for quality, expected in [(4, 2.5), (3, 2.36), (2, 2.3), (1, 2.3)]:
        record = compute_next_review(_record(2.5, 6), quality, NOW)
        assert record.ease_factor == pytest.approx(expected)


def test_zero_interval_from_legacy_rows_counts_as_one_day() -> None:
    record = compute_next_review(_record(2.5, 0), 5, NOW)

    assert record.interval == 6


def test_scheduling_is_deterministic() -> None:
    previous = _record(2.2, 9)

    assert compute_next_review(previous, 3, NOW) == compute_next_review(previous, 3, NOW)


def test_reachable_records_respect_bounds() -> None:
    record = None
    for quality in [5, 3, 0, 0, 0, 3, 5, 5, 0, 3, 3, 3, 0, 0, 0, 0, 5]:
        record = compute_next_review(record, quality, NOW)
        assert record.ease_factor >= 1.3
        assert record.interval >= 1


def test_next_review_keeps_local_time_of_day() -> None:
    paris_winter = timezone(timedelta(hours=1))
    now = datetime(2024, 3, 28, 22, 15, tzinfo=paris_winter)

    record = compute_next_review(None, 3, now)

    assert record.next_review.date().isoformat() == "2024-03-29"
    assert (record.next_review.hour, record.next_review.minute) == (22, 15)


def test_round_half_up_matches_math_round() -> None:
    assert round_half_up(12.5) == 13
    assert round_half_up(14.5) == 15
    assert round_half_up(2.4999) == 2
