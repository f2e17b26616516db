from datetime import datetime, timezone

import pytest

from app.utils.helpers import (
    calculate_percentage,
    calculate_time_remaining,
    clamp_score,
    count_words,
    elapsed_minutes,
    normalize_emails,
    validate_json_response,
)


@pytest.mark.parametrize("score, max_score, expected", [
    (8, 30, 27),
    (28, 30, 93),
    (1, 8, 13),  # 12.5 rounds half up
    (0, 30, 0),
    (30, 30, 100),
    (5, 0, 0),
])
def test_calculate_percentage(score, max_score, expected):
    assert calculate_percentage(score, max_score) == expected


def test_clamp_score():
    assert clamp_score(12, 10) == 10
    assert clamp_score(-3, 10) == 0
    assert clamp_score("7.5", 10) == 7.5
    assert clamp_score(None, 10) == 0


def test_elapsed_minutes_handles_aware_and_naive():
    start = datetime(2025, 1, 1, 10, 0, 0)
    now = datetime(2025, 1, 1, 10, 45, 30, tzinfo=timezone.utc)

    assert elapsed_minutes(start, now) == 45.5


def test_time_remaining_never_negative():
    start = datetime(2025, 1, 1, 10, 0, 0)

    assert calculate_time_remaining(start, 30, datetime(2025, 1, 1, 10, 10, 0)) == 20 * 60
    assert calculate_time_remaining(start, 30, datetime(2025, 1, 1, 11, 0, 0)) == 0


def test_validate_json_response_variants():
    assert validate_json_response('```json\n[{"a": 1}]\n```') == [{"a": 1}]
    assert validate_json_response('Here you go: {"score": 3} hope it helps') == {"score": 3}
    with pytest.raises(ValueError):
        validate_json_response("no json here")


def test_normalize_emails_dedupes_in_order():
    assert normalize_emails([" B@x.com", "a@x.com", "b@X.com", ""]) == ["b@x.com", "a@x.com"]
    assert normalize_emails(None) == []


def test_count_words():
    assert count_words("  one two\nthree ") == 3
    assert count_words(None) == 0
