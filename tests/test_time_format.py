"""Tests for effort display helpers."""

from __future__ import annotations

import pytest

from tidy_tortoise.domain.time_format import format_minutes, time_progress


@pytest.mark.parametrize(
    "minutes, expected",
    [(None, "0m"), (0, "0m"), (45, "45m"), (180, "3h"), (150, "2h 30m")],
)
def test_format_minutes(minutes, expected):
    assert format_minutes(minutes) == expected


def test_time_progress():
    assert time_progress(None, 30) == 0
    assert time_progress(60, None) == 0
    assert time_progress(60, 30) == 50
    assert time_progress(200, 1) == 1
    assert time_progress(60, 90) == 100
