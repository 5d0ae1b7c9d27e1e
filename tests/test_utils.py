"""Tests for report formatting."""

import pytest

from jsxfer.utils import format_size, format_duration


@pytest.mark.parametrize('count, expected', [
    (0, '0 B'),
    (1023, '1023 B'),
    (1024, '1.00 KB'),
    (1536, '1.50 KB'),
    (64 * 1024, '64.00 KB'),
    (5 * 1024 * 1024, '5.00 MB'),
    (3 * 1024 ** 3, '3.00 GB'),
])
def test_format_size(count, expected):
    assert format_size(count) == expected


@pytest.mark.parametrize('seconds, expected', [
    (0.25, '250ms'),
    (1.5, '1.50s'),
    (125.2, '2m05.2s'),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
