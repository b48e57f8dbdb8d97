"""Tests for configuration parsing."""
from datetime import timedelta

import pytest

from app.config import Settings, parse_duration


@pytest.mark.parametrize("raw, expected", [
    ("10m", timedelta(minutes=10)),
    ("7d", timedelta(days=7)),
    ("30s", timedelta(seconds=30)),
    ("2h", timedelta(hours=2)),
    ("45", timedelta(seconds=45)),
    (90, timedelta(seconds=90)),
])
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["", "ten minutes", "5w", "-1m"])
def test_parse_duration_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_duration(raw)


def test_settings_accept_duration_strings():
    settings = Settings(
        jwt_access_secret="a", jwt_refresh_secret="b",
        access_token_expires="15m", refresh_token_expires="1d",
    )

    assert settings.access_token_expires == timedelta(minutes=15)
    assert settings.refresh_token_expires == timedelta(days=1)
