"""
Tests for date keys, including a server clock whose local date runs ahead of UTC.
"""
from datetime import date, datetime

import pytest

from conftest import AheadOfUtcClock
from lifeos import datekeys
from lifeos.errors import ValidationError


@pytest.fixture()
def ahead_of_utc(monkeypatch):
    monkeypatch.setattr(datekeys, "datetime", AheadOfUtcClock)
    assert AheadOfUtcClock.now().date() == date(2024, 5, 2)


class TestDateKeys:
    def test_parse_variants(self):
        assert datekeys.parse_day("2024-05-01") == date(2024, 5, 1)
        assert datekeys.parse_day(datetime(2024, 5, 1, 9, 30)) == date(2024, 5, 1)
        with pytest.raises(ValidationError):
            datekeys.parse_day("yesterday")

    def test_week_start_is_monday(self):
        assert datekeys.week_start("2024-05-05") == date(2024, 4, 29)
        assert datekeys.week_start("2024-04-29") == date(2024, 4, 29)

    def test_today_and_stamps_share_utc(self, ahead_of_utc):
        assert datekeys.today() == date(2024, 5, 1)
        assert datekeys.utc_now_iso() == "2024-05-01T20:00:00"
        assert datekeys.utc_now_iso() >= datekeys.start_of_day(datekeys.today())
