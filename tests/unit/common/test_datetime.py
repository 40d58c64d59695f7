"""Tests for common.datetime module."""

from datetime import datetime, timezone

from common.datetime import as_utc, parse_datetime, parse_published_time


class TestParseDatetime:
    def test_none_returns_current_utc(self) -> None:
        before = datetime.now(timezone.utc)
        result = parse_datetime(None)
        after = datetime.now(timezone.utc)
        assert before <= result <= after
        assert result.tzinfo is not None

    def test_datetime_passthrough(self) -> None:
        dt = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_datetime(dt) is dt

    def test_iso_string_parsing(self) -> None:
        result = parse_datetime("2024-01-01T12:00:00+00:00")
        assert result == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_iso_string_with_z_suffix(self) -> None:
        result = parse_datetime("2024-01-01T12:00:00Z")
        assert result == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestParsePublishedTime:
    def test_iso_with_offset(self) -> None:
        result = parse_published_time("2024-03-05T10:00:00+02:00")
        assert result == datetime(2024, 3, 5, 8, 0, 0, tzinfo=timezone.utc)

    def test_rfc822_with_abbreviation(self) -> None:
        result = parse_published_time("Tue, 05 Mar 2024 10:00:00 EST")
        assert result == datetime(2024, 3, 5, 15, 0, 0, tzinfo=timezone.utc)

    def test_naive_assumed_utc(self) -> None:
        result = parse_published_time("2024-03-05 10:00")
        assert result.tzinfo is not None
        assert result.hour == 10

    def test_garbage_returns_none(self) -> None:
        assert parse_published_time("not a date at all") is None

    def test_empty_returns_none(self) -> None:
        assert parse_published_time(None) is None
        assert parse_published_time("") is None


class TestAsUtc:
    def test_naive_gets_utc(self) -> None:
        assert as_utc(datetime(2024, 1, 1)).tzinfo == timezone.utc

    def test_none_passthrough(self) -> None:
        assert as_utc(None) is None
