import itertools
from datetime import datetime, timedelta, timezone

import pytest

from tuilog.errors import TimestampFormatError
from tuilog.models import LogEntryBase

STAMPS = [
    datetime(2024, 1, 1, 0, 0, 0),
    datetime(2024, 1, 1, 12, 0, 0),
    datetime(2024, 1, 2, 8, 30, 0),
    datetime(2024, 2, 1, 23, 59, 59),
]


@pytest.fixture
def filled(logbook, clock, home_profile):
    for i, when in enumerate(STAMPS):
        clock.now = when
        logbook.append_log(
            LogEntryBase(call=f"K{i}ABC", band="20M", frequency="14.2", mode="USB"),
            home_profile,
        )
    return logbook


def _calls(rows):
    return [r.entry.call for r in rows]


def test_unbounded_export_returns_everything_newest_first(filled):
    rows = filled.export_range()
    assert _calls(rows) == ["K3ABC", "K2ABC", "K1ABC", "K0ABC"]
    assert all(r.profile.call == "W1AW" for r in rows)


def test_bounds_are_inclusive(filled):
    rows = filled.export_range("2024-01-01 12:00:00", "2024-01-02 08:30:00")
    assert _calls(rows) == ["K2ABC", "K1ABC"]


def test_start_only_and_end_only(filled):
    assert _calls(filled.export_range(start="2024-01-02 00:00:00")) == ["K3ABC", "K2ABC"]
    assert _calls(filled.export_range(end="2024-01-01 00:00:00")) == ["K0ABC"]


def test_datetime_bounds_accepted(filled):
    rows = filled.export_range(datetime(2024, 1, 1, 0, 0, 1), None)
    assert _calls(rows) == ["K3ABC", "K2ABC", "K1ABC"]


def test_blank_bounds_mean_absent(filled):
    assert len(filled.export_range("", "   ")) == 4


def test_empty_window(filled):
    assert filled.export_range("2024-01-01 00:00:01", "2024-01-01 11:59:59") == []


def test_filter_matches_predicate_and_is_monotonic(filled):
    candidates = [None] + [s.strftime("%Y-%m-%d %H:%M:%S") for s in STAMPS]
    for start, end in itertools.product(candidates, candidates):
        got = set(_calls(filled.export_range(start, end)))
        expected = {
            f"K{i}ABC"
            for i, s in enumerate(STAMPS)
            if (start is None or s >= datetime.fromisoformat(start))
            and (end is None or s <= datetime.fromisoformat(end))
        }
        assert got == expected
        if start is not None:
            assert got <= set(_calls(filled.export_range(None, end)))
        if end is not None:
            assert got <= set(_calls(filled.export_range(start, None)))


@pytest.mark.parametrize("bad", ["not-a-date", "2024-01-01", "2024/01/01 12:00:00", "2024-13-01 00:00:00"])
def test_malformed_start_fails(filled, bad):
    with pytest.raises(TimestampFormatError):
        filled.export_range(start=bad)


def test_malformed_end_fails(filled):
    with pytest.raises(TimestampFormatError):
        filled.export_range(end="yesterday")


def test_malformed_bound_fails_before_store_is_touched(logbook):
    """A closed logbook would raise StorageUnavailableError if it were reached."""
    logbook.close()
    with pytest.raises(TimestampFormatError):
        logbook.export_range(start="not-a-date")


def test_aware_bounds_are_converted_to_utc(logbook, home_profile, sample_entry):
    """The QSO is stored at 12:00:00 UTC; 12:30 at UTC+1 is 11:30 UTC."""
    logbook.append_log(sample_entry, home_profile)
    plus_one = timezone(timedelta(hours=1))

    assert logbook.export_range(None, datetime(2024, 1, 1, 12, 30, tzinfo=plus_one)) == []
    assert len(logbook.export_range(None, datetime(2024, 1, 1, 13, 0, tzinfo=plus_one))) == 1
    assert logbook.export_range(datetime(2024, 1, 1, 13, 0, 1, tzinfo=plus_one), None) == []
    assert len(logbook.export_range(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc), None)) == 1


def test_fractional_datetime_bounds(logbook, home_profile, sample_entry):
    logbook.append_log(sample_entry, home_profile)
    half_past = datetime(2024, 1, 1, 12, 0, 0, 500000)

    assert logbook.export_range(start=half_past) == []
    assert len(logbook.export_range(end=half_past)) == 1
    assert len(logbook.export_range(start=datetime(2024, 1, 1, 11, 59, 59, 999999))) == 1
