"""Unit tests for the date range resolver."""
import datetime as dt
from zoneinfo import ZoneInfo

import pytest

from reservations.date_range import (
    DateRange,
    ViewMode,
    day_to_epoch,
    epoch_to_day,
    parse_view_mode,
    resolve,
    to_local,
)
from reservations.errors import InvalidViewMode

END = dt.time(23, 59, 59, 999000)
UTC = dt.timezone.utc


class TestResolve:
    def test_week_of_a_wednesday(self):
        result = resolve(dt.date(2024, 6, 12), "week")

        assert result.start == dt.datetime(2024, 6, 9, tzinfo=UTC)
        assert result.end == dt.datetime.combine(dt.date(2024, 6, 15), END, tzinfo=UTC)

    def test_day(self):
        result = resolve(dt.date(2024, 6, 12), ViewMode.DAY)

        assert result.start == dt.datetime(2024, 6, 12, tzinfo=UTC)
        assert result.end == dt.datetime.combine(dt.date(2024, 6, 12), END, tzinfo=UTC)

    def test_month_in_leap_february(self):
        result = resolve(dt.date(2024, 2, 14), "month")

        assert result.start.date() == dt.date(2024, 2, 1)
        assert result.end.date() == dt.date(2024, 2, 29)
        assert result.end.time() == END

    def test_month_of_december(self):
        result = resolve(dt.date(2023, 12, 31), "month")

        assert result.start.date() == dt.date(2023, 12, 1)
        assert result.end.date() == dt.date(2023, 12, 31)

    def test_week_starting_on_sunday_keeps_that_sunday(self):
        result = resolve(dt.date(2024, 6, 9), "week")

        assert result.start.date() == dt.date(2024, 6, 9)

    def test_week_of_a_saturday_spans_month_boundary(self):
        result = resolve(dt.date(2024, 6, 1), "week")

        assert result.start.date() == dt.date(2024, 5, 26)
        assert result.end.date() == dt.date(2024, 6, 1)

    def test_defaults_to_day_view(self):
        assert resolve(dt.date(2024, 6, 12)) == resolve(dt.date(2024, 6, 12), "day")

    def test_defaults_to_now(self):
        before = dt.datetime.now(UTC)
        result = resolve()
        after = dt.datetime.now(UTC)

        assert result.start.date() in {before.date(), after.date()}

    def test_unknown_view_mode_is_rejected(self):
        with pytest.raises(InvalidViewMode):
            resolve(dt.date(2024, 6, 12), "year")

    def test_invalid_view_mode_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_view_mode("fortnight")

    @pytest.mark.parametrize("mode", list(ViewMode))
    @pytest.mark.parametrize(
        "moment",
        [
            dt.datetime(2024, 1, 1, 0, 0),
            dt.datetime(2024, 6, 12, 13, 45),
            dt.datetime(2024, 12, 31, 23, 59, 59),
            dt.datetime(2024, 12, 31, 23, 59, 59, 999500),
            dt.datetime(2024, 6, 12, 23, 59, 59, 999999),
            dt.datetime(2023, 3, 5, 7, 30),
        ],
    )
    def test_reference_lies_inside_its_range(self, mode, moment):
        result = resolve(moment, mode)

        assert moment.replace(tzinfo=UTC) in result
        assert result.start <= to_local(moment, UTC) <= result.end

    def test_local_reference_is_cut_to_milliseconds(self):
        moment = to_local(dt.datetime(2024, 6, 12, 23, 59, 59, 999500), UTC)

        assert moment.microsecond == 999000
        assert moment in resolve(moment, "day")

    @pytest.mark.parametrize("day", [dt.date(2024, 6, d) for d in range(1, 31)])
    def test_week_runs_sunday_to_saturday(self, day):
        result = resolve(day, "week")

        assert result.start.weekday() == 6
        assert result.end.weekday() == 5
        assert (result.end.date() - result.start.date()).days == 6

    def test_aware_reference_is_converted_to_the_zone(self):
        berlin = ZoneInfo("Europe/Berlin")
        late_utc = dt.datetime(2024, 6, 12, 23, 30, tzinfo=UTC)

        result = resolve(late_utc, "day", berlin)

        assert result.start.date() == dt.date(2024, 6, 13)


class TestEpochs:
    def test_range_timestamps_truncate_milliseconds(self):
        result = resolve(dt.date(2024, 6, 10), "day")

        assert result.start_ts == day_to_epoch(dt.date(2024, 6, 10))
        assert result.end_ts == result.start_ts + 86399

    def test_day_round_trips_through_epoch(self):
        assert epoch_to_day(day_to_epoch(dt.date(2024, 6, 10))) == dt.date(2024, 6, 10)

    def test_date_range_membership_is_inclusive(self):
        window = DateRange(dt.datetime(2024, 6, 10, tzinfo=UTC), dt.datetime(2024, 6, 11, tzinfo=UTC))

        assert window.end in window
        assert window.start in window
