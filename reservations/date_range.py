"""Resolve a reference date and view mode into an absolute booking window."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from .errors import InvalidViewMode

END_OF_DAY = dt.time(23, 59, 59, 999000)


class ViewMode(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class DateRange:
    """Window ``[start, end]``; ``end`` is the last millisecond of its day."""

    start: dt.datetime
    end: dt.datetime

    @property
    def start_ts(self) -> int:
        return int(self.start.timestamp())

    @property
    def end_ts(self) -> int:
        return int(self.end.timestamp())

    def __contains__(self, moment: dt.datetime) -> bool:
        return self.start <= to_millis(moment) <= self.end


def to_millis(moment: dt.datetime) -> dt.datetime:
    """Drop sub-millisecond precision; ranges end on the last millisecond of a day."""
    return moment.replace(microsecond=moment.microsecond // 1000 * 1000)


def parse_view_mode(value: Union[ViewMode, str, None]) -> ViewMode:
    if value is None:
        return ViewMode.DAY
    if isinstance(value, ViewMode):
        return value
    try:
        return ViewMode(value)
    except ValueError as exc:
        raise InvalidViewMode(value) from exc


def to_local(reference: Union[dt.date, dt.datetime, None], tz: dt.tzinfo) -> dt.datetime:
    """Express ``reference`` as an aware datetime on the wall clock of ``tz``.

    Naive datetimes and plain dates are read as already being in ``tz``.
    """
    if reference is None:
        return to_millis(dt.datetime.now(tz))
    if not isinstance(reference, dt.datetime):
        return dt.datetime.combine(reference, dt.time.min, tzinfo=tz)
    if reference.tzinfo is None:
        return to_millis(reference.replace(tzinfo=tz))
    return to_millis(reference.astimezone(tz))


def resolve(
    reference: Union[dt.date, dt.datetime, None] = None,
    view_mode: Union[ViewMode, str, None] = None,
    tz: dt.tzinfo = dt.timezone.utc,
) -> DateRange:
    """Return the booking window containing ``reference`` for ``view_mode``.

    * ``day``: the reference day.
    * ``week``: Sunday on or before the reference through the Saturday after it.
    * ``month``: the first through the last day of the reference month.

    Raises:
        InvalidViewMode: ``view_mode`` is not one of day, week or month.
    """
    mode = parse_view_mode(view_mode)
    day = to_local(reference, tz).date()

    if mode is ViewMode.WEEK:
        # isoweekday() is 7 for Sunday, so this steps back 0..6 days.
        first = day - dt.timedelta(days=day.isoweekday() % 7)
        last = first + dt.timedelta(days=6)
    elif mode is ViewMode.MONTH:
        first = day.replace(day=1)
        last = first + relativedelta(months=1, days=-1)
    else:
        first = last = day

    return DateRange(
        start=dt.datetime.combine(first, dt.time.min, tzinfo=tz),
        end=dt.datetime.combine(last, END_OF_DAY, tzinfo=tz),
    )


def day_to_epoch(day: dt.date, tz: dt.tzinfo = dt.timezone.utc) -> int:
    """Epoch seconds of ``day``'s midnight in ``tz``, as stored on bookings."""
    return int(dt.datetime.combine(day, dt.time.min, tzinfo=tz).timestamp())


def epoch_to_day(epoch: int, tz: dt.tzinfo = dt.timezone.utc) -> dt.date:
    return dt.datetime.fromtimestamp(epoch, tz).date()

