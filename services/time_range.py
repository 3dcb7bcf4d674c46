"""Resolve a dashboard time-frame selection into an absolute interval."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Optional, Union

from models.records import Interval

logger = logging.getLogger(__name__)


class TimeFrame(str, Enum):
    last_hour = "last-hour"
    last_24_hours = "last-24-hours"
    specific_day = "specific-day"


_LOOKBACK = {
    TimeFrame.last_hour: timedelta(hours=1),
    TimeFrame.last_24_hours: timedelta(hours=24),
}


@dataclass(frozen=True, slots=True)
class TimeFrameSelection:
    """The dashboard's current time-frame choice; replaced, never mutated."""

    frame: TimeFrame = TimeFrame.last_24_hours
    day: Optional[date] = None

    @classmethod
    def parse(
        cls, frame: Union[str, TimeFrame, None], day: Optional[date] = None
    ) -> "TimeFrameSelection":
        return cls(frame=coerce_time_frame(frame), day=day)


def coerce_time_frame(value: Union[str, TimeFrame, None]) -> TimeFrame:
    """Map a raw selector onto a known frame; unknown selectors become last-24-hours."""
    if isinstance(value, TimeFrame):
        return value
    try:
        return TimeFrame(str(value).strip().lower())
    except ValueError:
        logger.debug("Unknown time frame %r, using last-24-hours", value)
        return TimeFrame.last_24_hours


def local_timezone() -> tzinfo:
    return datetime.now().astimezone().tzinfo or timezone.utc


def resolve(
    selection: Union[TimeFrameSelection, str, TimeFrame, None],
    now: Optional[datetime] = None,
    day: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> Interval:
    """Return the interval for ``selection``.

    Open-ended frames are anchored on ``now``, which is sampled once when not
    supplied. A specific day covers ``00:00:00`` to ``23:59:59`` inclusive in
    ``tz`` (the host's local zone by default) and does not depend on ``now``.
    A specific day without a date, or an unknown selector, resolves like
    last-24-hours. Never raises.
    """
    if not isinstance(selection, TimeFrameSelection):
        selection = TimeFrameSelection.parse(selection, day)

    zone = tz or local_timezone()

    if selection.frame is TimeFrame.specific_day and selection.day is not None:
        return Interval(
            since=datetime.combine(selection.day, time.min, tzinfo=zone),
            until=datetime.combine(selection.day, time(23, 59, 59), tzinfo=zone),
            until_inclusive=True,
        )

    if now is None:
        now = datetime.now(zone)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=zone)

    lookback = _LOOKBACK.get(selection.frame, _LOOKBACK[TimeFrame.last_24_hours])
    return Interval(since=now - lookback)
