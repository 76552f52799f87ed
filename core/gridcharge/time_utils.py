"""Time utilities for window membership checks.

KEY PRINCIPLE: window membership is decided on hour of day only.
Minutes are truncated on both ends: a slot starting at 13:30 counts from
13:00, and a slot ending at 14:30 stops counting at 14:00 because the end
hour is exclusive.

Trade-off: a slot shorter than an hour that starts and ends within the same
hour (a 15-minute slot 13:00-13:15) never matches, so charging can never
start for it. This is the point to refine if evcc delivers sub-hour
forecasts, e.g. by comparing full timestamps instead of hours.
"""

import logging
from datetime import datetime

logger = logging.getLogger(__name__)


def align_to_window_zone(now: datetime, reference: datetime) -> datetime:
    """Express ``now`` in the timezone of ``reference``.

    Naive timestamps are left untouched, the comparison then happens in
    whatever local time both sides were produced in.
    """
    if now.tzinfo is None or reference.tzinfo is None:
        return now
    return now.astimezone(reference.tzinfo)


def hour_granularity_window_check(
    now: datetime, window_start: datetime, window_end: datetime
) -> bool:
    """Check if ``now`` lies inside the window, comparing whole hours.

    Args:
        now: Decision time
        window_start: Start of the selected slot
        window_end: End of the selected slot

    Returns:
        True when window_start.hour <= now.hour < window_end.hour

    Example:
        >>> hour_granularity_window_check(
        ...     datetime(2025, 1, 1, 14, 50),
        ...     datetime(2025, 1, 1, 13, 0),
        ...     datetime(2025, 1, 1, 14, 30),
        ... )
        False
    """
    local_now = align_to_window_zone(now, window_start)
    in_window = window_start.hour <= local_now.hour < window_end.hour

    logger.debug(
        "Window check %02d:xx in [%02d, %02d): %s",
        local_now.hour,
        window_start.hour,
        window_end.hour,
        in_window,
    )
    return in_window
