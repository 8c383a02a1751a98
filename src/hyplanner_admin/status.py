"""
Wedding status derivation.

Status is never stored: it is computed from the wedding date relative to the
request time, both when listing weddings and when filtering them, so that a
row returned by ``?status=upcoming`` always displays as upcoming.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple

UPCOMING_WINDOW = timedelta(milliseconds=30 * 24 * 60 * 60 * 1000)


class EventStatus(str, Enum):
    COMPLETED = "completed"
    UPCOMING_SOON = "upcoming"
    PLANNING = "planning"


def classify_wedding(wedding_date: datetime, now: datetime) -> EventStatus:
    if wedding_date < now:
        return EventStatus.COMPLETED
    if wedding_date < now + UPCOMING_WINDOW:
        return EventStatus.UPCOMING_SOON
    return EventStatus.PLANNING


def status_date_range(status: EventStatus, now: datetime) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Half-open ``[lower, upper)`` range of wedding dates that classify as ``status``.

    ``None`` marks an unbounded side.
    """

    threshold = now + UPCOMING_WINDOW
    if status is EventStatus.COMPLETED:
        return None, now
    if status is EventStatus.UPCOMING_SOON:
        return now, threshold
    return threshold, None
