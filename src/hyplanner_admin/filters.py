"""
Query-parameter parsing and predicate construction for list endpoints.

Raw query strings are parsed once at the boundary into frozen structs. Bad
values never raise: pagination falls back to its defaults and unrecognised
status/month/verification values simply disable that filter.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from .models import account_type_aliases
from .status import EventStatus, status_date_range
from .tables import users, wedding_events

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Largest OFFSET the store accepts (signed 64-bit).
MAX_OFFSET = 2**63 - 1

_STATUS_ALIASES = {
    "completed": EventStatus.COMPLETED,
    "upcoming": EventStatus.UPCOMING_SOON,
    "planning": EventStatus.PLANNING,
}


def parse_positive_int(raw: Optional[str], default: int, maximum: Optional[int] = None) -> int:
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    if value < 1:
        return default
    return min(value, maximum) if maximum is not None else value


def parse_status(raw: Optional[str]) -> Optional[EventStatus]:
    if not raw:
        return None
    return _STATUS_ALIASES.get(raw.strip().lower())


def parse_month(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    try:
        month = int(raw.strip())
    except ValueError:
        return None
    return month if 1 <= month <= 12 else None


def parse_bool(raw: Optional[str]) -> Optional[bool]:
    if raw is None:
        return None
    lowered = raw.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.limit)


def parse_page_window(page: Optional[str], limit: Optional[str]) -> PageWindow:
    """
    Page and limit from raw query values.

    ``limit`` is capped at ``MAX_LIMIT``; a page whose offset would not fit the
    store's integer range falls back to the first page.
    """

    window_limit = parse_positive_int(limit, DEFAULT_LIMIT, maximum=MAX_LIMIT)
    window_page = parse_positive_int(page, DEFAULT_PAGE)
    if (window_page - 1) * window_limit > MAX_OFFSET:
        window_page = DEFAULT_PAGE
    return PageWindow(page=window_page, limit=window_limit)


@dataclass(frozen=True)
class WeddingListQuery:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    search: str = ""
    status: Optional[EventStatus] = None
    month: Optional[int] = None

    @classmethod
    def from_params(
        cls,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        status: Optional[str] = None,
        month: Optional[str] = None,
        search: Optional[str] = None,
    ) -> "WeddingListQuery":
        window = parse_page_window(page, limit)
        return cls(
            page=window.page,
            limit=window.limit,
            search=(search or "").strip(),
            status=parse_status(status),
            month=parse_month(month),
        )

    @property
    def window(self) -> PageWindow:
        return PageWindow(page=self.page, limit=self.limit)


@dataclass(frozen=True)
class UserListQuery:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    search: str = ""
    account_type: Optional[str] = None
    is_verified: Optional[bool] = None

    @classmethod
    def from_params(
        cls,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        search: Optional[str] = None,
        account_type: Optional[str] = None,
        is_verified: Optional[str] = None,
    ) -> "UserListQuery":
        window = parse_page_window(page, limit)
        return cls(
            page=window.page,
            limit=window.limit,
            search=(search or "").strip(),
            account_type=(account_type or "").strip().upper() or None,
            is_verified=parse_bool(is_verified),
        )

    @property
    def window(self) -> PageWindow:
        return PageWindow(page=self.page, limit=self.limit)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_clause(term: str, *columns) -> ColumnElement:
    pattern = f"%{_escape_like(term)}%"
    return or_(*(column.ilike(pattern, escape="\\") for column in columns))


def _combine(conditions: List[ColumnElement]) -> ColumnElement:
    return and_(*conditions) if conditions else true()


def month_date_range(month: int, now: datetime) -> Tuple[datetime, datetime]:
    start = datetime(now.year, month, 1)
    if month == 12:
        return start, datetime(now.year + 1, 1, 1)
    return start, datetime(now.year, month + 1, 1)


def status_predicate(status: EventStatus, now: datetime) -> ColumnElement:
    """Wedding dates that classify as ``status`` at ``now``."""
    lower, upper = status_date_range(status, now)
    date_column = wedding_events.c.wedding_date
    conditions: List[ColumnElement] = []
    if lower is not None:
        conditions.append(date_column >= lower)
    if upper is not None:
        conditions.append(date_column < upper)
    return _combine(conditions)


def wedding_predicate(query: WeddingListQuery, now: datetime) -> ColumnElement:
    conditions: List[ColumnElement] = []
    date_column = wedding_events.c.wedding_date

    if query.status is not None:
        conditions.append(status_predicate(query.status, now))

    if query.month is not None:
        start, end = month_date_range(query.month, now)
        conditions.append(date_column >= start)
        conditions.append(date_column < end)

    if query.search:
        conditions.append(
            _search_clause(query.search, wedding_events.c.bride_name, wedding_events.c.groom_name)
        )

    return _combine(conditions)


def user_predicate(query: UserListQuery) -> ColumnElement:
    conditions: List[ColumnElement] = []

    if query.search:
        conditions.append(_search_clause(query.search, users.c.full_name, users.c.email))

    if query.account_type:
        conditions.append(users.c.account_type.in_(account_type_aliases(query.account_type)))

    if query.is_verified is not None:
        conditions.append(users.c.is_verified.is_(query.is_verified))

    return _combine(conditions)
