"""
Read pipelines behind the listing and statistics endpoints.

``WeddingListingPipeline`` runs match -> join -> derive -> project -> sort ->
paginate for the wedding table. The join stage is a batch enrichment over
the page (one query per related table), and the total used for pagination
is counted with the very same match predicate as the page itself.

``StatisticsQueries`` wraps the scalar/grouped aggregates (totals, averages,
distributions and per-period counts) shared by the dashboard, wedding,
user and feedback statistics.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, extract, func, select
from sqlalchemy.sql.elements import ColumnElement

from .filters import PageWindow, WeddingListQuery, wedding_predicate
from .models import (
    CreatorSummary,
    InvitationLetterRecord,
    UserRecord,
    WeddingEventRecord,
    WeddingListRow,
    normalize_account_type,
)
from .repository import AdminRepository, wedding_from_row
from .status import classify_wedding
from .tables import wedding_events

MISSING_LOCATION = "-"


@dataclass(frozen=True)
class EnrichedWedding:
    wedding: WeddingEventRecord
    creator: Optional[UserRecord]
    invitation: Optional[InvitationLetterRecord]


def project_wedding(enriched: EnrichedWedding, now: datetime) -> WeddingListRow:
    wedding = enriched.wedding
    location = MISSING_LOCATION
    if enriched.invitation is not None and enriched.invitation.first_location:
        location = enriched.invitation.first_location

    creator = None
    if enriched.creator is not None:
        creator = CreatorSummary(
            full_name=enriched.creator.full_name,
            email=enriched.creator.email,
            account_type=normalize_account_type(enriched.creator.account_type),
        )

    return WeddingListRow(
        id=wedding.id,
        bride_name=wedding.bride_name,
        groom_name=wedding.groom_name,
        budget=wedding.budget,
        wedding_date=wedding.wedding_date,
        created_at=wedding.created_at,
        status=classify_wedding(wedding.wedding_date, now).value,
        location=location,
        member_count=len(wedding.member_ids),
        creator=creator,
    )


class WeddingListingPipeline:
    def __init__(self, repository: AdminRepository):
        self.repository = repository

    @staticmethod
    def match(query: WeddingListQuery, now: datetime) -> ColumnElement:
        return wedding_predicate(query, now)

    def fetch_page(self, predicate: ColumnElement, window: PageWindow) -> List[WeddingEventRecord]:
        statement = (
            select(wedding_events)
            .where(predicate)
            .order_by(wedding_events.c.created_at.desc(), wedding_events.c.id.desc())
            .offset(window.skip)
            .limit(window.limit)
        )
        return [wedding_from_row(row) for row in self.repository.fetch_all(statement)]

    def count(self, predicate: ColumnElement) -> int:
        return self.repository.count(wedding_events, predicate)

    def enrich(self, weddings: Sequence[WeddingEventRecord]) -> List[EnrichedWedding]:
        creator_ids = {wedding.creator_id for wedding in weddings}
        creators = self.repository.get_users_by_ids(creator_ids)
        letters = self.repository.first_letters_for_users(creator_ids)
        return [
            EnrichedWedding(
                wedding=wedding,
                creator=creators.get(wedding.creator_id),
                invitation=letters.get(wedding.creator_id),
            )
            for wedding in weddings
        ]

    def rows(self, predicate: ColumnElement, window: PageWindow, now: datetime) -> List[WeddingListRow]:
        weddings = self.fetch_page(predicate, window)
        return [project_wedding(item, now) for item in self.enrich(weddings)]


class StatisticsQueries:
    def __init__(self, repository: AdminRepository):
        self.repository = repository

    def total(self, table, predicate: Optional[ColumnElement] = None) -> int:
        return self.repository.count(table, predicate)

    def average(self, column) -> float:
        value = self.repository.scalar(select(func.avg(column)))
        return float(value) if value is not None else 0.0

    def sum(self, column) -> float:
        value = self.repository.scalar(select(func.sum(column)))
        return float(value) if value is not None else 0.0

    def distribution(self, column) -> List[Tuple[Any, int]]:
        statement = select(column, func.count().label("total")).group_by(column).order_by(column.asc())
        return [(row[0], int(row.total)) for row in self.repository.fetch_all(statement)]

    def distribution_with_flag(self, column, flag_column) -> List[Tuple[Any, int, int]]:
        """Like :meth:`distribution` but also counts rows where ``flag_column`` is true."""
        flagged = func.sum(case((flag_column.is_(True), 1), else_=0))
        statement = (
            select(column, func.count().label("total"), flagged.label("flagged"))
            .group_by(column)
            .order_by(column.asc())
        )
        return [
            (row[0], int(row.total), int(row.flagged or 0))
            for row in self.repository.fetch_all(statement)
        ]

    def counts_by_day(self, column, start: datetime, end: datetime) -> Dict[Tuple[int, int, int], int]:
        year = extract("year", column)
        month = extract("month", column)
        day = extract("day", column)
        statement = (
            select(year.label("year"), month.label("month"), day.label("day"), func.count().label("total"))
            .where(column >= start, column <= end)
            .group_by(year, month, day)
        )
        return {
            (int(row.year), int(row.month), int(row.day)): int(row.total)
            for row in self.repository.fetch_all(statement)
        }

    def counts_by_month(self, column, start: datetime, end: datetime) -> Dict[Tuple[int, int], int]:
        year = extract("year", column)
        month = extract("month", column)
        statement = (
            select(year.label("year"), month.label("month"), func.count().label("total"))
            .where(column >= start, column <= end)
            .group_by(year, month)
        )
        return {
            (int(row.year), int(row.month)): int(row.total)
            for row in self.repository.fetch_all(statement)
        }
