from __future__ import annotations

import asyncio
import logging
import math
import re
import resource
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .aggregation import StatisticsQueries, WeddingListingPipeline
from .bucketing import daily_buckets, monthly_buckets, shift_months
from .errors import NotFoundError, ValidationError
from .filters import (
    UserListQuery,
    WeddingListQuery,
    month_date_range,
    parse_positive_int,
    status_predicate,
    user_predicate,
)
from .models import (
    ACCOUNT_TYPES,
    FeedbackRecord,
    Page,
    Pagination,
    UserRecord,
    normalize_account_type,
)
from .repository import AdminRepository, is_valid_id, utcnow
from .status import EventStatus, classify_wedding
from .tables import feedbacks, users, wedding_events

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

RECENT_USERS_LIMIT = 5
RECENT_SIGNUP_WINDOW = timedelta(days=30)
DEFAULT_GROWTH_DAYS = 30
DEFAULT_GROWTH_MONTHS = 6
MAX_GROWTH_DAYS = 3650
MAX_GROWTH_MONTHS = 120
EMAIL_PATTERN = r"\S+@\S+\.\S+"


def _percentage(part: int, total: int) -> int:
    return round(part / total * 100) if total > 0 else 0


def _require_id(value: str, label: str) -> str:
    if not is_valid_id(value):
        raise ValidationError(f"Invalid {label} id")
    return value


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _start_of_week(moment: datetime) -> datetime:
    """Weeks start on Sunday."""
    days_since_sunday = (moment.weekday() + 1) % 7
    return _start_of_day(moment) - timedelta(days=days_since_sunday)


def _start_of_month(moment: datetime) -> datetime:
    return _start_of_day(moment).replace(day=1)


def _start_of_year(moment: datetime) -> datetime:
    return _start_of_month(moment).replace(month=1)


def format_uptime(seconds: float) -> str:
    days, remainder = divmod(int(seconds), 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{days}d {hours}h {minutes}m {secs}s"


def tally_account_types(distribution: Sequence[Tuple[Any, int]]) -> Dict[str, int]:
    """
    Fold a raw ``(account_type, count)`` distribution onto the canonical tiers.

    Legacy labels are merged into their current tier; unknown labels keep
    their own key.
    """

    totals: Dict[str, int] = {tier: 0 for tier in ACCOUNT_TYPES}
    for label, count in distribution:
        key = normalize_account_type(str(label))
        totals[key] = totals.get(key, 0) + count
    return totals


def _paginate(items: Sequence[Any], page: int, limit: int, total: int) -> Page:
    return Page(
        items=list(items),
        pagination=Pagination(
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_items=total,
            items_per_page=limit,
        ),
    )


class DashboardService:
    """
    User-centric dashboard figures: headline counts, growth charts, tier mix
    and process health.
    """

    def __init__(
        self,
        repository: AdminRepository,
        clock: Clock = utcnow,
        started_at: Optional[float] = None,
    ) -> None:
        self.repository = repository
        self.stats = StatisticsQueries(repository)
        self.clock = clock
        self.started_at = started_at if started_at is not None else time.monotonic()

    async def overview(self) -> Dict[str, Any]:
        now = self.clock()
        created = users.c.created_at
        (
            total_users,
            active_users,
            today_users,
            week_users,
            month_users,
            year_users,
            distribution,
            recent_users,
        ) = await asyncio.gather(
            asyncio.to_thread(self.stats.total, users),
            asyncio.to_thread(self.stats.total, users, users.c.is_verified.is_(True)),
            asyncio.to_thread(self.stats.total, users, created >= _start_of_day(now)),
            asyncio.to_thread(self.stats.total, users, created >= _start_of_week(now)),
            asyncio.to_thread(self.stats.total, users, created >= _start_of_month(now)),
            asyncio.to_thread(self.stats.total, users, created >= _start_of_year(now)),
            asyncio.to_thread(self.stats.distribution, users.c.account_type),
            asyncio.to_thread(self.repository.recent_users, RECENT_USERS_LIMIT),
        )

        return {
            "overview": {
                "totalUsers": total_users,
                "activeUsers": active_users,
                "inactiveUsers": total_users - active_users,
                "verificationRate": _percentage(active_users, total_users),
            },
            "newUsers": {
                "today": today_users,
                "thisWeek": week_users,
                "thisMonth": month_users,
                "thisYear": year_users,
            },
            "accountTypes": tally_account_types(distribution),
            "recentUsers": [
                user.summary("fullName", "email", "accountType", "createdAt") for user in recent_users
            ],
        }

    async def dashboard_stats(self) -> Dict[str, Any]:
        overview = await self.overview()
        account_types = overview["accountTypes"]
        return {
            "totalUsers": overview["overview"]["totalUsers"],
            "newUsersThisMonth": overview["newUsers"]["thisMonth"],
            "freeUsers": account_types["FREE"],
            "vipUsers": account_types["VIP"],
            "superUsers": account_types["SUPER"],
            **overview,
        }

    async def user_growth(self, days: Optional[str] = None) -> Dict[str, Any]:
        span = parse_positive_int(days, DEFAULT_GROWTH_DAYS, maximum=MAX_GROWTH_DAYS)
        end = self.clock()
        start = end - timedelta(days=span)
        counts = await asyncio.to_thread(self.stats.counts_by_day, users.c.created_at, start, end)
        chart = daily_buckets(start, end, counts)
        return {
            "period": f"{span} days",
            "chartData": [bucket.as_dict() for bucket in chart],
        }

    async def user_growth_monthly(self, months: Optional[str] = None) -> Dict[str, Any]:
        span = parse_positive_int(months, DEFAULT_GROWTH_MONTHS, maximum=MAX_GROWTH_MONTHS)
        end = self.clock()
        start = shift_months(end, -span)
        counts = await asyncio.to_thread(self.stats.counts_by_month, users.c.created_at, start, end)
        chart = monthly_buckets(start, end, counts)
        return {
            "period": f"{span} months",
            "chartData": [bucket.as_dict() for bucket in chart],
        }

    async def account_distribution(self) -> Dict[str, Any]:
        rows, total_users = await asyncio.gather(
            asyncio.to_thread(self.stats.distribution_with_flag, users.c.account_type, users.c.is_verified),
            asyncio.to_thread(self.stats.total, users),
        )

        merged: Dict[str, List[int]] = {}
        for label, count, verified in rows:
            key = normalize_account_type(str(label))
            bucket = merged.setdefault(key, [0, 0])
            bucket[0] += count
            bucket[1] += verified

        order = {tier: index for index, tier in enumerate(ACCOUNT_TYPES)}
        distribution = [
            {
                "type": tier,
                "count": count,
                "activeCount": verified,
                "percentage": _percentage(count, total_users),
            }
            for tier, (count, verified) in sorted(
                merged.items(), key=lambda item: (order.get(item[0], len(order)), item[0])
            )
        ]
        return {"totalUsers": total_users, "distribution": distribution}

    async def system_health(self) -> Dict[str, Any]:
        connected = await asyncio.to_thread(self.repository.ping)
        uptime = time.monotonic() - self.started_at
        usage = resource.getrusage(resource.RUSAGE_SELF)
        return {
            "database": {
                "status": "connected" if connected else "disconnected",
                "connected": connected,
            },
            "server": {
                "uptime": int(uptime),
                "uptimeFormatted": format_uptime(uptime),
                "memory": {
                    # ru_maxrss is reported in kilobytes on Linux.
                    "maxRss": round(usage.ru_maxrss / 1024, 2),
                },
            },
            "timestamp": self.clock().isoformat(),
        }


class WeddingService:
    def __init__(self, repository: AdminRepository, clock: Clock = utcnow) -> None:
        self.repository = repository
        self.pipeline = WeddingListingPipeline(repository)
        self.stats = StatisticsQueries(repository)
        self.clock = clock

    async def statistics(self) -> Dict[str, Any]:
        now = self.clock()
        month_start, next_month = month_date_range(now.month, now)
        created = wedding_events.c.created_at
        (
            total_events,
            events_this_month,
            completed_events,
            upcoming_events,
            planning_events,
            total_budget,
            average_budget,
        ) = await asyncio.gather(
            asyncio.to_thread(self.stats.total, wedding_events),
            asyncio.to_thread(
                self.stats.total, wedding_events, (created >= month_start) & (created < next_month)
            ),
            asyncio.to_thread(
                self.stats.total, wedding_events, status_predicate(EventStatus.COMPLETED, now)
            ),
            asyncio.to_thread(
                self.stats.total, wedding_events, status_predicate(EventStatus.UPCOMING_SOON, now)
            ),
            asyncio.to_thread(
                self.stats.total, wedding_events, status_predicate(EventStatus.PLANNING, now)
            ),
            asyncio.to_thread(self.stats.sum, wedding_events.c.budget),
            asyncio.to_thread(self.stats.average, wedding_events.c.budget),
        )
        return {
            "totalEvents": total_events,
            "eventsThisMonth": events_this_month,
            "completedEvents": completed_events,
            "upcomingEvents": upcoming_events,
            "planningEvents": planning_events,
            "totalBudget": total_budget,
            "averageBudget": average_budget,
        }

    async def list_weddings(self, query: WeddingListQuery) -> Page:
        now = self.clock()
        predicate = self.pipeline.match(query, now)
        window = query.window
        rows, total = await asyncio.gather(
            asyncio.to_thread(self.pipeline.rows, predicate, window, now),
            asyncio.to_thread(self.pipeline.count, predicate),
        )
        return _paginate([row.as_dict() for row in rows], query.page, query.limit, total)

    async def wedding_detail(self, wedding_id: str) -> Dict[str, Any]:
        _require_id(wedding_id, "wedding")
        wedding = await asyncio.to_thread(self.repository.get_wedding, wedding_id)
        if wedding is None:
            raise NotFoundError("Wedding event not found")

        people, letters = await asyncio.gather(
            asyncio.to_thread(self.repository.get_users_by_ids, {wedding.creator_id, *wedding.member_ids}),
            asyncio.to_thread(self.repository.first_letters_for_users, [wedding.creator_id]),
        )
        creator = people.get(wedding.creator_id)
        letter = letters.get(wedding.creator_id)

        payload = wedding.as_dict()
        payload["status"] = self._status_label(wedding.wedding_date)
        payload["creator"] = (
            creator.summary("fullName", "email", "accountType", "picture") if creator else None
        )
        payload["members"] = [
            people[member_id].summary("fullName", "email", "picture")
            for member_id in wedding.member_ids
            if member_id in people
        ]
        return {
            "wedding": payload,
            "invitationLetter": letter.as_dict() if letter else None,
        }

    def _status_label(self, wedding_date: datetime) -> str:
        return classify_wedding(wedding_date, self.clock()).value

    async def delete_wedding(self, wedding_id: str) -> None:
        _require_id(wedding_id, "wedding")
        deleted = await asyncio.to_thread(self.repository.delete_wedding, wedding_id)
        if not deleted:
            raise NotFoundError("Wedding event not found")
        logger.info("Deleted wedding event %s", wedding_id)


class UserService:
    def __init__(self, repository: AdminRepository, clock: Clock = utcnow) -> None:
        self.repository = repository
        self.stats = StatisticsQueries(repository)
        self.clock = clock

    async def list_users(self, query: UserListQuery) -> Page:
        predicate = user_predicate(query)
        window = query.window
        page, total = await asyncio.gather(
            asyncio.to_thread(self.repository.list_users, predicate, window.skip, window.limit),
            asyncio.to_thread(self.stats.total, users, predicate),
        )
        return _paginate([user.as_dict() for user in page], query.page, query.limit, total)

    async def get_user(self, user_id: str) -> UserRecord:
        _require_id(user_id, "user")
        user = await asyncio.to_thread(self.repository.get_user, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_user(self, user_id: str, changes: Mapping[str, Any]) -> UserRecord:
        _require_id(user_id, "user")
        values = self._validate_changes(changes)
        user = await asyncio.to_thread(self.repository.update_user, user_id, values)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def delete_user(self, user_id: str) -> None:
        _require_id(user_id, "user")
        deleted = await asyncio.to_thread(self.repository.delete_user, user_id)
        if not deleted:
            raise NotFoundError("User not found")
        logger.info("Deleted user %s", user_id)

    async def toggle_status(self, user_id: str) -> UserRecord:
        user = await self.get_user(user_id)
        updated = await asyncio.to_thread(
            self.repository.update_user, user_id, {"is_verified": not user.is_verified}
        )
        if updated is None:
            raise NotFoundError("User not found")
        logger.info("User %s is now %s", user_id, "verified" if updated.is_verified else "unverified")
        return updated

    async def statistics(self) -> Dict[str, Any]:
        since = self.clock() - RECENT_SIGNUP_WINDOW
        total_users, verified_users, distribution, recent_users = await asyncio.gather(
            asyncio.to_thread(self.stats.total, users),
            asyncio.to_thread(self.stats.total, users, users.c.is_verified.is_(True)),
            asyncio.to_thread(self.stats.distribution, users.c.account_type),
            asyncio.to_thread(self.stats.total, users, users.c.created_at >= since),
        )
        tiers = tally_account_types(distribution)
        return {
            "totalUsers": total_users,
            "activeUsers": verified_users,
            "inactiveUsers": total_users - verified_users,
            "accountTypes": {
                "free": tiers["FREE"],
                "vip": tiers["VIP"],
                "super": tiers["SUPER"],
            },
            "verifiedUsers": verified_users,
            "unverifiedUsers": total_users - verified_users,
            "recentUsers": recent_users,
        }

    @staticmethod
    def _validate_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        if changes.get("fullName") is not None:
            full_name = str(changes["fullName"]).strip()
            if not full_name:
                raise ValidationError("Full name cannot be empty")
            values["full_name"] = full_name
        if changes.get("email") is not None:
            email = str(changes["email"]).strip()
            if not re.fullmatch(EMAIL_PATTERN, email):
                raise ValidationError("Email is invalid")
            values["email"] = email
        if changes.get("accountType") is not None:
            account_type = str(changes["accountType"]).strip().upper()
            if account_type not in ACCOUNT_TYPES:
                raise ValidationError(f"Account type must be one of {', '.join(ACCOUNT_TYPES)}")
            values["account_type"] = account_type
        if changes.get("isVerified") is not None:
            if not isinstance(changes["isVerified"], bool):
                raise ValidationError("isVerified must be a boolean")
            values["is_verified"] = changes["isVerified"]
        return values


class FeedbackService:
    def __init__(self, repository: AdminRepository) -> None:
        self.repository = repository
        self.stats = StatisticsQueries(repository)

    @staticmethod
    def _validate(star: Any, content: Any) -> Tuple[int, str]:
        text = content.strip() if isinstance(content, str) else ""
        if star is None or star == "" or not text:
            raise ValidationError("Please provide both a star rating and content")
        if isinstance(star, bool):
            raise ValidationError("Star rating must be between 1 and 5")
        try:
            value = float(star)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Star rating must be between 1 and 5") from exc
        if not value.is_integer() or not 1 <= value <= 5:
            raise ValidationError("Star rating must be between 1 and 5")
        return int(value), text

    async def create(self, user_id: str, star: Any, content: Any) -> FeedbackRecord:
        _require_id(user_id, "user")
        rating, text = self._validate(star, content)
        return await asyncio.to_thread(
            self.repository.insert_feedback, user_id=user_id, star=rating, content=text
        )

    async def update(self, user_id: str, star: Any, content: Any) -> FeedbackRecord:
        _require_id(user_id, "user")
        rating, text = self._validate(star, content)
        feedback = await asyncio.to_thread(
            self.repository.update_feedback, user_id, star=rating, content=text
        )
        if feedback is None:
            raise NotFoundError("Feedback not found for this user")
        return feedback

    async def for_user(self, user_id: str) -> Dict[str, Any]:
        _require_id(user_id, "user")
        feedback, user = await asyncio.gather(
            asyncio.to_thread(self.repository.get_feedback_for_user, user_id),
            asyncio.to_thread(self.repository.get_user, user_id),
        )
        if feedback is None:
            raise NotFoundError("This user has not left any feedback yet")
        return feedback.as_dict(user)

    async def delete(self, user_id: str) -> None:
        _require_id(user_id, "user")
        deleted = await asyncio.to_thread(self.repository.delete_feedback, user_id)
        if not deleted:
            raise NotFoundError("Feedback not found for this user")

    async def list_all(self) -> Dict[str, Any]:
        records = await asyncio.to_thread(self.repository.list_feedback)
        authors = await asyncio.to_thread(
            self.repository.get_users_by_ids, [record.user_id for record in records]
        )
        return {
            "count": len(records),
            "feedbacks": [record.as_dict(authors.get(record.user_id)) for record in records],
        }

    async def statistics(self) -> Dict[str, Any]:
        total, average, distribution = await asyncio.gather(
            asyncio.to_thread(self.stats.total, feedbacks),
            asyncio.to_thread(self.stats.average, feedbacks.c.star),
            asyncio.to_thread(self.stats.distribution, feedbacks.c.star),
        )
        return {
            "totalFeedback": total,
            "averageRating": average,
            "ratingDistribution": [{"star": int(star), "count": count} for star, count in distribution],
        }


class AdminSettingsService:
    """Process-local admin settings; only allow-listed keys can be changed."""

    DEFAULTS: Dict[str, Any] = {
        "siteName": "HyPlanner Admin",
        "maintenanceMode": False,
        "allowRegistration": True,
        "emailVerificationRequired": True,
        "maxUsersPerAccount": 1000,
        "sessionTimeout": 7200,
        "backupFrequency": "daily",
        "logLevel": "info",
    }

    def __init__(self) -> None:
        self._settings = dict(self.DEFAULTS)

    def current(self) -> Dict[str, Any]:
        return dict(self._settings)

    def update(self, changes: Mapping[str, Any]) -> Dict[str, Any]:
        accepted = {key: value for key, value in changes.items() if key in self.DEFAULTS}
        ignored = sorted(set(changes) - set(accepted))
        if ignored:
            logger.warning("Ignoring unknown settings: %s", ", ".join(ignored))
        self._settings.update(accepted)
        return self.current()
