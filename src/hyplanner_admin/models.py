from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence, Tuple

ACCOUNT_TYPES: Tuple[str, ...] = ("FREE", "VIP", "SUPER")
LEGACY_ACCOUNT_TYPES: Dict[str, str] = {
    "BASIC": "FREE",
    "PREMIUM": "VIP",
}


def normalize_account_type(label: str) -> str:
    """
    Map legacy tier labels onto the current tier set.

    Unrecognised labels are returned untouched so that unexpected upstream
    data still shows up in aggregates instead of silently disappearing.
    """

    return LEGACY_ACCOUNT_TYPES.get(label, label)


def account_type_aliases(label: str) -> Tuple[str, ...]:
    """Every stored label that normalizes to ``label`` (including itself)."""
    canonical = normalize_account_type(label)
    legacy = tuple(sorted(old for old, new in LEGACY_ACCOUNT_TYPES.items() if new == canonical))
    if canonical != label:
        return (label,)
    return (canonical,) + legacy


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class UserRecord:
    id: str
    full_name: str
    email: str
    account_type: str = "FREE"
    is_verified: bool = False
    picture: Optional[str] = None
    avatar: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "email": self.email,
            "accountType": self.account_type,
            "isVerified": self.is_verified,
            "picture": self.picture,
            "avatar": self.avatar,
            "lastLogin": _iso(self.last_login),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def summary(self, *fields: str) -> Dict[str, Any]:
        """Subset of :meth:`as_dict` used when a user is embedded in another record."""
        payload = self.as_dict()
        return {"id": self.id, **{name: payload[name] for name in fields}}


@dataclass(frozen=True)
class WeddingEventRecord:
    """
    A couple's wedding plan.

    ``wedding_date`` and ``budget`` are always present. The display status is
    never stored; see :mod:`hyplanner_admin.status`.
    """

    id: str
    creator_id: str
    bride_name: str
    groom_name: str
    budget: float
    wedding_date: datetime
    member_ids: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "creatorId": self.creator_id,
            "brideName": self.bride_name,
            "groomName": self.groom_name,
            "budget": self.budget,
            "weddingDate": _iso(self.wedding_date),
            "memberIds": list(self.member_ids),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class InvitationEvent:
    event_name: str
    event_date: str
    event_time: str
    event_location: str

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "InvitationEvent":
        return cls(
            event_name=str(payload.get("eventName") or ""),
            event_date=str(payload.get("eventDate") or ""),
            event_time=str(payload.get("eventTime") or ""),
            event_location=str(payload.get("eventLocation") or ""),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "eventName": self.event_name,
            "eventDate": self.event_date,
            "eventTime": self.event_time,
            "eventLocation": self.event_location,
        }


@dataclass(frozen=True)
class InvitationLetterRecord:
    id: str
    user_id: str
    template_id: str
    groom_name: str
    bride_name: str
    wedding_date: str
    wedding_time: str
    events: Tuple[InvitationEvent, ...] = ()
    customizations: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def first_location(self) -> Optional[str]:
        if not self.events:
            return None
        return self.events[0].event_location or None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "templateId": self.template_id,
            "groomName": self.groom_name,
            "brideName": self.bride_name,
            "weddingDate": self.wedding_date,
            "weddingTime": self.wedding_time,
            "events": [event.as_dict() for event in self.events],
            "customizations": dict(self.customizations),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class FeedbackRecord:
    id: str
    user_id: str
    star: int
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def as_dict(self, user: Optional[UserRecord] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "userId": self.user_id,
            "star": self.star,
            "content": self.content,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if user is not None:
            payload["user"] = user.summary("fullName", "email")
        return payload


@dataclass(frozen=True)
class CreatorSummary:
    full_name: str
    email: str
    account_type: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "fullName": self.full_name,
            "email": self.email,
            "accountType": self.account_type,
        }


@dataclass(frozen=True)
class WeddingListRow:
    """Projected row of the wedding listing; only presentation fields survive."""

    id: str
    bride_name: str
    groom_name: str
    budget: float
    wedding_date: datetime
    created_at: Optional[datetime]
    status: str
    location: str
    member_count: int
    creator: Optional[CreatorSummary] = None

    @property
    def couple_name(self) -> str:
        return f"{self.groom_name} & {self.bride_name}"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "coupleName": self.couple_name,
            "brideName": self.bride_name,
            "groomName": self.groom_name,
            "weddingDate": _iso(self.wedding_date),
            "location": self.location,
            "budget": self.budget,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "creator": self.creator.as_dict() if self.creator else None,
            "memberCount": self.member_count,
        }


@dataclass(frozen=True)
class StatisticsBucket:
    period: date
    count: int
    label: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"date": self.period.isoformat(), "count": self.count}
        if self.label is not None:
            payload["label"] = self.label
        return payload


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    def as_dict(self) -> Dict[str, int]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalItems": self.total_items,
            "itemsPerPage": self.items_per_page,
        }


@dataclass(frozen=True)
class Page:
    items: Sequence[Any]
    pagination: Pagination
