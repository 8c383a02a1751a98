from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import create_engine, delete, func, insert, select, text, update
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql import Executable

from .config import DatabaseConfig
from .errors import ConflictError
from .models import (
    FeedbackRecord,
    InvitationEvent,
    InvitationLetterRecord,
    UserRecord,
    WeddingEventRecord,
)
from .tables import feedbacks, invitation_letters, metadata, users, wedding_events

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")
DEFAULT_AVATAR = "https://cdn-icons-png.flaticon.com/512/3135/3135715.png"


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation used throughout the store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


def is_valid_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_ID_PATTERN.match(value))


def user_from_row(row: Row) -> UserRecord:
    return UserRecord(
        id=row.id,
        full_name=row.full_name,
        email=row.email,
        account_type=row.account_type,
        is_verified=bool(row.is_verified),
        picture=row.picture,
        avatar=row.avatar,
        last_login=row.last_login,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def wedding_from_row(row: Row) -> WeddingEventRecord:
    return WeddingEventRecord(
        id=row.id,
        creator_id=row.creator_id,
        bride_name=row.bride_name,
        groom_name=row.groom_name,
        budget=float(row.budget),
        wedding_date=row.wedding_date,
        member_ids=tuple(row.member_ids or ()),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def letter_from_row(row: Row) -> InvitationLetterRecord:
    events = row.events if isinstance(row.events, list) else []
    customizations = row.customizations if isinstance(row.customizations, dict) else {}
    return InvitationLetterRecord(
        id=row.id,
        user_id=row.user_id,
        template_id=row.template_id,
        groom_name=row.groom_name,
        bride_name=row.bride_name,
        wedding_date=row.wedding_date,
        wedding_time=row.wedding_time,
        events=tuple(InvitationEvent.from_dict(item) for item in events if isinstance(item, dict)),
        customizations=customizations,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def feedback_from_row(row: Row) -> FeedbackRecord:
    return FeedbackRecord(
        id=row.id,
        user_id=row.user_id,
        star=int(row.star),
        content=row.content,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class AdminRepository:
    """
    Record store for users, wedding events, invitation letters and feedback.

    Every method opens its own short-lived connection, so a single instance
    can be shared by concurrent worker threads.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def initialize_schema(self) -> bool:
        try:
            metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as exc:
            logger.error("Database schema initialisation failed: %s", exc)
            return False
        return True

    def ping(self) -> bool:
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("Database ping failed: %s", exc)
            return False
        return True

    def fetch_all(self, statement: Executable) -> Sequence[Row]:
        with self.engine.connect() as connection:
            return connection.execute(statement).fetchall()

    def scalar(self, statement: Executable) -> Any:
        with self.engine.connect() as connection:
            return connection.execute(statement).scalar()

    # -- users -------------------------------------------------------------

    def insert_user(
        self,
        *,
        full_name: str,
        email: str,
        account_type: str = "FREE",
        is_verified: bool = False,
        picture: Optional[str] = None,
        avatar: Optional[str] = DEFAULT_AVATAR,
        created_at: Optional[datetime] = None,
    ) -> UserRecord:
        timestamp = created_at or utcnow()
        values = {
            "id": new_id(),
            "full_name": full_name,
            "email": email,
            "account_type": account_type,
            "is_verified": is_verified,
            "picture": picture,
            "avatar": avatar,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        self._execute_write(insert(users).values(**values), conflict_message="Email already exists")
        return self.get_user(values["id"])

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        rows = self.fetch_all(select(users).where(users.c.id == user_id))
        return user_from_row(rows[0]) if rows else None

    def get_users_by_ids(self, user_ids: Iterable[str]) -> Dict[str, UserRecord]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        rows = self.fetch_all(select(users).where(users.c.id.in_(ids)))
        return {row.id: user_from_row(row) for row in rows}

    def list_users(self, predicate, skip: int, limit: int) -> List[UserRecord]:
        statement = (
            select(users)
            .where(predicate)
            .order_by(users.c.created_at.desc(), users.c.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return [user_from_row(row) for row in self.fetch_all(statement)]

    def recent_users(self, limit: int) -> List[UserRecord]:
        statement = select(users).order_by(users.c.created_at.desc(), users.c.id.desc()).limit(limit)
        return [user_from_row(row) for row in self.fetch_all(statement)]

    def update_user(self, user_id: str, values: Dict[str, Any]) -> Optional[UserRecord]:
        if values:
            statement = (
                update(users)
                .where(users.c.id == user_id)
                .values(**values, updated_at=utcnow())
            )
            self._execute_write(statement, conflict_message="Email already exists")
        return self.get_user(user_id)

    def delete_user(self, user_id: str) -> bool:
        with self.engine.begin() as connection:
            result = connection.execute(delete(users).where(users.c.id == user_id))
        return result.rowcount > 0

    # -- wedding events ----------------------------------------------------

    def insert_wedding(
        self,
        *,
        creator_id: str,
        bride_name: str,
        groom_name: str,
        budget: float,
        wedding_date: datetime,
        member_ids: Sequence[str] = (),
        created_at: Optional[datetime] = None,
    ) -> WeddingEventRecord:
        timestamp = created_at or utcnow()
        values = {
            "id": new_id(),
            "creator_id": creator_id,
            "bride_name": bride_name,
            "groom_name": groom_name,
            "budget": budget,
            "wedding_date": wedding_date,
            "member_ids": list(member_ids),
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        self._execute_write(insert(wedding_events).values(**values))
        return self.get_wedding(values["id"])

    def get_wedding(self, wedding_id: str) -> Optional[WeddingEventRecord]:
        rows = self.fetch_all(select(wedding_events).where(wedding_events.c.id == wedding_id))
        return wedding_from_row(rows[0]) if rows else None

    def delete_wedding(self, wedding_id: str) -> bool:
        with self.engine.begin() as connection:
            result = connection.execute(delete(wedding_events).where(wedding_events.c.id == wedding_id))
        return result.rowcount > 0

    # -- invitation letters ------------------------------------------------

    def insert_invitation_letter(
        self,
        *,
        user_id: str,
        template_id: str,
        groom_name: str,
        bride_name: str,
        wedding_date: str,
        wedding_time: str,
        events: Sequence[InvitationEvent] = (),
        customizations: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> InvitationLetterRecord:
        timestamp = created_at or utcnow()
        values = {
            "id": new_id(),
            "user_id": user_id,
            "template_id": template_id,
            "groom_name": groom_name,
            "bride_name": bride_name,
            "wedding_date": wedding_date,
            "wedding_time": wedding_time,
            "events": [event.as_dict() for event in events],
            "customizations": dict(customizations or {}),
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        self._execute_write(insert(invitation_letters).values(**values))
        rows = self.fetch_all(select(invitation_letters).where(invitation_letters.c.id == values["id"]))
        return letter_from_row(rows[0])

    def first_letters_for_users(self, user_ids: Iterable[str]) -> Dict[str, InvitationLetterRecord]:
        """
        Oldest invitation letter per user.

        A user may own several letters; callers joining on the owner only ever
        see the first one.
        """

        ids = sorted(set(user_ids))
        if not ids:
            return {}
        statement = (
            select(invitation_letters)
            .where(invitation_letters.c.user_id.in_(ids))
            .order_by(invitation_letters.c.created_at.asc(), invitation_letters.c.id.asc())
        )
        letters: Dict[str, InvitationLetterRecord] = {}
        for row in self.fetch_all(statement):
            letters.setdefault(row.user_id, letter_from_row(row))
        return letters

    # -- feedback ----------------------------------------------------------

    def insert_feedback(self, *, user_id: str, star: int, content: str) -> FeedbackRecord:
        timestamp = utcnow()
        values = {
            "id": new_id(),
            "user_id": user_id,
            "star": star,
            "content": content,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        self._execute_write(
            insert(feedbacks).values(**values),
            conflict_message="Feedback already submitted for this user. Use update instead.",
        )
        return self.get_feedback_for_user(user_id)

    def get_feedback_for_user(self, user_id: str) -> Optional[FeedbackRecord]:
        rows = self.fetch_all(select(feedbacks).where(feedbacks.c.user_id == user_id))
        return feedback_from_row(rows[0]) if rows else None

    def update_feedback(self, user_id: str, *, star: int, content: str) -> Optional[FeedbackRecord]:
        statement = (
            update(feedbacks)
            .where(feedbacks.c.user_id == user_id)
            .values(star=star, content=content, updated_at=utcnow())
        )
        with self.engine.begin() as connection:
            result = connection.execute(statement)
        if result.rowcount == 0:
            return None
        return self.get_feedback_for_user(user_id)

    def delete_feedback(self, user_id: str) -> bool:
        with self.engine.begin() as connection:
            result = connection.execute(delete(feedbacks).where(feedbacks.c.user_id == user_id))
        return result.rowcount > 0

    def list_feedback(self) -> List[FeedbackRecord]:
        statement = select(feedbacks).order_by(feedbacks.c.created_at.desc(), feedbacks.c.id.desc())
        return [feedback_from_row(row) for row in self.fetch_all(statement)]

    def count(self, table, predicate=None) -> int:
        statement = select(func.count()).select_from(table)
        if predicate is not None:
            statement = statement.where(predicate)
        return int(self.scalar(statement) or 0)

    def _execute_write(self, statement: Executable, conflict_message: str = "Duplicate record") -> None:
        try:
            with self.engine.begin() as connection:
                connection.execute(statement)
        except IntegrityError as exc:
            logger.warning("Write rejected by a uniqueness constraint: %s", exc.orig)
            raise ConflictError(conflict_message) from exc


def build_repository(config: DatabaseConfig) -> Optional[AdminRepository]:
    if not config.url:
        logger.error("DATABASE_URL is not configured; store-backed routes will fail.")
        return None
    connect_args: Dict[str, Any] = {}
    if config.url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(config.url, echo=config.echo, future=True, connect_args=connect_args)
    repository = AdminRepository(engine)
    repository.initialize_schema()
    return repository
