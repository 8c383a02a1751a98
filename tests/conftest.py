"""Shared fixtures: a throwaway SQLite store, a frozen clock and an API client."""

from __future__ import annotations

from datetime import datetime, timedelta
from itertools import count
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient

from hyplanner_admin.config import AppConfig, DatabaseConfig
from hyplanner_admin.models import InvitationEvent, UserRecord, WeddingEventRecord
from hyplanner_admin.repository import AdminRepository, build_repository
from hyplanner_admin.server import create_app

# A Saturday; the week therefore started on Sunday 2024-06-09.
FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'hyplanner.db'}"


@pytest.fixture
def repository(database_url) -> AdminRepository:
    repo = build_repository(DatabaseConfig(url=database_url))
    assert repo is not None
    yield repo
    repo.engine.dispose()


@pytest.fixture
def app_config(database_url) -> AppConfig:
    return AppConfig(environment="test", database=DatabaseConfig(url=database_url))


@pytest.fixture
def client(app_config, repository):
    app = create_app(app_config, repository=repository, clock=fixed_clock)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def make_user(repository) -> Callable[..., UserRecord]:
    sequence = count(1)

    def _make_user(
        full_name: Optional[str] = None,
        account_type: str = "FREE",
        is_verified: bool = False,
        created_at: Optional[datetime] = None,
        email: Optional[str] = None,
    ) -> UserRecord:
        index = next(sequence)
        return repository.insert_user(
            full_name=full_name or f"User {index}",
            email=email or f"user{index}@example.com",
            account_type=account_type,
            is_verified=is_verified,
            created_at=created_at or FIXED_NOW - timedelta(days=400),
        )

    return _make_user


@pytest.fixture
def make_wedding(repository, make_user) -> Callable[..., WeddingEventRecord]:
    def _make_wedding(
        days_from_now: float,
        creator: Optional[UserRecord] = None,
        bride_name: str = "Lan",
        groom_name: str = "Minh",
        budget: float = 1000.0,
        member_ids=(),
        created_at: Optional[datetime] = None,
    ) -> WeddingEventRecord:
        owner = creator or make_user()
        return repository.insert_wedding(
            creator_id=owner.id,
            bride_name=bride_name,
            groom_name=groom_name,
            budget=budget,
            wedding_date=FIXED_NOW + timedelta(days=days_from_now),
            member_ids=member_ids,
            created_at=created_at,
        )

    return _make_wedding


@pytest.fixture
def make_letter(repository):
    def _make_letter(user: UserRecord, location: str = "Hanoi", created_at: Optional[datetime] = None):
        return repository.insert_invitation_letter(
            user_id=user.id,
            template_id="classic",
            groom_name="Minh",
            bride_name="Lan",
            wedding_date="2024-07-01",
            wedding_time="10:00",
            events=[
                InvitationEvent(
                    event_name="Ceremony",
                    event_date="2024-07-01",
                    event_time="10:00",
                    event_location=location,
                )
            ],
            created_at=created_at,
        )

    return _make_letter
