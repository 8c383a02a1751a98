"""
Tests for query-parameter parsing and the list predicates.

The predicate tests run against the SQLite store so that the generated SQL is
exercised end to end.
"""

from datetime import datetime

import pytest

from hyplanner_admin.filters import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    MAX_OFFSET,
    UserListQuery,
    WeddingListQuery,
    _escape_like,
    month_date_range,
    parse_bool,
    parse_month,
    parse_positive_int,
    parse_status,
    user_predicate,
    wedding_predicate,
)
from hyplanner_admin.status import EventStatus
from hyplanner_admin.tables import users, wedding_events

from .conftest import FIXED_NOW


class TestParsers:
    """Malformed input falls back instead of raising."""

    @pytest.mark.parametrize("raw", [None, "", "abc", "0", "-3", "1.5"])
    def test_positive_int_fallback(self, raw):
        assert parse_positive_int(raw, 7) == 7

    def test_positive_int_accepts_whitespace(self):
        assert parse_positive_int(" 4 ", 7) == 4

    def test_positive_int_maximum(self):
        assert parse_positive_int("500", 7, maximum=100) == 100
        assert parse_positive_int("50", 7, maximum=100) == 50

    def test_status(self):
        assert parse_status("Completed") is EventStatus.COMPLETED
        assert parse_status("upcoming") is EventStatus.UPCOMING_SOON
        assert parse_status("cancelled") is None
        assert parse_status(None) is None

    def test_month(self):
        assert parse_month("12") == 12
        assert parse_month("13") is None
        assert parse_month("0") is None
        assert parse_month("june") is None

    def test_bool_only_recognises_true_and_false(self):
        assert parse_bool("true") is True
        assert parse_bool("FALSE") is False
        assert parse_bool("yes") is None
        assert parse_bool("1") is None
        assert parse_bool(None) is None

    def test_escape_like(self):
        assert _escape_like("50%_off\\") == "50\\%\\_off\\\\"


class TestQueries:
    def test_wedding_query_defaults(self):
        query = WeddingListQuery.from_params(page="x", limit=None, status="bogus", month="99", search="  ")
        assert query == WeddingListQuery()
        assert query.limit == DEFAULT_LIMIT

    def test_window_skip(self):
        query = WeddingListQuery.from_params(page="3", limit="5")
        assert query.window.skip == 10
        assert query.window.total_pages(11) == 3

    def test_limit_is_capped(self):
        query = UserListQuery.from_params(limit=str(10**19))
        assert query.limit == MAX_LIMIT

    def test_page_beyond_store_offset_range_falls_back(self):
        query = WeddingListQuery.from_params(page=str(10**19), limit="5")
        assert query.page == 1
        assert query.window.skip == 0

        largest = WeddingListQuery.from_params(page=str(MAX_OFFSET // 5 + 1), limit="5")
        assert largest.window.skip <= MAX_OFFSET

    def test_user_query_upper_cases_account_type(self):
        query = UserListQuery.from_params(account_type=" vip ", is_verified="true")
        assert query.account_type == "VIP"
        assert query.is_verified is True

    def test_month_range_rolls_over_december(self):
        assert month_date_range(12, FIXED_NOW) == (datetime(2024, 12, 1), datetime(2025, 1, 1))
        assert month_date_range(2, FIXED_NOW) == (datetime(2024, 2, 1), datetime(2024, 3, 1))


class TestWeddingPredicate:
    def test_status_filter(self, repository, make_wedding):
        make_wedding(-10)
        make_wedding(5)
        make_wedding(5.5)
        make_wedding(90)

        def total(status):
            query = WeddingListQuery(status=status)
            return repository.count(wedding_events, wedding_predicate(query, FIXED_NOW))

        assert total(None) == 4
        assert total(EventStatus.COMPLETED) == 1
        assert total(EventStatus.UPCOMING_SOON) == 2
        assert total(EventStatus.PLANNING) == 1

    def test_month_filter_uses_current_year(self, repository, make_wedding):
        make_wedding(-365)  # June 2023
        make_wedding(-5)  # June 2024
        make_wedding(20)  # July 2024

        query = WeddingListQuery(month=6)
        assert repository.count(wedding_events, wedding_predicate(query, FIXED_NOW)) == 1

    def test_search_is_case_insensitive_and_literal(self, repository, make_wedding):
        make_wedding(10, bride_name="Hoa", groom_name="Nam")
        make_wedding(10, bride_name="Mai 100%", groom_name="Tuan")
        make_wedding(10, bride_name="Mai 1000", groom_name="Tuan")

        def total(term):
            query = WeddingListQuery(search=term)
            return repository.count(wedding_events, wedding_predicate(query, FIXED_NOW))

        assert total("nAm") == 1
        assert total("tuan") == 2
        assert total("100%") == 1


class TestUserPredicate:
    def test_account_type_matches_legacy_labels(self, repository, make_user):
        make_user(account_type="VIP")
        make_user(account_type="PREMIUM")
        make_user(account_type="FREE")

        query = UserListQuery(account_type="VIP")
        assert repository.count(users, user_predicate(query)) == 2

    def test_verification_and_search(self, repository, make_user):
        make_user(full_name="Lan Nguyen", is_verified=True)
        make_user(full_name="Minh Tran", is_verified=False)
        make_user(full_name="Lan Pham", is_verified=False)

        assert repository.count(users, user_predicate(UserListQuery(is_verified=True))) == 1
        assert repository.count(users, user_predicate(UserListQuery(is_verified=False))) == 2
        assert repository.count(users, user_predicate(UserListQuery(search="lan"))) == 2
        assert repository.count(users, user_predicate(UserListQuery(search="example.com"))) == 3
