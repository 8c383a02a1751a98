"""
Unit tests for record views and account tier normalization.
"""

from datetime import date, datetime

from hyplanner_admin.models import (
    CreatorSummary,
    FeedbackRecord,
    InvitationEvent,
    InvitationLetterRecord,
    StatisticsBucket,
    UserRecord,
    WeddingListRow,
    account_type_aliases,
    normalize_account_type,
)


class TestAccountTiers:
    """Legacy tier labels fold onto the current tier set."""

    def test_legacy_labels_are_mapped(self):
        assert normalize_account_type("BASIC") == "FREE"
        assert normalize_account_type("PREMIUM") == "VIP"

    def test_current_and_unknown_labels_pass_through(self):
        assert normalize_account_type("SUPER") == "SUPER"
        assert normalize_account_type("GOLD") == "GOLD"

    def test_aliases_include_legacy_labels(self):
        assert account_type_aliases("VIP") == ("VIP", "PREMIUM")
        assert account_type_aliases("FREE") == ("FREE", "BASIC")
        assert account_type_aliases("SUPER") == ("SUPER",)

    def test_legacy_label_only_matches_itself(self):
        assert account_type_aliases("PREMIUM") == ("PREMIUM",)


class TestViews:
    def test_user_summary_keeps_id(self):
        user = UserRecord(id="a" * 32, full_name="Lan", email="lan@example.com")
        assert user.summary("fullName") == {"id": "a" * 32, "fullName": "Lan"}

    def test_feedback_embeds_author_when_known(self):
        created = datetime(2024, 6, 1, 8, 0)
        feedback = FeedbackRecord(id="f" * 32, user_id="a" * 32, star=4, content="Nice", created_at=created)
        author = UserRecord(id="a" * 32, full_name="Lan", email="lan@example.com")

        assert "user" not in feedback.as_dict()
        payload = feedback.as_dict(author)
        assert payload["user"] == {"id": "a" * 32, "fullName": "Lan", "email": "lan@example.com"}
        assert payload["createdAt"] == "2024-06-01T08:00:00"

    def test_wedding_row_couple_name(self):
        row = WeddingListRow(
            id="w" * 32,
            bride_name="Lan",
            groom_name="Minh",
            budget=100.0,
            wedding_date=datetime(2024, 7, 1),
            created_at=None,
            status="upcoming",
            location="-",
            member_count=2,
            creator=CreatorSummary(full_name="Lan", email="lan@example.com", account_type="VIP"),
        )
        payload = row.as_dict()
        assert payload["coupleName"] == "Minh & Lan"
        assert payload["creator"]["accountType"] == "VIP"
        assert payload["memberCount"] == 2

    def test_letter_first_location(self):
        letter = InvitationLetterRecord(
            id="l" * 32,
            user_id="a" * 32,
            template_id="classic",
            groom_name="Minh",
            bride_name="Lan",
            wedding_date="2024-07-01",
            wedding_time="10:00",
            events=(InvitationEvent.from_dict({"eventName": "Party", "eventLocation": "Hue"}),),
        )
        assert letter.first_location == "Hue"
        assert letter.events[0].event_date == ""

    def test_bucket_label_is_optional(self):
        assert StatisticsBucket(period=date(2024, 1, 1), count=3).as_dict() == {"date": "2024-01-01", "count": 3}
