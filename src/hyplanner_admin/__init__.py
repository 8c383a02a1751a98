"""
HyPlanner admin backend.

REST API for administering the wedding-planning app: users, wedding events,
feedback and the statistics shown on the admin dashboard.
"""

from .bucketing import bucketize, daily_buckets, monthly_buckets  # noqa: F401
from .config import AppConfig, load_app_config  # noqa: F401
from .errors import (  # noqa: F401
    AdminError,
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from .models import (  # noqa: F401
    FeedbackRecord,
    InvitationEvent,
    InvitationLetterRecord,
    Pagination,
    StatisticsBucket,
    UserRecord,
    WeddingEventRecord,
    WeddingListRow,
    normalize_account_type,
)
from .repository import AdminRepository, build_repository  # noqa: F401
from .status import EventStatus, classify_wedding  # noqa: F401
