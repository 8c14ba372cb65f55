"""Data models for the moderation layer and the entities it persists."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class ListingStatus(str, Enum):
    active = "ACTIVE"
    pending_review = "PENDING_REVIEW"
    removed = "REMOVED"


class ReportStatus(str, Enum):
    pending = "PENDING"
    approved = "APPROVED"
    rejected = "REJECTED"


@dataclass
class Verdict:
    """Result of classifying a piece of content."""

    flagged: bool
    reasons: list[str] = field(default_factory=list)


@dataclass
class SpamIncident:
    count: int = 0
    last_timestamp: datetime = EPOCH


@dataclass
class TrustRecord:
    """In-memory counters for a single user."""

    user_id: str
    report_count: int = 0
    spam: SpamIncident = field(default_factory=SpamIncident)


@dataclass
class Ban:
    """A ban issued against a user. ``banned_until=None`` means permanent."""

    id: str
    user_id: str
    reason: str
    banned_until: Optional[datetime] = None
    banned_by: str = ""
    created_at: Optional[datetime] = None
    cleared_at: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        if self.cleared_at is not None:
            return False
        return self.banned_until is None or as_utc(now) < as_utc(self.banned_until)


@dataclass
class UserReport:
    id: str
    reporter_id: str
    reported_user_id: str
    reason: str
    status: ReportStatus = ReportStatus.pending
    created_at: Optional[datetime] = None


@dataclass
class ListingReport:
    id: str
    listing_id: str
    reporter_id: str
    reason: str
    status: ReportStatus = ReportStatus.pending
    created_at: Optional[datetime] = None
    resolved_by: str = ""
    resolved_at: Optional[datetime] = None


@dataclass
class Block:
    """One-directional block edge: ``user_id`` blocked ``blocked_user_id``."""

    id: str
    user_id: str
    blocked_user_id: str
    created_at: Optional[datetime] = None


@dataclass
class Listing:
    id: str
    user_id: str
    title: str
    description: str
    category: str
    flagged: bool = False
    flag_reasons: list[str] = field(default_factory=list)
    status: ListingStatus = ListingStatus.active
    created_at: Optional[datetime] = None


@dataclass
class Message:
    id: str
    sender_id: str
    receiver_id: str
    content: str
    listing_id: Optional[str] = None
    flagged: bool = False
    flag_reasons: list[str] = field(default_factory=list)
    read: bool = False
    created_at: Optional[datetime] = None
