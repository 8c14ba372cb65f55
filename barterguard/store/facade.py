"""Data access interface consumed by the moderation coordinator.

Any backend that implements ``MarketStore`` can sit behind the coordinator.
Implementations raise ``barterguard.errors.StoreError`` for every failure.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from barterguard.moderation.models import (
    Ban,
    Block,
    Listing,
    ListingReport,
    ListingStatus,
    Message,
    ReportStatus,
    UserReport,
)


@runtime_checkable
class MarketStore(Protocol):
    """Persistence operations required by ``ModerationCoordinator``."""

    # Reports
    def insert_report(self, report: UserReport) -> UserReport: ...

    def insert_listing_report(self, report: ListingReport) -> ListingReport: ...

    def list_listing_reports(
        self, status: Optional[ReportStatus] = None
    ) -> list[ListingReport]: ...

    def update_listing_report(
        self, report_id: str, status: ReportStatus, resolved_by: str, resolved_at: datetime
    ) -> ListingReport: ...

    # Bans
    def insert_ban(self, ban: Ban) -> Ban: ...

    def clear_ban(self, user_id: str, now: datetime) -> None: ...

    def get_active_ban(self, user_id: str, now: datetime) -> Optional[Ban]: ...

    def list_bans(self, user_id: Optional[str] = None) -> list[Ban]: ...

    # Blocks
    def insert_block(self, blocker_id: str, blocked_id: str) -> Block: ...

    def list_blocked_users(self, user_id: str) -> set[str]: ...

    # Content
    def insert_listing(self, listing: Listing) -> Listing: ...

    def get_listing(self, listing_id: str) -> Optional[Listing]: ...

    def update_listing_status(self, listing_id: str, status: ListingStatus) -> Listing: ...

    def count_listings(self, status: Optional[ListingStatus] = None, flagged: Optional[bool] = None) -> int: ...

    def insert_message(self, message: Message) -> Message: ...

    def list_messages_between(self, user_a: str, user_b: str) -> list[Message]: ...
