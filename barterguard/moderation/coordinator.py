"""Moderation policy: classification, trust counters and escalation.

``ModerationCoordinator`` sits between callers (CLI, REST handlers) and the
market store. It classifies submitted content, keeps per-user report and
spam counters, and bans users automatically when a counter reaches its
threshold:

- the third report against a user bans them for ``auto_ban_days``;
- the third spam-like message inside the spam window bans the sender and
  rejects that message without persisting it.

Store failures propagate unchanged. Counter updates that happened before a
failing write are kept. Audit events are recorded after the ban write, and
no new automatic ban is issued while one is already in force.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Any, Optional

from barterguard.config import ModerationConfig
from barterguard.errors import (
    BlockedError,
    SenderBannedError,
    SpamRejectedError,
    StoreError,
    ValidationError,
)
from barterguard.moderation.classifier import ContentClassifier
from barterguard.moderation.counters import Clock, TrustCounters, utc_now
from barterguard.moderation.models import (
    Ban,
    Listing,
    ListingReport,
    ListingStatus,
    Message,
    ReportStatus,
    UserReport,
    Verdict,
)
from barterguard.security import audit_log
from barterguard.security.audit_log import AuditLogger
from barterguard.store.facade import MarketStore

logger = logging.getLogger(__name__)

AUTO_BAN_REPORTS_REASON = "Auto-banned for multiple reports"
AUTO_BAN_SPAM_REASON = "Auto-banned for spam"


class ModerationCoordinator:
    """Ties the classifier and the trust counters to store writes."""

    def __init__(
        self,
        store: MarketStore,
        config: Optional[ModerationConfig] = None,
        counters: Optional[TrustCounters] = None,
        classifier: Optional[ContentClassifier] = None,
        audit: Optional[AuditLogger] = None,
        users: Optional[Any] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.config = config or ModerationConfig()
        self.store = store
        self.counters = counters or TrustCounters(
            window=timedelta(seconds=self.config.spam_window_seconds), clock=clock
        )
        self.classifier = classifier or ContentClassifier(
            keywords=self.config.keywords, spam_patterns=self.config.spam_patterns
        )
        self.audit = audit
        self.users = users
        self._clock = clock

    def _record(self, actor: Optional[str], event: str, subject_type: str,
                subject_id: str, **details: Any) -> None:
        if self.audit is not None:
            self.audit.record(actor or audit_log.SYSTEM_ACTOR, event, subject_type, subject_id, details)

    # ------------------------------------------------------------------
    # Classification and spam escalation
    # ------------------------------------------------------------------

    def classify(self, title: Optional[str] = "", body: Optional[str] = "") -> Verdict:
        return self.classifier.classify(title, body)

    def _escalate_spam(self, user_id: str, content: str) -> tuple[bool, bool]:
        """Return ``(is_spam, banned)`` after updating the spam counter."""
        if not self.classifier.matches_spam_patterns(content):
            return False, False
        count = self.counters.record_spam_incident(user_id, self._clock())
        logger.info("Spam incident %d for user %s", count, user_id)
        if count >= self.config.spam_threshold:
            self._auto_ban(user_id, AUTO_BAN_SPAM_REASON, spam_count=count)
            return True, True
        return True, False

    def check_spam(self, user_id: str, content: str) -> bool:
        """Return whether *content* looks like spam.

        A match counts as a spam incident for *user_id*; reaching the spam
        threshold inside the window bans the user.
        """
        is_spam, _ = self._escalate_spam(user_id, content)
        return is_spam

    # ------------------------------------------------------------------
    # Reports, bans, blocks
    # ------------------------------------------------------------------

    def report_user(self, reporter_id: str, reported_id: str, reason: str) -> UserReport:
        """Persist a report and auto-ban the reported user at the threshold."""
        report = self.store.insert_report(UserReport(
            id="",
            reporter_id=reporter_id,
            reported_user_id=reported_id,
            reason=reason,
            created_at=self._clock(),
        ))
        count = self.counters.record_report(reported_id)
        if count >= self.config.report_threshold:
            self._auto_ban(reported_id, AUTO_BAN_REPORTS_REASON, report_count=count)
        self._record(reporter_id, audit_log.USER_REPORT, "user", reported_id,
                     reason=reason, report_count=count)
        return report

    def _auto_ban(self, user_id: str, reason: str, **details: Any) -> Optional[Ban]:
        """Ban *user_id* for ``auto_ban_days`` unless a ban is already in force."""
        if self.active_ban(user_id) is not None:
            return None
        ban = self._issue_ban(user_id, reason, banned_by="", duration_days=self.config.auto_ban_days)
        logger.warning("Auto-banned user %s: %s", user_id, reason)
        self._record(None, audit_log.USER_AUTO_BAN, "user", user_id, reason=reason,
                     banned_until=ban.banned_until, **details)
        return ban

    def _issue_ban(self, user_id: str, reason: str, banned_by: str,
                   duration_days: Optional[int]) -> Ban:
        now = self._clock()
        banned_until = now + timedelta(days=duration_days) if duration_days is not None else None
        return self.store.insert_ban(Ban(
            id=str(uuid.uuid4()),
            user_id=user_id,
            reason=reason,
            banned_until=banned_until,
            banned_by=banned_by,
            created_at=now,
        ))

    def ban_user(
        self,
        user_id: str,
        reason: str,
        banned_by: Optional[str] = None,
        duration_days: Optional[int] = None,
    ) -> Ban:
        """Ban *user_id*. Without *duration_days* the ban is permanent."""
        ban = self._issue_ban(user_id, reason, banned_by or "", duration_days)
        logger.warning("User %s banned by %s: %s", user_id, banned_by or "system", reason)
        self._record(banned_by, audit_log.USER_BAN, "user", user_id,
                     reason=reason, banned_until=ban.banned_until)
        return ban

    def unban_user(self, user_id: str, unbanned_by: Optional[str] = None) -> None:
        """Clear the user's bans. Trust counters keep accumulating."""
        self.store.clear_ban(user_id, self._clock())
        logger.info("User %s unbanned", user_id)
        self._record(unbanned_by, audit_log.USER_UNBAN, "user", user_id)

    def active_ban(self, user_id: str) -> Optional[Ban]:
        return self.store.get_active_ban(user_id, self._clock())

    def block_user(self, user_id: str, blocked_user_id: str) -> None:
        self.store.insert_block(user_id, blocked_user_id)
        self._record(user_id, audit_log.USER_BLOCK, "user", blocked_user_id)

    def is_blocked(self, sender_id: str, receiver_id: str) -> bool:
        """True when *receiver_id* has blocked *sender_id*."""
        return sender_id in self.store.list_blocked_users(receiver_id)

    # ------------------------------------------------------------------
    # Content submission
    # ------------------------------------------------------------------

    def create_listing(self, user_id: str, title: str, description: str, category: str) -> Listing:
        missing = [
            name
            for name, value in (("title", title), ("description", description), ("category", category))
            if not value or not value.strip()
        ]
        if missing:
            raise ValidationError(
                "Missing required fields: title, description, and category are required",
                fields=missing,
            )
        if self.active_ban(user_id) is not None:
            raise SenderBannedError("Your account is banned")

        verdict = self.classify(title, description)
        listing = self.store.insert_listing(Listing(
            id="",
            user_id=user_id,
            title=title,
            description=description,
            category=category,
            flagged=verdict.flagged,
            flag_reasons=verdict.reasons,
            status=ListingStatus.pending_review if verdict.flagged else ListingStatus.active,
            created_at=self._clock(),
        ))
        if verdict.flagged:
            logger.info("Listing %s held for review: %s", listing.id, "; ".join(verdict.reasons))
        self._record(user_id, audit_log.LISTING_CREATE, "listing", listing.id,
                     status=listing.status.value, reasons=verdict.reasons)
        return listing

    def send_message(
        self,
        sender_id: str,
        receiver_id: str,
        content: str,
        listing_id: Optional[str] = None,
    ) -> Message:
        """Persist a message unless moderation policy rejects it.

        Rejections, in order: banned sender, spam threshold reached (the
        sender is banned and the message is dropped), receiver has blocked
        the sender.
        """
        if not content or not content.strip():
            raise ValidationError("Message content is required", fields=["content"])
        if self.active_ban(sender_id) is not None:
            self._reject(sender_id, receiver_id, "sender_banned")
            raise SenderBannedError("Your account is banned")

        _, banned = self._escalate_spam(sender_id, content)
        if banned:
            self._reject(sender_id, receiver_id, "spam")
            raise SpamRejectedError("Message flagged as spam")

        if self.is_blocked(sender_id, receiver_id):
            self._reject(sender_id, receiver_id, "blocked")
            raise BlockedError("You are blocked by this user")

        verdict = self.classify("", content)
        return self.store.insert_message(Message(
            id="",
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            listing_id=listing_id,
            flagged=verdict.flagged,
            flag_reasons=verdict.reasons,
            created_at=self._clock(),
        ))

    def _reject(self, sender_id: str, receiver_id: str, code: str) -> None:
        logger.warning("Message from %s to %s rejected: %s", sender_id, receiver_id, code)
        self._record(sender_id, audit_log.MESSAGE_REJECT, "user", receiver_id, code=code)

    def flag_listing(self, listing_id: str, reporter_id: str, reason: str) -> ListingReport:
        """File a report against a listing for the admin queue."""
        if self.store.get_listing(listing_id) is None:
            raise StoreError(f"Listing {listing_id} not found", code="not_found")
        report = self.store.insert_listing_report(ListingReport(
            id="",
            listing_id=listing_id,
            reporter_id=reporter_id,
            reason=reason,
            created_at=self._clock(),
        ))
        self._record(reporter_id, audit_log.LISTING_FLAG, "listing", listing_id, reason=reason)
        return report

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def moderation_queue(self) -> list[ListingReport]:
        """Pending listing reports, newest first."""
        reports = self.store.list_listing_reports(ReportStatus.pending)
        reports.sort(key=lambda r: r.created_at.isoformat() if r.created_at else "", reverse=True)
        return reports

    def resolve_report(self, report_id: str, action: ReportStatus, admin_id: str) -> ListingReport:
        """Approve or reject a listing report. Approval removes the listing."""
        if action not in (ReportStatus.approved, ReportStatus.rejected):
            raise ValidationError("Action must be APPROVED or REJECTED", fields=["action"])
        report = self.store.update_listing_report(report_id, action, admin_id, self._clock())
        if action == ReportStatus.approved:
            self.store.update_listing_status(report.listing_id, ListingStatus.removed)
        self._record(admin_id, audit_log.REPORT_RESOLVE, "listing", report.listing_id,
                     report_id=report_id, resolution=action.value)
        return report

    def list_users(self, role: Optional[str] = None, banned: Optional[bool] = None) -> list:
        """Users from the attached user store, filtered by role and ban state."""
        if self.users is None:
            return []
        users = self.users.list_users()
        if role is not None:
            users = [u for u in users if u.role.value == role]
        if banned is not None:
            users = [u for u in users if (self.active_ban(u.id) is not None) == banned]
        return users

    def system_stats(self) -> dict[str, int]:
        now = self._clock()
        active_bans = {b.user_id for b in self.store.list_bans() if b.is_active(now)}
        return {
            "total_users": len(self.users.list_users()) if self.users is not None else 0,
            "active_listings": self.store.count_listings(status=ListingStatus.active),
            "flagged_listings": self.store.count_listings(flagged=True),
            "pending_reports": len(self.store.list_listing_reports(ReportStatus.pending)),
            "active_bans": len(active_bans),
        }
