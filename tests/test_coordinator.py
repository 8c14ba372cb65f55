"""Tests for the moderation coordinator: flagging, escalation, bans and blocks."""

from datetime import datetime, timedelta, timezone

import pytest

from barterguard.auth.models import Role
from barterguard.auth.store import UserStore
from barterguard.errors import (
    BlockedError,
    SenderBannedError,
    SpamRejectedError,
    StoreError,
    ValidationError,
)
from barterguard.moderation.classifier import SPAM_REASON
from barterguard.moderation.coordinator import (
    AUTO_BAN_REPORTS_REASON,
    AUTO_BAN_SPAM_REASON,
    ModerationCoordinator,
)
from barterguard.moderation.models import ListingStatus, ReportStatus
from barterguard.security.audit_log import AuditLogger
from barterguard.store.json_store import JsonMarketStore

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
SPAM = "WIN BIG click here"


class FakeClock:
    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FailingBanStore(JsonMarketStore):
    def insert_ban(self, ban):
        raise StoreError("ban table unavailable", code="write_failed")


class FailingReportStore(JsonMarketStore):
    def insert_report(self, report):
        raise StoreError("report table unavailable", code="write_failed")


def _coordinator(tmp_path, store_cls=JsonMarketStore, clock=None):
    clock = clock or FakeClock()
    return ModerationCoordinator(
        store=store_cls(tmp_path / "market"),
        audit=AuditLogger(tmp_path / "audit", clock=clock),
        users=UserStore(tmp_path / "auth"),
        clock=clock,
    ), clock


# --- Reports ---


def test_three_reports_issue_one_ban(tmp_path):
    mod, clock = _coordinator(tmp_path)
    for reporter in ("alice", "bob", "carol"):
        mod.report_user(reporter, "mallory", "rude")

    bans = mod.store.list_bans("mallory")
    assert len(bans) == 1
    assert bans[0].reason == AUTO_BAN_REPORTS_REASON
    assert bans[0].banned_until == T0 + timedelta(days=7)
    assert len(mod.store.list_user_reports("mallory")) == 3


def test_two_reports_do_not_ban(tmp_path):
    mod, _ = _coordinator(tmp_path)
    mod.report_user("alice", "mallory", "rude")
    mod.report_user("bob", "mallory", "rude")
    assert mod.active_ban("mallory") is None
    assert mod.counters.get_report_count("mallory") == 2


def test_unban_keeps_counters(tmp_path):
    mod, _ = _coordinator(tmp_path)
    for reporter in ("alice", "bob", "carol"):
        mod.report_user(reporter, "mallory", "rude")
    mod.unban_user("mallory", unbanned_by="admin")

    assert mod.active_ban("mallory") is None
    assert mod.counters.get_report_count("mallory") == 3

    # the next report is already past the threshold
    mod.report_user("dave", "mallory", "still rude")
    assert mod.active_ban("mallory") is not None


def test_failed_ban_write_keeps_report_count(tmp_path):
    mod, _ = _coordinator(tmp_path, store_cls=FailingBanStore)
    mod.report_user("alice", "mallory", "rude")
    mod.report_user("bob", "mallory", "rude")
    with pytest.raises(StoreError) as exc:
        mod.report_user("carol", "mallory", "rude")

    assert exc.value.code == "write_failed"
    assert mod.counters.get_report_count("mallory") == 3
    assert len(mod.store.list_user_reports("mallory")) == 3


def test_failed_report_write_does_not_count(tmp_path):
    mod, _ = _coordinator(tmp_path, store_cls=FailingReportStore)
    with pytest.raises(StoreError):
        mod.report_user("alice", "mallory", "rude")
    assert mod.counters.get_report_count("mallory") == 0


# --- Spam ---


def test_check_spam(tmp_path):
    mod, _ = _coordinator(tmp_path)
    assert mod.check_spam("spammer", "hello there") is False
    assert mod.check_spam("spammer", SPAM) is True
    assert mod.counters.get_spam_count("spammer") == 1


def test_third_spam_check_bans(tmp_path):
    mod, clock = _coordinator(tmp_path)
    for _ in range(3):
        assert mod.check_spam("spammer", SPAM)
        clock.advance(minutes=5)

    ban = mod.active_ban("spammer")
    assert ban is not None
    assert ban.reason == AUTO_BAN_SPAM_REASON


def test_spam_threshold_rejects_message_and_bans(tmp_path):
    mod, clock = _coordinator(tmp_path)
    first = mod.send_message("spammer", "bob", SPAM)
    clock.advance(minutes=1)
    mod.send_message("spammer", "bob", SPAM)
    clock.advance(minutes=1)

    with pytest.raises(SpamRejectedError):
        mod.send_message("spammer", "bob", SPAM)

    assert first.flagged
    assert SPAM_REASON in first.flag_reasons
    assert len(mod.store.list_messages_between("spammer", "bob")) == 2
    assert mod.active_ban("spammer").reason == AUTO_BAN_SPAM_REASON

    with pytest.raises(SenderBannedError):
        mod.send_message("spammer", "bob", "sorry")


def test_spam_outside_window_is_not_escalated(tmp_path):
    mod, clock = _coordinator(tmp_path)
    for _ in range(3):
        mod.send_message("spammer", "bob", SPAM)
        clock.advance(hours=2)

    assert mod.active_ban("spammer") is None
    assert len(mod.store.list_messages_between("bob", "spammer")) == 3


def test_clean_message_is_stored_unflagged(tmp_path):
    mod, _ = _coordinator(tmp_path)
    msg = mod.send_message("alice", "bob", "Is the kayak still available?", listing_id="l1")
    assert not msg.flagged
    assert msg.flag_reasons == []
    assert msg.listing_id == "l1"
    assert mod.counters.get_spam_count("alice") == 0


def test_empty_message_is_rejected(tmp_path):
    mod, _ = _coordinator(tmp_path)
    with pytest.raises(ValidationError):
        mod.send_message("alice", "bob", "   ")


# --- Blocks ---


def test_block_is_one_directional(tmp_path):
    mod, _ = _coordinator(tmp_path)
    assert not mod.is_blocked("alice", "bob")

    mod.block_user("bob", "alice")
    assert mod.is_blocked("alice", "bob")
    assert not mod.is_blocked("bob", "alice")


def test_blocked_sender_cannot_message(tmp_path):
    mod, _ = _coordinator(tmp_path)
    mod.block_user("bob", "alice")
    with pytest.raises(BlockedError) as exc:
        mod.send_message("alice", "bob", "hi")
    assert exc.value.code == "blocked"
    assert mod.store.list_messages_between("alice", "bob") == []

    # the other direction still works
    mod.send_message("bob", "alice", "hi")


# --- Admin bans ---


def test_admin_ban_without_duration_is_permanent(tmp_path):
    mod, clock = _coordinator(tmp_path)
    ban = mod.ban_user("mallory", "fraud", banned_by="admin")
    assert ban.banned_until is None
    assert ban.banned_by == "admin"

    clock.advance(days=365)
    assert mod.active_ban("mallory") is not None


def test_admin_ban_expires(tmp_path):
    mod, clock = _coordinator(tmp_path)
    mod.ban_user("mallory", "cool off", banned_by="admin", duration_days=3)
    clock.advance(days=2)
    assert mod.active_ban("mallory") is not None
    clock.advance(days=2)
    assert mod.active_ban("mallory") is None


# --- Listings ---


def test_clean_listing_is_active(tmp_path):
    mod, _ = _coordinator(tmp_path)
    listing = mod.create_listing("alice", "Trade my bike", "Looking for a kayak", "sports")
    assert listing.status == ListingStatus.active
    assert not listing.flagged
    assert mod.store.get_listing(listing.id) is not None


def test_flagged_listing_is_held_for_review(tmp_path):
    mod, _ = _coordinator(tmp_path)
    listing = mod.create_listing("alice", "SELL my phone for cash", "Great phone", "electronics")
    assert listing.status == ListingStatus.pending_review
    assert listing.flagged
    assert "Contains suspicious keyword: sell" in listing.flag_reasons

    stored = mod.store.get_listing(listing.id)
    assert stored.status == ListingStatus.pending_review
    assert stored.flag_reasons == listing.flag_reasons


def test_listing_missing_fields_writes_nothing(tmp_path):
    mod, _ = _coordinator(tmp_path)
    with pytest.raises(ValidationError) as exc:
        mod.create_listing("alice", "Bike", "A bike", "")
    assert exc.value.fields == ["category"]
    assert mod.store.count_listings() == 0


def test_banned_user_cannot_list(tmp_path):
    mod, _ = _coordinator(tmp_path)
    mod.ban_user("mallory", "fraud")
    with pytest.raises(SenderBannedError):
        mod.create_listing("mallory", "Bike", "A bike", "sports")


# --- Listing reports and admin queue ---


def test_flag_approve_removes_listing(tmp_path):
    mod, clock = _coordinator(tmp_path)
    listing = mod.create_listing("alice", "Old sofa", "Comfy", "furniture")
    report = mod.flag_listing(listing.id, "bob", "looks fake")

    queue = mod.moderation_queue()
    assert [r.id for r in queue] == [report.id]

    clock.advance(hours=1)
    resolved = mod.resolve_report(report.id, ReportStatus.approved, "admin")
    assert resolved.status == ReportStatus.approved
    assert resolved.resolved_by == "admin"
    assert resolved.resolved_at == T0 + timedelta(hours=1)
    assert mod.store.get_listing(listing.id).status == ListingStatus.removed
    assert mod.moderation_queue() == []


def test_reject_keeps_listing(tmp_path):
    mod, _ = _coordinator(tmp_path)
    listing = mod.create_listing("alice", "Old sofa", "Comfy", "furniture")
    report = mod.flag_listing(listing.id, "bob", "meh")
    mod.resolve_report(report.id, ReportStatus.rejected, "admin")
    assert mod.store.get_listing(listing.id).status == ListingStatus.active


def test_queue_is_newest_first(tmp_path):
    mod, clock = _coordinator(tmp_path)
    listing = mod.create_listing("alice", "Old sofa", "Comfy", "furniture")
    older = mod.flag_listing(listing.id, "bob", "one")
    clock.advance(minutes=5)
    newer = mod.flag_listing(listing.id, "carol", "two")
    assert [r.id for r in mod.moderation_queue()] == [newer.id, older.id]


def test_flag_unknown_listing(tmp_path):
    mod, _ = _coordinator(tmp_path)
    with pytest.raises(StoreError) as exc:
        mod.flag_listing("missing", "bob", "spam")
    assert exc.value.code == "not_found"


def test_resolve_requires_final_action(tmp_path):
    mod, _ = _coordinator(tmp_path)
    with pytest.raises(ValidationError):
        mod.resolve_report("r1", ReportStatus.pending, "admin")


def test_system_stats_and_user_filters(tmp_path):
    mod, _ = _coordinator(tmp_path)
    alice = mod.users.create_user("alice")
    mallory = mod.users.create_user("mallory")
    mod.users.create_user("root", role=Role.admin)

    mod.create_listing(alice.id, "Trade my bike", "Looking for a kayak", "sports")
    listing = mod.create_listing(alice.id, "Cash only", "no trades", "misc")
    mod.flag_listing(listing.id, mallory.id, "not a barter")
    mod.ban_user(mallory.id, "fraud")

    assert mod.system_stats() == {
        "total_users": 3,
        "active_listings": 1,
        "flagged_listings": 1,
        "pending_reports": 1,
        "active_bans": 1,
    }
    assert [u.username for u in mod.list_users(banned=True)] == ["mallory"]
    assert {u.username for u in mod.list_users(banned=False)} == {"alice", "root"}
    assert [u.username for u in mod.list_users(role="admin")] == ["root"]


# --- Audit trail ---


def test_auto_ban_is_audited(tmp_path):
    mod, _ = _coordinator(tmp_path)
    for reporter in ("alice", "bob", "carol"):
        mod.report_user(reporter, "mallory", "rude")

    events = mod.audit.get_events(action="user.auto_ban")
    assert len(events) == 1
    assert events[0].actor == "system"
    assert events[0].subject_id == "mallory"
    assert events[0].details["reason"] == AUTO_BAN_REPORTS_REASON
    assert len(mod.audit.get_events(action="user.report")) == 3


def test_rejections_are_audited(tmp_path):
    mod, _ = _coordinator(tmp_path)
    mod.block_user("bob", "alice")
    with pytest.raises(BlockedError):
        mod.send_message("alice", "bob", "hi")
    events = mod.audit.get_events(action="message.reject")
    assert events[0].details == {"code": "blocked"}


def test_resolve_without_audit_logger(tmp_path):
    mod = ModerationCoordinator(store=JsonMarketStore(tmp_path / "market"))
    listing = mod.create_listing("alice", "Old sofa", "Comfy", "furniture")
    report = mod.flag_listing(listing.id, "bob", "looks fake")

    resolved = mod.resolve_report(report.id, ReportStatus.approved, "admin")
    assert resolved.status == ReportStatus.approved
    assert mod.store.get_listing(listing.id).status == ListingStatus.removed


def test_resolution_is_audited(tmp_path):
    mod, _ = _coordinator(tmp_path)
    listing = mod.create_listing("alice", "Old sofa", "Comfy", "furniture")
    report = mod.flag_listing(listing.id, "bob", "looks fake")
    mod.resolve_report(report.id, ReportStatus.rejected, "admin")

    events = mod.audit.get_events(action="report.resolve")
    assert len(events) == 1
    assert events[0].actor == "admin"
    assert events[0].details == {"report_id": report.id, "resolution": "REJECTED"}


class FailingAuditLogger(AuditLogger):
    def record(self, *args, **kwargs):
        raise StoreError("audit disk full", code="write_failed")


def test_failed_audit_write_keeps_auto_ban(tmp_path):
    clock = FakeClock()
    mod = ModerationCoordinator(
        store=JsonMarketStore(tmp_path / "market"),
        audit=FailingAuditLogger(tmp_path / "audit", clock=clock),
        clock=clock,
    )
    for reporter in ("alice", "bob", "carol"):
        with pytest.raises(StoreError):
            mod.report_user(reporter, "mallory", "rude")

    assert mod.counters.get_report_count("mallory") == 3
    ban = mod.active_ban("mallory")
    assert ban is not None
    assert ban.reason == AUTO_BAN_REPORTS_REASON


def test_spam_past_threshold_does_not_stack_bans(tmp_path):
    mod, clock = _coordinator(tmp_path)
    for _ in range(5):
        assert mod.check_spam("spammer", SPAM)
        clock.advance(minutes=1)

    assert mod.counters.get_spam_count("spammer") == 5
    assert len(mod.store.list_bans("spammer")) == 1
    assert len(mod.audit.get_events(action="user.auto_ban")) == 1


def test_reports_while_banned_do_not_stack_bans(tmp_path):
    mod, _ = _coordinator(tmp_path)
    for reporter in ("alice", "bob", "carol", "dave"):
        mod.report_user(reporter, "mallory", "rude")
    assert len(mod.store.list_bans("mallory")) == 1


def test_unban_uses_coordinator_clock(tmp_path):
    mod, clock = _coordinator(tmp_path)
    mod.ban_user("mallory", "fraud", banned_by="admin")
    clock.advance(days=2)
    mod.unban_user("mallory", unbanned_by="admin")

    [ban] = mod.store.list_bans("mallory")
    assert ban.cleared_at == T0 + timedelta(days=2)
