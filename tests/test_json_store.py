"""Tests for the JSON-file market store."""

from datetime import datetime, timedelta, timezone

import pytest

from barterguard.errors import StoreError
from barterguard.moderation.models import (
    Ban,
    Listing,
    ListingReport,
    ListingStatus,
    Message,
    ReportStatus,
    UserReport,
)
from barterguard.store.facade import MarketStore
from barterguard.store.json_store import JsonMarketStore

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _listing(**kwargs):
    defaults = dict(id="", user_id="alice", title="Bike", description="Road bike", category="sports")
    defaults.update(kwargs)
    return Listing(**defaults)


def test_store_satisfies_facade(tmp_path):
    assert isinstance(JsonMarketStore(tmp_path), MarketStore)


def test_empty_store(tmp_path):
    store = JsonMarketStore(tmp_path)
    assert store.list_bans() == []
    assert store.list_listing_reports() == []
    assert store.list_blocked_users("alice") == set()
    assert store.get_listing("nope") is None
    assert store.count_listings() == 0


def test_insert_report_assigns_id(tmp_path):
    store = JsonMarketStore(tmp_path)
    report = store.insert_report(UserReport(id="", reporter_id="a", reported_user_id="b", reason="rude"))
    assert report.id
    assert report.created_at is not None
    assert (tmp_path / "user_reports.json").exists()

    loaded = store.list_user_reports("b")
    assert [r.id for r in loaded] == [report.id]
    assert loaded[0].status == ReportStatus.pending
    assert store.list_user_reports("a") == []


def test_listing_roundtrip_preserves_flags(tmp_path):
    store = JsonMarketStore(tmp_path)
    listing = store.insert_listing(_listing(
        flagged=True,
        flag_reasons=["Contains suspicious keyword: cash"],
        status=ListingStatus.pending_review,
        created_at=T0,
    ))
    loaded = store.get_listing(listing.id)
    assert loaded == listing

    store.update_listing_status(listing.id, ListingStatus.removed)
    assert store.get_listing(listing.id).status == ListingStatus.removed


def test_count_listings_filters(tmp_path):
    store = JsonMarketStore(tmp_path)
    store.insert_listing(_listing())
    store.insert_listing(_listing(flagged=True, status=ListingStatus.pending_review))
    store.insert_listing(_listing(status=ListingStatus.removed))
    assert store.count_listings() == 3
    assert store.count_listings(status=ListingStatus.active) == 1
    assert store.count_listings(flagged=True) == 1
    assert store.count_listings(status=ListingStatus.active, flagged=True) == 0


def test_update_missing_rows(tmp_path):
    store = JsonMarketStore(tmp_path)
    with pytest.raises(StoreError) as exc:
        store.update_listing_status("missing", ListingStatus.removed)
    assert exc.value.code == "not_found"
    with pytest.raises(StoreError):
        store.update_listing_report("missing", ReportStatus.approved, "admin", T0)


def test_listing_report_resolution(tmp_path):
    store = JsonMarketStore(tmp_path)
    report = store.insert_listing_report(ListingReport(id="", listing_id="l1", reporter_id="bob", reason="fake"))
    resolved = store.update_listing_report(report.id, ReportStatus.rejected, "admin", T0)
    assert resolved.status == ReportStatus.rejected
    assert resolved.resolved_by == "admin"
    assert resolved.resolved_at == T0
    assert store.list_listing_reports(ReportStatus.pending) == []
    assert len(store.list_listing_reports(ReportStatus.rejected)) == 1


def test_active_ban_and_clear(tmp_path):
    store = JsonMarketStore(tmp_path)
    store.insert_ban(Ban(id="", user_id="m", reason="old", banned_until=T0 - timedelta(days=1), created_at=T0 - timedelta(days=8)))
    assert store.get_active_ban("m", T0) is None

    current = store.insert_ban(Ban(id="", user_id="m", reason="new", banned_until=T0 + timedelta(days=7), created_at=T0))
    assert store.get_active_ban("m", T0).id == current.id

    store.clear_ban("m", T0)
    assert store.get_active_ban("m", T0) is None
    assert all(b.cleared_at is not None for b in store.list_bans("m"))


def test_permanent_ban(tmp_path):
    store = JsonMarketStore(tmp_path)
    store.insert_ban(Ban(id="", user_id="m", reason="fraud", created_at=T0))
    assert store.get_active_ban("m", T0 + timedelta(days=3650)) is not None


def test_blocks(tmp_path):
    store = JsonMarketStore(tmp_path)
    store.insert_block("bob", "alice")
    store.insert_block("bob", "mallory")
    assert store.list_blocked_users("bob") == {"alice", "mallory"}
    assert store.list_blocked_users("alice") == set()


def test_messages_between_oldest_first(tmp_path):
    store = JsonMarketStore(tmp_path)
    later = store.insert_message(Message(id="", sender_id="b", receiver_id="a", content="yes", created_at=T0 + timedelta(minutes=1)))
    earlier = store.insert_message(Message(id="", sender_id="a", receiver_id="b", content="hi?", created_at=T0))
    store.insert_message(Message(id="", sender_id="a", receiver_id="c", content="other", created_at=T0))
    assert [m.id for m in store.list_messages_between("a", "b")] == [earlier.id, later.id]


def test_corrupt_file_raises(tmp_path):
    store = JsonMarketStore(tmp_path)
    (tmp_path / "bans.json").write_text("{not json")
    with pytest.raises(StoreError) as exc:
        store.list_bans()
    assert exc.value.code == "read_failed"
    assert exc.value.cause is not None


def test_data_persists_across_instances(tmp_path):
    JsonMarketStore(tmp_path).insert_block("bob", "alice")
    assert JsonMarketStore(tmp_path).list_blocked_users("bob") == {"alice"}


def test_clear_ban_records_given_time(tmp_path):
    store = JsonMarketStore(tmp_path)
    store.insert_ban(Ban(id="", user_id="m", reason="fraud", created_at=T0))
    store.clear_ban("m", T0 + timedelta(hours=3))
    assert store.list_bans("m")[0].cleared_at == T0 + timedelta(hours=3)


def test_naive_timestamps_read_as_utc(tmp_path):
    store = JsonMarketStore(tmp_path)
    (tmp_path / "bans.json").write_text(
        '[{"id": "b1", "user_id": "m", "reason": "x", "banned_until": "2024-05-08T12:00:00"}]'
    )
    assert store.get_active_ban("m", T0) is not None
    assert store.get_active_ban("m", T0 + timedelta(days=8)) is None
