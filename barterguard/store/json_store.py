"""File-based JSON storage for marketplace moderation data.

Provides a DB-ready interface backed by simple JSON files under
~/.barterguard/market/.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from barterguard.errors import StoreError
from barterguard.moderation.models import (
    Ban,
    Block,
    Listing,
    ListingReport,
    ListingStatus,
    Message,
    as_utc,
    ReportStatus,
    UserReport,
)


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return as_utc(datetime.fromisoformat(value))


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JsonMarketStore:
    """File-based storage for reports, bans, blocks, listings and messages.

    Storage path: ``~/.barterguard/market/`` with:
    - ``user_reports.json`` -- reports filed against users
    - ``listing_reports.json`` -- reports filed against listings
    - ``bans.json`` -- ban history, cleared bans keep ``cleared_at``
    - ``blocks.json`` -- block edges
    - ``listings.json`` -- listings
    - ``messages.json`` -- chat messages
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".barterguard" / "market"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._user_reports_path = self._base / "user_reports.json"
        self._listing_reports_path = self._base / "listing_reports.json"
        self._bans_path = self._base / "bans.json"
        self._blocks_path = self._base / "blocks.json"
        self._listings_path = self._base / "listings.json"
        self._messages_path = self._base / "messages.json"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_json(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            raise StoreError(f"Could not read {path.name}", code="read_failed", cause=exc) from exc
        return data if isinstance(data, list) else []

    def _write_json(self, path: Path, data: list[dict]) -> None:
        try:
            path.write_text(json.dumps(data, indent=2, default=str))
        except OSError as exc:
            raise StoreError(f"Could not write {path.name}", code="write_failed", cause=exc) from exc

    def _append(self, path: Path, record: dict) -> None:
        rows = self._read_json(path)
        rows.append(record)
        self._write_json(path, rows)

    @staticmethod
    def _new_id(current: str) -> str:
        return current or str(uuid.uuid4())

    @staticmethod
    def _user_report_to_dict(r: UserReport) -> dict:
        return {
            "id": r.id,
            "reporter_id": r.reporter_id,
            "reported_user_id": r.reported_user_id,
            "reason": r.reason,
            "status": r.status.value,
            "created_at": _iso(r.created_at),
        }

    @staticmethod
    def _user_report_from_dict(d: dict) -> UserReport:
        return UserReport(
            id=d["id"],
            reporter_id=d["reporter_id"],
            reported_user_id=d["reported_user_id"],
            reason=d.get("reason", ""),
            status=ReportStatus(d.get("status", "PENDING")),
            created_at=_dt(d.get("created_at")),
        )

    @staticmethod
    def _listing_report_to_dict(r: ListingReport) -> dict:
        return {
            "id": r.id,
            "listing_id": r.listing_id,
            "reporter_id": r.reporter_id,
            "reason": r.reason,
            "status": r.status.value,
            "created_at": _iso(r.created_at),
            "resolved_by": r.resolved_by,
            "resolved_at": _iso(r.resolved_at),
        }

    @staticmethod
    def _listing_report_from_dict(d: dict) -> ListingReport:
        return ListingReport(
            id=d["id"],
            listing_id=d["listing_id"],
            reporter_id=d["reporter_id"],
            reason=d.get("reason", ""),
            status=ReportStatus(d.get("status", "PENDING")),
            created_at=_dt(d.get("created_at")),
            resolved_by=d.get("resolved_by") or "",
            resolved_at=_dt(d.get("resolved_at")),
        )

    @staticmethod
    def _ban_to_dict(b: Ban) -> dict:
        return {
            "id": b.id,
            "user_id": b.user_id,
            "reason": b.reason,
            "banned_until": _iso(b.banned_until),
            "banned_by": b.banned_by,
            "created_at": _iso(b.created_at),
            "cleared_at": _iso(b.cleared_at),
        }

    @staticmethod
    def _ban_from_dict(d: dict) -> Ban:
        return Ban(
            id=d["id"],
            user_id=d["user_id"],
            reason=d.get("reason", ""),
            banned_until=_dt(d.get("banned_until")),
            banned_by=d.get("banned_by") or "",
            created_at=_dt(d.get("created_at")),
            cleared_at=_dt(d.get("cleared_at")),
        )

    @staticmethod
    def _listing_to_dict(lst: Listing) -> dict:
        return {
            "id": lst.id,
            "user_id": lst.user_id,
            "title": lst.title,
            "description": lst.description,
            "category": lst.category,
            "flagged": lst.flagged,
            "flag_reasons": lst.flag_reasons,
            "status": lst.status.value,
            "created_at": _iso(lst.created_at),
        }

    @staticmethod
    def _listing_from_dict(d: dict) -> Listing:
        return Listing(
            id=d["id"],
            user_id=d["user_id"],
            title=d["title"],
            description=d.get("description", ""),
            category=d.get("category", ""),
            flagged=d.get("flagged", False),
            flag_reasons=d.get("flag_reasons", []),
            status=ListingStatus(d.get("status", "ACTIVE")),
            created_at=_dt(d.get("created_at")),
        )

    @staticmethod
    def _message_to_dict(m: Message) -> dict:
        return {
            "id": m.id,
            "sender_id": m.sender_id,
            "receiver_id": m.receiver_id,
            "content": m.content,
            "listing_id": m.listing_id,
            "flagged": m.flagged,
            "flag_reasons": m.flag_reasons,
            "read": m.read,
            "created_at": _iso(m.created_at),
        }

    @staticmethod
    def _message_from_dict(d: dict) -> Message:
        return Message(
            id=d["id"],
            sender_id=d["sender_id"],
            receiver_id=d["receiver_id"],
            content=d.get("content", ""),
            listing_id=d.get("listing_id"),
            flagged=d.get("flagged", False),
            flag_reasons=d.get("flag_reasons", []),
            read=d.get("read", False),
            created_at=_dt(d.get("created_at")),
        )

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def insert_report(self, report: UserReport) -> UserReport:
        report.id = self._new_id(report.id)
        report.created_at = report.created_at or _now()
        self._append(self._user_reports_path, self._user_report_to_dict(report))
        return report

    def list_user_reports(self, reported_user_id: Optional[str] = None) -> list[UserReport]:
        return [
            self._user_report_from_dict(d)
            for d in self._read_json(self._user_reports_path)
            if reported_user_id is None or d["reported_user_id"] == reported_user_id
        ]

    def insert_listing_report(self, report: ListingReport) -> ListingReport:
        report.id = self._new_id(report.id)
        report.created_at = report.created_at or _now()
        self._append(self._listing_reports_path, self._listing_report_to_dict(report))
        return report

    def list_listing_reports(self, status: Optional[ReportStatus] = None) -> list[ListingReport]:
        reports = [
            self._listing_report_from_dict(d)
            for d in self._read_json(self._listing_reports_path)
        ]
        if status is not None:
            reports = [r for r in reports if r.status == status]
        return reports

    def update_listing_report(
        self, report_id: str, status: ReportStatus, resolved_by: str, resolved_at: datetime
    ) -> ListingReport:
        rows = self._read_json(self._listing_reports_path)
        for d in rows:
            if d["id"] == report_id:
                d["status"] = status.value
                d["resolved_by"] = resolved_by
                d["resolved_at"] = _iso(resolved_at)
                self._write_json(self._listing_reports_path, rows)
                return self._listing_report_from_dict(d)
        raise StoreError(f"Listing report {report_id} not found", code="not_found")

    # ------------------------------------------------------------------
    # Bans
    # ------------------------------------------------------------------

    def insert_ban(self, ban: Ban) -> Ban:
        ban.id = self._new_id(ban.id)
        ban.created_at = ban.created_at or _now()
        self._append(self._bans_path, self._ban_to_dict(ban))
        return ban

    def clear_ban(self, user_id: str, now: Optional[datetime] = None) -> None:
        """Mark every uncleared ban for *user_id* as cleared at *now*."""
        rows = self._read_json(self._bans_path)
        cleared_at = _iso(now or _now())
        changed = False
        for d in rows:
            if d["user_id"] == user_id and not d.get("cleared_at"):
                d["cleared_at"] = cleared_at
                changed = True
        if changed:
            self._write_json(self._bans_path, rows)

    def list_bans(self, user_id: Optional[str] = None) -> list[Ban]:
        return [
            self._ban_from_dict(d)
            for d in self._read_json(self._bans_path)
            if user_id is None or d["user_id"] == user_id
        ]

    def get_active_ban(self, user_id: str, now: datetime) -> Optional[Ban]:
        """Return the most recent ban for *user_id* still in force at *now*."""
        active = [b for b in self.list_bans(user_id) if b.is_active(now)]
        if not active:
            return None
        return max(active, key=lambda b: b.created_at or now)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def insert_block(self, blocker_id: str, blocked_id: str) -> Block:
        block = Block(
            id=str(uuid.uuid4()),
            user_id=blocker_id,
            blocked_user_id=blocked_id,
            created_at=_now(),
        )
        self._append(self._blocks_path, {
            "id": block.id,
            "user_id": block.user_id,
            "blocked_user_id": block.blocked_user_id,
            "created_at": _iso(block.created_at),
        })
        return block

    def list_blocked_users(self, user_id: str) -> set[str]:
        return {
            d["blocked_user_id"]
            for d in self._read_json(self._blocks_path)
            if d["user_id"] == user_id
        }

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def insert_listing(self, listing: Listing) -> Listing:
        listing.id = self._new_id(listing.id)
        listing.created_at = listing.created_at or _now()
        self._append(self._listings_path, self._listing_to_dict(listing))
        return listing

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        for d in self._read_json(self._listings_path):
            if d["id"] == listing_id:
                return self._listing_from_dict(d)
        return None

    def update_listing_status(self, listing_id: str, status: ListingStatus) -> Listing:
        rows = self._read_json(self._listings_path)
        for d in rows:
            if d["id"] == listing_id:
                d["status"] = status.value
                self._write_json(self._listings_path, rows)
                return self._listing_from_dict(d)
        raise StoreError(f"Listing {listing_id} not found", code="not_found")

    def count_listings(
        self, status: Optional[ListingStatus] = None, flagged: Optional[bool] = None
    ) -> int:
        count = 0
        for d in self._read_json(self._listings_path):
            if status is not None and d.get("status") != status.value:
                continue
            if flagged is not None and bool(d.get("flagged")) != flagged:
                continue
            count += 1
        return count

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def insert_message(self, message: Message) -> Message:
        message.id = self._new_id(message.id)
        message.created_at = message.created_at or _now()
        self._append(self._messages_path, self._message_to_dict(message))
        return message

    def list_messages_between(self, user_a: str, user_b: str) -> list[Message]:
        """Return the conversation between two users, oldest first."""
        pair = {user_a, user_b}
        messages = [
            self._message_from_dict(d)
            for d in self._read_json(self._messages_path)
            if {d["sender_id"], d["receiver_id"]} == pair
        ]
        messages.sort(key=lambda m: m.created_at or _now())
        return messages
