"""Moderation audit trail.

Every ban, unban, report, block and rejection the coordinator performs is
appended as one JSON line to a daily file under
``~/.barterguard/audit_logs/``. The trail is independent of the market
store so it survives a store that has been wiped or replaced.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from barterguard.errors import StoreError

logger = logging.getLogger(__name__)

# Actions written by the coordinator
USER_REPORT = "user.report"
USER_BAN = "user.ban"
USER_AUTO_BAN = "user.auto_ban"
USER_UNBAN = "user.unban"
USER_BLOCK = "user.block"
LISTING_CREATE = "listing.create"
LISTING_FLAG = "listing.flag"
REPORT_RESOLVE = "report.resolve"
MESSAGE_REJECT = "message.reject"

SYSTEM_ACTOR = "system"


@dataclass
class AuditEntry:
    """A single moderation event."""

    id: str
    timestamp: str
    actor: str
    action: str
    subject_type: str
    subject_id: str
    details: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Append-only JSONL log of moderation events."""

    def __init__(
        self,
        base_dir: Optional[Path] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._base_dir = Path(base_dir) if base_dir else Path.home() / ".barterguard" / "audit_logs"
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    def _log_file_for_date(self, dt: datetime) -> Path:
        return self._base_dir / f"{dt.strftime('%Y-%m-%d')}.jsonl"

    def _read_all_entries(self) -> list[AuditEntry]:
        entries: list[AuditEntry] = []
        for path in sorted(self._base_dir.glob("*.jsonl")):
            for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
                if not line.strip():
                    continue
                try:
                    entries.append(AuditEntry(**json.loads(line)))
                except (json.JSONDecodeError, TypeError):
                    logger.warning("Skipping malformed audit line %s:%d", path.name, lineno)
        return entries

    def record(
        self,
        actor: str,
        action: str,
        subject_type: str,
        subject_id: str,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditEntry:
        """Append an event and return it. Write failures raise ``StoreError``."""
        now = self._clock()
        entry = AuditEntry(
            id=uuid.uuid4().hex[:16],
            timestamp=now.isoformat(),
            actor=actor or SYSTEM_ACTOR,
            action=action,
            subject_type=subject_type,
            subject_id=subject_id,
            details=details or {},
        )
        path = self._log_file_for_date(now)
        try:
            with path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(asdict(entry), default=str) + "\n")
        except OSError as exc:
            raise StoreError(f"Could not write {path.name}", code="write_failed", cause=exc) from exc
        return entry

    def get_events(
        self,
        *,
        actor: Optional[str] = None,
        action: Optional[str] = None,
        subject_id: Optional[str] = None,
        limit: int = 200,
    ) -> list[AuditEntry]:
        """Return filtered events, newest first."""
        entries = self._read_all_entries()
        if actor:
            entries = [e for e in entries if e.actor == actor]
        if action:
            entries = [e for e in entries if e.action == action]
        if subject_id:
            entries = [e for e in entries if e.subject_id == subject_id]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit]

    def export_events(self, fmt: str = "json", **filters: Any) -> str:
        """Export events as ``json`` or ``csv``."""
        entries = self.get_events(limit=filters.pop("limit", 10000), **filters)
        if fmt == "csv":
            buf = io.StringIO()
            writer = csv.writer(buf)
            writer.writerow(["id", "timestamp", "actor", "action", "subject_type", "subject_id", "details"])
            for e in entries:
                writer.writerow([
                    e.id, e.timestamp, e.actor, e.action,
                    e.subject_type, e.subject_id, json.dumps(e.details, sort_keys=True),
                ])
            return buf.getvalue()
        return json.dumps([asdict(e) for e in entries], indent=2, default=str)
