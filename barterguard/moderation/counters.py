"""Per-user trust counters held in process memory.

Counters are an escalation signal, not a system of record. They are not
persisted and each process keeps its own copy.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from barterguard.moderation.models import SpamIncident, TrustRecord, as_utc

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TrustCounters:
    """Report counts and rolling spam-incident counts keyed by user id."""

    def __init__(
        self,
        window: timedelta = timedelta(hours=1),
        clock: Clock = utc_now,
    ) -> None:
        self.window = window
        self._clock = clock
        self._reports: dict[str, int] = {}
        self._spam: dict[str, SpamIncident] = {}
        self._lock = threading.Lock()

    def record_report(self, user_id: str) -> int:
        """Increment the report count for *user_id* and return the new value."""
        with self._lock:
            count = self._reports.get(user_id, 0) + 1
            self._reports[user_id] = count
            return count

    def record_spam_incident(self, user_id: str, now: Optional[datetime] = None) -> int:
        """Record one spam incident and return the count inside the window.

        The count starts over when the previous incident is older than the
        window. A naive *now* is taken to be UTC.
        """
        now = as_utc(now or self._clock())
        with self._lock:
            incident = self._spam.get(user_id)
            if incident is None:
                incident = self._spam[user_id] = SpamIncident()
            if now - incident.last_timestamp > self.window:
                incident.count = 0
            incident.count += 1
            incident.last_timestamp = now
            return incident.count

    def get_report_count(self, user_id: str) -> int:
        return self._reports.get(user_id, 0)

    def get_spam_count(self, user_id: str) -> int:
        incident = self._spam.get(user_id)
        return incident.count if incident else 0

    def snapshot(self, user_id: str) -> TrustRecord:
        """Return a copy of the counters for *user_id*."""
        with self._lock:
            incident = self._spam.get(user_id, SpamIncident())
            return TrustRecord(
                user_id=user_id,
                report_count=self._reports.get(user_id, 0),
                spam=SpamIncident(count=incident.count, last_timestamp=incident.last_timestamp),
            )
