"""Wire a ModerationCoordinator to file-backed stores under the data directory."""

from __future__ import annotations

from typing import Optional

from barterguard.auth.store import UserStore
from barterguard.config import ModerationConfig, load_config
from barterguard.moderation.coordinator import ModerationCoordinator
from barterguard.security.audit_log import AuditLogger
from barterguard.store.json_store import JsonMarketStore


def build_coordinator(config: Optional[ModerationConfig] = None) -> ModerationCoordinator:
    """Return a coordinator whose stores live in ``config.data_dir``.

    Layout::

        <data_dir>/market/       reports, bans, blocks, listings, messages
        <data_dir>/auth/         users and API keys
        <data_dir>/audit_logs/   moderation audit trail
    """
    config = config or load_config()
    base = config.data_dir
    return ModerationCoordinator(
        store=JsonMarketStore(base / "market"),
        config=config,
        audit=AuditLogger(base / "audit_logs"),
        users=UserStore(base / "auth"),
    )
