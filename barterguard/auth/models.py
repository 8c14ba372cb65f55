"""Marketplace accounts and the keys they authenticate with."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    """Role hierarchy: admin > moderator > member."""

    admin = "admin"
    moderator = "moderator"
    member = "member"

    @property
    def level(self) -> int:
        return {
            Role.admin: 30,
            Role.moderator: 20,
            Role.member: 10,
        }[self]


@dataclass
class User:
    """A marketplace account."""

    id: str
    username: str
    email: str = ""
    display_name: str = ""
    role: Role = Role.member
    created_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = datetime.now(timezone.utc).isoformat()
        if isinstance(self.role, str):
            self.role = Role(self.role)


@dataclass
class APIKey:
    """Hashed API key. Only the prefix of the raw key is kept for display."""

    id: str
    user_id: str
    name: str
    key_hash: str
    prefix: str
    created_at: str = ""
    expires_at: str = ""
    last_used: str = ""
