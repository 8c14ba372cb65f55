"""File-based JSON storage for marketplace accounts.

Provides a DB-ready interface backed by simple JSON files under
~/.barterguard/auth/.
"""

from __future__ import annotations

import hashlib
import json
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from barterguard.auth.models import APIKey, Role, User
from barterguard.errors import StoreError


class UserStore:
    """File-based storage for users and API keys.

    Storage path: ``~/.barterguard/auth/`` with:
    - ``users.json`` -- list of user dicts
    - ``api_keys.json`` -- list of hashed API key dicts
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".barterguard" / "auth"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._users_path = self._base / "users.json"
        self._keys_path = self._base / "api_keys.json"

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

    @staticmethod
    def _hash_key(raw_key: str) -> str:
        return hashlib.sha256(raw_key.encode()).hexdigest()

    @staticmethod
    def _user_from_dict(d: dict) -> User:
        try:
            role = Role(d.get("role", "member"))
        except ValueError:
            role = Role.member
        return User(
            id=d["id"],
            username=d["username"],
            email=d.get("email", ""),
            display_name=d.get("display_name", ""),
            role=role,
            created_at=d.get("created_at", ""),
        )

    @staticmethod
    def _user_to_dict(u: User) -> dict:
        return {
            "id": u.id,
            "username": u.username,
            "email": u.email,
            "display_name": u.display_name,
            "role": u.role.value,
            "created_at": u.created_at,
        }

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(
        self,
        username: str,
        email: str = "",
        role: Role = Role.member,
        user_id: Optional[str] = None,
    ) -> User:
        """Persist a new user. Usernames are unique."""
        users = self._read_json(self._users_path)
        if any(d["username"] == username for d in users):
            raise StoreError(f"User {username} already exists", code="duplicate")
        user = User(id=user_id or str(uuid.uuid4()), username=username, email=email, role=role)
        users.append(self._user_to_dict(user))
        self._write_json(self._users_path, users)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        for d in self._read_json(self._users_path):
            if d["id"] == user_id:
                return self._user_from_dict(d)
        return None

    def get_user_by_username(self, username: str) -> Optional[User]:
        for d in self._read_json(self._users_path):
            if d["username"] == username:
                return self._user_from_dict(d)
        return None

    def list_users(self) -> list[User]:
        """Return all users, newest first."""
        users = [self._user_from_dict(d) for d in self._read_json(self._users_path)]
        users.sort(key=lambda u: u.created_at, reverse=True)
        return users

    def update_user_role(self, user_id: str, role: Role) -> User:
        users = self._read_json(self._users_path)
        for d in users:
            if d["id"] == user_id:
                d["role"] = role.value
                self._write_json(self._users_path, users)
                return self._user_from_dict(d)
        raise StoreError(f"User {user_id} not found", code="not_found")

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    def create_api_key(self, user_id: str, name: str, expires_in_days: int = 90) -> tuple[APIKey, str]:
        """Create a new API key. Returns (APIKey, raw_key_string)."""
        if self.get_user(user_id) is None:
            raise StoreError(f"User {user_id} not found", code="not_found")
        raw_key = f"bg_{secrets.token_urlsafe(32)}"
        now = datetime.now(timezone.utc)
        api_key = APIKey(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=name,
            key_hash=self._hash_key(raw_key),
            prefix=raw_key[:8],
            created_at=now.isoformat(),
            expires_at=(now + timedelta(days=expires_in_days)).isoformat(),
        )
        keys = self._read_json(self._keys_path)
        keys.append({
            "id": api_key.id,
            "user_id": api_key.user_id,
            "name": api_key.name,
            "key_hash": api_key.key_hash,
            "prefix": api_key.prefix,
            "created_at": api_key.created_at,
            "expires_at": api_key.expires_at,
            "last_used": api_key.last_used,
        })
        self._write_json(self._keys_path, keys)
        return api_key, raw_key

    def validate_api_key(self, raw_key: str) -> Optional[User]:
        """Return the user owning *raw_key*, or None if unknown or expired."""
        key_hash = self._hash_key(raw_key)
        now = datetime.now(timezone.utc).isoformat()
        keys = self._read_json(self._keys_path)
        for d in keys:
            if d["key_hash"] == key_hash:
                if d.get("expires_at") and d["expires_at"] < now:
                    return None
                d["last_used"] = now
                self._write_json(self._keys_path, keys)
                return self.get_user(d["user_id"])
        return None
