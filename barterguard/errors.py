"""Error taxonomy shared by the coordinator, the stores and the outer surfaces.

Four families:

- ``ValidationError`` -- a submission is missing required fields. Raised
  before anything is written.
- ``ConfigError`` -- a settings file is malformed.
- ``StoreError`` -- a data access call failed. Carries an optional
  machine-readable ``code`` and the original ``cause``.
- ``PolicyRejection`` -- moderation policy refused the action. Each subclass
  has its own ``code`` so callers can show a specific message.
"""

from __future__ import annotations

from typing import Optional


class BarterGuardError(Exception):
    """Base class for all errors raised by barterguard."""


class ValidationError(BarterGuardError):
    """A content submission is missing required fields."""

    def __init__(self, message: str, fields: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.fields = fields or []


class ConfigError(BarterGuardError):
    """A settings file could not be used."""

    code = "invalid_config"


class StoreError(BarterGuardError):
    """A data access facade call failed."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.cause = cause


class PolicyRejection(BarterGuardError):
    """An action was refused by moderation policy."""

    code = "policy_rejected"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class SenderBannedError(PolicyRejection):
    code = "sender_banned"


class BlockedError(PolicyRejection):
    code = "blocked"


class SpamRejectedError(PolicyRejection):
    code = "spam"
