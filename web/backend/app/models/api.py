"""Pydantic models for API request/response serialization.

These models mirror the barterguard dataclasses and provide JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class ClassifyRequest(BaseModel):
    title: str = ""
    body: str = ""


class VerdictResponse(BaseModel):
    """Mirrors barterguard.moderation.models.Verdict."""

    flagged: bool
    reasons: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Listings and messages
# ---------------------------------------------------------------------------


class CreateListingRequest(BaseModel):
    # Blank values are accepted here so the coordinator reports every
    # missing field in one ValidationError.
    title: str = ""
    description: str = ""
    category: str = ""


class ListingResponse(BaseModel):
    """Mirrors barterguard.moderation.models.Listing."""

    id: str
    user_id: str
    title: str
    description: str
    category: str
    flagged: bool = False
    flag_reasons: list[str] = Field(default_factory=list)
    status: str
    created_at: Optional[datetime] = None


class SendMessageRequest(BaseModel):
    receiver_id: str
    content: str = ""
    listing_id: Optional[str] = None


class MessageResponse(BaseModel):
    """Mirrors barterguard.moderation.models.Message."""

    id: str
    sender_id: str
    receiver_id: str
    content: str
    listing_id: Optional[str] = None
    flagged: bool = False
    flag_reasons: list[str] = Field(default_factory=list)
    read: bool = False
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Reports, blocks, bans
# ---------------------------------------------------------------------------


class ReportRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class UserReportResponse(BaseModel):
    id: str
    reporter_id: str
    reported_user_id: str
    reason: str
    status: str
    created_at: Optional[datetime] = None


class ListingReportResponse(BaseModel):
    id: str
    listing_id: str
    reporter_id: str
    reason: str
    status: str
    created_at: Optional[datetime] = None
    resolved_by: str = ""
    resolved_at: Optional[datetime] = None


class BlockedUsersResponse(BaseModel):
    user_id: str
    blocked_user_ids: list[str] = Field(default_factory=list)


class BanRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    duration_days: Optional[int] = Field(None, ge=1)


class BanResponse(BaseModel):
    """Mirrors barterguard.moderation.models.Ban."""

    id: str
    user_id: str
    reason: str
    banned_until: Optional[datetime] = None
    banned_by: str = ""
    created_at: Optional[datetime] = None


class ResolveReportRequest(BaseModel):
    action: Literal["APPROVED", "REJECTED"]


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    id: str
    username: str
    email: str = ""
    role: str
    created_at: str = ""
    ban: Optional[BanResponse] = None


class SystemStatsResponse(BaseModel):
    total_users: int = 0
    active_listings: int = 0
    flagged_listings: int = 0
    pending_reports: int = 0
    active_bans: int = 0


class AuditEntryResponse(BaseModel):
    """Mirrors barterguard.security.audit_log.AuditEntry."""

    id: str
    timestamp: str
    actor: str
    action: str
    subject_type: str
    subject_id: str
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    detail: str
    code: Optional[str] = None
