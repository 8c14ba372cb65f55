"""Admin router -- bans, the listing report queue, statistics and the audit trail.

Prefix: ``/api/admin``. Moderators can read the queue, stats and audit
trail and resolve reports; bans require the admin role.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from barterguard.auth.models import Role, User
from barterguard.auth.permissions import require_role
from barterguard.errors import BarterGuardError
from barterguard.moderation.coordinator import ModerationCoordinator
from barterguard.moderation.models import ReportStatus
from web.backend.app.middleware.auth import get_coordinator, get_current_user
from web.backend.app.middleware.errors import to_http
from web.backend.app.models.api import (
    AuditEntryResponse,
    BanRequest,
    BanResponse,
    ListingReportResponse,
    ResolveReportRequest,
    SystemStatsResponse,
    UserResponse,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _ban_response(ban) -> Optional[BanResponse]:
    if ban is None:
        return None
    return BanResponse(
        id=ban.id,
        user_id=ban.user_id,
        reason=ban.reason,
        banned_until=ban.banned_until,
        banned_by=ban.banned_by,
        created_at=ban.created_at,
    )


# =========================================================================
# Bans
# =========================================================================


@router.post("/users/{user_id}/ban", response_model=BanResponse, status_code=status.HTTP_201_CREATED)
async def ban_user(
    user_id: str,
    body: BanRequest,
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Ban a user. Omit ``duration_days`` for a permanent ban."""
    require_role(user, Role.admin)
    try:
        ban = coordinator.ban_user(user_id, body.reason, banned_by=user.id,
                                   duration_days=body.duration_days)
    except BarterGuardError as e:
        raise to_http(e)
    return _ban_response(ban)


@router.delete("/users/{user_id}/ban", status_code=status.HTTP_204_NO_CONTENT)
async def unban_user(
    user_id: str,
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Lift every ban on a user."""
    require_role(user, Role.admin)
    try:
        coordinator.unban_user(user_id, unbanned_by=user.id)
    except BarterGuardError as e:
        raise to_http(e)


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    role: Optional[Role] = Query(None),
    banned: Optional[bool] = Query(None),
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """List users, optionally filtered by role and active ban."""
    require_role(user, Role.moderator)
    try:
        found = coordinator.list_users(role=role.value if role else None, banned=banned)
        return [
            UserResponse(
                id=u.id,
                username=u.username,
                email=u.email,
                role=u.role.value,
                created_at=u.created_at,
                ban=_ban_response(coordinator.active_ban(u.id)),
            )
            for u in found
        ]
    except BarterGuardError as e:
        raise to_http(e)


# =========================================================================
# Listing report queue
# =========================================================================


@router.get("/queue", response_model=list[ListingReportResponse])
async def moderation_queue(
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Pending listing reports, newest first."""
    require_role(user, Role.moderator)
    try:
        reports = coordinator.moderation_queue()
    except BarterGuardError as e:
        raise to_http(e)
    return [ListingReportResponse(**{**asdict(r), "status": r.status.value}) for r in reports]


@router.post("/reports/{report_id}/resolve", response_model=ListingReportResponse)
async def resolve_report(
    report_id: str,
    body: ResolveReportRequest,
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Approve (and remove the listing) or reject a listing report."""
    require_role(user, Role.moderator)
    try:
        report = coordinator.resolve_report(report_id, ReportStatus(body.action), user.id)
    except BarterGuardError as e:
        raise to_http(e)
    return ListingReportResponse(**{**asdict(report), "status": report.status.value})


# =========================================================================
# Stats and audit
# =========================================================================


@router.get("/stats", response_model=SystemStatsResponse)
async def system_stats(
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    require_role(user, Role.moderator)
    try:
        return SystemStatsResponse(**coordinator.system_stats())
    except BarterGuardError as e:
        raise to_http(e)


@router.get("/audit", response_model=list[AuditEntryResponse])
async def list_audit_events(
    actor: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    subject_id: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=10000),
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """List moderation audit events, newest first."""
    require_role(user, Role.moderator)
    if coordinator.audit is None:
        return []
    events = coordinator.audit.get_events(actor=actor, action=action, subject_id=subject_id, limit=limit)
    return [AuditEntryResponse(**asdict(e)) for e in events]
