"""Marketplace router -- classification, listings, messages, reports and blocks.

Every write goes through the ModerationCoordinator so flagged content is held
for review and policy rejections come back as 403 responses.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, status

from barterguard.auth.models import User
from barterguard.errors import BarterGuardError
from barterguard.moderation.coordinator import ModerationCoordinator
from web.backend.app.middleware.auth import get_coordinator, get_current_user
from web.backend.app.middleware.errors import to_http
from web.backend.app.models.api import (
    BlockedUsersResponse,
    ClassifyRequest,
    CreateListingRequest,
    ListingReportResponse,
    ListingResponse,
    MessageResponse,
    ReportRequest,
    SendMessageRequest,
    UserReportResponse,
    VerdictResponse,
)

router = APIRouter(prefix="/api", tags=["moderation"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _enum_values(d: dict) -> dict:
    return {k: getattr(v, "value", v) for k, v in d.items()}


def _listing_response(listing) -> ListingResponse:
    return ListingResponse(**_enum_values(asdict(listing)))


def _message_response(message) -> MessageResponse:
    return MessageResponse(**asdict(message))


def _listing_report_response(report) -> ListingReportResponse:
    return ListingReportResponse(**_enum_values(asdict(report)))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/moderation/classify", response_model=VerdictResponse)
async def classify(
    body: ClassifyRequest,
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Classify a title and body without storing anything."""
    verdict = coordinator.classify(body.title, body.body)
    return VerdictResponse(flagged=verdict.flagged, reasons=verdict.reasons)


@router.post("/listings", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
async def create_listing(
    body: CreateListingRequest,
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Create a listing. Suspicious listings are stored as PENDING_REVIEW."""
    try:
        listing = coordinator.create_listing(user.id, body.title, body.description, body.category)
    except BarterGuardError as e:
        raise to_http(e)
    return _listing_response(listing)


@router.post(
    "/listings/{listing_id}/reports",
    response_model=ListingReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def flag_listing(
    listing_id: str,
    body: ReportRequest,
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Report a listing to the moderation queue."""
    try:
        report = coordinator.flag_listing(listing_id, user.id, body.reason)
    except BarterGuardError as e:
        raise to_http(e)
    return _listing_report_response(report)


@router.post("/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    body: SendMessageRequest,
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Send a message as the authenticated user."""
    try:
        message = coordinator.send_message(user.id, body.receiver_id, body.content, body.listing_id)
    except BarterGuardError as e:
        raise to_http(e)
    return _message_response(message)


@router.post(
    "/users/{user_id}/reports",
    response_model=UserReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def report_user(
    user_id: str,
    body: ReportRequest,
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Report another user. Repeated reports trigger an automatic ban."""
    try:
        report = coordinator.report_user(user.id, user_id, body.reason)
    except BarterGuardError as e:
        raise to_http(e)
    return UserReportResponse(**_enum_values(asdict(report)))


@router.post("/users/{user_id}/block", status_code=status.HTTP_204_NO_CONTENT)
async def block_user(
    user_id: str,
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Stop *user_id* from messaging the authenticated user."""
    try:
        coordinator.block_user(user.id, user_id)
    except BarterGuardError as e:
        raise to_http(e)


@router.get("/users/me/blocked", response_model=BlockedUsersResponse)
async def list_blocked(
    user: User = Depends(get_current_user),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
):
    """Users the authenticated user has blocked."""
    try:
        blocked = coordinator.store.list_blocked_users(user.id)
    except BarterGuardError as e:
        raise to_http(e)
    return BlockedUsersResponse(user_id=user.id, blocked_user_ids=sorted(blocked))
