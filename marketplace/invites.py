"""
Email invitations for guests who are not registered yet.
"""
import logging
import secrets
from datetime import timedelta
from typing import List, Optional

from django.utils import timezone

from . import constants, emails
from .errors import ServiceError
from .firebase_service import firestore_service
from .utils import app_url, display_name, is_valid_email, long_date

logger = logging.getLogger("marketplace")


class InviteError(ServiceError):
    """An invitation that cannot be sent; carries its own code and status."""

    def __init__(self, code: str, status: int, message: str = ""):
        super().__init__(message or code)
        self.code = code
        self.status = status


def default_invite_message(podcast_name: str) -> str:
    return f"I'd love to have you as a guest on {podcast_name}!"


def send_guest_invite(
    podcast_id: str,
    owner_id: str,
    guest_email: str,
    guest_name: str,
    offered_amount: float = 0,
    message: Optional[str] = None,
    preferred_topics: Optional[List[str]] = None,
    wishlist_entry_id: Optional[str] = None,
    expiration_days: Optional[int] = None,
) -> str:
    """
    Create a guestInvites document and email the invite link.

    Returns the invite id. Raises InviteError for a bad email, a guest who
    already has an account, a duplicate open invite or a missing podcast.
    """
    if not is_valid_email(guest_email):
        raise InviteError("invalid_email", 400, "Invalid email address")

    if firestore_service.find_user_by_email(guest_email):
        raise InviteError(
            "user_exists",
            400,
            "A user with this email already exists on the platform. Please add them directly from their profile.",
        )

    open_invites = firestore_service.query(constants.GUEST_INVITES, [
        ("podcastId", "==", podcast_id),
        ("guestEmail", "==", guest_email),
        ("status", "==", constants.INVITE_SENT),
    ], limit=1)
    if open_invites:
        raise InviteError(
            "invite_already_sent", 400, "An invitation has already been sent to this email address"
        )

    podcast = firestore_service.get(constants.PODCASTS, podcast_id)
    if not podcast:
        raise InviteError("podcast_not_found", 404, "Podcast not found")

    podcast_name = podcast.get("title") or "Unknown Podcast"
    owner = firestore_service.get_user(owner_id)
    owner_name = display_name(owner, "Podcast Owner")

    if expiration_days is None:
        expiration_days = firestore_service.guest_settings()["inviteExpirationDays"]

    now = timezone.now()
    expires_at = now + timedelta(days=int(expiration_days))
    token = secrets.token_hex(32)
    message = message or default_invite_message(podcast_name)

    invite_id = firestore_service.create(constants.GUEST_INVITES, {
        "inviteToken": token,
        "podcastId": podcast_id,
        "podcastName": podcast_name,
        "podcastImageUrl": podcast.get("coverImageUrl"),
        "podcastOwnerId": owner_id,
        "guestEmail": guest_email,
        "guestName": guest_name,
        "offeredAmount": offered_amount or 0,
        "message": message,
        "preferredTopics": preferred_topics or [],
        "status": constants.INVITE_SENT,
        "sentAt": now,
        "expiresAt": expires_at,
        "wishlistEntryId": wishlist_entry_id,
    })
    logger.info(f"[INVITE] Invite {invite_id} for {guest_email} on podcast {podcast_id}")

    emails.guest_invitation(
        guest_email,
        guest_name,
        podcast_name,
        owner_name,
        message,
        offered_amount,
        app_url(f"guest/accept-invite/{token}"),
        long_date(expires_at),
    )

    if wishlist_entry_id:
        try:
            firestore_service.update(constants.PODCAST_WISHLISTS, wishlist_entry_id, {
                "inviteSent": True,
                "inviteSentAt": now,
                "status": constants.WISHLIST_CONTACTED,
            })
        except ServiceError as e:
            logger.warning(f"[INVITE] Failed to mark wishlist {wishlist_entry_id} contacted: {e}")

    return invite_id


def find_invite(token: str) -> Optional[dict]:
    invites = firestore_service.query(constants.GUEST_INVITES, [("inviteToken", "==", token)], limit=1)
    return invites[0] if invites else None
