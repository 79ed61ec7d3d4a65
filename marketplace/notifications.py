"""
In-app notifications stored in the "notifications" collection.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from django.utils import timezone

from . import constants
from .errors import ServiceError
from .firebase_service import firestore_service

logger = logging.getLogger("marketplace")

# type -> (title, message, actionText); messages are formatted with the context
NOTIFICATION_TEMPLATES = {
    "match_found": (
        "New Match!",
        "You've been matched with {name}! Both of you are interested in collaborating.",
        "View Match",
    ),
    "wishlist_response": (
        "Wishlist Update",
        "{name} has responded to your wishlist interest.",
        "View Response",
    ),
    "collaboration_proposal": (
        "New Collaboration Proposal",
        "{name} sent you a collaboration proposal for a guest appearance.",
        "Review Proposal",
    ),
    "collaboration_accepted": (
        "Proposal Accepted",
        "{name} accepted your collaboration proposal!",
        "View Collaboration",
    ),
    "collaboration_declined": (
        "Proposal Declined",
        "{name} declined your collaboration proposal.",
        "View Details",
    ),
    "payment_received": (
        "Payment Received",
        "Payment of ${amount} has been received and held in escrow.",
        "View Collaboration",
    ),
    "payment_released": (
        "Payment Released",
        "Your payment of ${amount} has been released and will be transferred shortly.",
        "View Details",
    ),
    "recording_reminder_24h": (
        "Recording Tomorrow",
        "Reminder: Your recording with {name} is scheduled for tomorrow at {time}.",
        "View Details",
    ),
    "recording_reminder_1h": (
        "Recording Starting Soon",
        "Your recording with {name} starts in 1 hour!",
        "Join Recording",
    ),
    "recording_scheduled": (
        "Recording Scheduled",
        "Your recording with {name} has been scheduled for {date}.",
        "View Schedule",
    ),
    "recording_rescheduled": (
        "Recording Rescheduled",
        "{name} has requested to reschedule your recording.",
        "Review Request",
    ),
    "recording_link_added": (
        "Recording Link Added",
        "{name} has added the recording platform link.",
        "View Link",
    ),
    "recording_completed": (
        "Recording Complete",
        "{name} marked the recording as complete.",
        "View Collaboration",
    ),
    "episode_released": (
        "Episode Released!",
        "Your episode \"{title}\" on {name} is now live!",
        "Listen Now",
    ),
    "guest_invitation": (
        "Podcast Invitation",
        "{name} invited you to be a guest on their podcast.",
        "View Invitation",
    ),
    "guest_verification_approved": (
        "Profile Verified",
        "Congratulations! Your guest profile has been verified.",
        "View Profile",
    ),
    "guest_verification_declined": (
        "Verification Update",
        "Your guest verification request needs some updates.",
        "View Details",
    ),
    "message_received": (
        "New Message",
        "{name} sent you a message.",
        "View Message",
    ),
    "contract_signed": (
        "Contract Signed",
        "{name} signed the collaboration contract.",
        "View Contract",
    ),
    "milestone_completed": (
        "Milestone Completed",
        "A milestone in your collaboration with {name} has been completed.",
        "View Progress",
    ),
    "feedback_received": (
        "New Feedback",
        "{name} left feedback on your collaboration.",
        "View Feedback",
    ),
}

DEFAULT_TEMPLATE = ("New Notification", "You have a new notification.", "View Details")


class _Context(dict):
    def __missing__(self, key):
        return ""


def notification_content(notification_type: str, **context) -> Dict[str, str]:
    title, message, action_text = NOTIFICATION_TEMPLATES.get(notification_type, DEFAULT_TEMPLATE)
    return {
        "title": title,
        "message": message.format_map(_Context(context)),
        "actionText": action_text,
    }


def build_notification(user_id: str, notification_type: str, title: str, message: str,
                       action_url: Optional[str] = None, action_text: Optional[str] = None,
                       expires_at: Optional[datetime] = None,
                       metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "userId": user_id,
        "type": notification_type,
        "title": title,
        "message": message,
        "actionUrl": action_url,
        "actionText": action_text,
        "read": False,
        "createdAt": timezone.now(),
        "expiresAt": expires_at,
        "metadata": metadata or {},
    }


def create_notification(user_id: str, notification_type: str, context: Optional[Dict[str, Any]] = None,
                        action_url: Optional[str] = None,
                        metadata: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """Best-effort templated notification; returns the new id or None."""
    if not user_id:
        return None

    content = notification_content(notification_type, **(context or {}))
    data = build_notification(
        user_id,
        notification_type,
        content["title"],
        content["message"],
        action_url=action_url,
        action_text=content["actionText"],
        metadata=metadata,
    )
    try:
        return firestore_service.create(constants.NOTIFICATIONS, data)
    except ServiceError as e:
        logger.error(f"[NOTIFICATIONS] Failed to notify {user_id} ({notification_type}): {e}")
        return None
