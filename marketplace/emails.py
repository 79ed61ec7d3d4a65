"""
Transactional emails. Every helper is best effort: delivery failures are
logged and reported as False so the calling request still succeeds.
"""
import logging
from typing import Iterable, Optional

from django.conf import settings

from .calendar_utils import format_recording_details, format_slot
from .errors import MailgunError
from .mailgun_client import mailgun_service
from .utils import app_url

logger = logging.getLogger("marketplace")


def _signature() -> str:
    return f"Best regards,\nThe {settings.PLATFORM_NAME} Team"


def deliver(to: Optional[str], subject: str, text: str, html: Optional[str] = None) -> bool:
    if not to:
        logger.warning(f"[EMAIL] No recipient for {subject!r}, skipping")
        return False
    try:
        return mailgun_service.send_email(to, subject, text, html)
    except MailgunError as e:
        logger.error(f"[EMAIL] Failed to send {subject!r} to {to}: {e}")
        return False


def _money(amount) -> str:
    return f"{float(amount or 0):,.2f}"


# =============================================================================
# Podcasts and pitches
# =============================================================================

def podcast_submitted(podcast_title: str, owner_email: str, podcast_id: str) -> bool:
    text = (
        f"A new podcast has been submitted.\n\n"
        f"Title: {podcast_title}\n"
        f"Owner: {owner_email or 'unknown'}\n"
        f"Podcast ID: {podcast_id}\n\n"
        f"Review it here: {app_url('admin/vetting')}"
    )
    return deliver(settings.SUPPORT_EMAIL, f"New Podcast Submission: {podcast_title}", text)


def podcast_approved(owner_email: str, podcast_title: str) -> bool:
    text = (
        f"Great news! Your podcast \"{podcast_title}\" has been approved on {settings.PLATFORM_NAME}.\n\n"
        f"You can now add services and start receiving collaboration requests.\n\n"
        f"Go to your dashboard: {app_url('dashboard')}\n\n{_signature()}"
    )
    return deliver(owner_email, f"Your podcast \"{podcast_title}\" has been approved", text)


def podcast_rejected(owner_email: str, podcast_title: str, notes: str = "") -> bool:
    text = f"Thank you for submitting \"{podcast_title}\". We are unable to approve it at this time.\n\n"
    if notes:
        text += f"Feedback: {notes}\n\n"
    text += f"You are welcome to update your submission and try again.\n\n{_signature()}"
    return deliver(owner_email, f"Update on your podcast \"{podcast_title}\"", text)


def pitch_received(owner_email: str, buyer_name: str, podcast_title: str, service_title: str,
                   collaboration_id: str) -> bool:
    text = (
        f"{buyer_name} sent a collaboration request for {podcast_title}.\n\n"
        f"Service: {service_title}\n\n"
        f"Review the request: {app_url('dashboard/pitches')}\n"
        f"Collaboration ID: {collaboration_id}\n\n{_signature()}"
    )
    return deliver(owner_email, f"New Collaboration Request for {podcast_title}", text)


def pitch_accepted(buyer_email: str, buyer_name: str, seller_name: str, service_title: str,
                   price, collaboration_id: str) -> bool:
    text = (
        f"Hi {buyer_name},\n\n"
        f"{seller_name} accepted your pitch for \"{service_title}\".\n\n"
        f"Next step: complete the payment of {_money(price)} to secure the collaboration. "
        f"Funds are held in escrow until the work is delivered.\n\n"
        f"Pay now: {app_url(f'collaboration/{collaboration_id}')}\n\n{_signature()}"
    )
    return deliver(buyer_email, f"Your pitch was accepted: {service_title}", text)


def pitch_declined(buyer_email: str, buyer_name: str, seller_name: str, service_title: str) -> bool:
    text = (
        f"Hi {buyer_name},\n\n"
        f"{seller_name} is unable to take on your pitch for \"{service_title}\" at this time.\n\n"
        f"Keep exploring other collaborators on {settings.PLATFORM_NAME}: {app_url('marketplace')}\n\n"
        f"{_signature()}"
    )
    return deliver(buyer_email, f"Update on your pitch: {service_title}", text)


# =============================================================================
# Guests
# =============================================================================

def verification_requested(guest: dict) -> bool:
    topics = ", ".join(guest.get("guestTopics") or []) or "none"
    text = (
        f"A guest has requested verification.\n\n"
        f"Name: {guest.get('displayName', '')}\n"
        f"Email: {guest.get('email', '')}\n"
        f"Bio: {guest.get('guestBio', '')}\n"
        f"Topics: {topics}\n"
        f"Rate: {_money(guest.get('guestRate'))}\n\n"
        f"Review: {app_url('admin/guests')}"
    )
    return deliver(settings.ADMIN_EMAIL, f"Guest Verification Request: {guest.get('displayName', '')}", text)


def guest_verified(email: str, name: str) -> bool:
    text = (
        f"Hi {name},\n\n"
        f"Great news! Your guest profile on {settings.PLATFORM_NAME} has been verified.\n\n"
        f"Your verified status helps you build trust with podcast hosts and stand out in search.\n\n"
        f"View your profile: {app_url('guest/profile')}\n\n{_signature()}"
    )
    return deliver(email, "Your Guest Profile Has Been Verified!", text)


def guest_verification_declined(email: str, name: str, reason: str = "") -> bool:
    text = (
        f"Hi {name},\n\n"
        f"Thank you for your interest in becoming a verified guest on {settings.PLATFORM_NAME}. "
        f"We are unable to approve your verification request at this time.\n\n"
    )
    if reason:
        text += f"Reason: {reason}\n\n"
    text += (
        f"You can update your profile and request verification again when you are ready.\n"
        f"{app_url('guest/profile')}\n\n{_signature()}"
    )
    return deliver(email, "Update on Your Guest Verification Request", text)


def guest_invitation(to: str, guest_name: str, podcast_name: str, inviter_name: str, message: str,
                     offered_amount, invite_link: str, expires_on: str) -> bool:
    text = (
        f"Hi {guest_name},\n\n"
        f"{inviter_name} would like to invite you as a guest on {podcast_name}.\n\n"
        f"\"{message}\"\n\n"
    )
    if offered_amount:
        text += f"Offered amount: {_money(offered_amount)}\n\n"
    text += (
        f"Accept the invitation and create your guest profile: {invite_link}\n\n"
        f"This invitation expires on {expires_on}.\n\n{_signature()}"
    )
    return deliver(to, f"You're invited to be a guest on {podcast_name}!", text)


# =============================================================================
# Matching and collaboration lifecycle
# =============================================================================

def match_found(to: str, name: str, other_name: str, podcast_name: str, score: int,
                topics: Iterable[str]) -> bool:
    shared = ", ".join(topics) or "your interests"
    text = (
        f"Hi {name},\n\n"
        f"You've been matched with {other_name} for {podcast_name}! "
        f"Both of you are interested in collaborating.\n\n"
        f"Match score: {score}/100\n"
        f"Shared topics: {shared}\n\n"
        f"View your matches: {app_url('matches')}\n\n{_signature()}"
    )
    return deliver(to, f"It's a match! {podcast_name}", text)


def collaboration_proposal(to: str, proposer_name: str, podcast_name: str, price,
                           payment_direction: str, collaboration_id: str) -> bool:
    text = (
        f"{proposer_name} sent you a guest appearance proposal for {podcast_name}.\n\n"
        f"Price: {_money(price)} ({payment_direction.replace('_', ' ')})\n\n"
        f"Review the proposal: {app_url(f'collaboration/{collaboration_id}')}\n\n{_signature()}"
    )
    return deliver(to, f"New Collaboration Proposal - {podcast_name}", text)


def schedule_proposed(to: str, proposer_name: str, slots, collaboration_id: str) -> bool:
    options = "\n".join(f"Option {i + 1}: {format_slot(slot)}" for i, slot in enumerate(slots))
    text = (
        f"{proposer_name} proposed recording times:\n\n{options}\n\n"
        f"Pick a time: {app_url(f'collaboration/{collaboration_id}')}\n\n{_signature()}"
    )
    return deliver(to, f"Recording Time Proposed - {settings.PLATFORM_NAME}", text)


def schedule_confirmed(to: str, slot: dict, recording_url: Optional[str], collaboration_id: str) -> bool:
    text = (
        f"Your recording has been scheduled!\n\n"
        f"{format_recording_details(slot, recording_url)}\n"
        f"View collaboration details: {app_url(f'collaboration/{collaboration_id}')}\n\n{_signature()}"
    )
    return deliver(to, f"Recording Confirmed - {settings.PLATFORM_NAME}", text)


def reschedule_requested(to: str, requester_name: str, current: dict, reason: str, slots,
                         collaboration_id: str) -> bool:
    options = "\n".join(f"Option {i + 1}: {format_slot(slot)}" for i, slot in enumerate(slots))
    current = current or {}
    text = (
        f"{requester_name} has requested to reschedule your recording.\n\n"
        f"Current Schedule: {format_slot(current)}\n\n"
        f"Reason for Rescheduling: {reason}\n\n"
        f"Proposed New Times:\n{options}\n\n"
        f"Please review and respond: {app_url(f'collaboration/{collaboration_id}')}\n\n{_signature()}"
    )
    return deliver(to, f"Reschedule Request - {settings.PLATFORM_NAME}", text)


def reschedule_accepted(to: str, slot: dict, recording_url: Optional[str], collaboration_id: str) -> bool:
    text = (
        f"Your recording has been rescheduled.\n\n"
        f"{format_recording_details(slot, recording_url)}\n"
        f"View collaboration details: {app_url(f'collaboration/{collaboration_id}')}\n\n{_signature()}"
    )
    return deliver(to, f"Recording Rescheduled - {settings.PLATFORM_NAME}", text)


def calendar_invite(to: str, details: str, collaboration_id: str, ics: str) -> bool:
    text = (
        f"Your podcast recording has been scheduled!\n\n{details}\n"
        f"Add the event below to your calendar to get reminders 24 hours and 1 hour "
        f"before the recording.\n\n"
        f"View full collaboration details: {app_url(f'collaboration/{collaboration_id}')}\n\n"
        f"{_signature()}\n\n{ics}"
    )
    return deliver(to, f"Calendar Invite: Podcast Recording - {settings.PLATFORM_NAME}", text)


def recording_link_added(to: str, slot: dict, platform: str, recording_url: str,
                         prep_notes: Optional[str], collaboration_id: str) -> bool:
    text = (
        f"The recording link has been added for your upcoming podcast appearance!\n\n"
        f"{format_recording_details(slot, recording_url, prep_notes)}\n"
        f"Platform: {platform.capitalize()}\n\n"
        f"View full collaboration details: {app_url(f'collaboration/{collaboration_id}')}\n\n"
        f"{_signature()}"
    )
    return deliver(to, f"Recording Link Added - {settings.PLATFORM_NAME}", text)


def recording_complete(to: str, guest_name: str, podcast_name: str, notes: Optional[str],
                       escrow_note: bool, collaboration_id: str) -> bool:
    text = f"Hi {guest_name},\n\nThe podcast owner has marked your recording for \"{podcast_name}\" as complete!\n\n"
    if notes:
        text += f"Recording Notes: {notes}\n\n"
    text += "The episode is now in post-production. You'll be notified when it is released.\n\n"
    if escrow_note:
        text += "Your payment is being held in escrow and will be released when the episode is published.\n\n"
    text += f"View Collaboration: {app_url(f'collaboration/{collaboration_id}')}\n\n{_signature()}"
    return deliver(to, f"Recording Complete - {podcast_name}", text)


def episode_released(to: str, guest_name: str, podcast_name: str, episode_url: str,
                     payment_released: bool, payment_error: Optional[str], collaboration_id: str) -> bool:
    text = (
        f"Hi {guest_name},\n\n"
        f"Great news! Your episode on \"{podcast_name}\" has been released!\n\n"
        f"Listen to it here: {episode_url}\n\n"
    )
    if payment_released:
        text += "Your payment has been processed and should arrive within 1-2 business days.\n\n"
    if payment_error:
        text += (
            f"Note: There was an issue processing your payment: {payment_error}. "
            f"Our team will contact you to resolve this.\n\n"
        )
    text += (
        f"We've added this episode to the Previous Appearances section of your profile.\n\n"
        f"View Collaboration: {app_url(f'collaboration/{collaboration_id}')}\n\n{_signature()}"
    )
    return deliver(to, f"Episode Released - {podcast_name}", text)


def recording_reminder(to: str, details: str, recording_url: Optional[str], collaboration_id: str,
                       hours: int) -> bool:
    if hours == 24:
        subject = f"Reminder: Podcast Recording Tomorrow - {settings.PLATFORM_NAME}"
        text = (
            f"This is a reminder that your podcast recording is scheduled for tomorrow!\n\n{details}\n"
            f"Please test your audio equipment, review any preparation notes and "
            f"find a quiet location.\n\n"
        )
    else:
        subject = f"Starting Soon: Podcast Recording in 1 Hour - {settings.PLATFORM_NAME}"
        text = f"Your podcast recording starts in 1 hour!\n\n{details}\n"
    if recording_url:
        text += f"Join Recording: {recording_url}\n\n"
    text += f"View collaboration details: {app_url(f'collaboration/{collaboration_id}')}\n\n{_signature()}"
    return deliver(to, subject, text)


# =============================================================================
# Payments and contracts
# =============================================================================

def payout_released_seller(to: str, amount, reference: str, collaboration_id: str) -> bool:
    text = (
        f"Congratulations! The project has been marked as complete and your payment of "
        f"NGN {_money(amount)} has been released to your bank account.\n\n"
        f"Collaboration ID: {collaboration_id}\n"
        f"Transfer Reference: {reference}\n\n"
        f"The funds should arrive within 1-2 business days.\n\n{_signature()}"
    )
    return deliver(to, f"Payment Released - Project Completed on {settings.PLATFORM_NAME}", text)


def payout_released_buyer(to: str, price, seller_amount, commission, collaboration_id: str) -> bool:
    text = (
        f"Your project has been marked as complete and the payment has been released.\n\n"
        f"Collaboration ID: {collaboration_id}\n"
        f"Total Amount: NGN {_money(price)}\n"
        f"Creator Payment: NGN {_money(seller_amount)}\n"
        f"Platform Fee: NGN {_money(commission)}\n\n"
        f"Thank you for using {settings.PLATFORM_NAME}!\n\n{_signature()}"
    )
    return deliver(to, f"Project Completed - Payment Released on {settings.PLATFORM_NAME}", text)


def contract_signed(buyer_email: str, buyer_name: str, seller_email: str, seller_name: str,
                    service_title: str, collaboration_id: str) -> bool:
    link = app_url(f"collaboration/{collaboration_id}")
    subject = f"Contract Signed - {service_title}"
    to_buyer = deliver(buyer_email, subject, (
        f"Hi {buyer_name},\n\n"
        f"All parties have signed the agreement for \"{service_title}\" with {seller_name}. "
        f"Your collaboration is now in progress.\n\n{link}\n\n{_signature()}"
    ))
    to_seller = deliver(seller_email, subject, (
        f"Hi {seller_name},\n\n"
        f"All parties have signed the agreement for \"{service_title}\" with {buyer_name}. "
        f"You can start working on the collaboration now.\n\n{link}\n\n{_signature()}"
    ))
    return to_buyer and to_seller


# =============================================================================
# Legend applications
# =============================================================================

def legend_application_approved(email: str, artist_name: str, management_email: Optional[str] = None) -> bool:
    subject = f"Your {settings.PLATFORM_NAME} Legend Application Has Been Approved!"
    text = (
        f"Congratulations {artist_name}!\n\n"
        f"Your application to become a Legend on {settings.PLATFORM_NAME} has been approved.\n\n"
        f"Next Steps:\n"
        f"1. Log in to your account\n"
        f"2. Complete your Legend profile\n"
        f"3. Add your services and set your rates\n"
        f"4. Connect your bank account for payouts\n\n"
        f"{_signature()}\n\n---\nQuestions? Contact us at {settings.SUPPORT_EMAIL}"
    )
    sent = deliver(email, subject, text)
    if management_email and management_email != email:
        deliver(
            management_email,
            f"{artist_name}'s {settings.PLATFORM_NAME} Legend Application Approved",
            f"Hello,\n\nWe're reaching out to inform you that {artist_name}'s application "
            f"has been approved.\n\n{text}",
        )
    return sent


def legend_application_declined(email: str, artist_name: str, reason: Optional[str] = None,
                                management_email: Optional[str] = None) -> bool:
    subject = f"{settings.PLATFORM_NAME} Legend Application Update"
    text = (
        f"Hello {artist_name},\n\n"
        f"Thank you for your interest in becoming a Legend on {settings.PLATFORM_NAME}.\n\n"
        f"After careful review, we are unable to approve your application at this time.\n\n"
    )
    if reason:
        text += f"Feedback: {reason}\n\n"
    text += (
        f"You're welcome to reapply in the future as your career evolves.\n\n"
        f"{_signature()}\n\n---\nQuestions? Contact us at {settings.SUPPORT_EMAIL}"
    )
    sent = deliver(email, subject, text)
    if management_email and management_email != email:
        deliver(
            management_email,
            f"{artist_name}'s {settings.PLATFORM_NAME} Legend Application Update",
            f"Hello,\n\nWe're reaching out about {artist_name}'s application.\n\n{text}",
        )
    return sent
