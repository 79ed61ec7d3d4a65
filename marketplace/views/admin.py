"""
Admin moderation: legend applications, podcasts, guest verification,
guest feature settings and prospect emails.
"""
import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants, emails
from ..auth import require_admin
from ..errors import ServiceError
from ..firebase_service import firestore_service, set_custom_claims
from ..http import json_body, require_fields
from ..invites import InviteError, send_guest_invite
from ..notifications import create_notification
from ..utils import display_name, is_valid_email, serialize, to_number

logger = logging.getLogger("marketplace")


@csrf_exempt
def review_application(request):
    logger.info(f"[ADMIN/APPLICATION] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = require_admin(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "applicationId", "action")
    if missing:
        return missing

    action = data["action"]
    if action not in ("approve", "decline"):
        return JsonResponse({"error": "invalid_action", "allowed": ["approve", "decline"]}, status=400)

    application = firestore_service.get(constants.LEGEND_APPLICATIONS, data["applicationId"])
    if not application:
        return JsonResponse({"error": "application_not_found"}, status=404)
    applicant_uid = application.get("applicantUid")
    if not applicant_uid:
        return JsonResponse({"error": "invalid_application"}, status=400)

    now = timezone.now()
    notes = data.get("notes") or None
    approved = action == "approve"
    firestore_service.update(constants.LEGEND_APPLICATIONS, application["id"], {
        "status": "approved" if approved else "declined",
        "reviewedAt": now,
        "reviewedBy": claims["uid"],
        "reviewNotes": notes,
    })
    firestore_service.update(constants.USERS, applicant_uid, {
        "role": constants.ROLE_LEGEND if approved else constants.ROLE_NEW_ARTIST,
        "updatedAt": now,
    })

    details = application.get("applicationData") or {}
    email = details.get("email") or ""
    artist_name = details.get("artistName") or "Artist"
    if approved:
        set_custom_claims(applicant_uid, {"role": constants.ROLE_LEGEND})
        emails.legend_application_approved(email, artist_name, details.get("managementEmail"))
    else:
        emails.legend_application_declined(email, artist_name, notes, details.get("managementEmail"))

    logger.info(f"[ADMIN/APPLICATION] {application['id']} {action}d by {claims['uid']}")
    return JsonResponse({
        "success": True,
        "message": f"Application {'approved' if approved else 'declined'} successfully",
    })


@csrf_exempt
def review_podcast(request):
    logger.info(f"[ADMIN/PODCAST] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = require_admin(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "podcastId", "action")
    if missing:
        return missing

    action = data["action"]
    if action not in ("approve", "reject"):
        return JsonResponse({"error": "invalid_action", "allowed": ["approve", "reject"]}, status=400)

    podcast = firestore_service.get(constants.PODCASTS, data["podcastId"])
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)
    owner_id = podcast.get("ownerId")
    if not owner_id:
        return JsonResponse({"error": "podcast_owner_not_found"}, status=400)

    now = timezone.now()
    notes = data.get("notes") or ""
    approved = action == "approve"
    firestore_service.update(constants.PODCASTS, podcast["id"], {
        "status": "approved" if approved else "rejected",
        "reviewedAt": now,
        "reviewedBy": claims["uid"],
        "reviewNotes": notes or None,
        "updatedAt": now,
    })

    owner = firestore_service.get_user(owner_id) or {}
    title = podcast.get("title") or "Your Podcast"
    if approved:
        try:
            firestore_service.set(constants.USERS, owner_id, {"hasPodcast": True, "updatedAt": now}, merge=True)
        except ServiceError as e:
            logger.warning(f"[ADMIN/PODCAST] Could not flag {owner_id} as podcaster: {e}")
        emails.podcast_approved(owner.get("email"), title)
    else:
        emails.podcast_rejected(owner.get("email"), title, notes)

    logger.info(f"[ADMIN/PODCAST] {podcast['id']} {action}d by {claims['uid']}")
    return JsonResponse({
        "success": True,
        "message": f"Podcast {'approved' if approved else 'rejected'} successfully",
    })


@csrf_exempt
def verify_guest(request):
    logger.info(f"[ADMIN/VERIFY-GUEST] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = require_admin(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "guestId")
    if missing:
        return missing

    guest = firestore_service.get_user(data["guestId"])
    if not guest:
        return JsonResponse({"error": "guest_not_found"}, status=404)

    now = timezone.now()
    admin_uid = claims["uid"]
    name = display_name(guest, "Guest")

    if data.get("approve"):
        updates = {
            "isVerifiedGuest": True,
            "guestVerificationApprovedAt": now,
            "guestVerificationApprovedBy": admin_uid,
            "updatedAt": now,
        }
        if data.get("adminNotes"):
            updates["guestVerificationNotes"] = data["adminNotes"]
        firestore_service.update(constants.USERS, guest["id"], updates)
        emails.guest_verified(guest.get("email"), name)
        create_notification(guest["id"], "guest_verification_approved")
        return JsonResponse({"success": True, "message": "Guest verified successfully"})

    reason = data.get("reason") or "Not specified"
    updates = {
        # cleared so the guest can ask again
        "guestVerificationRequestedAt": None,
        "guestVerificationDeclinedAt": now,
        "guestVerificationDeclinedBy": admin_uid,
        "guestVerificationDeclineReason": reason,
        "updatedAt": now,
    }
    if data.get("adminNotes"):
        updates["guestVerificationNotes"] = data["adminNotes"]
    firestore_service.update(constants.USERS, guest["id"], updates)
    emails.guest_verification_declined(guest.get("email"), name, data.get("reason") or "")
    create_notification(guest["id"], "guest_verification_declined")
    return JsonResponse({"success": True, "message": "Verification request declined"})


def _validate_guest_settings(settings: dict):
    """Error code for an invalid combination, or None."""
    def number(key):
        return to_number(settings.get(key))

    min_rate, max_rate = number("minGuestRate"), number("maxGuestRate")
    if min_rate is None or max_rate is None or min_rate < 0 or max_rate < min_rate:
        return "invalid_rate_settings"
    expiration = number("inviteExpirationDays")
    if expiration is None or not 1 <= expiration <= 365:
        return "invalid_invite_expiration"
    score = number("minimumMatchScore")
    if score is None or not 0 <= score <= 100:
        return "invalid_match_score"
    threshold = number("autoVerifyThreshold")
    if threshold is None or threshold < 0:
        return "invalid_auto_verify_threshold"
    return None


@csrf_exempt
def guest_settings(request):
    """
    GET   current guest feature settings (defaults when never saved)
    POST  replace them
    """
    logger.info(f"[ADMIN/GUEST-SETTINGS] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    claims, auth_error = require_admin(request)
    if auth_error:
        return auth_error

    if request.method == "GET":
        return JsonResponse({"settings": serialize(firestore_service.guest_settings())})

    data, error = json_body(request)
    if error:
        return error

    settings = dict(constants.DEFAULT_GUEST_SETTINGS)
    settings.update({key: data[key] for key in constants.DEFAULT_GUEST_SETTINGS if key in data})
    invalid = _validate_guest_settings(settings)
    if invalid:
        return JsonResponse({"error": invalid}, status=400)

    settings.update({"updatedAt": timezone.now(), "updatedBy": claims["uid"]})
    firestore_service.set(constants.PLATFORM_SETTINGS, constants.GUEST_SETTINGS_DOC, settings)
    logger.info(f"[ADMIN/GUEST-SETTINGS] Updated by {claims['uid']}")

    return JsonResponse({"message": "Settings updated successfully", "settings": serialize(settings)})


@csrf_exempt
def update_prospect_email(request):
    """Give an unregistered prospect an email address and invite them."""
    logger.info(f"[ADMIN/PROSPECT-EMAIL] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = require_admin(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "prospectId", "email")
    if missing:
        return missing

    email = data["email"]
    if not is_valid_email(email):
        return JsonResponse({"error": "invalid_email"}, status=400)

    prospect = firestore_service.get(constants.PODCAST_WISHLISTS, data["prospectId"])
    if not prospect:
        return JsonResponse({"error": "prospect_not_found"}, status=404)

    firestore_service.update(constants.PODCAST_WISHLISTS, prospect["id"], {
        "guestEmail": email,
        "updatedAt": timezone.now(),
    })

    podcast = firestore_service.get(constants.PODCASTS, prospect.get("podcastId")) or {}
    invitation_sent = False
    if podcast.get("ownerId"):
        try:
            send_guest_invite(
                prospect["podcastId"],
                podcast["ownerId"],
                email,
                prospect.get("guestName") or "",
                offered_amount=prospect.get("budgetAmount") or 0,
                message=prospect.get("notes"),
                preferred_topics=prospect.get("preferredTopics"),
                wishlist_entry_id=prospect["id"],
            )
            invitation_sent = True
        except InviteError as e:
            logger.warning(f"[ADMIN/PROSPECT-EMAIL] Invite for {prospect['id']} not sent: {e.code}")
    else:
        logger.warning(f"[ADMIN/PROSPECT-EMAIL] Podcast owner missing for prospect {prospect['id']}")

    return JsonResponse({
        "success": True,
        "message": (
            "Email updated and invitation sent successfully" if invitation_sent else "Email updated"
        ),
        "invitationSent": invitation_sent,
    })
