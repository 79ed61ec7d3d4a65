import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants, emails
from ..auth import authenticate
from ..errors import ServiceError
from ..firebase_service import firestore_service
from ..http import json_body, require_fields
from ..invites import InviteError, find_invite, send_guest_invite
from ..utils import parse_when, serialize, to_number

logger = logging.getLogger("marketplace")


def _profile_fields(data: dict) -> dict:
    return {key: data[key] for key in constants.GUEST_PROFILE_FIELDS if key in data}


@csrf_exempt
def guest_create_profile(request):
    logger.info(f"[GUEST/CREATE] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    uid = claims["uid"]
    profile = _profile_fields(data)
    profile.update({
        "uid": uid,
        "isGuest": True,
        "updatedAt": timezone.now(),
    })
    if claims.get("email"):
        profile.setdefault("email", claims["email"])

    firestore_service.set(constants.USERS, uid, profile, merge=True)
    logger.info(f"[GUEST/CREATE] Guest profile saved for {uid}")

    return JsonResponse({"message": "Guest profile created successfully", "uid": uid})


@csrf_exempt
def guest_update_profile(request):
    if request.method != "PUT":
        return HttpResponseNotAllowed(["PUT"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    user = firestore_service.get_user(claims["uid"])
    if not user or not user.get("isGuest"):
        return JsonResponse({"error": "not_a_guest"}, status=403)

    data, error = json_body(request)
    if error:
        return error

    updates = _profile_fields(data)
    updates["updatedAt"] = timezone.now()
    firestore_service.update(constants.USERS, claims["uid"], updates)

    return JsonResponse({"message": "Profile updated successfully"})


@csrf_exempt
def guest_enable_mode(request):
    """Turn an existing account into a guest as well."""
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    uid = claims["uid"]
    user = firestore_service.get_user(uid)
    if not user:
        return JsonResponse({"error": "user_not_found"}, status=404)
    if user.get("isGuest"):
        return JsonResponse({"error": "already_guest"}, status=400)

    data, error = json_body(request)
    if error:
        return error

    updates = _profile_fields(data)
    updates.update({"isGuest": True, "updatedAt": timezone.now()})
    firestore_service.update(constants.USERS, uid, updates)

    return JsonResponse({"message": "Guest mode enabled successfully", "uid": uid})


@csrf_exempt
def guest_request_verification(request):
    logger.info(f"[GUEST/VERIFY] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    uid = claims["uid"]
    user = firestore_service.get_user(uid)
    if not user or not user.get("isGuest"):
        return JsonResponse({"error": "not_a_guest"}, status=403)
    if user.get("isVerifiedGuest"):
        return JsonResponse({"error": "already_verified"}, status=400)
    if user.get("guestVerificationRequestedAt"):
        return JsonResponse({"error": "verification_already_requested"}, status=400)

    now = timezone.now()
    firestore_service.update(constants.USERS, uid, {
        "guestVerificationRequestedAt": now,
        "updatedAt": now,
    })
    emails.verification_requested(user)

    return JsonResponse({"message": "Verification request submitted successfully"})


@csrf_exempt
def guest_invite_detail(request, token: str):
    """Public view of an open invitation, looked up by its token."""
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    invite = find_invite(token)
    if not invite:
        return JsonResponse({"error": "invite_not_found"}, status=404)
    if invite.get("status") != constants.INVITE_SENT:
        return JsonResponse({"error": "invite_already_processed"}, status=410)

    fields = (
        "id", "inviteToken", "podcastId", "podcastName", "podcastImageUrl", "podcastOwnerId",
        "guestEmail", "guestName", "offeredAmount", "message", "status", "sentAt", "expiresAt",
        "wishlistEntryId",
    )
    body = {key: invite.get(key) for key in fields}
    body["preferredTopics"] = invite.get("preferredTopics") or []

    return JsonResponse({"invite": serialize(body)})


@csrf_exempt
def guest_accept_invite(request):
    logger.info(f"[GUEST/ACCEPT] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error
    if not data.get("token"):
        return JsonResponse({"error": "missing_fields", "required": ["token"]}, status=400)

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error
    uid = claims["uid"]

    invite = find_invite(data["token"])
    if not invite:
        return JsonResponse({"error": "invite_not_found"}, status=404)
    if invite.get("status") != constants.INVITE_SENT:
        return JsonResponse({"error": "invite_already_processed"}, status=410)

    now = timezone.now()
    expires_at = parse_when(invite.get("expiresAt"))
    if expires_at and expires_at < now:
        firestore_service.update(constants.GUEST_INVITES, invite["id"], {
            "status": constants.INVITE_EXPIRED,
            "updatedAt": now,
        })
        return JsonResponse({"error": "invite_expired"}, status=410)

    user = firestore_service.get_user(uid)
    if not user:
        return JsonResponse({"error": "user_not_found"}, status=404)
    if not user.get("isGuest"):
        firestore_service.update(constants.USERS, uid, {"isGuest": True, "role": constants.ROLE_GUEST})

    firestore_service.update(constants.GUEST_INVITES, invite["id"], {
        "status": constants.INVITE_ACCEPTED,
        "acceptedAt": now,
        "acceptedByUserId": uid,
        "updatedAt": now,
    })

    entry_id = invite.get("wishlistEntryId")
    if entry_id:
        try:
            if firestore_service.get(constants.PODCAST_WISHLISTS, entry_id):
                firestore_service.update(constants.PODCAST_WISHLISTS, entry_id, {
                    "guestId": uid,
                    "isRegistered": True,
                    "status": constants.WISHLIST_MATCHED,
                    "updatedAt": now,
                })
        except ServiceError as e:
            logger.warning(f"[GUEST/ACCEPT] Failed to link wishlist {entry_id}: {e}")

    logger.info(f"[GUEST/ACCEPT] Invite {invite['id']} accepted by {uid}")
    return JsonResponse({
        "success": True,
        "message": "Invitation accepted successfully",
        "userId": uid,
    })


@csrf_exempt
def guest_send_invite(request):
    logger.info(f"[GUEST/INVITE] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "podcastId", "guestEmail", "guestName")
    if missing:
        return missing

    expiration_days = data.get("expirationDays")
    if expiration_days is not None:
        expiration_days = to_number(expiration_days)
        if expiration_days is None or not 1 <= expiration_days <= 365:
            return JsonResponse({"error": "invalid_expiration_days"}, status=400)

    podcast = firestore_service.get(constants.PODCASTS, data["podcastId"])
    if podcast and podcast.get("ownerId") != claims["uid"]:
        return JsonResponse({"error": "forbidden"}, status=403)

    try:
        invite_id = send_guest_invite(
            data["podcastId"],
            claims["uid"],
            data["guestEmail"],
            data["guestName"],
            offered_amount=data.get("offeredAmount") or 0,
            message=data.get("message"),
            preferred_topics=data.get("preferredTopics"),
            wishlist_entry_id=data.get("wishlistEntryId"),
            expiration_days=expiration_days,
        )
    except InviteError as e:
        return JsonResponse({"error": e.code, "message": e.message}, status=e.status)

    return JsonResponse({
        "success": True,
        "inviteId": invite_id,
        "message": "Invitation sent successfully",
    })
