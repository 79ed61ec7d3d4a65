"""
Guest wishlists (podcasts a guest wants to appear on) and podcast wishlists
(guests a podcast wants to host).
"""
import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants
from ..auth import authenticate
from ..firebase_service import firestore_service
from ..http import json_body, require_fields
from ..invites import InviteError, send_guest_invite
from ..utils import serialize, to_number

logger = logging.getLogger("marketplace")


# =============================================================================
# Guest side
# =============================================================================

@csrf_exempt
def guest_wishlist(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    wishlists = firestore_service.query(
        constants.GUEST_WISHLISTS,
        [("guestId", "==", claims["uid"])],
        order_by="createdAt",
        descending=True,
    )
    return JsonResponse({"wishlists": serialize(wishlists)})


@csrf_exempt
def guest_wishlist_add(request):
    logger.info(f"[WISHLIST/GUEST/ADD] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "podcastId", "offerAmount", "topics", "message")
    if missing:
        return missing

    offer = to_number(data["offerAmount"])
    if offer is None or offer < 0:
        return JsonResponse({"error": "invalid_offer_amount"}, status=400)

    uid = claims["uid"]
    user = firestore_service.get_user(uid)
    if not user:
        return JsonResponse({"error": "guest_not_found"}, status=404)
    if not user.get("isGuest"):
        return JsonResponse({"error": "not_a_guest"}, status=403)

    podcast = firestore_service.get(constants.PODCASTS, data["podcastId"])
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)

    existing = firestore_service.query(constants.GUEST_WISHLISTS, [
        ("guestId", "==", uid),
        ("podcastId", "==", data["podcastId"]),
    ], limit=1)
    if existing:
        return JsonResponse({"error": "already_in_wishlist"}, status=409)

    wishlist_id = firestore_service.create(constants.GUEST_WISHLISTS, {
        "guestId": uid,
        "podcastId": data["podcastId"],
        "podcastName": podcast.get("title"),
        "podcastImageUrl": podcast.get("coverImageUrl"),
        "offerAmount": offer,
        "topics": data["topics"],
        "message": data["message"],
        "status": constants.WISHLIST_PENDING,
        "createdAt": timezone.now(),
        "viewedByPodcast": False,
    })

    return JsonResponse({
        "success": True,
        "wishlistId": wishlist_id,
        "message": "Podcast added to your wishlist successfully",
    }, status=201)


def _own_guest_entry(uid: str, wishlist_id: str):
    """(entry, error_response) for a guest wishlist entry owned by uid."""
    entry = firestore_service.get(constants.GUEST_WISHLISTS, wishlist_id)
    if not entry:
        return None, JsonResponse({"error": "wishlist_entry_not_found"}, status=404)
    if entry.get("guestId") != uid:
        return None, JsonResponse({"error": "forbidden"}, status=403)
    return entry, None


@csrf_exempt
def guest_wishlist_update(request):
    if request.method != "PUT":
        return HttpResponseNotAllowed(["PUT"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "wishlistId")
    if missing:
        return missing

    entry, entry_error = _own_guest_entry(claims["uid"], data["wishlistId"])
    if entry_error:
        return entry_error

    updates = {"updatedAt": timezone.now()}
    if data.get("offerAmount") is not None:
        offer = to_number(data["offerAmount"])
        if offer is None or offer < 0:
            return JsonResponse({"error": "invalid_offer_amount"}, status=400)
        updates["offerAmount"] = offer
    if data.get("topics"):
        updates["topics"] = data["topics"]
    if data.get("message"):
        updates["message"] = data["message"]

    firestore_service.update(constants.GUEST_WISHLISTS, entry["id"], updates)
    return JsonResponse({"success": True, "message": "Wishlist entry updated successfully"})


@csrf_exempt
def guest_wishlist_remove(request):
    if request.method != "DELETE":
        return HttpResponseNotAllowed(["DELETE"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "wishlistId")
    if missing:
        return missing

    entry, entry_error = _own_guest_entry(claims["uid"], data["wishlistId"])
    if entry_error:
        return entry_error

    firestore_service.delete(constants.GUEST_WISHLISTS, entry["id"])
    return JsonResponse({"success": True, "message": "Podcast removed from wishlist"})


# =============================================================================
# Podcast side
# =============================================================================

def _owned_podcast(uid: str, podcast_id: str):
    """(podcast, error_response) for a podcast owned by uid."""
    podcast = firestore_service.get(constants.PODCASTS, podcast_id)
    if not podcast:
        return None, JsonResponse({"error": "podcast_not_found"}, status=404)
    if podcast.get("ownerId") != uid:
        return None, JsonResponse({"error": "forbidden"}, status=403)
    return podcast, None


@csrf_exempt
def podcast_wishlist(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    podcast_id = request.GET.get("podcastId")
    if not podcast_id:
        return JsonResponse({"error": "missing_fields", "required": ["podcastId"]}, status=400)

    podcast, podcast_error = _owned_podcast(claims["uid"], podcast_id)
    if podcast_error:
        return podcast_error

    wishlists = firestore_service.query(
        constants.PODCAST_WISHLISTS,
        [("podcastId", "==", podcast_id)],
        order_by="createdAt",
        descending=True,
    )
    return JsonResponse({"wishlists": serialize(wishlists)})


@csrf_exempt
def podcast_wishlist_add(request):
    """
    Add a guest to a podcast's wishlist. Unregistered guests with an email
    address get an invitation straight away.
    """
    logger.info(f"[WISHLIST/PODCAST/ADD] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "podcastId", "guestName", "budgetAmount", "notes")
    if missing:
        return missing

    budget = to_number(data["budgetAmount"])
    if budget is None or budget < 0:
        return JsonResponse({"error": "invalid_budget_amount"}, status=400)

    podcast, podcast_error = _owned_podcast(claims["uid"], data["podcastId"])
    if podcast_error:
        return podcast_error

    is_registered = bool(data.get("isRegistered"))
    guest_id = data.get("guestId") if is_registered else None
    guest_image = None

    if is_registered:
        if not guest_id:
            return JsonResponse({"error": "missing_fields", "required": ["guestId"]}, status=400)
        guest = firestore_service.get_user(guest_id)
        if not guest:
            return JsonResponse({"error": "guest_not_found"}, status=404)
        if not guest.get("isGuest"):
            return JsonResponse({"error": "not_a_guest"}, status=403)
        guest_image = guest.get("profileImageUrl")

        existing = firestore_service.query(constants.PODCAST_WISHLISTS, [
            ("podcastId", "==", podcast["id"]),
            ("guestId", "==", guest_id),
        ], limit=1)
        if existing:
            return JsonResponse({"error": "already_in_wishlist"}, status=409)

    guest_email = data.get("guestEmail")
    wishlist_id = firestore_service.create(constants.PODCAST_WISHLISTS, {
        "podcastId": podcast["id"],
        "podcastName": podcast.get("title"),
        "guestId": guest_id,
        "guestName": data["guestName"],
        "guestEmail": guest_email,
        "guestProfileImageUrl": guest_image,
        "budgetAmount": budget,
        "preferredTopics": data.get("preferredTopics") or [],
        "notes": data["notes"],
        "contactInfo": data.get("contactInfo"),
        "status": constants.WISHLIST_PENDING,
        "isRegistered": is_registered,
        "inviteSent": False,
        "createdAt": timezone.now(),
        "viewedByGuest": False,
    })

    invitation_sent = False
    if not is_registered and guest_email:
        try:
            send_guest_invite(
                podcast["id"],
                podcast["ownerId"],
                guest_email,
                data["guestName"],
                offered_amount=budget,
                message=data["notes"],
                preferred_topics=data.get("preferredTopics"),
                wishlist_entry_id=wishlist_id,
            )
            invitation_sent = True
        except InviteError as e:
            logger.warning(f"[WISHLIST/PODCAST/ADD] Invite to {guest_email} not sent: {e.code}")

    message = (
        "Guest added to your wishlist and invitation sent successfully"
        if invitation_sent
        else "Guest added to your wishlist successfully"
    )
    return JsonResponse({
        "success": True,
        "wishlistId": wishlist_id,
        "message": message,
        "invitationSent": invitation_sent,
    }, status=201)


def _own_podcast_entry(uid: str, wishlist_id: str):
    entry = firestore_service.get(constants.PODCAST_WISHLISTS, wishlist_id)
    if not entry:
        return None, JsonResponse({"error": "wishlist_entry_not_found"}, status=404)
    podcast, podcast_error = _owned_podcast(uid, entry.get("podcastId"))
    if podcast_error:
        return None, JsonResponse({"error": "forbidden"}, status=403)
    return entry, None


@csrf_exempt
def podcast_wishlist_update(request):
    if request.method != "PUT":
        return HttpResponseNotAllowed(["PUT"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "wishlistId")
    if missing:
        return missing

    entry, entry_error = _own_podcast_entry(claims["uid"], data["wishlistId"])
    if entry_error:
        return entry_error

    updates = {"updatedAt": timezone.now()}
    if "budgetAmount" in data:
        budget = to_number(data["budgetAmount"])
        if budget is None or budget < 0:
            return JsonResponse({"error": "invalid_budget_amount"}, status=400)
        updates["budgetAmount"] = budget
    for key in ("preferredTopics", "notes", "contactInfo"):
        if key in data:
            updates[key] = data[key]

    firestore_service.update(constants.PODCAST_WISHLISTS, entry["id"], updates)
    return JsonResponse({"success": True, "message": "Wishlist entry updated successfully"})


@csrf_exempt
def podcast_wishlist_remove(request):
    if request.method != "DELETE":
        return HttpResponseNotAllowed(["DELETE"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "wishlistId")
    if missing:
        return missing

    entry, entry_error = _own_podcast_entry(claims["uid"], data["wishlistId"])
    if entry_error:
        return entry_error

    firestore_service.delete(constants.PODCAST_WISHLISTS, entry["id"])
    return JsonResponse({"success": True, "message": "Guest removed from wishlist"})
