"""
Mutual wishlist matching and recommendations.
"""
import logging
from datetime import timedelta

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants, emails
from ..auth import authenticate, is_cron_request, require_admin
from ..errors import ServiceError
from ..firebase_service import firestore_service
from ..http import json_body, require_fields
from ..matching import compatibility, guest_popularity, match_score, reasons
from ..notifications import create_notification
from ..utils import app_url, serialize

logger = logging.getLogger("marketplace")


def _pending_wishlists():
    guest_entries = firestore_service.query(
        constants.GUEST_WISHLISTS, [("status", "==", constants.WISHLIST_PENDING)]
    )
    podcast_entries = firestore_service.query(constants.PODCAST_WISHLISTS, [
        ("status", "==", constants.WISHLIST_PENDING),
        ("isRegistered", "==", True),
    ])
    return guest_entries, podcast_entries


def _create_match(guest_entry: dict, podcast_entry: dict):
    """New match id for a mutual pair, or None when one already exists."""
    guest_id = guest_entry["guestId"]
    podcast_id = guest_entry["podcastId"]

    existing = firestore_service.query(constants.MATCHES, [
        ("guestId", "==", guest_id),
        ("podcastId", "==", podcast_id),
        ("status", "in", constants.OPEN_MATCH_STATUSES),
    ], limit=1)
    if existing:
        return None

    guest = firestore_service.get_user(guest_id)
    podcast = firestore_service.get(constants.PODCASTS, podcast_id)
    if not guest or not podcast:
        raise LookupError(f"Missing guest or podcast data for match between {guest_id} and {podcast_id}")

    result = match_score(guest_entry, podcast_entry, bool(guest.get("isVerifiedGuest")))
    now = timezone.now()
    guest_name = guest.get("displayName") or "Guest"
    podcast_name = podcast.get("title") or "Podcast"

    match_id = firestore_service.create(constants.MATCHES, {
        "guestId": guest_id,
        "guestName": guest_name,
        "guestImageUrl": guest.get("profileImageUrl"),
        "guestRate": guest.get("guestRate"),
        "guestTopics": guest.get("guestTopics"),
        "podcastId": podcast_id,
        "podcastName": podcast_name,
        "podcastImageUrl": podcast.get("coverImageUrl"),
        "podcastOwnerId": podcast.get("ownerId"),
        "guestWishlistId": guest_entry["id"],
        "podcastWishlistId": podcast_entry["id"],
        "guestOfferAmount": guest_entry.get("offerAmount") or 0,
        "podcastBudgetAmount": podcast_entry.get("budgetAmount") or 0,
        "compatibilityScore": result.score,
        "topicOverlap": result.topic_overlap,
        "budgetAlignment": result.budget_alignment,
        "status": constants.MATCH_ACTIVE,
        "matchedAt": now,
        "expiresAt": now + timedelta(days=constants.MATCH_EXPIRATION_DAYS),
        "createdAt": now,
    })

    firestore_service.batch_write([
        ("update", constants.GUEST_WISHLISTS, guest_entry["id"],
         {"status": constants.WISHLIST_MATCHED, "updatedAt": now}),
        ("update", constants.PODCAST_WISHLISTS, podcast_entry["id"],
         {"status": constants.WISHLIST_MATCHED, "updatedAt": now}),
    ])

    owner = firestore_service.get_user(podcast.get("ownerId"))
    if owner:
        emails.match_found(guest.get("email"), guest_name, podcast_name, podcast_name,
                           result.score, result.topic_overlap)
        emails.match_found(owner.get("email"), owner.get("displayName") or "there", guest_name, podcast_name,
                           result.score, result.topic_overlap)
        firestore_service.update(constants.MATCHES, match_id, {"notifiedAt": timezone.now()})

    for user_id, other_name in ((guest_id, podcast_name), (podcast.get("ownerId"), guest_name)):
        create_notification(
            user_id,
            "match_found",
            {"name": other_name},
            action_url=app_url(f"dashboard/matches/{match_id}"),
            metadata={"matchId": match_id},
        )

    logger.info(f"[MATCHING] Match {match_id}: guest {guest_id} / podcast {podcast_id} ({result.score})")
    return match_id


def run_matching():
    """Pair pending guest wishlists with registered podcast wishlists for the same guest and podcast."""
    guest_entries, podcast_entries = _pending_wishlists()
    new_matches, errors = [], []

    for guest_entry in guest_entries:
        pairs = [
            entry for entry in podcast_entries
            if entry.get("podcastId") == guest_entry.get("podcastId")
            and entry.get("guestId") == guest_entry.get("guestId")
        ]
        for podcast_entry in pairs:
            try:
                match_id = _create_match(guest_entry, podcast_entry)
            except (LookupError, ServiceError) as e:
                logger.error(f"[MATCHING] {e}")
                errors.append(str(e))
                continue
            if match_id:
                new_matches.append(match_id)

    return new_matches, errors


@csrf_exempt
def check_matches(request):
    """
    POST  run the matching pass (admin token or cron secret)
    GET   matching statistics (admin)
    """
    logger.info(f"[MATCHING/CHECK] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    if request.method == "GET" or not is_cron_request(request):
        claims, auth_error = require_admin(request)
        if auth_error:
            return auth_error

    if request.method == "GET":
        matches = firestore_service.query(constants.MATCHES)
        guest_entries, podcast_entries = _pending_wishlists()
        return JsonResponse({
            "success": True,
            "statistics": {
                "totalMatches": len(matches),
                "activeMatches": sum(1 for m in matches if m.get("status") == constants.MATCH_ACTIVE),
                "pendingGuestWishlists": len(guest_entries),
                "pendingPodcastWishlists": len(podcast_entries),
            },
        })

    new_matches, errors = run_matching()
    body = {
        "success": True,
        "message": f"Found {len(new_matches)} new matches",
        "matchIds": new_matches,
    }
    if errors:
        body["errors"] = errors
    return JsonResponse(body)


@csrf_exempt
def dismiss_match(request):
    logger.info(f"[MATCHING/DISMISS] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "matchId", "dismissedBy")
    if missing:
        return missing

    dismissed_by = data["dismissedBy"]
    if dismissed_by not in ("guest", "podcast"):
        return JsonResponse({"error": "invalid_dismissed_by", "allowed": ["guest", "podcast"]}, status=400)

    match = firestore_service.get(constants.MATCHES, data["matchId"])
    if not match:
        return JsonResponse({"error": "match_not_found"}, status=404)

    owner_field = "guestId" if dismissed_by == "guest" else "podcastOwnerId"
    if match.get(owner_field) != claims["uid"]:
        return JsonResponse({"error": "forbidden"}, status=403)

    now = timezone.now()
    firestore_service.update(constants.MATCHES, match["id"], {
        "status": (
            constants.MATCH_DISMISSED_BY_GUEST if dismissed_by == "guest" else constants.MATCH_DISMISSED_BY_PODCAST
        ),
        "dismissedAt": now,
        "dismissedBy": dismissed_by,
        "updatedAt": now,
    })
    return JsonResponse({"success": True, "message": "Match dismissed successfully"})


@csrf_exempt
def my_matches(request):
    """Open matches of the caller; first views are stamped on the match."""
    logger.info(f"[MATCHING/MINE] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    uid = claims["uid"]
    user = firestore_service.get_user(uid)
    if not user:
        return JsonResponse({"error": "user_not_found"}, status=404)

    is_guest = bool(user.get("isGuest"))
    owner_field = "guestId" if is_guest else "podcastOwnerId"
    viewed_field = "guestViewedAt" if is_guest else "podcastViewedAt"

    matches = firestore_service.query(
        constants.MATCHES,
        [(owner_field, "==", uid), ("status", "in", constants.OPEN_MATCH_STATUSES)],
        order_by="matchedAt",
        descending=True,
    )

    now = timezone.now()
    try:
        firestore_service.batch_write(
            ("update", constants.MATCHES, match["id"], {viewed_field: now})
            for match in matches
            if not match.get(viewed_field)
        )
    except ServiceError as e:
        logger.warning(f"[MATCHING/MINE] Could not stamp {viewed_field} for {uid}: {e}")

    return JsonResponse({
        "success": True,
        "matches": serialize(matches),
        "userType": "guest" if is_guest else "podcast",
    })


def _recommendation(uid: str, user_type: str, target_id: str, target_type: str, name: str,
                    image_url, result, verified: bool) -> dict:
    return {
        "targetUserId": uid,
        "targetUserType": user_type,
        "recommendedId": target_id,
        "recommendedType": target_type,
        "recommendedName": name,
        "recommendedImageUrl": image_url,
        "compatibilityScore": result.score,
        "reasons": reasons(result.topic_matches, result.budget_match, verified, True),
        "topicMatches": result.topic_matches,
        "budgetMatch": result.budget_match,
        "similarityFactors": result.factors(),
        "status": "active",
    }


def _podcasts_for_guest(uid: str, user: dict):
    guest_topics = user.get("guestTopics") or []
    guest_rate = float(user.get("guestRate") or 0)
    wishlisted = {
        entry.get("podcastId")
        for entry in firestore_service.query(constants.GUEST_WISHLISTS, [("guestId", "==", uid)])
    }

    out = []
    for podcast in firestore_service.query(constants.PODCASTS):
        if podcast["id"] in wishlisted or podcast.get("ownerId") == uid:
            continue
        result = compatibility(guest_topics, podcast.get("categories") or [], 0, guest_rate)
        if result.score < constants.MIN_RECOMMENDATION_SCORE:
            continue
        out.append(_recommendation(
            uid, "guest", podcast["id"], "podcast", podcast.get("title") or "Podcast",
            podcast.get("coverImageUrl"), result, False,
        ))
    return out


def _guests_for_podcast(uid: str):
    podcast = firestore_service.first_podcast_for_owner(uid)
    if not podcast:
        return []
    podcast_topics = podcast.get("categories") or []
    wishlisted = {
        entry.get("guestId")
        for entry in firestore_service.query(constants.PODCAST_WISHLISTS, [("podcastId", "==", podcast["id"])])
        if entry.get("guestId")
    }

    out = []
    for guest in firestore_service.query(constants.USERS, [("isGuest", "==", True)]):
        if guest["id"] in wishlisted or guest["id"] == uid:
            continue
        result = compatibility(
            podcast_topics,
            guest.get("guestTopics") or [],
            0,
            float(guest.get("guestRate") or 0),
            popularity=guest_popularity(guest),
        )
        if result.score < constants.MIN_RECOMMENDATION_SCORE:
            continue
        out.append(_recommendation(
            uid, "podcast", guest["id"], "guest", guest.get("displayName") or "Guest",
            guest.get("profileImageUrl"), result, bool(guest.get("isVerifiedGuest")),
        ))
    return out


@csrf_exempt
def recommendations(request):
    logger.info(f"[MATCHING/RECOMMENDATIONS] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    uid = claims["uid"]
    user = firestore_service.get_user(uid)
    if not user:
        return JsonResponse({"error": "user_not_found"}, status=404)

    is_guest = bool(user.get("isGuest"))
    has_podcast = bool(user.get("hasPodcast"))
    if not is_guest and not has_podcast:
        return JsonResponse({"error": "not_guest_or_podcaster"}, status=400)

    found = []
    if is_guest:
        found += _podcasts_for_guest(uid, user)
    if has_podcast:
        found += _guests_for_podcast(uid)

    found.sort(key=lambda item: item["compatibilityScore"], reverse=True)
    return JsonResponse({
        "success": True,
        "recommendations": found[:constants.RECOMMENDATION_LIMIT],
        "userType": "guest" if is_guest else "podcast",
    })
