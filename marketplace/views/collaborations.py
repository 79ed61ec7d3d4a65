import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants, emails
from ..auth import authenticate
from ..collaborations import (
    PayoutError, check_payout_ready, is_party, other_party_id, podcast_owner_id, release_payout, seller_id_for,
)
from ..errors import ServiceError
from ..firebase_service import firestore_service, subcollection
from ..http import json_body, require_fields
from ..notifications import create_notification
from ..utils import app_url, display_name, serialize, to_number

logger = logging.getLogger("marketplace")


@csrf_exempt
def guest_initiate(request):
    """
    Propose a guest appearance between a guest and a podcast.

    Either side may initiate. The buyer and payment direction follow from who
    initiated and whether the price is zero.
    """
    logger.info(f"[COLLAB/GUEST] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "guestId", "podcastId", "serviceId")
    if missing:
        return missing

    price = to_number(data.get("price"))
    if price is None or price < 0:
        return JsonResponse({"error": "invalid_price"}, status=400)

    agreed_topics = data.get("agreedTopics") or []
    proposed_topics = data.get("proposedTopics") or []
    if not agreed_topics and not proposed_topics:
        return JsonResponse({"error": "topics_required"}, status=400)

    uid = claims["uid"]
    guest_id = data["guestId"]
    podcast_id = data["podcastId"]

    guest = firestore_service.get_user(guest_id)
    if not guest:
        return JsonResponse({"error": "guest_not_found"}, status=404)
    if not guest.get("isGuest"):
        return JsonResponse({"error": "not_a_guest"}, status=400)

    podcast = firestore_service.get(constants.PODCASTS, podcast_id)
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)
    owner_id = podcast.get("ownerId")
    if not owner_id:
        return JsonResponse({"error": "podcast_owner_not_found"}, status=404)

    if uid not in (guest_id, owner_id):
        return JsonResponse({"error": "forbidden"}, status=403)

    service = firestore_service.get(
        subcollection(constants.PODCASTS, podcast_id, constants.SERVICES), data["serviceId"]
    )
    if not service:
        return JsonResponse({"error": "service_not_found"}, status=404)
    if not service.get("isActive"):
        return JsonResponse({"error": "service_unavailable"}, status=400)

    if price == 0:
        buyer_id, payment_direction = uid, "free"
    elif uid == guest_id:
        buyer_id, payment_direction = guest_id, "guest_pays_podcast"
    else:
        buyer_id, payment_direction = owner_id, "podcast_pays_guest"

    existing = firestore_service.query(constants.COLLABORATIONS, [
        ("type", "==", constants.COLLABORATION_TYPE_GUEST),
        ("guestId", "==", guest_id),
        ("podcastId", "==", podcast_id),
        ("status", "in", constants.ACTIVE_COLLABORATION_STATUSES),
    ], limit=1)
    if existing:
        return JsonResponse({
            "error": "collaboration_exists",
            "collaborationId": existing[0]["id"],
        }, status=400)

    now = timezone.now()
    message = data.get("message") or ""
    collaboration = {
        "type": constants.COLLABORATION_TYPE_GUEST,
        "buyerId": buyer_id,
        "guestId": guest_id,
        "podcastId": podcast_id,
        "serviceId": data["serviceId"],
        "price": price,
        "status": constants.PENDING_AGREEMENT,
        "paymentDirection": payment_direction,
        "initiatedBy": uid,
        "agreedTopics": agreed_topics,
        "proposedTopics": proposed_topics,
        "proposedDates": data.get("proposedDates") or [],
        "message": message,
        "negotiationHistory": [],
        "createdAt": now,
        "updatedAt": now,
    }
    if message:
        collaboration["negotiationHistory"] = [{
            "userId": uid,
            "action": "proposed",
            "message": message,
            "price": price,
            "timestamp": now,
        }]

    collaboration_id = firestore_service.create(constants.COLLABORATIONS, collaboration)
    logger.info(f"[COLLAB/GUEST] {collaboration_id}: guest {guest_id} / podcast {podcast_id} ({payment_direction})")

    recipient_id = owner_id if uid == guest_id else guest_id
    recipient = firestore_service.get_user(recipient_id)
    initiator = guest if uid == guest_id else firestore_service.get_user(uid)
    initiator_name = display_name(initiator, "Someone")
    if recipient:
        emails.collaboration_proposal(
            recipient.get("email"),
            initiator_name,
            podcast.get("title") or "your podcast",
            price,
            payment_direction,
            collaboration_id,
        )
    create_notification(
        recipient_id,
        "collaboration_proposal",
        {"name": initiator_name},
        action_url=app_url(f"collaboration/{collaboration_id}"),
        metadata={"collaborationId": collaboration_id},
    )

    try:
        matches = firestore_service.query(constants.MATCHES, [
            ("guestId", "==", guest_id),
            ("podcastId", "==", podcast_id),
            ("status", "==", constants.MATCH_ACTIVE),
        ])
        firestore_service.batch_write(
            ("update", constants.MATCHES, match["id"], {
                "status": constants.MATCH_COLLABORATION_STARTED,
                "collaborationId": collaboration_id,
                "updatedAt": now,
            })
            for match in matches
        )
    except ServiceError as e:
        logger.warning(f"[COLLAB/GUEST] Could not update matches for {collaboration_id}: {e}")

    return JsonResponse({
        "success": True,
        "collaborationId": collaboration_id,
        "paymentDirection": payment_direction,
        "message": "Collaboration proposal sent successfully",
    })


def _buyer_collaboration(uid: str, collaboration_id: str):
    """(collab, error_response) for a collaboration the caller bought."""
    collab = firestore_service.get(constants.COLLABORATIONS, collaboration_id)
    if not collab:
        return None, JsonResponse({"error": "collaboration_not_found"}, status=404)
    if collab.get("buyerId") != uid:
        return None, JsonResponse({"error": "forbidden"}, status=403)
    return collab, None


def _payout(request, tag: str):
    logger.info(f"[{tag}] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return None, HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return None, auth_error

    data, error = json_body(request)
    if error:
        return None, error

    missing = require_fields(data, "collaborationId")
    if missing:
        return None, missing

    collab, collab_error = _buyer_collaboration(claims["uid"], data["collaborationId"])
    if collab_error:
        return None, collab_error

    try:
        return release_payout(collab), None
    except PayoutError as e:
        return None, JsonResponse({"error": "payout_failed", "message": e.message}, status=e.status)


@csrf_exempt
def trigger_payout(request):
    """Buyer releases escrow for an in-progress collaboration with deliverables."""
    result, error_response = _payout(request, "COLLAB/PAYOUT")
    if error_response:
        return error_response
    return JsonResponse({
        "success": True,
        "message": "Payout initiated successfully",
        "data": result.as_dict(),
    })


@csrf_exempt
def mark_complete(request):
    result, error_response = _payout(request, "COLLAB/COMPLETE")
    if error_response:
        return error_response
    return JsonResponse({
        "success": True,
        "message": "Project marked as complete and payout initiated successfully.",
        "payout": result.as_dict(),
    })


def _feedback_recipient(collab: dict, uid: str):
    if collab.get("type") == constants.COLLABORATION_TYPE_GUEST:
        if uid == collab.get("guestId"):
            return other_party_id(collab, uid)
        if uid in (collab.get("buyerId"), podcast_owner_id(collab)):
            return collab.get("guestId")
        return None
    if uid == collab.get("buyerId"):
        return seller_id_for(collab)
    if uid == seller_id_for(collab):
        return collab.get("buyerId")
    return None


def refresh_feedback_stats(user_id: str) -> None:
    """Recompute feedbackStats on a user from their public feedback."""
    feedback = firestore_service.query(constants.FEEDBACK, [
        ("toUserId", "==", user_id),
        ("isPublic", "==", True),
    ])
    if not feedback:
        return

    total = len(feedback)
    average = sum(item.get("rating", 0) for item in feedback) / total
    again = sum(1 for item in feedback if item.get("wouldCollaborateAgain"))
    firestore_service.set(constants.USERS, user_id, {
        "feedbackStats": {
            "averageRating": round(average, 2),
            "totalReviews": total,
            "wouldCollaborateAgainPercentage": round(again / total * 100, 1),
        },
    }, merge=True)


@csrf_exempt
def feedback(request):
    """
    GET  ?collaborationId= | ?fromMe=1 | ?toUserId=   list feedback
    POST                                             rate the other party
    """
    logger.info(f"[COLLAB/FEEDBACK] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error
    uid = claims["uid"]

    if request.method == "GET":
        if request.GET.get("collaborationId"):
            filters = [("collaborationId", "==", request.GET["collaborationId"])]
        elif request.GET.get("toUserId"):
            filters = [("toUserId", "==", request.GET["toUserId"]), ("isPublic", "==", True)]
        elif request.GET.get("fromMe"):
            filters = [("fromUserId", "==", uid)]
        else:
            return JsonResponse({
                "error": "missing_query",
                "required": ["collaborationId", "toUserId", "fromMe"],
            }, status=400)
        return JsonResponse({"feedback": serialize(firestore_service.query(constants.FEEDBACK, filters))})

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "collaborationId", "rating")
    if missing:
        return missing
    if "wouldCollaborateAgain" not in data:
        return JsonResponse({"error": "missing_fields", "required": ["wouldCollaborateAgain"]}, status=400)

    rating = to_number(data["rating"])
    if rating is None or not 1 <= rating <= 5:
        return JsonResponse({"error": "invalid_rating"}, status=400)

    collaboration_id = data["collaborationId"]
    collab = firestore_service.get(constants.COLLABORATIONS, collaboration_id)
    if not collab:
        return JsonResponse({"error": "collaboration_not_found"}, status=404)
    if collab.get("status") != constants.COMPLETED:
        return JsonResponse({"error": "collaboration_not_completed"}, status=400)

    to_user_id = _feedback_recipient(collab, uid)
    if not to_user_id:
        return JsonResponse({"error": "forbidden"}, status=403)

    feedback_id = f"{collaboration_id}_{uid}_{to_user_id}"
    if firestore_service.get(constants.FEEDBACK, feedback_id):
        return JsonResponse({"error": "feedback_exists"}, status=409)

    now = timezone.now()
    firestore_service.set(constants.FEEDBACK, feedback_id, {
        "collaborationId": collaboration_id,
        "fromUserId": uid,
        "toUserId": to_user_id,
        "rating": rating,
        "review": data.get("review") or "",
        "wouldCollaborateAgain": bool(data["wouldCollaborateAgain"]),
        "isPublic": data.get("isPublic") is not False,
        "createdAt": now,
        "updatedAt": now,
    })

    try:
        refresh_feedback_stats(to_user_id)
    except ServiceError as e:
        logger.warning(f"[COLLAB/FEEDBACK] Stats refresh for {to_user_id} failed: {e}")

    create_notification(
        to_user_id,
        "feedback_received",
        {"name": display_name(firestore_service.get_user(uid), "Someone")},
        metadata={"collaborationId": collaboration_id},
    )

    return JsonResponse({
        "success": True,
        "message": "Feedback submitted successfully",
        "feedbackId": feedback_id,
    })


@csrf_exempt
def collaboration_detail(request, collaboration_id: str):
    """A collaboration as seen by one of its parties."""
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    collab = firestore_service.get(constants.COLLABORATIONS, collaboration_id)
    if not collab:
        return JsonResponse({"error": "collaboration_not_found"}, status=404)
    if not is_party(collab, claims["uid"]) and not firestore_service.is_admin(claims["uid"]):
        return JsonResponse({"error": "forbidden"}, status=403)

    collab.pop("pendingTxRef", None)
    try:
        check_payout_ready(collab)
        collab["canRelease"] = collab.get("buyerId") == claims["uid"]
    except PayoutError:
        collab["canRelease"] = False
    return JsonResponse({"collaboration": serialize(collab)})
