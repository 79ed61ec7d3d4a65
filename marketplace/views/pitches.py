import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants, emails
from ..auth import authenticate
from ..collaborations import service_for
from ..firebase_service import firestore_service, subcollection
from ..http import json_body, require_fields
from ..utils import clean, display_name, to_number

logger = logging.getLogger("marketplace")

# service type -> fields a podcast pitch must carry
PODCAST_PITCH_FIELDS = {
    "guest_spot": ["topicProposal", "guestBio", "previousMediaUrl", "proposedDates"],
    "other": ["topicProposal", "guestBio", "previousMediaUrl", "proposedDates"],
    "cross_promotion": ["crossPromoPodcastId", "crossPromoMessage"],
    "ad_read": ["adProductName", "adProductDescription"],
}


@csrf_exempt
def submit_pitch(request):
    """Pitch a legend's service. The caller becomes the buyer."""
    logger.info(f"[PITCH/SUBMIT] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "legendId", "serviceId", "price", "pitchMessage", "pitchBestWorkUrl")
    if missing:
        return missing

    buyer_id = claims["uid"]
    legend_id = data["legendId"]
    pitch_message = clean(data["pitchMessage"])
    price = to_number(data["price"])

    if len(pitch_message) < constants.MIN_PITCH_MESSAGE_LENGTH:
        return JsonResponse({
            "error": "pitch_message_too_short",
            "minLength": constants.MIN_PITCH_MESSAGE_LENGTH,
        }, status=400)
    if price is None or price <= 0:
        return JsonResponse({"error": "invalid_price"}, status=400)
    if buyer_id == legend_id:
        return JsonResponse({"error": "cannot_pitch_self"}, status=400)

    legend = firestore_service.get_user(legend_id)
    if not legend:
        return JsonResponse({"error": "legend_not_found"}, status=404)
    if legend.get("role") != constants.ROLE_LEGEND:
        return JsonResponse({"error": "not_a_legend"}, status=400)

    service = firestore_service.get(
        subcollection(constants.USERS, legend_id, constants.SERVICES), data["serviceId"]
    )
    if not service:
        return JsonResponse({"error": "service_not_found"}, status=404)
    if not service.get("isActive"):
        return JsonResponse({"error": "service_unavailable"}, status=400)
    if to_number(service.get("price")) != price:
        return JsonResponse({
            "error": "price_changed",
            "message": "Service price has changed. Please refresh and try again.",
        }, status=400)

    now = timezone.now()
    collaboration_id = firestore_service.create(constants.COLLABORATIONS, {
        "buyerId": buyer_id,
        "legendId": legend_id,
        "serviceId": data["serviceId"],
        "price": price,
        "status": constants.PENDING_REVIEW,
        "pitchDemoUrl": data.get("pitchDemoUrl") or None,
        "pitchMessage": pitch_message,
        "pitchBestWorkUrl": clean(data["pitchBestWorkUrl"]),
        "contractUrl": None,
        "createdAt": now,
        "updatedAt": now,
    })
    logger.info(f"[PITCH/SUBMIT] Collaboration {collaboration_id}: {buyer_id} -> legend {legend_id}")

    return JsonResponse({
        "success": True,
        "collaborationId": collaboration_id,
        "message": "Pitch submitted successfully",
    })


@csrf_exempt
def submit_podcast_pitch(request):
    """Pitch one of an approved podcast's services."""
    logger.info(f"[PITCH/PODCAST] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "podcastId", "serviceId", "price")
    if missing:
        return missing

    buyer_id = claims["uid"]
    price = to_number(data["price"])
    if price is None or price < 0:
        return JsonResponse({"error": "invalid_price"}, status=400)

    podcast = firestore_service.get(constants.PODCASTS, data["podcastId"])
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)
    if podcast.get("status") != "approved":
        return JsonResponse({"error": "podcast_not_accepting"}, status=400)
    if podcast.get("ownerId") == buyer_id:
        return JsonResponse({"error": "cannot_pitch_own_podcast"}, status=400)

    service = firestore_service.get(
        subcollection(constants.PODCASTS, podcast["id"], constants.SERVICES), data["serviceId"]
    )
    if not service:
        return JsonResponse({"error": "service_not_found"}, status=404)
    if to_number(service.get("price")) != price:
        return JsonResponse({
            "error": "price_changed",
            "message": "Service price has changed. Please refresh and try again.",
        }, status=400)

    service_type = service.get("type") or "guest_spot"
    required = PODCAST_PITCH_FIELDS.get(service_type, [])
    missing = require_fields(data, *required) if required else None
    if missing:
        return missing

    now = timezone.now()
    collaboration = {
        "type": constants.COLLABORATION_TYPE_PODCAST,
        "buyerId": buyer_id,
        "podcastId": podcast["id"],
        "serviceId": data["serviceId"],
        "price": price,
        "status": constants.PENDING_REVIEW,
        "contractUrl": None,
        "createdAt": now,
        "updatedAt": now,
    }
    if service_type in ("guest_spot", "other"):
        collaboration.update({
            "topicProposal": clean(data["topicProposal"]),
            "guestBio": clean(data["guestBio"]),
            "previousMediaUrl": clean(data["previousMediaUrl"]),
            "pitchBestWorkUrl": clean(data["previousMediaUrl"]),
            "proposedDates": clean(data["proposedDates"]),
            "pressKitUrl": data.get("pressKitUrl") or None,
        })
    elif service_type == "cross_promotion":
        collaboration.update({
            "crossPromoPodcastId": data["crossPromoPodcastId"],
            "crossPromoMessage": clean(data["crossPromoMessage"]),
        })
    elif service_type == "ad_read":
        collaboration.update({
            "adProductName": clean(data["adProductName"]),
            "adProductDescription": clean(data["adProductDescription"]),
            "adTargetAudience": clean(data.get("adTargetAudience")),
            "adProductUrl": clean(data.get("adProductUrl")),
        })

    collaboration_id = firestore_service.create(constants.COLLABORATIONS, collaboration)
    logger.info(f"[PITCH/PODCAST] Collaboration {collaboration_id} for podcast {podcast['id']}")

    buyer = firestore_service.get_user(buyer_id)
    owner = firestore_service.get_user(podcast.get("ownerId"))
    if owner and owner.get("email"):
        emails.pitch_received(
            owner["email"],
            display_name(buyer, "A guest"),
            podcast.get("title", ""),
            service.get("title", ""),
            collaboration_id,
        )

    return JsonResponse({
        "success": True,
        "collaborationId": collaboration_id,
        "message": "Pitch submitted successfully",
    })


@csrf_exempt
def respond_to_pitch(request):
    """Seller accepts (-> pending_payment) or declines a pending pitch."""
    logger.info(f"[PITCH/RESPOND] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "collaborationId", "action")
    if missing:
        return missing

    action = data["action"]
    if action not in ("accept", "decline"):
        return JsonResponse({"error": "invalid_action", "allowed": ["accept", "decline"]}, status=400)

    collaboration_id = data["collaborationId"]
    collab = firestore_service.get(constants.COLLABORATIONS, collaboration_id)
    if not collab:
        return JsonResponse({"error": "collaboration_not_found"}, status=404)

    uid = claims["uid"]
    if collab.get("type") == constants.COLLABORATION_TYPE_PODCAST:
        podcast = firestore_service.get(constants.PODCASTS, collab.get("podcastId"))
        if not podcast:
            return JsonResponse({"error": "podcast_not_found"}, status=404)
        if podcast.get("ownerId") != uid:
            return JsonResponse({"error": "forbidden"}, status=403)
        seller_name = podcast.get("title") or "Podcast"
        buyer_default = "Guest"
    else:
        if collab.get("legendId") != uid:
            return JsonResponse({"error": "forbidden"}, status=403)
        seller_name = display_name(firestore_service.get_user(uid), "Legend")
        buyer_default = "Artist"

    if collab.get("status") != constants.PENDING_REVIEW:
        return JsonResponse({
            "error": "invalid_status",
            "currentStatus": collab.get("status"),
        }, status=400)

    buyer = firestore_service.get_user(collab.get("buyerId"))
    if not buyer:
        return JsonResponse({"error": "buyer_not_found"}, status=404)

    service_title = (service_for(collab) or {}).get("title") or "Service"
    now = timezone.now()

    if action == "decline":
        firestore_service.update(constants.COLLABORATIONS, collaboration_id, {
            "status": constants.DECLINED,
            "updatedAt": now,
        })
        emails.pitch_declined(
            buyer.get("email"), display_name(buyer, buyer_default), seller_name, service_title
        )
        logger.info(f"[PITCH/RESPOND] {collaboration_id} declined by {uid}")
        return JsonResponse({"success": True, "message": "Pitch declined successfully"})

    firestore_service.update(constants.COLLABORATIONS, collaboration_id, {
        "status": constants.PENDING_PAYMENT,
        "acceptedAt": now,
        "updatedAt": now,
    })
    emails.pitch_accepted(
        buyer.get("email"),
        display_name(buyer, buyer_default),
        seller_name,
        service_title,
        collab.get("price"),
        collaboration_id,
    )
    logger.info(f"[PITCH/RESPOND] {collaboration_id} accepted by {uid}")
    return JsonResponse({"success": True, "message": "Pitch accepted successfully"})
