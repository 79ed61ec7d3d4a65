import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants, emails
from ..auth import authenticate
from ..errors import RSSError, ServiceError
from ..firebase_service import firestore_service, subcollection
from ..http import json_body, require_fields
from ..rss import fetch_episodes, validate_rss_feed
from ..utils import clean, display_name, serialize, to_number

logger = logging.getLogger("marketplace")


@csrf_exempt
def podcast_submit(request):
    """Create an approved podcast owned by the caller and notify support."""
    logger.info(f"[PODCAST/SUBMIT] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    categories = data.get("categories")
    missing = require_fields(data, "title", "rssFeedUrl", "categories")
    if missing:
        return missing
    if not isinstance(categories, list):
        return JsonResponse({"error": "invalid_categories"}, status=400)

    uid = claims["uid"]
    now = timezone.now()
    podcast = {
        "ownerId": uid,
        "title": clean(data["title"]),
        "description": clean(data.get("description")) or None,
        "rssFeedUrl": clean(data["rssFeedUrl"]),
        "categories": categories,
        "coverImageUrl": data.get("coverImageUrl") or None,
        "avgListeners": data.get("avgListeners") or None,
        "websiteUrl": data.get("websiteUrl") or None,
        "status": "approved",
        "createdAt": now,
        "updatedAt": now,
    }
    podcast_id = firestore_service.create(constants.PODCASTS, podcast)
    logger.info(f"[PODCAST/SUBMIT] Created podcast {podcast_id} for {uid}")

    try:
        firestore_service.set(constants.USERS, uid, {"hasPodcast": True, "updatedAt": now}, merge=True)
    except ServiceError as e:
        logger.warning(f"[PODCAST/SUBMIT] Failed to flag user {uid}: {e}")

    emails.podcast_submitted(podcast["title"], claims.get("email"), podcast_id)

    return JsonResponse({
        "success": True,
        "podcastId": podcast_id,
        "message": "Podcast submitted successfully",
    }, status=201)


@csrf_exempt
def podcast_validate_rss(request):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    return JsonResponse(validate_rss_feed(data.get("url")))


@csrf_exempt
def podcast_detail(request, podcast_id: str):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    podcast = firestore_service.get(constants.PODCASTS, podcast_id)
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)

    return JsonResponse({"podcast": serialize(podcast)})


@csrf_exempt
def podcast_episodes(request, podcast_id: str):
    """Most recent episodes from the podcast's RSS feed."""
    logger.info(f"[PODCAST/EPISODES] {request.method} podcast={podcast_id}")

    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    podcast = firestore_service.get(constants.PODCASTS, podcast_id)
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)

    feed_url = podcast.get("rssFeedUrl")
    if not feed_url:
        return JsonResponse({"error": "rss_feed_not_configured"}, status=404)

    try:
        episodes = fetch_episodes(feed_url)
    except RSSError as e:
        return JsonResponse({
            "error": "rss_parse_failed",
            "details": e.details or e.message,
        }, status=500)

    return JsonResponse({"episodes": episodes})


@csrf_exempt
def podcast_claim(request, podcast_id: str):
    logger.info(f"[PODCAST/CLAIM] {request.method} podcast={podcast_id}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "evidence", "email")
    if missing:
        return missing

    podcast = firestore_service.get(constants.PODCASTS, podcast_id)
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)

    uid = claims["uid"]
    if podcast.get("ownerId") == uid:
        return JsonResponse({
            "error": "already_owner",
            "message": "You cannot claim a podcast you already own",
        }, status=400)

    pending = firestore_service.query(constants.CLAIMS, [
        ("podcastId", "==", podcast_id),
        ("claimantId", "==", uid),
        ("status", "==", "pending"),
    ])
    if pending:
        return JsonResponse({
            "error": "claim_pending",
            "message": "You have already submitted a claim for this podcast. Please wait for review.",
        }, status=400)

    claim_id = firestore_service.create(constants.CLAIMS, {
        "podcastId": podcast_id,
        "podcastTitle": podcast.get("title", ""),
        "claimantId": uid,
        "claimantEmail": data["email"],
        "evidence": data["evidence"],
        "status": "pending",
        "createdAt": timezone.now(),
    })

    return JsonResponse({
        "success": True,
        "claimId": claim_id,
        "message": "Claim submitted successfully. Our team will review your request and contact you via email.",
    })


@csrf_exempt
def podcast_report(request, podcast_id: str):
    logger.info(f"[PODCAST/REPORT] {request.method} podcast={podcast_id}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "reason", "description")
    if missing:
        return missing

    if data["reason"] not in constants.REPORT_REASONS:
        return JsonResponse({
            "error": "invalid_reason",
            "allowed": constants.REPORT_REASONS,
        }, status=400)

    podcast = firestore_service.get(constants.PODCASTS, podcast_id)
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)

    report_id = firestore_service.create(constants.REPORTS, {
        "podcastId": podcast_id,
        "podcastTitle": podcast.get("title", ""),
        "reportedBy": claims["uid"],
        "reporterEmail": claims.get("email", ""),
        "reason": data["reason"],
        "description": data["description"],
        "status": "pending",
        "createdAt": timezone.now(),
    })

    return JsonResponse({
        "success": True,
        "reportId": report_id,
        "message": "Report submitted successfully. Our team will review it shortly.",
    })


@csrf_exempt
def my_podcasts(request):
    """GET lists the caller's podcasts, PUT updates one of them."""
    logger.info(f"[PODCASTS/ME] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method not in ("GET", "PUT"):
        return HttpResponseNotAllowed(["GET", "PUT"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error
    uid = claims["uid"]

    if request.method == "GET":
        podcasts = firestore_service.podcasts_for_owner(uid)
        return JsonResponse({"podcasts": serialize(podcasts)})

    data, error = json_body(request)
    if error:
        return error

    podcast_id = data.get("podcastId")
    if not podcast_id:
        return JsonResponse({"error": "missing_fields", "required": ["podcastId"]}, status=400)

    podcast = firestore_service.get(constants.PODCASTS, podcast_id)
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)
    if podcast.get("ownerId") != uid:
        return JsonResponse({"error": "forbidden"}, status=403)

    updates = {key: data[key] for key in constants.PODCAST_UPDATABLE_FIELDS if key in data}
    updates["updatedAt"] = timezone.now()
    firestore_service.update(constants.PODCASTS, podcast_id, updates)

    return JsonResponse({"success": True})


@csrf_exempt
def podcast_pitches(request):
    """Pitches received by the caller's podcast, newest first."""
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    podcast = firestore_service.first_podcast_for_owner(claims["uid"])
    if not podcast:
        return JsonResponse({"pitches": []})

    podcast_id = podcast["id"]
    services_path = subcollection(constants.PODCASTS, podcast_id, constants.SERVICES)
    collaborations = firestore_service.query(
        constants.COLLABORATIONS,
        [("podcastId", "==", podcast_id), ("type", "==", constants.COLLABORATION_TYPE_PODCAST)],
        order_by="createdAt",
        descending=True,
    )

    pitches = []
    for collab in collaborations:
        buyer = firestore_service.get_user(collab.get("buyerId"))
        service = firestore_service.get(services_path, collab.get("serviceId")) or {}
        collab.update({
            "buyerName": display_name(buyer, "Unknown User") if buyer else "Unknown User",
            "buyerEmail": (buyer or {}).get("email", ""),
            "serviceTitle": service.get("title", "Unknown Service"),
            "serviceType": service.get("type", "guest_spot"),
        })
        pitches.append(collab)

    return JsonResponse({"pitches": serialize(pitches)})


@csrf_exempt
def podcast_services(request):
    """GET lists the owned podcast's services, POST adds one."""
    logger.info(f"[PODCASTS/SERVICES] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    podcast = firestore_service.first_podcast_for_owner(claims["uid"])
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)
    services_path = subcollection(constants.PODCASTS, podcast["id"], constants.SERVICES)

    if request.method == "GET":
        services = firestore_service.query(services_path, order_by="createdAt", descending=True)
        return JsonResponse({"services": serialize(services)})

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "title", "description", "price", "duration", "type")
    if missing:
        return missing

    price = to_number(data["price"])
    if price is None or price < 0:
        return JsonResponse({"error": "invalid_price"}, status=400)
    if data["type"] not in constants.PODCAST_SERVICE_TYPES:
        return JsonResponse({
            "error": "invalid_service_type",
            "allowed": constants.PODCAST_SERVICE_TYPES,
        }, status=400)

    now = timezone.now()
    service_id = firestore_service.create(services_path, {
        "podcastId": podcast["id"],
        "title": data["title"],
        "description": data["description"],
        "price": price,
        "duration": data["duration"],
        "type": data["type"],
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    })

    return JsonResponse({"success": True, "serviceId": service_id})


@csrf_exempt
def podcast_service_detail(request, service_id: str):
    """PUT updates, DELETE removes one of the owned podcast's services."""
    logger.info(f"[PODCASTS/SERVICES] {request.method} service={service_id}")

    if request.method not in ("PUT", "DELETE"):
        return HttpResponseNotAllowed(["PUT", "DELETE"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    podcast = firestore_service.first_podcast_for_owner(claims["uid"])
    if not podcast:
        return JsonResponse({"error": "podcast_not_found"}, status=404)

    services_path = subcollection(constants.PODCASTS, podcast["id"], constants.SERVICES)
    if not firestore_service.get(services_path, service_id):
        return JsonResponse({"error": "service_not_found"}, status=404)

    if request.method == "DELETE":
        firestore_service.delete(services_path, service_id)
        return JsonResponse({"success": True})

    data, error = json_body(request)
    if error:
        return error

    updates = {"updatedAt": timezone.now()}
    for key in ("title", "description", "duration", "type"):
        if data.get(key):
            updates[key] = data[key]
    if "price" in data:
        price = to_number(data["price"])
        if price is None or price < 0:
            return JsonResponse({"error": "invalid_price"}, status=400)
        updates["price"] = price
    if "isActive" in data:
        updates["isActive"] = bool(data["isActive"])

    firestore_service.update(services_path, service_id, updates)
    return JsonResponse({"success": True})
