import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants
from ..auth import authenticate
from ..firebase_service import firestore_service
from ..http import json_body, require_fields
from ..utils import clean

logger = logging.getLogger("marketplace")

OPTIONAL_LINKS = ("instagramLink", "twitterLink", "pressLinks", "referralFrom")


@csrf_exempt
def legend_application(request):
    """An artist applies to become a legend; the user becomes a legend applicant."""
    logger.info(f"[LEGEND/APPLY] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    email = claims.get("email")
    if not email:
        return JsonResponse({"error": "email_not_in_token"}, status=400)

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "artistName", "phone", "spotifyLink", "bio")
    if missing:
        return missing

    bio = clean(data["bio"])
    if len(bio) < constants.MIN_LEGEND_BIO_LENGTH:
        return JsonResponse({
            "error": "bio_too_short",
            "minLength": constants.MIN_LEGEND_BIO_LENGTH,
        }, status=400)

    uid = claims["uid"]
    now = timezone.now()
    profile = {
        "role": constants.ROLE_LEGEND_APPLICANT,
        "displayName": clean(data["artistName"]),
        "bio": bio,
        "updatedAt": now,
    }
    if data.get("managementName") or data.get("managementEmail"):
        profile["managementInfo"] = (
            f"{data.get('managementName') or 'N/A'} - {data.get('managementEmail') or 'N/A'}"
        )
    firestore_service.update(constants.USERS, uid, profile)

    application = {
        "artistName": clean(data["artistName"]),
        "email": email,
        "phone": data["phone"],
        "managementName": data.get("managementName"),
        "managementEmail": data.get("managementEmail"),
        "spotifyLink": data["spotifyLink"],
        "bio": bio,
    }
    for key in OPTIONAL_LINKS:
        application[key] = data.get(key) or None

    application_id = firestore_service.create(constants.LEGEND_APPLICATIONS, {
        "applicantUid": uid,
        "status": "pending",
        "applicationData": application,
        "submittedAt": now,
    })
    logger.info(f"[LEGEND/APPLY] Application {application_id} from {uid}")

    return JsonResponse({
        "success": True,
        "message": "Application submitted successfully",
        "applicationId": application_id,
    }, status=201)
