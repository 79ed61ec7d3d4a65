import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants
from ..auth import authenticate
from ..firebase_service import firestore_service
from ..http import json_body, require_fields
from ..notifications import build_notification
from ..utils import parse_when, serialize

logger = logging.getLogger("marketplace")


def _list(uid: str, request):
    filters = [("userId", "==", uid)]
    if request.GET.get("unreadOnly") == "true":
        filters.append(("read", "==", False))
    try:
        limit = int(request.GET.get("limit") or constants.DEFAULT_NOTIFICATION_LIMIT)
    except ValueError:
        return JsonResponse({"error": "invalid_limit"}, status=400)

    now = timezone.now()
    found = firestore_service.query(
        constants.NOTIFICATIONS, filters, order_by="createdAt", descending=True, limit=max(limit, 1)
    )
    valid = [
        item for item in found
        if not item.get("expiresAt") or parse_when(item["expiresAt"]) > now
    ]
    return JsonResponse({"notifications": serialize(valid)})


def _create(uid: str, request):
    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "type", "title", "message")
    if missing:
        return missing

    expires_at = None
    if data.get("expiresAt"):
        expires_at = parse_when(data["expiresAt"])
        if expires_at is None:
            return JsonResponse({"error": "invalid_expires_at"}, status=400)

    notification_id = firestore_service.create(constants.NOTIFICATIONS, build_notification(
        uid,
        data["type"],
        data["title"],
        data["message"],
        action_url=data.get("actionUrl") or None,
        action_text=data.get("actionText") or None,
        expires_at=expires_at,
        metadata=data.get("metadata"),
    ))
    return JsonResponse({"success": True, "notificationId": notification_id}, status=201)


def _mark_read(uid: str, request):
    data, error = json_body(request)
    if error:
        return error

    ids = data.get("notificationIds")
    if isinstance(ids, list):
        ids = [item for item in ids if isinstance(item, str) and item]
    if not isinstance(ids, list) or not ids:
        return JsonResponse({"error": "notification_ids_required"}, status=400)

    owned = []
    for notification_id in ids:
        item = firestore_service.get(constants.NOTIFICATIONS, notification_id)
        if item and item.get("userId") == uid:
            owned.append(notification_id)

    updated = firestore_service.batch_write(
        ("update", constants.NOTIFICATIONS, notification_id, {"read": True})
        for notification_id in owned
    )
    return JsonResponse({"success": True, "updatedCount": updated})


def _mark_all_read(uid: str):
    unread = firestore_service.query(constants.NOTIFICATIONS, [
        ("userId", "==", uid),
        ("read", "==", False),
    ])
    updated = firestore_service.batch_write(
        ("update", constants.NOTIFICATIONS, item["id"], {"read": True})
        for item in unread
    )
    return JsonResponse({"success": True, "updatedCount": updated})


@csrf_exempt
def notifications(request):
    """
    GET     notifications of the caller (?unreadOnly=true, ?limit=N)
    POST    create a notification for the caller
    PATCH   mark the given notificationIds read
    DELETE  mark every unread notification read
    """
    if request.method not in ("GET", "POST", "PATCH", "DELETE"):
        return HttpResponseNotAllowed(["GET", "POST", "PATCH", "DELETE"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    uid = claims["uid"]
    if request.method == "GET":
        return _list(uid, request)
    if request.method == "POST":
        return _create(uid, request)
    if request.method == "PATCH":
        return _mark_read(uid, request)
    return _mark_all_read(uid)
