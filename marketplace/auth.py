import hmac
import logging
from typing import Optional, Tuple

from django.conf import settings
from django.http import JsonResponse

from .firebase_service import firestore_service, verify_id_token

logger = logging.getLogger("marketplace")

BEARER_PREFIX = "Bearer "


def bearer_token(request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


def authenticate(request) -> Tuple[dict, JsonResponse]:
    """
    Verify the Firebase ID token in the Authorization header.

    Returns (claims, None) on success or (None, 401 response).
    """
    token = bearer_token(request)
    if not token:
        return None, JsonResponse({"error": "unauthorized"}, status=401)

    claims = verify_id_token(token)
    if not claims or not claims.get("uid"):
        return None, JsonResponse({"error": "invalid_token"}, status=401)
    return claims, None


def require_admin(request) -> Tuple[dict, JsonResponse]:
    claims, error = authenticate(request)
    if error:
        return None, error
    if not firestore_service.is_admin(claims["uid"]):
        logger.warning(f"[AUTH] Admin access denied for uid={claims['uid']}")
        return None, JsonResponse({"error": "admin_required"}, status=403)
    return claims, None


def is_cron_request(request) -> bool:
    secret = settings.CRON_SECRET
    token = bearer_token(request)
    if not secret or not token:
        return False
    return hmac.compare_digest(token, secret)
