import logging

from django.conf import settings
from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants
from ..auth import authenticate
from ..errors import FlutterwaveError
from ..firebase_service import firestore_service
from ..flutterwave_client import flutterwave_service
from ..http import json_body, require_fields
from ..utils import display_name

logger = logging.getLogger("marketplace")


@csrf_exempt
def flutterwave_banks(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    country = request.GET.get("country") or "NG"
    response = flutterwave_service.get_banks(country)
    if response.get("status") != "success":
        return JsonResponse({"error": "banks_unavailable", "details": response.get("message")}, status=500)

    return JsonResponse({"success": True, "banks": response.get("data") or []})


def _can_receive_payouts(uid: str, user: dict) -> bool:
    if user.get("role") == constants.ROLE_LEGEND or user.get("isGuest"):
        return True
    return firestore_service.first_podcast_for_owner(uid) is not None


@csrf_exempt
def flutterwave_subaccount(request):
    """
    GET   payout account status of the caller
    POST  verify a bank account and register it as a Flutterwave subaccount
    """
    logger.info(f"[FLUTTERWAVE/SUBACCOUNT] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    uid = claims["uid"]
    user = firestore_service.get_user(uid)
    if not user:
        return JsonResponse({"error": "user_not_found"}, status=404)

    if request.method == "GET":
        return JsonResponse({
            "hasSubaccount": bool(user.get("flutterwaveSubaccountId")),
            "bankAccountVerified": bool(user.get("bankAccountVerified")),
            "accountBank": user.get("flutterwaveAccountBank"),
            "accountNumber": user.get("flutterwaveAccountNumber"),
            "accountName": user.get("flutterwaveAccountName"),
        })

    if not _can_receive_payouts(uid, user):
        return JsonResponse({"error": "payouts_not_allowed"}, status=403)

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "accountBank", "accountNumber")
    if missing:
        return missing

    account_bank = str(data["accountBank"])
    account_number = str(data["accountNumber"])

    try:
        resolved = flutterwave_service.verify_bank_account(account_number, account_bank)
    except FlutterwaveError as e:
        return JsonResponse({"error": "bank_verification_failed", "details": e.message}, status=400)
    if resolved.get("status") != "success":
        return JsonResponse({
            "error": "bank_verification_failed",
            "details": resolved.get("message"),
        }, status=400)
    account_name = (resolved.get("data") or {}).get("account_name")

    split_value = round(1 - settings.PLATFORM_COMMISSION_RATE, 2)
    response = flutterwave_service.create_subaccount(
        account_bank,
        account_number,
        data.get("businessName") or account_name or display_name(user),
        user.get("email") or claims.get("email"),
        data.get("businessContact") or display_name(user),
        data.get("businessMobile") or user.get("phone") or "",
        constants.SUBACCOUNT_SPLIT_TYPE,
        split_value,
        country=data.get("country") or "NG",
    )
    if response.get("status") != "success":
        logger.error(f"[FLUTTERWAVE/SUBACCOUNT] Subaccount for {uid} rejected: {response.get('message')}")
        return JsonResponse({
            "error": "subaccount_creation_failed",
            "details": response.get("message"),
        }, status=400)

    subaccount = response.get("data") or {}
    firestore_service.update(constants.USERS, uid, {
        "flutterwaveSubaccountId": subaccount.get("subaccount_id") or subaccount.get("id"),
        "flutterwaveAccountBank": account_bank,
        "flutterwaveAccountNumber": account_number,
        "flutterwaveAccountName": account_name,
        "bankAccountVerified": True,
        "updatedAt": timezone.now(),
    })
    logger.info(f"[FLUTTERWAVE/SUBACCOUNT] Subaccount saved for {uid}")

    return JsonResponse({
        "success": True,
        "message": "Payment details saved successfully",
        "accountName": account_name,
    })
