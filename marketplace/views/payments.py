import logging
import os
import uuid

from django.conf import settings
from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants
from ..auth import authenticate
from ..collaborations import commission_split, seller_id_for, service_for
from ..errors import FlutterwaveError
from ..firebase_service import firestore_service
from ..flutterwave_client import flutterwave_service
from ..http import json_body, require_env, require_fields
from ..notifications import create_notification
from ..utils import display_name, to_number

logger = logging.getLogger("marketplace")

CHECKOUT_LOGO = "https://uvocollab.com/logo.png"


def _buyer_collaboration(uid: str, collaboration_id: str):
    collab = firestore_service.get(constants.COLLABORATIONS, collaboration_id)
    if not collab:
        return None, JsonResponse({"error": "collaboration_not_found"}, status=404)
    if collab.get("buyerId") != uid:
        return None, JsonResponse({"error": "forbidden"}, status=403)
    return collab, None


@csrf_exempt
def payment_initialize(request):
    """Checkout parameters for the Flutterwave inline widget."""
    logger.info(f"[PAYMENT/INIT] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    env_error = require_env("FLUTTERWAVE_PUBLIC_KEY")
    if env_error:
        return env_error

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "collaborationId")
    if missing:
        return missing

    collaboration_id = data["collaborationId"]
    collab, collab_error = _buyer_collaboration(claims["uid"], collaboration_id)
    if collab_error:
        return collab_error
    if collab.get("status") != constants.PENDING_PAYMENT:
        return JsonResponse({
            "error": "invalid_status",
            "currentStatus": collab.get("status"),
        }, status=400)

    buyer = firestore_service.get_user(claims["uid"]) or {}
    seller = firestore_service.get_user(seller_id_for(collab))
    service = service_for(collab) or {}

    tx_ref = f"UVOC-{collaboration_id}-{uuid.uuid4()}"
    firestore_service.update(constants.COLLABORATIONS, collaboration_id, {
        "pendingTxRef": tx_ref,
        "updatedAt": timezone.now(),
    })
    logger.info(f"[PAYMENT/INIT] {collaboration_id}: txRef {tx_ref}")

    return JsonResponse({
        "success": True,
        "publicKey": os.environ["FLUTTERWAVE_PUBLIC_KEY"],
        "txRef": tx_ref,
        "amount": collab.get("price"),
        "currency": constants.TRANSFER_CURRENCY,
        "customer": {
            "email": buyer.get("email") or claims.get("email"),
            "name": display_name(buyer, "Customer"),
        },
        "customizations": {
            "title": f"Collaboration with {display_name(seller, 'Seller')}",
            "description": f"Payment for {service.get('title') or 'service'}",
            "logo": CHECKOUT_LOGO,
        },
    })


@csrf_exempt
def payment_verify(request):
    """
    Confirm a Flutterwave transaction against the pending reference and the
    collaboration price, then hold the money in escrow.
    """
    logger.info(f"[PAYMENT/VERIFY] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "transactionId", "txRef", "collaborationId")
    if missing:
        return missing

    collaboration_id = data["collaborationId"]
    collab, collab_error = _buyer_collaboration(claims["uid"], collaboration_id)
    if collab_error:
        return collab_error
    if collab.get("status") != constants.PENDING_PAYMENT:
        return JsonResponse({
            "error": "invalid_status",
            "currentStatus": collab.get("status"),
        }, status=400)
    if collab.get("pendingTxRef") != data["txRef"]:
        return JsonResponse({"error": "transaction_reference_mismatch"}, status=400)

    try:
        verification = flutterwave_service.verify_transaction(data["transactionId"])
    except FlutterwaveError as e:
        logger.error(f"[PAYMENT/VERIFY] Verification of {data['transactionId']} failed: {e}")
        return JsonResponse({"error": "payment_verification_failed", "details": e.message}, status=400)

    if verification.get("status") != "success":
        return JsonResponse({
            "error": "payment_verification_failed",
            "details": verification.get("message"),
        }, status=400)

    transaction = verification.get("data") or {}
    price = to_number(collab.get("price"))
    if transaction.get("status") != "successful":
        return JsonResponse({"error": "payment_not_successful"}, status=400)
    if to_number(transaction.get("amount")) != price:
        return JsonResponse({"error": "payment_amount_mismatch"}, status=400)
    if transaction.get("tx_ref") != data["txRef"]:
        return JsonResponse({"error": "transaction_reference_mismatch"}, status=400)

    commission, seller_amount = commission_split(price)
    now = timezone.now()
    firestore_service.update(constants.COLLABORATIONS, collaboration_id, {
        "status": constants.AWAITING_CONTRACT,
        "paidAt": now,
        "transactionId": data["transactionId"],
        "txRef": data["txRef"],
        "platformCommission": commission,
        "legendAmount": seller_amount,
        "escrowStatus": constants.ESCROW_HELD,
        "pendingTxRef": None,
        "updatedAt": now,
    })
    logger.info(
        f"[PAYMENT/VERIFY] {collaboration_id}: {price} held "
        f"(commission {commission} at {settings.PLATFORM_COMMISSION_RATE})"
    )

    create_notification(
        seller_id_for(collab),
        "payment_received",
        {"amount": f"{price:,.2f}"},
        metadata={"collaborationId": collaboration_id},
    )

    return JsonResponse({
        "success": True,
        "message": "Payment verified successfully",
        "collaborationId": collaboration_id,
        "status": constants.AWAITING_CONTRACT,
    })
