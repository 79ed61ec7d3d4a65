import logging
from datetime import timedelta

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants, emails
from ..auth import authenticate
from ..collaborations import seller_id_for, service_for
from ..contracts import ContractData, generate_contract_pdf, generate_guest_release_pdf
from ..docusign_client import Signer, docusign_service
from ..firebase_service import firestore_service, upload_pdf
from ..http import json_body, require_fields
from ..notifications import create_notification
from ..utils import display_name

logger = logging.getLogger("marketplace")

UNSIGNED_URL_TTL = timedelta(days=7)
SIGNED_URL_TTL = timedelta(days=3650)


def _contract_path(collaboration_id: str, name: str) -> str:
    return f"contracts/{collaboration_id}/{name}.pdf"


@csrf_exempt
def contract_generate(request):
    """
    Build the agreement PDF for a paid collaboration, keep an unsigned copy in
    Storage and send it to both parties through DocuSign.
    """
    logger.info(f"[CONTRACT/GENERATE] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

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
    collab = firestore_service.get(constants.COLLABORATIONS, collaboration_id)
    if not collab:
        return JsonResponse({"error": "collaboration_not_found"}, status=404)
    if collab.get("status") != constants.AWAITING_CONTRACT:
        return JsonResponse({
            "error": "invalid_status",
            "expected": constants.AWAITING_CONTRACT,
            "currentStatus": collab.get("status"),
        }, status=400)

    uid = claims["uid"]
    seller_id = seller_id_for(collab)
    if uid not in (collab.get("buyerId"), seller_id) and not firestore_service.is_admin(uid):
        return JsonResponse({"error": "forbidden"}, status=403)

    buyer = firestore_service.get_user(collab.get("buyerId"))
    if not buyer:
        return JsonResponse({"error": "buyer_not_found"}, status=404)
    seller = firestore_service.get_user(seller_id)
    if not seller:
        return JsonResponse({"error": "seller_not_found"}, status=404)
    service = service_for(collab)
    if not service:
        return JsonResponse({"error": "service_not_found"}, status=404)

    contract = ContractData(
        buyer_name=display_name(buyer),
        buyer_email=buyer.get("email"),
        seller_name=display_name(seller),
        seller_email=seller.get("email"),
        service_description=service.get("description") or service.get("title") or "",
        price=float(collab.get("price") or 0),
        collaboration_id=collaboration_id,
        created_date=timezone.now().strftime("%B %d, %Y").replace(" 0", " "),
        type=collab.get("type") or "",
    )
    service_title = service.get("title") or "Service"
    if collab.get("type") == constants.COLLABORATION_TYPE_PODCAST:
        pdf = generate_guest_release_pdf(contract)
        subject = f"UvoCollab Guest Release Form - {service_title}"
        file_name = f"UvoCollab_Guest_Release_{collaboration_id}.pdf"
    else:
        pdf = generate_contract_pdf(contract)
        subject = f"UvoCollab Collaboration Agreement - {service_title}"
        file_name = f"UvoCollab_Contract_{collaboration_id}.pdf"

    unsigned_url = upload_pdf(
        _contract_path(collaboration_id, "unsigned_contract"),
        pdf,
        {"collaborationId": collaboration_id, "generatedAt": timezone.now().isoformat()},
        UNSIGNED_URL_TTL,
    )

    envelope_id = docusign_service.send_contract_for_signature(
        pdf,
        file_name,
        subject,
        [
            Signer(contract.buyer_name, contract.buyer_email, "1"),
            Signer(contract.seller_name, contract.seller_email, "2"),
        ],
        collaboration_id,
    )

    now = timezone.now()
    firestore_service.update(constants.COLLABORATIONS, collaboration_id, {
        "docusignEnvelopeId": envelope_id,
        "contractSentAt": now,
        "updatedAt": now,
    })
    logger.info(f"[CONTRACT/GENERATE] {collaboration_id}: envelope {envelope_id}")

    return JsonResponse({
        "success": True,
        "message": "Contract generated and sent for signature",
        "envelopeId": envelope_id,
        "unsignedContractUrl": unsigned_url,
    })


@csrf_exempt
def contract_webhook(request):
    """
    DocuSign Connect callback. Only completed envelopes are processed and the
    completion is confirmed with DocuSign before anything changes.
    """
    logger.info(f"[CONTRACT/WEBHOOK] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    if request.method == "GET":
        return JsonResponse({
            "message": "DocuSign webhook endpoint is active",
            "timestamp": timezone.now().isoformat(),
        })

    data, error = json_body(request)
    if error:
        return error

    summary = (data.get("data") or {}).get("envelopeSummary") or {}
    envelope_id = summary.get("envelopeId")
    if not envelope_id:
        return JsonResponse({"error": "missing_envelope_id"}, status=400)

    if data.get("event") != "envelope-completed" and summary.get("status") != "completed":
        logger.info(f"[CONTRACT/WEBHOOK] Ignoring {data.get('event')} ({summary.get('status')}) for {envelope_id}")
        return JsonResponse({"success": True, "message": "Event acknowledged but not processed"})

    if docusign_service.get_envelope_status(envelope_id) != "completed":
        return JsonResponse({"error": "envelope_not_completed"}, status=400)

    collaboration_id = docusign_service.get_envelope_custom_fields(envelope_id).get("collaborationId")
    if not collaboration_id:
        logger.error(f"[CONTRACT/WEBHOOK] No collaboration id on envelope {envelope_id}")
        return JsonResponse({"error": "collaboration_id_not_found"}, status=400)

    collab = firestore_service.get(constants.COLLABORATIONS, collaboration_id)
    if not collab:
        return JsonResponse({"error": "collaboration_not_found"}, status=404)
    if collab.get("docusignEnvelopeId") != envelope_id:
        return JsonResponse({"error": "envelope_mismatch"}, status=400)

    signed_pdf = docusign_service.download_signed_contract(envelope_id)
    now = timezone.now()
    signed_url = upload_pdf(
        _contract_path(collaboration_id, "signed_contract"),
        signed_pdf,
        {"collaborationId": collaboration_id, "envelopeId": envelope_id, "signedAt": now.isoformat()},
        SIGNED_URL_TTL,
    )

    firestore_service.update(constants.COLLABORATIONS, collaboration_id, {
        "contractUrl": signed_url,
        "allPartiesSignedAt": now,
        "status": constants.IN_PROGRESS,
        "updatedAt": now,
    })
    logger.info(f"[CONTRACT/WEBHOOK] Contract signed for {collaboration_id}, now in_progress")

    buyer = firestore_service.get_user(collab.get("buyerId"))
    seller_id = seller_id_for(collab)
    seller = firestore_service.get_user(seller_id)
    service = service_for(collab)
    if buyer and seller and service:
        emails.contract_signed(
            buyer.get("email"),
            display_name(buyer),
            seller.get("email"),
            display_name(seller),
            service.get("title") or "Service",
            collaboration_id,
        )
    for user_id, other in ((collab.get("buyerId"), seller), (seller_id, buyer)):
        create_notification(
            user_id,
            "contract_signed",
            {"name": display_name(other, "Your collaborator")},
            metadata={"collaborationId": collaboration_id},
        )

    return JsonResponse({
        "success": True,
        "message": "Contract signed and processed successfully",
        "collaborationId": collaboration_id,
        "status": constants.IN_PROGRESS,
    })
