"""
Helpers shared by the collaboration views: who the parties are, where the
purchased service lives and how escrowed money is paid out.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from django.conf import settings
from django.utils import timezone

from . import constants, emails
from .errors import FlutterwaveError
from .firebase_service import firestore_service, subcollection
from .flutterwave_client import flutterwave_service
from .utils import display_name

logger = logging.getLogger("marketplace")


class PayoutError(Exception):
    """A payout that could not be started; message is safe to show the buyer."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass
class PayoutResult:
    transfer_id: Any
    reference: str
    seller_amount: float
    commission: float
    status: Optional[str]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "transferId": self.transfer_id,
            "reference": self.reference,
            "legendAmount": self.seller_amount,
            "platformCommission": self.commission,
            "status": self.status,
        }


def is_podcast_backed(collab: dict) -> bool:
    return collab.get("type") in (constants.COLLABORATION_TYPE_PODCAST, constants.COLLABORATION_TYPE_GUEST)


def services_path_for(collab: dict) -> str:
    if is_podcast_backed(collab):
        return subcollection(constants.PODCASTS, collab.get("podcastId"), constants.SERVICES)
    return subcollection(constants.USERS, collab.get("legendId"), constants.SERVICES)


def service_for(collab: dict) -> Optional[dict]:
    if not collab.get("serviceId"):
        return None
    if is_podcast_backed(collab) and not collab.get("podcastId"):
        return None
    if not is_podcast_backed(collab) and not collab.get("legendId"):
        return None
    return firestore_service.get(services_path_for(collab), collab["serviceId"])


def podcast_owner_id(collab: dict) -> Optional[str]:
    podcast = firestore_service.get(constants.PODCASTS, collab.get("podcastId"))
    return podcast.get("ownerId") if podcast else None


def seller_id_for(collab: dict) -> Optional[str]:
    """The party that gets paid: podcast owner, guest or legend."""
    collab_type = collab.get("type")
    if collab_type == constants.COLLABORATION_TYPE_PODCAST:
        return podcast_owner_id(collab)
    if collab_type == constants.COLLABORATION_TYPE_GUEST:
        if collab.get("buyerId") == collab.get("guestId"):
            return podcast_owner_id(collab)
        return collab.get("guestId")
    return collab.get("legendId")


def party_ids(collab: dict) -> set:
    """Every user id that takes part in the collaboration."""
    ids = {collab.get("buyerId"), collab.get("legendId"), collab.get("guestId")}
    if is_podcast_backed(collab):
        ids.add(podcast_owner_id(collab))
    ids.discard(None)
    return ids


def is_party(collab: dict, uid: str) -> bool:
    return uid in party_ids(collab)


def other_party_id(collab: dict, uid: str) -> Optional[str]:
    """The guest talks to the podcast side, everyone else to the guest."""
    if uid == collab.get("guestId"):
        if collab.get("buyerId") == uid:
            return podcast_owner_id(collab)
        return collab.get("buyerId")
    if collab.get("guestId"):
        return collab.get("guestId")
    return seller_id_for(collab) if uid == collab.get("buyerId") else collab.get("buyerId")


def commission_split(price: float) -> Tuple[float, float]:
    """(platform commission, seller amount) for a price."""
    commission = price * settings.PLATFORM_COMMISSION_RATE
    return commission, price - commission


def transfer_reference(prefix: str, collaboration_id: str) -> str:
    return f"{prefix}-{collaboration_id}-{int(time.time() * 1000)}"


def payout_account(user: Optional[dict]) -> Optional[Tuple[str, str]]:
    """(bank code, account number) a user is paid to, if they connected one."""
    if not user:
        return None
    if user.get("flutterwaveAccountBank") and user.get("flutterwaveAccountNumber"):
        return user["flutterwaveAccountBank"], user["flutterwaveAccountNumber"]
    if user.get("bankCode") and user.get("bankAccountNumber"):
        return user["bankCode"], user["bankAccountNumber"]
    return None


def detect_platform(url: str) -> str:
    lowered = (url or "").lower()
    for host, platform in constants.RECORDING_PLATFORMS.items():
        if host in lowered:
            return platform
    return "other"


def _record_payout_error(collaboration_id: str, message: str) -> None:
    now = timezone.now()
    firestore_service.update(constants.COLLABORATIONS, collaboration_id, {
        "payoutError": {"message": message, "timestamp": now},
        "updatedAt": now,
    })


def check_payout_ready(collab: dict) -> None:
    """Raise PayoutError unless an in-progress collaboration can be paid out."""
    if collab.get("status") != constants.IN_PROGRESS:
        raise PayoutError("Collaboration must be in progress to trigger payout")
    if not collab.get("deliverables"):
        raise PayoutError("Cannot trigger payout: No deliverables have been uploaded yet")
    if collab.get("escrowStatus") == constants.ESCROW_RELEASED:
        raise PayoutError("Payout has already been processed for this collaboration")


def release_payout(collab: dict) -> PayoutResult:
    """
    Transfer the seller's share of an in-progress collaboration and mark it
    completed. Transfer failures are stored on the collaboration as
    payoutError and raised as PayoutError.
    """
    collaboration_id = collab["id"]
    check_payout_ready(collab)

    seller = firestore_service.get_user(seller_id_for(collab))
    if not seller:
        raise PayoutError("Seller not found", status=404)
    account = payout_account(seller)
    if not seller.get("flutterwaveSubaccountId") or not account:
        raise PayoutError("Seller has not connected their bank account")

    price = float(collab.get("price") or 0)
    commission, seller_amount = commission_split(price)
    reference = transfer_reference("PAYOUT", collaboration_id)

    try:
        response = flutterwave_service.initiate_transfer(
            account[0],
            account[1],
            seller_amount,
            f"{settings.PLATFORM_NAME} payout for collaboration {collaboration_id}",
            reference,
            currency=constants.TRANSFER_CURRENCY,
            beneficiary_name=seller.get("displayName") or seller.get("businessName"),
        )
    except FlutterwaveError as e:
        logger.error(f"[PAYOUT] Transfer for {collaboration_id} failed: {e}")
        _record_payout_error(collaboration_id, e.message)
        raise PayoutError("Failed to initiate payout. Please contact support.", status=500)

    if response.get("status") != "success":
        logger.error(f"[PAYOUT] Transfer for {collaboration_id} rejected: {response.get('message')}")
        _record_payout_error(collaboration_id, response.get("message") or "Transfer failed")
        raise PayoutError("Failed to initiate transfer to seller", status=500)

    transfer = response.get("data") or {}
    now = timezone.now()
    firestore_service.update(constants.COLLABORATIONS, collaboration_id, {
        "status": constants.COMPLETED,
        "escrowStatus": constants.ESCROW_RELEASED,
        "completedAt": now,
        "updatedAt": now,
        "platformCommission": commission,
        "legendAmount": seller_amount,
        "payoutTransferId": transfer.get("id"),
        "payoutReference": reference,
        "payoutInitiatedAt": now,
    })
    logger.info(f"[PAYOUT] {collaboration_id}: {seller_amount} to {seller['id']} ({reference})")

    emails.payout_released_seller(seller.get("email"), seller_amount, reference, collaboration_id)
    buyer = firestore_service.get_user(collab.get("buyerId"))
    if buyer:
        emails.payout_released_buyer(buyer.get("email"), price, seller_amount, commission, collaboration_id)

    return PayoutResult(transfer.get("id"), reference, seller_amount, commission, transfer.get("status"))


def release_guest_escrow(collab: dict, guest: Optional[dict], podcast_name: str) -> Tuple[bool, Optional[str]]:
    """
    Pay the guest their held share when the podcast paid for the appearance.
    Returns (released, error message).
    """
    collaboration_id = collab["id"]
    account = payout_account(guest)
    if not account:
        _record_payout_error(collaboration_id, "Guest bank account information not available")
        return False, "Guest bank account not configured"

    reference = transfer_reference("RELEASE", collaboration_id)
    try:
        response = flutterwave_service.initiate_transfer(
            account[0],
            account[1],
            collab["legendAmount"],
            f"Payment for guest appearance on {podcast_name}",
            reference,
            currency=constants.TRANSFER_CURRENCY,
            beneficiary_name=display_name(guest, "Guest"),
        )
    except FlutterwaveError as e:
        logger.error(f"[RELEASE] Transfer for {collaboration_id} failed: {e}")
        _record_payout_error(collaboration_id, e.message)
        return False, e.message

    if response.get("status") != "success":
        _record_payout_error(collaboration_id, response.get("message") or "Transfer failed")
        return False, "Payment transfer failed"

    firestore_service.update(constants.COLLABORATIONS, collaboration_id, {
        "escrowStatus": constants.ESCROW_RELEASED,
        "payoutTransferId": (response.get("data") or {}).get("id"),
        "payoutReference": reference,
        "payoutInitiatedAt": timezone.now(),
    })
    logger.info(f"[RELEASE] {collaboration_id}: escrow released to guest ({reference})")
    return True, None
