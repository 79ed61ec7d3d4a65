"""
Flutterwave v3 REST client for checkout verification, payout subaccounts
and bank transfers.
"""
import logging
import os
from typing import Any, Dict, Optional

import requests

from .errors import FlutterwaveError

logger = logging.getLogger("marketplace")

DEFAULT_API_BASE = "https://api.flutterwave.com/v3"


class FlutterwaveService:

    def __init__(self):
        self.public_key = os.environ.get("FLUTTERWAVE_PUBLIC_KEY")
        self.secret_key = os.environ.get("FLUTTERWAVE_SECRET_KEY")
        self.api_base = os.environ.get("FLUTTERWAVE_API_BASE", DEFAULT_API_BASE).rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def _request(self, method: str, endpoint: str, payload: Optional[dict] = None,
                 params: Optional[dict] = None) -> Dict[str, Any]:
        if not self.is_configured():
            raise FlutterwaveError("Flutterwave is not configured")

        url = f"{self.api_base}/{endpoint.lstrip('/')}"
        try:
            response = requests.request(
                method,
                url,
                json=payload,
                params=params,
                headers={
                    "Authorization": f"Bearer {self.secret_key}",
                    "Content-Type": "application/json",
                },
                timeout=30,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"[FLUTTERWAVE] {method} {endpoint} timed out")
            raise FlutterwaveError("Flutterwave request timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"[FLUTTERWAVE] {method} {endpoint} failed: {e}")
            raise FlutterwaveError("Flutterwave request failed") from e

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"[FLUTTERWAVE] Non-JSON response ({response.status_code}): {response.text[:200]}")
            raise FlutterwaveError("Invalid response from Flutterwave") from e

        if response.status_code >= 400:
            logger.warning(f"[FLUTTERWAVE] {method} {endpoint} -> {response.status_code}: {body.get('message')}")
        return body

    def get_banks(self, country: str = "NG") -> Dict[str, Any]:
        return self._request("GET", f"banks/{country}")

    def verify_bank_account(self, account_number: str, account_bank: str) -> Dict[str, Any]:
        return self._request("POST", "accounts/resolve", {
            "account_number": account_number,
            "account_bank": account_bank,
        })

    def create_subaccount(
        self,
        account_bank: str,
        account_number: str,
        business_name: str,
        business_email: str,
        business_contact: str,
        business_mobile: str,
        split_type: str,
        split_value: float,
        country: str = "NG",
    ) -> Dict[str, Any]:
        return self._request("POST", "subaccounts", {
            "account_bank": account_bank,
            "account_number": account_number,
            "business_name": business_name,
            "business_email": business_email,
            "business_contact": business_contact,
            "business_mobile": business_mobile,
            "country": country,
            "split_type": split_type,
            "split_value": split_value,
        })

    def get_subaccount(self, subaccount_id: str) -> Dict[str, Any]:
        return self._request("GET", f"subaccounts/{subaccount_id}")

    def update_subaccount(self, subaccount_id: str, **changes) -> Dict[str, Any]:
        payload = {key: value for key, value in changes.items() if value is not None}
        return self._request("PUT", f"subaccounts/{subaccount_id}", payload)

    def verify_transaction(self, transaction_id) -> Dict[str, Any]:
        return self._request("GET", f"transactions/{transaction_id}/verify")

    def initiate_transfer(
        self,
        account_bank: str,
        account_number: str,
        amount: float,
        narration: str,
        reference: str,
        currency: str = "NGN",
        beneficiary_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "account_bank": account_bank,
            "account_number": account_number,
            "amount": amount,
            "narration": narration,
            "currency": currency,
            "reference": reference,
            "debit_currency": currency,
        }
        if beneficiary_name:
            payload["beneficiary_name"] = beneficiary_name
        logger.info(f"[FLUTTERWAVE] Transfer {reference}: {currency} {amount}")
        return self._request("POST", "transfers", payload)


# Singleton instance
flutterwave_service = FlutterwaveService()
