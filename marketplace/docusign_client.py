"""
DocuSign eSignature REST client.

Authenticates with the JWT grant: an RS256 assertion signed with the
integration's private key is exchanged for an access token.
"""
import base64
import logging
import os
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import jwt
import requests

from .errors import DocuSignError

logger = logging.getLogger("marketplace")

DEFAULT_OAUTH_HOST = "account-d.docusign.com"
DEFAULT_BASE_PATH = "https://demo.docusign.net/restapi"
TOKEN_LIFETIME_SECONDS = 3600
COLLABORATION_FIELD = "collaborationId"


@dataclass
class Signer:
    name: str
    email: str
    recipient_id: str


class DocuSignService:

    def __init__(self):
        self.integration_key = os.environ.get("DOCUSIGN_INTEGRATION_KEY")
        self.user_id = os.environ.get("DOCUSIGN_USER_ID")
        self.account_id = os.environ.get("DOCUSIGN_ACCOUNT_ID")
        self.oauth_host = os.environ.get("DOCUSIGN_OAUTH_HOST", DEFAULT_OAUTH_HOST)
        self.base_path = os.environ.get("DOCUSIGN_BASE_PATH", DEFAULT_BASE_PATH).rstrip("/")

        # Private key can be provided as file path or direct content
        key_path = os.environ.get("DOCUSIGN_PRIVATE_KEY_PATH")
        key_content = os.environ.get("DOCUSIGN_PRIVATE_KEY")

        self.private_key = None
        if key_path and os.path.exists(key_path):
            with open(key_path, "r") as f:
                self.private_key = f.read()
        elif key_content:
            # Handle escaped newlines in env var
            self.private_key = key_content.replace("\\n", "\n")

        self._access_token = None
        self._token_expires_at = 0.0

    def is_configured(self) -> bool:
        return all([
            self.integration_key,
            self.user_id,
            self.account_id,
            self.private_key,
        ])

    def _generate_assertion(self) -> str:
        now = int(time.time())
        payload = {
            "iss": self.integration_key,
            "sub": self.user_id,
            "aud": self.oauth_host,
            "iat": now,
            "exp": now + TOKEN_LIFETIME_SECONDS,
            "scope": "signature impersonation",
        }
        return jwt.encode(payload, self.private_key, algorithm="RS256")

    def _get_access_token(self) -> str:
        if self._access_token and time.time() < self._token_expires_at - 60:
            return self._access_token

        try:
            response = requests.post(
                f"https://{self.oauth_host}/oauth/token",
                data={
                    "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                    "assertion": self._generate_assertion(),
                },
                timeout=30,
            )
        except requests.exceptions.RequestException as e:
            raise DocuSignError("DocuSign authentication failed") from e

        if response.status_code != 200:
            logger.error(f"[DOCUSIGN] Token request failed {response.status_code}: {response.text}")
            raise DocuSignError("DocuSign authentication failed", details=response.text)

        body = response.json()
        self._access_token = body["access_token"]
        self._token_expires_at = time.time() + int(body.get("expires_in", TOKEN_LIFETIME_SECONDS))
        return self._access_token

    def _request(self, method: str, endpoint: str, payload: Optional[dict] = None) -> requests.Response:
        if not self.is_configured():
            raise DocuSignError("DocuSign is not configured")

        url = f"{self.base_path}/v2.1/accounts/{self.account_id}/{endpoint.lstrip('/')}"
        try:
            response = requests.request(
                method,
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self._get_access_token()}"},
                timeout=60,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"[DOCUSIGN] {method} {endpoint} failed: {e}")
            raise DocuSignError("DocuSign request failed") from e

        if response.status_code >= 400:
            logger.error(f"[DOCUSIGN] {method} {endpoint} -> {response.status_code}: {response.text}")
            raise DocuSignError("DocuSign request failed", details=response.text)
        return response

    def send_contract_for_signature(
        self,
        pdf: bytes,
        file_name: str,
        email_subject: str,
        signers: List[Signer],
        collaboration_id: str,
    ) -> str:
        """Create and send an envelope; returns the envelope id."""
        envelope = {
            "emailSubject": email_subject,
            "documents": [{
                "documentBase64": base64.b64encode(pdf).decode("ascii"),
                "name": file_name,
                "fileExtension": "pdf",
                "documentId": "1",
            }],
            "recipients": {
                "signers": [
                    {
                        "email": signer.email,
                        "name": signer.name,
                        "recipientId": signer.recipient_id,
                        "routingOrder": signer.recipient_id,
                        "tabs": {
                            "signHereTabs": [{
                                "documentId": "1",
                                "anchorString": "Signature:",
                                "anchorUnits": "pixels",
                                "anchorXOffset": "80",
                                "anchorYOffset": "-5",
                                "anchorIgnoreIfNotPresent": "true",
                            }],
                        },
                    }
                    for signer in signers
                ],
            },
            "customFields": {
                "textCustomFields": [{
                    "name": COLLABORATION_FIELD,
                    "value": collaboration_id,
                    "show": "false",
                    "required": "false",
                }],
            },
            "status": "sent",
        }

        body = self._request("POST", "envelopes", envelope).json()
        envelope_id = body.get("envelopeId")
        if not envelope_id:
            raise DocuSignError("DocuSign did not return an envelope id", details=body)

        logger.info(f"[DOCUSIGN] Envelope {envelope_id} sent for collaboration {collaboration_id}")
        return envelope_id

    def get_envelope_status(self, envelope_id: str) -> str:
        return self._request("GET", f"envelopes/{envelope_id}").json().get("status", "")

    def download_signed_contract(self, envelope_id: str) -> bytes:
        return self._request("GET", f"envelopes/{envelope_id}/documents/combined").content

    def get_envelope_custom_fields(self, envelope_id: str) -> Dict[str, str]:
        body = self._request("GET", f"envelopes/{envelope_id}/custom_fields").json()
        return {
            item.get("name"): item.get("value")
            for item in body.get("textCustomFields", [])
            if item.get("name")
        }


# Singleton instance
docusign_service = DocuSignService()
