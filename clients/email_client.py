"""
HTTP email gateway used for payment receipts.

Each request body is signed with HMAC-SHA256 over the exact bytes sent, so
the gateway can reject anything that did not come from this service. A
dedupe key travels as Idempotency-Key: the gateway drops a second receipt
for the same invoice if a handler runs twice.
"""

import hashlib
import hmac
import json
import logging

import requests

logger = logging.getLogger(__name__)

SENDERS = ("billing", "system")


class EmailGatewayError(Exception):
    """Gateway unreachable, or it refused the message."""


def sign(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


class EmailGatewayClient:

    def __init__(
        self,
        gateway_url: str,
        api_key: str,
        hmac_secret: str,
        timeout_seconds: float = 10,
        session: requests.Session | None = None,
    ):
        """
        Raises:
            ValueError: If any credential is empty
        """
        for name, value in (("gateway_url", gateway_url), ("api_key", api_key), ("hmac_secret", hmac_secret)):
            if not value:
                raise ValueError(f"{name} is required")

        self.gateway_url = gateway_url
        self.hmac_secret = hmac_secret
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json", "X-API-Key": api_key})

    def _post(self, payload: dict, dedupe_key: str | None) -> None:
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        headers = {"X-Signature": sign(self.hmac_secret, body)}
        if dedupe_key:
            headers["Idempotency-Key"] = dedupe_key

        try:
            response = self._session.post(
                self.gateway_url, data=body, headers=headers, timeout=self.timeout_seconds
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Email gateway connection failed: {e}")
            raise EmailGatewayError(f"Connection failed: {e}") from e

        try:
            reply = response.json()
        except ValueError as e:
            logger.error(f"Email gateway returned non-JSON ({response.status_code})")
            raise EmailGatewayError("Invalid response from gateway") from e

        if not response.ok or not reply.get("success"):
            message = reply.get("message", "Unknown error")
            logger.error(f"Email gateway refused message: {message}")
            raise EmailGatewayError(f"Gateway error: {message}")

    def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        sender: str = "billing",
        dedupe_key: str | None = None,
    ) -> None:
        """
        Send a plain-text email.

        Args:
            sender: "billing" for receipts, "system" for operational mail
            dedupe_key: Stable key for this message, e.g. "receipt:<invoice id>"

        Raises:
            ValueError: Unknown sender
            EmailGatewayError: Gateway failure
        """
        if sender not in SENDERS:
            raise ValueError(f"sender must be one of {', '.join(SENDERS)}, got '{sender}'")

        self._post(
            {"type": "custom", "email": to, "subject": subject, "body": body, "sender": sender},
            dedupe_key,
        )
        logger.info(f"Email sent to {to}: {subject}")
