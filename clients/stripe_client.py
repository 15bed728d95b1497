"""
Stripe implementation of the payment gateway.

Charges card and US bank account details through PaymentIntents, and
builds hosted payment links (product -> price -> payment link). Each call
runs with a hard request timeout and no automatic retries: a timeout is a
failed payment, and a human decides whether to try again.
"""

import logging

import stripe

from clients.payment_gateway import (
    ChargeRequest,
    ChargeResult,
    PaymentGateway,
    PaymentGatewayError,
)

logger = logging.getLogger(__name__)

# PaymentIntent statuses that mean the money is (or will be) collected.
# ACH debits sit in 'processing' for days before settling.
_SUCCESS_STATUSES = {"succeeded", "processing"}

DECLINE_MESSAGE = "Payment processing failed. Please try again."


class StripeGateway(PaymentGateway):
    """
    PaymentGateway backed by the Stripe API.

    Usage:
        gateway = StripeGateway(get_stripe_config()["secret_key"], timeout_seconds=20)
        result = gateway.charge(request)
    """

    name = "stripe"

    def __init__(
        self,
        secret_key: str,
        timeout_seconds: int = 20,
        client: stripe.StripeClient | None = None,
    ):
        """
        Args:
            secret_key: Stripe secret API key
            timeout_seconds: Per-request timeout
            client: Preconfigured StripeClient (tests)

        Raises:
            ValueError: If secret_key is empty
        """
        if client is None:
            if not secret_key:
                raise ValueError("secret_key is required")
            client = stripe.StripeClient(
                secret_key,
                http_client=stripe.RequestsClient(timeout=timeout_seconds),
                max_network_retries=0,
            )
        self._client = client

    def _payment_method_params(self, request: ChargeRequest) -> dict:
        details = request.details

        if request.method == "stripe":
            expiry_month, expiry_year = details["expiry_date"].split("/")
            return {
                "payment_method_types": ["card"],
                "payment_method_data": {
                    "type": "card",
                    "card": {
                        "number": details["card_number"],
                        "exp_month": int(expiry_month),
                        "exp_year": 2000 + int(expiry_year),
                        "cvc": details["cvv"],
                    },
                    "billing_details": {
                        "name": details["cardholder_name"],
                        "email": details["email"],
                        "address": {"line1": details["billing_address"]},
                    },
                },
                "receipt_email": details["email"],
            }

        if request.method == "bank-transfer":
            return {
                "payment_method_types": ["us_bank_account"],
                "payment_method_data": {
                    "type": "us_bank_account",
                    "us_bank_account": {
                        "account_number": details["bank_account"],
                        "routing_number": details["routing_number"],
                        "account_holder_type": "individual",
                    },
                    "billing_details": {
                        "name": details["account_holder_name"],
                        "email": details["email"],
                    },
                },
                "mandate_data": {"customer_acceptance": {"type": "offline"}},
                "receipt_email": details["email"],
            }

        raise ValueError(f"Stripe gateway cannot charge payment method '{request.method}'")

    def charge(self, request: ChargeRequest) -> ChargeResult:
        """
        Create and confirm a PaymentIntent.

        Declines come back as ChargeResult(success=False). Card details are
        never logged.

        Raises:
            PaymentGatewayError: On network failure, timeout, or API error
        """
        params = {
            "amount": request.amount_minor,
            "currency": request.currency,
            "description": request.description,
            "metadata": request.metadata,
            "confirm": True,
            **self._payment_method_params(request),
        }

        try:
            intent = self._client.payment_intents.create(params=params)
        except stripe.CardError as e:
            logger.info(f"Stripe declined charge: {e.code}")
            return ChargeResult(success=False, error=e.user_message or DECLINE_MESSAGE)
        except stripe.StripeError as e:
            logger.warning(f"Stripe charge failed: {e.__class__.__name__}")
            raise PaymentGatewayError(f"Stripe request failed: {e.__class__.__name__}") from e

        if intent.status in _SUCCESS_STATUSES:
            logger.info(f"Stripe charge {intent.id} {intent.status}")
            return ChargeResult(success=True, transaction_id=intent.id)

        logger.info(f"Stripe charge {intent.id} not completed: {intent.status}")
        return ChargeResult(success=False, transaction_id=intent.id, error=DECLINE_MESSAGE)

    def create_payment_link(self, amount_minor: int, currency: str, description: str) -> str:
        """
        Hosted checkout link for a one-off amount.

        Raises:
            PaymentGatewayError: On any Stripe failure
        """
        try:
            product = self._client.products.create(
                params={"name": description or "Invoice Payment"}
            )
            price = self._client.prices.create(params={
                "product": product.id,
                "unit_amount": amount_minor,
                "currency": currency,
            })
            link = self._client.payment_links.create(params={
                "line_items": [{"price": price.id, "quantity": 1}],
            })
        except stripe.StripeError as e:
            logger.error(f"Stripe payment link failed: {e}")
            raise PaymentGatewayError(f"Stripe error: {e.__class__.__name__}") from e

        logger.info(f"Stripe payment link created for {amount_minor} {currency}")
        return link.url
