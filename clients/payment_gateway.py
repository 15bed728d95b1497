"""
Payment gateway contract.

Services depend on this interface only. StripeGateway is the production
implementation; tests plug in a simulator with a configurable outcome.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class PaymentGatewayError(Exception):
    """Gateway unreachable, timed out, or returned something unusable."""


@dataclass(frozen=True)
class ChargeRequest:
    """
    One charge against the client's payment details.

    Amount is in minor units (cents), already rounded.
    """
    amount_minor: int
    currency: str
    description: str
    method: str
    details: dict[str, Any]
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ChargeResult:
    """
    Gateway's answer. A decline is a result, not an exception.
    """
    success: bool
    transaction_id: str | None = None
    error: str | None = None


class PaymentGateway(ABC):
    """External service that authorizes charges and issues checkout links."""

    name: str = "gateway"

    @abstractmethod
    def charge(self, request: ChargeRequest) -> ChargeResult:
        """
        Attempt a charge.

        Returns:
            ChargeResult with success=False on decline

        Raises:
            PaymentGatewayError: On transport failure or timeout
        """

    @abstractmethod
    def create_payment_link(self, amount_minor: int, currency: str, description: str) -> str:
        """
        Create a hosted checkout page for a fixed amount.

        Returns:
            Checkout URL

        Raises:
            PaymentGatewayError: On any failure
        """
