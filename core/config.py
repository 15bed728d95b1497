"""Invoicing configuration."""

from pydantic import BaseModel, Field


class InvoicingConfig(BaseModel):
    """
    Invoicing configuration.

    Secrets (Stripe keys, database URL) come from Vault, not from here.
    """

    default_currency: str = Field(
        default="usd",
        description="ISO 4217 code used when an invoice doesn't specify one",
        pattern="^[a-z]{3}$",
    )
    invoice_number_prefix: str = Field(
        default="INV",
        description="Prefix of human-readable invoice numbers (INV-YYYYMMDD-0001)",
        min_length=1,
        max_length=10,
    )

    # Public sharing
    public_token_bytes: int = Field(
        default=32,
        description="Random bytes behind each public invoice token",
        ge=16,
        le=64,
    )
    public_lookup_attempts: int = Field(
        default=60,
        description="Max public invoice requests per client IP per window",
        ge=1,
        le=1000,
    )
    public_lookup_window_minutes: int = Field(
        default=5,
        description="Public lookup rate limit window",
        ge=1,
        le=60,
    )

    # Payments
    payment_timeout_seconds: int = Field(
        default=20,
        description="Timeout around each payment gateway call; timing out counts as a failed payment",
        ge=10,
        le=30,
    )

    # Application
    app_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL used to build public invoice links",
    )
    app_name: str = Field(
        default="Invoicing",
        description="Application name for emails",
    )

    def public_invoice_url(self, token: str) -> str:
        return f"{self.app_base_url.rstrip('/')}/invoice/{token}"
