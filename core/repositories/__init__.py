"""Persistence contracts and their PostgreSQL implementations."""

from core.repositories.base import ClientRepository, InvoiceRepository, PaymentRepository
from core.repositories.postgres import (
    PostgresClientRepository,
    PostgresInvoiceRepository,
    PostgresPaymentRepository,
)
