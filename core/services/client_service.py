"""
Client service for CRUD operations.

Handles client lifecycle: create, read, update, soft delete.
All operations are scoped to the current account.
"""

import logging
from uuid import UUID, uuid4

from core.audit import AuditLogger, AuditAction, compute_changes
from core.event_bus import EventBus
from core.events import ClientCreated
from core.exceptions import ClientNotFoundError
from core.models import Client, ClientCreate, ClientUpdate
from core.repositories import ClientRepository
from utils.user_context import get_current_user_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class ClientService:
    """Service for client operations."""

    def __init__(self, clients: ClientRepository, audit: AuditLogger, event_bus: EventBus):
        self.clients = clients
        self.audit = audit
        self.event_bus = event_bus

    def create(self, data: ClientCreate) -> Client:
        """
        Create a new client.

        Args:
            data: Validated client data (name and email required)

        Returns:
            Created client
        """
        now = now_utc()
        client = self.clients.add(Client(
            id=uuid4(),
            user_id=get_current_user_id(),
            name=data.name,
            company=data.company,
            email=data.email,
            address=data.address,
            created_at=now,
            updated_at=now,
        ))

        self.audit.log_change(
            entity_type="client",
            entity_id=client.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)}
        )

        self.event_bus.publish(ClientCreated.create(client=client))

        return client

    def get_by_id(self, client_id: UUID) -> Client | None:
        """Client if found for the current account, None otherwise."""
        return self.clients.get(client_id)

    def update(self, client_id: UUID, data: ClientUpdate) -> Client:
        """
        Update client fields.

        Only fields present in `data` are changed. Invoices keep the
        snapshot taken when they were created.

        Raises:
            ClientNotFoundError: If client not found
        """
        current = self.clients.get(client_id)
        if current is None:
            raise ClientNotFoundError(f"Client {client_id} not found")

        updates = data.model_dump(exclude_unset=True)
        if not updates:
            return current

        updated = self.clients.update(client_id, updates, now_utc())
        if updated is None:
            raise ClientNotFoundError(f"Client {client_id} not found")

        changes = compute_changes(
            current.model_dump(mode="json"),
            updated.model_dump(mode="json")
        )
        if changes:
            self.audit.log_change(
                entity_type="client",
                entity_id=client_id,
                action=AuditAction.UPDATE,
                changes=changes
            )

        return updated

    def delete(self, client_id: UUID) -> bool:
        """
        Soft delete a client.

        Returns:
            True if deleted, False if not found
        """
        current = self.clients.get(client_id)
        if current is None:
            return False

        if not self.clients.soft_delete(client_id, now_utc()):
            return False

        self.audit.log_change(
            entity_type="client",
            entity_id=client_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")}
        )

        return True

    def list_all(self, limit: int = 50, offset: int = 0) -> list[Client]:
        """List clients, newest first."""
        return self.clients.list_all(limit, offset)
