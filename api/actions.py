"""POST /api/actions: unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.exceptions import ClientNotFoundError, InvoiceNotFoundError
from core.models import ClientCreate, ClientUpdate, InvoiceCreate


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "client": ClientHandler(services["client"]),
        "invoice": InvoiceHandler(services["invoice"], services["payment"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(dict(body.data))
        request_id = getattr(request.state, "request_id", None)
        return success_response(result, request_id).model_dump(mode="json")

    return router


def _id(data: dict, key: str = "id") -> UUID:
    if key not in data:
        raise ValueError(f"'{key}' is required")
    return UUID(str(data[key]))


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class ClientHandler:
    ALLOWED_ACTIONS = {"create", "update", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        client = self.service.create(ClientCreate(**data))
        return client.model_dump(mode="json")

    def _handle_update(self, data: dict):
        client_id = _id(data)
        data.pop("id")
        client = self.service.update(client_id, ClientUpdate(**data))
        return client.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        client_id = _id(data)
        if not self.service.delete(client_id):
            raise ClientNotFoundError(f"Client {client_id} not found")
        return {"deleted": True}


class InvoiceHandler:
    ALLOWED_ACTIONS = {"create", "mark_paid", "delete", "create_payment_link"}

    def __init__(self, service, payment_service):
        self.service = service
        self.payment_service = payment_service

    def _present(self, invoice) -> dict:
        data = self.service.view(invoice).model_dump(mode="json")
        data["public_url"] = self.service.config.public_invoice_url(invoice.public_token)
        return data

    def _handle_create(self, data: dict):
        invoice = self.service.create(InvoiceCreate(**data))
        return self._present(invoice)

    def _handle_mark_paid(self, data: dict):
        invoice = self.service.mark_paid(_id(data))
        return self._present(invoice)

    def _handle_delete(self, data: dict):
        invoice_id = _id(data)
        if not self.service.delete(invoice_id):
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
        return {"deleted": True}

    def _handle_create_payment_link(self, data: dict):
        url = self.payment_service.create_payment_link(_id(data))
        return {"url": url}
