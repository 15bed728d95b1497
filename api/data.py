"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request
from fastapi.encoders import jsonable_encoder

from api.base import success_response
from core.exceptions import ClientNotFoundError, InvoiceNotFoundError
from utils.timezone import now_utc


VALID_TYPES = {"clients", "invoices"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    client_svc = services["client"]
    invoice_svc = services["invoice"]
    payment_svc = services["payment"]

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        client_id: str | None = Query(None),
        include: str | None = Query(None),
        filter: str | None = Query(None),
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        includes = set(include.split(",")) if include else set()
        request_id = getattr(request.state, "request_id", None)

        if type == "clients":
            data = _handle_clients(client_svc, invoice_svc, id, includes, limit, offset)
        else:
            data = _handle_invoices(
                invoice_svc, payment_svc, id, client_id, filter, includes, limit, offset
            )

        return success_response(data, request_id).model_dump(mode="json")

    return router


def _handle_clients(client_svc, invoice_svc, id, includes, limit, offset):
    if id:
        client = client_svc.get_by_id(UUID(id))
        if client is None:
            raise ClientNotFoundError(f"Client {id} not found")

        data = client.model_dump(mode="json")
        if "invoices" in includes:
            now = now_utc()
            invoices = invoice_svc.list_for_client(client.id, limit)
            data["invoices"] = [
                invoice_svc.view(i, now).model_dump(mode="json") for i in invoices
            ]
        return data

    return [c.model_dump(mode="json") for c in client_svc.list_all(limit, offset)]


def _handle_invoices(invoice_svc, payment_svc, id, client_id, filter, includes, limit, offset):
    now = now_utc()

    if id:
        invoice = invoice_svc.get_by_id(UUID(id))
        if invoice is None:
            raise InvoiceNotFoundError(f"Invoice {id} not found")

        data = invoice_svc.view(invoice, now).model_dump(mode="json")
        if "payments" in includes:
            payments = payment_svc.list_payments(invoice.id)
            data["payments"] = [p.model_dump(mode="json") for p in payments]
        if "history" in includes:
            data["history"] = jsonable_encoder(invoice_svc.history(invoice.id))
        return data

    if client_id:
        invoices = invoice_svc.list_for_client(UUID(client_id), limit)
    else:
        invoices = invoice_svc.list_all(filter, limit, offset, now=now)

    return [invoice_svc.view(i, now).model_dump(mode="json") for i in invoices]
