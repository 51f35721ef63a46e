from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import PlainTextResponse
from pydantic import Field, field_validator

from app.api.schemas import DocumentModel
from app.dependencies.services import TicketServiceDep
from app.tickets.service import TicketNotFoundError

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreateRequest(DocumentModel):
    title: str = Field(..., min_length=1)
    priority: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    status: str | None = Field(default=None, min_length=1)

    @field_validator("status")
    @classmethod
    def reject_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("must not be null")
        return value


class TicketUpdateRequest(DocumentModel):
    title: str | None = Field(default=None, min_length=1)
    priority: str | None = Field(default=None, min_length=1)
    status: str | None = Field(default=None, min_length=1)

    # Omitted fields keep their default; an explicit null would erase the stored value.
    @field_validator("title", "priority", "status")
    @classmethod
    def reject_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("must not be null")
        return value

    def ensure_payload(self) -> dict[str, Any]:
        patch = self.to_document()
        if not patch:
            raise HTTPException(status_code=400, detail="No fields provided for update")
        return patch


class StreamEntryRequest(DocumentModel):
    user_name: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


@router.get("", summary="List tickets")
async def list_tickets(service: TicketServiceDep) -> list[dict[str, Any]]:
    return await service.list_tickets()


@router.post("", status_code=status.HTTP_201_CREATED, summary="Open a ticket")
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep) -> dict[str, Any]:
    return await service.create_ticket(payload.to_document())


@router.get("/{ticket_id}")
async def get_ticket(ticket_id: str, service: TicketServiceDep) -> dict[str, Any]:
    try:
        return await service.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.put("/{ticket_id}", summary="Partially update a ticket")
async def update_ticket(
    ticket_id: str, payload: TicketUpdateRequest, service: TicketServiceDep
) -> dict[str, Any]:
    patch = payload.ensure_payload()
    try:
        return await service.update_ticket(ticket_id, patch)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.delete("/{ticket_id}", response_class=PlainTextResponse)
async def delete_ticket(ticket_id: str, service: TicketServiceDep) -> str:
    try:
        await service.delete_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return f"Ticket {ticket_id} deleted."


@router.post("/{ticket_id}/timeline", status_code=status.HTTP_201_CREATED, summary="Add a public reply")
async def add_timeline_entry(
    ticket_id: str, payload: StreamEntryRequest, service: TicketServiceDep
) -> dict[str, Any]:
    try:
        return await service.append_timeline_entry(ticket_id, payload.to_document())
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post(
    "/{ticket_id}/internal-comments",
    status_code=status.HTTP_201_CREATED,
    summary="Add a staff-only comment",
)
async def add_internal_comment(
    ticket_id: str, payload: StreamEntryRequest, service: TicketServiceDep
) -> dict[str, Any]:
    try:
        return await service.append_internal_comment(ticket_id, payload.to_document())
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
