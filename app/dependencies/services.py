from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request

from app.configuration.service import CategoryService, SettingsService, SlaService
from app.notifications.dispatcher import NotificationDispatcher
from app.storage.uploads import ObjectStore
from app.tickets.service import TicketService
from app.users.service import UserService


def _from_state(request: Request, name: str, label: str) -> Any:
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(status_code=503, detail=f"{label} is not available")
    return component


async def get_ticket_service(request: Request) -> TicketService:
    return _from_state(request, "ticket_service", "Ticket service")


async def get_user_service(request: Request) -> UserService:
    return _from_state(request, "user_service", "User service")


async def get_category_service(request: Request) -> CategoryService:
    return _from_state(request, "category_service", "Category service")


async def get_sla_service(request: Request) -> SlaService:
    return _from_state(request, "sla_service", "SLA service")


async def get_settings_service(request: Request) -> SettingsService:
    return _from_state(request, "settings_service", "Settings service")


async def get_object_store(request: Request) -> ObjectStore:
    return _from_state(request, "object_store", "Upload service")


async def get_dispatcher(request: Request) -> NotificationDispatcher:
    return _from_state(request, "dispatcher", "Email service")


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]
SlaServiceDep = Annotated[SlaService, Depends(get_sla_service)]
SettingsServiceDep = Annotated[SettingsService, Depends(get_settings_service)]
ObjectStoreDep = Annotated[ObjectStore, Depends(get_object_store)]
DispatcherDep = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
