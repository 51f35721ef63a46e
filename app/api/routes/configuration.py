from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, HTTPException, status
from fastapi.responses import PlainTextResponse

from app.api.schemas import DocumentModel
from app.db.store import DocumentNotFoundError
from app.dependencies.services import CategoryServiceDep, SettingsServiceDep, SlaServiceDep

router = APIRouter(tags=["configuration"])


class CategoryRequest(DocumentModel):
    name: str | None = None
    is_active: bool | None = None


class EmailSettingsRequest(DocumentModel):
    notify_on_new: bool | None = None
    notify_on_update: bool | None = None
    notify_on_close: bool | None = None


@router.get("/categories", summary="List active categories")
async def list_categories(service: CategoryServiceDep) -> list[dict[str, Any]]:
    return await service.list_active()


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryRequest, service: CategoryServiceDep) -> dict[str, Any]:
    return await service.create(payload.to_document())


@router.put("/categories/{category_id}")
async def update_category(
    category_id: str, payload: CategoryRequest, service: CategoryServiceDep
) -> dict[str, Any]:
    try:
        return await service.update(category_id, payload.to_document())
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.delete("/categories/{category_id}", response_class=PlainTextResponse, summary="Deactivate a category")
async def deactivate_category(category_id: str, service: CategoryServiceDep) -> str:
    try:
        await service.deactivate(category_id)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return f"Category {category_id} deactivated."


@router.get("/sla-config")
async def list_sla_config(service: SlaServiceDep) -> list[dict[str, Any]]:
    return await service.list()


@router.put("/sla-config/{sla_id}")
async def update_sla_config(
    sla_id: str, service: SlaServiceDep, payload: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    try:
        return await service.update(sla_id, payload)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/settings/general")
async def get_general_settings(service: SettingsServiceDep) -> dict[str, Any]:
    try:
        return await service.get_general()
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail="General settings not found") from exc


@router.post("/settings/general")
async def save_general_settings(
    service: SettingsServiceDep, payload: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    return await service.save_general(payload)


@router.get("/settings/email")
async def get_email_settings(service: SettingsServiceDep) -> dict[str, Any]:
    try:
        return await service.get_email()
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Email settings not found") from exc


@router.post("/settings/email")
async def save_email_settings(payload: EmailSettingsRequest, service: SettingsServiceDep) -> dict[str, Any]:
    return await service.save_email(payload.to_document())
