from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from app.api.schemas import DocumentModel
from app.dependencies.services import UserServiceDep
from app.users.models import Role
from app.users.service import BulkImportError, InvalidCredentialsError, UserNotFoundError

router = APIRouter(tags=["users"])


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    success: bool
    user: dict[str, Any]


class UserCreateRequest(DocumentModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    role: Role = Role.USER
    department: str | None = None
    position: str | None = None
    phone: str | None = None


class UserUpdateRequest(DocumentModel):
    name: str | None = Field(default=None, min_length=1)
    email: str | None = Field(default=None, min_length=3)
    password: str | None = Field(default=None, min_length=1)
    role: Role | None = None


class BulkImportRequest(BaseModel):
    users: list[dict[str, Any]]


@router.post("/login", response_model=LoginResponse, summary="Check an email/password pair")
async def login(payload: LoginRequest, service: UserServiceDep) -> Any:
    try:
        user = await service.login(payload.email, payload.password)
    except InvalidCredentialsError as exc:
        return JSONResponse(status_code=401, content={"success": False, "message": str(exc)})
    return LoginResponse(success=True, user=user)


@router.get("/users")
async def list_users(service: UserServiceDep) -> list[dict[str, Any]]:
    return await service.list_users()


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreateRequest, service: UserServiceDep) -> dict[str, Any]:
    return await service.create_user(payload.to_document())


@router.get("/users/{user_id}")
async def get_user(user_id: str, service: UserServiceDep) -> dict[str, Any]:
    try:
        return await service.get_user(user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.put("/users/{user_id}")
async def update_user(user_id: str, payload: UserUpdateRequest, service: UserServiceDep) -> dict[str, Any]:
    patch = payload.to_document()
    if not patch:
        raise HTTPException(status_code=400, detail="No fields provided for update")
    try:
        return await service.update_user(user_id, patch)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.delete("/users/{user_id}", response_class=PlainTextResponse)
async def delete_user(user_id: str, service: UserServiceDep) -> str:
    try:
        await service.delete_user(user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return f"User {user_id} deleted."


@router.post("/users/bulk", status_code=status.HTTP_201_CREATED, response_class=PlainTextResponse)
async def bulk_import_users(payload: BulkImportRequest, service: UserServiceDep) -> str:
    if not payload.users:
        raise HTTPException(status_code=400, detail="Send a non-empty list of users")
    try:
        created = await service.bulk_import(payload.users)
    except BulkImportError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return f"{created} users created."
