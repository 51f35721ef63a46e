from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.dependencies.services import get_user_service
from app.main import create_app
from app.users.service import BulkImportError, InvalidCredentialsError, UserNotFoundError


@pytest.fixture
def user_client():
    app = create_app()
    service = AsyncMock()

    async def override_service():
        return service

    app.dependency_overrides[get_user_service] = override_service
    client = TestClient(app)
    try:
        yield client, service
    finally:
        app.dependency_overrides.clear()


def test_login_success_wraps_user(user_client):
    client, service = user_client
    service.login.return_value = {"id": "u1", "email": "ana@example.com", "role": "user"}

    response = client.post("/login", json={"email": "ana@example.com", "password": "pw"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "user": {"id": "u1", "email": "ana@example.com", "role": "user"}}


def test_login_failure_returns_401(user_client):
    client, service = user_client
    service.login.side_effect = InvalidCredentialsError("Invalid email or password")

    response = client.post("/login", json={"email": "ana@example.com", "password": "bad"})

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_login_without_password_returns_400(user_client):
    client, service = user_client

    response = client.post("/login", json={"email": "ana@example.com"})

    assert response.status_code == 400
    service.login.assert_not_awaited()


def test_create_user_rejects_unknown_role(user_client):
    client, service = user_client

    response = client.post(
        "/users", json={"name": "Ana", "email": "ana@example.com", "password": "pw", "role": "root"}
    )

    assert response.status_code == 400
    service.create_user.assert_not_awaited()


def test_create_user_forwards_document(user_client):
    client, service = user_client
    service.create_user.return_value = {"id": "u1", "name": "Ana"}

    response = client.post(
        "/users",
        json={"name": "Ana", "email": "ana@example.com", "password": "pw", "role": "technician"},
    )

    assert response.status_code == 201
    service.create_user.assert_awaited_once_with(
        {"name": "Ana", "email": "ana@example.com", "password": "pw", "role": "technician"}
    )


def test_update_missing_user_returns_404(user_client):
    client, service = user_client
    service.update_user.side_effect = UserNotFoundError("User u1 not found")

    response = client.put("/users/u1", json={"name": "Ana"})

    assert response.status_code == 404


def test_delete_user_returns_confirmation(user_client):
    client, service = user_client
    service.delete_user.return_value = None

    response = client.delete("/users/u1")

    assert response.status_code == 200
    assert response.text == "User u1 deleted."


def test_bulk_import_reports_created_count(user_client):
    client, service = user_client
    service.bulk_import.return_value = 3

    response = client.post("/users/bulk", json={"users": [{"Nome": "A"}]})

    assert response.status_code == 201
    assert response.text == "3 users created."


def test_bulk_import_with_empty_list_returns_400(user_client):
    client, service = user_client

    response = client.post("/users/bulk", json={"users": []})

    assert response.status_code == 400
    service.bulk_import.assert_not_awaited()


def test_bulk_import_without_valid_rows_returns_400(user_client):
    client, service = user_client
    service.bulk_import.side_effect = BulkImportError("No valid users to create")

    response = client.post("/users/bulk", json={"users": [{"Nome": "A"}]})

    assert response.status_code == 400
