import pytest

from app.configuration.service import EMAIL_SETTINGS, GENERAL_SETTINGS, SETTINGS_DOCUMENT_ID
from app.seed import DEFAULT_EMAIL_SETTINGS, prepare_user, seed
from app.users.passwords import hash_password, verify_password


def test_prepare_user_hashes_plaintext_once():
    hashed = hash_password("pw")

    assert verify_password(prepare_user({"password": "pw"})["password"], "pw")
    assert prepare_user({"password": hashed})["password"] == hashed


@pytest.mark.asyncio
async def test_seed_keeps_ids_and_fills_missing_settings(store):
    await store.set(GENERAL_SETTINGS, SETTINGS_DOCUMENT_ID, {"companyName": "Acme"})
    data = {
        "users": [{"id": "u1", "email": "ana@example.com", "password": "pw"}],
        "tickets": [{"id": "t1", "title": "VPN", "timeline": []}, {"title": "no id"}],
        "categories": [{"id": "c1", "name": "Hardware", "isActive": True}],
    }

    counts = await seed(store, data)

    assert counts == {"users": 1, "tickets": 1, "categories": 1, "slaConfig": 0}
    user = await store.get("users", "u1")
    assert verify_password(user["password"], "pw")
    assert (await store.get("tickets", "t1"))["title"] == "VPN"
    assert await store.get(GENERAL_SETTINGS, SETTINGS_DOCUMENT_ID) == {"id": "main", "companyName": "Acme"}
    email_settings = await store.get(EMAIL_SETTINGS, SETTINGS_DOCUMENT_ID)
    assert {key: email_settings[key] for key in DEFAULT_EMAIL_SETTINGS} == DEFAULT_EMAIL_SETTINGS


@pytest.mark.asyncio
async def test_seed_twice_overwrites(store):
    data = {"categories": [{"id": "c1", "name": "Hardware"}]}

    await seed(store, data)
    await seed(store, {"categories": [{"id": "c1", "name": "Hardware & Peripherals"}]})

    categories = await store.list("categories")
    assert [category["name"] for category in categories] == ["Hardware & Peripherals"]
