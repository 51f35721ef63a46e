import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from app.configuration.service import EMAIL_SETTINGS, SETTINGS_DOCUMENT_ID
from app.db.store import DocumentStoreError
from app.metrics.definitions import NOTIFICATION_FAILURES, NOTIFICATIONS_SENT
from app.tickets.models import INTERNAL_COMMENTS, TICKETS, TIMELINE
from app.tickets.service import TicketNotFoundError, TicketService


async def _add_user(store, *, name, role, email=None):
    data = {"name": name, "role": role}
    if email:
        data["email"] = email
    return await store.add("users", data)


async def _open_ticket(ticket_service, owner_id, **extra):
    payload = {"title": "Printer jam", "priority": "high", "status": "open", "userId": owner_id, **extra}
    return await ticket_service.create_ticket(payload)


@pytest.mark.asyncio
async def test_create_ticket_starts_with_empty_streams(ticket_service, store, dispatcher):
    ticket = await ticket_service.create_ticket(
        {
            "title": "VPN down",
            "priority": "medium",
            "userId": "u1",
            TIMELINE: [{"message": "smuggled"}],
            INTERNAL_COMMENTS: [{"message": "smuggled"}],
        }
    )
    await dispatcher.drain()

    stored = await store.get(TICKETS, ticket["id"])
    assert stored[TIMELINE] == []
    assert stored[INTERNAL_COMMENTS] == []
    assert stored["createdAt"] == stored["updatedAt"]
    assert ticket == stored


@pytest.mark.asyncio
async def test_create_ticket_notifies_only_technicians_with_email(ticket_service, store, sender, dispatcher):
    await _add_user(store, name="Tech A", role="technician", email="a@example.com")
    await _add_user(store, name="Tech B", role="technician")
    await _add_user(store, name="Admin", role="admin", email="admin@example.com")
    owner = await _add_user(store, name="Ana", role="user", email="ana@example.com")

    await _open_ticket(ticket_service, owner)
    await dispatcher.drain()

    assert sender.recipients() == ["a@example.com"]
    assert sender.sent[0][1] == "New ticket opened: Printer jam"


@pytest.mark.asyncio
async def test_create_ticket_fan_out_survives_one_failed_recipient(
    ticket_service, store, sender, dispatcher, metrics
):
    sender.failing.add("b@example.com")
    for index, email in enumerate(("a@example.com", "b@example.com", "c@example.com")):
        await _add_user(store, name=f"Tech {index}", role="technician", email=email)

    ticket = await _open_ticket(ticket_service, "owner")
    await dispatcher.drain()

    assert sorted(sender.recipients()) == ["a@example.com", "c@example.com"]
    assert await store.get(TICKETS, ticket["id"]) is not None
    assert metrics.counter(NOTIFICATIONS_SENT).value(labels={"kind": "ticket_created"}) == 2
    assert metrics.counter(NOTIFICATION_FAILURES).value(labels={"kind": "ticket_created"}) == 1


@pytest.mark.asyncio
async def test_create_ticket_returns_before_notifications_finish(ticket_service, store, sender, dispatcher):
    await _add_user(store, name="Tech", role="technician", email="tech@example.com")
    sender.gate = asyncio.Event()

    ticket = await _open_ticket(ticket_service, "owner")

    assert ticket["id"]
    assert dispatcher.pending == 1
    assert sender.sent == []

    sender.gate.set()
    await dispatcher.drain()
    assert sender.recipients() == ["tech@example.com"]


@pytest.mark.asyncio
async def test_create_ticket_respects_disabled_new_ticket_flag(ticket_service, store, sender, dispatcher):
    await store.set(EMAIL_SETTINGS, SETTINGS_DOCUMENT_ID, {"notifyOnNew": False})
    await _add_user(store, name="Tech", role="technician", email="tech@example.com")

    await _open_ticket(ticket_service, "owner")
    await dispatcher.drain()

    assert sender.sent == []


@pytest.mark.asyncio
async def test_create_ticket_store_failure_schedules_nothing(dispatcher):
    store = AsyncMock()
    store.add.side_effect = DocumentStoreError("down")
    service = TicketService(store, dispatcher)

    with pytest.raises(DocumentStoreError):
        await service.create_ticket({"title": "x", "priority": "low", "userId": "u"})

    assert dispatcher.pending == 0


@pytest.mark.asyncio
async def test_update_missing_ticket_raises_not_found(ticket_service, store):
    with pytest.raises(TicketNotFoundError):
        await ticket_service.update_ticket("missing", {"status": "closed"})
    assert await store.list(TICKETS) == []


@pytest.mark.asyncio
async def test_status_change_sends_exactly_one_email(ticket_service, store, sender, dispatcher):
    owner = await _add_user(store, name="Ana", role="user", email="ana@example.com")
    ticket = await _open_ticket(ticket_service, owner)
    await dispatcher.drain()

    await ticket_service.update_ticket(ticket["id"], {"status": "in_progress"})
    await dispatcher.drain()

    assert sender.recipients() == ["ana@example.com"]
    to, subject, html = sender.sent[0]
    assert subject == "Ticket status updated: Printer jam"
    assert "in_progress" in html
    assert "Ana" in html


@pytest.mark.asyncio
async def test_update_without_status_change_sends_nothing(ticket_service, store, sender, dispatcher):
    owner = await _add_user(store, name="Ana", role="user", email="ana@example.com")
    ticket = await _open_ticket(ticket_service, owner)
    await dispatcher.drain()

    await ticket_service.update_ticket(ticket["id"], {"priority": "low"})
    await ticket_service.update_ticket(ticket["id"], {"status": "open"})
    await dispatcher.drain()

    assert sender.sent == []
    assert (await store.get(TICKETS, ticket["id"]))["priority"] == "low"


@pytest.mark.asyncio
async def test_closing_ticket_uses_close_flag(ticket_service, store, sender, dispatcher):
    await store.set(EMAIL_SETTINGS, SETTINGS_DOCUMENT_ID, {"notifyOnClose": False, "notifyOnUpdate": True})
    owner = await _add_user(store, name="Ana", role="user", email="ana@example.com")
    ticket = await _open_ticket(ticket_service, owner)

    await ticket_service.update_ticket(ticket["id"], {"status": "closed"})
    await dispatcher.drain()

    assert sender.sent == []


@pytest.mark.asyncio
async def test_status_change_for_owner_without_email_is_skipped(ticket_service, store, sender, dispatcher):
    owner = await _add_user(store, name="Ana", role="user")
    ticket = await _open_ticket(ticket_service, owner)

    await ticket_service.update_ticket(ticket["id"], {"status": "closed"})
    await dispatcher.drain()

    assert sender.sent == []


@pytest.mark.asyncio
async def test_update_returns_patch_and_keeps_reserved_fields(ticket_service, store, dispatcher):
    ticket = await _open_ticket(ticket_service, "owner")
    await ticket_service.append_timeline_entry(ticket["id"], {"userName": "Ana", "message": "hi"})

    result = await ticket_service.update_ticket(
        ticket["id"],
        {"priority": "low", TIMELINE: [], "createdAt": "1999-01-01T00:00:00.000Z", "id": "other"},
    )
    await dispatcher.drain()

    assert result["id"] == ticket["id"]
    assert result["priority"] == "low"
    assert "updatedAt" in result
    assert TIMELINE not in result
    stored = await store.get(TICKETS, ticket["id"])
    assert len(stored[TIMELINE]) == 1
    assert stored["createdAt"] == ticket["createdAt"]


@pytest.mark.asyncio
async def test_updated_at_never_moves_backwards(store, dispatcher, clock):
    clock.step = timedelta(seconds=-5)
    service = TicketService(store, dispatcher, clock=clock)
    ticket = await _open_ticket(service, "owner")

    first = await service.update_ticket(ticket["id"], {"priority": "low"})
    second = await service.update_ticket(ticket["id"], {"priority": "high"})
    await dispatcher.drain()

    assert ticket["createdAt"] <= first["updatedAt"] <= second["updatedAt"]


@pytest.mark.asyncio
async def test_timeline_entry_on_missing_ticket_creates_nothing(ticket_service, store, dispatcher):
    with pytest.raises(TicketNotFoundError):
        await ticket_service.append_timeline_entry("missing", {"userName": "Ana", "message": "hi"})
    await dispatcher.drain()

    assert await store.get(TICKETS, "missing") is None
    assert dispatcher.pending == 0


@pytest.mark.asyncio
async def test_timeline_entry_gets_server_id_and_timestamp(ticket_service, dispatcher):
    ticket = await _open_ticket(ticket_service, "owner")

    entry = await ticket_service.append_timeline_entry(
        ticket["id"], {"id": "client-id", "userName": "Ana", "message": "hi", "createdAt": "bogus"}
    )
    await dispatcher.drain()

    assert entry["id"] != "client-id"
    assert entry["createdAt"] != "bogus"
    assert entry["createdAt"].endswith("Z")
    assert entry["message"] == "hi"


@pytest.mark.asyncio
async def test_concurrent_timeline_appends_are_all_kept(ticket_service, store, dispatcher):
    ticket = await _open_ticket(ticket_service, "owner")

    entries = await asyncio.gather(
        *(
            ticket_service.append_timeline_entry(ticket["id"], {"userName": "Ana", "message": f"m{index}"})
            for index in range(20)
        )
    )
    await dispatcher.drain()

    stored = await store.get(TICKETS, ticket["id"])
    assert len(stored[TIMELINE]) == 20
    assert {entry["id"] for entry in stored[TIMELINE]} == {entry["id"] for entry in entries}


@pytest.mark.asyncio
async def test_reply_notification_mentions_author_and_new_status(ticket_service, store, sender, dispatcher):
    owner = await _add_user(store, name="Ana", role="user", email="ana@example.com")
    ticket = await _open_ticket(ticket_service, owner)
    await dispatcher.drain()

    await ticket_service.append_timeline_entry(ticket["id"], {"userName": "Bruno", "message": "Fixed <now>"})
    await store.update(TICKETS, ticket["id"], {"status": "resolved"})
    await dispatcher.drain()

    assert sender.recipients() == ["ana@example.com"]
    _, subject, html = sender.sent[0]
    assert subject == "New reply on your ticket: Printer jam"
    assert "Bruno" in html
    assert "Fixed &lt;now&gt;" in html
    assert "resolved" in html


@pytest.mark.asyncio
async def test_reply_without_status_change_has_no_status_note(ticket_service, store, sender, dispatcher):
    owner = await _add_user(store, name="Ana", role="user", email="ana@example.com")
    ticket = await _open_ticket(ticket_service, owner)

    await ticket_service.append_timeline_entry(ticket["id"], {"userName": "Bruno", "message": "On it"})
    await dispatcher.drain()

    assert "also changed" not in sender.sent[0][2]


@pytest.mark.asyncio
async def test_internal_comment_never_notifies(ticket_service, store, sender, dispatcher):
    owner = await _add_user(store, name="Ana", role="user", email="ana@example.com")
    ticket = await _open_ticket(ticket_service, owner)

    comment = await ticket_service.append_internal_comment(
        ticket["id"], {"userName": "Bruno", "message": "check logs"}
    )
    await dispatcher.drain()

    assert sender.sent == []
    stored = await store.get(TICKETS, ticket["id"])
    assert stored[INTERNAL_COMMENTS] == [comment]
    assert stored[TIMELINE] == []


@pytest.mark.asyncio
async def test_internal_comment_on_missing_ticket_raises(ticket_service):
    with pytest.raises(TicketNotFoundError):
        await ticket_service.append_internal_comment("missing", {"userName": "Bruno", "message": "x"})


@pytest.mark.asyncio
async def test_delete_missing_ticket_raises(ticket_service):
    with pytest.raises(TicketNotFoundError):
        await ticket_service.delete_ticket("missing")


@pytest.mark.asyncio
async def test_null_status_is_not_a_status_change(ticket_service, store, sender, dispatcher):
    owner = await _add_user(store, name="Ana", role="user", email="ana@example.com")
    ticket = await _open_ticket(ticket_service, owner)
    await dispatcher.drain()

    result = await ticket_service.update_ticket(ticket["id"], {"status": None, "priority": "low"})
    await dispatcher.drain()

    assert "status" not in result
    assert sender.sent == []
    stored = await store.get(TICKETS, ticket["id"])
    assert stored["status"] == "open"
    assert stored["priority"] == "low"
