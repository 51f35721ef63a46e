from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

from app.configuration.service import load_notification_flags
from app.core.timestamps import Clock, next_timestamp, to_iso, utc_now
from app.db.store import Document, DocumentStore, with_id
from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.messages import new_reply_message, new_ticket_message, status_changed_message
from app.users.models import Role
from app.users.service import UserService

from .models import CLOSED_STATUS, INTERNAL_COMMENTS, RESERVED_FIELDS, TICKETS, TIMELINE

logger = logging.getLogger(__name__)


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketNotFoundError(TicketServiceError):
    """Raised when a ticket could not be located."""


class TicketService:
    """Ticket lifecycle: creation, updates and the timeline/internal comment streams.

    Every operation is a fresh round trip to the document store. Notifications
    are handed to the dispatcher after the primary write succeeded and never
    influence the result returned to the caller.
    """

    def __init__(
        self,
        store: DocumentStore,
        dispatcher: NotificationDispatcher,
        *,
        users: UserService | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._users = users or UserService(store, clock=clock)
        self._clock = clock

    async def list_tickets(self) -> list[Document]:
        return await self._store.list(TICKETS)

    async def get_ticket(self, ticket_id: str) -> Document:
        ticket = await self._store.get(TICKETS, ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def delete_ticket(self, ticket_id: str) -> None:
        if not await self._store.delete(TICKETS, ticket_id):
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

    async def create_ticket(self, payload: Mapping[str, Any]) -> Document:
        now = to_iso(self._clock())
        data = {
            **{key: value for key, value in payload.items() if key != "id"},
            "createdAt": now,
            "updatedAt": now,
            TIMELINE: [],
            INTERNAL_COMMENTS: [],
        }
        ticket_id = await self._store.add(TICKETS, data)
        ticket = with_id(ticket_id, data)
        logger.info("Created ticket %s", ticket_id)

        self._dispatcher.submit(self._notify_technicians(ticket), kind="ticket_created")
        return ticket

    async def update_ticket(self, ticket_id: str, patch: Mapping[str, Any]) -> Document:
        """Merge ``patch`` into the ticket and return the id with the fields written.

        The stored document is read first so a status change can be detected;
        after the merge the previous status is no longer recoverable.
        """
        before = await self._store.get(TICKETS, ticket_id)
        if before is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        changes = {key: value for key, value in patch.items() if key not in RESERVED_FIELDS}
        if "status" in changes and changes["status"] is None:
            # A ticket always keeps a status; null is not a transition.
            del changes["status"]
        changes["updatedAt"] = next_timestamp(
            self._clock(), before.get("updatedAt") or before.get("createdAt")
        )
        if not await self._store.update(TICKETS, ticket_id, changes):
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        if "status" in changes and changes["status"] != before.get("status"):
            logger.info(
                "Ticket %s status changed %r -> %r", ticket_id, before.get("status"), changes["status"]
            )
            self._dispatcher.submit(
                self._notify_status_change(before, changes["status"]), kind="status_changed"
            )
        return with_id(ticket_id, changes)

    async def append_timeline_entry(self, ticket_id: str, payload: Mapping[str, Any]) -> Document:
        before = await self._store.get(TICKETS, ticket_id)
        if before is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        entry = self._new_entry(payload)
        if not await self._store.array_append(TICKETS, ticket_id, TIMELINE, entry):
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        self._dispatcher.submit(self._notify_reply(ticket_id, before, entry), kind="timeline_reply")
        return entry

    async def append_internal_comment(self, ticket_id: str, payload: Mapping[str, Any]) -> Document:
        comment = self._new_entry(payload)
        if not await self._store.array_append(TICKETS, ticket_id, INTERNAL_COMMENTS, comment):
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return comment

    def _new_entry(self, payload: Mapping[str, Any]) -> Document:
        fields = {key: value for key, value in payload.items() if key not in ("id", "createdAt")}
        return {"id": uuid.uuid4().hex, **fields, "createdAt": to_iso(self._clock())}

    async def _owner_email(self, ticket: Mapping[str, Any]) -> tuple[Document, str] | None:
        owner = await self._users.find(ticket.get("userId"))
        if owner is None or not owner.get("email"):
            logger.info("Ticket %s owner has no email address; skipping notification", ticket.get("id"))
            return None
        return owner, owner["email"]

    async def _notify_technicians(self, ticket: Document) -> None:
        flags = await load_notification_flags(self._store)
        if not flags.on_new:
            return

        technicians = await self._users.with_role(Role.TECHNICIAN)
        recipients = [technician["email"] for technician in technicians if technician.get("email")]
        if not recipients:
            logger.info("No technicians with an email address to notify about ticket %s", ticket["id"])
            return

        message = new_ticket_message(ticket)
        await self._dispatcher.fan_out(recipients, message.subject, message.html, kind="ticket_created")

    async def _notify_status_change(self, ticket: Document, new_status: Any) -> None:
        flags = await load_notification_flags(self._store)
        if not (flags.on_close if new_status == CLOSED_STATUS else flags.on_update):
            return

        resolved = await self._owner_email(ticket)
        if resolved is None:
            return
        owner, email = resolved
        message = status_changed_message(ticket, new_status, owner)
        await self._dispatcher.deliver(email, message.subject, message.html, kind="status_changed")

    async def _notify_reply(self, ticket_id: str, before: Document, entry: Document) -> None:
        flags = await load_notification_flags(self._store)
        if not flags.on_update:
            return

        resolved = await self._owner_email(before)
        if resolved is None:
            return
        owner, email = resolved

        # A status change may have been written alongside this reply.
        after = await self._store.get(TICKETS, ticket_id)
        new_status = None
        if after is not None and after.get("status") != before.get("status"):
            new_status = after.get("status")

        message = new_reply_message(before, entry, owner, new_status=new_status)
        await self._dispatcher.deliver(email, message.subject, message.html, kind="timeline_reply")
