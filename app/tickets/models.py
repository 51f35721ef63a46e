"""Document layout of tickets and their append-only streams."""

from __future__ import annotations

TICKETS = "tickets"

TIMELINE = "timeline"
INTERNAL_COMMENTS = "internalComments"

# Fields owned by the service; callers can never overwrite them through an update.
RESERVED_FIELDS = frozenset({"id", "createdAt", TIMELINE, INTERNAL_COMMENTS})

CLOSED_STATUS = "closed"
