"""Ticket lifecycle and notification workflow."""

from .models import INTERNAL_COMMENTS, TICKETS, TIMELINE
from .service import TicketNotFoundError, TicketService, TicketServiceError

__all__ = [
    "INTERNAL_COMMENTS",
    "TICKETS",
    "TIMELINE",
    "TicketNotFoundError",
    "TicketService",
    "TicketServiceError",
]
