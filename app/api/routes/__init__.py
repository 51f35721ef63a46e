"""Route modules exposed by the API package."""

from . import configuration, ping, tickets, uploads, users

__all__ = ["configuration", "ping", "tickets", "uploads", "users"]
