"""Email notification delivery."""

from .dispatcher import NotificationDispatcher
from .messages import EmailMessage
from .sender import EmailSender, NotificationError, ResendEmailSender

__all__ = [
    "EmailMessage",
    "EmailSender",
    "NotificationDispatcher",
    "NotificationError",
    "ResendEmailSender",
]
