"""Categories, SLA configuration and system settings."""

from .service import (
    CategoryService,
    NotificationFlags,
    SettingsService,
    SlaService,
    load_notification_flags,
)

__all__ = [
    "CategoryService",
    "NotificationFlags",
    "SettingsService",
    "SlaService",
    "load_notification_flags",
]
