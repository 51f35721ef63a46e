"""Subject lines and HTML bodies for the notifications the helpdesk sends."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class EmailMessage:
    subject: str
    html: str


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return escape(str(value))


def new_ticket_message(ticket: Mapping[str, Any]) -> EmailMessage:
    title = ticket.get("title")
    return EmailMessage(
        subject=f"New ticket opened: {title}",
        html=(
            "<p>A new ticket was opened in the helpdesk.</p>"
            f"<p><b>Title:</b> {_text(title)}</p>"
            f"<p><b>Priority:</b> {_text(ticket.get('priority'))}</p>"
            "<p>Check the dashboard for details.</p>"
        ),
    )


def status_changed_message(ticket: Mapping[str, Any], new_status: Any, user: Mapping[str, Any]) -> EmailMessage:
    title = ticket.get("title")
    return EmailMessage(
        subject=f"Ticket status updated: {title}",
        html=(
            f"<p>Hello, {_text(user.get('name'), 'there')}!</p>"
            f"<p>The status of your ticket \"{_text(title)}\" changed to: <b>{_text(new_status)}</b>.</p>"
            "<p>Visit the portal for details.</p>"
        ),
    )


def new_reply_message(
    ticket: Mapping[str, Any],
    entry: Mapping[str, Any],
    user: Mapping[str, Any],
    *,
    new_status: Any = None,
) -> EmailMessage:
    title = ticket.get("title")
    status_note = ""
    if new_status is not None:
        status_note = f"<p>The status of your ticket also changed to: <b>{_text(new_status)}</b>.</p>"
    return EmailMessage(
        subject=f"New reply on your ticket: {title}",
        html=(
            f"<p>Hello, {_text(user.get('name'), 'there')}!</p>"
            f"<p>There is a new reply on your ticket \"{_text(title)}\".</p>"
            f"<p><b>Comment from {_text(entry.get('userName'), 'support')}:</b></p>"
            '<blockquote style="border-left: 2px solid #ccc; padding-left: 1em; margin-left: 1em; font-style: italic;">'
            f"{_text(entry.get('message'))}"
            "</blockquote>"
            f"{status_note}"
            "<p>Visit the portal for details.</p>"
        ),
    )


def sample_message() -> EmailMessage:
    return EmailMessage(
        subject="Helpdesk test email",
        html="<p>This is a test email sent by the helpdesk.</p>",
    )
