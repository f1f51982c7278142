"""
services.ticket_service - CRUD operations on Ticket records.

All session management is the caller's responsibility (open before,
close/commit after).  This keeps the service testable and allows
the caller to batch multiple operations in one transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models import (
    Ticket, TICKET_STATUSES, TICKET_PRIORITIES, DEFAULT_STATUS, DEFAULT_PRIORITY,
    new_id, utcnow,
)

# Fields a client may set directly
EDITABLE_FIELDS = (
    "title", "description", "priority", "category_id", "requester_id",
    "notes", "solution", "template_id",
)
NULLABLE_FIELDS = frozenset({
    "category_id", "requester_id", "notes", "solution", "template_id",
})


def apply_status(ticket: Ticket, status: str, now: datetime) -> None:
    """
    Set the status and stamp resolved_at / closed_at on the first
    transition into that state.  Later transitions keep the original stamp.
    """
    if status not in TICKET_STATUSES:
        raise ValueError(f"Invalid status {status!r}")
    ticket.status = status
    if status == "resolved" and ticket.resolved_at is None:
        ticket.resolved_at = now
    if status == "closed" and ticket.closed_at is None:
        ticket.closed_at = now


def _check_priority(priority: str) -> str:
    if priority not in TICKET_PRIORITIES:
        raise ValueError(f"Invalid priority {priority!r}")
    return priority


class TicketService:

    # ── Create ─────────────────────────────────────────────────────────

    @staticmethod
    def create(
        session: Session,
        data: dict,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ) -> Ticket:
        """
        Create a ticket from a JSON-ish dict.
        Required keys: title, description.
        """
        title = str(data.get("title") or "").strip()
        description = str(data.get("description") or "").strip()
        if not title:
            raise ValueError("Title is required")
        if not description:
            raise ValueError("Description is required")

        now = clock()
        ticket = Ticket(
            id=id_factory(),
            title=title,
            description=description,
            priority=_check_priority(data.get("priority") or DEFAULT_PRIORITY),
            created_at=now,
            updated_at=now,
        )
        for attr in NULLABLE_FIELDS:
            setattr(ticket, attr, data.get(attr) or None)
        apply_status(ticket, data.get("status") or DEFAULT_STATUS, now)

        session.add(ticket)
        session.flush()
        return ticket

    # ── Read ───────────────────────────────────────────────────────────

    @staticmethod
    def get(session: Session, ticket_id: str) -> Ticket | None:
        return session.get(Ticket, ticket_id)

    @staticmethod
    def list_all(session: Session) -> list[Ticket]:
        """Every ticket, newest first (legacy unpaginated listing)."""
        stmt = select(Ticket).order_by(Ticket.created_at.desc(), Ticket.id)
        return list(session.scalars(stmt).all())

    # ── Update ─────────────────────────────────────────────────────────

    @staticmethod
    def update(
        session: Session,
        ticket: Ticket,
        data: dict,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> Ticket:
        """Apply the keys present in data; absent keys are left alone."""
        now = clock()
        for attr in EDITABLE_FIELDS:
            if attr not in data:
                continue
            value = data[attr]
            if attr in NULLABLE_FIELDS:
                value = value or None
            elif attr == "priority":
                value = _check_priority(value)
            setattr(ticket, attr, value)

        if "status" in data:
            apply_status(ticket, data["status"], now)

        ticket.updated_at = now
        session.flush()
        return ticket

    # ── Delete ─────────────────────────────────────────────────────────

    @staticmethod
    def delete(session: Session, ticket: Ticket) -> None:
        session.delete(ticket)
        session.flush()
