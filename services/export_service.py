"""
services.export_service - CSV downloads for tickets and contacts.

Related labels (category, requester) are resolved through maps built
once from the full tables instead of one query per ticket.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models import Category, Contact
from import_engine import csv_codec
from services.search_service import SearchService, TicketFilter

logger = logging.getLogger(__name__)

# (key, header) - order is part of the download contract
TICKET_EXPORT_COLUMNS = (
    ("id", "id"),
    ("title", "title"),
    ("description", "description"),
    ("status", "status"),
    ("priority", "priority"),
    ("category", "category"),
    ("requester_name", "requester_name"),
    ("requester_email", "requester_email"),
    ("notes", "notes"),
    ("solution", "solution"),
    ("created_at", "created_at"),
    ("updated_at", "updated_at"),
    ("resolved_at", "resolved_at"),
    ("closed_at", "closed_at"),
)

CONTACT_EXPORT_COLUMNS = (
    ("name", "Namn"),
    ("email", "Email"),
    ("phone", "Telefon"),
    ("company", "Företag"),
    ("created_at", "Skapad"),
)

TICKET_EXPORT_PREFIX = "tickets-export"
CONTACT_EXPORT_PREFIX = "kontakter"


def export_filename(prefix: str, today: date) -> str:
    return f"{prefix}-{today.isoformat()}.csv"


def export_tickets(session: Session, f: TicketFilter) -> str:
    """All tickets matching the filter as CSV text, newest first."""
    tickets = SearchService.all_matching(session, f)

    categories = {c.id: c.label for c in session.scalars(select(Category))}
    contacts = {c.id: (c.name, c.email) for c in session.scalars(select(Contact))}

    rows = []
    for t in tickets:
        name, email = contacts.get(t.requester_id, ("", "")) if t.requester_id else ("", "")
        rows.append({
            **t.to_dict(),
            "category": categories.get(t.category_id, "") if t.category_id else "",
            "requester_name": name,
            "requester_email": email,
        })

    logger.info(f"Exporting {len(rows)} tickets")
    return csv_codec.encode(rows, TICKET_EXPORT_COLUMNS)


def list_contacts(session: Session) -> list[Contact]:
    stmt = select(Contact).order_by(Contact.created_at.desc(), Contact.id)
    return list(session.scalars(stmt).all())


def export_contacts(session: Session) -> str | None:
    """All contacts as CSV text, or None when there is nothing to export."""
    contacts = list_contacts(session)
    if not contacts:
        return None
    logger.info(f"Exporting {len(contacts)} contacts")
    return csv_codec.encode(contacts, CONTACT_EXPORT_COLUMNS)
