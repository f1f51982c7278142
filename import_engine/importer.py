"""
import_engine.importer - Two-phase (preview → confirm) import orchestrator.

preview  : csv_codec → field_map → row_validator, against one snapshot of
           the reference data.  Read-only.
confirm  : inserts the rows the user accepted, all inside one
           transaction.  Every row gets its own SAVEPOINT so a bad row is
           rolled back on its own and the rest of the batch still commits.
           Only a failure outside the per-row savepoints (loading lookups,
           the final COMMIT) aborts the whole batch.

The client carries the batch between the two calls (the preview
results are sent back to confirm), so nothing is stored in between.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models import (
    Category, Contact, Ticket, DEFAULT_PRIORITY, DEFAULT_STATUS, new_id, utcnow,
)
from import_engine import csv_codec
from import_engine.field_map import CONTACT, TICKET, normalize
from import_engine.report import ImportPreview, ImportReport
from import_engine.row_validator import (
    ValidationContext,
    ValidationResult,
    validate_contact_row,
    validate_ticket_row,
)
from services.ticket_service import apply_status

logger = logging.getLogger(__name__)


class RowError(Exception):
    """Raised when a confirmed row cannot be inserted."""
    pass


class CsvFormatError(ValueError):
    """Uploaded content has no header row or no data rows."""
    pass


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


class ImportPipeline:
    """
    Shared preview/confirm skeleton.  Subclasses supply the entity name,
    the reference-data snapshot, the validator and the per-row insert.
    """

    entity: str = ""

    def __init__(
        self,
        session: Session,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        self.session = session
        self.clock = clock
        self.id_factory = id_factory

    # ── Phase 1 ────────────────────────────────────────────────────────

    def preview(self, content: str | bytes) -> ImportPreview:
        records = csv_codec.decode(content)
        if not records:
            raise CsvFormatError("CSV file is empty or invalid")

        ctx = self.snapshot()
        preview = ImportPreview(entity=self.entity)
        for record in records:
            row = normalize(record, self.entity)
            preview.results.append(self.validate(row, ctx))

        logger.info(
            f"{self.entity} import preview: {preview.total} rows, "
            f"{preview.valid} valid, {preview.invalid} invalid, "
            f"{preview.duplicates} duplicates"
        )
        return preview

    # ── Phase 2 ────────────────────────────────────────────────────────

    def confirm(self, rows: Iterable) -> ImportReport:
        report = ImportReport()
        session = self.session

        try:
            lookups = self.load_lookups()
            for idx, row in enumerate(rows, start=1):
                try:
                    if not isinstance(row, dict):
                        raise RowError(f"row {idx} is not an object")
                    with session.begin_nested():
                        after_commit = self.insert_row(row, lookups)
                    if after_commit:
                        after_commit()
                    report.created += 1
                except Exception as exc:
                    reason = self.describe_failure(row, exc)
                    logger.warning(f"{self.entity} import row {idx} failed: {reason}")
                    report.add_error(reason)

            session.commit()
        except Exception:
            session.rollback()
            logger.exception(f"{self.entity} import transaction failed")
            raise

        logger.info(
            f"{self.entity} import confirmed: {report.created} created, "
            f"{report.failed} failed"
        )
        return report

    # ── Hooks ──────────────────────────────────────────────────────────

    def snapshot(self) -> ValidationContext:
        raise NotImplementedError

    def validate(self, row: dict, ctx: ValidationContext) -> ValidationResult:
        raise NotImplementedError

    def load_lookups(self):
        return None

    def insert_row(self, row: dict, lookups) -> Callable[[], None] | None:
        """
        Add one entity to the session.  May return a callback that is run
        only once the row's savepoint has been released.
        """
        raise NotImplementedError

    def describe_failure(self, row, exc: Exception) -> str:
        return str(exc)


# ── Tickets ───────────────────────────────────────────────────────────

class _TicketLookups:
    """Case-insensitive category and contact maps, built once per batch."""

    def __init__(self, categories: list[Category], contacts: list[Contact]):
        self.category_by_label: dict[str, str] = {}
        for cat in categories:
            self.category_by_label.setdefault(cat.label.lower(), cat.id)

        self.contact_by_name: dict[str, str] = {}
        self.contact_by_email: dict[str, str] = {}
        self.created_in_batch: set[str] = set()
        for contact in contacts:
            self.remember_contact(contact.id, contact.name, contact.email)

    def remember_contact(self, contact_id: str, name: str, email: str):
        if name:
            self.contact_by_name.setdefault(name.lower(), contact_id)
        if email:
            self.contact_by_email.setdefault(email.lower(), contact_id)

    def category_id(self, label: str) -> str | None:
        if not label:
            return None
        return self.category_by_label.get(label.lower())

    def contact_id(self, name: str, email: str) -> str | None:
        return (
            (self.contact_by_name.get(name.lower()) if name else None)
            or (self.contact_by_email.get(email.lower()) if email else None)
        )


class TicketImportPipeline(ImportPipeline):
    entity = TICKET

    def snapshot(self) -> ValidationContext:
        labels = self.session.scalars(
            select(Category.label).order_by(Category.position, Category.created_at)
        ).all()
        ids = self.session.scalars(select(Ticket.id)).all()
        return ValidationContext(category_labels=list(labels), existing_keys=set(ids))

    def validate(self, row: dict, ctx: ValidationContext) -> ValidationResult:
        return validate_ticket_row(row, ctx)

    def load_lookups(self) -> _TicketLookups:
        categories = self.session.scalars(select(Category)).all()
        contacts = self.session.scalars(
            select(Contact).order_by(Contact.created_at)
        ).all()
        return _TicketLookups(list(categories), list(contacts))

    def insert_row(self, row: dict, lookups: _TicketLookups):
        title = _clean(row.get("title"))
        if not title:
            raise RowError("title is required")

        category_id = lookups.category_id(_clean(row.get("category")))
        requester_id, new_contact = self._resolve_requester(row, lookups)

        now = self.clock()
        ticket = Ticket(
            id=self.id_factory(),                 # never the id from the file
            title=title,
            description=_clean(row.get("description")) or title,
            priority=_clean(row.get("priority")) or DEFAULT_PRIORITY,
            category_id=category_id,
            requester_id=requester_id,
            notes=_clean(row.get("notes")) or None,
            solution=_clean(row.get("solution")) or None,
            created_at=now,
            updated_at=now,
        )
        apply_status(ticket, _clean(row.get("status")) or DEFAULT_STATUS, now)
        self.session.add(ticket)

        if new_contact is None:
            return None

        def _remember():
            lookups.remember_contact(new_contact.id, new_contact.name, new_contact.email)
            lookups.created_in_batch.add(new_contact.id)
            logger.info(f"Created contact {new_contact.email} for imported ticket {title!r}")
        return _remember

    def _resolve_requester(self, row: dict, lookups: _TicketLookups):
        name = _clean(row.get("requester_name"))
        email = _clean(row.get("requester_email"))
        if not (name or email):
            return None, None

        contact_id = lookups.contact_id(name, email)
        if contact_id:
            if contact_id in lookups.created_in_batch:
                logger.info(f"Reusing contact created earlier in this batch for {email or name}")
            return contact_id, None

        if not (name and email):
            return None, None

        contact = Contact(
            id=self.id_factory(),
            name=name,
            email=email,
            phone=_clean(row.get("requester_phone")) or None,
            company=_clean(row.get("requester_company")) or None,
            created_at=self.clock(),
        )
        self.session.add(contact)
        self.session.flush()                  # contact row must exist before the FK
        return contact.id, contact

    def describe_failure(self, row, exc: Exception) -> str:
        title = row.get("title") if isinstance(row, dict) else None
        return f'Failed to import ticket "{title or ""}": {exc}'


# ── Contacts ──────────────────────────────────────────────────────────

class ContactImportPipeline(ImportPipeline):
    entity = CONTACT

    def snapshot(self) -> ValidationContext:
        emails = self.session.scalars(select(Contact.email)).all()
        return ValidationContext.for_contacts(emails)

    def validate(self, row: dict, ctx: ValidationContext) -> ValidationResult:
        return validate_contact_row(row, ctx)

    def insert_row(self, row: dict, lookups):
        name = _clean(row.get("name"))
        email = _clean(row.get("email"))
        if not name or not email:
            raise RowError("name and email are required")

        self.session.add(Contact(
            id=self.id_factory(),
            name=name,
            email=email,
            phone=_clean(row.get("phone")) or None,
            company=_clean(row.get("company")) or None,
            created_at=self.clock(),
        ))
        return None

    def describe_failure(self, row, exc: Exception) -> str:
        who = ""
        if isinstance(row, dict):
            who = _clean(row.get("name")) or _clean(row.get("email"))
        return f"{who}: {exc}"
