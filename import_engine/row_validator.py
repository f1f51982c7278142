"""
import_engine.row_validator - Validate one normalised CSV row.

Single-responsibility: given a canonical-key row and a snapshot of the
reference data, return a ValidationResult.  Nothing here raises for bad
data and nothing touches the database; problems are reported as
human-readable messages so the preview can show every row at once.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from db.models import TICKET_STATUSES, TICKET_PRIORITIES

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DESCRIPTION_PLACEHOLDER = "Importerad utan beskrivning"
DUPLICATE_ID_MSG = "ID finns redan i databasen (skapas automatiskt vid import)"
DUPLICATE_EMAIL_MSG = "E-post finns redan i systemet"


@dataclass
class ValidationContext:
    """
    Reference data read once per preview.

    category_labels : labels as stored (messages list them verbatim)
    existing_keys   : ticket ids (exact match) or contact emails
                      (compared lower-cased)
    """
    category_labels: list[str] = field(default_factory=list)
    existing_keys: set[str] = field(default_factory=set)

    def __post_init__(self):
        self._labels_lower = {label.lower() for label in self.category_labels}

    def has_category(self, label: str) -> bool:
        return label.strip().lower() in self._labels_lower

    @classmethod
    def for_contacts(cls, emails: Iterable[str]) -> "ValidationContext":
        return cls(existing_keys={e.strip().lower() for e in emails if e})


@dataclass
class ValidationResult:
    draft: dict
    errors: list[str] = field(default_factory=list)
    is_duplicate: bool = False

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self, entity: str) -> dict:
        return {
            "valid": self.valid,
            "errors": self.errors,
            entity: self.draft,
            "isDuplicate": self.is_duplicate,
        }


def _text(row: dict, key: str) -> str:
    value = row.get(key)
    return value.strip() if isinstance(value, str) else ""


# ── Tickets ───────────────────────────────────────────────────────────

def validate_ticket_row(row: dict, ctx: ValidationContext) -> ValidationResult:
    draft = dict(row)
    errors: list[str] = []

    title = _text(draft, "title")
    if not title:
        errors.append("Titel saknas")

    # Missing description is filled in, not rejected.
    if not _text(draft, "description"):
        draft["description"] = title or DESCRIPTION_PLACEHOLDER

    status = _text(draft, "status")
    if status and status not in TICKET_STATUSES:
        errors.append(
            f"Ogiltig status: {status} (giltiga: {', '.join(TICKET_STATUSES)})"
        )

    priority = _text(draft, "priority")
    if priority and priority not in TICKET_PRIORITIES:
        errors.append(
            f"Ogiltig prioritet: {priority} (giltiga: {', '.join(TICKET_PRIORITIES)})"
        )

    category = _text(draft, "category")
    if category and not ctx.has_category(category):
        available = ", ".join(ctx.category_labels)
        errors.append(f'Kategori "{category}" finns inte (tillgängliga: {available})')

    ticket_id = _text(draft, "id")
    is_duplicate = bool(ticket_id) and ticket_id in ctx.existing_keys
    if is_duplicate:
        errors.append(DUPLICATE_ID_MSG)

    return ValidationResult(draft=draft, errors=errors, is_duplicate=is_duplicate)


# ── Contacts ──────────────────────────────────────────────────────────

def validate_contact_row(row: dict, ctx: ValidationContext) -> ValidationResult:
    draft = {
        "name": _text(row, "name"),
        "email": _text(row, "email"),
        "phone": _text(row, "phone") or None,
        "company": _text(row, "company") or None,
    }
    errors: list[str] = []

    if not draft["name"]:
        errors.append("Namn saknas")

    email = draft["email"]
    if not email:
        errors.append("Email saknas")
    elif not EMAIL_RE.match(email):
        errors.append("Ogiltig e-postadress")

    is_duplicate = bool(email) and email.lower() in ctx.existing_keys
    if is_duplicate:
        errors.append(DUPLICATE_EMAIL_MSG)

    return ValidationResult(draft=draft, errors=errors, is_duplicate=is_duplicate)
