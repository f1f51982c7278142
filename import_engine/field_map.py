"""
import_engine.field_map - CSV header ↔ canonical field-name mapping.

Exports are written with canonical (English, snake_case) headers, but
files coming back from users are often hand-made in Excel with Swedish
headers.  Both spellings map onto the same canonical keys here.
"""

from __future__ import annotations

from typing import Mapping

TICKET = "ticket"
CONTACT = "contact"

# Canonical field  →  accepted header spellings (matched case-insensitively)
TICKET_FIELDS: dict[str, tuple[str, ...]] = {
    "id":                ("ID",),
    "title":             ("Titel", "Title", "Rubrik"),
    "description":       ("Beskrivning", "Description"),
    "status":            ("Status",),
    "priority":          ("Prioritet", "Priority"),
    "category":          ("Kategori", "Category"),
    "requester_name":    ("Beställare Namn", "Requester Name", "Requester"),
    "requester_email":   ("Beställare Email", "Beställare E-post", "Requester Email"),
    "requester_phone":   ("Beställare Telefon", "Requester Phone"),
    "requester_company": ("Beställare Företag", "Requester Company"),
    "notes":             ("Anteckningar", "Notes"),
    "solution":          ("Lösning", "Solution"),
    "created_at":        ("Skapad", "Created", "Created At"),
    "updated_at":        ("Uppdaterad", "Updated", "Updated At"),
    "resolved_at":       ("Löst", "Resolved", "Resolved At"),
    "closed_at":         ("Stängd", "Closed", "Closed At"),
}

CONTACT_FIELDS: dict[str, tuple[str, ...]] = {
    "name":       ("Namn", "Name"),
    "email":      ("Email", "E-post", "E-mail", "Mail"),
    "phone":      ("Telefon", "Phone", "Tel"),
    "company":    ("Företag", "Avdelning", "Company", "Department"),
    "created_at": ("Skapad", "Created", "Created At"),
}


def _build_lookup(fields: dict[str, tuple[str, ...]]) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for canonical, aliases in fields.items():
        lookup[canonical] = canonical
        for alias in aliases:
            lookup[alias.strip().lower()] = canonical
    return lookup


_LOOKUPS: dict[str, dict[str, str]] = {
    TICKET: _build_lookup(TICKET_FIELDS),
    CONTACT: _build_lookup(CONTACT_FIELDS),
}


def canonical_name(header: str, entity: str) -> str:
    """Canonical key for one header; unknown headers come back lower-cased."""
    key = (header or "").strip().lower()
    return _LOOKUPS[entity].get(key, key)


def normalize(row: Mapping[str, str], entity: str) -> dict[str, str]:
    """
    Rename the keys of one CSV row to canonical field names.

    When several headers land on the same field (e.g. both "Företag"
    and "Avdelning"), the first non-empty value is kept.
    Normalising an already-normalised row returns it unchanged.
    """
    if entity not in _LOOKUPS:
        raise ValueError(f"Unknown entity {entity!r}")

    out: dict[str, str] = {}
    for header, value in row.items():
        key = canonical_name(header, entity)
        if key in out and (out[key] or "").strip():
            continue
        out[key] = value
    return out
