"""
db.models - SQLAlchemy ORM declarations.

Tables
------
categories           - ticket categories, looked up by label on import.
contacts             - requesters.  email is unique ignoring case.
tickets              - one row per ticket.  status / priority are guarded
                       by CHECK constraints so bad values fail on insert.
ticket_comments      - soft-deleted via deleted_at.
tags, ticket_tags    - free-form labels, many-to-many.
ticket_field_values  - custom field values captured from ticket templates.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, ForeignKey, Index,
    Table, CheckConstraint, UniqueConstraint, func,
)
from sqlalchemy.orm import DeclarativeBase, relationship


TICKET_STATUSES = ("open", "in-progress", "waiting", "resolved", "closed")
TICKET_PRIORITIES = ("low", "medium", "high", "critical")

DEFAULT_STATUS = "open"
DEFAULT_PRIORITY = "medium"


def utcnow() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Default id generator."""
    return str(uuid.uuid4())


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _in_list(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Base(DeclarativeBase):
    pass


ticket_tags = Table(
    "ticket_tags",
    Base.metadata,
    Column("ticket_id", String(36),
           ForeignKey("tickets.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(36),
           ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"

    id         = Column(String(36), primary_key=True, default=new_id)
    name       = Column(String(200), nullable=False)
    label      = Column(String(200), nullable=False)
    position   = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "label": self.label,
            "position": self.position,
            "created_at": _iso(self.created_at),
        }


class Contact(Base):
    __tablename__ = "contacts"

    id         = Column(String(36), primary_key=True, default=new_id)
    name       = Column(String(200), nullable=False)
    email      = Column(String(320), nullable=False, unique=True)
    phone      = Column(String(50), nullable=True)
    company    = Column(String(200), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)

    __table_args__ = (
        Index("ux_contacts_email_lower", func.lower(email), unique=True),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "created_at": _iso(self.created_at),
        }


class Ticket(Base):
    __tablename__ = "tickets"

    id          = Column(String(36), primary_key=True, default=new_id)
    title       = Column(String(500), nullable=False)
    description = Column(Text, nullable=False, default="")
    status      = Column(String(20), nullable=False, default=DEFAULT_STATUS, index=True)
    priority    = Column(String(20), nullable=False, default=DEFAULT_PRIORITY, index=True)

    # ── Relations ──────────────────────────────────────────────────────
    category_id  = Column(String(36),
                          ForeignKey("categories.id", ondelete="SET NULL"),
                          nullable=True, index=True)
    requester_id = Column(String(36),
                          ForeignKey("contacts.id", ondelete="SET NULL"),
                          nullable=True, index=True)
    template_id  = Column(String(36), nullable=True)

    notes    = Column(Text, nullable=True)
    solution = Column(Text, nullable=True)

    # ── Timestamps ─────────────────────────────────────────────────────
    created_at  = Column(DateTime, default=utcnow, index=True)
    updated_at  = Column(DateTime, default=utcnow, onupdate=utcnow)
    resolved_at = Column(DateTime, nullable=True)
    closed_at   = Column(DateTime, nullable=True)

    category  = relationship("Category")
    requester = relationship("Contact")
    comments  = relationship("TicketComment", back_populates="ticket",
                             cascade="all, delete-orphan", lazy="select")
    tags      = relationship("Tag", secondary=ticket_tags, lazy="select")
    field_values = relationship("TicketFieldValue", back_populates="ticket",
                                cascade="all, delete-orphan", lazy="select")

    __table_args__ = (
        CheckConstraint(_in_list("status", TICKET_STATUSES), name="ck_ticket_status"),
        CheckConstraint(_in_list("priority", TICKET_PRIORITIES), name="ck_ticket_priority"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "category_id": self.category_id,
            "requester_id": self.requester_id,
            "notes": self.notes,
            "solution": self.solution,
            "template_id": self.template_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "resolved_at": _iso(self.resolved_at),
            "closed_at": _iso(self.closed_at),
        }


class TicketComment(Base):
    __tablename__ = "ticket_comments"

    id          = Column(String(36), primary_key=True, default=new_id)
    ticket_id   = Column(String(36),
                         ForeignKey("tickets.id", ondelete="CASCADE"),
                         nullable=False, index=True)
    user_id     = Column(String(36), nullable=True)
    content     = Column(Text, nullable=False)
    is_internal = Column(Boolean, nullable=False, default=True)
    created_at  = Column(DateTime, default=utcnow)
    updated_at  = Column(DateTime, default=utcnow, onupdate=utcnow)
    deleted_at  = Column(DateTime, nullable=True)

    ticket = relationship("Ticket", back_populates="comments")


class Tag(Base):
    __tablename__ = "tags"

    id         = Column(String(36), primary_key=True, default=new_id)
    name       = Column(String(100), nullable=False, unique=True)
    color      = Column(String(20), nullable=False, default="#3b82f6")
    created_at = Column(DateTime, default=utcnow)


class TicketFieldValue(Base):
    __tablename__ = "ticket_field_values"

    id          = Column(String(36), primary_key=True, default=new_id)
    ticket_id   = Column(String(36),
                         ForeignKey("tickets.id", ondelete="CASCADE"),
                         nullable=False, index=True)
    field_name  = Column(String(200), nullable=False)
    field_label = Column(String(200), nullable=False)
    field_value = Column(Text, nullable=True)
    created_at  = Column(DateTime, default=utcnow)

    ticket = relationship("Ticket", back_populates="field_values")

    __table_args__ = (
        UniqueConstraint("ticket_id", "field_name", name="uq_ticket_field"),
        Index("ix_field_values_name", "field_name"),
    )
