"""
db - Database layer.

Public API:
    init_db()       → create engine + tables
    get_session()   → new Session
    Ticket, Contact, Category, … → ORM models
"""

from db.engine import init_db, get_session          # noqa: F401
from db.models import (                             # noqa: F401
    Base,
    Category,
    Contact,
    Tag,
    Ticket,
    TicketComment,
    TicketFieldValue,
    ticket_tags,
    new_id,
    utcnow,
)
