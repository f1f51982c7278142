from datetime import datetime, timedelta, timezone

import pytest

from db.models import Ticket
from services.ticket_service import TicketService, apply_status
from tests.factories import TicketFactory

T0 = datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc)


def test_apply_status_stamps_each_transition_once():
    ticket = Ticket(status="open")

    apply_status(ticket, "resolved", T0)
    apply_status(ticket, "open", T0 + timedelta(hours=1))
    apply_status(ticket, "resolved", T0 + timedelta(hours=2))
    apply_status(ticket, "closed", T0 + timedelta(hours=3))

    assert ticket.resolved_at == T0
    assert ticket.closed_at == T0 + timedelta(hours=3)
    assert ticket.status == "closed"


def test_apply_status_rejects_unknown_values():
    with pytest.raises(ValueError):
        apply_status(Ticket(), "done", T0)


def test_create_requires_title_and_description(session):
    with pytest.raises(ValueError, match="Title"):
        TicketService.create(session, {"description": "x"})
    with pytest.raises(ValueError, match="Description"):
        TicketService.create(session, {"title": "x"})


def test_create_applies_defaults(session):
    ticket = TicketService.create(
        session, {"title": " VPN ", "description": "down", "notes": ""},
        clock=lambda: T0, id_factory=lambda: "t-1",
    )
    session.commit()

    assert ticket.id == "t-1"
    assert (ticket.title, ticket.status, ticket.priority) == ("VPN", "open", "medium")
    assert ticket.notes is None
    assert ticket.created_at == ticket.updated_at == T0


def test_update_only_touches_given_fields(session):
    ticket = TicketFactory(title="Keep", priority="low")
    TicketService.update(session, ticket, {"priority": "high", "status": "closed"},
                         clock=lambda: T0)
    session.commit()

    assert (ticket.title, ticket.priority, ticket.status) == ("Keep", "high", "closed")
    assert ticket.closed_at == ticket.updated_at == T0

    with pytest.raises(ValueError):
        TicketService.update(session, ticket, {"priority": "urgent"})


def test_list_all_is_newest_first_and_includes_closed(session):
    TicketFactory(title="Old", status="closed")
    TicketFactory(title="New")

    assert [t.title for t in TicketService.list_all(session)] == ["New", "Old"]


def test_delete(session):
    ticket = TicketFactory()
    TicketService.delete(session, ticket)
    session.commit()
    assert TicketService.get(session, ticket.id) is None
