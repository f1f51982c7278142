from datetime import timedelta

import pytest
from sqlalchemy import inspect

from db.models import Ticket
from services.search_service import (
    MAX_PAGE, Pagination, SearchService, TicketFilter,
)
from tests.factories import (
    BASE_TIME,
    CategoryFactory,
    ContactFactory,
    TagFactory,
    TicketCommentFactory,
    TicketFactory,
    TicketFieldValueFactory,
)


def _titles(tickets):
    return [t.title for t in tickets]


def _search(session, **kwargs):
    tickets, _ = SearchService.search(session, TicketFilter(**kwargs))
    return tickets


# ── Equality filters ──────────────────────────────────────────────────

def test_closed_tickets_are_hidden_by_default(session):
    TicketFactory(title="Open", status="open")
    TicketFactory(title="Closed", status="closed")
    TicketFactory(title="Resolved", status="resolved")

    assert sorted(_titles(_search(session))) == ["Open", "Resolved"]
    assert sorted(_titles(_search(session, status="all"))) == ["Closed", "Open", "Resolved"]
    assert _titles(_search(session, status="closed")) == ["Closed"]


def test_priority_and_category_filters(session):
    hw = CategoryFactory(label="HW")
    TicketFactory(title="A", priority="high", category_id=hw.id)
    TicketFactory(title="B", priority="high")
    TicketFactory(title="C", priority="low", category_id=hw.id)

    assert sorted(_titles(_search(session, priority="high"))) == ["A", "B"]
    assert sorted(_titles(_search(session, category=hw.id))) == ["A", "C"]
    assert _titles(_search(session, priority="high", category=hw.id)) == ["A"]
    assert len(_search(session, priority="all", category="all")) == 3


# ── Free-text search ──────────────────────────────────────────────────

def test_search_reaches_every_related_table(session):
    printers = CategoryFactory(label="Printers")
    requester = ContactFactory(name="Eva", email="printer-admin@x.se")
    tag = TagFactory(name="printer")

    TicketFactory(title="Printer jam")
    by_comment = TicketFactory(title="By comment", tags=[tag])
    TicketCommentFactory(ticket=by_comment, content="the printer again")
    TicketCommentFactory(ticket=by_comment, content="still the PRINTER")
    TicketFactory(title="By requester", requester_id=requester.id)
    by_field = TicketFactory(title="By field")
    TicketFieldValueFactory(ticket=by_field, field_value="HP printer 4")
    TicketFactory(title="By category", category_id=printers.id)
    TicketFactory(title="By notes", notes="check printer queue")
    deleted = TicketFactory(title="Deleted comment only")
    TicketCommentFactory(ticket=deleted, content="printer", deleted_at=BASE_TIME)
    TicketFactory(title="Unrelated")

    tickets, pagination = SearchService.search(session, TicketFilter(search="PRINTER"))

    assert sorted(_titles(tickets)) == [
        "By category", "By comment", "By field", "By notes", "By requester", "Printer jam",
    ]
    # several matching comments and tags still yield one row and one count
    assert pagination.total == 6


def test_search_treats_wildcards_literally(session):
    TicketFactory(title="100% done")
    TicketFactory(title="1000 done")
    TicketFactory(title="snake_case")
    TicketFactory(title="snakeXcase")

    assert _titles(_search(session, search="0%")) == ["100% done"]
    assert _titles(_search(session, search="e_c")) == ["snake_case"]


def test_search_input_is_bound_not_interpolated(session):
    TicketFactory(title="Safe")
    hostile = "x' OR '1'='1"

    assert _search(session, search=hostile) == []

    query = SearchService.build_query(TicketFilter(search=hostile, status="all"))
    stmt = SearchService.select_statement(query)
    assert hostile not in str(stmt)
    assert hostile in stmt.compile().params.values()
    assert "tickets" in inspect(session.get_bind()).get_table_names()


def test_no_joins_without_search():
    query = SearchService.build_query(TicketFilter(status="open"))
    assert not query.joined
    assert "JOIN" not in str(SearchService.count_statement(query))

    query = SearchService.build_query(TicketFilter(search="vpn"))
    assert query.joined
    assert "count(DISTINCT tickets.id)" in str(SearchService.count_statement(query))


# ── Sorting ───────────────────────────────────────────────────────────

def test_default_sort_is_newest_first(session):
    TicketFactory(title="Old", created_at=BASE_TIME)
    TicketFactory(title="New", created_at=BASE_TIME + timedelta(days=1))

    assert _titles(_search(session)) == ["New", "Old"]
    assert _titles(_search(session, sort_dir="asc")) == ["Old", "New"]


def test_status_sorts_by_workflow_rank(session):
    for status in ("closed", "waiting", "open", "resolved", "in-progress"):
        TicketFactory(title=status, status=status)

    asc = _search(session, status="all", sort_by="status", sort_dir="asc")
    assert _titles(asc) == ["open", "in-progress", "waiting", "resolved", "closed"]


def test_priority_sorts_by_severity_rank(session):
    for priority in ("medium", "critical", "low", "high"):
        TicketFactory(title=priority, priority=priority)

    desc = _search(session, sort_by="priority", sort_dir="desc")
    assert _titles(desc) == ["critical", "high", "medium", "low"]


def test_ties_break_on_newest_then_id(session):
    TicketFactory(id="b", title="b", priority="high", created_at=BASE_TIME)
    TicketFactory(id="a", title="a", priority="high", created_at=BASE_TIME)
    TicketFactory(id="c", title="c", priority="high",
                  created_at=BASE_TIME + timedelta(hours=1))

    tickets = _search(session, sort_by="priority")
    assert [t.id for t in tickets] == ["c", "a", "b"]

    tickets = _search(session)
    assert [t.id for t in tickets] == ["c", "a", "b"]


# ── Pagination ────────────────────────────────────────────────────────

def test_pages_partition_the_result(session):
    for _ in range(60):
        TicketFactory()

    seen = []
    for page in (1, 2, 3):
        tickets, pagination = SearchService.search(
            session, TicketFilter(page=page, page_size=25)
        )
        seen.extend(t.id for t in tickets)

    assert len(tickets) == 10
    assert pagination.to_dict() == {
        "page": 3, "limit": 25, "total": 60,
        "totalPages": 3, "hasNext": False, "hasPrev": True,
    }
    assert len(seen) == len(set(seen)) == 60

    tickets, pagination = SearchService.search(session, TicketFilter(page=9, page_size=25))
    assert tickets == []
    assert pagination.total == 60


def test_pagination_metadata():
    p = Pagination(page=1, limit=20, total=0)
    assert (p.total_pages, p.has_next, p.has_prev, p.offset) == (0, False, False, 0)

    p = Pagination(page=2, limit=20, total=41)
    assert (p.total_pages, p.has_next, p.has_prev, p.offset) == (3, True, True, 20)


# ── Argument parsing ─────────────────────────────────────────────────

@pytest.mark.parametrize("args,expected", [
    ({}, (1, 50, "createdAt", "desc")),
    ({"page": "3", "limit": "25"}, (3, 25, "createdAt", "desc")),
    ({"page": "0", "limit": "7"}, (1, 50, "createdAt", "desc")),
    ({"page": "abc", "limit": "lots"}, (1, 50, "createdAt", "desc")),
    ({"sortBy": "title; DROP TABLE tickets", "sortDir": "up"}, (1, 50, "createdAt", "desc")),
    ({"sortBy": "priority", "sortDir": "asc"}, (1, 50, "priority", "asc")),
    ({"page": "99999999999999999999", "limit": "20"}, (MAX_PAGE, 20, "createdAt", "desc")),
    ({"page": "9223372036854775807"}, (MAX_PAGE, 50, "createdAt", "desc")),
])
def test_from_args_falls_back_to_defaults(args, expected):
    f = TicketFilter.from_args(args)
    assert (f.page, f.page_size, f.sort_by, f.sort_dir) == expected


def test_from_args_without_pagination():
    f = TicketFilter.from_args({"page": "2", "search": "  vpn  "}, paginate=False)
    assert not f.paginated
    assert f.search == "vpn"
    assert f.status is None


def test_unknown_sort_key_never_reaches_order_by():
    assert set(SearchService.SORTABLE_COLUMNS) == {"createdAt", "status", "priority", "category"}
    query = SearchService.build_query(TicketFilter(sort_by="DROP"))
    assert str(query.order_by[0]) == str(Ticket.created_at.desc())


def test_page_far_past_the_end_is_empty(session):
    TicketFactory()
    tickets, pagination = SearchService.search(
        session, TicketFilter.from_args({"page": "99999999999999999999", "limit": "100"})
    )
    assert tickets == []
    assert (pagination.page, pagination.total, pagination.has_next) == (MAX_PAGE, 1, False)
