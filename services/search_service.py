"""
services.search_service - Filtered, sorted, paginated ticket listing.

Builds SQLAlchemy statements from a TicketFilter.  Every user-supplied
value ends up as a bound parameter; only the column choice behind the
fixed sort keys shapes the SQL text.

Free-text search LEFT JOINs six auxiliary relations (requester,
category, comments, tag links, tags, custom field values).  A ticket can
match through several comments or tags, so joined result rows are
grouped by ticket id and the total is a COUNT(DISTINCT id).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping

from sqlalchemy import and_, case, distinct, func, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import ColumnElement, Select

import config
from db.models import (
    Category, Contact, Tag, Ticket, TicketComment, TicketFieldValue, ticket_tags,
    TICKET_STATUSES, TICKET_PRIORITIES,
)

ALL = "all"
SORT_KEYS = ("createdAt", "status", "priority", "category")
DEFAULT_SORT = "createdAt"
MAX_PAGE = 2 ** 31            # keeps OFFSET inside a 64-bit integer


def _rank(column, order: tuple[str, ...]):
    """CASE expression giving each enum value its position in order."""
    return case({value: idx for idx, value in enumerate(order)}, value=column)


# Sort key → ORDER BY expression.  Nothing else may reach order_by().
SORTABLE_COLUMNS = {
    "createdAt": Ticket.created_at,
    "status": _rank(Ticket.status, TICKET_STATUSES),
    "priority": _rank(Ticket.priority, TICKET_PRIORITIES),
    "category": Ticket.category_id,
}


def _to_int(value, default: int | None) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass
class TicketFilter:
    status: str | None = None
    priority: str | None = None
    category: str | None = None
    search: str = ""
    sort_by: str = DEFAULT_SORT
    sort_dir: str = "desc"
    page: int | None = 1
    page_size: int | None = config.DEFAULT_PAGE_SIZE

    def __post_init__(self):
        if self.sort_by not in SORT_KEYS:
            self.sort_by = DEFAULT_SORT
        if self.sort_dir != "asc":
            self.sort_dir = "desc"
        if self.page is not None:
            self.page = min(max(1, self.page), MAX_PAGE)
        if self.page_size is not None and self.page_size not in config.PAGE_SIZES:
            self.page_size = config.DEFAULT_PAGE_SIZE

    @property
    def paginated(self) -> bool:
        return self.page is not None

    @classmethod
    def from_args(cls, args: Mapping[str, str], *, paginate: bool = True) -> "TicketFilter":
        """
        Permissive parsing of query-string arguments.  Bad values fall
        back to defaults instead of raising.
        """
        return cls(
            status=args.get("status") or None,
            priority=args.get("priority") or None,
            category=args.get("category") or None,
            search=(args.get("search") or "").strip(),
            sort_by=args.get("sortBy") or DEFAULT_SORT,
            sort_dir=args.get("sortDir") or "desc",
            page=_to_int(args.get("page"), 1) if paginate else None,
            page_size=(_to_int(args.get("limit"), config.DEFAULT_PAGE_SIZE)
                       if paginate else None),
        )


@dataclass
class Pagination:
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


@dataclass
class TicketQuery:
    """Predicate list, outer-join list and ordering for one filter."""
    criteria: list[ColumnElement] = field(default_factory=list)
    joins: list[tuple] = field(default_factory=list)
    order_by: list = field(default_factory=list)

    @property
    def joined(self) -> bool:
        return bool(self.joins)

    def apply(self, stmt: Select) -> Select:
        for target, onclause in self.joins:
            stmt = stmt.outerjoin(target, onclause)
        if self.criteria:
            stmt = stmt.where(*self.criteria)
        return stmt


# Auxiliary relations needed by the search predicate, in join order
SEARCH_JOINS = (
    (Contact, Contact.id == Ticket.requester_id),
    (Category, Category.id == Ticket.category_id),
    (TicketComment, and_(TicketComment.ticket_id == Ticket.id,
                         TicketComment.deleted_at.is_(None))),
    (ticket_tags, ticket_tags.c.ticket_id == Ticket.id),
    (Tag, Tag.id == ticket_tags.c.tag_id),
    (TicketFieldValue, TicketFieldValue.ticket_id == Ticket.id),
)

SEARCH_COLUMNS = (
    Ticket.title, Ticket.description, Ticket.notes, Ticket.solution,
    Contact.name, Contact.email,
    Category.label,
    TicketComment.content,
    Tag.name,
    TicketFieldValue.field_value,
)


class SearchService:

    SORTABLE_COLUMNS = SORTABLE_COLUMNS

    @staticmethod
    def build_query(f: TicketFilter) -> TicketQuery:
        query = TicketQuery()
        SearchService._apply_equality(query, f)
        if f.search:
            SearchService._apply_text_filter(query, f.search)
        query.order_by = SearchService._order_by(f.sort_by, f.sort_dir)
        return query

    @staticmethod
    def search(session: Session, f: TicketFilter) -> tuple[list[Ticket], Pagination]:
        """
        One page of tickets plus pagination metadata.
        """
        query = SearchService.build_query(f)
        total = session.scalar(SearchService.count_statement(query)) or 0

        pagination = Pagination(
            page=f.page or 1,
            limit=f.page_size or config.DEFAULT_PAGE_SIZE,
            total=total,
        )
        stmt = (SearchService.select_statement(query)
                .limit(pagination.limit)
                .offset(pagination.offset))
        return list(session.scalars(stmt).all()), pagination

    @staticmethod
    def all_matching(session: Session, f: TicketFilter) -> list[Ticket]:
        """Every matching ticket, newest first, no pagination (export)."""
        query = SearchService.build_query(f)
        query.order_by = SearchService._order_by(DEFAULT_SORT, "desc")
        return list(session.scalars(SearchService.select_statement(query)).all())

    # ── Statements ─────────────────────────────────────────────────────

    @staticmethod
    def select_statement(query: TicketQuery) -> Select:
        stmt = query.apply(select(Ticket))
        if query.joined:
            stmt = stmt.group_by(Ticket.id)
        return stmt.order_by(*query.order_by)

    @staticmethod
    def count_statement(query: TicketQuery) -> Select:
        counted = func.count(distinct(Ticket.id)) if query.joined else func.count(Ticket.id)
        return query.apply(select(counted).select_from(Ticket))

    # ── Internal ───────────────────────────────────────────────────────

    @staticmethod
    def _apply_equality(query: TicketQuery, f: TicketFilter):
        if f.status is None:
            # The list view hides closed tickets unless asked for them.
            query.criteria.append(Ticket.status != "closed")
        elif f.status != ALL:
            query.criteria.append(Ticket.status == f.status)

        if f.priority and f.priority != ALL:
            query.criteria.append(Ticket.priority == f.priority)
        if f.category and f.category != ALL:
            query.criteria.append(Ticket.category_id == f.category)

    @staticmethod
    def _apply_text_filter(query: TicketQuery, q: str):
        query.joins.extend(SEARCH_JOINS)
        query.criteria.append(or_(
            *(col.icontains(q, autoescape=True) for col in SEARCH_COLUMNS)
        ))

    @staticmethod
    def _order_by(sort_by: str, sort_dir: str) -> list:
        col = SORTABLE_COLUMNS.get(sort_by, Ticket.created_at)
        primary = col.asc() if sort_dir == "asc" else col.desc()
        if sort_by == DEFAULT_SORT:
            return [primary, Ticket.id.asc()]
        return [primary, Ticket.created_at.desc(), Ticket.id.asc()]
