"""
services - Business-logic layer sitting between API and DB.
"""

from services.ticket_service import TicketService, apply_status    # noqa: F401
from services.search_service import SearchService, TicketFilter     # noqa: F401
