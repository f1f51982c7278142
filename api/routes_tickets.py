"""
api.routes_tickets - /api/tickets listing, export, import and CRUD endpoints.
"""

import logging

from flask import request, jsonify

from api import api_bp
from api.uploads import csv_download, read_csv_upload
from db import get_session, utcnow
from import_engine import CsvFormatError, TicketImportPipeline
from services.export_service import TICKET_EXPORT_PREFIX, export_filename, export_tickets
from services.search_service import SearchService, TicketFilter
from services.ticket_service import TicketService

logger = logging.getLogger(__name__)


@api_bp.route("/tickets")
def list_tickets():
    """
    GET /api/tickets?page=&limit=&status=&priority=&category=&search=&sortBy=&sortDir=

    Without page and limit the old flat array of every ticket is returned.
    """
    session = get_session()
    try:
        if "page" not in request.args and "limit" not in request.args:
            return jsonify([t.to_dict() for t in TicketService.list_all(session)])

        f = TicketFilter.from_args(request.args)
        tickets, pagination = SearchService.search(session, f)
        return jsonify({
            "data": [t.to_dict() for t in tickets],
            "pagination": pagination.to_dict(),
        })
    except Exception:
        logger.exception("Error fetching tickets")
        return jsonify({"error": "Failed to fetch tickets"}), 500
    finally:
        session.close()


@api_bp.route("/tickets/export")
def export_tickets_csv():
    """GET /api/tickets/export - same filters as the list, no pagination."""
    f = TicketFilter.from_args(request.args, paginate=False)
    session = get_session()
    try:
        body = export_tickets(session, f)
        return csv_download(body, export_filename(TICKET_EXPORT_PREFIX, utcnow().date()))
    except Exception:
        logger.exception("Error exporting tickets")
        return jsonify({"error": "Failed to export tickets"}), 500
    finally:
        session.close()


@api_bp.route("/tickets/import/preview", methods=["POST"])
def preview_ticket_import():
    """POST /api/tickets/import/preview  (multipart field 'file')"""
    content, error = read_csv_upload()
    if error:
        return error

    session = get_session()
    try:
        preview = TicketImportPipeline(session).preview(content)
        return jsonify(preview.to_dict())
    except CsvFormatError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        logger.exception("Error previewing ticket import")
        return jsonify({"error": "Failed to preview import"}), 500
    finally:
        session.close()


@api_bp.route("/tickets/import/confirm", methods=["POST"])
def confirm_ticket_import():
    """POST /api/tickets/import/confirm  JSON: {tickets: [...]}"""
    data = request.get_json(silent=True) or {}
    tickets = data.get("tickets") if isinstance(data, dict) else None
    if not isinstance(tickets, list) or not tickets:
        return jsonify({"error": "No tickets provided"}), 400

    session = get_session()
    try:
        report = TicketImportPipeline(session).confirm(tickets)
        return jsonify(report.to_dict())
    except Exception:
        return jsonify({"error": "Failed to import tickets"}), 500
    finally:
        session.close()


@api_bp.route("/tickets/<ticket_id>")
def get_ticket(ticket_id: str):
    """GET /api/tickets/{id}"""
    session = get_session()
    try:
        ticket = TicketService.get(session, ticket_id)
        if not ticket:
            return jsonify({"error": "Ticket not found"}), 404
        data = ticket.to_dict()
        data["field_values"] = [
            {"field_name": fv.field_name, "field_label": fv.field_label,
             "field_value": fv.field_value}
            for fv in ticket.field_values
        ]
        return jsonify(data)
    finally:
        session.close()


@api_bp.route("/tickets", methods=["POST"])
def create_ticket():
    """POST /api/tickets  JSON body: {title, description, …}"""
    data = request.get_json(silent=True) or {}
    session = get_session()
    try:
        ticket = TicketService.create(session, data)
        session.commit()
        return jsonify(ticket.to_dict()), 201
    except Exception as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/tickets/<ticket_id>", methods=["PUT"])
def update_ticket(ticket_id: str):
    """PUT /api/tickets/{id}  (JSON body with fields to update)"""
    data = request.get_json(silent=True) or {}
    session = get_session()
    try:
        ticket = TicketService.get(session, ticket_id)
        if not ticket:
            return jsonify({"error": "Ticket not found"}), 404
        TicketService.update(session, ticket, data)
        session.commit()
        return jsonify(ticket.to_dict())
    except Exception as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/tickets/<ticket_id>", methods=["DELETE"])
def delete_ticket(ticket_id: str):
    """DELETE /api/tickets/{id}"""
    session = get_session()
    try:
        ticket = TicketService.get(session, ticket_id)
        if not ticket:
            return jsonify({"error": "Ticket not found"}), 404
        TicketService.delete(session, ticket)
        session.commit()
        return jsonify({"message": "Ticket deleted"})
    except Exception as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()
