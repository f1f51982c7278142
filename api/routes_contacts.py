"""
api.routes_contacts - /api/contacts listing, export and import endpoints.
"""

import logging

from flask import request, jsonify

from api import api_bp
from api.uploads import csv_download, read_csv_upload
from db import get_session, utcnow
from import_engine import ContactImportPipeline, CsvFormatError
from services.export_service import (
    CONTACT_EXPORT_PREFIX, export_contacts, export_filename, list_contacts,
)

logger = logging.getLogger(__name__)


@api_bp.route("/contacts")
def list_all_contacts():
    """GET /api/contacts - newest first."""
    session = get_session()
    try:
        return jsonify([c.to_dict() for c in list_contacts(session)])
    finally:
        session.close()


@api_bp.route("/contacts/export")
def export_contacts_csv():
    """GET /api/contacts/export"""
    session = get_session()
    try:
        body = export_contacts(session)
        if body is None:
            return jsonify({"error": "No contacts to export"}), 404
        return csv_download(body, export_filename(CONTACT_EXPORT_PREFIX, utcnow().date()))
    except Exception:
        logger.exception("Error exporting contacts")
        return jsonify({"error": "Failed to export contacts"}), 500
    finally:
        session.close()


@api_bp.route("/contacts/import/preview", methods=["POST"])
def preview_contact_import():
    """POST /api/contacts/import/preview  (multipart field 'file')"""
    content, error = read_csv_upload()
    if error:
        return error

    session = get_session()
    try:
        preview = ContactImportPipeline(session).preview(content)
        return jsonify(preview.to_dict())
    except CsvFormatError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        logger.exception("Error previewing contact import")
        return jsonify({"error": "Failed to preview import"}), 500
    finally:
        session.close()


@api_bp.route("/contacts/import/confirm", methods=["POST"])
def confirm_contact_import():
    """POST /api/contacts/import/confirm  JSON: {contacts: [...]}"""
    data = request.get_json(silent=True) or {}
    contacts = data.get("contacts") if isinstance(data, dict) else None
    if not isinstance(contacts, list):
        return jsonify({"error": "Invalid contacts data"}), 400

    session = get_session()
    try:
        report = ContactImportPipeline(session).confirm(contacts)
        return jsonify(report.to_dict())
    except Exception:
        return jsonify({"error": "Failed to import contacts"}), 500
    finally:
        session.close()
