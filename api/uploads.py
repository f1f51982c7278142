"""
api.uploads - Shared handling of CSV file uploads and CSV downloads.
"""

from __future__ import annotations

import logging

from flask import Response, jsonify, request
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

CSV_MIMETYPES = frozenset({"text/csv", "application/csv", "application/vnd.ms-excel"})


def read_csv_upload(field: str = "file"):
    """
    Pull the uploaded CSV out of a multipart request.

    Returns (content_bytes, None) on success or (None, error_response).
    Size is capped by the app's MAX_CONTENT_LENGTH (413 before we get here).
    """
    f = request.files.get(field)
    if not f:
        return None, (jsonify({"error": "No file uploaded"}), 400)

    filename = secure_filename(f.filename or "")
    if f.mimetype not in CSV_MIMETYPES and not filename.lower().endswith(".csv"):
        return None, (jsonify({"error": "Only CSV files are allowed"}), 400)

    content = f.read()
    logger.info(f"Received upload {filename or '<unnamed>'} ({len(content)} bytes)")
    return content, None


def csv_download(body: str, filename: str) -> Response:
    return Response(
        body,
        content_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )
