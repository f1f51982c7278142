"""
api.errors - JSON error handlers for errors raised inside API views.

Routing errors (unknown URL, wrong method) never reach a blueprint;
those are handled on the app in main.create_app().
"""

from flask import jsonify
from api import api_bp


@api_bp.errorhandler(400)
def api_bad_request(_e):
    return jsonify({"error": "bad request"}), 400


@api_bp.errorhandler(413)
def api_too_large(_e):
    return jsonify({"error": "File too large"}), 413


@api_bp.errorhandler(500)
def api_server_error(_e):
    return jsonify({"error": "internal server error"}), 500
