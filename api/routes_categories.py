"""
api.routes_categories - /api/categories (read-only; feeds the list filter).
"""

from flask import jsonify
from sqlalchemy import select

from api import api_bp
from db import get_session, Category


@api_bp.route("/categories")
def list_categories():
    """GET /api/categories - ordered by position."""
    session = get_session()
    try:
        stmt = select(Category).order_by(Category.position, Category.created_at)
        return jsonify([c.to_dict() for c in session.scalars(stmt)])
    finally:
        session.close()
