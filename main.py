#!/usr/bin/env python3
"""
Helpdesk - ticket data pipeline service
=======================================

Single-command run:  python main.py

See config.py for all environment-variable tunables.
"""

import logging
import re

from flask import Flask, jsonify
from sqlalchemy import func, select

import config
from db import init_db, get_session, Category, Ticket
from api import api_bp

logger = logging.getLogger(__name__)


def _configure_logging():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def create_app(db_url: str | None = None) -> Flask:
    """Flask application factory."""
    _configure_logging()

    app = Flask(__name__)
    app.secret_key = config.SECRET
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_BYTES
    app.json.ensure_ascii = False

    # ── Initialise database ─────────────────────────────────────────
    db_url = db_url or config.DB_URL
    init_db(db_url)
    logger.info(f"Database: {db_url}")
    _seed_categories()

    # ── Register blueprints ─────────────────────────────────────────
    app.register_blueprint(api_bp)

    # ── Error handlers ──────────────────────────────────────────────
    @app.errorhandler(404)
    def _404(e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(405)
    def _405(e):
        return jsonify({"error": "method not allowed"}), 405

    @app.errorhandler(500)
    def _500(e):
        return jsonify({"error": "internal server error"}), 500

    return app


def _slug(label: str) -> str:
    return re.sub(r"\s+", "-", label.strip().lower())


def _seed_categories():
    """Create the default categories when the table is empty."""
    session = get_session()
    try:
        count = session.scalar(select(func.count(Category.id)))
        if count:
            return
        for position, label in enumerate(config.DEFAULT_CATEGORIES):
            session.add(Category(name=_slug(label), label=label, position=position))
        session.commit()
        logger.info(f"Seeded {len(config.DEFAULT_CATEGORIES)} default categories")
    finally:
        session.close()


def main():
    print("=" * 56)
    print("  Helpdesk - ticket data pipeline")
    print("=" * 56)

    app = create_app()

    session = get_session()
    count = session.scalar(select(func.count(Ticket.id)))
    session.close()
    print(f"\n  Database has {count} tickets.")

    print(f"\n  http://{config.HOST}:{config.PORT}/api/tickets")
    print("=" * 56)

    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG)


if __name__ == "__main__":
    main()
