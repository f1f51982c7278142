import pytest
from sqlalchemy import func, select

from db import get_session
from main import create_app
from tests.factories import ALL_FACTORIES


@pytest.fixture
def app(tmp_path):
    """Application on a throw-away SQLite file (default categories seeded)."""
    app = create_app(f"sqlite:///{tmp_path / 'test.sqlite'}")
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Return a Flask test client."""
    return app.test_client()


@pytest.fixture
def session(app):
    """A session shared with the model factories."""
    s = get_session()
    for f in ALL_FACTORIES:
        f._meta.sqlalchemy_session = s
    yield s
    s.close()
    for f in ALL_FACTORIES:
        f._meta.sqlalchemy_session = None


@pytest.fixture
def count_rows(app):
    """Count rows of a model through a fresh session."""
    def _count(model, *criteria):
        s = get_session()
        try:
            stmt = select(func.count()).select_from(model)
            if criteria:
                stmt = stmt.where(*criteria)
            return s.scalar(stmt)
        finally:
            s.close()
    return _count
