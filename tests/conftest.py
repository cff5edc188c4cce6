"""Pytest fixtures shared across the test suite."""

import pytest

from db import utils as db_utils
from tests.app_helpers import load_app


@pytest.fixture(autouse=True)
def reset_database_state():
    """Drop the process-wide fallback handle between tests."""

    db_utils.set_fallback_connection(None)
    yield
    db_utils.set_fallback_connection(None)


@pytest.fixture
def app(tmp_path):
    flask_app = load_app(tmp_path)
    yield flask_app
    flask_app.extensions["catalog_fallback"].close()
    flask_app.extensions["catalog_engine"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def demo_app(tmp_path):
    flask_app = load_app(tmp_path, SEED_DEMO_DATA=True)
    yield flask_app
    flask_app.extensions["catalog_fallback"].close()
    flask_app.extensions["catalog_engine"].dispose()


@pytest.fixture
def demo_client(demo_app):
    return demo_app.test_client()
