"""
Shared fixtures: a Newsdesk app on the in-memory backend plus helpers to
create staff accounts and sign them in.
"""

import pytest
from flask import Flask

from newsdesk import Newsdesk
from newsdesk.core.config import Config
from newsdesk.core.dates import utcnow


@pytest.fixture
def app():
    """Fully initialised Flask app with every Newsdesk module registered."""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    app.config["NEWSDESK_BACKEND"] = "memory"
    Newsdesk(app, {'brand_name': 'Test Desk'})
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def newsdesk(app):
    return app.extensions["newsdesk"]


@pytest.fixture
def store(newsdesk):
    return newsdesk.store


@pytest.fixture
def identity(newsdesk):
    return newsdesk.identity


@pytest.fixture
def make_user(store, identity):
    """Create an auth account plus profile; returns the uid."""
    def _make_user(email, role, password="secret123", active=True, display_name=None):
        uid = identity.create_account(email, password, display_name)
        now = utcnow()
        store.add(Config.USERS_COLLECTION, {
            'email': email,
            'display_name': display_name or email.split('@')[0],
            'role': role,
            'active': active,
            'created_at': now,
            'updated_at': now,
        }, doc_id=uid)
        return uid
    return _make_user


@pytest.fixture
def login(client):
    def _login(email, password="secret123", next_url=None):
        url = "/admin/login" + (f"?next={next_url}" if next_url else "")
        return client.post(url, data={'email': email, 'password': password})
    return _login


@pytest.fixture
def admin(make_user, login):
    uid = make_user("admin@example.com", "admin", display_name="Ada Admin")
    login("admin@example.com")
    return uid


@pytest.fixture
def author(make_user, login):
    uid = make_user("author@example.com", "author", display_name="Arthur Author")
    login("author@example.com")
    return uid
