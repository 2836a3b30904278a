import re

import pytest

from spotlight.api import create_app
from spotlight.api.extensions import socketio
from spotlight.models import storage
from spotlight.models.account import Account, Role
from spotlight.models.preferences import UserPreferences
from spotlight.realtime.gateway import NAMESPACE, presence
from spotlight.services.passwords import PasswordHash

PASSWORD = "SecurePass123"

_TOKEN_IN_LINK = re.compile(r"token=([A-Za-z0-9_\-]+)")


def auth_headers(access_token: str) -> dict:
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    presence.clear()
    storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions["spotlight.services"]


@pytest.fixture
def auth_service(services):
    return services["auth"]


@pytest.fixture
def register(client):
    """Register through the API and return the JSON body."""
    def _register(email="alice@example.com", name="Alice", password=PASSWORD, **extra):
        body = {"name": name, "email": email, "password": password, **extra}
        resp = client.post("/api/auth/register", json=body)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _register


@pytest.fixture
def make_account(services):
    """Insert an account directly (no refresh tokens issued)."""
    def _make(email="carol@example.com", name="Carol", password=PASSWORD, password_hash: PasswordHash = None,
              role=Role.USER, enabled=True):
        password_hash = password_hash or services["passwords"].hash(password)
        account = Account(
            email=email,
            name=name,
            password_hash=password_hash.encoded,
            password_algorithm=password_hash.algorithm,
            role=role,
            enabled=enabled,
        )
        storage.new(account)
        storage.new(UserPreferences(account_id=account.id))
        storage.save()
        return account.id

    return _make


@pytest.fixture
def outbox(auth_service, monkeypatch):
    """Capture outgoing mail instead of talking to SMTP."""
    sent = []

    def fake_send(*, to_email, subject, body_text):
        sent.append({"to": to_email, "subject": subject, "body": body_text})
        return True, "sent"

    monkeypatch.setattr(auth_service.mailer, "send", fake_send)
    return sent


def token_from_mail(mail: dict) -> str:
    match = _TOKEN_IN_LINK.search(mail["body"])
    assert match, "no reset link in mail body"
    return match.group(1)


@pytest.fixture
def socket_client(app):
    clients = []

    def _connect(access_token=None):
        query = f"token={access_token}" if access_token else None
        sio = socketio.test_client(app, namespace=NAMESPACE, query_string=query)
        clients.append(sio)
        return sio

    yield _connect
    for sio in clients:
        if sio.is_connected(NAMESPACE):
            sio.disconnect(namespace=NAMESPACE)
