# tests/conftest.py
import os
import base64
import json
import time
import uuid

import pytest

# Configura env ANTES de importar app/config
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ["RATE_LIMIT_PER_MINUTE"] = "10000"
os.environ.pop("NOTIFY_WEBHOOK_URL", None)

from app import create_app  # noqa: E402
from extensions import db  # noqa: E402
from notifications.service import OutboxTransport  # noqa: E402
from utils import supabase_jwt  # noqa: E402

ISSUER = f"{os.environ['SUPABASE_URL'].rstrip('/')}/auth/v1"


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def make_token(sub: str = None, email: str = "admin@flowtech.com.br", kid: str = "kid1", **extra) -> str:
    header = {"alg": "RS256", "typ": "JWT", "kid": kid}
    now = int(time.time())
    payload = {
        "iss": ISSUER,
        "aud": "authenticated",
        "sub": sub or str(uuid.uuid4()),
        "email": email,
        "exp": now + 3600,
        "iat": now,
    }
    payload.update(extra)
    return f"{b64url(json.dumps(header).encode())}.{b64url(json.dumps(payload).encode())}.sig"


def fake_decode(token, key, algorithms, issuer, audience, options):
    _header_b64, payload_b64, _sig = token.split(".")
    payload = json.loads(base64.urlsafe_b64decode(payload_b64 + "=="))
    if payload.get("iss") != issuer:
        raise ValueError("bad issuer")
    return payload


@pytest.fixture(autouse=True)
def fake_jwt(monkeypatch):
    # JWKS e decode substituídos (sem criptografia nos testes)
    def fake_fetch_jwks():
        return {"keys": [{"kid": "kid1", "kty": "RSA", "n": "..", "e": "AQAB"}]}

    supabase_jwt._jwks_cache.clear()
    supabase_jwt._rate_cache.clear()
    monkeypatch.setattr(supabase_jwt, "_fetch_jwks", fake_fetch_jwks)
    monkeypatch.setattr(supabase_jwt, "_public_key_from_jwk", lambda jwk: "public-key")
    monkeypatch.setattr(supabase_jwt.pyjwt, "decode", fake_decode)


@pytest.fixture
def outbox():
    return OutboxTransport()


@pytest.fixture
def app(outbox):
    # cada app tem seu próprio engine SQLite em memória
    app = create_app(notification_transport=outbox)
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


# Utils simples pra gerar dados
def client_payload(**overrides):
    payload = {
        "fullName": "Maria Souza",
        "email": "maria@padaria.com.br",
        "phone": "85999990000",
        "companyName": "Padaria Pão Quente",
        "status": "Ativo",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def client_id(client, auth_headers):
    r = client.post("/api/v1/clients", json=client_payload(), headers=auth_headers)
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.get_json()["id"]
