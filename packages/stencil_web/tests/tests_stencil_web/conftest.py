import pytest
from fastapi.testclient import TestClient
from stencil_core import StencilSettings
from stencil_web import StencilApp

PASSWORD = "password123"

TASK = {
    "name": "Task",
    "fields": [{"name": "title", "type": "string", "required": True}],
    "rbac": {"Admin": ["all"], "Viewer": ["read"]},
}

NOTE = {
    "name": "Note",
    "fields": [{"name": "body", "type": "string", "required": True}],
    "rbac": {"Admin": ["all"], "Manager": ["all"], "Viewer": ["read"]},
    "ownerField": "owner_id",
}


@pytest.fixture
def settings(tmp_path):
    return StencilSettings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'stencil.db'}",
        MODELS_DIR=str(tmp_path / "models"),
    )


@pytest.fixture
def client(settings):
    with TestClient(StencilApp(settings)) as client:
        yield client


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, email, role=None, token=None):
    payload = {"email": email, "password": PASSWORD}
    if role:
        payload["role"] = role
    headers = bearer(token) if token else {}
    return client.post("/api/auth/register", json=payload, headers=headers)


def login(client, email):
    response = client.post(
        "/api/auth/login", json={"email": email, "password": PASSWORD}
    )
    assert response.status_code == 200, response.text
    return response.json()["token"]


@pytest.fixture
def admin_token(client):
    assert register(client, "admin@example.com", role="Admin").status_code == 201
    return login(client, "admin@example.com")


@pytest.fixture
def viewer_token(client, admin_token):
    assert register(client, "viewer@example.com").status_code == 201
    return login(client, "viewer@example.com")


@pytest.fixture
def manager_tokens(client, admin_token):
    tokens = []
    for email in ("ann@example.com", "ben@example.com"):
        response = register(client, email, role="Manager", token=admin_token)
        assert response.status_code == 201, response.text
        tokens.append(login(client, email))
    return tokens
