import pytest
from fastapi.testclient import TestClient

from calculator_server.config import Settings
from calculator_server.database import Database
from calculator_server.main import create_app


PASSWORD = "Passw0rd"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="test",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret_key="test-jwt-secret",
    )


@pytest.fixture
def database(settings):
    database = Database(settings.database_url)
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def register(client, username="alice", email="alice@x.com", password=PASSWORD, **extra):
    resp = client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password, **extra},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}
