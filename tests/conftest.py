"""Fixtures compartidas: app sobre SQLite en memoria y helpers de autenticación."""

import pytest
from fastapi.testclient import TestClient

from app import create_app
from config import Settings
from database import Database
from repository import Repository
from security import CredentialService, TokenService

TEST_SECRET = 'test-secret'


@pytest.fixture
def settings():
    return Settings(
        database_url='sqlite://',
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        ai_chat_url='',
        max_retries=0,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def db():
    database = Database('sqlite://')
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def repo(db):
    return Repository(db)


@pytest.fixture
def credentials():
    return CredentialService(rounds=4)


@pytest.fixture
def tokens():
    return TokenService(TEST_SECRET)


@pytest.fixture
def signup(client):
    """Registra un usuario y devuelve (user, headers)."""
    def _signup(email='a@x.com', password='password123', name=None):
        body = {'email': email, 'password': password}
        if name is not None:
            body['name'] = name
        resp = client.post('/auth/signup', json=body)
        assert resp.status_code == 201, resp.text
        data = resp.json()
        return data['user'], {'Authorization': f"Bearer {data['token']}"}
    return _signup
