import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import issue_token
from config import Settings
from database import Database
from main import create_app

USER_EMAIL = "chef@example.com"


@pytest.fixture
def settings():
    return Settings(jwt_secret="test-secret", database_name="tasty-bites-test")


@pytest.fixture
def database(settings):
    return Database(mongomock.MongoClient(), settings.database_name)


@pytest.fixture
def client(settings, database):
    app = create_app(settings, database)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(settings):
    token = issue_token({"email": USER_EMAIL}, settings)
    return {"Authorization": f"Bearer {token}"}
