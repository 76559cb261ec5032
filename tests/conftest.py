import os
import tempfile

# the app reads its settings at import time, so point it at a scratch database first
_db_dir = tempfile.mkdtemp(prefix="library-dashboard-tests-")
os.environ["LIBRARY_DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ.setdefault("LIBRARY_LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from library_dashboard.core.database import Base, SessionLocal, engine
from library_dashboard.core.security import create_access_token, hash_password
from library_dashboard.main import app
from library_dashboard.models import models


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def staff(db):
    user = models.User(email="staff@example.com", full_name="Staff Member",
                       password_hash=hash_password("secret123"))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_headers(staff):
    return {"Authorization": f"Bearer {create_access_token(staff.id)}"}


@pytest.fixture
def client(auth_headers):
    test_client = TestClient(app)
    test_client.headers.update(auth_headers)
    return test_client


@pytest.fixture
def anon_client():
    return TestClient(app)


@pytest.fixture
def author(client):
    r = client.post("/authors", json={"name": "Ursula K. Le Guin", "bio": "Earthsea, Hainish cycle"})
    assert r.status_code == 201
    return r.json()


@pytest.fixture
def book(client, author):
    r = client.post("/books", json={"title": "A Wizard of Earthsea", "isbn": "978-0547773742",
                                    "author_id": author["id"], "published_year": 1968})
    assert r.status_code == 201
    return r.json()


@pytest.fixture
def member(client):
    r = client.post("/users", json={"email": "reader@example.com", "password": "hunter22",
                                    "full_name": "Avid Reader"})
    assert r.status_code == 201
    return r.json()
