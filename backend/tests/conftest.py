import os

# must be set before anything imports campus.core.config
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "true"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["SMTP_HOST"] = ""
os.environ["FRONTEND_URL"] = "http://frontend.test"

import pytest
from fastapi.testclient import TestClient

from campus.api.deps import get_cache, get_email_service
from campus.db.base import Base
from campus.db.session import SessionLocal, engine
from campus.infra.cache import CacheService
from campus.main import app
from campus.models.user import Student, Teacher, User
from campus.services.email_service import EmailService


class FakeRedis:
    """The handful of redis-py calls CacheService makes, kept in a dict."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = value
        self.ttls.pop(key, None)
        return True

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = int(ttl)
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def getdel(self, key):
        self.ttls.pop(key, None)
        return self.store.pop(key, None)

    def ping(self):
        return True


class OutboxEmailService(EmailService):
    """Renders the real templates but keeps messages instead of sending them."""

    def __init__(self):
        super().__init__()
        self.sent = []

    def send(self, *, to_email, subject, html, text):
        self.sent.append({"to": to_email, "subject": subject, "html": html, "text": text})


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheService(fake_redis, enabled=True)


@pytest.fixture
def outbox():
    return OutboxEmailService()


@pytest.fixture
def client(cache, outbox):
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_email_service] = lambda: outbox
    yield TestClient(app)
    app.dependency_overrides.clear()


def signup(client, email="ada@example.com", password="Secret123", first_name="Ada", last_name="Lovelace"):
    res = client.post(
        "/api/auth/signup",
        json={"email": email, "password": password, "first_name": first_name, "last_name": last_name},
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def promote_to_teacher(user_id):
    with SessionLocal() as session:
        user = session.get(User, user_id)
        user.teacher = Teacher()
        user.student = None
        session.commit()
        return int(user.teacher.id)


def student_id_of(user_id):
    with SessionLocal() as session:
        return int(session.query(Student.id).filter(Student.user_id == user_id).scalar())


@pytest.fixture
def teacher(client):
    data = signup(client, email="julia@example.com", first_name="Julia", last_name="Nguyen")
    data["teacher_id"] = promote_to_teacher(data["id"])
    data["headers"] = bearer(data["access_token"])
    return data


@pytest.fixture
def student(client):
    data = signup(client, email="tri@example.com", first_name="Triesnha", last_name="Ameilya")
    data["student_id"] = student_id_of(data["id"])
    data["headers"] = bearer(data["access_token"])
    return data


def create_course(client, headers, code="CS101", **overrides):
    body = {
        "title": "Introduction to Computer Science",
        "description": "Learn the fundamentals of computer science",
        "code": code,
        "start_date": "2025-10-01",
        "end_date": "2026-03-31",
        "room": "Room 101",
        "schedule": [
            {"day_of_week": 3, "start_time": "10:00", "end_time": "12:00"},
            {"day_of_week": 1, "start_time": "10:00", "end_time": "12:00"},
        ],
    }
    body.update(overrides)
    res = client.post("/api/courses", json=body, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]
