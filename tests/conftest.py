# tests/conftest.py
from datetime import timedelta

import mongomock
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from unihub.core.auth import create_access_token
from unihub.db.mongodb import init_mongo_indexes, utcnow
from unihub.main import app
from unihub.services.user_service import new_user_document


class RecordingMailer:
    """Collects outgoing emails instead of sending them."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, email):
        if self.fail:
            raise RuntimeError("mail server unavailable")
        self.sent.append(email)

    def to(self, address):
        return [m for m in self.sent if m.to == address]


class FakeImageStore:
    def __init__(self):
        self.uploads = []
        self.error = None

    def upload(self, content, filename, content_type):
        if self.error is not None:
            raise self.error
        self.uploads.append((filename, content_type, len(content)))
        return f"https://res.cloudinary.com/demo/image/upload/v1700000000/unimarket/{filename}"


@pytest.fixture
def db():
    database = mongomock.MongoClient()["unihub_test"]
    init_mongo_indexes(database)
    return database


@pytest.fixture
def without_ttl(db):
    """Drop the expiresAt TTL indexes so expired records stay readable."""
    db.otps.drop_index("expiresAt_1")
    db.refresh_tokens.drop_index("expiresAt_1")
    return db


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
def test_app(db, mailer, image_store):
    # ASGITransport does not run the lifespan, so state is injected here
    app.state.db = db
    app.state.mailer = mailer
    app.state.image_store = image_store
    return app


@pytest_asyncio.fixture
async def client(test_app):
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def make_user(db):
    """Insert a user; complete=True gives a finished profile on `university`."""
    def _make(email, university="SRM_AP", name=None, complete=True):
        doc = new_user_document(email)
        if complete:
            doc.update(
                name=name or email.split("@")[0].title(),
                university=university,
                skills=["python", "design"],
                about="Student on campus",
            )
        doc["_id"] = db.users.insert_one(doc).inserted_id
        return doc
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(str(user['_id']))}"}
    return _headers


@pytest.fixture
def future_deadline():
    return (utcnow() + timedelta(days=7)).isoformat()


@pytest.fixture
def make_job(client, auth_headers, future_deadline):
    async def _make(poster, **overrides):
        body = {
            "title": "Build a landing page",
            "category": "Web Development",
            "description": "Need a responsive landing page for a club event",
            "budget": 100,
            "deadline": future_deadline,
            "experienceLevel": "Intermediate",
            "skillsRequired": ["html", "css"],
        }
        body.update(overrides)
        r = await client.post("/api/jobs", json=body, headers=auth_headers(poster))
        assert r.status_code == 201, r.text
        return r.json()["data"]["job"]
    return _make


@pytest.fixture
def make_product(client, auth_headers):
    async def _make(seller, **overrides):
        body = {
            "title": "Used calculator",
            "price": 450,
            "category": "Electronics",
            "description": "Casio scientific calculator, works fine",
            "condition": "Good",
            "images": [],
        }
        body.update(overrides)
        r = await client.post("/api/products", json=body, headers=auth_headers(seller))
        assert r.status_code == 201, r.text
        return r.json()["data"]["product"]
    return _make
