import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["ENVIRONMENT"] = "development"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SENDGRID_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from portfolio.core import email as notifications
from portfolio.core.database import Base, get_async_session
from portfolio.crud.user import get_user_by_email
from portfolio.main import app


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portfolio.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_async_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


class Outbox:
    """Stands in for SendGrid; records every message instead of sending it."""

    def __init__(self):
        self.messages = []
        self.deliver = True

    async def send(self, to_email, subject, body):
        self.messages.append({"to": to_email, "subject": subject, "body": body})
        return self.deliver


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    box = Outbox()
    monkeypatch.setattr(notifications, "send_email_via_sendgrid", box.send)
    return box


async def signup(client, email="alice@example.com", password="secret1", name="Alice"):
    response = await client.post(
        "/api/auth/signup",
        json={"email": email, "password": password, "name": name},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["user"]


async def load_user(session_factory, email):
    async with session_factory() as session:
        return await get_user_by_email(email, session)
