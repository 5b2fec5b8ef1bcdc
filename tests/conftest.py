import json
import os

# La configuración se lee al importar shared.config: fijar el entorno antes
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BOOKING_STRICT_MODE", "false")

import uuid
from datetime import date, time
from decimal import Decimal
from typing import Any, Dict, Optional

import fakeredis
import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from shared.auth.jwt_handler import create_access_token
from shared.auth.supabase_client import SupabaseAuthClient, get_auth_client
from shared.cache import redis_client as redis_module
from shared.database.connection import Base, enable_sqlite_foreign_keys, get_db
from shared.database.models import Event, Profile
from shared.database.seed import seed_sample_events


def make_token(user_id: Any, email: Optional[str] = None, metadata: Optional[Dict] = None) -> str:
    return create_access_token({
        "sub": str(user_id),
        "email": email or f"{user_id}@example.com",
        "user_metadata": metadata or {},
    })


def auth_headers(user_id: Any) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


class FakeSupabaseAuth:
    """Simula los endpoints de Supabase Auth usados por la aplicación"""

    def __init__(self, confirm_email: bool = False):
        self.confirm_email = confirm_email
        self.users: Dict[str, Dict[str, Any]] = {}
        self.revoked = []
        # token -> id de usuario, para GET /user
        self.tokens: Dict[str, str] = {}

    def _session(self, user: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "access_token": make_token(user["id"], user["email"], user["user_metadata"]),
            "refresh_token": "refresh-" + user["id"],
            "token_type": "bearer",
            "expires_in": 3600,
            "user": user,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/auth/v1/signup":
            body = json.loads(request.content)
            if body["email"] in {u["email"] for u in self.users.values()}:
                return httpx.Response(422, json={"msg": "User already registered"})
            user = {
                "id": str(uuid.uuid4()),
                "email": body["email"],
                "password": body["password"],
                "user_metadata": body.get("data", {}),
            }
            self.users[user["id"]] = user
            public = {k: v for k, v in user.items() if k != "password"}
            if self.confirm_email:
                return httpx.Response(200, json=public)
            return httpx.Response(200, json=self._session(public))

        if path == "/auth/v1/token":
            body = json.loads(request.content)
            for user in self.users.values():
                if user["email"] == body["email"] and user["password"] == body["password"]:
                    public = {k: v for k, v in user.items() if k != "password"}
                    return httpx.Response(200, json=self._session(public))
            return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})

        if path == "/auth/v1/logout":
            self.revoked.append(request.headers.get("Authorization"))
            self.tokens.pop(request.headers.get("Authorization", "").removeprefix("Bearer "), None)
            return httpx.Response(204)

        if path == "/auth/v1/user":
            token = request.headers.get("Authorization", "").removeprefix("Bearer ")
            user = self.users.get(self.tokens.get(token))
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            public = {k: v for k, v in user.items() if k != "password"}
            return httpx.Response(200, json=public)

        return httpx.Response(404, json={"msg": "not found"})


@pytest.fixture(autouse=True)
async def fake_redis():
    """Redis en memoria para cache y locks"""
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    redis_module.redis_client = client
    yield client
    await client.flushall()
    redis_module.redis_client = None


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def supabase():
    return FakeSupabaseAuth()


@pytest.fixture
def auth_client(supabase):
    return SupabaseAuthClient(
        "https://project.supabase.co",
        "anon-key",
        transport=httpx.MockTransport(supabase.handler),
    )


@pytest.fixture
async def client(session_maker, auth_client):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_client] = lambda: auth_client
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def user(db_session):
    profile = Profile(id=uuid.uuid4(), full_name="Regular User", is_admin=False)
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest.fixture
async def other_user(db_session):
    profile = Profile(id=uuid.uuid4(), full_name="Other User", is_admin=False)
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest.fixture
async def admin(db_session):
    profile = Profile(id=uuid.uuid4(), full_name="Admin User", is_admin=True)
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest.fixture
async def seeded_events(db_session):
    await seed_sample_events(db_session)
    return db_session


@pytest.fixture
async def event(db_session):
    event = Event(
        title="Small Workshop",
        description="Hands-on session",
        date=date(2024, 9, 1),
        time=time(10, 0),
        location="Room 1",
        price=Decimal("10.00"),
        capacity=2,
        category="Technology",
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event
