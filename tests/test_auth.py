"""
Test de autenticación contra un Supabase Auth simulado.
"""
import uuid
from datetime import timedelta

import httpx
import pytest
from jose import jwt
from sqlalchemy import func, select

from main import app
from shared.auth import supabase_validator
from shared.auth.jwt_handler import create_access_token, decode_token, identity_from_payload, verify_token
from shared.auth.supabase_client import AuthError, SupabaseAuthClient, get_auth_client
from shared.config import settings
from shared.database.models import Profile
from tests.conftest import make_token


SIGN_UP = {"email": "ada@example.com", "password": "s3cret-pass", "full_name": "Ada Lovelace"}


def _supabase_issued_token(user_id: str) -> str:
    # Firmado con un secreto que la aplicación no conoce
    return jwt.encode(
        {"sub": user_id, "iss": "https://project.supabase.co/auth/v1", "aud": "authenticated"},
        "project-secret",
        algorithm="HS256",
    )


class TestSignUp:
    """POST /api/v1/auth/sign-up"""

    async def test_sign_up_creates_exactly_one_profile(self, client, session_maker):
        response = await client.post("/api/v1/auth/sign-up", json=SIGN_UP)

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "ada@example.com"
        assert data["session"]["access_token"]
        assert data["profile"]["id"] == data["user_id"]
        assert data["profile"]["full_name"] == "Ada Lovelace"
        assert data["profile"]["is_admin"] is False

        # Primer request autenticado: no crea otro perfil
        token = data["session"]["access_token"]
        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200

        async with session_maker() as session:
            count = (await session.execute(select(func.count(Profile.id)))).scalar_one()
        assert count == 1

    async def test_sign_up_with_email_confirmation(self, client, supabase):
        supabase.confirm_email = True
        response = await client.post("/api/v1/auth/sign-up", json=SIGN_UP)

        assert response.status_code == 201
        assert response.json()["session"] is None
        assert response.json()["profile"]["full_name"] == "Ada Lovelace"

    async def test_duplicate_email_is_rejected(self, client):
        await client.post("/api/v1/auth/sign-up", json=SIGN_UP)
        response = await client.post("/api/v1/auth/sign-up", json=SIGN_UP)

        assert response.status_code == 422
        assert response.json()["detail"] == "User already registered"

    async def test_sign_up_validation(self, client):
        response = await client.post("/api/v1/auth/sign-up", json={"email": "ada@example.com"})
        assert response.status_code == 422


class TestSignIn:
    """Inicio y cierre de sesión"""

    async def test_sign_in_returns_session(self, client):
        await client.post("/api/v1/auth/sign-up", json=SIGN_UP)
        response = await client.post(
            "/api/v1/auth/sign-in",
            json={"email": SIGN_UP["email"], "password": SIGN_UP["password"]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "ada@example.com"

        payload = decode_token(data["access_token"])
        assert payload["sub"] == data["user"]["id"]

    async def test_wrong_password(self, client):
        await client.post("/api/v1/auth/sign-up", json=SIGN_UP)
        response = await client.post(
            "/api/v1/auth/sign-in",
            json={"email": SIGN_UP["email"], "password": "wrong"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid login credentials"

    async def test_sign_in_creates_missing_profile(self, client, supabase, session_maker):
        identity = str(uuid.uuid4())
        supabase.users[identity] = {
            "id": identity,
            "email": "legacy@example.com",
            "password": "pw",
            "user_metadata": {"full_name": "Legacy User"},
        }
        response = await client.post(
            "/api/v1/auth/sign-in",
            json={"email": "legacy@example.com", "password": "pw"},
        )
        assert response.status_code == 200

        async with session_maker() as session:
            profile = await session.get(Profile, uuid.UUID(identity))
        assert profile.full_name == "Legacy User"

    async def test_sign_out_revokes_token(self, client, supabase):
        session = (await client.post("/api/v1/auth/sign-up", json=SIGN_UP)).json()["session"]
        headers = {"Authorization": f"Bearer {session['access_token']}"}

        response = await client.post("/api/v1/auth/sign-out", headers=headers)
        assert response.status_code == 204
        assert supabase.revoked == [headers["Authorization"]]

    async def test_sign_out_requires_authentication(self, client):
        response = await client.post("/api/v1/auth/sign-out")
        assert response.status_code == 401

    async def test_me_requires_authentication(self, client):
        assert (await client.get("/api/v1/auth/me")).status_code == 401

    async def test_expired_token(self, client, user):
        token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(seconds=-1))
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_provider_unavailable(self, client):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        app.dependency_overrides[get_auth_client] = lambda: SupabaseAuthClient(
            "https://project.supabase.co", "anon-key", transport=httpx.MockTransport(handler)
        )
        response = await client.post(
            "/api/v1/auth/sign-in",
            json={"email": "ada@example.com", "password": "pw"},
        )
        assert response.status_code == 503


class TestSupabaseAuthClient:
    """Cliente REST de Supabase Auth"""

    async def test_missing_url_is_unavailable(self):
        client = SupabaseAuthClient("", "anon-key")
        with pytest.raises(AuthError) as exc_info:
            await client.sign_in("a@example.com", "pw")
        assert exc_info.value.status_code == 503

    async def test_sends_api_key_and_metadata(self):
        seen = {}

        def handler(request):
            seen["apikey"] = request.headers["apikey"]
            seen["body"] = request.content
            return httpx.Response(200, json={"id": str(uuid.uuid4()), "email": "a@example.com"})

        client = SupabaseAuthClient("https://project.supabase.co/", "anon-key", transport=httpx.MockTransport(handler))
        result = await client.sign_up("a@example.com", "pw", full_name="Ada")

        assert seen["apikey"] == "anon-key"
        assert b'"full_name"' in seen["body"]
        assert result["session"] is None
        assert result["user"].email == "a@example.com"


class TestTokenVerification:
    """Validación de tokens"""

    async def test_local_verification(self):
        identity = uuid.uuid4()
        payload = await verify_token(make_token(identity, metadata={"full_name": "Ada"}))
        assert identity_from_payload(payload) == {
            "user_id": str(identity),
            "email": f"{identity}@example.com",
            "user_metadata": {"full_name": "Ada"},
        }

    async def test_wrong_audience_is_rejected(self):
        token = create_access_token({"sub": str(uuid.uuid4()), "aud": "anon"})
        assert await verify_token(token) is None

    def test_payload_without_subject(self):
        assert identity_from_payload({"email": "a@example.com"}) is None

    async def test_remote_verification_is_cached(self, monkeypatch, supabase, auth_client, fake_redis):
        identity = str(uuid.uuid4())
        supabase.users[identity] = {
            "id": identity,
            "email": "remote@example.com",
            "password": "pw",
            "user_metadata": {},
        }
        token = _supabase_issued_token(identity)
        supabase.tokens[token] = identity
        monkeypatch.setattr(supabase_validator, "get_auth_client", lambda: auth_client)
        monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", "")

        payload = await verify_token(token)
        assert payload["sub"] == identity
        assert payload["email"] == "remote@example.com"

        key = supabase_validator.get_token_cache_key(token)
        assert await fake_redis.get(key) is not None

        # Segunda verificación desde cache, sin llamar al proveedor
        auth_client.transport = httpx.MockTransport(lambda request: httpx.Response(500))
        assert (await verify_token(token))["sub"] == identity

    async def test_sign_out_forgets_cached_verification(self, client, monkeypatch, supabase, auth_client, fake_redis):
        identity = str(uuid.uuid4())
        supabase.users[identity] = {
            "id": identity,
            "email": "remote@example.com",
            "password": "pw",
            "user_metadata": {},
        }
        token = _supabase_issued_token(identity)
        supabase.tokens[token] = identity
        monkeypatch.setattr(supabase_validator, "get_auth_client", lambda: auth_client)
        monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", "")

        assert (await verify_token(token))["sub"] == identity
        key = supabase_validator.get_token_cache_key(token)
        assert await fake_redis.get(key) is not None

        response = await client.post("/api/v1/auth/sign-out", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 204
        assert await fake_redis.get(key) is None

        # El token revocado ya no se acepta
        assert await verify_token(token) is None
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_remote_verification_rejected(self, monkeypatch, auth_client):
        monkeypatch.setattr(supabase_validator, "get_auth_client", lambda: auth_client)
        monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", "")
        assert await verify_token(_supabase_issued_token(str(uuid.uuid4()))) is None

    async def test_foreign_issuer_without_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", "")
        token = jwt.encode({"sub": str(uuid.uuid4()), "iss": "https://elsewhere"}, "x", algorithm="HS256")
        assert await verify_token(token) is None
