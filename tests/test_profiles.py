"""
Test de perfiles.
"""
import uuid

import pytest
from sqlalchemy import func, select

from shared.auth.policies import PolicyViolation
from shared.database.models import Profile
from services.profiles.services.profile_service import ProfileService
from tests.conftest import auth_headers, make_token


class TestEnsureProfile:
    """Un perfil por identidad"""

    async def test_creates_profile_from_metadata(self, db_session):
        identity = uuid.uuid4()
        profile = await ProfileService().ensure_profile(
            db_session,
            str(identity),
            {"full_name": "Ada Lovelace", "avatar_url": "https://example.com/ada.png"},
        )
        assert profile.id == identity
        assert profile.full_name == "Ada Lovelace"
        assert profile.avatar_url == "https://example.com/ada.png"
        assert profile.is_admin is False
        assert profile.username is None

    async def test_is_idempotent(self, db_session):
        identity = uuid.uuid4()
        service = ProfileService()
        first = await service.ensure_profile(db_session, identity, {"full_name": "First"})
        second = await service.ensure_profile(db_session, identity, {"full_name": "Second"})

        assert first.id == second.id
        assert second.full_name == "First"
        count = (await db_session.execute(select(func.count(Profile.id)))).scalar_one()
        assert count == 1

    async def test_separate_sessions_share_one_profile(self, session_maker):
        identity = uuid.uuid4()
        ids = []
        for _ in range(2):
            async with session_maker() as session:
                profile = await ProfileService().ensure_profile(session, identity)
                ids.append(profile.id)
        assert ids == [identity, identity]

        async with session_maker() as session:
            count = (await session.execute(select(func.count(Profile.id)))).scalar_one()
        assert count == 1

    async def test_rejects_malformed_identity(self, db_session):
        with pytest.raises(ValueError):
            await ProfileService().ensure_profile(db_session, "not-a-uuid")

    async def test_malformed_subject_is_unauthorized(self, client):
        token = make_token("not-a-uuid")
        response = await client.get("/api/v1/profiles/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestProfileRoutes:
    """/api/v1/profiles"""

    async def test_profiles_are_public(self, client, user, admin):
        response = await client.get("/api/v1/profiles")
        assert response.status_code == 200
        ids = {p["id"] for p in response.json()}
        assert ids == {str(user.id), str(admin.id)}

        response = await client.get(f"/api/v1/profiles/{user.id}")
        assert response.status_code == 200
        assert response.json()["full_name"] == "Regular User"

    async def test_profile_not_found(self, client):
        response = await client.get(f"/api/v1/profiles/{uuid.uuid4()}")
        assert response.status_code == 404

    async def test_get_me(self, client, user):
        response = await client.get("/api/v1/profiles/me", headers=auth_headers(user.id))
        assert response.status_code == 200
        assert response.json()["id"] == str(user.id)

    async def test_update_own_profile(self, client, user):
        response = await client.patch(
            "/api/v1/profiles/me",
            json={"username": "regular", "full_name": "Regular Person"},
            headers=auth_headers(user.id),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "regular"
        assert data["full_name"] == "Regular Person"

    async def test_cannot_grant_admin_to_self(self, client, user):
        response = await client.patch(
            "/api/v1/profiles/me",
            json={"is_admin": True, "full_name": "Sneaky"},
            headers=auth_headers(user.id),
        )
        assert response.status_code == 200
        assert response.json()["is_admin"] is False
        assert response.json()["full_name"] == "Sneaky"

    async def test_username_must_be_unique(self, client, user, other_user):
        await client.patch("/api/v1/profiles/me", json={"username": "taken"}, headers=auth_headers(user.id))

        response = await client.patch(
            "/api/v1/profiles/me",
            json={"username": "taken"},
            headers=auth_headers(other_user.id),
        )
        assert response.status_code == 409

    async def test_update_requires_authentication(self, client):
        response = await client.patch("/api/v1/profiles/me", json={"full_name": "Nobody"})
        assert response.status_code == 401

    async def test_service_rejects_update_of_other_profile(self, db_session, user, other_user):
        with pytest.raises(PolicyViolation):
            await ProfileService().update_profile(
                db_session, other_user.id, {"full_name": "Changed"}, actor_id=user.id
            )
