"""
Firebase sign-in: identity and profile creation, backend JWTs
"""
from datetime import timedelta
from uuid import UUID

import pytest
from jose import jwt

from app.api.v1 import auth as auth_routes
from app.core.security import create_access_token, decode_access_token
from app.models.profile import Profile
from app.models.user import User
from app.services.auth_service import AuthService, get_user_info_from_token, suggest_username

API = "/api/v1"


def firebase_token(uid="firebase-uid-1", **claims):
    return {"uid": uid, **claims}


class TestTokens:

    def test_round_trip(self):
        token = create_access_token(data={"sub": "abc"})
        assert decode_access_token(token)["sub"] == "abc"

    def test_expired_token(self):
        token = create_access_token(data={"sub": "abc"}, expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_token_signed_with_another_key(self):
        token = jwt.encode({"sub": "abc"}, "some-other-secret", algorithm="HS256")
        assert decode_access_token(token) is None


class TestSuggestUsername:

    def test_from_display_name(self):
        assert suggest_username({"display_name": "Zed Smith"}) == "zedsmith"

    def test_falls_back_to_email(self):
        assert suggest_username({"display_name": "Z", "email": "zed.smith@example.com"}) == "zedsmith"

    def test_falls_back_to_random(self):
        assert suggest_username({}).startswith("user_")


class TestSignIn:

    def test_first_sign_in_creates_identity_and_profile(self, db):
        user_info = get_user_info_from_token(firebase_token(email="zed@example.com", name="Zed"))

        user, is_new = AuthService(db).sign_in(user_info, username="Zed_01")

        assert is_new is True
        assert user.email == "zed@example.com"
        assert db.query(Profile).filter(Profile.user_id == user.id).one().username == "zed_01"

    def test_second_sign_in_reuses_identity(self, db):
        user_info = get_user_info_from_token(firebase_token(name="Zed"))
        first, _ = AuthService(db).sign_in(user_info)
        second, is_new = AuthService(db).sign_in(user_info)

        assert is_new is False
        assert second.id == first.id
        assert db.query(User).count() == 1
        assert db.query(Profile).count() == 1

    def test_derived_username_collision_gets_suffix(self, db, alice):
        user_info = get_user_info_from_token(firebase_token(name="Alice"))

        user, _ = AuthService(db).sign_in(user_info)

        username = db.query(Profile).filter(Profile.user_id == user.id).one().username
        assert username.startswith("alice_")


class TestFirebaseEndpoint:

    def test_exchanges_firebase_token_for_jwt(self, client, monkeypatch):
        monkeypatch.setattr(
            auth_routes, "verify_firebase_token",
            lambda token: firebase_token(email="zed@example.com", name="Zed")
        )

        response = client.post(f"{API}/auth/firebase", json={"firebase_token": "t", "username": "zed"})

        assert response.status_code == 200
        body = response.json()
        assert body["is_new_user"] is True
        assert decode_access_token(body["access_token"])["sub"] == body["user_id"]
        UUID(body["user_id"])

        me = client.get(f"{API}/profiles/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.json()["username"] == "zed"

    @pytest.mark.parametrize("error,status_code", [
        (ValueError("bad token"), 401),
        (RuntimeError("no credentials"), 503),
    ])
    def test_verification_failures(self, client, monkeypatch, error, status_code):
        def fail(token):
            raise error

        monkeypatch.setattr(auth_routes, "verify_firebase_token", fail)

        response = client.post(f"{API}/auth/firebase", json={"firebase_token": "t"})
        assert response.status_code == status_code

    def test_taken_username_is_409(self, client, alice, monkeypatch):
        monkeypatch.setattr(auth_routes, "verify_firebase_token", lambda token: firebase_token())
        response = client.post(f"{API}/auth/firebase", json={"firebase_token": "t", "username": "alice"})
        assert response.status_code == 409
