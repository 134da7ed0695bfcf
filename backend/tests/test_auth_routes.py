"""
test_auth_routes.py - Register, login, logout, me and the session guard.

Uses FakeSession (conftest) in place of the database. Tokens are accepted
from the Authorization header or from the httpOnly session cookie.
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from app.api.auth_routes import create_access_token, pwd_context
from app.api.deps import ALGORITHM, AUTH_COOKIE_NAME, SECRET_KEY, decode_token


def _bearer(user_id):
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


class TestTokens:

    def test_round_trip(self):
        token = create_access_token({"sub": "user-1", "role": "owner"})
        payload = decode_token(token)
        assert payload["sub"] == "user-1"
        assert payload["role"] == "owner"
        assert payload["exp"] > datetime.now(timezone.utc).timestamp()

    def test_password_hashing(self):
        hashed = pwd_context.hash("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert pwd_context.verify("s3cret-pass", hashed)
        assert not pwd_context.verify("wrong", hashed)


class TestLogin:

    def test_login_sets_cookie(self, anon_client, owner):
        r = anon_client.post("/api/auth/login", json={"email": "pat@example.com", "password": "correct-horse"})
        assert r.status_code == 200
        data = r.json()["data"]
        assert decode_token(data["token"])["sub"] == owner.id
        assert data["user"]["company"] == {"id": "company-1", "name": "Cool Air LLC"}
        cookie = r.headers["set-cookie"].lower()
        assert f"{AUTH_COOKIE_NAME}=" in cookie
        assert "httponly" in cookie
        assert "samesite=strict" in cookie

    def test_email_is_normalised(self, anon_client):
        r = anon_client.post("/api/auth/login", json={"email": "  PAT@Example.com ", "password": "correct-horse"})
        assert r.status_code == 200

    def test_wrong_password(self, anon_client):
        r = anon_client.post("/api/auth/login", json={"email": "pat@example.com", "password": "nope-nope"})
        assert r.status_code == 401
        assert r.json() == {"success": False, "message": "Invalid email or password", "data": {}}

    def test_unknown_email(self, anon_client):
        r = anon_client.post("/api/auth/login", json={"email": "who@example.com", "password": "correct-horse"})
        assert r.status_code == 401

    def test_malformed_email(self, anon_client):
        r = anon_client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})
        assert r.status_code == 400
        assert r.json()["message"] == "Invalid email format"

    def test_deactivated_account(self, anon_client, owner):
        owner.is_active = False
        r = anon_client.post("/api/auth/login", json={"email": "pat@example.com", "password": "correct-horse"})
        assert r.status_code == 403


class TestRegister:

    def test_register_creates_company_and_owner(self, anon_client, fake_session):
        body = {"name": "Sam", "email": "sam@example.com", "password": "long-enough", "company_name": "Sam's HVAC"}
        r = anon_client.post("/api/auth/register", json=body)
        assert r.status_code == 201
        user = r.json()["data"]["user"]
        assert user["role"] == "owner"
        assert user["company"]["name"] == "Sam's HVAC"
        assert len(fake_session.users) == 2
        created = fake_session.users[-1]
        assert created.email == "sam@example.com"
        assert created.hashed_password != "long-enough"
        assert created.company_id == user["company"]["id"]

    def test_duplicate_email(self, anon_client):
        body = {"name": "Pat", "email": "pat@example.com", "password": "long-enough", "company_name": "X"}
        r = anon_client.post("/api/auth/register", json=body)
        assert r.status_code == 409
        assert r.json()["message"] == "Email already in use"

    def test_short_password(self, anon_client):
        body = {"name": "Sam", "email": "sam@example.com", "password": "short", "company_name": "X"}
        r = anon_client.post("/api/auth/register", json=body)
        assert r.status_code == 400
        assert "at least 8" in r.json()["message"]

    def test_missing_company(self, anon_client):
        r = anon_client.post("/api/auth/register", json={"name": "Sam", "email": "sam@example.com",
                                                         "password": "long-enough"})
        assert r.status_code == 400
        assert "company_name" in r.json()["message"]


class TestSession:

    def test_me_with_bearer(self, anon_client, owner):
        r = anon_client.get("/api/auth/me", headers=_bearer(owner.id))
        assert r.status_code == 200
        assert r.json()["data"]["user"]["email"] == "pat@example.com"

    def test_me_with_cookie(self, anon_client, owner):
        anon_client.cookies.set(AUTH_COOKIE_NAME, create_access_token({"sub": owner.id}))
        r = anon_client.get("/api/auth/me")
        assert r.status_code == 200

    def test_bearer_wins_over_cookie(self, anon_client, owner):
        anon_client.cookies.set(AUTH_COOKIE_NAME, "garbage")
        r = anon_client.get("/api/auth/me", headers=_bearer(owner.id))
        assert r.status_code == 200

    def test_invalid_token(self, anon_client):
        r = anon_client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert r.status_code == 401
        assert r.json()["message"] == "Invalid token"

    def test_expired_token(self, anon_client, owner):
        expired = jwt.encode(
            {"sub": owner.id, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            SECRET_KEY, algorithm=ALGORITHM,
        )
        r = anon_client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
        assert r.status_code == 401

    def test_token_for_unknown_user(self, anon_client):
        r = anon_client.get("/api/auth/me", headers=_bearer("ghost"))
        assert r.status_code == 401

    def test_inactive_user_is_rejected(self, anon_client, owner):
        owner.is_active = False
        r = anon_client.get("/api/auth/me", headers=_bearer(owner.id))
        assert r.status_code == 401

    def test_logout_clears_cookie(self, anon_client):
        r = anon_client.post("/api/auth/logout")
        assert r.status_code == 200
        cookie = r.headers["set-cookie"].lower()
        assert f"{AUTH_COOKIE_NAME}=" in cookie
        assert "max-age=0" in cookie

    def test_cookie_session_reaches_finance_routes(self, anon_client, owner):
        anon_client.cookies.set(AUTH_COOKIE_NAME, create_access_token({"sub": owner.id}))
        r = anon_client.get("/api/overhead/me")
        assert r.status_code == 200
        assert r.json()["data"] == {"inputs": None, "calculations": None}
