"""Tests for access control on /users routes."""
import pytest


async def _login(client, email, password) -> str:
    r = await client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    client.cookies.clear()
    return r.json()["access_token"]


@pytest.mark.asyncio
async def test_me_requires_auth(client):
    r = await client.get("/users/me")
    assert r.status_code == 401
    assert r.json() == {"status": "fail", "message": "You are not logged in"}


@pytest.mark.asyncio
async def test_me_with_bearer(client, verified_user):
    email, password = verified_user
    token = await _login(client, email, password)
    r = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    user = r.json()["data"]["user"]
    assert user["email"] == email
    assert user["pseudo"] == "alice"
    assert user["role"] == "user"
    assert user["verified"] is True
    assert "password_hash" not in user


@pytest.mark.asyncio
async def test_me_with_cookie_fallback(client, verified_user):
    """Without an Authorization header the access_token cookie is used."""
    email, password = verified_user
    token = await _login(client, email, password)
    client.cookies.set("access_token", token)
    r = await client.get("/users/me")
    assert r.status_code == 200
    assert r.json()["data"]["user"]["email"] == email


@pytest.mark.asyncio
async def test_bearer_preferred_over_cookie(client, verified_user):
    email, password = verified_user
    token = await _login(client, email, password)
    client.cookies.set("access_token", "stale-cookie-token")
    r = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_invalid_token_rejected(client):
    r = await client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token or user doesn't exist"
    assert r.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_token_for_missing_user_rejected(app, client):
    """A validly signed token whose user no longer exists is refused."""
    token = app.state.auth_service.tokens.sign(9999)
    r = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token or session has expired"


@pytest.mark.asyncio
async def test_list_users_admin_only(client, verified_user, admin_headers):
    email, password = verified_user
    token = await _login(client, email, password)
    r = await client.get("/users", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json() == {"status": "fail", "message": "You are not authorized to access"}

    r = await client.get("/users", headers=admin_headers)
    assert r.status_code == 200
    emails = [u["email"] for u in r.json()["data"]["users"]]
    assert emails == ["admin@example.com", email]


@pytest.mark.asyncio
async def test_list_users_requires_auth(client):
    assert (await client.get("/users")).status_code == 401


@pytest.mark.asyncio
async def test_logout_does_not_revoke_token(client, verified_user):
    """Logout only clears cookies; a copied token keeps working until it expires."""
    email, password = verified_user
    token = await _login(client, email, password)
    assert (await client.post("/auth/logout")).status_code == 200
    r = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
