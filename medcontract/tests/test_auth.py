import pytest


@pytest.mark.asyncio
async def test_register(client):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "newuser@test.com",
            "password": "securepass123",
            "first_name": "New",
            "last_name": "User",
            "company": "Northside Clinic",
            "role": "client",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "newuser@test.com"
    assert data["first_name"] == "New"
    assert data["role"] == "client"
    assert "id" in data
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    payload = {
        "email": "duplicate@test.com",
        "password": "securepass123",
        "first_name": "First",
        "last_name": "User",
    }
    await client.post("/api/v1/auth/register", json=payload)

    response = await client.post("/api/v1/auth/register", json=payload)
    assert response.status_code == 400
    assert "already exists" in response.json()["message"]


@pytest.mark.asyncio
async def test_register_admin_forbidden(client):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "root@test.com",
            "password": "securepass123",
            "first_name": "Root",
            "last_name": "User",
            "role": "admin",
        },
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_register_reports_every_invalid_field(client):
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "not-an-email", "password": "x"},
    )
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert {"email", "password", "first_name", "last_name"} <= fields


@pytest.mark.asyncio
async def test_login(client):
    await client.post(
        "/api/v1/auth/register",
        json={
            "email": "login@test.com",
            "password": "mypassword",
            "first_name": "Login",
            "last_name": "User",
            "role": "contractor",
        },
    )

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "login@test.com", "password": "mypassword"},
    )
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert "refresh_token" in data
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_invalid_credentials(client):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@test.com", "password": "wrong"},
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_get_me(client, auth_headers):
    response = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "client"
    assert data["first_name"] == "Clara"


@pytest.mark.asyncio
async def test_get_me_no_auth(client):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_me_bad_token(client):
    response = await client.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token(client):
    await client.post(
        "/api/v1/auth/register",
        json={
            "email": "refresh@test.com",
            "password": "mypassword",
            "first_name": "Refresh",
            "last_name": "User",
        },
    )
    login_resp = await client.post(
        "/api/v1/auth/login",
        json={"email": "refresh@test.com", "password": "mypassword"},
    )
    tokens = login_resp.json()

    response = await client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": tokens["refresh_token"]},
    )
    assert response.status_code == 200
    assert "access_token" in response.json()

    # An access token cannot be used as a refresh token
    response = await client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": tokens["access_token"]},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_health(client, upload_dir):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["storage"] is True
    assert upload_dir.is_dir()
    assert "x-request-id" in response.headers
