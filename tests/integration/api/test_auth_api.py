"""Integration tests for /register and /login."""

from typing import Any

from fastapi.testclient import TestClient


def test_register_returns_new_id(client: TestClient) -> None:
    response = client.post(
        "/register", json={"email": "listener@example.com", "password": "hunter22"}
    )

    assert response.status_code == 201
    assert isinstance(response.json()["id"], int)


def test_register_duplicate_email(client: TestClient) -> None:
    body = {"email": "listener@example.com", "password": "hunter22"}
    client.post("/register", json=body)

    response = client.post(
        "/register", json={"email": " Listener@Example.com ", "password": "other"}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Email already exists"}


def test_register_missing_fields(client: TestClient) -> None:
    response = client.post("/register", json={"email": "listener@example.com"})

    assert response.status_code == 400
    assert response.json() == {"error": "Email and password are required"}


def test_register_without_body(client: TestClient) -> None:
    response = client.post("/register")

    assert response.status_code == 400
    assert response.json()["error"] == "Email and password are required"


def test_login_returns_token(client: TestClient, login: Any) -> None:
    headers = login()

    assert headers["Authorization"].startswith("Bearer ")
    assert client.get("/total-time", headers=headers).status_code == 200


def test_login_is_case_insensitive_on_email(client: TestClient, login: Any) -> None:
    login()

    response = client.post(
        "/login", json={"email": "LISTENER@example.com", "password": "hunter22"}
    )

    assert response.status_code == 200
    assert response.json()["accessToken"]


def test_login_wrong_password(client: TestClient, login: Any) -> None:
    login()

    response = client.post(
        "/login", json={"email": "listener@example.com", "password": "wrong"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_login_unknown_email(client: TestClient) -> None:
    response = client.post(
        "/login", json={"email": "nobody@example.com", "password": "hunter22"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_protected_route_without_header(client: TestClient) -> None:
    response = client.get("/stats")

    assert response.status_code == 401
    assert response.json() == {"error": "Authorization header missing"}


def test_protected_route_with_wrong_scheme(client: TestClient) -> None:
    response = client.get("/stats", headers={"Authorization": "Basic abc"})

    assert response.status_code == 401
    assert response.json() == {"error": "Access token missing"}


def test_protected_route_with_invalid_token(client: TestClient) -> None:
    response = client.get("/stats", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 403
    assert response.json() == {"error": "Invalid token"}


def test_long_password_registers_and_logs_in(client: TestClient) -> None:
    body = {"email": "long@example.com", "password": "x" * 80}

    assert client.post("/register", json=body).status_code == 201
    response = client.post("/login", json=body)

    assert response.status_code == 200
    assert response.json()["accessToken"]
