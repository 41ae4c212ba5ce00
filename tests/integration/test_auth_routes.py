"""Integration tests for authentication endpoints."""

from __future__ import annotations

import re
from unittest.mock import AsyncMock

import pytest
from fastapi import status
from httpx import AsyncClient
from src.core.auth import issue_token
from src.core.config import get_settings

from tests.utils import DEFAULT_PASSWORD, auth_headers, cookie_headers, create_user


@pytest.fixture
def test_user() -> dict:
    """Test user data."""
    return {
        "email": "nimal@example.com",
        "password": "testpassword123",
        "name": "Nimal Perera",
    }


def _code_from(mailer: AsyncMock) -> str:
    text = mailer.send_email.await_args.kwargs["text"]
    match = re.search(r"\b(\d{6})\b", text)
    assert match is not None
    return match.group(1)


class TestRegisterEndpoint:
    """Tests for POST /auth/register endpoint."""

    @pytest.mark.asyncio
    async def test_register_success(self, async_client: AsyncClient, test_user: dict) -> None:
        """Successful registration creates a STUDENT account."""
        response = await async_client.post("/auth/register", json=test_user)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["email"] == test_user["email"]
        assert data["name"] == test_user["name"]
        assert data["role"] == "STUDENT"
        assert "password" not in data
        assert "hashed_password" not in data

    @pytest.mark.asyncio
    async def test_register_ignores_requested_role(
        self, async_client: AsyncClient, test_user: dict
    ) -> None:
        response = await async_client.post("/auth/register", json={**test_user, "role": "ADMIN"})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["role"] == "STUDENT"

    @pytest.mark.asyncio
    async def test_register_duplicate_email(
        self, async_client: AsyncClient, test_user: dict
    ) -> None:
        """Registering with existing email should return 409."""
        await async_client.post("/auth/register", json=test_user)

        response = await async_client.post(
            "/auth/register", json={**test_user, "email": "NIMAL@example.com"}
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert "already exists" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_register_short_password(self, async_client: AsyncClient) -> None:
        """Password under 8 chars should return 422."""
        response = await async_client.post(
            "/auth/register",
            json={"email": "test@example.com", "name": "Test", "password": "short"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestLoginEndpoint:
    """Tests for POST /auth/login endpoint."""

    @pytest.mark.asyncio
    async def test_login_sets_session_cookie(
        self, async_client: AsyncClient, test_user: dict
    ) -> None:
        await async_client.post("/auth/register", json=test_user)

        response = await async_client.post(
            "/auth/login",
            json={"email": test_user["email"], "password": test_user["password"]},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user"]["email"] == test_user["email"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == get_settings().access_token_ttl_seconds

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"token={data['access_token']}")
        assert "HttpOnly" in set_cookie
        assert "Path=/" in set_cookie
        assert "SameSite=strict" in set_cookie
        assert f"Max-Age={get_settings().access_token_ttl_seconds}" in set_cookie

    @pytest.mark.asyncio
    async def test_login_email_is_case_insensitive(
        self, async_client: AsyncClient, test_user: dict
    ) -> None:
        await async_client.post("/auth/register", json=test_user)

        response = await async_client.post(
            "/auth/login",
            json={"email": "NIMAL@example.com", "password": test_user["password"]},
        )

        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("email", "password"),
        [
            ("nimal@example.com", "wrong-password"),
            ("nobody@example.com", "testpassword123"),
        ],
    )
    async def test_login_failures_look_identical(
        self, async_client: AsyncClient, test_user: dict, email: str, password: str
    ) -> None:
        await async_client.post("/auth/register", json=test_user)

        response = await async_client.post(
            "/auth/login", json={"email": email, "password": password}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Invalid credentials"
        assert "set-cookie" not in response.headers


class TestLogoutEndpoint:
    @pytest.mark.asyncio
    async def test_logout_expires_cookie(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/auth/logout")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Logged out successfully"
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("token=")
        assert "Max-Age=0" in set_cookie
        assert "Path=/" in set_cookie


class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_me_with_cookie(self, async_client: AsyncClient, session_factory) -> None:
        user = await create_user(session_factory)

        response = await async_client.get("/users/me", headers=cookie_headers(user.user_id))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == user.user_id

    @pytest.mark.asyncio
    async def test_me_with_bearer(self, async_client: AsyncClient, session_factory) -> None:
        user = await create_user(session_factory)

        response = await async_client.get("/users/me", headers=auth_headers(user.user_id))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["email"] == user.email

    @pytest.mark.asyncio
    async def test_me_without_token(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/users/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_me_for_deleted_account(self, async_client: AsyncClient) -> None:
        response = await async_client.get(
            "/users/me", headers={"Authorization": f"Bearer {issue_token('ghost-user')}"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Not authenticated"

    @pytest.mark.asyncio
    async def test_cookie_takes_precedence_over_bearer(
        self, async_client: AsyncClient, session_factory
    ) -> None:
        user = await create_user(session_factory)
        headers = {**auth_headers(user.user_id), "Cookie": "token=garbage"}

        response = await async_client.get("/users/me", headers=headers)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_full_reset_flow(
        self, async_client: AsyncClient, session_factory, mailer: AsyncMock
    ) -> None:
        user = await create_user(session_factory, email="kamal@example.com")

        response = await async_client.post(
            "/auth/request-reset", json={"email": "kamal@example.com"}
        )
        assert response.status_code == status.HTTP_200_OK
        mailer.send_email.assert_awaited_once()
        assert mailer.send_email.await_args.kwargs["to_emails"] == [user.email]
        code = _code_from(mailer)

        response = await async_client.post(
            "/auth/reset-password",
            json={"email": "kamal@example.com", "code": code, "new_password": "new-secret-99"},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Password has been reset"

        old_login = await async_client.post(
            "/auth/login", json={"email": "kamal@example.com", "password": DEFAULT_PASSWORD}
        )
        new_login = await async_client.post(
            "/auth/login", json={"email": "kamal@example.com", "password": "new-secret-99"}
        )
        assert old_login.status_code == status.HTTP_401_UNAUTHORIZED
        assert new_login.status_code == status.HTTP_200_OK

        reused = await async_client.post(
            "/auth/reset-password",
            json={"email": "kamal@example.com", "code": code, "new_password": "another-pass-1"},
        )
        assert reused.status_code == status.HTTP_404_NOT_FOUND
        assert reused.json()["detail"] == "Invalid code or expired"

    @pytest.mark.asyncio
    async def test_wrong_code_is_rejected(
        self, async_client: AsyncClient, session_factory, mailer: AsyncMock
    ) -> None:
        await create_user(session_factory, email="kamal@example.com")
        await async_client.post("/auth/request-reset", json={"email": "kamal@example.com"})
        code = _code_from(mailer)
        wrong = "100000" if code != "100000" else "100001"

        response = await async_client.post(
            "/auth/reset-password",
            json={"email": "kamal@example.com", "code": wrong, "new_password": "new-secret-99"},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_unknown_email_gets_generic_answer(
        self, async_client: AsyncClient, mailer: AsyncMock
    ) -> None:
        response = await async_client.post(
            "/auth/request-reset", json={"email": "nobody@example.com"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "If an account exists, a reset code was sent."
        mailer.send_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset_for_unknown_email(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/auth/reset-password",
            json={"email": "nobody@example.com", "code": "123456", "new_password": "whatever1"},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
