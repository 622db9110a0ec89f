"""
Tests for Auth API
==================

Sign-up, sign-in, sign-out and the current account.
"""

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from tests.conftest import TEST_PASSWORD


# ==================== SIGN UP TESTS ====================

class TestSignUp:
    """Tests for the sign-up endpoint"""

    @pytest.mark.api
    def test_sign_up_success(self, client: TestClient):
        """New account gets a usable token"""
        response = client.post("/api/v1/auth/signup", json={
            "email": "new.user@example.com",
            "password": "secret1",
            "name": "New User"
        })

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["account"]["email"] == "new.user@example.com"

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.status_code == status.HTTP_200_OK
        assert me.json()["name"] == "New User"

    @pytest.mark.api
    def test_sign_up_duplicate_email(self, client: TestClient, test_account):
        """Registering an existing email is rejected"""
        response = client.post("/api/v1/auth/signup", json={
            "email": test_account.email,
            "password": "secret1"
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["message"] == "This email is already registered. Please login instead."

    @pytest.mark.api
    def test_sign_up_weak_password(self, client: TestClient):
        """Short passwords carry the weak-password message"""
        response = client.post("/api/v1/auth/signup", json={
            "email": "short@example.com",
            "password": "123"
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["kind"] == "validation"

    @pytest.mark.api
    def test_sign_up_invalid_email(self, client: TestClient):
        """Malformed email fails request validation"""
        response = client.post("/api/v1/auth/signup", json={"email": "not-an-email", "password": "secret1"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


# ==================== SIGN IN / OUT TESTS ====================

class TestSignIn:
    """Tests for sign-in and sign-out"""

    @pytest.mark.api
    def test_sign_in_success(self, client: TestClient, test_account):
        """Correct credentials return a session"""
        response = client.post("/api/v1/auth/signin", json={
            "email": test_account.email,
            "password": TEST_PASSWORD
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["account"]["id"] == test_account.id

    @pytest.mark.api
    def test_sign_in_wrong_password(self, client: TestClient, test_account):
        """Wrong password is a permission error"""
        response = client.post("/api/v1/auth/signin", json={
            "email": test_account.email,
            "password": "not-the-password"
        })

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["message"] == "Invalid email or password."

    @pytest.mark.api
    def test_sign_out_revokes_token(self, client: TestClient, auth_headers):
        """Token stops working after sign-out"""
        response = client.post("/api/v1/auth/signout", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["signed_out"] is True
        assert client.get("/api/v1/auth/me", headers=auth_headers).status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.api
    def test_me_without_token(self, client: TestClient):
        """Protected endpoints require a bearer token"""
        response = client.get("/api/v1/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Authentication required"

    @pytest.mark.api
    def test_me_with_unknown_token(self, client: TestClient):
        """Unknown tokens are rejected"""
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nope"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Invalid or expired session"
