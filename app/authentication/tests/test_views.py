"""
Tests for the JWT token endpoints.

The credits API authenticates callers with the access token issued here.
"""

import pytest
from django.urls import reverse


@pytest.mark.django_db
class TestTokenObtain:
    """Tests for POST /api/v1/auth/token/."""

    def test_returns_token_pair_for_valid_credentials(self, api_client, user):
        """Valid email/password returns access and refresh tokens."""
        response = api_client.post(
            reverse("authentication:token-obtain"),
            {"email": user.email, "password": "TestPass123!"},
            format="json",
        )

        assert response.status_code == 200
        assert "access" in response.data
        assert "refresh" in response.data

    def test_rejects_wrong_password(self, api_client, user):
        """Wrong password is a 401."""
        response = api_client.post(
            reverse("authentication:token-obtain"),
            {"email": user.email, "password": "wrong"},
            format="json",
        )

        assert response.status_code == 401

    def test_access_token_authenticates_credits_api(self, api_client, user):
        """The issued access token is accepted by the credits endpoints."""
        response = api_client.post(
            reverse("authentication:token-obtain"),
            {"email": user.email, "password": "TestPass123!"},
            format="json",
        )
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

        balance = api_client.get(reverse("credits:balance"))

        assert balance.status_code == 200
        assert balance.data["user_id"] == user.pk
