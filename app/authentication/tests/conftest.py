"""
Test configuration and fixtures for authentication tests.

Usage:
    def test_example(user, api_client):
        response = api_client.post('/api/v1/auth/token/', {...})
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory


@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Active user with the factory default password."""
    return UserFactory()
