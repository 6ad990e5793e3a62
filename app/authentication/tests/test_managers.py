"""
Tests for UserManager.

The manager creates users keyed by email; every credit account hangs off
the resulting User row.
"""

import pytest
from django.contrib.auth.hashers import check_password

from authentication.models import User


class TestUserManagerCreateUser:
    """Tests for UserManager.create_user() method."""

    def test_creates_user_with_email_and_password(self, db):
        """
        Given valid email and password
        When create_user is called
        Then a user is created that can authenticate with the password
        """
        user = User.objects.create_user(email="buyer@example.com", password="SecurePass123!")

        assert user.pk is not None
        assert user.email == "buyer@example.com"
        assert user.check_password("SecurePass123!") is True

    def test_normalizes_email_domain_to_lowercase(self, db):
        """Domain part is lowercased, local part case is preserved."""
        user = User.objects.create_user(email="Test.User@EXAMPLE.COM", password="TestPass123!")

        assert user.email == "Test.User@example.com"

    @pytest.mark.parametrize("email", ["", None])
    def test_raises_valueerror_without_email(self, db, email):
        """
        Given an empty or missing email
        When create_user is called
        Then a ValueError is raised
        """
        with pytest.raises(ValueError) as exc_info:
            User.objects.create_user(email=email, password="TestPass123!")

        assert "Email field must be set" in str(exc_info.value)

    def test_creates_user_without_password(self, db):
        """Users created without a password get an unusable one."""
        user = User.objects.create_user(email="nopass@example.com", password=None)

        assert user.has_usable_password() is False
        assert user.check_password("") is False

    def test_sets_default_flags_for_regular_user(self, db):
        """Regular users are active, not staff, not superuser."""
        user = User.objects.create_user(email="regular@example.com", password="TestPass123!")

        assert user.is_staff is False
        assert user.is_superuser is False
        assert user.is_active is True

    def test_password_is_properly_hashed(self, db):
        """The stored password is a Django hash, never the plaintext."""
        user = User.objects.create_user(email="hash@example.com", password="SecurePass123!")

        assert user.password != "SecurePass123!"
        assert "$" in user.password
        assert check_password("SecurePass123!", user.password) is True


class TestUserManagerCreateSuperuser:
    """Tests for UserManager.create_superuser() method."""

    def test_creates_superuser_with_correct_flags(self, db):
        """
        Given valid email and password
        When create_superuser is called
        Then user is created with is_staff=True and is_superuser=True
        """
        superuser = User.objects.create_superuser(
            email="admin@example.com", password="AdminPass123!"
        )

        assert superuser.is_staff is True
        assert superuser.is_superuser is True
        assert superuser.check_password("AdminPass123!") is True

    @pytest.mark.parametrize("flag", ["is_staff", "is_superuser"])
    def test_raises_valueerror_when_flag_is_false(self, db, flag):
        """A superuser must keep both elevated flags."""
        with pytest.raises(ValueError) as exc_info:
            User.objects.create_superuser(
                email="admin@example.com",
                password="AdminPass123!",
                **{flag: False},
            )

        assert f"{flag}=True" in str(exc_info.value)
