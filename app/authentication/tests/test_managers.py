"""
Tests for UserManager.

Test organization follows the Given-When-Then pattern.

Related files:
    - managers.py: Implementation under test
"""

import pytest

from authentication.models import User, UserRole


class TestUserManagerCreateUser:
    """Tests for UserManager.create_user() method."""

    def test_creates_client_by_default(self, db):
        """
        Given an email and password
        When create_user is called without a role
        Then the user is a client who can authenticate with the password
        """
        user = User.objects.create_user(
            email="mgr_client@example.com", password="SecurePass123!"
        )

        assert user.role == UserRole.CLIENT
        assert user.check_password("SecurePass123!") is True
        assert user.is_staff is False

    def test_normalizes_email_domain(self, db):
        """
        Given an email with an uppercase domain
        When create_user is called
        Then the domain is lowercased
        """
        user = User.objects.create_user(email="Dev.User@EXAMPLE.COM", password="x")

        assert user.email == "Dev.User@example.com"

    def test_requires_email(self, db):
        """
        Given an empty email
        When create_user is called
        Then ValueError is raised
        """
        with pytest.raises(ValueError, match="Email"):
            User.objects.create_user(email="", password="x")

    def test_user_without_password_has_unusable_password(self, db):
        """
        Given no password
        When create_user is called
        Then the password is unusable
        """
        user = User.objects.create_user(email="nopass@example.com")

        assert user.has_usable_password() is False


class TestUserManagerCreateSuperuser:
    """Tests for UserManager.create_superuser() method."""

    def test_superuser_gets_admin_role(self, db):
        """
        Given superuser credentials
        When create_superuser is called
        Then the user is staff, superuser and has the admin role
        """
        admin = User.objects.create_superuser(
            email="root@example.com", password="AdminPass123!"
        )

        assert admin.is_staff is True
        assert admin.is_superuser is True
        assert admin.role == UserRole.ADMIN
        assert admin.is_platform_admin is True

    def test_rejects_superuser_without_staff_flag(self, db):
        """
        Given is_staff=False
        When create_superuser is called
        Then ValueError is raised
        """
        with pytest.raises(ValueError, match="is_staff"):
            User.objects.create_superuser(
                email="bad@example.com", password="x", is_staff=False
            )
