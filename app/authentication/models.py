"""
Authentication models.

This module defines the marketplace User:
- email-based login (no username)
- a marketplace role (client, freelancer, admin)
- the connected payout account a freelancer receives transfers on

Related files:
    - managers.py: Custom user manager for email-based creation
    - payments/services/connect_service.py: writes stripe_connect_id
    - payments/webhooks/handlers.py: flips payout_enabled on account.updated
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager
from core.model_mixins import UUIDPrimaryKeyMixin


class UserRole(models.TextChoices):
    """Marketplace role of a user."""

    CLIENT = "client", "Client"
    FREELANCER = "freelancer", "Freelancer"
    ADMIN = "admin", "Admin"


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        name: Display name shown to the other order party
        role: Marketplace role (client, freelancer, admin)
        stripe_connect_id: Connected payout account id (acct_xxx), null
            until the freelancer starts onboarding
        payout_enabled: True once the connected account reports both
            charges and payouts enabled
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin

    Usage:
        freelancer = User.objects.create_user(
            email="dev@example.com",
            password="securepassword",
            role=UserRole.FREELANCER,
        )
        if freelancer.can_receive_payouts:
            ...
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Display name",
    )

    # ==========================================================================
    # Marketplace Role
    # ==========================================================================

    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CLIENT,
        db_index=True,
        help_text="Marketplace role: client, freelancer or admin",
    )

    # ==========================================================================
    # Connected Payout Account
    # ==========================================================================

    stripe_connect_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Connect account ID (acct_xxx)",
    )
    payout_enabled = models.BooleanField(
        default=False,
        help_text="Whether the connected account can receive transfers",
    )

    # ==========================================================================
    # Account Status
    # ==========================================================================

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.name or self.email

    def get_short_name(self):
        return self.name.split(" ")[0] if self.name else self.email.split("@")[0]

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT

    @property
    def is_freelancer(self) -> bool:
        return self.role == UserRole.FREELANCER

    @property
    def is_platform_admin(self) -> bool:
        """Admins by role or by Django staff flag."""
        return self.role == UserRole.ADMIN or self.is_staff

    @property
    def can_receive_payouts(self) -> bool:
        return bool(self.stripe_connect_id) and self.payout_enabled
