"""
Factory Boy factories for authentication models.

Usage:
    from authentication.tests.factories import (
        ClientUserFactory,
        FreelancerFactory,
        AdminUserFactory,
    )

    client = ClientUserFactory()
    freelancer = FreelancerFactory(stripe_connect_id="acct_123")
"""

import factory

from authentication.models import User, UserRole


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    Creates active client users by default.

    Examples:
        user = UserFactory()
        staff = UserFactory(is_staff=True)
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    name = factory.Faker("name")
    role = UserRole.CLIENT
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use UserManager.create_user()."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )


class ClientUserFactory(UserFactory):
    """A client who orders services."""

    email = factory.Sequence(lambda n: f"client{n}@example.com")
    role = UserRole.CLIENT


class FreelancerFactory(UserFactory):
    """
    A freelancer without a connected payout account.

    Use the with_payouts trait for a fully onboarded freelancer:
        FreelancerFactory(with_payouts=True)
    """

    email = factory.Sequence(lambda n: f"freelancer{n}@example.com")
    role = UserRole.FREELANCER

    class Params:
        with_payouts = factory.Trait(
            stripe_connect_id=factory.Sequence(lambda n: f"acct_test{n:06d}"),
            payout_enabled=True,
        )


class AdminUserFactory(UserFactory):
    """A platform administrator."""

    email = factory.Sequence(lambda n: f"admin{n}@example.com")
    role = UserRole.ADMIN
    is_staff = True
