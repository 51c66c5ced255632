"""
Connect onboarding for freelancers.

A freelancer needs an Express connected account before any release can
reach them. Onboarding happens on Stripe's hosted pages; we keep only the
account id and whether payouts are enabled.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings

from core.exceptions import PermissionDeniedError
from core.services import BaseService
from payments.adapters import IdempotencyKeyGenerator, get_stripe_adapter
from payments.exceptions import PaymentValidationError
from payments.state_machines import ConnectAccountStatus

if TYPE_CHECKING:
    from authentication.models import User


@dataclass
class ConnectOnboarding:
    account_id: str
    onboarding_url: str


@dataclass
class ConnectAccountState:
    status: str
    account_id: str | None = None
    charges_enabled: bool = False
    payouts_enabled: bool = False


class ConnectService(BaseService):
    """Creates connected accounts and tracks their readiness."""

    @classmethod
    def create_connect_account(cls, user: User) -> ConnectOnboarding:
        """
        Create an Express account for a freelancer and return an onboarding link.

        The account id is saved before the link is requested, so a failed
        link request never orphans the account.

        Raises:
            PermissionDeniedError: Caller is not a freelancer
            PaymentValidationError: The freelancer already has an account
            StripeError: Gateway failure
        """
        if not user.is_freelancer:
            raise PermissionDeniedError("Only freelancers can create payout accounts")
        if user.stripe_connect_id:
            raise PaymentValidationError(
                "Payout account already exists",
                error_code="ACCOUNT_EXISTS",
                details={"account_id": user.stripe_connect_id},
            )

        adapter = get_stripe_adapter()
        account = adapter.create_connected_account(
            email=user.email,
            idempotency_key=IdempotencyKeyGenerator.generate("connect_account", user.pk),
            metadata={"user_id": str(user.pk)},
        )

        user.stripe_connect_id = account.id
        user.save(update_fields=["stripe_connect_id", "updated_at"])

        client_url = settings.CLIENT_URL.rstrip("/")
        link = adapter.create_account_link(
            account_id=account.id,
            refresh_url=f"{client_url}/freelancer/onboarding/refresh",
            return_url=f"{client_url}/freelancer/onboarding/complete",
        )

        cls.get_logger().info(
            "Connected account created",
            extra={"user_id": str(user.pk), "account_id": account.id},
        )
        return ConnectOnboarding(account_id=account.id, onboarding_url=link.url)

    @classmethod
    def get_account_status(cls, user: User) -> ConnectAccountState:
        """
        Report onboarding progress, enabling payouts once Stripe allows them.

        Raises:
            PermissionDeniedError: Caller is not a freelancer
            StripeError: Gateway failure
        """
        if not user.is_freelancer:
            raise PermissionDeniedError("Only freelancers have payout accounts")
        if not user.stripe_connect_id:
            return ConnectAccountState(status=ConnectAccountStatus.NOT_CREATED)

        account = get_stripe_adapter().retrieve_account(user.stripe_connect_id)
        if account.is_active and not user.payout_enabled:
            user.payout_enabled = True
            user.save(update_fields=["payout_enabled", "updated_at"])
            cls.get_logger().info(
                "Payouts enabled for freelancer",
                extra={"user_id": str(user.pk), "account_id": account.id},
            )

        return ConnectAccountState(
            status=(
                ConnectAccountStatus.ACTIVE
                if account.is_active
                else ConnectAccountStatus.PENDING
            ),
            account_id=account.id,
            charges_enabled=account.charges_enabled,
            payouts_enabled=account.payouts_enabled,
        )
