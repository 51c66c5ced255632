"""
Stripe API adapter for marketplace payment operations.

StripeAdapter is the only code that talks to Stripe. Every call goes
through the same wrapper, which configures the client, logs the start and
completion with duration_ms, and translates SDK errors into the
payments.exceptions hierarchy.

Operations:
- Payment intents: create_payment_intent, retrieve_payment_intent
- Charges: retrieve_charge
- Transfers: create_transfer
- Connect: create_connected_account, create_account_link, retrieve_account
- Webhooks: verify_webhook_signature

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Default webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Network retries done by the SDK (default: 3)

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=5000,
            currency="eur",
            metadata={"order_id": str(order.id)},
            idempotency_key=IdempotencyKeyGenerator.generate("create_intent", order.id),
        )
    )
    result.client_secret  # handed to the client for confirmation
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeAuthenticationError,
    StripeCardDeclinedError,
    StripeError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)

if TYPE_CHECKING:
    from collections.abc import Callable


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreatePaymentIntentParams:
    """
    Parameters for creating a Stripe PaymentIntent.

    Attributes:
        amount_cents: Amount in smallest currency unit
        currency: ISO 4217 currency code
        idempotency_key: Unique key for idempotent creation
        metadata: Key-value pairs attached to the intent
        payment_method_types: Allowed payment methods (default: ['card'])
    """

    amount_cents: int
    currency: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)
    payment_method_types: list[str] = field(default_factory=lambda: ["card"])

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass
class ChargeResult:
    """A captured charge (ch_xxx)."""

    id: str
    amount_cents: int
    currency: str
    status: str | None = None
    payment_intent_id: str | None = None


@dataclass
class PaymentIntentResult:
    """
    Result from PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Stripe status (requires_payment_method, succeeded, ...)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret for client-side confirmation
        latest_charge_id: Charge created for the intent, if any
        latest_charge: Charge details when latest_charge was expanded
        metadata: Attached metadata
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    latest_charge_id: str | None = None
    latest_charge: ChargeResult | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class TransferResult:
    """A transfer to a connected account (tr_xxx)."""

    id: str
    amount_cents: int
    currency: str
    destination_account: str
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class AccountResult:
    """
    A Connect account and its capability flags.

    The freelancer can receive transfers once both charges_enabled and
    payouts_enabled are true.
    """

    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False

    @property
    def is_active(self) -> bool:
        return self.charges_enabled and self.payouts_enabled


@dataclass
class AccountLinkResult:
    """Hosted onboarding link for a Connect account."""

    url: str
    expires_at: int | None = None


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Keys are deterministic: the same operation on the same entity always
    yields the same key, so a retried call (after a timeout or a crashed
    worker) returns Stripe's original result instead of repeating it.

    Example:
        key = IdempotencyKeyGenerator.generate("transfer", payment.id)
        # "transfer:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]
        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


def is_retryable_stripe_error(error: Exception) -> bool:
    """True for transient Stripe errors (rate limit, network, timeout)."""
    if isinstance(error, StripeError):
        return getattr(error, "is_retryable", False)
    return False


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods; no instance state is kept, so the
    adapter is safe to use from web workers and Celery workers alike.
    Services reach it through get_stripe_adapter() so tests can install
    a fake.
    """

    _http_client = None

    @classmethod
    def _configure_stripe(cls) -> None:
        """Configure API key, retries and timeout on the SDK."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)
        if cls._http_client is None:
            timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
            cls._http_client = stripe.RequestsClient(timeout=timeout)
        stripe.default_http_client = cls._http_client

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _execute(
        cls,
        log_context: dict[str, Any],
        call: Callable[[], Any],
        summarize: Callable[[Any], dict[str, Any]] | None = None,
        level: int = logging.INFO,
    ) -> Any:
        """
        Run one SDK call with logging and error translation.

        Args:
            log_context: Structured context; must include "operation"
            call: Zero-argument callable doing the SDK request
            summarize: Extracts log fields from the SDK response
            level: Log level for start/completion records
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        start_time = time.time()
        logger.log(level, "Starting Stripe operation", extra=log_context)

        try:
            response = call()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise  # Never reached, _handle_stripe_error always raises

        duration_ms = (time.time() - start_time) * 1000
        logger.log(
            level,
            "Stripe operation completed",
            extra={
                **log_context,
                **(summarize(response) if summarize else {}),
                "duration_ms": duration_ms,
            },
        )
        return response

    # =========================================================================
    # Payment Intents and Charges
    # =========================================================================

    @classmethod
    def create_payment_intent(
        cls,
        params: CreatePaymentIntentParams,
    ) -> PaymentIntentResult:
        """
        Create a Stripe PaymentIntent with automatic capture.

        Raises:
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        intent = cls._execute(
            {
                "operation": "create_payment_intent",
                "amount_cents": params.amount_cents,
                "currency": params.currency,
                "idempotency_key": params.idempotency_key,
            },
            lambda: stripe.PaymentIntent.create(
                amount=params.amount_cents,
                currency=params.currency,
                metadata=params.metadata,
                payment_method_types=params.payment_method_types,
                idempotency_key=params.idempotency_key,
            ),
            summarize=lambda i: {"payment_intent_id": i.id, "status": i.status},
        )
        return cls._to_intent_result(intent)

    @classmethod
    def retrieve_payment_intent(
        cls,
        payment_intent_id: str,
        expand: list[str] | None = None,
    ) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent by ID.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
            expand: Fields to expand, e.g. ["latest_charge"]

        Raises:
            StripeInvalidRequestError: PaymentIntent not found
        """
        retrieve_params: dict[str, Any] = {}
        if expand:
            retrieve_params["expand"] = expand

        intent = cls._execute(
            {
                "operation": "retrieve_payment_intent",
                "payment_intent_id": payment_intent_id,
                "expand": expand,
            },
            lambda: stripe.PaymentIntent.retrieve(payment_intent_id, **retrieve_params),
            summarize=lambda i: {"status": i.status},
            level=logging.DEBUG,
        )
        return cls._to_intent_result(intent)

    @classmethod
    def retrieve_charge(cls, charge_id: str) -> ChargeResult:
        """
        Retrieve a Charge by ID.

        Raises:
            StripeInvalidRequestError: Charge not found
        """
        charge = cls._execute(
            {"operation": "retrieve_charge", "charge_id": charge_id},
            lambda: stripe.Charge.retrieve(charge_id),
            summarize=lambda c: {"amount": c.amount, "currency": c.currency},
            level=logging.DEBUG,
        )
        return cls._to_charge_result(charge)

    # =========================================================================
    # Transfers
    # =========================================================================

    @classmethod
    def create_transfer(
        cls,
        amount_cents: int,
        destination_account: str,
        idempotency_key: str,
        currency: str,
        source_transaction: str | None = None,
        metadata: dict[str, str] | None = None,
        description: str | None = None,
    ) -> TransferResult:
        """
        Transfer funds to a connected account.

        Args:
            amount_cents: Amount to transfer in cents
            destination_account: Connect account ID (acct_xxx)
            idempotency_key: Unique key for idempotent transfer
            currency: Currency code of the source charge
            source_transaction: Charge the funds come from; ties the
                transfer to that charge's availability
            metadata: Optional metadata dict
            description: Shown in the Stripe dashboard

        Raises:
            StripeInvalidAccountError: Destination cannot receive transfers
            StripeInvalidRequestError: Invalid parameters or balance
        """
        transfer_params: dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency,
            "destination": destination_account,
            "metadata": metadata or {},
        }
        if source_transaction:
            transfer_params["source_transaction"] = source_transaction
        if description:
            transfer_params["description"] = description

        transfer = cls._execute(
            {
                "operation": "create_transfer",
                "amount_cents": amount_cents,
                "destination_account": destination_account,
                "source_transaction": source_transaction,
                "idempotency_key": idempotency_key,
            },
            lambda: stripe.Transfer.create(
                idempotency_key=idempotency_key,
                **transfer_params,
            ),
            summarize=lambda t: {"transfer_id": t.id},
        )
        return TransferResult(
            id=transfer.id,
            amount_cents=transfer.amount,
            currency=transfer.currency,
            destination_account=transfer.destination,
            metadata=dict(transfer.metadata or {}),
        )

    # =========================================================================
    # Connect Accounts
    # =========================================================================

    @classmethod
    def create_connected_account(
        cls,
        email: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> AccountResult:
        """
        Create an Express account able to receive card payments and transfers.

        Raises:
            StripeInvalidRequestError: Invalid parameters
        """
        account = cls._execute(
            {
                "operation": "create_connected_account",
                "idempotency_key": idempotency_key,
            },
            lambda: stripe.Account.create(
                type="express",
                email=email,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            ),
            summarize=lambda a: {"account_id": a.id},
        )
        return cls._to_account_result(account)

    @classmethod
    def create_account_link(
        cls,
        account_id: str,
        refresh_url: str,
        return_url: str,
    ) -> AccountLinkResult:
        """Create a hosted onboarding link for a connected account."""
        link = cls._execute(
            {"operation": "create_account_link", "account_id": account_id},
            lambda: stripe.AccountLink.create(
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            ),
        )
        return AccountLinkResult(url=link.url, expires_at=getattr(link, "expires_at", None))

    @classmethod
    def retrieve_account(cls, account_id: str) -> AccountResult:
        """
        Retrieve a connected account's capability flags.

        Raises:
            StripeInvalidAccountError: Account not found or not accessible
        """
        account = cls._execute(
            {"operation": "retrieve_account", "account_id": account_id},
            lambda: stripe.Account.retrieve(account_id),
            summarize=lambda a: {
                "charges_enabled": getattr(a, "charges_enabled", None),
                "payouts_enabled": getattr(a, "payouts_enabled", None),
            },
            level=logging.DEBUG,
        )
        return cls._to_account_result(account)

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
        secret: str | None = None,
    ) -> dict[str, Any]:
        """
        Verify a Stripe webhook and return the parsed event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header value
            secret: Endpoint signing secret (default: STRIPE_WEBHOOK_SECRET)

        Returns:
            The event as a plain dict

        Raises:
            StripeInvalidRequestError: Invalid signature or payload
        """
        try:
            stripe.Webhook.construct_event(
                payload,
                signature,
                secret or settings.STRIPE_WEBHOOK_SECRET,
            )
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
            ) from e

        return json.loads(payload)

    # =========================================================================
    # Response Mapping
    # =========================================================================

    @classmethod
    def _to_charge_result(cls, charge: Any) -> ChargeResult:
        payment_intent = getattr(charge, "payment_intent", None)
        if payment_intent is not None and not isinstance(payment_intent, str):
            payment_intent = payment_intent.id
        return ChargeResult(
            id=charge.id,
            amount_cents=charge.amount,
            currency=charge.currency,
            status=getattr(charge, "status", None),
            payment_intent_id=payment_intent,
        )

    @classmethod
    def _to_intent_result(cls, intent: Any) -> PaymentIntentResult:
        latest_charge = getattr(intent, "latest_charge", None)
        latest_charge_id = None
        charge_result = None
        if isinstance(latest_charge, str):
            latest_charge_id = latest_charge
        elif latest_charge is not None:
            charge_result = cls._to_charge_result(latest_charge)
            latest_charge_id = charge_result.id

        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            client_secret=getattr(intent, "client_secret", None),
            latest_charge_id=latest_charge_id,
            latest_charge=charge_result,
            metadata=cls._metadata(intent),
        )

    @classmethod
    def _to_account_result(cls, account: Any) -> AccountResult:
        return AccountResult(
            id=account.id,
            charges_enabled=bool(getattr(account, "charges_enabled", False)),
            payouts_enabled=bool(getattr(account, "payouts_enabled", False)),
            details_submitted=bool(getattr(account, "details_submitted", False)),
        )

    @staticmethod
    def _metadata(obj: Any) -> dict[str, str]:
        metadata = getattr(obj, "metadata", None)
        if metadata is None:
            return {}
        return dict(metadata.to_dict())

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe SDK exceptions to domain exceptions. Always raises.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInsufficientFundsError: Insufficient funds
            StripeInvalidAccountError: Invalid Connect account
            StripeInvalidRequestError: Invalid request parameters
            StripeAuthenticationError: API key rejected
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: Network or server failure
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            error_class = (
                StripeInsufficientFundsError
                if decline_code == "insufficient_funds"
                else StripeCardDeclinedError
            )
            raise error_class(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            if error.param in ("destination", "account") or (
                error.code == "account_invalid"
            ):
                raise StripeInvalidAccountError(
                    str(error.user_message or error),
                    stripe_code=error.code,
                ) from error
            raise StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            if "timed out" in str(error).lower():
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                ) from error
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeAuthenticationError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        if isinstance(error, stripe.StripeError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        logger.error(
            f"Unexpected error from Stripe call: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(
            "Unexpected payment provider error",
            stripe_code="unknown_error",
        ) from error


# =============================================================================
# Adapter Registry
# =============================================================================

_stripe_adapter: type[StripeAdapter] | None = None


def get_stripe_adapter() -> type[StripeAdapter]:
    """Return the installed adapter class (StripeAdapter by default)."""
    return _stripe_adapter or StripeAdapter


def set_stripe_adapter(adapter: type | None) -> None:
    """Install an adapter (tests install fakes; None restores StripeAdapter)."""
    global _stripe_adapter
    _stripe_adapter = adapter
