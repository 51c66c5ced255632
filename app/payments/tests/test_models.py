"""
Tests for payment models.

Covers Payment transitions and constraints, WebhookEvent status helpers,
and the ScheduledRelease due() queryset.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone
from django_fsm import TransitionNotAllowed, can_proceed

from payments.models import Payment, ScheduledRelease
from payments.models.webhook_event import MAX_WEBHOOK_RETRIES
from payments.state_machines import (
    PaymentStatus,
    PayoutStatus,
    ScheduledReleaseOutcome,
    WebhookEventStatus,
)
from payments.tests.factories import (
    PaymentFactory,
    ScheduledReleaseFactory,
    WebhookEventFactory,
)


# =============================================================================
# Payment
# =============================================================================


class TestPaymentTransitions:
    def test_pending_to_succeeded(self, db):
        payment = PaymentFactory()

        payment.mark_succeeded()
        payment.save()

        assert Payment.objects.get(pk=payment.pk).status == PaymentStatus.SUCCEEDED

    def test_pending_to_failed(self, db):
        payment = PaymentFactory()

        payment.mark_failed()
        payment.save()

        assert Payment.objects.get(pk=payment.pk).status == PaymentStatus.FAILED

    def test_transfer_sets_payout_fields_together(self, db):
        payment = PaymentFactory(status=PaymentStatus.SUCCEEDED)

        payment.mark_transferred("tr_123")
        payment.save()

        payment = Payment.objects.get(pk=payment.pk)
        assert payment.status == PaymentStatus.TRANSFERRED
        assert payment.payout_status == PayoutStatus.COMPLETED
        assert payment.stripe_transfer_id == "tr_123"
        assert payment.released_at is not None

    def test_cannot_transfer_pending_payment(self, db):
        payment = PaymentFactory()

        with pytest.raises(TransitionNotAllowed):
            payment.mark_transferred("tr_123")

    def test_cannot_transfer_when_payout_already_completed(self, db):
        payment = PaymentFactory(status=PaymentStatus.SUCCEEDED)
        payment.payout_status = PayoutStatus.COMPLETED

        assert can_proceed(payment.mark_transferred) is False

    @pytest.mark.parametrize(
        "status", [PaymentStatus.FAILED, PaymentStatus.TRANSFERRED]
    )
    def test_terminal_states_do_not_move_back(self, db, status):
        payment = PaymentFactory(status=status)

        assert can_proceed(payment.mark_succeeded) is False
        assert can_proceed(payment.mark_failed) is False

    def test_succeeded_payment_cannot_fail(self, db):
        payment = PaymentFactory(status=PaymentStatus.SUCCEEDED)

        with pytest.raises(TransitionNotAllowed):
            payment.mark_failed()


class TestPaymentAmounts:
    def test_major_unit_views(self, db):
        payment = PaymentFactory(
            amount_cents=10050, platform_fee_cents=1005, freelancer_amount_cents=9045
        )

        assert payment.amount == Decimal("100.50")
        assert payment.platform_fee == Decimal("10.05")
        assert payment.freelancer_amount == Decimal("90.45")

    def test_split_must_sum_to_amount(self, db):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                PaymentFactory(
                    amount_cents=10000,
                    platform_fee_cents=1000,
                    freelancer_amount_cents=8000,
                )

    def test_is_releasable(self, db):
        assert PaymentFactory(status=PaymentStatus.SUCCEEDED).is_releasable is True
        assert PaymentFactory().is_releasable is False
        assert PaymentFactory(status=PaymentStatus.TRANSFERRED).is_releasable is False


class TestOneActivePaymentPerOrder:
    def test_second_pending_payment_rejected(self, db):
        payment = PaymentFactory()

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                PaymentFactory(order=payment.order)

    def test_failed_payment_does_not_block_retry(self, db):
        failed = PaymentFactory(status=PaymentStatus.FAILED)

        retry = PaymentFactory(order=failed.order)

        assert retry.order_id == failed.order_id


# =============================================================================
# WebhookEvent
# =============================================================================


class TestWebhookEvent:
    def test_processing_counts_attempts(self, db):
        event = WebhookEventFactory()

        event.mark_processing()

        assert event.status == WebhookEventStatus.PROCESSING
        assert event.retry_count == 1

    def test_processed_clears_error(self, db):
        event = WebhookEventFactory(error_message="boom")

        event.mark_processed()

        assert event.is_processed is True
        assert event.processed_at is not None
        assert event.error_message is None

    def test_can_retry_until_limit(self, db):
        event = WebhookEventFactory(
            status=WebhookEventStatus.FAILED, retry_count=MAX_WEBHOOK_RETRIES - 1
        )
        assert event.can_retry is True

        event.retry_count = MAX_WEBHOOK_RETRIES
        assert event.can_retry is False

    @pytest.mark.parametrize(
        "payload",
        [{}, {"data": None}, {"data": {"object": "pi_123"}}, []],
    )
    def test_data_object_of_malformed_payload(self, db, payload):
        event = WebhookEventFactory.build(payload=payload)

        assert event.data_object == {}

    def test_data_object(self, db):
        event = WebhookEventFactory.build(
            payload={"data": {"object": {"id": "pi_123"}}}
        )

        assert event.data_object == {"id": "pi_123"}

    def test_stripe_event_id_is_unique(self, db):
        WebhookEventFactory(stripe_event_id="evt_dup")

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                WebhookEventFactory(stripe_event_id="evt_dup")


# =============================================================================
# ScheduledRelease
# =============================================================================


class TestScheduledRelease:
    def test_due_excludes_future_and_processed_rows(self, db):
        now = timezone.now()
        due = ScheduledReleaseFactory(due_at=now - timedelta(hours=1))
        older = ScheduledReleaseFactory(due_at=now - timedelta(hours=5))
        ScheduledReleaseFactory(due_at=now + timedelta(hours=1))
        ScheduledReleaseFactory(
            due_at=now - timedelta(hours=2), processed_at=now - timedelta(minutes=5)
        )

        assert list(ScheduledRelease.objects.due(now=now)) == [older, due]

    def test_mark_processed(self, db):
        scheduled = ScheduledReleaseFactory()

        scheduled.mark_processed(ScheduledReleaseOutcome.FAILED, error="boom")

        assert scheduled.is_processed is True
        assert scheduled.outcome == ScheduledReleaseOutcome.FAILED
        assert scheduled.last_error == "boom"
