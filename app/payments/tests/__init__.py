"""
Tests for payments app.

This package contains test modules for:
- test_models.py: Payment, WebhookEvent and ScheduledRelease model tests
- test_locks.py: Distributed release lock tests
- test_views.py: API endpoint tests
- test_integration.py: Order-to-payout flows across the API, webhooks and workers

Service, webhook, worker and adapter tests live beside their packages.

Usage:
    pytest payments/
    pytest payments/tests/test_views.py
"""
