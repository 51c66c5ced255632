"""
Tests for notifications app.

This package contains test modules for:
- test_services.py: NotificationService and on_commit delivery tests
- test_publishers.py: Channels publisher and publisher registry tests
- test_middleware.py: JWT websocket authentication tests
- test_consumers.py: NotificationConsumer and order room tests

Usage:
    pytest notifications/tests/
"""
