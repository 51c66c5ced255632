"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User role and payout account tests
- test_managers.py: UserManager tests
- factories.py: client, freelancer and admin factories shared by other apps
"""
