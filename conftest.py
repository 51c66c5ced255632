"""
Root pytest configuration for the Django project.

pytest-django is configured in pyproject.toml (settings module, app/ on the
path). Project-wide fixtures live in app/conftest.py; app-specific fixtures
in each app's tests/conftest.py.
"""

import os

# Fallback for runs that bypass the ini option (e.g. a bare `pytest app/...`
# from another rootdir)
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.test_settings")
