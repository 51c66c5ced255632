"""
Tests for the health check endpoint.
"""

import pytest
from django.db import DatabaseError


@pytest.mark.django_db
class TestHealthCheck:
    url = "/health/"

    def test_healthy(self, client):
        response = client.get(self.url)

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
        }

    def test_database_down_is_503(self, client, mocker):
        mocker.patch(
            "core.views.connection.cursor", side_effect=DatabaseError("connection refused")
        )

        response = client.get(self.url)

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
        assert response.json()["status"] == "unhealthy"

    def test_cache_down_still_200(self, client, mocker):
        mocker.patch("core.views.cache.get", return_value=None)

        response = client.get(self.url)

        assert response.status_code == 200
        assert response.json()["cache"] == "disconnected"
