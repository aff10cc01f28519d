"""Unit tests for the informational endpoints."""

import os
from unittest.mock import patch

from fastapi.testclient import TestClient

from rfd_store.main import app

client = TestClient(app)


class TestStatusEndpoint:
    """Test cases for the /status endpoint."""

    def test_status_endpoint_basic(self):
        response = client.get("/status")

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"status", "build", "sha", "env"}
        assert data["status"] == "ok"

    def test_status_endpoint_with_environment_variables(self):
        test_env_vars = {
            "BUILD_NUMBER": "123",
            "GIT_SHA": "abc123def456",
            "ENVIRONMENT": "production"
        }

        with patch.dict(os.environ, test_env_vars):
            data = client.get("/status").json()

        assert data["build"] == "123"
        assert data["sha"] == "abc123def456"
        assert data["env"] == "production"

    def test_status_endpoint_priority_order(self):
        """GIT_SHA wins over GITHUB_SHA and ENVIRONMENT over ENV."""
        test_env_vars = {
            "GIT_SHA": "priority_sha",
            "GITHUB_SHA": "fallback_sha",
            "ENVIRONMENT": "priority_env",
            "ENV": "fallback_env"
        }

        with patch.dict(os.environ, test_env_vars):
            data = client.get("/status").json()

        assert data["sha"] == "priority_sha"
        assert data["env"] == "priority_env"

    def test_status_endpoint_github_fallbacks(self):
        test_env_vars = {"GITHUB_SHA": "github123sha456", "ENV": "staging"}

        with patch.dict(os.environ, test_env_vars, clear=True):
            data = client.get("/status").json()

        assert data["build"] == "local-dev"
        assert data["sha"] == "github123sha456"
        assert data["env"] == "staging"


def test_root_reports_application():
    data = client.get("/").json()
    assert data["status"] == "operational"
    assert "RFD Record Store" in data["message"]
