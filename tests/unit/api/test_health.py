"""Tests for the health check endpoint."""

from fastapi.testclient import TestClient

from stencilflow.main import app

client = TestClient(app)


def test_health_check():
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert "X-Request-ID" in response.headers
