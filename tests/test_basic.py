"""
Basic tests for the pet insurance API.
"""

import pytest
from fastapi.testclient import TestClient
from pet_insurance.main import app
from conftest import OWNER_HEADERS

client = TestClient(app)

def test_root_endpoint():
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Pet Insurance API"

def test_health_endpoint():
    """Test the health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

@pytest.mark.parametrize("method,path", [
    ("post", "/v1/quotes"),
    ("post", "/v1/policies"),
    ("get", "/v1/policies/1"),
    ("post", "/v1/claims"),
    ("put", "/v1/claims/1/approve"),
    ("get", "/v1/pets"),
    ("get", "/v1/iot/pets/1/latest"),
])
def test_endpoints_require_authentication(method, path):
    """Protected endpoints reject requests without an API key."""
    response = getattr(client, method)(path)
    assert response.status_code == 401

def test_invalid_api_key():
    """An unknown API key is rejected."""
    headers = {"Authorization": "Bearer NOT_A_KEY"}
    response = client.get("/v1/pets", headers=headers)
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid API key"

def test_quotes_endpoint_with_auth():
    """Test quotes endpoint with valid authentication."""
    data = {"coverage_type": "premium", "species": "dog", "age_years": 3}
    response = client.post("/v1/quotes", json=data, headers=OWNER_HEADERS)
    assert response.status_code == 200
    assert response.json()["premium"] == 3000
    assert "X-Request-ID" in response.headers

def test_request_id_is_echoed():
    """A caller-supplied request id comes back on the response."""
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
