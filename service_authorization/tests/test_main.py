"""
Unit tests for the Authorization main service.
"""

import pytest
from fastapi.testclient import TestClient

from shared.config import get_config
from shared.errors import ValidationError
from service_authorization.app.main import AuthorizationService, create_app
from service_authorization.app.rules.models import AllowDeny, Env, new_endpoint_statement, new_policy, new_role
from service_authorization.app.store.role_store import InMemoryRoleStore


def service_config(**overrides):
    settings = {
        "decision_cache_capacity": 8,
        "decision_cache_ttl_seconds": 300,
        "cache_sweep_interval_seconds": 0,
    }
    settings.update(overrides)
    return get_config("authorization", 8013, **settings)


class TestAuthorizationService:
    """Test cases for AuthorizationService."""

    @pytest.fixture
    def service(self):
        """Create AuthorizationService instance."""
        return AuthorizationService(config=service_config())

    @pytest.fixture
    def client(self, service):
        """Create test client."""
        with TestClient(service.app) as client:
            yield client

    def test_service_initialization(self, service):
        """Test components are wired from configuration."""
        assert service.service_name == "authorization"
        assert service.decision_cache.capacity == 8
        assert service.decision_cache.ttl == 300
        assert service.provider.cache is service.decision_cache
        assert service.provider.provider is service.engine
        assert service.app.state.authorization_service is service

    def test_invalid_resource_env(self):
        """Test an unknown resource environment is rejected."""
        with pytest.raises(ValidationError):
            AuthorizationService(config=service_config(resource_env="STAGING"))

    def test_root_endpoint(self, client):
        """Test root endpoint is public."""
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "authorization"

    def test_health_endpoint(self, client):
        """Test health endpoint is public and reports dependencies."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["dependencies"]["decision_cache"] == "ok"

    def test_metrics_endpoint(self, client):
        """Test metrics endpoint exposes decision metrics."""
        client.get("/example", headers={"X-Entity-ID": "entity1"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "authorization_decisions_total" in response.text

    def test_example_allowed(self, client):
        """Test the guarded example endpoint for an authorized entity."""
        response = client.get("/example", headers={"X-Entity-ID": "entity1"})

        assert response.status_code == 200
        assert response.json()["resource"] == "/example"

    def test_example_forbidden(self, client):
        """Test the guarded example endpoint for an unknown entity."""
        response = client.get("/example", headers={"X-Entity-ID": "entity2"})

        assert response.status_code == 403
        assert response.json()["code"] == "AUTHORIZATION_ERROR"

    def test_check_endpoint_allow(self, client):
        """Test the decision API reports reason then cache hit."""
        payload = {"entity_id": "entity1", "env": "PROD", "method": "GET", "path": "/example"}

        first = client.post("/authorization/check", json=payload).json()
        second = client.post("/authorization/check", json=payload).json()

        assert first["allowed"] is True
        assert first["reason"] == "ALLOW_MATCH"
        assert first["cache_hit"] is False
        assert first["statement"] == "PROD:GET:/example:ALLOW:READ"
        assert first["matched_statements"] == ["PROD:GET:/example:ALLOW:READ"]
        assert second["allowed"] is True
        assert second["cache_hit"] is True

    def test_check_endpoint_deny(self, client):
        """Test the decision API for an action without a statement."""
        payload = {"entity_id": "entity1", "env": "PROD", "method": "POST", "path": "/example"}

        data = client.post("/authorization/check", json=payload).json()

        assert data["allowed"] is False
        assert data["reason"] == "LEAST_PRIVILEGE"
        assert data["statement"] == "PROD:POST:/example:ALLOW:CREATE"

    def test_check_endpoint_validation(self, client):
        """Test an unknown environment is rejected."""
        payload = {"entity_id": "entity1", "env": "STAGING", "method": "GET", "path": "/example"}

        response = client.post("/authorization/check", json=payload)

        assert response.status_code == 422

    def test_cache_stats_and_expire(self, client, service):
        """Test cache statistics and the manual sweep endpoint."""
        client.get("/example", headers={"X-Entity-ID": "entity1"})
        client.get("/example", headers={"X-Entity-ID": "entity1"})

        stats = client.get("/authorization/cache/stats").json()
        assert stats["size"] == 1
        assert stats["capacity"] == 8
        assert stats["hits"] == 1
        assert stats["misses"] == 1

        response = client.post("/authorization/cache/expire")
        assert response.status_code == 200
        assert response.json() == {"removed": 0}

    def test_custom_role_store(self):
        """Test an injected role store is used for decisions."""
        policy = new_policy("writers", "", [
            new_endpoint_statement(Env.PROD, "POST", "/example", AllowDeny.ALLOW),
        ])
        store = InMemoryRoleStore([new_role("Writer", "", [], ["svc-1"], [policy])])
        app = create_app(config=service_config(), role_store=store)

        with TestClient(app) as client:
            payload = {"entity_id": "svc-1", "method": "POST", "path": "/example"}
            assert client.post("/authorization/check", json=payload).json()["allowed"] is True
            assert client.get("/example", headers={"X-Entity-ID": "svc-1"}).status_code == 403

    def test_request_id_echoed(self, client):
        """Test an incoming request id is propagated to the response."""
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self, client):
        """Test a request id is generated when the caller sends none."""
        first = client.get("/health")
        second = client.get("/health")

        assert first.headers["X-Request-ID"]
        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]

    def test_forbidden_response_is_correlated_and_timed(self, client, service):
        """Test denied requests still pass through request correlation and timing."""
        response = client.get("/example", headers={"X-Entity-ID": "entity2", "X-Request-ID": "req-403"})

        assert response.status_code == 403
        assert response.headers["X-Request-ID"] == "req-403"
        assert service.metrics.registry.get_sample_value(
            "http_requests_total", {"method": "GET", "endpoint": "/example", "status_code": "403"}
        ) == 1.0
