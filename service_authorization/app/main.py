"""
Authorization service for the RBAC Access Layer.
"""

from typing import Dict, Optional

from fastapi import Request

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import ValidationError

from .cache.decision_cache import CachingAuthorizationProvider
from .cache.lru_cache import LRUCache
from .cache.sweeper import CacheExpirySweeper
from .middleware import AuthorizationMiddleware
from .rules.engine import EndpointAuthorizationProvider
from .rules.models import (
    AllowDeny, AuthorizationCheckRequest, AuthorizationCheckResponse,
    CacheStatsResponse, Env, ENDPOINT_EXAMPLE, new_endpoint_statement
)
from .store.role_store import InMemoryRoleStore, RoleStore, default_roles

SERVICE_NAME = "authorization"
SERVICE_PORT = 8013


class AuthorizationService(BaseService):
    """Authorization service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, role_store: Optional[RoleStore] = None):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config=config)

        try:
            self.resource_env = Env(self.config.resource_env)
        except ValueError:
            raise ValidationError(
                "Unknown resource environment",
                details={"resource_env": self.config.resource_env}
            )

        self.role_store = role_store or InMemoryRoleStore(default_roles())
        self.engine = EndpointAuthorizationProvider(self.role_store, metrics=self.metrics)
        self.decision_cache = LRUCache(
            self.config.decision_cache_capacity,
            self.config.decision_cache_ttl_seconds,
            name="decisions",
            metrics=self.metrics,
        )
        self.provider = CachingAuthorizationProvider(self.decision_cache, self.engine)
        self.sweeper = CacheExpirySweeper(self.decision_cache, self.config.cache_sweep_interval_seconds)

        self.authorization_middleware = AuthorizationMiddleware(
            self.provider,
            env=self.resource_env,
            entity_header=self.config.entity_header,
            exempt_prefixes=("/authorization/",),
        )

        @self.app.on_event("startup")
        async def _startup():
            await self.start()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.stop()

        self._setup_authorization_routes()

        self.app.state.authorization_service = self

    def _setup_middleware(self):
        """Set up middleware, authorization innermost."""
        # Registered first so request timing and correlation wrap it
        self.app.middleware("http")(self._authorize_request)
        super()._setup_middleware()

    async def _authorize_request(self, request: Request, call_next):
        return await self.authorization_middleware(request, call_next)

    def _setup_authorization_routes(self):
        """Set up authorization-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "RBAC Access Layer - Authorization Service",
                "version": "1.0.0",
                "capabilities": ["decision_engine", "decision_cache"]
            }

        @self.app.get(ENDPOINT_EXAMPLE)
        async def example():
            """Example resource guarded by the authorization middleware."""
            return {"resource": ENDPOINT_EXAMPLE, "status": "ok"}

        @self.app.post("/authorization/check", response_model=AuthorizationCheckResponse)
        async def check_authorization(request: AuthorizationCheckRequest):
            """Decide a statement for an entity and explain the decision."""
            statement = new_endpoint_statement(request.env, request.method, request.path, AllowDeny.ALLOW)
            result = self.provider.evaluate(request.entity_id, statement)

            self.logger.info(
                "Authorization check",
                entity_id=request.entity_id,
                statement=str(statement),
                allowed=result.allowed,
                cache_hit=result.cache_hit
            )

            return AuthorizationCheckResponse(
                allowed=result.allowed,
                reason=result.reason,
                statement=str(statement),
                matched_statements=result.matched_statements,
                cache_hit=result.cache_hit,
                evaluation_time_ms=result.evaluation_time_ms
            )

        @self.app.get("/authorization/cache/stats", response_model=CacheStatsResponse)
        async def cache_stats():
            """Decision cache statistics."""
            return CacheStatsResponse(**self.decision_cache.stats())

        @self.app.post("/authorization/cache/expire")
        async def expire_cache():
            """Sweep expired decisions now."""
            return {"removed": self.sweeper.sweep()}

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies."""
        return {
            "decision_cache": "ok",
            "role_store": type(self.role_store).__name__,
        }

    async def start(self):
        """Start authorization service components."""
        await self.sweeper.start()
        self.logger.info(
            "Authorization service started",
            cache_capacity=self.decision_cache.capacity,
            cache_ttl_seconds=self.decision_cache.ttl
        )

    async def stop(self):
        """Stop authorization service components."""
        await self.sweeper.stop()
        self.logger.info("Authorization service stopped")


def create_app(config: Optional[ServiceConfig] = None, role_store: Optional[RoleStore] = None):
    """Create authorization service application."""
    service = AuthorizationService(config=config, role_store=role_store)
    return service.app


if __name__ == "__main__":
    service = AuthorizationService()
    service.run()
