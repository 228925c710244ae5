"""
Authorization middleware enforcing decisions on incoming HTTP requests.
"""

from typing import Iterable, Optional, Union

from fastapi import Request
from fastapi.responses import JSONResponse

from shared.errors import AuthorizationError
from shared.logging import get_logger, set_entity_context
from .rules.engine import AuthorizationProvider
from .rules.models import AllowDeny, EndpointStatement, Env, new_endpoint_statement

DEFAULT_EXEMPT_PATHS = frozenset({"/", "/health", "/metrics", "/docs", "/redoc", "/openapi.json"})


class AuthorizationMiddleware:
    """
    Turns each request into a statement and rejects it unless allowed.

    The entity id comes from a request header; a missing header yields an
    empty id, which has no roles and is therefore denied like any other
    unknown entity.
    """

    def __init__(
        self,
        provider: AuthorizationProvider,
        env: Union[Env, str] = Env.PROD,
        entity_header: str = "X-Entity-ID",
        exempt_paths: Optional[Iterable[str]] = None,
        exempt_prefixes: Iterable[str] = (),
    ):
        self.provider = provider
        self.env = env
        self.entity_header = entity_header
        self.exempt_paths = frozenset(exempt_paths) if exempt_paths is not None else DEFAULT_EXEMPT_PATHS
        self.exempt_prefixes = tuple(exempt_prefixes)
        self.logger = get_logger("authorization.middleware")

    def is_exempt(self, path: str) -> bool:
        return path in self.exempt_paths or any(path.startswith(prefix) for prefix in self.exempt_prefixes)

    def extract_entity(self, request: Request) -> str:
        return request.headers.get(self.entity_header, "")

    def build_statement(self, request: Request) -> EndpointStatement:
        return new_endpoint_statement(self.env, request.method, request.url.path, AllowDeny.ALLOW)

    async def __call__(self, request: Request, call_next):
        if self.is_exempt(request.url.path):
            return await call_next(request)

        entity_id = self.extract_entity(request)
        set_entity_context(entity_id)
        statement = self.build_statement(request)

        if not self.provider.is_authorized(entity_id, statement):
            self.logger.warning(
                "Request forbidden",
                entity_id=entity_id,
                statement=str(statement)
            )
            error = AuthorizationError(details={"statement": str(statement)})
            return JSONResponse(
                status_code=error.status_code,
                content=error.to_response().model_dump()
            )

        return await call_next(request)
