"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tool_catalog.api.audit import router as audit_router
from tool_catalog.api.deps import current_actor
from tool_catalog.api.serializers import serialize_actor
from tool_catalog.api.taxonomy import router as taxonomy_router
from tool_catalog.api.tools import router as tools_router
from tool_catalog.app_logging import configure_logging
from tool_catalog.containers import AppContainer
from tool_catalog.domain.errors import CatalogError, Unauthenticated, ValidationFailed
from tool_catalog.domain.roles import Actor


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(tools_router)
    app.include_router(taxonomy_router)
    app.include_router(audit_router)

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(
        request: Request, exc: CatalogError
    ) -> JSONResponse:
        if exc.status_code >= 500:  # noqa: PLR2004
            logger.error("Unhandled catalog error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code, content={"error": exc.to_payload()}
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = {
            ".".join(str(part) for part in error["loc"][1:]) or "body": error["msg"]
            for error in exc.errors()
        }
        error = ValidationFailed(fields)
        return JSONResponse(
            status_code=error.status_code, content={"error": error.to_payload()}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/me")
    async def me(actor: Actor | None = Depends(current_actor)) -> dict[str, object]:
        """Return the authenticated principal."""
        if actor is None:
            raise Unauthenticated()
        return serialize_actor(actor)

    return app
