from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from ..core.errors import RegistryError
from ..core.registry import DrugRegistry
from .routes import mount_drug_api

logger = logging.getLogger(__name__)


def create_api_app(registry: DrugRegistry) -> FastAPI:
    app = FastAPI(title="drugtrace", version="0.1.0")
    app.state.registry = registry

    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
        logger.debug("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.kind, "detail": exc.message},
        )

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    mount_drug_api(app, registry)

    return app


__all__ = ["create_api_app", "mount_drug_api"]
