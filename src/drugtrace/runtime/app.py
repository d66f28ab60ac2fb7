from __future__ import annotations

from fastapi import FastAPI

from ..api import create_api_app
from ..config import Settings, load_settings
from ..core.events import EventLog
from ..core.registry import DrugRegistry


def create_registry(settings: Settings | None = None) -> DrugRegistry:
    settings = settings if settings is not None else load_settings()
    return DrugRegistry(
        settings.admin,
        admin_name=settings.admin_name,
        events=EventLog(maxlen=settings.event_buffer),
    )


def create_app(registry: DrugRegistry | None = None, *, settings: Settings | None = None) -> FastAPI:
    """Create the HTTP app, building a fresh registry from settings if none is given."""
    if registry is None:
        registry = create_registry(settings)
    return create_api_app(registry)


# Convenience for uvicorn: `uvicorn drugtrace.runtime.app:app`
app = create_app()
