from __future__ import annotations

import contextlib
import logging
import socket
import threading
import time
from dataclasses import dataclass, replace

import uvicorn

from ..config import load_settings
from ..core.registry import DrugRegistry
from ..sdk.client import DrugTraceClient
from .app import create_app, create_registry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrugTraceServer:
    host: str
    port: int
    url: str
    registry: DrugRegistry

    def client(self, principal: str | None = None) -> DrugTraceClient:
        """Return an HTTP client for this server acting as `principal`."""
        return DrugTraceClient(self.url.rstrip("/"), principal=principal)


def _find_free_port(host: str) -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind((host, 0))
        return int(s.getsockname()[1])


def _is_server_alive(base_url: str, *, timeout_s: float = 0.2) -> bool:
    """Best-effort probe to determine if a drugtrace server is reachable."""

    import httpx

    try:
        with httpx.Client(base_url=base_url, timeout=timeout_s) as client:
            r = client.get("/healthz")
            if r.status_code != 200:
                return False
            return bool(r.json().get("ok"))
    except (httpx.HTTPError, ValueError):
        return False


def run(
    *,
    host: str | None = None,
    port: int | None = None,
    admin: str | None = None,
    log_level: str | None = None,
    access_log: bool = False,
    new_server: bool = False,
    connect_timeout_s: float = 0.2,
) -> DrugTraceServer | DrugTraceClient:
    """Start a drugtrace server in a background thread, or attach to a running one.

    Behavior:
    - If DRUGTRACE_URL is set, we *attach* to that existing server (client mode) unless
      `new_server=True`.
    - Otherwise, if `port != 0` and a server is already reachable at http://{host}:{port},
      we attach to it unless `new_server=True`.
    - Otherwise we start a new server (server mode) and return a `DrugTraceServer`.

    Arguments left as None fall back to the environment (see `drugtrace.config`).
    `port=0` means "pick a free port".
    """

    settings = load_settings()
    host = settings.host if host is None else host
    port = settings.port if port is None else int(port)
    log_level = settings.log_level if log_level is None else log_level

    # 1) Try attaching to an explicitly provided server.
    if settings.url and not new_server:
        if _is_server_alive(settings.url, timeout_s=connect_timeout_s):
            logger.info("Attaching to drugtrace server at %s", settings.url)
            return DrugTraceClient(settings.url)

    # 2) Try attaching to host/port if they are explicitly chosen.
    if port != 0 and not new_server:
        default_url = f"http://{host}:{port}"
        if _is_server_alive(default_url, timeout_s=connect_timeout_s):
            logger.info("Attaching to drugtrace server at %s", default_url)
            return DrugTraceClient(default_url)

    # 3) Start a fresh server.
    if port == 0:
        port = _find_free_port(host)

    if admin is not None:
        settings = replace(settings, admin=admin)
    registry = create_registry(settings)
    app = create_app(registry)

    config = uvicorn.Config(app, host=host, port=port, log_level=log_level, access_log=access_log)
    server = uvicorn.Server(config)

    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    # Wait for startup so a subsequent client call does not race the bind.
    deadline = time.monotonic() + 5.0
    url = f"http://{host}:{port}/"
    while not server.started and thread.is_alive() and time.monotonic() < deadline:
        time.sleep(0.01)

    if not server.started:
        server.should_exit = True
        raise RuntimeError(f"drugtrace server failed to start on {host}:{port}")

    logger.info("drugtrace server listening on %s (admin=%s)", url, registry.admin)
    return DrugTraceServer(host=host, port=port, url=url, registry=registry)
