"""
Secret Service

A network-accessible credential store: clients submit, fetch and delete
per-domain username/password records over HTTP. Secrets live in a pluggable
backend (in-memory or MongoDB) and the service keeps track of which client
devices have called it.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional, Tuple

import click
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load environment variables
load_dotenv()

from secret_service.config import Settings
from secret_service.dependencies import track_device
from secret_service.devices import DeviceRegistry
from secret_service.routers import devices_router, secrets_router
from secret_service.storage import Storage, create_storage

logger = logging.getLogger(__name__)

DEFAULT_BIND = "127.0.0.1:9000"
ALLOWED_METHODS = "GET, POST, PUT, DELETE"
SECRETS_PREFIX = "/secrets"


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render every HTTP error as ``{"message": ...}``."""
    headers = dict(exc.headers or {})
    if exc.status_code == 405:
        headers["Allow"] = ALLOWED_METHODS
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": f"invalid request: {exc}"})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "internal server error"})


def is_secrets_path(path: str) -> bool:
    return path == SECRETS_PREFIX or path.startswith(SECRETS_PREFIX + "/")


def create_app(
    storage: Optional[Storage] = None,
    registry: Optional[DeviceRegistry] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the application around a storage backend and a device registry.

    Components not passed in are built from ``settings`` (by default read
    from the environment).
    """
    settings = settings or Settings.from_env()
    if storage is None:
        storage = create_storage(settings)
    if registry is None:
        registry = DeviceRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        yield
        # Shutdown: release the storage backend
        app.state.storage.close()

    app = FastAPI(
        title="Secret Service API",
        version="0.1.0",
        description="""
Per-domain credential store with pluggable persistence and
client device tracking.
        """,
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.registry = registry

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.middleware("http")
    async def track_secret_requests(request: Request, call_next):
        """Record the caller of any /secrets request, before routing."""
        if is_secrets_path(request.url.path):
            track_device(request)
        return await call_next(request)

    # Include routers
    app.include_router(devices_router)
    app.include_router(secrets_router)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


def parse_bind(value: Optional[str]) -> Tuple[str, int]:
    """
    Split ``HOST:PORT`` into its parts, falling back to ``DEFAULT_BIND``.

    IPv6 hosts use the bracketed form, e.g. ``[::1]:9000``.
    """
    if not value:
        logger.warning("No binding given, using default %s", DEFAULT_BIND)
        return parse_bind(DEFAULT_BIND)

    host, sep, port = value.rpartition(":")
    host = host.strip("[]")
    try:
        port_number = int(port)
    except ValueError:
        port_number = -1
    if not sep or not host or not 0 < port_number < 65536:
        logger.warning(
            "Invalid binding given (%s), using default %s", value, DEFAULT_BIND
        )
        return parse_bind(DEFAULT_BIND)
    return host, port_number


@click.command()
@click.argument("bind", required=False)
def main(bind: Optional[str]) -> None:
    """Run the secret service, listening on BIND (HOST:PORT)."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    host, port = parse_bind(bind)
    uvicorn.run(
        "secret_service.main:create_app",
        factory=True,
        host=host,
        port=port,
    )


if __name__ == "__main__":
    main()
