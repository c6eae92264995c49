"""
FastAPI application for the relay bridge.

Endpoints:
- GET /: wait-only variant
- ANY /forward, /forward/{path}: forward-then-wait variant
- Health: /health, /ready

The app holds no module-level state; the Bridge is injected through
``app.state`` by the composition root (relay.main) or by tests.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from relay.bridge import Bridge
from relay.errors import ProvisionError, RelayError
from relay.http.routes import router
from relay.models.error import ErrorInfo

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifecycle manager.

    Handles:
    - Eager subscription provisioning (a failure is retried on first request)
    - Subscription cleanup when the server stops on SIGINT/SIGTERM
    """
    bridge: Bridge = app.state.bridge
    logger.info(
        "Response topic %s, subscription %s, backend topic %s",
        bridge.settings.response_topic,
        bridge.subscription_name,
        bridge.settings.backend_topic,
    )
    if bridge.settings.provision_on_startup:
        try:
            await bridge.ensure_subscription()
        except ProvisionError as exc:
            logger.error("Provisioning on startup failed, will retry on first request: %s", exc)

    try:
        yield
    finally:
        bridge.shutdown()


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Map every bridge failure to a structured error response."""
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    info = ErrorInfo.from_error(exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=info.model_dump(by_alias=True, exclude_none=True),
    )


def create_app(bridge: Bridge) -> FastAPI:
    app = FastAPI(
        title="relay",
        description="HTTP to message broker request/response bridge",
        lifespan=lifespan,
    )
    app.state.bridge = bridge
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RelayError, relay_error_handler)
    app.include_router(router)
    return app
