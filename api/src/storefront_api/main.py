"""FastAPI application for the storefront backend REST API.

This package provides REST endpoints for:
- Stripe webhook reconciliation of order statuses
- PaymentIntent creation for checkout
- Checkout order creation and admin status updates
"""

import os
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from storefront import __version__
from storefront.config import DEFAULT_CORS_ORIGINS, parse_cors_origins
from storefront.utils.logging import configure_logging
from storefront_api.dependencies import ServiceContainer
from storefront_api.exceptions import register_exception_handlers
from storefront_api.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from storefront_api.routes import health_router, orders_router, payments_router, webhooks_router


def create_app(
    container: ServiceContainer | None = None,
    cors_origins: tuple[str, ...] | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        container: Pre-built services. When None, services are built from the
            environment on the first request that needs them.
        cors_origins: Allowed browser origins; defaults to the container's
            settings, then to local development origins.

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Storefront API",
        description="REST API for checkout payments, orders and Stripe webhooks",
        version=__version__,
    )
    app.state.container = container

    if cors_origins is None:
        cors_origins = container.settings.cors_origins if container else DEFAULT_CORS_ORIGINS

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_ID_HEADER],
    )
    app.add_middleware(CorrelationIdMiddleware)

    register_exception_handlers(app)

    # Everything under /api, matching the gateway route /api/*
    app.include_router(health_router, prefix="/api")
    app.include_router(webhooks_router, prefix="/api")
    app.include_router(payments_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")

    return app


configure_logging()

app = create_app(cors_origins=parse_cors_origins(os.environ.get("CORS_ORIGINS")))

# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler: Any = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = False) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: False)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run(
            "storefront_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["api/src", "shared/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
