"""FastAPI application factory for the Ordering API.

``create_app`` wires routes, error handlers and the per-request domain
context around an already-built container. It does not initialize the
domain; ``app.py`` does that once per process.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ordering.api.errors import register_error_handlers
from ordering.api.routes import (
    cart_router,
    checkout_router,
    credit_note_router,
    maintenance_router,
    order_router,
)
from ordering.domain import ordering
from ordering.utils.logging import configure_logging


def create_app(container) -> FastAPI:
    configure_logging(json_logs=container.settings.json_logs, log_level=container.settings.log_level)

    app = FastAPI(
        title="Boutique Ordering API",
        description="Carts, checkout, orders and credit notes",
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the ordering domain context for each request."""
        with ordering.domain_context():
            response = await call_next(request)
        return response

    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(order_router)
    app.include_router(credit_note_router)
    app.include_router(maintenance_router)

    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "domain": ordering.name,
                "environment": container.settings.environment,
            }
        )

    return app
