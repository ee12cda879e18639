"""Orders FastAPI application.

Web server that processes order commands synchronously via HTTP. Every
request runs inside the orders domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"  (webhook dispatch fires after commit)
#   - "production" → event_processing = "async" (webhook dispatch fires via Engine)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from orders.domain import orders
from orders.utils.logging import configure_logging

configure_logging()
orders.init()


def create_app() -> FastAPI:
    from orders.api import order_router, register_exception_handlers, webhook_router

    app = FastAPI(
        title="Orders API",
        description="Order lifecycle service with status transitions and an audit trail",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the orders domain context for each request."""
        with orders.domain_context():
            response = await call_next(request)
        return response

    app.include_router(order_router)
    app.include_router(webhook_router)
    register_exception_handlers(app)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": orders.name})

    return app


app = create_app()
