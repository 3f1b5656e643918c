"""Shipdesk FastAPI application.

Serves the fulfillment domain over HTTP: carrier shipment creation,
tracking lookups, stage transitions and the order board. Commands are
processed synchronously inside the request.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fulfillment.domain import fulfillment
from fulfillment.utils.logging import configure_logging

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it. PROTEAN_ENV
# selects the config overlay from domain.toml.
configure_logging()
fulfillment.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Shipdesk API",
    description="Marketplace order fulfillment and carrier handoff",
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
    """Push the fulfillment domain context for each request."""
    with fulfillment.domain_context():
        return await call_next(request)


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from fulfillment.api.errors import register_error_handlers  # noqa: E402
from fulfillment.api.routes import order_router, shipment_router, tracking_router  # noqa: E402

app.include_router(shipment_router)
app.include_router(tracking_router)
app.include_router(order_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": fulfillment.name})
