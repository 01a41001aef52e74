"""Packing FastAPI application.

Web server that processes scans and corrections synchronously via HTTP and
pushes per-job change notifications over a websocket.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV picks the provider overlay from domain.toml. Event processing
# stays "sync" in every environment: scan routing reads the box read models
# right after the previous write.
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from packing.domain import packing  # noqa: E402
from packing.utils.logging import add_context, clear_context

packing.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Packing API",
    description="Box fulfillment & verification for multi-customer warehouse jobs",
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
    """Push the Protean domain context and bind a request id for logging."""
    add_context(request_id=request.headers.get("x-request-id", str(uuid4())))
    try:
        with packing.domain_context():
            return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from packing.api import register_packing_exception_handlers, routers  # noqa: E402

for router in routers:
    app.include_router(router)

register_packing_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "packing": {"name": packing.name},
            },
        }
    )
