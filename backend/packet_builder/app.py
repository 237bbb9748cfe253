"""FastAPI application setup for Packet Builder."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from packet_builder.api.dependencies import (
    get_app_settings,
    get_database,
    get_packet_service,
    get_record_store,
)
from packet_builder.api.routes_admin import router as admin_router
from packet_builder.api.routes_packets import router as packets_router
from packet_builder.core.errors import PacketError
from packet_builder.core.logging import configure_logging
from packet_builder.core.metrics import REQUEST_COUNT, REQUEST_LATENCY

configure_logging()

app = FastAPI(
    title="Packet Builder",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(packets_router, prefix="", tags=["packets"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.exception_handler(PacketError)
async def packet_error_handler(request: Request, exc: PacketError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - started)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_database()
    get_record_store()
    get_packet_service()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
