"""
PharmaLedger Backend: multi-tenant inventory ledger and B2B order engine.

ARCHITECTURE:
- Ledger: per-tenant products and expiry-dated batches, FIFO deduction
- Orders: pharmacy -> distributor state machine, OTP-gated delivery
- Transfer: seller allocation + buyer product matching in one transaction
- Forecast: demand and expiry-risk analytics over the ledger

SAFETY MODEL:
- Every multi-row write runs in one unit of work; failures roll back fully
- Orders and batches are row-locked and versioned against double-spend
- Tenant identity is supplied by the gateway (X-Tenant-Id), not verified here
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pharmaledger.api.routes import connections, forecast, inventory, notifications, orders, sales
from pharmaledger.core.config import settings
from pharmaledger.core.exceptions import LedgerError
from pharmaledger.db.init_db import init_db

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    logger.info("[Startup] Initializing database...")
    init_db()
    logger.info("[Startup] Database initialized")
    yield


app = FastAPI(
    title="PharmaLedger API",
    description="Batch inventory ledger and pharmacy-distributor order fulfillment.",
    version="0.1.0",
    lifespan=lifespan,
)

# SECURITY: Restrict CORS to specific methods and headers (not wildcards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
        "X-Tenant-Id",
    ],
    max_age=600,
    expose_headers=["Content-Type"],
)


# SECURITY: Add security headers middleware
@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.info(f"[API] {request.method} {request.url.path} -> {exc.status_code} {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
app.include_router(sales.router, prefix="/sales", tags=["sales"])
app.include_router(orders.router, prefix="/orders", tags=["orders"])
app.include_router(forecast.router, prefix="/forecast", tags=["forecast"])
app.include_router(connections.router, prefix="/connections", tags=["connections"])
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])


@app.get("/health")
def health():
    return {"status": "ok"}
