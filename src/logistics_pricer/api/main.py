from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from ..db import SessionLocal, init_db
from ..settings import settings
from .routes import router as v1_router

# ---------------- Logging ----------------
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("logistics-pricer-api")

API_VERSION = "1.0.0"

app = FastAPI(
    title="Logistics Pricing Engine",
    version=API_VERSION,
    description="Freight quotes: transport cost, duties, ancillary fees and transit time",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.include_router(v1_router)

# ----- CORS -----
allow_origins = settings.cors_origins
allow_all = (len(allow_origins) == 1 and allow_origins[0] == "*")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    # Browsers disallow credentials with "*"
    allow_credentials=not allow_all,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----- Startup -----
@app.on_event("startup")
def _startup():
    """Create tables and load seed rates/routes when enabled."""
    try:
        init_db()
        logger.info("Startup complete, DB initialized.")
    except Exception:
        logger.exception("DB init failed during startup; continuing without blocking app.")


# ----- System -----
@app.get("/", tags=["System"])
def root() -> Dict[str, Any]:
    return {
        "name": "logistics-pricer",
        "version": API_VERSION,
        "docs": "/api/docs",
        "endpoints": {
            "pricing": "/api/v1/pricing/calculate",
            "duties": "/api/v1/tariffs/calculate-duties",
            "rates": "/api/v1/tariffs/rates",
            "rate_history": "/api/v1/tariffs/history",
            "rate_update": "/api/v1/tariffs/update",
            "routes": "/api/v1/shipping/routes",
            "transit": "/api/v1/shipping/calculate-transit",
            "route_validation": "/api/v1/shipping/validate-route",
            "documents": "/api/v1/shipping/documents",
            "restrictions": "/api/v1/shipping/restrictions",
        },
    }


@app.get("/health", tags=["System"])
def health() -> Dict[str, Any]:
    db_ok = True
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1")).scalar()
    except Exception:
        logger.warning("Health check could not reach the database", exc_info=True)
        db_ok = False
    return {
        "ok": True,
        "version": API_VERSION,
        "db_ok": db_ok,
        "quote_validity_days": settings.quote_validity_days,
    }
