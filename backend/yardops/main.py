"""FastAPI application."""
import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .domain_errors import DomainError
from .problem_details import domain_error_handler
from .routers import capacity, dock_appointments, shipments, storage_requests

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create app
app = FastAPI(
    title="Yard Ops Capacity & Receiving",
    version="1.0.0",
    description="Rack capacity allocation, storage request approval and inbound shipment receiving"
)

# Production safety checks
if settings.ENV.lower() == "production" and not settings.cors_origins:
    raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
if settings.ENV.lower() == "production" and any(origin.strip() == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"] if settings.ENV.lower() != "production" else ["Content-Type"],
)

app.add_exception_handler(DomainError, domain_error_handler)

# Include routers
app.include_router(capacity.router, prefix="/api/v1")
app.include_router(storage_requests.router, prefix="/api/v1")
app.include_router(shipments.router, prefix="/api/v1")
app.include_router(dock_appointments.router, prefix="/api/v1")


@app.get("/api/v1/system/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint."""
    database = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check database ping failed")
        database = "unavailable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "version": "1.0.0",
        "database": database,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Yard Ops Capacity & Receiving API",
        "version": "1.0.0",
        "docs": "/docs"
    }
