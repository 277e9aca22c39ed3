# backend/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from .api.dependencies.services import build_payment_gateway
from .core.config import settings
from .core.constants import ALLOWED_ORIGINS, API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .errors import register_error_handlers
from .routes.v1 import (
    bookings as bookings_v1,
    health as health_v1,
    pricing as pricing_v1,
    prometheus as prometheus_v1,
    stripe_webhooks as stripe_webhooks_v1,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    # Startup
    logger.info(f"{BRAND_NAME} booking core starting up...")
    logger.info(f"Environment: {settings.environment}")

    # Tests install their own gateway before startup
    if getattr(app.state, "payment_gateway", None) is None:
        app.state.payment_gateway = build_payment_gateway()

    if not settings.notifications_enabled:
        logger.warning("Booking notifications are disabled")

    yield

    # Shutdown
    logger.info(f"{BRAND_NAME} booking core shutting down...")


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(m.lower() for m in route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "").strip("_")
    name = (route.name or "operation").lower().replace(" ", "_")
    return f"{methods}__{path}__{name}".strip("_")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
    generate_unique_id_function=_unique_operation_id,
)
# Register unified error envelope handlers
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "OPTIONS", "POST"],
    allow_headers=["*"],
)
logger.info("CORS allow_origins=%s allow_credentials=%s", ALLOWED_ORIGINS, True)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(pricing_v1.router, prefix="/pricing")
api_v1.include_router(stripe_webhooks_v1.router, prefix="/webhooks")
api_v1.include_router(health_v1.router, prefix="/health")

app.include_router(api_v1)
app.include_router(prometheus_v1.router, prefix="/metrics")


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint - API information"""
    return {"message": f"Welcome to the {BRAND_NAME} Booking API", "version": API_VERSION}


__all__ = ["app"]
