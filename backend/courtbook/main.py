# backend/courtbook/main.py
"""
Club booking API.

Court bookings, coached sessions, club token pools and service
redemptions, mounted under /api/v1.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import settings
from .errors import register_error_handlers
from .routes.v1 import (
    bookings as bookings_v1,
    health as health_v1,
    payments as payments_v1,
    redemptions as redemptions_v1,
    reservations as reservations_v1,
    resources as resources_v1,
    token_pools as token_pools_v1,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

API_TITLE = "Courtbook API"
API_VERSION = "1.0.0"


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(f"{API_TITLE} starting up...")
    logger.info(f"Environment: {settings.environment}")
    if settings.redis_url is None:
        logger.info("No Redis configured; resource locks disabled, database constraints only")
    yield
    logger.info(f"{API_TITLE} shutting down...")


app = FastAPI(
    title=API_TITLE,
    description="Court and coaching reservations with club token pools",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(resources_v1.router, prefix="/resources")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(bookings_v1.sessions_router, prefix="/sessions")
api_v1.include_router(reservations_v1.router, prefix="/reservations")
api_v1.include_router(payments_v1.router, prefix="/payments")
api_v1.include_router(redemptions_v1.router, prefix="/redemptions")
# /clubs/{id}/token-pools/current must be registered before /{month_year}
api_v1.include_router(token_pools_v1.router, prefix="/clubs")
api_v1.include_router(redemptions_v1.club_router, prefix="/clubs")

app.include_router(api_v1)
app.include_router(health_v1.router)
