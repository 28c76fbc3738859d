"""FastAPI application entry point for the Pohi timber marketplace API."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pohi_platform.app.config import get_settings
from pohi_platform.infra.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database on startup."""
    await init_db()
    if not get_settings().ai_enabled:
        logger.warning("GEMINI_API_KEY is not set; AI features will report as unavailable")
    yield


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="Pohi AI Pro Marketplace API",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware: all origins in debug mode
_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from pohi_platform.app.routes.billing import router as billing_router
from pohi_platform.app.routes.companies import router as companies_router, volume_router
from pohi_platform.app.routes.demands import router as demands_router
from pohi_platform.app.routes.logistics import router as logistics_router
from pohi_platform.app.routes.matchmaking import router as matchmaking_router
from pohi_platform.app.routes.stock import router as stock_router

app.include_router(demands_router)
app.include_router(stock_router)
app.include_router(companies_router)
app.include_router(volume_router)
app.include_router(matchmaking_router)
app.include_router(billing_router)
app.include_router(logistics_router)


@app.get("/health", tags=["health"])
async def health_check():
    """Return service health status."""
    return {"status": "ok", "service": "pohi-platform", "ai": settings.ai_enabled}


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "pohi_platform.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
