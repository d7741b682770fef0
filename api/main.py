"""Problem solver HTTP API."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.config import api_settings
from api.dependencies import get_code_executor, get_provider_registry
from api.middleware import LoggingMiddleware
from api.routes import admin_router, auth_router, problems_router
from solver.config import settings
from solver.database import close_db, init_db

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    await init_db()
    logger.info("Database initialized")
    yield
    # Shutdown
    await get_provider_registry().close()
    await get_code_executor().close()
    await close_db()
    logger.info("Shutdown complete")


app = FastAPI(
    title="AI Problem Solver API",
    description="Submit problems, get AI-generated solutions with sandboxed code runs",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=api_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

# Include routers
app.include_router(auth_router)
app.include_router(problems_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=api_settings.debug,
    )
