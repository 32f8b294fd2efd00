"""
FastAPI application entry point for the OCC Digital Library API.

This is the main application file that configures and runs the FastAPI server.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import settings
from .database import init_db, close_db
from .services.storage_service import init_storage, PUBLIC_PREFIX
from .api.v0 import auth as auth_v0
from .api.v0 import ebooks as ebooks_v0
from .api.v0 import programs as programs_v0

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting OCC Digital Library API...")

    storage = init_storage(settings.storage_root)
    logger.info(f"Serving uploads from {storage.root}")

    await init_db()

    yield

    # Shutdown
    logger.info("Shutting down OCC Digital Library API...")
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="OCC Digital Library API",
    description="""
    Digital library for OCC academic programs.

    ## Features

    * **Uploads**: PDF ebooks tagged by program and year level, with cover thumbnails
    * **Catalog**: Search, filter, sort and paginate ebooks
    * **Programs**: Manage the academic programs ebooks are filed under

    ## Endpoints

    All endpoints are under `/api/v0/`. Covers and PDFs are served from `/uploads/`.
    """,
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(auth_v0.router)
app.include_router(programs_v0.router)
app.include_router(ebooks_v0.router)

# Uploaded PDFs and covers; the directory is created in lifespan
app.mount(
    PUBLIC_PREFIX,
    StaticFiles(directory=settings.storage_root, check_dir=False),
    name="uploads",
)


@app.get("/", tags=["health"])
async def root():
    """Root endpoint - API information."""
    return {
        "name": "OCC Digital Library API",
        "version": "0.1.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}
