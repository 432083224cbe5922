"""
Main application entry point for the FileVault API.

This module builds the FastAPI application: it opens the catalog and the blob
store inside the application lifespan, wires the access guard, id allocator,
file service and reconciler onto ``app.state``, and registers middleware,
exception handlers and routers.

Run with ``filevault-admin serve`` or ``python -m filevault.main``.
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError

from filevault import __version__
from filevault.api import files, health
from filevault.core.auth import AccessGuard
from filevault.core.config import Settings, get_settings
from filevault.core.exceptions import StorageUnavailable, register_exception_handlers
from filevault.core.logger import configure_logging, setup_logger
from filevault.core.middleware import setup_all_middleware
from filevault.db.catalog import Catalog
from filevault.schemas.files import Role
from filevault.services.allocator import IdAllocator
from filevault.services.file_service import FileService
from filevault.services.reconciler import Reconciler
from filevault.storage.blob_store import LocalBlobStore

logger = setup_logger("filevault.main")


def seed_master_identity(catalog: Catalog, settings: Settings) -> None:
    """Replace the master identity with the key from the environment."""
    catalog.upsert_identity(settings.MASTER_KEY, settings.MASTER_USERNAME, Role.ADMINISTRATOR)
    logger.info(f"Master identity '{settings.MASTER_USERNAME}' seeded")


def open_storage(settings: Settings):
    """
    Open the catalog and blob store and seed the master identity.

    Returns:
        tuple: (Catalog, LocalBlobStore)

    Raises:
        StorageUnavailable: If either store cannot be opened
    """
    catalog = Catalog.from_url(settings.DATABASE_URL, echo=settings.DEBUG)
    try:
        blob_store = LocalBlobStore(settings.BLOB_DIR)
        seed_master_identity(catalog, settings)
    except StorageUnavailable:
        catalog.close()
        raise
    return catalog, blob_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    try:
        catalog, blob_store = open_storage(settings)
    except StorageUnavailable as e:
        logger.critical(f"Cannot open storage: {e.detail}")
        raise

    allocator = IdAllocator(catalog, max_attempts=settings.ID_ALLOCATION_MAX_ATTEMPTS)
    reconciler = Reconciler(catalog, blob_store, grace_seconds=settings.RECONCILE_GRACE_SECONDS)

    app.state.catalog = catalog
    app.state.blob_store = blob_store
    app.state.access_guard = AccessGuard(catalog)
    app.state.file_service = FileService(catalog, blob_store, allocator, settings.MAX_UPLOAD_BYTES)
    app.state.reconciler = reconciler
    logger.info("Database initialised successfully")

    reconcile_task: Optional[asyncio.Task] = None
    if settings.RECONCILE_INTERVAL_SECONDS > 0:
        await asyncio.to_thread(reconciler.sweep)
        reconcile_task = asyncio.create_task(
            reconciler.run_periodically(settings.RECONCILE_INTERVAL_SECONDS)
        )

    try:
        yield
    finally:
        if reconcile_task is not None:
            reconcile_task.cancel()
            try:
                await reconcile_task
            except asyncio.CancelledError:
                pass
        catalog.close()
        logger.info("Storage closed")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use; loaded from the environment if omitted

    Returns:
        FastAPI: The configured application
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_TIMEZONE)

    app = FastAPI(
        title="FileVault API",
        description="Permission-gated file storage",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    setup_all_middleware(app)
    register_exception_handlers(app)

    # health before files so "/health" is not taken for a file id
    app.include_router(health.router)
    app.include_router(files.router)

    return app


def run(settings: Optional[Settings] = None) -> None:
    """Load settings and serve the API with uvicorn; exit with status 1 on bad configuration."""
    try:
        settings = settings or get_settings()
    except ValidationError as e:
        logger.critical(f"Invalid configuration: {e}")
        sys.exit(1)

    app = create_app(settings)
    logger.info(f"Server starting on {settings.HOST}:{settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
