"""
Security Profile Resource API - Main Application
FastAPI transport for the /oic/sec/sp secure resource.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from app.config import Settings, settings
from app.routers import security_profile
from sp_resource.io.store import SecureStore, SqliteStore  # type: ignore
from sp_resource.runner import SpResource  # type: ignore

_log = logging.getLogger(__name__)


# =============================================================================
# Application factory
# =============================================================================

def create_app(
    app_settings: Settings | None = None,
    store: SecureStore | None = None,
) -> FastAPI:
    """Build the API.  *store* overrides the SQLite store (tests)."""
    cfg = app_settings if app_settings is not None else settings
    policy = cfg.policy()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load the stored profile on startup, release the store on shutdown"""
        resource_store = store if store is not None else SqliteStore(Path(cfg.SP_DB_PATH))
        app.state.sp_resource = SpResource.from_store(resource_store, policy)
        _log.info("sp resource ready at %s", policy.uri)
        yield
        if isinstance(resource_store, SqliteStore):
            resource_store.close()

    app = FastAPI(
        title=cfg.API_TITLE,
        description="CBOR transport for the device security profile resource",
        version=cfg.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "sp-resource-api",
            "version": cfg.API_VERSION,
        }

    app.include_router(
        security_profile.router,
        prefix=policy.uri,
        tags=["security-profile"],
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True  # For development
    )
