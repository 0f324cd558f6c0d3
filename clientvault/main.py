# clientvault/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from clientvault.api.dependencies import get_encryption_service
from clientvault.core.config import Settings, settings as default_settings
from clientvault.core.encryption import EncryptionService
from clientvault.core.logging import logger, setup_logging
from clientvault.db.database import close_db, create_engine, create_session_factory, init_db
from clientvault.db.sensitive_fields import SensitiveFieldRegistry
from clientvault.db.subscribers import EncryptionInterceptor


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings = app.state.settings
    logger.info("Starting ClientVault API", extra={"environment": settings.ENVIRONMENT})

    # Derive the key once; raises MissingEncryptionKeyError in production
    # without ENCRYPTION_KEY so the server never starts serving
    encryption_service = EncryptionService.from_settings(settings)
    registry = SensitiveFieldRegistry.default()
    interceptor = EncryptionInterceptor(encryption_service, registry)
    logger.info("Field encryption enabled", extra={"record_types": list(registry.record_types())})

    engine = create_engine(settings)
    await init_db(engine)

    app.state.encryption_service = encryption_service
    app.state.encryption_interceptor = interceptor
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine, interceptor)

    yield

    # Shutdown
    logger.info("Shutting down ClientVault API")
    await close_db(engine)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        version=settings.VERSION,
        docs_url=("/api/docs" if settings.ENVIRONMENT == "development" else None),
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    @app.get("/health")
    async def health_check(encryption: EncryptionService = Depends(get_encryption_service)):
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "encryption": "configured" if encryption.key_source == "configured" else "development-key",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.exception("Unhandled exception while handling request", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app


app = create_app()
