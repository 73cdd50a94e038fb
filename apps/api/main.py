# FastAPI entrypoint for the config backup service

import os
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
import dotenv

from backups.backup_routes import router as backup_router
from backups.config import BackupConfig
from backups.exceptions import BackupError
from backups.service import BackupService
from security.auth.api_keys import AUTH_HEADER
from storage.object_store.buckets import ObjectStore, build_object_store

dotenv.load_dotenv()


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function} - {message}"
    )


def create_app(
    config: Optional[BackupConfig] = None,
    store: Optional[ObjectStore] = None,
    service: Optional[BackupService] = None
) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Settings (read from the environment when omitted)
        store: Object store (built from config when omitted)
        service: Fully wired service, overrides `store`
    """
    config = config or BackupConfig()
    configure_logging(config.log_level)

    if service is None:
        service = BackupService(store or build_object_store(config), config)

    app = FastAPI(
        title="Config Backup API",
        description="Versioned document backups with deduplication and bounded retention",
        version="1.12.0"
    )
    app.state.config = config
    app.state.backup_service = service

    # ==================== CORS MIDDLEWARE ====================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "PUT", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", AUTH_HEADER],
        max_age=86400,
    )

    # ==================== ERROR HANDLERS ====================

    @app.exception_handler(BackupError)
    async def backup_error_handler(request: Request, exc: BackupError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "message": exc.message}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        logger.debug(f"{request.method} {request.url.path}: invalid request {problems}")
        return JSONResponse(
            status_code=400,
            content={"status": "error", "message": "; ".join(problems) or "Invalid request"}
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": str(exc)}
        )

    # ==================== HEALTH (UNAUTHENTICATED) ====================

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint for monitoring system status."""
        return {"status": "healthy", "store": service.repository.store.backend_name}

    # ==================== ROUTER REGISTRATION ====================

    app.include_router(backup_router)

    logger.info(
        f"✓ Backup API ready (store={service.repository.store.backend_name}, "
        f"max_backups={config.max_backups})"
    )
    return app


app = create_app()


def main():
    uvicorn.run(
        "apps.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
