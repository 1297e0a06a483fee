import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from batch_print.api.deps import TENANT_HEADER
from batch_print.api.middleware import BodyLimitMiddleware, RequestBodyTooLarge, body_too_large_response
from batch_print.api.router import api_router
from batch_print.core.config import Settings, settings as default_settings
from batch_print.core.db import TenantSessionRegistry
from batch_print.core.logging import setup_logging
from batch_print.core.tasks import BackgroundTaskRunner

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Сборка приложения"""
    settings = settings or default_settings
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.module_name}")
        yield
        await app.state.tasks.shutdown()
        await app.state.registry.dispose_all()
        logger.info(f"Stopped {settings.module_name}")

    app = FastAPI(
        title="Batch Print",
        description="Хранение уведомлений для печати и формирование пакетов",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.registry = TenantSessionRegistry(
        settings.database_url,
        module_name=settings.module_name,
        echo=settings.db_echo
    )
    app.state.tasks = BackgroundTaskRunner()

    app.add_middleware(BodyLimitMiddleware, max_body_size=settings.body_limit)

    @app.exception_handler(RequestBodyTooLarge)
    async def body_too_large(request: Request, exc: RequestBodyTooLarge):
        logger.info(f"Refused oversized body on {request.method} {request.url.path}")
        return body_too_large_response()

    @app.exception_handler(SQLAlchemyError)
    async def storage_error(request: Request, exc: SQLAlchemyError):
        logger.error(
            f"Storage failure on {request.method} {request.url.path} "
            f"(tenant {request.headers.get(TENANT_HEADER)})",
            exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )

    app.include_router(api_router)
    return app


app = create_app()
