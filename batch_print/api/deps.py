from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from batch_print.core.config import Settings
from batch_print.core.db import TenantSessionRegistry, check_tenant
from batch_print.core.exceptions import QueryError
from batch_print.core.tasks import BackgroundTaskRunner
from batch_print.db.repositories.print_repository import PrintStorage

TENANT_HEADER = "X-Okapi-Tenant"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> TenantSessionRegistry:
    return request.app.state.registry


def get_task_runner(request: Request) -> BackgroundTaskRunner:
    return request.app.state.tasks


def get_tenant(x_okapi_tenant: Optional[str] = Header(None, alias=TENANT_HEADER)) -> str:
    """Арендатор из заголовка запроса"""
    if not x_okapi_tenant:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing parameter {TENANT_HEADER}"
        )
    try:
        return check_tenant(x_okapi_tenant)
    except QueryError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def get_storage(
    tenant: str = Depends(get_tenant),
    registry: TenantSessionRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings)
) -> PrintStorage:
    """Хранилище записей арендатора текущего запроса"""
    return PrintStorage(registry, tenant, fetch_size=settings.stream_fetch_size)
