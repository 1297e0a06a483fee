from fastapi import APIRouter
from batch_print.api.http import (
    health_router, print_entries_router, mail_router, batch_router, tenant_router
)

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(print_entries_router)
api_router.include_router(mail_router)
api_router.include_router(batch_router)
api_router.include_router(tenant_router)
