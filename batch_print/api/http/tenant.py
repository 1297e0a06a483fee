import logging

from fastapi import APIRouter, Depends, status

from batch_print.api.deps import get_storage
from batch_print.db.repositories.print_repository import PrintStorage
from batch_print.domains.printing.schemas import TenantAttributes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/_", tags=["tenant"])


@router.post("/tenant", status_code=status.HTTP_204_NO_CONTENT)
async def post_tenant(
    attributes: TenantAttributes,
    storage: PrintStorage = Depends(get_storage)
):
    """Включение модуля для арендатора"""
    if not attributes.module_to:
        # Выключение модуля: данные не трогаем
        logger.info(f"Module disabled for tenant {storage.tenant}")
        return
    await storage.init()
