import logging

from fastapi import APIRouter, Depends, status

from batch_print.api.deps import get_settings, get_storage, get_task_runner
from batch_print.core.config import Settings
from batch_print.core.tasks import BackgroundTaskRunner
from batch_print.db.repositories.print_repository import PrintStorage
from batch_print.domains.printing.batch import BatchCreationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/print", tags=["print"])


@router.post("/batch-creation", status_code=status.HTTP_204_NO_CONTENT)
async def create_batch(
    storage: PrintStorage = Depends(get_storage),
    tasks: BackgroundTaskRunner = Depends(get_task_runner),
    settings: Settings = Depends(get_settings)
):
    """Запуск формирования пакета.

    Ответ отдается сразу: отбор, объединение и сохранение идут в фоне,
    и вызывающий не узнает, был ли пакет создан. Ошибки только в логе.
    """
    batch_service = BatchCreationService(
        storage,
        max_count=settings.batch_max_count,
        window_hours=settings.batch_window_hours,
        grace_minutes=settings.batch_grace_minutes
    )
    logger.debug(f"create_batch:: tenant {storage.tenant}")
    tasks.submit(batch_service.process(), name=f"batch-creation-{storage.tenant}")
