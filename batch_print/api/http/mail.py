from fastapi import APIRouter, Depends, HTTPException, status

from batch_print.api.deps import get_storage
from batch_print.core.exceptions import QueryError
from batch_print.db.repositories.print_repository import PrintStorage
from batch_print.domains.printing.schemas import MailMessage, MailResponse
from batch_print.domains.printing.services import PrintService

router = APIRouter(tags=["mail"])


@router.post("/mail", response_model=MailResponse)
async def save_mail(
    message: MailMessage,
    storage: PrintStorage = Depends(get_storage)
):
    """Сохранение уведомления как отдельной записи печати"""
    print_service = PrintService(storage)

    try:
        entry_id = await print_service.save_mail(message)
    except QueryError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return MailResponse(id=entry_id)
