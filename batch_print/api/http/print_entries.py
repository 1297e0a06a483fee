from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import StreamingResponse
from typing import Optional
import uuid

from batch_print.api.deps import get_storage
from batch_print.core.exceptions import NotFoundError, QueryError
from batch_print.db.repositories.print_repository import PrintStorage
from batch_print.domains.printing.schemas import PrintEntrySchema, PrintEntriesResponse
from batch_print.domains.printing.services import PrintService

router = APIRouter(prefix="/print", tags=["print"])


@router.get(
    "/entries",
    response_class=StreamingResponse,
    responses={200: {"model": PrintEntriesResponse}}
)
async def get_print_entries(
    query: Optional[str] = Query(None, description="CQL query"),
    offset: int = Query(0, ge=0),
    limit: int = Query(10, ge=0),
    storage: PrintStorage = Depends(get_storage)
):
    """Получение записей с потоковой выдачей"""
    print_service = PrintService(storage)

    try:
        stream = print_service.get_entries(query, offset, limit)
    except QueryError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return StreamingResponse(stream, media_type="application/json")


@router.post("/entries", status_code=status.HTTP_204_NO_CONTENT)
async def post_print_entry(
    entry_data: PrintEntrySchema,
    storage: PrintStorage = Depends(get_storage)
):
    """Создание записи"""
    print_service = PrintService(storage)

    try:
        await print_service.create_entry(entry_data.to_entry())
    except QueryError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get(
    "/entries/{entry_id}",
    response_model=PrintEntrySchema,
    response_model_exclude_none=True
)
async def get_print_entry(
    entry_id: uuid.UUID,
    storage: PrintStorage = Depends(get_storage)
):
    """Получение записи по идентификатору"""
    print_service = PrintService(storage)

    try:
        entry = await print_service.get_entry(entry_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

    return PrintEntrySchema.from_entry(entry)


@router.put("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_print_entry(
    entry_id: uuid.UUID,
    entry_data: PrintEntrySchema,
    storage: PrintStorage = Depends(get_storage)
):
    """Полная замена записи"""
    print_service = PrintService(storage)

    try:
        await print_service.update_entry(entry_id, entry_data.to_entry())
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except QueryError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_print_entry(
    entry_id: uuid.UUID,
    storage: PrintStorage = Depends(get_storage)
):
    """Удаление записи"""
    print_service = PrintService(storage)

    try:
        await print_service.delete_entry(entry_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
