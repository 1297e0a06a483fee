import asyncio
import logging
import uuid

from batch_print.core.exceptions import QueryError
from batch_print.db.repositories.print_repository import PrintStorage
from batch_print.db.repositories.result_stream import EntryResultStream
from batch_print.domains.printing.entities import PrintEntry, PrintEntryType
from batch_print.domains.printing.pdf import PdfService
from batch_print.domains.printing.schemas import MailMessage

logger = logging.getLogger(__name__)


class PrintService:
    """Сервис для работы с записями печати"""

    def __init__(self, storage: PrintStorage):
        self.storage = storage

    async def create_entry(self, entry: PrintEntry) -> None:
        await self.storage.create(entry)

    async def get_entry(self, entry_id: uuid.UUID) -> PrintEntry:
        return await self.storage.get(entry_id)

    async def update_entry(self, entry_id: uuid.UUID, entry: PrintEntry) -> None:
        """Полная замена записи; идентификатор в пути должен совпадать с телом"""
        if entry_id != entry.id:
            raise QueryError("id mismatch")
        await self.storage.update(entry)

    async def delete_entry(self, entry_id: uuid.UUID) -> None:
        await self.storage.delete(entry_id)

    def get_entries(self, cql_query: str, offset: int, limit: int) -> EntryResultStream:
        return self.storage.stream(cql_query, offset, limit)

    async def save_mail(self, message: MailMessage) -> uuid.UUID:
        """Рендеринг уведомления в PDF и сохранение отдельной записи"""
        pdf = await asyncio.to_thread(PdfService.create_pdf_file, message.body)
        if not pdf:
            logger.warning(f"Notice {message.notification_id} rendered to an empty document")
            raise QueryError("Notice body produced an empty document")

        entry = PrintEntry.create_entry(
            entry_type=PrintEntryType.SINGLE,
            content=pdf.hex(),
            sorting_field=message.to
        )
        await self.storage.create(entry)
        logger.debug(f"Saved notice {message.notification_id} as print entry {entry.id}")
        return entry.id
