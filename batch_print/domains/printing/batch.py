import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from batch_print.db.repositories.print_repository import PrintStorage
from batch_print.domains.printing.entities import PrintEntry, PrintEntryType, utcnow
from batch_print.domains.printing.pdf import PdfService

logger = logging.getLogger(__name__)

MAX_COUNT_IN_BATCH = 1000


class BatchCreationService:
    """Формирование пакета печати из отдельных записей за последние сутки.

    Окно отбора: ``created > now - window - grace``. Запас ``grace`` покрывает
    расхождение часов и время обработки, чтобы записи на границе суток,
    пропущенные прошлым запуском, попали в пакет.
    """

    def __init__(
        self,
        storage: PrintStorage,
        max_count: int = MAX_COUNT_IN_BATCH,
        window_hours: int = 24,
        grace_minutes: int = 5
    ):
        self.storage = storage
        self.max_count = max_count
        self.window = timedelta(hours=window_hours)
        self.grace = timedelta(minutes=grace_minutes)

    def eligibility_query(self, now: Optional[datetime] = None) -> str:
        """CQL-запрос отбора записей для пакета"""
        now = now or utcnow()
        cutoff = now - self.window - self.grace
        if cutoff.tzinfo is not None:
            cutoff = cutoff.replace(tzinfo=None) - (cutoff.utcoffset() or timedelta())
        return f'type=="{PrintEntryType.SINGLE.value}" and created > "{cutoff.isoformat()}"' \
               f' sortby sortingField created'

    async def collect(self, now: Optional[datetime] = None) -> List[PrintEntry]:
        """Отбор записей, подходящих для пакета"""
        return await self.storage.list(self.eligibility_query(now), 0, self.max_count)

    async def process(self, now: Optional[datetime] = None) -> Optional[PrintEntry]:
        """Создание пакета; None, если объединять нечего"""
        entries = await self.collect(now)
        logger.debug(f"process:: tenant {self.storage.tenant}, {len(entries)} eligible entries")
        if not entries:
            return None

        merged = await asyncio.to_thread(PdfService.combine_pdf_files, entries)
        if not merged:
            logger.warning(f"Merging {len(entries)} entries for tenant {self.storage.tenant} "
                           f"produced an empty document, batch not saved")
            return None

        batch = PrintEntry.create_entry(entry_type=PrintEntryType.BATCH, content=merged.hex())
        await self.storage.create(batch)
        logger.info(f"Created print batch {batch.id} from {len(entries)} entries "
                    f"for tenant {self.storage.tenant}")
        return batch
