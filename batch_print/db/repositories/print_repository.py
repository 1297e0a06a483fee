import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple, TYPE_CHECKING

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.schema import CreateSchema

from batch_print.core.db import TenantSessionRegistry
from batch_print.core.exceptions import ConflictError, NotFoundError, QueryError
from batch_print.db.base import Base
from batch_print.db.cql import QueryDefinition, TextField, TimestampField, UuidField
from batch_print.db.models.print_entry import PrintEntryModel
from batch_print.db.repositories.result_stream import EntryResultStream

if TYPE_CHECKING:
    from batch_print.domains.printing.entities import PrintEntry

logger = logging.getLogger(__name__)

# SQLSTATE PostgreSQL: строка заблокирована другой транзакцией (NOWAIT)
LOCK_NOT_AVAILABLE = "55P03"


def print_entry_definition() -> QueryDefinition:
    """Индексы CQL, доступные для записей печати"""
    return (
        QueryDefinition(PrintEntryModel.__table__)
        .add_field("id", UuidField())
        .add_field("type", TextField(exact=True))
        .add_field("created", TimestampField())
        .add_field("sortingField", TextField(column="sorting_field"))
    )


def is_lock_contention(error: DBAPIError) -> bool:
    """Ошибка вызвана тем, что строку держит конкурирующий писатель"""
    orig = getattr(error, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == LOCK_NOT_AVAILABLE


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class PrintStorage:
    """Хранилище записей печати одного арендатора"""

    def __init__(self, registry: TenantSessionRegistry, tenant: str, fetch_size: int = 100):
        self.tenant = tenant
        self.pool = registry.pool(tenant)
        self.sessionmaker = self.pool.sessionmaker
        self.fetch_size = fetch_size
        self.definition = print_entry_definition()

    async def init(self) -> None:
        """Подготовка хранилища арендатора: схема и таблица, если их еще нет"""
        async with self.pool.engine.begin() as conn:
            if self.pool.schema:
                await conn.execute(CreateSchema(self.pool.schema, if_not_exists=True))
            await conn.run_sync(Base.metadata.create_all, tables=[PrintEntryModel.__table__], checkfirst=True)
        logger.info(f"Initialized print storage for tenant {self.tenant}")

    async def create(self, entry: "PrintEntry") -> None:
        """Создание записи"""
        if not entry.content:
            raise QueryError("content is required")
        async with self.sessionmaker() as session:
            try:
                result = await session.execute(
                    insert(PrintEntryModel).values(
                        id=entry.id,
                        created=_to_naive_utc(entry.created),
                        type=entry.type.value,
                        sorting_field=entry.sorting_field,
                        content=entry.content
                    )
                )
                if result.rowcount == 0:
                    raise ConflictError("Failed to create")
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ConflictError(f"Print entry {entry.id} already exists")

    async def get(self, entry_id: uuid.UUID) -> "PrintEntry":
        """Получение записи; NotFoundError, если ее нет"""
        entry = await self._get_without_check(entry_id)
        if entry is None:
            raise NotFoundError(f"Print entry {entry_id} not found")
        return entry

    async def _get_without_check(self, entry_id: uuid.UUID) -> Optional["PrintEntry"]:
        async with self.sessionmaker() as session:
            result = await session.execute(
                select(PrintEntryModel).where(PrintEntryModel.id == entry_id)
            )
            model = result.scalar_one_or_none()
            return self._to_domain(model) if model else None

    async def update(self, entry: "PrintEntry") -> None:
        """Полная замена записи по идентификатору.

        Строка блокируется без ожидания, поэтому из двух одновременных
        обновлений одной записи успешно только одно. Проигравший получает
        NotFoundError, как и при нарушении уникальности: обе ситуации
        трактуются как "идентичность строки изменилась конкурентно".
        """
        if not entry.content:
            raise QueryError("content is required")
        async with self.sessionmaker() as session:
            try:
                locked = await session.execute(
                    select(PrintEntryModel.id)
                    .where(PrintEntryModel.id == entry.id)
                    .with_for_update(nowait=True)
                )
                if locked.first() is None:
                    raise NotFoundError(f"Print entry {entry.id} not found")

                result = await session.execute(
                    update(PrintEntryModel)
                    .where(PrintEntryModel.id == entry.id)
                    .values(
                        created=_to_naive_utc(entry.created),
                        type=entry.type.value,
                        sorting_field=entry.sorting_field,
                        content=entry.content
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"Print entry {entry.id} not found")
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise NotFoundError(f"Print entry {entry.id} not found")
            except DBAPIError as e:
                await session.rollback()
                if is_lock_contention(e):
                    logger.info(f"Concurrent update of print entry {entry.id} lost the row lock")
                    raise NotFoundError(f"Print entry {entry.id} not found")
                raise

    async def delete(self, entry_id: uuid.UUID) -> None:
        """Удаление записи"""
        if await self._get_without_check(entry_id) is None:
            raise NotFoundError(f"Print entry {entry_id} not found")
        async with self.sessionmaker() as session:
            result = await session.execute(
                delete(PrintEntryModel)
                .where(PrintEntryModel.id == entry_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Print entry {entry_id} not found")
            await session.commit()

    async def list(self, cql_query: Optional[str], offset: int = 0, limit: int = 10) -> List["PrintEntry"]:
        """Получение записей списком (без потоковой выдачи)"""
        query, _ = self._build_query(cql_query, offset, limit)
        async with self.sessionmaker() as session:
            result = await session.execute(query)
            return [self._to_domain(model) for model in result.scalars().all()]

    def stream(self, cql_query: Optional[str], offset: int = 0, limit: int = 10) -> EntryResultStream:
        """Подготовка потоковой выдачи.

        Запрос разбирается сразу, чтобы QueryError возник до начала ответа.
        """
        query, count_query = self._build_query(cql_query, offset, limit)
        return EntryResultStream(
            self.sessionmaker,
            query,
            count_query,
            encode_row=self.encode_row,
            fetch_size=self.fetch_size,
            snapshot_options=self._snapshot_options()
        )

    def _build_query(self, cql_query: Optional[str], offset: int, limit: int) -> Tuple:
        translated = self.definition.translate(cql_query)
        query = select(PrintEntryModel).where(translated.where)
        if translated.order_by:
            query = query.order_by(*translated.order_by)
        query = query.limit(limit).offset(offset)
        count_query = select(func.count()).select_from(PrintEntryModel).where(translated.where)
        logger.debug(f"Query for tenant {self.tenant}: {query}")
        return query, count_query

    def _snapshot_options(self) -> dict:
        if self.pool.engine.dialect.name == "postgresql":
            return {"isolation_level": "REPEATABLE READ", "postgresql_readonly": True}
        return {}

    def encode_row(self, model: PrintEntryModel) -> str:
        from batch_print.domains.printing.schemas import PrintEntrySchema

        return PrintEntrySchema.from_entry(self._to_domain(model)).to_json()

    def _to_domain(self, model: PrintEntryModel) -> "PrintEntry":
        """Преобразование модели БД в доменную сущность"""
        from batch_print.domains.printing.entities import PrintEntry

        return PrintEntry(
            id=model.id,
            created=model.created,
            type=model.type,
            sorting_field=model.sorting_field,
            content=model.content
        )
