import json
import logging
from typing import AsyncIterator, Callable, List, Optional

from sqlalchemy import Select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


class EntryResultStream:
    """Потоковая выдача результата запроса в формате JSON.

    Записи читаются серверным курсором окнами по ``fetch_size`` строк и
    отдаются по мере чтения. После исчерпания курсора в той же транзакции
    выполняется запрос количества, поэтому ``totalRecords`` согласован с
    выданными записями. Ошибка после начала выдачи не прерывает ответ, а
    попадает в ``diagnostics``: клиент должен считать непустой список
    признаком неполного результата.

    Поток можно прочитать только один раз.
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker,
        query: Select,
        count_query: Select,
        encode_row: Callable[[object], str],
        fetch_size: int = 100,
        snapshot_options: Optional[dict] = None
    ):
        self.sessionmaker = sessionmaker
        self.query = query
        self.count_query = count_query
        self.encode_row = encode_row
        self.fetch_size = fetch_size
        self.snapshot_options = snapshot_options or {}
        self._consumed = False

    def __aiter__(self) -> AsyncIterator[str]:
        if self._consumed:
            raise RuntimeError("Result stream can only be consumed once")
        self._consumed = True
        return self._generate()

    async def _generate(self) -> AsyncIterator[str]:
        session: AsyncSession = self.sessionmaker()
        try:
            # Одно соединение и одна транзакция на весь поток
            await session.connection(execution_options=self.snapshot_options)

            yield '{ "items" : ['
            diagnostics: List[dict] = []
            total = None
            try:
                result = await session.stream(self.query.execution_options(yield_per=self.fetch_size))
                first = True
                async for row in result.scalars():
                    item = self.encode_row(row)
                    yield item if first else "," + item
                    first = False
            except (SQLAlchemyError, ValueError) as e:
                logger.error(f"stream error {e}", exc_info=True)
                diagnostics.append({"message": str(e)})
            else:
                try:
                    total = (await session.execute(self.count_query)).scalar_one()
                except SQLAlchemyError as e:
                    logger.error(f"count query failed: {e}", exc_info=True)
                    diagnostics.append({"message": str(e)})

            yield "], \"resultInfo\": " + self.result_info(total, diagnostics) + "}"
        finally:
            await self._release(session)

    @staticmethod
    def result_info(total: Optional[int], diagnostics: List[dict]) -> str:
        info = {}
        if total is not None:
            info["totalRecords"] = total
        info["diagnostics"] = diagnostics
        return json.dumps(info)

    async def _release(self, session: AsyncSession) -> None:
        """Фиксация транзакции и возврат соединения на любом пути выхода"""
        try:
            if session.in_transaction():
                await session.commit()
        except SQLAlchemyError:
            logger.warning("commit after streaming failed, rolling back", exc_info=True)
            await session.rollback()
        finally:
            await session.close()
