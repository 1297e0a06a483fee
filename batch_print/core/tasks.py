import asyncio
import logging
from typing import Coroutine, Set

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """Запуск отсоединенных задач вне жизненного цикла запроса.

    Инициатор задачи не получает ее результат: успех и ошибки только
    попадают в лог. Сильные ссылки на задачи держатся до их завершения.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine, name: str) -> asyncio.Task:
        """Планирование задачи на текущем цикле событий"""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug(f"Submitted background task {name}")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} failed", exc_info=exc)
        else:
            logger.debug(f"Background task {task.get_name()} finished")

    async def drain(self) -> None:
        """Ожидание завершения всех запущенных задач"""
        while self._tasks:
            await asyncio.wait(list(self._tasks))

    async def shutdown(self, timeout: float = 30.0) -> None:
        """Остановка: ждем задачи, по таймауту отменяем оставшиеся"""
        if not self._tasks:
            return
        _, pending = await asyncio.wait(list(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
