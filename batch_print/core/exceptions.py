class PrintServerError(Exception):
    """Базовая ошибка сервиса печати"""


class NotFoundError(PrintServerError):
    """Запись не найдена или строка изменилась конкурентно"""

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class QueryError(PrintServerError):
    """Некорректный запрос или запись"""


class ConflictError(QueryError):
    """Запись с таким идентификатором уже существует"""
