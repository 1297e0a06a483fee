import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


class PrintEntryType(str, enum.Enum):
    SINGLE = "SINGLE"
    BATCH = "BATCH"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Приведение к UTC; время без зоны считается временем UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class PrintEntry:
    """Запись печати: отдельное уведомление или объединенный пакет"""
    id: uuid.UUID
    created: datetime
    type: PrintEntryType
    content: Optional[str] = None
    sorting_field: Optional[str] = None

    def __post_init__(self):
        self.created = to_utc(self.created)
        self.type = PrintEntryType(self.type)

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())

    @classmethod
    def create_entry(
        cls,
        entry_type: PrintEntryType,
        content: str,
        sorting_field: Optional[str] = None
    ) -> "PrintEntry":
        """Создание новой записи с новым идентификатором и текущим временем UTC"""
        return cls(
            id=uuid.uuid4(),
            created=utcnow(),
            type=entry_type,
            content=content,
            sorting_field=sorting_field
        )

    def __repr__(self) -> str:
        return f"PrintEntry(id={self.id}, type={self.type.value}, sorting_field={self.sorting_field})"
