from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
import uuid
from datetime import datetime

from batch_print.domains.printing.entities import PrintEntry, PrintEntryType


class PrintEntrySchema(BaseModel):
    """Схема записи печати"""
    id: uuid.UUID
    created: datetime
    type: PrintEntryType
    sorting_field: Optional[str] = Field(None, alias="sortingField")
    content: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def from_entry(cls, entry: PrintEntry) -> "PrintEntrySchema":
        return cls(
            id=entry.id,
            created=entry.created,
            type=entry.type,
            sorting_field=entry.sorting_field,
            content=entry.content
        )

    def to_entry(self) -> PrintEntry:
        return PrintEntry(
            id=self.id,
            created=self.created,
            type=self.type,
            sorting_field=self.sorting_field,
            content=self.content
        )

    def to_json(self) -> str:
        # Пустые поля не выводим
        return self.model_dump_json(by_alias=True, exclude_none=True)


class MailMessage(BaseModel):
    """Уведомление для печати"""
    notification_id: Optional[str] = Field(None, alias="notificationId")
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    output_format: Optional[str] = Field(None, alias="outputFormat")
    header: Optional[str] = None
    body: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MailResponse(BaseModel):
    """Ответ с идентификатором созданной записи"""
    id: uuid.UUID


class Diagnostic(BaseModel):
    message: str


class ResultInfo(BaseModel):
    total_records: Optional[int] = Field(None, alias="totalRecords")
    diagnostics: List[Diagnostic] = []

    model_config = ConfigDict(populate_by_name=True)


class PrintEntriesResponse(BaseModel):
    """Схема списка записей (для документации потокового ответа)"""
    items: List[PrintEntrySchema]
    result_info: ResultInfo = Field(alias="resultInfo")

    model_config = ConfigDict(populate_by_name=True)


class TenantAttributes(BaseModel):
    """Параметры включения/выключения модуля для арендатора"""
    module_to: Optional[str] = None
    module_from: Optional[str] = None
    purge: bool = False
