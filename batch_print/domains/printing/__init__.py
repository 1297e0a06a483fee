from batch_print.domains.printing.entities import PrintEntry, PrintEntryType
from batch_print.domains.printing.schemas import (
    PrintEntrySchema, MailMessage, MailResponse, PrintEntriesResponse, TenantAttributes
)
from batch_print.domains.printing.pdf import PdfService
from batch_print.domains.printing.services import PrintService
from batch_print.domains.printing.batch import BatchCreationService

__all__ = [
    "PrintEntry", "PrintEntryType",
    "PrintEntrySchema", "MailMessage", "MailResponse", "PrintEntriesResponse", "TenantAttributes",
    "PdfService",
    "PrintService",
    "BatchCreationService"
]
