from batch_print.db.repositories.print_repository import PrintStorage
from batch_print.db.repositories.result_stream import EntryResultStream

__all__ = [
    "PrintStorage",
    "EntryResultStream"
]
