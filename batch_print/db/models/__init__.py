from batch_print.db.models.print_entry import PrintEntryModel

__all__ = [
    "PrintEntryModel",
]
