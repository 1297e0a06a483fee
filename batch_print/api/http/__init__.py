from batch_print.api.http.health import router as health_router
from batch_print.api.http.print_entries import router as print_entries_router
from batch_print.api.http.mail import router as mail_router
from batch_print.api.http.batch import router as batch_router
from batch_print.api.http.tenant import router as tenant_router

__all__ = [
    "health_router",
    "print_entries_router",
    "mail_router",
    "batch_router",
    "tenant_router"
]
