"""
Shared pytest fixtures for batch print tests.

Storage runs on SQLite through aiosqlite with one database file per tenant,
so every test gets isolated, throwaway namespaces under ``tmp_path``.
"""

from datetime import datetime, timezone
from typing import Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from batch_print.core.config import Settings
from batch_print.core.db import TenantSessionRegistry
from batch_print.db.repositories.print_repository import PrintStorage
from batch_print.domains.printing.entities import PrintEntry, PrintEntryType
from batch_print.domains.printing.pdf import PdfService
from batch_print.main import create_app

TENANT = "diku"
HEADERS = {"X-Okapi-Tenant": TENANT}


def make_entry(
    content: Optional[str] = "AA",
    entry_type: PrintEntryType = PrintEntryType.SINGLE,
    sorting_field: Optional[str] = None,
    created: Optional[datetime] = None
) -> PrintEntry:
    entry = PrintEntry.create_entry(entry_type, content, sorting_field)
    if created is not None:
        entry.created = created
    return entry


@pytest.fixture(scope="session")
def pdf_bytes() -> bytes:
    """Одностраничный PDF, построенный настоящим движком"""
    return PdfService.create_pdf_file("<div><p>PDF file</p></div><br><p>Content</p>")


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path}/{{tenant}}.db"


@pytest_asyncio.fixture
async def registry(database_url):
    registry = TenantSessionRegistry(database_url)
    yield registry
    await registry.dispose_all()


@pytest_asyncio.fixture
async def storage(registry):
    storage = PrintStorage(registry, TENANT)
    await storage.init()
    return storage


@pytest.fixture
def settings(database_url) -> Settings:
    return Settings(database_url=database_url, log_level="DEBUG")


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as client:
        resp = client.post("/_/tenant", json={"module_to": "mod-batch-print-1.0.0"}, headers=HEADERS)
        assert resp.status_code == 204
        yield client


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)
