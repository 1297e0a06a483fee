import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from batch_print.core.exceptions import QueryError

logger = logging.getLogger(__name__)

TENANT_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,62}$")


@dataclass
class TenantPool:
    """Движок и фабрика сессий одного арендатора"""
    tenant: str
    schema: Optional[str]
    engine: AsyncEngine
    sessionmaker: async_sessionmaker


class TenantSessionRegistry:
    """Реестр пулов соединений по арендаторам.

    Пул создается при первом обращении к арендатору и живет до dispose_all().
    Если в URL базы есть плейсхолдер ``{tenant}``, каждый арендатор получает
    свою базу данных; иначе отдельную схему ``<tenant>_<module>``.
    """

    def __init__(self, database_url: str, module_name: str = "mod_batch_print", echo: bool = False):
        self.database_url = database_url
        self.module_name = module_name
        self.echo = echo
        self._pools: Dict[str, TenantPool] = {}

    @property
    def per_database(self) -> bool:
        return "{tenant}" in self.database_url

    def schema_for(self, tenant: str) -> Optional[str]:
        """Имя схемы арендатора; None при изоляции на уровне базы"""
        check_tenant(tenant)
        if self.per_database:
            return None
        return f"{tenant}_{self.module_name}"

    def pool(self, tenant: str) -> TenantPool:
        """Получение (или ленивое создание) пула арендатора"""
        existing = self._pools.get(tenant)
        if existing is not None:
            return existing

        schema = self.schema_for(tenant)
        if self.per_database:
            engine = create_async_engine(self.database_url.format(tenant=tenant), echo=self.echo)
        else:
            engine = create_async_engine(self.database_url, echo=self.echo).execution_options(
                schema_translate_map={None: schema}
            )
        sessionmaker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

        pool = TenantPool(tenant=tenant, schema=schema, engine=engine, sessionmaker=sessionmaker)
        self._pools[tenant] = pool
        logger.info(f"Created connection pool for tenant {tenant}")
        return pool

    async def dispose_all(self) -> None:
        """Закрытие всех пулов при остановке процесса"""
        pools = list(self._pools.values())
        self._pools.clear()
        for pool in pools:
            await pool.engine.dispose()
        logger.info(f"Disposed {len(pools)} tenant connection pool(s)")


def check_tenant(tenant: Optional[str]) -> str:
    """Проверка идентификатора арендатора перед использованием в имени схемы"""
    if not tenant or not TENANT_PATTERN.match(tenant):
        raise QueryError(f"Invalid tenant: {tenant}")
    return tenant
