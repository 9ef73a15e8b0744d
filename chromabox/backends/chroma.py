"""
ChromaSessionFactory: official chromadb SDK implementation of SessionFactory.

All chromadb-specific imports and calls live here; nothing outside this
file needs to know about the SDK's constructors or Settings keys.

Data sessions use chromadb.AsyncHttpClient. The SDK only ships a sync
AdminClient, so AsyncAdmin runs each admin call in a worker thread to keep
the facade fully awaitable.
"""

import asyncio
import logging

import chromadb
from chromadb.config import DEFAULT_DATABASE, DEFAULT_TENANT, Settings

from chromabox.models import ConnectionConfig
from .base import SessionFactory

logger = logging.getLogger(__name__)


class AsyncAdmin:
    """Awaitable wrapper over a sync chromadb.AdminClient."""

    def __init__(self, admin):
        self._admin = admin

    async def create_tenant(self, name: str):
        return await asyncio.to_thread(self._admin.create_tenant, name=name)

    async def create_database(self, name: str, tenant: str = DEFAULT_TENANT):
        return await asyncio.to_thread(self._admin.create_database, name=name, tenant=tenant)

    async def delete_database(self, name: str, tenant: str = DEFAULT_TENANT):
        return await asyncio.to_thread(self._admin.delete_database, name=name, tenant=tenant)

    async def list_databases(self, tenant: str = DEFAULT_TENANT):
        return await asyncio.to_thread(self._admin.list_databases, tenant=tenant)


class ChromaSessionFactory(SessionFactory):
    """Builds HTTP sessions against a Chroma server."""

    async def open_session(
        self,
        config: ConnectionConfig,
        tenant: str | None = None,
        database: str | None = None,
    ):
        tenant = tenant or config.tenant or DEFAULT_TENANT
        database = database or config.database or DEFAULT_DATABASE
        logger.debug(
            "Opening session %s:%s (tenant=%s, database=%s)",
            config.host, config.port, tenant, database,
        )
        return await chromadb.AsyncHttpClient(
            host=config.host,
            port=config.port,
            ssl=config.ssl,
            headers=config.auth_headers(),
            tenant=tenant,
            database=database,
        )

    def open_admin(self, config: ConnectionConfig) -> AsyncAdmin:
        settings = Settings(
            chroma_api_impl="chromadb.api.fastapi.FastAPI",
            chroma_server_host=config.host,
            chroma_server_http_port=config.port,
            chroma_server_ssl_enabled=config.ssl,
            chroma_server_headers=config.auth_headers(),
        )
        return AsyncAdmin(chromadb.AdminClient(settings))
