"""
VectorStoreFacade: admin operations over a multi-tenant vector store.

Every operation delegates to a session built by a SessionFactory (default:
the official chromadb SDK) and re-shapes the results into flat models.

Two error conventions, declared on each method:
  @soft_read           read/discovery paths. Disconnected or failing calls
                        degrade to an empty/absent result and never raise.
  @requires_connection mutations. Disconnected raises NotConnectedError;
                        store errors propagate unchanged.

A fresh session is built per call, scoped to the requested tenant/database.
Connection pooling is left to the SDK.
"""

from __future__ import annotations

import functools
import logging

from chromabox.backends import SessionFactory, make_factory
from chromabox.models import (
    DEFAULT_TENANT,
    CollectionRef,
    ConnectionConfig,
    QueryRequest,
    Record,
)
from chromabox.records import (
    INCLUDE_ALL,
    build_add_args,
    build_update_args,
    entry_field,
    has_vector,
    zip_records,
)

logger = logging.getLogger(__name__)


class NotConnectedError(RuntimeError):
    """Raised by mutating operations on a facade that is not connected."""

    def __init__(self, message: str = "not connected"):
        super().__init__(message)


def soft_read(default=None):
    """
    Swallow-and-degrade policy for read paths.
    `default` may be a callable producing a fresh value per call.
    """
    def make_default():
        return default() if callable(default) else default

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs):
            if not self._connected:
                return make_default()
            try:
                return await fn(self, *args, **kwargs)
            except Exception as e:
                logger.warning("%s failed: %s", fn.__name__, e)
                return make_default()
        return wrapper
    return decorator


def requires_connection(fn=None, *, admin: bool = False):
    """Propagate policy for mutations. Usable bare or as requires_connection(admin=True)."""
    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs):
            if not self._connected or (admin and self._admin is None):
                raise NotConnectedError()
            return await fn(self, *args, **kwargs)
        return wrapper

    if fn is not None:
        return decorator(fn)
    return decorator


class VectorStoreFacade:
    """
    Connection state plus tenant/database/collection/record operations.

    State is owned by the instance, so several facades can coexist in one
    process. Pass a SessionFactory to swap the SDK for a fake in tests.
    """

    def __init__(self, factory: SessionFactory | None = None):
        self._factory = factory or make_factory("chromadb")
        self._config = ConnectionConfig()
        self._connected = False
        self._admin = None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    async def connect(self, config: ConnectionConfig) -> bool:
        """
        Open a session and check liveness with get_version().
        Never raises: any failure leaves the facade disconnected and
        returns False.
        """
        self._config = config
        try:
            self._admin = self._factory.open_admin(config)
            session = await self._factory.open_session(config)
            version = await session.get_version()
        except Exception as e:
            logger.warning("Connect to %s:%s failed: %s", config.host, config.port, e)
            self._connected = False
            self._admin = None
            return False

        self._connected = True
        logger.info(
            "Connected to %s:%s (version=%s, tenant=%s, database=%s)",
            config.host, config.port, version, config.tenant, config.database,
        )
        return True

    def disconnect(self) -> None:
        self._connected = False
        self._admin = None

    def is_connected(self) -> bool:
        return self._connected

    async def _session(self, tenant: str | None = None, database: str | None = None):
        return await self._factory.open_session(self._config, tenant, database)

    # ------------------------------------------------------------------
    # Discovery (soft reads)
    # ------------------------------------------------------------------

    @soft_read(list)
    async def list_tenants(self) -> list[str]:
        """The caller's own tenant. Multi-tenant discovery is not supported."""
        fallback = self._config.tenant or DEFAULT_TENANT
        try:
            session = await self._session()
            identity = await session.get_user_identity()
            tenant = entry_field(identity, "tenant")
        except Exception as e:
            logger.debug("Identity lookup failed, using configured tenant: %s", e)
            tenant = None
        return [tenant or fallback]

    @soft_read(list)
    async def list_databases(self, tenant: str | None = None) -> list[str]:
        if self._admin is None:
            return []
        tenant = tenant or self._config.tenant or DEFAULT_TENANT
        dbs = await self._admin.list_databases(tenant=tenant)
        # name first, then id; best-effort for older server payloads
        return [str(entry_field(d, "name", "id", default=d)) for d in (dbs or [])]

    @soft_read(list)
    async def list_collections(
        self, tenant: str | None = None, database: str | None = None
    ) -> list[CollectionRef]:
        session = await self._session(tenant, database)
        cols = await session.list_collections()
        return [await self._collection_ref(c) for c in cols]

    @staticmethod
    async def _collection_ref(entry) -> CollectionRef:
        # Older SDKs list bare names
        if isinstance(entry, str):
            return CollectionRef(id=entry, name=entry)

        col_id = entry_field(entry, "id")
        name = entry_field(entry, "name")
        count = entry_field(entry, "count")
        if count is None:
            counter = getattr(entry, "count", None)
            if callable(counter):
                try:
                    count = await counter()
                except Exception as e:
                    logger.debug("count() failed for %s: %s", name, e)
        col_id = col_id if col_id is not None else name
        name = name if name is not None else col_id
        return CollectionRef(id=str(col_id), name=str(name), count=int(count or 0))

    async def resolve_collection_id(
        self, tenant: str | None, database: str | None, name_or_id: str
    ) -> str:
        """Id of the collection matching by id or name, else the input unchanged."""
        if not self._connected:
            return name_or_id
        try:
            session = await self._session(tenant, database)
            cols = await session.list_collections()
        except Exception as e:
            logger.debug("resolve_collection_id(%s) fell back: %s", name_or_id, e)
            return name_or_id

        for entry in cols:
            ref = await self._collection_ref(entry)
            if name_or_id in (ref.id, ref.name):
                return ref.id
        return name_or_id

    # ------------------------------------------------------------------
    # Collection administration (propagating)
    # ------------------------------------------------------------------

    @requires_connection
    async def create_collection(self, tenant: str | None, database: str | None, name: str) -> bool:
        session = await self._session(tenant, database)
        await session.create_collection(name=name)
        logger.info("Created collection '%s'", name)
        return True

    @requires_connection
    async def delete_collection(self, tenant: str | None, database: str | None, name: str) -> bool:
        session = await self._session(tenant, database)
        await session.delete_collection(name=name)
        logger.info("Deleted collection '%s'", name)
        return True

    @requires_connection
    async def rename_collection(
        self, tenant: str | None, database: str | None, old_name: str, new_name: str
    ) -> bool:
        session = await self._session(tenant, database)
        col = await session.get_collection(name=old_name)
        await col.modify(name=new_name)
        logger.info("Renamed collection '%s' -> '%s'", old_name, new_name)
        return True

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    @soft_read(list)
    async def list_records(
        self,
        tenant: str | None,
        database: str | None,
        collection: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Record]:
        session = await self._session(tenant, database)
        col = await session.get_collection(name=collection)
        res = await col.get(limit=limit, offset=offset, include=INCLUDE_ALL)
        records = zip_records(res)
        logger.debug("Listed %d records from '%s' (offset=%d)", len(records), collection, offset)
        return records

    @soft_read(None)
    async def get_record(
        self, tenant: str | None, database: str | None, collection: str, record_id: str
    ) -> Record | None:
        session = await self._session(tenant, database)
        col = await session.get_collection(name=collection)
        res = await col.get(ids=[record_id], include=INCLUDE_ALL)
        records = zip_records(res)
        return records[0] if records else None

    @requires_connection
    async def add_record(
        self, tenant: str | None, database: str | None, collection: str, record: Record
    ) -> str:
        """Insert one record, creating the collection if needed. Returns its id."""
        record_id, args = build_add_args(record)
        session = await self._session(tenant, database)
        col = await session.get_or_create_collection(name=collection)
        await col.add(**args)
        logger.info("Added record %s to '%s'", record_id, collection)
        return record_id

    @requires_connection
    async def update_record(
        self, tenant: str | None, database: str | None, collection: str, record: Record
    ) -> bool:
        """
        Partial update: only fields that are set are sent.

        Without a supplied embedding the record's current one is re-sent, so
        the store does not try to compute a new one (which fails when the
        collection has no embedding function). If that lookup comes back
        empty, embeddings are left out and the store decides.
        """
        if not record.id:
            raise ValueError("update_record requires a record id")

        existing_embedding = None
        if not has_vector(record.embedding):
            existing = await self.get_record(tenant, database, collection, record.id)
            if existing is not None:
                existing_embedding = existing.embedding

        args = build_update_args(record, existing_embedding)
        session = await self._session(tenant, database)
        col = await session.get_collection(name=collection)
        await col.update(**args)
        logger.info("Updated record %s in '%s'", record.id, collection)
        return True

    @requires_connection
    async def delete_record(
        self, tenant: str | None, database: str | None, collection: str, record_id: str
    ) -> bool:
        session = await self._session(tenant, database)
        col = await session.get_collection(name=collection)
        await col.delete(ids=[record_id])
        logger.info("Deleted record %s from '%s'", record_id, collection)
        return True

    @soft_read(list)
    async def query_collection(
        self,
        tenant: str | None,
        database: str | None,
        collection: str,
        request: QueryRequest,
    ):
        """Similarity search. The store's result is returned unmodified."""
        session = await self._session(tenant, database)
        col = await session.get_collection(name=collection)
        return await col.query(**request.to_kwargs())

    # ------------------------------------------------------------------
    # Tenant / database administration (propagating)
    # ------------------------------------------------------------------

    @requires_connection(admin=True)
    async def create_tenant(self, name: str) -> bool:
        await self._admin.create_tenant(name=name)
        logger.info("Created tenant '%s'", name)
        return True

    @requires_connection(admin=True)
    async def create_database(self, tenant: str, name: str) -> bool:
        await self._admin.create_database(name=name, tenant=tenant)
        logger.info("Created database '%s' in tenant '%s'", name, tenant)
        return True

    @requires_connection(admin=True)
    async def delete_database(self, tenant: str, name: str) -> bool:
        await self._admin.delete_database(name=name, tenant=tenant)
        logger.info("Deleted database '%s' from tenant '%s'", name, tenant)
        return True
