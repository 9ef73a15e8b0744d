"""
Shared fixtures: an in-memory stand-in for the async chromadb client.

FakeSessionFactory keeps one store per (tenant, database) so scoping can
be asserted, and records every write call made against a collection.
"""

import pytest
import pytest_asyncio

from chromabox.backends.base import SessionFactory
from chromabox.facade import VectorStoreFacade
from chromabox.models import ConnectionConfig


class FakeCollection:
    def __init__(self, name: str, col_id: str, registry: dict):
        self.name = name
        self.id = col_id
        self._registry = registry
        self.rows: dict[str, dict] = {}
        self.calls: list[tuple[str, dict]] = []

    async def count(self):
        return len(self.rows)

    async def get(self, ids=None, limit=None, offset=None, include=None):
        keys = list(self.rows) if ids is None else [i for i in ids if i in self.rows]
        start = offset or 0
        keys = keys[start:start + limit] if limit is not None else keys[start:]
        return {
            "ids": keys,
            "documents": [self.rows[k].get("document") for k in keys],
            "metadatas": [self.rows[k].get("metadata") for k in keys],
            "embeddings": [self.rows[k].get("embedding") for k in keys],
        }

    async def add(self, **kwargs):
        self.calls.append(("add", kwargs))
        for i, record_id in enumerate(kwargs["ids"]):
            if record_id in self.rows:
                raise ValueError(f"duplicate id {record_id}")
            self.rows[record_id] = {
                "document": kwargs.get("documents", [None])[i],
                "metadata": kwargs["metadatas"][i] if "metadatas" in kwargs else None,
                "embedding": kwargs["embeddings"][i],
            }

    async def update(self, **kwargs):
        self.calls.append(("update", kwargs))
        for i, record_id in enumerate(kwargs["ids"]):
            row = self.rows[record_id]
            if "documents" in kwargs:
                row["document"] = kwargs["documents"][i]
            if "metadatas" in kwargs:
                row["metadata"] = kwargs["metadatas"][i]
            if "embeddings" in kwargs:
                row["embedding"] = kwargs["embeddings"][i]
            elif "documents" in kwargs:
                raise ValueError("You must provide an embedding function to compute embeddings")

    async def delete(self, ids=None):
        self.calls.append(("delete", {"ids": ids}))
        for record_id in ids or []:
            self.rows.pop(record_id, None)

    async def query(self, **kwargs):
        self.calls.append(("query", kwargs))
        keys = list(self.rows)[: kwargs.get("n_results", 10)]
        return {
            "ids": [keys],
            "documents": [[self.rows[k]["document"] for k in keys]],
            "distances": [[0.1 * n for n in range(len(keys))]],
        }

    async def modify(self, name=None, metadata=None):
        self.calls.append(("modify", {"name": name}))
        if name is not None:
            self._registry[name] = self._registry.pop(self.name)
            self.name = name


class FakeSession:
    def __init__(self, factory, tenant, database):
        self._factory = factory
        self.tenant = tenant
        self.database = database

    @property
    def _cols(self) -> dict[str, FakeCollection]:
        return self._factory.stores.setdefault((self.tenant, self.database), {})

    async def get_version(self):
        return "1.0.0"

    async def get_user_identity(self):
        if self._factory.identity_error:
            raise RuntimeError("identity unavailable")
        return {"user_id": "u1", "tenant": self._factory.identity_tenant, "databases": []}

    async def list_collections(self):
        if self._factory.fail_reads:
            raise ConnectionError("store unreachable")
        if self._factory.names_only:
            return list(self._cols)
        return list(self._cols.values())

    async def create_collection(self, name):
        if name in self._cols:
            raise ValueError(f"Collection {name} already exists")
        self._factory.next_id += 1
        cols = self._cols
        cols[name] = FakeCollection(name, f"uuid-{self._factory.next_id}", cols)
        return cols[name]

    async def get_collection(self, name):
        if self._factory.fail_reads:
            raise ConnectionError("store unreachable")
        if name not in self._cols:
            raise ValueError(f"Collection {name} does not exist")
        return self._cols[name]

    async def get_or_create_collection(self, name):
        if name in self._cols:
            return self._cols[name]
        return await self.create_collection(name)

    async def delete_collection(self, name):
        if name not in self._cols:
            raise ValueError(f"Collection {name} does not exist")
        del self._cols[name]


class FakeAdmin:
    def __init__(self):
        self.tenants: set[str] = {"default_tenant"}
        self.databases: dict[str, list[str]] = {"default_tenant": ["default_database"]}
        self.fail = False

    async def create_tenant(self, name):
        if name in self.tenants:
            raise ValueError(f"tenant {name} exists")
        self.tenants.add(name)
        self.databases[name] = []

    async def create_database(self, name, tenant="default_tenant"):
        self.databases.setdefault(tenant, []).append(name)

    async def delete_database(self, name, tenant="default_tenant"):
        self.databases[tenant].remove(name)

    async def list_databases(self, tenant="default_tenant"):
        if self.fail:
            raise ConnectionError("admin unreachable")
        return [{"id": f"db-{n}", "name": n, "tenant": tenant} for n in self.databases.get(tenant, [])]


class FakeSessionFactory(SessionFactory):
    def __init__(self):
        self.stores: dict[tuple, dict[str, FakeCollection]] = {}
        self.admin = FakeAdmin()
        self.next_id = 0
        self.down = False
        self.fail_reads = False
        self.names_only = False
        self.identity_error = False
        self.identity_tenant = "default_tenant"
        self.sessions_opened: list[tuple] = []

    async def open_session(self, config, tenant=None, database=None):
        if self.down:
            raise ConnectionError("connection refused")
        tenant = tenant or config.tenant or "default_tenant"
        database = database or config.database or "default_database"
        self.sessions_opened.append((tenant, database))
        return FakeSession(self, tenant, database)

    def open_admin(self, config):
        if self.down:
            raise ConnectionError("connection refused")
        return self.admin

    def collection(self, name, tenant="default_tenant", database="default_database"):
        return self.stores[(tenant, database)][name]


@pytest.fixture
def factory():
    return FakeSessionFactory()


@pytest.fixture
def facade(factory):
    """A facade that has not connected yet."""
    return VectorStoreFacade(factory=factory)


@pytest_asyncio.fixture
async def connected(facade):
    ok = await facade.connect(ConnectionConfig(host="fake", port=8000))
    assert ok
    return facade
