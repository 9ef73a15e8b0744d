"""
SessionFactory: abstract source of store sessions.

Backends provide two things:
  open_session  an async client scoped to one tenant/database
  open_admin    an admin handle for tenant/database administration

The facade builds a fresh session for every call, so factories must be
cheap to call repeatedly. Backends are intentionally dumb: they only build
clients, all defaulting and normalization stays in the facade.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from chromabox.models import ConnectionConfig


class SessionFactory(ABC):
    """Abstract session source."""

    @abstractmethod
    async def open_session(
        self,
        config: ConnectionConfig,
        tenant: str | None = None,
        database: str | None = None,
    ):
        """
        Return an async client scoped to tenant/database.

        tenant/database fall back to the config values, then to the store
        defaults. The client exposes get_version, get_user_identity,
        list_collections, create_collection, get_collection,
        get_or_create_collection and delete_collection as coroutines.
        """
        ...

    @abstractmethod
    def open_admin(self, config: ConnectionConfig):
        """
        Return an admin handle whose create_tenant, create_database,
        delete_database and list_databases methods are awaitable.
        """
        ...
