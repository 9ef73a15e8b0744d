"""
Data models for the admin facade.
These define the shape of data flowing between callers and the store.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

DEFAULT_TENANT = "default_tenant"
DEFAULT_DATABASE = "default_database"
DEFAULT_TOKEN_HEADER = "x-chroma-token"


def _blank_to_none(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class ConnectionConfig:
    """Where and how to reach the store. Replaced wholesale on reconnect."""
    host: str = "localhost"
    port: int = 8000
    ssl: bool = False
    tenant: str | None = None
    database: str | None = None
    api_key: str | None = None
    token_header: str = DEFAULT_TOKEN_HEADER

    @classmethod
    def from_dict(cls, data: dict | None) -> ConnectionConfig:
        """Build from the `connection:` block of config.yaml."""
        data = data or {}
        ssl = data.get("ssl", False)
        if isinstance(ssl, str):
            ssl = ssl.strip().lower() in ("1", "true", "yes", "on")
        return cls(
            host=_blank_to_none(data.get("host")) or "localhost",
            port=int(data.get("port") or 8000),
            ssl=bool(ssl),
            tenant=_blank_to_none(data.get("tenant")),
            database=_blank_to_none(data.get("database")),
            api_key=_blank_to_none(data.get("api_key")),
            token_header=_blank_to_none(data.get("token_header")) or DEFAULT_TOKEN_HEADER,
        )

    def auth_headers(self) -> dict | None:
        """Headers carrying the API key, or None when no key is set."""
        if not self.api_key:
            return None
        if self.token_header.lower() == "authorization":
            return {"Authorization": f"Bearer {self.api_key}"}
        return {self.token_header: self.api_key}

    def __repr__(self) -> str:
        key = "***" if self.api_key else None
        return (
            f"ConnectionConfig(host={self.host!r}, port={self.port}, ssl={self.ssl}, "
            f"tenant={self.tenant!r}, database={self.database!r}, api_key={key!r})"
        )


@dataclass
class Record:
    """A single record in a collection. Only `id` is a stable identity."""
    id: str | None = None
    document: str | None = None
    metadata: dict | None = None
    embedding: list[float] | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CollectionRef:
    id: str
    name: str
    count: int = 0


@dataclass
class QueryRequest:
    """Similarity search input. Normally one of texts/embeddings is set."""
    query_texts: list[str] | None = None
    query_embeddings: list[list[float]] | None = None
    n_results: int = 5

    def __post_init__(self):
        if self.n_results < 1:
            raise ValueError(f"n_results must be >= 1, got {self.n_results}")

    def to_kwargs(self) -> dict:
        """Keyword arguments for collection.query(); unset inputs are left out."""
        kwargs: dict = {"n_results": self.n_results}
        if self.query_texts is not None:
            kwargs["query_texts"] = list(self.query_texts)
        if self.query_embeddings is not None:
            kwargs["query_embeddings"] = [list(e) for e in self.query_embeddings]
        return kwargs
