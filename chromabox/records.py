"""
Record normalization helpers.

The SDK hands back parallel arrays (ids, documents, metadatas, embeddings)
and may return embeddings as numpy arrays. Everything here turns those
shapes into flat Record values, and builds the write arguments the facade
sends on add/update.
"""

import string
import time
from uuid import uuid4

import numpy as np

from chromabox.models import Record

PLACEHOLDER_EMBEDDING = [0.0]
INCLUDE_ALL = ["documents", "metadatas", "embeddings"]

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(n: int) -> str:
    if n <= 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def generate_record_id() -> str:
    """Time-prefixed id with random suffix. Unique with high probability only."""
    millis = int(time.time() * 1000)
    return f"id_{_to_base36(millis)}{uuid4().hex[:6]}"


def as_vector(value) -> list[float] | None:
    """Coerce an SDK embedding (list, tuple, ndarray) to a plain float list."""
    if value is None:
        return None
    return np.asarray(value, dtype=float).ravel().tolist()


def has_vector(value) -> bool:
    """True for a non-empty embedding. Safe on numpy arrays."""
    if value is None:
        return False
    return np.asarray(value).size > 0


def _column(result, key: str) -> list:
    # `x or []` is ambiguous on ndarrays
    value = result.get(key) if result is not None else None
    if value is None:
        return []
    return list(value)


def _at(values: list, i: int):
    return values[i] if i < len(values) else None


def zip_records(result) -> list[Record]:
    """
    Zip a get() result into Records by position.
    The i-th id owns the i-th document/metadata/embedding; short or missing
    columns give None for that field.
    """
    ids = _column(result, "ids")
    docs = _column(result, "documents")
    metas = _column(result, "metadatas")
    embs = _column(result, "embeddings")

    return [
        Record(
            id=record_id,
            document=_at(docs, i),
            metadata=_at(metas, i),
            embedding=as_vector(_at(embs, i)),
        )
        for i, record_id in enumerate(ids)
    ]


def build_add_args(record: Record) -> tuple[str, dict]:
    """
    Resolve the id and build collection.add() kwargs.
    Empty embeddings become the placeholder vector; empty metadata is left
    out entirely rather than sent as {}.
    """
    record_id = record.id or generate_record_id()
    embedding = as_vector(record.embedding) if has_vector(record.embedding) else list(PLACEHOLDER_EMBEDDING)

    args = {
        "ids": [record_id],
        "documents": [record.document or ""],
        "embeddings": [embedding],
    }
    if record.metadata:
        args["metadatas"] = [record.metadata]
    return record_id, args


def build_update_args(record: Record, existing_embedding=None) -> dict:
    """
    Build collection.update() kwargs with partial-update semantics.

    Embedding priority: the record's own non-empty embedding, then
    `existing_embedding` if non-empty, else no embeddings key at all.
    """
    args: dict = {"ids": [record.id]}
    if record.document is not None:
        args["documents"] = [record.document]
    if record.metadata is not None:
        args["metadatas"] = [record.metadata]

    if has_vector(record.embedding):
        args["embeddings"] = [as_vector(record.embedding)]
    elif has_vector(existing_embedding):
        args["embeddings"] = [as_vector(existing_embedding)]
    return args


def entry_field(entry, *names, default=None):
    """First non-None attribute or key among `names` on an SDK listing entry."""
    for name in names:
        if isinstance(entry, dict):
            value = entry.get(name)
        else:
            value = getattr(entry, name, None)
        if value is not None and not callable(value):
            return value
    return default
