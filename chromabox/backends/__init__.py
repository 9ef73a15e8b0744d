"""
Session factory registry.

make_factory("chromadb") returns the factory backed by the official SDK.
Tests hand their own SessionFactory to VectorStoreFacade instead.
"""

from .base import SessionFactory

_REGISTRY: dict[str, type[SessionFactory]] = {}


def _register():
    """Lazy-import backends to avoid hard dependencies at import time."""
    global _REGISTRY
    if _REGISTRY:
        return
    from .chroma import ChromaSessionFactory
    _REGISTRY["chromadb"] = ChromaSessionFactory


def make_factory(backend_type: str = "chromadb", **kwargs) -> SessionFactory:
    """
    Instantiate a session factory by name.

    Args:
        backend_type: Registry key (e.g. "chromadb").
        **kwargs:     Passed directly to the factory constructor.

    Raises:
        ValueError: If the backend type is not registered.
    """
    _register()
    cls = _REGISTRY.get(backend_type)
    if cls is None:
        available = ", ".join(_REGISTRY.keys())
        raise ValueError(
            f"Unknown session backend: '{backend_type}'. "
            f"Available: {available}"
        )
    return cls(**kwargs)


__all__ = ["SessionFactory", "make_factory"]
