"""Storage abstraction for fragment metadata and data (memory, local filesystem or S3)."""

from __future__ import annotations

from typing import Any, Protocol

from loguru import logger

from fragments.exceptions import ConfigurationError, FragmentDataError
from fragments.settings import Settings, get_settings

FragmentRecord = dict[str, Any]


class FragmentStore(Protocol):
    async def write_fragment_metadata(self, record: FragmentRecord) -> None:
        ...

    async def read_fragment_metadata(self, owner_id: str, fragment_id: str) -> FragmentRecord | None:
        ...

    async def write_fragment_data(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        ...

    async def read_fragment_data(self, owner_id: str, fragment_id: str) -> bytes | None:
        ...

    async def list_fragments(self, owner_id: str, expand: bool = False) -> list[str] | list[FragmentRecord]:
        ...

    async def delete_fragment(self, owner_id: str, fragment_id: str) -> None:
        ...


def create_store(settings: Settings) -> FragmentStore:
    """Build the backend named by the storage settings."""
    storage = settings.storage
    backend = storage.effective_backend
    if backend == "memory":
        from fragments.storage.memory import MemoryStore

        return MemoryStore()
    if backend == "local":
        from fragments.storage.local import LocalStore

        return LocalStore(storage.root)
    if backend == "s3":
        from fragments.storage.s3 import S3Store

        if not storage.bucket:
            raise ConfigurationError("storage.bucket is required for the s3 backend")
        return S3Store(
            storage.bucket,
            prefix=storage.prefix,
            region=storage.region,
            endpoint_url=storage.endpoint_url,
        )
    raise ConfigurationError(f"Unknown storage backend: {backend}", {"backend": backend})


_store: FragmentStore | None = None


def get_store() -> FragmentStore:
    """Process-wide store, created from settings on first use."""
    global _store
    if _store is None:
        _store = create_store(get_settings())
        logger.info("Using {backend} fragment store", backend=type(_store).__name__)
    return _store


def set_store(store: FragmentStore | None) -> None:
    """Replace the process-wide store; None resets it to lazy creation."""
    global _store
    _store = store


def valid_key(*components: object) -> bool:
    """Whether every component is safe as one segment of a storage key.

    A segment is a non-empty string with no path separator or NUL that does
    not start with a dot, so one owner can never address another's keys.
    """
    return all(
        isinstance(part, str)
        and part
        and not part.startswith(".")
        and "/" not in part
        and "\\" not in part
        and "\x00" not in part
        for part in components
    )


def ensure_binary(data: Any) -> bytes:
    """Return ``data`` as immutable bytes or raise FragmentDataError."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise FragmentDataError(
        "Fragment data must be bytes", {"received": type(data).__name__}
    )


__all__ = [
    "FragmentRecord",
    "FragmentStore",
    "create_store",
    "get_store",
    "set_store",
    "ensure_binary",
    "valid_key",
]
