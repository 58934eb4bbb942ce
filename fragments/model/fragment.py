"""
Fragment entity.

A fragment is one owner-scoped unit of content: a metadata record (id,
owner, type, size, timestamps) and a binary blob, stored separately but
under the same ``(ownerId, id)`` key.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from loguru import logger

from fragments import content_types
from fragments.convert import ConversionResult, convert, formats_for, resolve_target
from fragments.exceptions import NotFoundError, ValidationError
from fragments.storage import FragmentRecord, FragmentStore, ensure_binary, get_store


def _format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def _normalise_timestamp(value: Any, field: str) -> str:
    if isinstance(value, datetime):
        return _format_timestamp(value)
    if isinstance(value, str) and value:
        raw = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
        try:
            return _format_timestamp(datetime.fromisoformat(raw))
        except ValueError:
            pass
    raise ValidationError(f"{field} must be an ISO-8601 timestamp", {field: str(value)})


def now() -> str:
    return _format_timestamp(datetime.now(timezone.utc))


class Fragment:
    """One stored fragment; all data access goes through its store."""

    supported_types: tuple[str, ...] = content_types.SUPPORTED_TYPES

    def __init__(
        self,
        owner_id: str,
        type: str,
        size: int = 0,
        id: str | None = None,
        created: str | datetime | None = None,
        updated: str | datetime | None = None,
        *,
        store: FragmentStore | None = None,
    ) -> None:
        if not owner_id or not isinstance(owner_id, str):
            raise ValidationError("ownerId is required")
        if not type or not isinstance(type, str):
            raise ValidationError("type is required")
        if not self.is_supported_type(type):
            raise ValidationError(f"Unsupported content type: {type}", {"type": type})
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValidationError("size must be a non-negative integer", {"size": str(size)})
        if id is not None and (not isinstance(id, str) or not id):
            raise ValidationError("id must be a non-empty string")

        self.id = id or str(uuid4())
        self.owner_id = owner_id
        self.type = type
        self.size = size
        self._created = _normalise_timestamp(created, "created") if created else now()
        self.updated = _normalise_timestamp(updated, "updated") if updated else self._created
        if self.updated < self._created:
            raise ValidationError(
                "updated must not precede created",
                {"created": self._created, "updated": self.updated},
            )
        self._store = store

    @property
    def created(self) -> str:
        return self._created

    @property
    def store(self) -> FragmentStore:
        return self._store if self._store is not None else get_store()

    @property
    def mime_type(self) -> str:
        """The type without parameters, e.g. ``text/html; charset=utf-8`` -> ``text/html``."""
        return content_types.base_type(self.type)

    @property
    def is_text(self) -> bool:
        return self.mime_type.startswith("text/")

    @property
    def formats(self) -> list[str]:
        return formats_for(self.mime_type)

    def to_dict(self) -> FragmentRecord:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "created": self.created,
            "updated": self.updated,
            "type": self.type,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, record: FragmentRecord, *, store: FragmentStore | None = None) -> "Fragment":
        return cls(
            owner_id=record.get("ownerId"),
            type=record.get("type"),
            size=record.get("size", 0),
            id=record.get("id"),
            created=record.get("created"),
            updated=record.get("updated"),
            store=store,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fragment):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Fragment(id={self.id!r}, type={self.type!r}, size={self.size})"

    def _touch(self) -> None:
        # never earlier than created, even if the clock moved backwards
        self.updated = max(now(), self._created)

    async def save(self) -> None:
        self._touch()
        await self.store.write_fragment_metadata(self.to_dict())
        logger.info("Fragment {id} saved for owner {owner}", id=self.id, owner=self.owner_id)

    async def set_data(self, data: bytes) -> None:
        """Replace the fragment's data, then persist metadata with the new size."""
        payload = ensure_binary(data)
        self.size = len(payload)
        self._touch()
        await self.store.write_fragment_data(self.owner_id, self.id, payload)
        await self.save()

    async def get_data(self) -> bytes:
        data = await self.store.read_fragment_data(self.owner_id, self.id)
        if data is None:
            raise NotFoundError(f"No data for fragment with ID {self.id}", {"id": self.id})
        return data

    async def get_converted_into(self, extension: str) -> ConversionResult:
        """Return the fragment's data converted to the type named by ``extension``.

        Same-type requests return the stored bytes unchanged.
        """
        target = resolve_target(self.mime_type, extension)
        data = await self.get_data()
        if target == self.mime_type:
            return ConversionResult(data=data, type=self.type)
        output = await asyncio.to_thread(convert, self.mime_type, data, target)
        logger.info(
            "Fragment {id} converted {source} -> {target}",
            id=self.id,
            source=self.mime_type,
            target=target,
        )
        return ConversionResult(data=output, type=target)

    async def delete(self) -> None:
        await self.store.delete_fragment(self.owner_id, self.id)
        logger.info("Deleted fragment {id} for owner {owner}", id=self.id, owner=self.owner_id)

    @classmethod
    def is_supported_type(cls, value: str | None) -> bool:
        """Whether ``value``'s base type is supported; malformed values raise ContentTypeError."""
        return content_types.is_supported_type(value, cls.supported_types)

    @classmethod
    async def by_id(cls, owner_id: str, fragment_id: str, *, store: FragmentStore | None = None) -> "Fragment":
        backend = store if store is not None else get_store()
        record = await backend.read_fragment_metadata(owner_id, fragment_id)
        if record is None:
            raise NotFoundError(f"No fragment with ID {fragment_id} found", {"id": fragment_id})
        return cls.from_dict(record, store=store)

    @classmethod
    async def by_user(
        cls, owner_id: str, expand: bool = False, *, store: FragmentStore | None = None
    ) -> list[str] | list["Fragment"]:
        from fragments.directory import list_fragments

        return await list_fragments(owner_id, expand, store=store)


__all__ = ["Fragment", "now"]
