from __future__ import annotations

import asyncio
import copy

from fragments.exceptions import ValidationError
from fragments.storage import FragmentRecord, ensure_binary, valid_key


class MemoryStore:
    """Volatile in-process store: one dict for metadata, one for data.

    Invalid keys are rejected on writes; reads, listing and deletes treat
    them as absent, like the durable backends.
    """

    def __init__(self) -> None:
        self._metadata: dict[tuple[str, str], FragmentRecord] = {}
        self._data: dict[tuple[str, str], bytes] = {}

    async def write_fragment_metadata(self, record: FragmentRecord) -> None:
        key = _write_key(record.get("ownerId"), record.get("id"))
        await asyncio.sleep(0)
        self._metadata[key] = copy.deepcopy(record)

    async def read_fragment_metadata(self, owner_id: str, fragment_id: str) -> FragmentRecord | None:
        await asyncio.sleep(0)
        if not valid_key(owner_id, fragment_id):
            return None
        record = self._metadata.get((owner_id, fragment_id))
        return copy.deepcopy(record) if record is not None else None

    async def write_fragment_data(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        payload = ensure_binary(data)
        key = _write_key(owner_id, fragment_id)
        await asyncio.sleep(0)
        self._data[key] = payload

    async def read_fragment_data(self, owner_id: str, fragment_id: str) -> bytes | None:
        await asyncio.sleep(0)
        if not valid_key(owner_id, fragment_id):
            return None
        return self._data.get((owner_id, fragment_id))

    async def list_fragments(self, owner_id: str, expand: bool = False) -> list[str] | list[FragmentRecord]:
        await asyncio.sleep(0)
        if not valid_key(owner_id):
            return []
        keys = sorted(key for key in self._metadata if key[0] == owner_id)
        if expand:
            return [copy.deepcopy(self._metadata[key]) for key in keys]
        return [fragment_id for _, fragment_id in keys]

    async def delete_fragment(self, owner_id: str, fragment_id: str) -> None:
        await asyncio.sleep(0)
        if not valid_key(owner_id, fragment_id):
            return
        # both removed in the same step so no reader sees one without the other
        self._metadata.pop((owner_id, fragment_id), None)
        self._data.pop((owner_id, fragment_id), None)


def _write_key(owner_id: object, fragment_id: object) -> tuple[str, str]:
    if not valid_key(owner_id, fragment_id):
        raise ValidationError(
            "Invalid storage key", {"ownerId": str(owner_id), "id": str(fragment_id)}
        )
    return owner_id, fragment_id


__all__ = ["MemoryStore"]
