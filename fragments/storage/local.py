from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

from loguru import logger

from fragments.exceptions import StorageUnavailableError, ValidationError
from fragments.storage import FragmentRecord, ensure_binary, valid_key

METADATA_SUFFIX = ".json"
DATA_SUFFIX = ".bin"


class LocalStore:
    """Durable filesystem store: ``<root>/<owner>/<id>.json`` and ``<id>.bin``."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _paths(self, owner_id: str, fragment_id: str) -> tuple[Path, Path]:
        owner_dir = self.root / _component(owner_id)
        name = _component(fragment_id)
        return owner_dir / f"{name}{METADATA_SUFFIX}", owner_dir / f"{name}{DATA_SUFFIX}"

    async def write_fragment_metadata(self, record: FragmentRecord) -> None:
        meta_path, _ = self._paths(record.get("ownerId"), record.get("id"))
        payload = json.dumps(record, ensure_ascii=False)
        await _run_io(_atomic_write, meta_path, payload.encode("utf-8"))

    async def read_fragment_metadata(self, owner_id: str, fragment_id: str) -> FragmentRecord | None:
        try:
            meta_path, _ = self._paths(owner_id, fragment_id)
        except ValidationError:
            return None
        raw = await _run_io(_read_optional, meta_path)
        if raw is None:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise StorageUnavailableError(
                f"Corrupt metadata record for fragment {fragment_id}",
                {"path": str(meta_path)},
            ) from exc

    async def write_fragment_data(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        payload = ensure_binary(data)
        _, data_path = self._paths(owner_id, fragment_id)
        await _run_io(_atomic_write, data_path, payload)

    async def read_fragment_data(self, owner_id: str, fragment_id: str) -> bytes | None:
        try:
            _, data_path = self._paths(owner_id, fragment_id)
        except ValidationError:
            return None
        return await _run_io(_read_optional, data_path)

    async def list_fragments(self, owner_id: str, expand: bool = False) -> list[str] | list[FragmentRecord]:
        try:
            owner_dir = self.root / _component(owner_id)
        except ValidationError:
            return []
        ids = await _run_io(_list_ids, owner_dir)
        if not expand:
            return ids
        records: list[FragmentRecord] = []
        for fragment_id in ids:
            record = await self.read_fragment_metadata(owner_id, fragment_id)
            # deleted between listing and reading
            if record is not None:
                records.append(record)
        return records

    async def delete_fragment(self, owner_id: str, fragment_id: str) -> None:
        try:
            meta_path, data_path = self._paths(owner_id, fragment_id)
        except ValidationError:
            return
        await _run_io(_unlink_pair, meta_path, data_path)


def _component(value: object) -> str:
    if not valid_key(value):
        raise ValidationError("Invalid storage key component", {"value": str(value)})
    return value


async def _run_io(func, *args):
    try:
        return await asyncio.to_thread(func, *args)
    except OSError as exc:
        logger.error("Local store I/O failure: {error}", error=str(exc))
        raise StorageUnavailableError(f"Local storage unavailable: {exc}") from exc


def _atomic_write(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_bytes(payload)
    os.replace(tmp, path)


def _read_optional(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def _list_ids(owner_dir: Path) -> list[str]:
    if not owner_dir.is_dir():
        return []
    return sorted(
        entry.name[: -len(METADATA_SUFFIX)]
        for entry in owner_dir.iterdir()
        if entry.is_file() and entry.name.endswith(METADATA_SUFFIX) and not entry.name.startswith(".")
    )


def _unlink_pair(meta_path: Path, data_path: Path) -> None:
    # data first: a crash in between leaves metadata without data, never the reverse
    data_path.unlink(missing_ok=True)
    meta_path.unlink(missing_ok=True)


__all__ = ["LocalStore"]
