from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from fragments.exceptions import StorageUnavailableError, ValidationError
from fragments.storage import FragmentRecord, ensure_binary, valid_key

METADATA_SUFFIX = ".json"
DATA_SUFFIX = ".bin"
_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class S3Store:
    """Durable store on one S3 bucket.

    Metadata lives at ``<prefix>/<owner>/<id>.json`` and data at
    ``<prefix>/<owner>/<id>.bin``; listing an owner is a prefix scan.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        if client is None:
            session = boto3.session.Session(region_name=region) if region else boto3.session.Session()
            client = session.client("s3", endpoint_url=endpoint_url)
        self.client = client

    def _owner_prefix(self, owner_id: str) -> str:
        if not valid_key(owner_id):
            raise ValidationError("Invalid storage key component", {"value": str(owner_id)})
        return f"{self.prefix}/{owner_id}/" if self.prefix else f"{owner_id}/"

    def _key(self, owner_id: str, fragment_id: str, suffix: str) -> str:
        prefix = self._owner_prefix(owner_id)
        if not valid_key(fragment_id):
            raise ValidationError("Invalid storage key component", {"value": str(fragment_id)})
        return f"{prefix}{fragment_id}{suffix}"

    async def write_fragment_metadata(self, record: FragmentRecord) -> None:
        key = self._key(record.get("ownerId"), record.get("id"), METADATA_SUFFIX)
        body = json.dumps(record, ensure_ascii=False).encode("utf-8")
        await self._call(
            "put_object", Bucket=self.bucket, Key=key, Body=body, ContentType="application/json"
        )

    async def read_fragment_metadata(self, owner_id: str, fragment_id: str) -> FragmentRecord | None:
        if not valid_key(owner_id, fragment_id):
            return None
        body = await self._get(self._key(owner_id, fragment_id, METADATA_SUFFIX))
        if body is None:
            return None
        try:
            return json.loads(body.decode("utf-8"))
        except ValueError as exc:
            raise StorageUnavailableError(
                f"Corrupt metadata record for fragment {fragment_id}", {"bucket": self.bucket}
            ) from exc

    async def write_fragment_data(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        payload = ensure_binary(data)
        key = self._key(owner_id, fragment_id, DATA_SUFFIX)
        await self._call("put_object", Bucket=self.bucket, Key=key, Body=payload)

    async def read_fragment_data(self, owner_id: str, fragment_id: str) -> bytes | None:
        if not valid_key(owner_id, fragment_id):
            return None
        return await self._get(self._key(owner_id, fragment_id, DATA_SUFFIX))

    async def list_fragments(self, owner_id: str, expand: bool = False) -> list[str] | list[FragmentRecord]:
        if not valid_key(owner_id):
            return []
        owner_prefix = self._owner_prefix(owner_id)

        def _scan() -> list[str]:
            ids: list[str] = []
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=owner_prefix):
                for item in page.get("Contents", []):
                    name = item["Key"][len(owner_prefix):]
                    if "/" not in name and name.endswith(METADATA_SUFFIX):
                        ids.append(name[: -len(METADATA_SUFFIX)])
            return sorted(ids)

        ids = await self._run(_scan)
        if not expand:
            return ids
        records: list[FragmentRecord] = []
        for fragment_id in ids:
            record = await self.read_fragment_metadata(owner_id, fragment_id)
            if record is not None:
                records.append(record)
        return records

    async def delete_fragment(self, owner_id: str, fragment_id: str) -> None:
        if not valid_key(owner_id, fragment_id):
            return
        objects = [
            {"Key": self._key(owner_id, fragment_id, DATA_SUFFIX)},
            {"Key": self._key(owner_id, fragment_id, METADATA_SUFFIX)},
        ]
        response = await self._call(
            "delete_objects", Bucket=self.bucket, Delete={"Objects": objects, "Quiet": True}
        )
        errors = (response or {}).get("Errors") or []
        if errors:
            raise StorageUnavailableError(
                f"Failed to delete fragment {fragment_id}",
                {"bucket": self.bucket, "error": str(errors[0].get("Code", ""))},
            )

    async def _get(self, key: str) -> bytes | None:
        def _read() -> bytes | None:
            try:
                response = self.client.get_object(Bucket=self.bucket, Key=key)
            except ClientError as exc:
                if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                    return None
                raise
            return response["Body"].read()

        return await self._run(_read)

    async def _call(self, method: str, **kwargs: Any) -> Any:
        return await self._run(lambda: getattr(self.client, method)(**kwargs))

    async def _run(self, func):
        try:
            return await asyncio.to_thread(func)
        except (ClientError, BotoCoreError) as exc:
            logger.error("S3 request failed on bucket {bucket}: {error}", bucket=self.bucket, error=str(exc))
            raise StorageUnavailableError(
                f"S3 storage unavailable: {exc}", {"bucket": self.bucket}
            ) from exc


__all__ = ["S3Store"]
