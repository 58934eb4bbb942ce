"""Owner-scoped listing of fragments."""

from __future__ import annotations

from loguru import logger

from fragments.model.fragment import Fragment
from fragments.storage import FragmentStore, get_store


async def list_fragment_ids(owner_id: str, *, store: FragmentStore | None = None) -> list[str]:
    backend = store if store is not None else get_store()
    ids = await backend.list_fragments(owner_id, False)
    return [fragment_id for fragment_id in ids if isinstance(fragment_id, str)]


async def list_fragments(
    owner_id: str, expand: bool = False, *, store: FragmentStore | None = None
) -> list[str] | list[Fragment]:
    """List an owner's fragments: ids, or full Fragment objects when ``expand``.

    Records belonging to another owner are dropped whatever the backend
    returns, and an owner without fragments gets an empty list.
    """
    if not expand:
        return await list_fragment_ids(owner_id, store=store)

    backend = store if store is not None else get_store()
    records = await backend.list_fragments(owner_id, True)
    fragments: list[Fragment] = []
    for record in records:
        if not isinstance(record, dict) or record.get("ownerId") != owner_id:
            logger.warning("Dropping foreign record from listing for owner {owner}", owner=owner_id)
            continue
        fragments.append(Fragment.from_dict(record, store=store))
    return fragments


__all__ = ["list_fragments", "list_fragment_ids"]
