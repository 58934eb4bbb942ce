from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response
from loguru import logger

from fragments.content_types import base_type, split_extension
from fragments.directory import list_fragments
from fragments.model.fragment import Fragment
from fragments.settings import get_settings
from services.api.auth import get_owner_id
from services.api.schemas import (
    DeleteResponse,
    FragmentListResponse,
    FragmentOut,
    FragmentResponse,
)


router = APIRouter(prefix="/v1")

UNSUPPORTED_TYPE_MESSAGE = "Unsupported fragment type requested by the client!"


def _bool_from(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if not lowered:
            return default
        if lowered in {"false", "0", "no", "off"}:
            return False
        if lowered in {"true", "1", "yes", "on"}:
            return True
    return default


def _require_supported_type(content_type: str | None) -> str:
    """Return the raw Content-Type if its base type is supported, else 415."""
    if not content_type:
        logger.warning("Missing Content-Type on fragment write")
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=UNSUPPORTED_TYPE_MESSAGE)
    # malformed values raise ContentTypeError, rendered as 415 by the handler
    if not Fragment.is_supported_type(content_type):
        logger.warning("Unsupported Content-Type {content_type}", content_type=content_type)
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=UNSUPPORTED_TYPE_MESSAGE)
    return content_type


async def _read_body(request: Request) -> bytes:
    limit = get_settings().api.max_body_bytes
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Request body too large")
    body = await request.body()
    if len(body) > limit:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Request body too large")
    if not body:
        logger.warning("Empty request body received")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bad Request: Body must not be empty")
    return body


@router.get("/fragments", response_model=FragmentListResponse)
async def get_fragments(expand: str | None = None, owner_id: str = Depends(get_owner_id)) -> FragmentListResponse:
    """List the caller's fragment ids, or full metadata with ``?expand=1``."""
    if _bool_from(expand, False):
        fragments = await list_fragments(owner_id, True)
        return FragmentListResponse(fragments=[FragmentOut.from_fragment(f) for f in fragments])
    return FragmentListResponse(fragments=await list_fragments(owner_id, False))


@router.post(
    "/fragments",
    status_code=status.HTTP_201_CREATED,
    response_model=FragmentResponse,
    response_model_exclude_none=True,
)
async def create_fragment(
    request: Request,
    response: Response,
    owner_id: str = Depends(get_owner_id),
) -> FragmentResponse:
    """Create a fragment from a raw body; the Content-Type header is its type."""
    content_type = _require_supported_type(request.headers.get("content-type"))
    body = await _read_body(request)

    fragment = Fragment(owner_id=owner_id, type=content_type)
    await fragment.save()
    await fragment.set_data(body)
    logger.info("Created new fragment {id}", id=fragment.id)

    response.headers["Location"] = f"{get_settings().api.public_url}/v1/fragments/{fragment.id}"
    return FragmentResponse(fragment=FragmentOut.from_fragment(fragment))


@router.get("/fragments/{fragment_id}/info", response_model=FragmentResponse)
async def get_fragment_info(fragment_id: str, owner_id: str = Depends(get_owner_id)) -> FragmentResponse:
    fragment = await Fragment.by_id(owner_id, fragment_id)
    return FragmentResponse(fragment=FragmentOut.from_fragment(fragment), formats=fragment.formats)


@router.get("/fragments/{reference}")
async def get_fragment_data(reference: str, owner_id: str = Depends(get_owner_id)) -> Response:
    """Return a fragment's data, converted when the id carries an extension."""
    fragment_id, extension = split_extension(reference)
    fragment = await Fragment.by_id(owner_id, fragment_id)
    if extension is None:
        data = await fragment.get_data()
        return Response(content=data, media_type=fragment.type)
    result = await fragment.get_converted_into(extension)
    return Response(content=result.data, media_type=result.type)


@router.put("/fragments/{fragment_id}", response_model=FragmentResponse)
async def update_fragment(
    fragment_id: str,
    request: Request,
    owner_id: str = Depends(get_owner_id),
) -> FragmentResponse:
    content_type = _require_supported_type(request.headers.get("content-type"))
    fragment = await Fragment.by_id(owner_id, fragment_id)
    if base_type(content_type) != fragment.mime_type:
        logger.warning("Refusing to change type of fragment {id}", id=fragment_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot change type of the fragment to {base_type(content_type)}!",
        )
    body = await _read_body(request)
    await fragment.set_data(body)
    return FragmentResponse(fragment=FragmentOut.from_fragment(fragment), formats=fragment.formats)


@router.delete("/fragments/{fragment_id}", response_model=DeleteResponse)
async def delete_fragment(fragment_id: str, owner_id: str = Depends(get_owner_id)) -> DeleteResponse:
    fragment = await Fragment.by_id(owner_id, fragment_id)
    await fragment.delete()
    return DeleteResponse()
