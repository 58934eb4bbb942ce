from __future__ import annotations

from functools import lru_cache

from markdown_it import MarkdownIt

from fragments.exceptions import MalformedContentError


def identity(data: bytes) -> bytes:
    return bytes(data)


def decode_utf8(data: bytes) -> str:
    try:
        return bytes(data).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedContentError(
            "Fragment data is not valid UTF-8 text", {"position": str(exc.start)}
        ) from exc


def to_plain_text(data: bytes) -> bytes:
    """Text-family sources pass through unchanged once they decode as UTF-8."""
    return decode_utf8(data).encode("utf-8")


@lru_cache(maxsize=1)
def _markdown() -> MarkdownIt:
    # markdown-it's JavaScript default preset: commonmark plus tables and strikethrough
    return MarkdownIt("js-default")


def markdown_to_html(data: bytes) -> bytes:
    return _markdown().render(decode_utf8(data)).encode("utf-8")


__all__ = ["identity", "decode_utf8", "to_plain_text", "markdown_to_html"]
