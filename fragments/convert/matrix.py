"""
Conversion matrix.

``CONVERSIONS`` is the one table of executable transforms, keyed by
``(source, target)`` base types. The reachable formats of a fragment are
derived from the same keys, so the two cannot disagree.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType

from fragments.content_types import SUPPORTED_TYPES
from fragments.convert.images import PIL_FORMATS, make_transcoder
from fragments.convert.structured import csv_to_json, json_to_yaml
from fragments.convert.text import identity, markdown_to_html, to_plain_text

Transform = Callable[[bytes], bytes]

IMAGE_TYPES: tuple[str, ...] = tuple(PIL_FORMATS)


def _build() -> dict[tuple[str, str], Transform]:
    table: dict[tuple[str, str], Transform] = {
        ("text/plain", "text/plain"): identity,
        ("text/markdown", "text/markdown"): identity,
        ("text/markdown", "text/html"): markdown_to_html,
        ("text/markdown", "text/plain"): to_plain_text,
        ("text/html", "text/html"): identity,
        ("text/html", "text/plain"): to_plain_text,
        ("text/csv", "text/csv"): identity,
        ("text/csv", "text/plain"): to_plain_text,
        ("text/csv", "application/json"): csv_to_json,
        ("application/json", "application/json"): identity,
        ("application/json", "application/yaml"): json_to_yaml,
        ("application/json", "text/plain"): to_plain_text,
        ("application/yaml", "application/yaml"): identity,
        ("application/yaml", "text/plain"): to_plain_text,
    }
    for source in IMAGE_TYPES:
        table[(source, source)] = identity
        for target in IMAGE_TYPES:
            if target != source:
                table[(source, target)] = make_transcoder(target)
    return table


CONVERSIONS: Mapping[tuple[str, str], Transform] = MappingProxyType(_build())


def formats_for(source: str) -> list[str]:
    """Target types reachable from ``source``, its own type first."""
    targets = [target for (origin, target) in CONVERSIONS if origin == source]
    if source in targets:
        targets.remove(source)
        targets.insert(0, source)
    return targets


def check_matrix(supported: tuple[str, ...] = SUPPORTED_TYPES) -> None:
    """Raise AssertionError if the table and the supported set disagree."""
    for source, target in CONVERSIONS:
        if source not in supported or target not in supported:
            raise AssertionError(f"Conversion {source} -> {target} uses an unsupported type")
    for source in supported:
        if (source, source) not in CONVERSIONS:
            raise AssertionError(f"Missing identity conversion for {source}")


__all__ = ["Transform", "IMAGE_TYPES", "CONVERSIONS", "formats_for", "check_matrix"]
