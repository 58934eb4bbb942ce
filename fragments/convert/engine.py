from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from fragments.content_types import base_type, type_for_extension
from fragments.convert.matrix import CONVERSIONS
from fragments.exceptions import ConversionNotSupportedError


@dataclass(frozen=True)
class ConversionResult:
    data: bytes
    type: str


def resolve_target(source_type: str, extension: str) -> str:
    """Map ``extension`` to a target type reachable from ``source_type``.

    Raises:
        UnknownExtensionError: The extension is not recognised.
        ConversionNotSupportedError: The extension is known but not reachable.
    """
    target = type_for_extension(extension)
    source = base_type(source_type)
    if (source, target) not in CONVERSIONS:
        raise ConversionNotSupportedError(
            f"A {source} fragment cannot be converted to {target}",
            {"source": source, "target": target},
        )
    return target


def convert(source_type: str, data: bytes, target_type: str) -> bytes:
    source = base_type(source_type)
    target = base_type(target_type)
    transform = CONVERSIONS.get((source, target))
    if transform is None:
        raise ConversionNotSupportedError(
            f"A {source} fragment cannot be converted to {target}",
            {"source": source, "target": target},
        )
    output = transform(data)
    logger.debug(
        "Converted {source} -> {target} ({size_in} -> {size_out} bytes)",
        source=source,
        target=target,
        size_in=len(data),
        size_out=len(output),
    )
    return output


def convert_to_extension(source_type: str, data: bytes, extension: str) -> ConversionResult:
    target = resolve_target(source_type, extension)
    return ConversionResult(data=convert(source_type, data, target), type=target)


__all__ = ["ConversionResult", "resolve_target", "convert", "convert_to_extension"]
