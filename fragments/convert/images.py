"""Raster transcoding between the supported image codecs (Pillow)."""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from fragments.exceptions import ConversionNotSupportedError, MalformedContentError

PIL_FORMATS: dict[str, str] = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/webp": "WEBP",
    "image/gif": "GIF",
    "image/avif": "AVIF",
}

# decoded images larger than this are refused before any pixel data is read
MAX_PIXELS = 50_000_000

# encoder settings, lossy codecs at Pillow's usual default quality
SAVE_OPTIONS: dict[str, dict[str, object]] = {
    "JPEG": {"quality": 80},
    "WEBP": {"quality": 80},
    "AVIF": {"quality": 75},
}


def _prepare(image: Image.Image, pil_format: str) -> Image.Image:
    if pil_format == "JPEG":
        if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        if image.mode not in ("RGB", "L"):
            return image.convert("RGB")
        return image
    if pil_format in ("WEBP", "AVIF") and image.mode not in ("RGB", "RGBA"):
        return image.convert("RGBA" if "A" in image.getbands() or "transparency" in image.info else "RGB")
    if pil_format == "PNG" and image.mode not in ("1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"):
        return image.convert("RGBA")
    return image


def transcode(data: bytes, target_type: str) -> bytes:
    """Re-encode ``data`` into ``target_type`` preserving dimensions."""
    pil_format = PIL_FORMATS.get(target_type)
    if pil_format is None:
        raise ConversionNotSupportedError(
            f"No image encoder for {target_type}", {"target": target_type}
        )
    try:
        with Image.open(io.BytesIO(data)) as source:
            width, height = source.size
            if width * height > MAX_PIXELS:
                raise MalformedContentError(
                    f"Image of {width}x{height} pixels exceeds the {MAX_PIXELS} pixel limit",
                    {"width": str(width), "height": str(height)},
                )
            source.load()
            prepared = _prepare(source, pil_format)
            out = io.BytesIO()
            prepared.save(out, format=pil_format, **SAVE_OPTIONS.get(pil_format, {}))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as exc:
        raise MalformedContentError(f"Cannot decode image data: {exc}") from exc
    return out.getvalue()


def make_transcoder(target_type: str):
    def _transcode(data: bytes) -> bytes:
        return transcode(data, target_type)

    _transcode.__name__ = f"to_{PIL_FORMATS[target_type].lower()}"
    return _transcode


__all__ = ["MAX_PIXELS", "PIL_FORMATS", "transcode", "make_transcoder"]
