from __future__ import annotations

import json

import pytest
import yaml
from PIL import Image

from fragments.content_types import EXTENSION_TYPES, SUPPORTED_TYPES
from fragments.convert import (
    CONVERSIONS,
    IMAGE_TYPES,
    check_matrix,
    convert,
    convert_to_extension,
    formats_for,
    resolve_target,
)
from fragments.convert import images
from fragments.convert.structured import csv_rows
from fragments.exceptions import (
    ConversionNotSupportedError,
    MalformedContentError,
    UnknownExtensionError,
)
from tests.utils_images import avif_available, build_sample_image, open_image

EXPECTED_MATRIX = {
    "text/plain": ["text/plain"],
    "text/markdown": ["text/markdown", "text/html", "text/plain"],
    "text/html": ["text/html", "text/plain"],
    "text/csv": ["text/csv", "text/plain", "application/json"],
    "application/json": ["application/json", "application/yaml", "text/plain"],
    "application/yaml": ["application/yaml", "text/plain"],
}


def test_matrix_is_consistent_with_supported_types():
    check_matrix()


@pytest.mark.parametrize(("source", "targets"), EXPECTED_MATRIX.items())
def test_text_and_data_rows(source, targets):
    assert formats_for(source) == targets


@pytest.mark.parametrize("source", IMAGE_TYPES)
def test_image_rows_are_a_full_mesh(source):
    reachable = formats_for(source)
    assert reachable[0] == source
    assert sorted(reachable) == sorted(IMAGE_TYPES)


def test_every_supported_type_has_a_row():
    for source in SUPPORTED_TYPES:
        assert source in formats_for(source)


def test_resolve_target_distinguishes_unknown_from_unreachable():
    with pytest.raises(UnknownExtensionError):
        resolve_target("text/plain", "exe")
    with pytest.raises(ConversionNotSupportedError):
        resolve_target("text/plain", "png")
    assert resolve_target("text/markdown; charset=utf-8", ".html") == "text/html"


@pytest.mark.parametrize(("source", "target"), [key for key in CONVERSIONS if key[0] == key[1] and key[0] not in IMAGE_TYPES])
def test_same_type_is_byte_identical(source, target):
    payload = b"\xef\xbb\xbfsame bytes\r\n"
    assert convert(source, payload, target) == payload


def test_same_type_image_is_byte_identical():
    payload = build_sample_image("PNG")
    assert convert("image/png", payload, "image/png") == payload


def test_markdown_to_html():
    result = convert_to_extension("text/markdown", b"# Title", "html")
    assert result.type == "text/html"
    assert b"<h1>Title</h1>" in result.data


def test_markdown_tables_render():
    source = b"| a | b |\n|---|---|\n| 1 | 2 |\n"
    html = convert("text/markdown", source, "text/html").decode("utf-8")
    assert "<table>" in html
    assert "<td>1</td>" in html


@pytest.mark.parametrize("source", ["text/markdown", "text/html", "text/csv", "application/json", "application/yaml"])
def test_text_conversion_passes_content_through(source):
    payload = "# Title ünïcode".encode("utf-8")
    assert convert(source, payload, "text/plain") == payload


def test_text_conversion_rejects_invalid_utf8():
    with pytest.raises(MalformedContentError):
        convert("text/markdown", b"\xff\xfe\x00", "text/plain")


def test_csv_to_json():
    result = convert_to_extension("text/csv", b"name\nAlice", "json")
    assert result.type == "application/json"
    assert result.data == b'[{"name":"Alice"}]'


def test_csv_rows_edge_cases():
    text = '\ufeffname,age\r\nAlice,30\r\n\r\nBob\r\n"Carol, Jr.",41,extra\r\n'
    assert csv_rows(text) == [
        {"name": "Alice", "age": "30"},
        {"name": "Bob", "age": ""},
        {"name": "Carol, Jr.", "age": "41", "field3": "extra"},
    ]


def test_csv_with_only_a_header_is_an_empty_array():
    assert convert("text/csv", b"name,age\n", "application/json") == b"[]"


def test_json_to_yaml():
    result = convert_to_extension("application/json", b'{"a":1}', "yaml")
    assert result.type == "application/yaml"
    assert yaml.safe_load(result.data) == {"a": 1}
    assert result.data == b"a: 1\n"


def test_json_to_yaml_preserves_key_order_and_nesting():
    source = {"zeta": 1, "alpha": {"nested": [1, 2, {"deep": True}]}, "mid": "ünï"}
    output = convert("application/json", json.dumps(source).encode("utf-8"), "application/yaml")
    assert yaml.safe_load(output) == source
    text = output.decode("utf-8")
    assert text.index("zeta") < text.index("alpha") < text.index("mid")
    assert "ünï" in text


def test_yml_extension_is_yaml():
    assert convert_to_extension("application/json", b"[1, 2]", "yml").type == "application/yaml"


def test_invalid_json_is_malformed():
    with pytest.raises(MalformedContentError):
        convert("application/json", b"{not json", "application/yaml")


@pytest.mark.parametrize(
    ("source", "extension"),
    [
        ("text/plain", "md"),
        ("text/plain", "html"),
        ("text/html", "md"),
        ("text/csv", "yaml"),
        ("application/yaml", "json"),
        ("application/json", "csv"),
        ("image/png", "txt"),
        ("text/markdown", "png"),
    ],
)
def test_pairs_outside_the_matrix_are_not_supported(source, extension):
    with pytest.raises(ConversionNotSupportedError):
        convert_to_extension(source, b"data", extension)


def test_every_extension_resolves_or_is_rejected_consistently():
    for source in SUPPORTED_TYPES:
        for extension, target in EXTENSION_TYPES.items():
            if (source, target) in CONVERSIONS:
                assert resolve_target(source, extension) == target
            else:
                with pytest.raises(ConversionNotSupportedError):
                    resolve_target(source, extension)


IMAGE_CODECS = {
    "image/png": ("PNG", "PNG"),
    "image/jpeg": ("JPEG", "JPEG"),
    "image/webp": ("WEBP", "WEBP"),
    "image/gif": ("GIF", "GIF"),
    "image/avif": ("AVIF", "AVIF"),
}


def _image_pairs():
    for source in IMAGE_TYPES:
        for target in IMAGE_TYPES:
            if source != target:
                yield source, target


@pytest.mark.parametrize(("source", "target"), list(_image_pairs()))
def test_image_transcoding_preserves_dimensions(source, target):
    if "image/avif" in (source, target) and not avif_available():
        pytest.skip("Pillow built without AVIF support")
    source_format, _ = IMAGE_CODECS[source]
    payload = build_sample_image(source_format, size=(40, 30))

    output = convert(source, payload, target)

    decoded = open_image(output)
    assert decoded.format == IMAGE_CODECS[target][1]
    assert decoded.size == (40, 30)


def test_png_to_jpeg_flattens_alpha():
    payload = build_sample_image("PNG", size=(16, 16), mode="RGBA")
    decoded = open_image(convert("image/png", payload, "image/jpeg"))
    assert decoded.format == "JPEG"
    assert decoded.mode == "RGB"
    assert decoded.size == (16, 16)


def test_png_to_jpeg_keeps_visual_content():
    payload = build_sample_image("PNG", size=(40, 30))
    decoded = open_image(convert("image/png", payload, "image/jpeg")).convert("RGB")
    # left half blue, right half red
    left = decoded.getpixel((5, 15))
    right = decoded.getpixel((35, 15))
    assert left[2] > 150 and left[0] < 80
    assert right[0] > 150 and right[2] < 80


def test_undecodable_image_is_malformed():
    with pytest.raises(MalformedContentError):
        convert("image/png", b"definitely not a png", "image/jpeg")


def test_image_over_the_pixel_limit_is_malformed(monkeypatch):
    monkeypatch.setattr(images, "MAX_PIXELS", 40 * 30 - 1)
    payload = build_sample_image("PNG", size=(40, 30))
    with pytest.raises(MalformedContentError, match="pixel limit"):
        convert("image/png", payload, "image/jpeg")


def test_decompression_bomb_is_malformed(monkeypatch):
    # Pillow refuses images over twice MAX_IMAGE_PIXELS when opening them
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    payload = build_sample_image("PNG", size=(40, 30))
    with pytest.raises(MalformedContentError):
        convert("image/png", payload, "image/webp")
