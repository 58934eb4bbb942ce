"""Tabular and structured-data transforms (CSV to JSON, JSON to YAML)."""

from __future__ import annotations

import csv
import io
import json
from typing import Any

import yaml

from fragments.convert.text import decode_utf8
from fragments.exceptions import MalformedContentError


def csv_rows(text: str) -> list[dict[str, str]]:
    """Parse CSV with a header row into one mapping per data row.

    Blank lines are skipped, short rows are padded with empty strings and
    surplus cells are keyed ``field<N>`` by 1-based column number.
    """
    try:
        reader = csv.reader(io.StringIO(text.lstrip("\ufeff"), newline=""))
        header = next((row for row in reader if row), None)
        if header is None:
            return []
        rows: list[dict[str, str]] = []
        for cells in reader:
            if not cells:
                continue
            row = {name: (cells[index] if index < len(cells) else "") for index, name in enumerate(header)}
            for index in range(len(header), len(cells)):
                row[f"field{index + 1}"] = cells[index]
            rows.append(row)
        return rows
    except csv.Error as exc:
        raise MalformedContentError(f"Invalid CSV: {exc}") from exc


def csv_to_json(data: bytes) -> bytes:
    rows = csv_rows(decode_utf8(data))
    return json.dumps(rows, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def load_json(data: bytes) -> Any:
    try:
        return json.loads(decode_utf8(data))
    except json.JSONDecodeError as exc:
        raise MalformedContentError(
            f"Invalid JSON: {exc.msg}", {"line": str(exc.lineno), "column": str(exc.colno)}
        ) from exc


def json_to_yaml(data: bytes) -> bytes:
    document = load_json(data)
    rendered = yaml.safe_dump(
        document,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return rendered.encode("utf-8")


__all__ = ["csv_rows", "csv_to_json", "load_json", "json_to_yaml"]
