"""CSV record source.

The file must have a ``.csv`` extension, be valid UTF-8, have a header row
naming at least the ``loyalty_user_id`` column, and every row must carry a
non-blank ``loyalty_user_id``. :func:`iter_user_records` checks all of that
with one full pass before returning, so a bad row near the end of a large
export aborts the run before the first request instead of halfway through.
The records are then streamed lazily in a second pass, one at a time.

Bytes are decoded line by line so an encoding error can name its line.
"""

from __future__ import annotations

import csv
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from pydantic import ValidationError

from .errors import InvalidInputError
from .models import RawUserRecord

REQUIRED_COLUMNS: frozenset[str] = frozenset({"loyalty_user_id"})


def validate_input_path(csv_path: str | os.PathLike[str]) -> Path:
    """Return ``csv_path`` as a ``Path`` or raise :class:`InvalidInputError`."""

    p = Path(csv_path)
    if p.suffix.lower() != ".csv":
        raise InvalidInputError(f"Invalid input file. Please provide a CSV file: {p}")
    if not p.is_file():
        raise InvalidInputError(f"File not found: {p}")
    return p


def _decoded_lines(raw_lines: Iterable[bytes], p: Path) -> Iterator[str]:
    for lineno, raw in enumerate(raw_lines, start=1):
        try:
            yield raw.decode("utf-8-sig" if lineno == 1 else "utf-8")
        except UnicodeDecodeError as e:
            raise InvalidInputError(
                f"Line {lineno} of {p} is not valid UTF-8 ({e.reason} at byte {e.start})"
            ) from e


def _check_header(headers: list[str] | None, p: Path) -> list[str]:
    if not headers:
        raise InvalidInputError(f"CSV appears to have no header row: {p}")
    stripped = [h.strip() for h in headers]
    missing = sorted(REQUIRED_COLUMNS.difference(stripped))
    if missing:
        raise InvalidInputError("CSV is missing required columns: " + ", ".join(missing))
    return stripped


def _records(p: Path) -> Iterator[RawUserRecord]:
    with p.open("rb") as f:
        reader = csv.DictReader(_decoded_lines(f, p))
        try:
            reader.fieldnames = _check_header(reader.fieldnames, p)
            for row in reader:
                try:
                    record = RawUserRecord.from_row(row)
                except ValidationError as e:
                    raise InvalidInputError(
                        f"Malformed row at line {reader.line_num} of {p}: {e}"
                    ) from e
                yield record
        except csv.Error as e:
            raise InvalidInputError(
                f"Malformed CSV at line {reader.line_num} of {p}: {e}"
            ) from e


def iter_user_records(csv_path: str | os.PathLike[str]) -> Iterator[RawUserRecord]:
    """Validate all of ``csv_path`` and return a lazy iterator over its records.

    Raises :class:`InvalidInputError` for any problem found in the file.
    """

    p = validate_input_path(csv_path)
    for _ in _records(p):
        pass
    return _records(p)


__all__ = ["REQUIRED_COLUMNS", "iter_user_records", "validate_input_path"]
