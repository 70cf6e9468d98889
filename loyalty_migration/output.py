"""Write the JSON artifacts of a finished run.

Layout (relative to the output root, default ``./output``)::

    <output_root>/<unix_ms>/failed_users_logs.json
    <output_root>/<unix_ms>/successful_users_logs.json
    <output_root>/<unix_ms>/wallets.json
    <output_root>/<unix_ms>/point_allocations.json
    <output_root>/<unix_ms>/transaction_audits.json

Each file is a pretty-printed JSON array and is only written when it would
be non-empty. Writes go to ``.tmp`` first and are moved into place with
``os.replace``.
"""

from __future__ import annotations

import json
import os
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .models import ProcessingResult
from .transform import new_point_allocation, new_wallet

FAILED_USERS_FILE = "failed_users_logs.json"
SUCCESSFUL_USERS_FILE = "successful_users_logs.json"
WALLETS_FILE = "wallets.json"
POINT_ALLOCATIONS_FILE = "point_allocations.json"
TRANSACTION_AUDITS_FILE = "transaction_audits.json"


def _write_json_array(path: Path, items: Sequence[Any]) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(list(items), indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp, path)


def build_artifacts(result: ProcessingResult) -> dict[str, list[dict[str, Any]]]:
    """Return ``{file_name: rows}`` for every artifact of ``result``."""

    wallets: list[dict[str, Any]] = []
    allocations: list[dict[str, Any]] = []
    audits: list[dict[str, Any]] = []
    for user in result.successful:
        wallets.append(new_wallet(user).model_dump(mode="json"))
        for allocation in user.point_allocations:
            allocations.append(new_point_allocation(allocation))
            audits.append(allocation.audit.model_dump(mode="json"))

    return {
        FAILED_USERS_FILE: [u.model_dump(mode="json", exclude_none=True) for u in result.failed],
        SUCCESSFUL_USERS_FILE: [
            u.model_dump(mode="json", exclude_none=True) for u in result.successful
        ],
        WALLETS_FILE: wallets,
        POINT_ALLOCATIONS_FILE: allocations,
        TRANSACTION_AUDITS_FILE: audits,
    }


def write_run_artifacts(
    result: ProcessingResult,
    output_root: str | os.PathLike[str],
    *,
    run_id: str | None = None,
) -> tuple[Path, list[Path]]:
    """Write non-empty artifacts under ``<output_root>/<run_id>``.

    ``run_id`` defaults to the current Unix time in milliseconds. Returns the
    run directory and the files actually written.
    """

    run_dir = Path(output_root) / (run_id or str(int(time.time() * 1000)))
    run_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for name, rows in build_artifacts(result).items():
        if not rows:
            continue
        path = run_dir / name
        _write_json_array(path, rows)
        written.append(path)
    return run_dir, written


__all__ = [
    "FAILED_USERS_FILE",
    "POINT_ALLOCATIONS_FILE",
    "SUCCESSFUL_USERS_FILE",
    "TRANSACTION_AUDITS_FILE",
    "WALLETS_FILE",
    "build_artifacts",
    "write_run_artifacts",
]
