"""CLI for the ``loyalty_migration`` package.

Exposes a callable command handler (:func:`cmd_migrate`) and a Typer-based
console interface. Environment variables (notably ``LOYALTY_API_TOKEN`` and
``LOYALTY_API_HOST``) are loaded from a local ``.env`` with ``python-dotenv``
before delegating to :func:`loyalty_migration.api.migrate_users`.
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .logging_setup import configure_logging


def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=UTC).isoformat(timespec="milliseconds")


def cmd_migrate(
    input_path: str,
    *,
    authorization: str | None,
    host: str | None,
    concurrency: int = 5,
    batch_size: int = 500,
    batch_concurrent_limit: int = 100,
    retry_attempts: int = 3,
    retry_delay_ms: int = 1000,
    pace_seconds: float = 1.0,
    output_dir: Path = Path("output"),
    error_log_dir: Path = Path("error_logs"),
) -> int:
    """Migrate users from ``input_path`` and print a run summary.

    Input/configuration problems are written to stderr and return ``1``
    before any request is made. Per-user and per-request failures never
    abort the run; they land in the output and error-log artifacts.
    """

    # Local imports keep CLI startup fast
    from .api import migrate_users
    from .config import ProcessorConfig
    from .errors import InvalidInputError
    from .transform import format_execution_time

    try:
        config = ProcessorConfig.from_env(
            authorization=authorization,
            host=host,
            concurrency=concurrency,
            batch_size=batch_size,
            batch_concurrent_limit=batch_concurrent_limit,
            retry_attempts=retry_attempts,
            retry_delay_ms=retry_delay_ms,
            pace_seconds=pace_seconds,
            output_dir=output_dir,
            error_log_dir=error_log_dir,
        )
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("Started processing...")
    try:
        report = migrate_users(input_path, config)
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = report.result
    print(
        "\n".join(
            [
                "Processing completed:",
                f"  - Total processed: {result.total_processed}",
                f"  - Successful: {len(result.successful)}",
                f"  - Failed: {len(result.failed)}",
                f"  - Started at: {_iso(report.started_at_ms)}",
                f"  - Ended at: {_iso(report.ended_at_ms)}",
                "  - Total execution time: "
                + format_execution_time(report.started_at_ms, report.ended_at_ms),
                f"  - Output: {report.output_dir}",
            ]
        )
    )
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Migrate loyalty users from a CSV export into the wallet/points model "
        "using the loyalty platform's customer API. Loads LOYALTY_API_TOKEN and "
        "LOYALTY_API_HOST from a local .env before running."
    ),
)

# Module-level option object to satisfy ruff B008 (no calls in parameter
# defaults).
INPUT_OPTION: OptionInfo = typer.Option(
    ...,
    "--input",
    "-i",
    help="Input CSV file path (must have a loyalty_user_id column)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)


@app.command("migrate")
def migrate_cmd(
    input_path: Annotated[Path, INPUT_OPTION],
    *,
    authorization: str | None = typer.Option(
        None, help="Authorization token (falls back to LOYALTY_API_TOKEN)."
    ),
    host: str | None = typer.Option(
        None,
        "--host",
        "--capillary-host",
        help="Loyalty API host (falls back to LOYALTY_API_HOST).",
    ),
    concurrency: int = typer.Option(5, min=1, help="Maximum concurrent API requests."),
    batch_size: int = typer.Option(500, min=1, help="Records read per dispatch cycle."),
    batch_concurrent_limit: int = typer.Option(
        100, min=1, help="Users per API request (sub-group size)."
    ),
    retry_attempts: int = typer.Option(3, min=1, help="Attempts per API request."),
    retry_delay: int = typer.Option(
        1000, min=0, help="Delay between attempts in milliseconds."
    ),
    pace_seconds: float = typer.Option(
        1.0, min=0.0, help="Pause after every full batch, in seconds."
    ),
    output_dir: Path = typer.Option(Path("output"), help="Root directory for run output."),
    error_log_dir: Path = typer.Option(
        Path("error_logs"), help="Directory for terminal-failure logs."
    ),
) -> None:
    """Migrate a CSV of loyalty users and write JSON artifacts."""

    code = cmd_migrate(
        str(input_path),
        authorization=authorization,
        host=host,
        concurrency=concurrency,
        batch_size=batch_size,
        batch_concurrent_limit=batch_concurrent_limit,
        retry_attempts=retry_attempts,
        retry_delay_ms=retry_delay,
        pace_seconds=pace_seconds,
        output_dir=output_dir,
        error_log_dir=error_log_dir,
    )
    raise typer.Exit(code)


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to LOYALTY_MIGRATION_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps variables already present in the environment
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
