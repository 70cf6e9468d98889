from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest
from pydantic import ValidationError

from loyalty_migration.errors import InvalidInputError
from loyalty_migration.ingest import iter_user_records
from loyalty_migration.models import RawUserRecord, UserResult
from loyalty_migration.pipeline import PipelineDriver


class _RecordingCoordinator:
    """Coordinator stand-in that records dispatched batches.

    Users whose id starts with ``"bad"`` come back failed.
    """

    def __init__(self) -> None:
        self.batches: list[list[str]] = []

    def process(self, users: Sequence[RawUserRecord]) -> list[UserResult]:
        self.batches.append([u.loyalty_user_id for u in users])
        out: list[UserResult] = []
        for u in users:
            if u.loyalty_user_id.startswith("bad"):
                out.append(UserResult.failed(u, "Customer not found in loyalty API response"))
            else:
                out.append(
                    UserResult(
                        id=f"w-{u.loyalty_user_id}", loyalty_user_id=u.loyalty_user_id, success=True
                    )
                )
        return out


def _records(*ids: str) -> list[RawUserRecord]:
    return [RawUserRecord(loyalty_user_id=i) for i in ids]


def _driver(batch_size: int, sleeps: list[float]) -> tuple[PipelineDriver, _RecordingCoordinator]:
    coordinator = _RecordingCoordinator()
    driver = PipelineDriver(
        coordinator,  # type: ignore[arg-type]
        batch_size=batch_size,
        pace_seconds=1.0,
        sleep=sleeps.append,
    )
    return driver, coordinator


def test_three_users_batch_of_two_dispatches_twice():
    sleeps: list[float] = []
    driver, coordinator = _driver(2, sleeps)

    result = driver.run(_records("u1", "u2", "u3"))

    assert coordinator.batches == [["u1", "u2"], ["u3"]]
    # Paced after the full batch only
    assert sleeps == [1.0]
    assert len(result.successful) == 3
    assert result.failed == []
    assert result.total_processed == 3


def test_partitions_keep_append_order_and_totals_add_up():
    sleeps: list[float] = []
    driver, coordinator = _driver(3, sleeps)

    result = driver.run(_records("u1", "bad1", "u2", "u3", "bad2", "u4", "u5"))

    assert coordinator.batches == [["u1", "bad1", "u2"], ["u3", "bad2", "u4"], ["u5"]]
    assert sleeps == [1.0, 1.0]
    assert [r.loyalty_user_id for r in result.successful] == ["u1", "u2", "u3", "u4", "u5"]
    assert [r.loyalty_user_id for r in result.failed] == ["bad1", "bad2"]
    assert result.total_processed == len(result.successful) + len(result.failed) == 7
    assert all(r.error and r.current_balance == 0 for r in result.failed)


def test_exact_multiple_has_no_trailing_dispatch():
    sleeps: list[float] = []
    driver, coordinator = _driver(2, sleeps)

    result = driver.run(_records("u1", "u2", "u3", "u4"))

    assert coordinator.batches == [["u1", "u2"], ["u3", "u4"]]
    assert result.total_processed == 4


def test_empty_source_dispatches_nothing():
    sleeps: list[float] = []
    driver, coordinator = _driver(2, sleeps)

    result = driver.run([])

    assert coordinator.batches == []
    assert sleeps == []
    assert result.total_processed == 0


def test_buffer_handed_off_is_never_mutated_afterwards():
    seen: list[list[RawUserRecord]] = []

    class _Keeper(_RecordingCoordinator):
        def process(self, users):
            seen.append(users)  # keep the very object handed over
            return super().process(users)

    driver = PipelineDriver(
        _Keeper(),  # type: ignore[arg-type]
        batch_size=2,
        pace_seconds=0,
        sleep=lambda _s: None,
    )
    driver.run(_records("u1", "u2", "u3"))

    assert [[u.loyalty_user_id for u in b] for b in seen] == [["u1", "u2"], ["u3"]]


def test_process_csv_file_streams_rows(write_csv):
    path = write_csv(
        [
            {"loyalty_user_id": "u1", "current_tier": "gold", "email": "a@example.com"},
            {"loyalty_user_id": "u2", "current_tier": "", "email": "b@example.com"},
            {"loyalty_user_id": "u3", "current_tier": "silver", "email": ""},
        ]
    )
    sleeps: list[float] = []
    driver, coordinator = _driver(2, sleeps)

    result = driver.process_csv_file(path)

    assert coordinator.batches == [["u1", "u2"], ["u3"]]
    assert result.total_processed == 3


def test_wrong_extension_rejected_before_any_dispatch(tmp_path: Path):
    path = tmp_path / "users.txt"
    path.write_text("loyalty_user_id\nu1\n", encoding="utf-8")
    driver, coordinator = _driver(2, [])

    with pytest.raises(InvalidInputError, match="CSV"):
        driver.process_csv_file(path)
    assert coordinator.batches == []


def test_missing_required_column_rejected(write_csv):
    path = write_csv([{"user": "u1"}])
    with pytest.raises(InvalidInputError, match="loyalty_user_id"):
        iter_user_records(path)


def test_missing_file_rejected(tmp_path: Path):
    with pytest.raises(InvalidInputError, match="not found"):
        iter_user_records(tmp_path / "nope.csv")


def test_rows_keep_extra_columns(write_csv):
    path = write_csv([{"loyalty_user_id": " u1 ", "email": "a@example.com"}])
    [record] = list(iter_user_records(path))

    assert record.loyalty_user_id == "u1"
    assert record.model_extra == {"email": "a@example.com"}


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        PipelineDriver(_RecordingCoordinator(), batch_size=0)  # type: ignore[arg-type]


def test_bad_bytes_late_in_file_rejected_before_any_dispatch(tmp_path: Path):
    path = tmp_path / "users.csv"
    # Well past the first decode buffer.
    rows = b"".join(f"u{i}\n".encode() for i in range(2000))
    path.write_bytes(b"loyalty_user_id\n" + rows + b"u\xff\n" + b"u-last\n")
    driver, coordinator = _driver(2, [])

    with pytest.raises(InvalidInputError, match="Line 2002 .* not valid UTF-8"):
        driver.process_csv_file(path)
    assert coordinator.batches == []


def test_blank_user_id_row_rejected_with_line_number(write_csv):
    path = write_csv([{"loyalty_user_id": "u1"}, {"loyalty_user_id": "  "}])
    with pytest.raises(InvalidInputError, match="line 3"):
        iter_user_records(path)


def test_blank_user_id_fails_model_validation():
    with pytest.raises(ValidationError):
        RawUserRecord(loyalty_user_id=" ")


def test_bom_and_crlf_input_is_read(tmp_path: Path):
    path = tmp_path / "users.csv"
    path.write_bytes(b"\xef\xbb\xbfloyalty_user_id,email\r\nu1,a@example.com\r\n")

    [record] = list(iter_user_records(path))

    assert record.loyalty_user_id == "u1"
    assert record.model_extra == {"email": "a@example.com"}
