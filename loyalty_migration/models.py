"""Data models for ``loyalty_migration``.

The CSV shape is only partially fixed: a ``loyalty_user_id`` column is
required, a handful of identity columns are read when present, and every
other column rides along untouched in the model's extras. API payloads are
treated the same way; only the fields needed for the wallet/points
derivation are typed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Source records
# ---------------------------------------------------------------------------


class RawUserRecord(BaseModel):
    """One CSV row describing a user to migrate.

    ``loyalty_user_id`` is the external identifier sent to the loyalty API and
    must not be blank.

    Columns other than the typed ones are preserved as extras so failed
    results can echo the full source row.
    """

    model_config = ConfigDict(frozen=True, extra="allow", str_strip_whitespace=True)

    loyalty_user_id: str = Field(min_length=1)
    current_tier: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str | None, Any]) -> RawUserRecord:
        """Build a record from a ``csv.DictReader`` row.

        Values beyond the header (``restkey`` ``None``) are dropped and
        missing trailing cells (``None``) become empty strings.
        """

        cleaned = {
            str(k): ("" if v is None else v)
            for k, v in row.items()
            if k is not None
        }
        return cls.model_validate(cleaned)


type UserRecords = Iterable[RawUserRecord]


# ---------------------------------------------------------------------------
# Derived wallet/points model
# ---------------------------------------------------------------------------


class TransactionAudit(BaseModel):
    """Traceability record owned by exactly one :class:`PointAllocation`."""

    model_config = ConfigDict(frozen=True)

    id: str
    loyalty_user_id: str
    transaction_reference_id: str
    created_by: str
    request_payload: dict[str, Any]


class PointAllocation(BaseModel):
    """One expiring tranche of points derived from an expiry-schedule entry."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str = "POINTS_ADDED"
    points: int | float
    remaining_points: int | float
    expires_at: str | None
    wallet_id: str
    loyalty_rule_engine_transaction_id: str
    created_by: str
    audit: TransactionAudit


class UserWallet(BaseModel):
    """The wallet row written for each successfully migrated user."""

    id: str
    loyalty_user_id: str
    current_tier_id: str | None = None
    loyalty_programme_id: str = ""
    name: str = ""
    current_balance: int | float = 0
    lifetime_earned_points: int | float = 0
    lifetime_expired_points: int | float = 0
    lifetime_redeemed_points: int | float = 0
    lifetime_returned_points: int | float = 0
    created_at: str | None = None
    updated_at: str | None = None
    created_by: str | None = None
    updated_by: str | None = None


class UserResult(BaseModel):
    """Outcome of processing one :class:`RawUserRecord`.

    ``success=True`` means the balance fields and ``point_allocations`` were
    derived from a parsed API record. ``success=False`` means balances are
    zero, there are no allocations and ``error`` explains why. ``customer``
    carries whatever the API returned for a user it could not migrate.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    loyalty_user_id: str
    current_tier_id: str | None = None
    loyalty_programme_id: str = ""
    name: str = ""
    current_balance: int | float = 0
    lifetime_earned_points: int | float = 0
    lifetime_expired_points: int | float = 0
    lifetime_redeemed_points: int | float = 0
    lifetime_returned_points: int | float = 0
    is_multiple_points_expiry: bool = False
    point_allocations: list[PointAllocation] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    created_by: str | None = None
    updated_by: str | None = None
    success: bool
    error: str | None = None
    customer: dict[str, Any] | None = None

    @classmethod
    def failed(
        cls,
        record: RawUserRecord,
        error: str,
        *,
        wallet_id: str | None = None,
        customer: Mapping[str, Any] | None = None,
    ) -> UserResult:
        """Build a failed result that keeps every source column of ``record``."""

        extras = {
            k: v for k, v in (record.model_extra or {}).items() if k not in cls.model_fields
        }
        return cls(
            id=wallet_id,
            loyalty_user_id=record.loyalty_user_id,
            current_tier_id=record.current_tier,
            created_at=record.created_at,
            updated_at=record.updated_at,
            created_by=record.loyalty_user_id,
            updated_by=record.loyalty_user_id,
            success=False,
            error=error or "Unknown error",
            customer=dict(customer) if customer is not None else None,
            **extras,
        )


# ---------------------------------------------------------------------------
# Run aggregate
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ProcessingResult:
    """Aggregate over a full run.

    ``successful`` and ``failed`` keep append order (macro-batch dispatch
    order, then sub-group order), which is not necessarily input order.
    """

    successful: list[UserResult] = field(default_factory=list)
    failed: list[UserResult] = field(default_factory=list)
    total_processed: int = 0


__all__ = [
    "PointAllocation",
    "ProcessingResult",
    "RawUserRecord",
    "TransactionAudit",
    "UserRecords",
    "UserResult",
    "UserWallet",
]
