"""Derivation of wallet and point-allocation data from API customer records.

Pure helpers with no I/O. Given the same customer record twice, the derived
name and balance fields are identical; only the generated identifiers
(wallet, allocation, audit, transaction reference) differ.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Mapping
from typing import Any

from .models import PointAllocation, TransactionAudit, UserResult, UserWallet

POINTS_ADDED = "POINTS_ADDED"

# Balance field -> key inside the first ``points_summary`` entry.
_BALANCE_KEYS: dict[str, str] = {
    "current_balance": "loyaltyPoints",
    "lifetime_earned_points": "lifetimePoints",
    "lifetime_expired_points": "expired",
    "lifetime_redeemed_points": "redeemed",
    "lifetime_returned_points": "returned",
}


def new_id() -> str:
    return str(uuid.uuid4())


def to_points(raw: Any) -> int | float:
    """Coerce an API value to a point amount; missing or non-numeric is 0.

    Integral values come back as ``int`` so ``"120.000"`` serializes as ``120``.
    """

    if raw is None or isinstance(raw, bool):
        return 0
    try:
        value = float(str(raw).strip())
    except ValueError:
        return 0
    if not math.isfinite(value):
        return 0
    return int(value) if value.is_integer() else value


def clean_str(v: Any) -> str:
    """Stripped text of ``v``; ``None`` becomes ``""``."""

    return "" if v is None else str(v).strip()


def derive_name(customer: Mapping[str, Any]) -> str:
    """``"first last"``, or ``""`` when both parts are blank."""

    first = clean_str(customer.get("firstname"))
    last = clean_str(customer.get("lastname"))
    if not first and not last:
        return ""
    return f"{first} {last}"


def first_points_summary(customer: Mapping[str, Any]) -> Mapping[str, Any]:
    summaries = customer.get("points_summaries")
    if not isinstance(summaries, Mapping):
        return {}
    entries = summaries.get("points_summary")
    if isinstance(entries, list) and entries and isinstance(entries[0], Mapping):
        return entries[0]
    return {}


def derive_balances(customer: Mapping[str, Any]) -> dict[str, int | float]:
    """Balance and lifetime fields from the first points-summary entry."""

    summary = first_points_summary(customer)
    return {field: to_points(summary.get(key)) for field, key in _BALANCE_KEYS.items()}


def expiry_schedule(customer: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    entries = customer.get("expiry_schedule")
    if not isinstance(entries, list):
        return []
    return [e if isinstance(e, Mapping) else {} for e in entries]


def generate_transaction_audit(user_id: str) -> TransactionAudit:
    return TransactionAudit(
        id=new_id(),
        loyalty_user_id=user_id,
        transaction_reference_id=new_id(),
        created_by=user_id,
        request_payload={
            "loyalty_user_id": user_id,
            "points_to_migrate": "loyalty_points",
        },
    )


def generate_point_allocations(
    customer: Mapping[str, Any], wallet_id: str
) -> list[PointAllocation]:
    """One allocation (with its own audit) per expiry-schedule entry.

    Every allocation is credited with the user's current loyalty-points
    balance and starts fully unspent.
    """

    user_id = clean_str(customer.get("external_id"))
    points = to_points(first_points_summary(customer).get("loyaltyPoints"))

    allocations: list[PointAllocation] = []
    for entry in expiry_schedule(customer):
        audit = generate_transaction_audit(user_id)
        expires_at = entry.get("expiry_date")
        allocations.append(
            PointAllocation(
                id=new_id(),
                type=POINTS_ADDED,
                points=points,
                remaining_points=points,
                expires_at=None if expires_at is None else str(expires_at),
                wallet_id=wallet_id,
                loyalty_rule_engine_transaction_id=audit.id,
                created_by=user_id,
                audit=audit,
            )
        )
    return allocations


def new_wallet(result: UserResult) -> UserWallet:
    """Project a successful result onto its wallet row."""

    return UserWallet.model_validate(
        result.model_dump(include=set(UserWallet.model_fields))
    )


def new_point_allocation(allocation: PointAllocation) -> dict[str, Any]:
    """Allocation row without the embedded audit (audits are written separately)."""

    return allocation.model_dump(mode="json", exclude={"audit"})


def format_execution_time(start_ms: int, end_ms: int) -> str:
    """Render a duration as ``"{h}h {m}m {s}s {ms}ms"``."""

    duration = max(0, end_ms - start_ms)
    hours, rem = divmod(duration, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{hours}h {minutes}m {seconds}s {millis}ms"


__all__ = [
    "POINTS_ADDED",
    "clean_str",
    "derive_balances",
    "derive_name",
    "expiry_schedule",
    "format_execution_time",
    "generate_point_allocations",
    "generate_transaction_audit",
    "new_point_allocation",
    "new_wallet",
    "to_points",
]
