"""Resolve loyalty details for one sub-group of users.

:meth:`DetailFetcher.fetch` issues exactly one API request for the whole
group and maps the response back onto each input user. It never raises:

- retries exhausted: every user in the group fails with the terminal message;
- top-level status other than 200/201: every user fails;
- user missing from the response, or its ``item_status.success`` is not
  ``"true"``: only that user fails, keeping whatever the API returned;
- anything unexpected while mapping: the whole group fails with the
  exception message.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from typing import Any

from .client import LoyaltyApiClient
from .logging_setup import get_logger
from .models import RawUserRecord, UserResult
from .retry import RetryExecutor, TerminalFailure
from .transform import (
    clean_str,
    derive_balances,
    derive_name,
    expiry_schedule,
    generate_point_allocations,
    new_id,
)

_logger = get_logger("loyalty_migration.fetcher")

_OK_STATUS_CODES = frozenset({200, 201})


def _status_code(response: Mapping[str, Any]) -> int | None:
    status = response.get("status")
    if not isinstance(status, Mapping):
        return None
    try:
        return int(str(status.get("code")).strip())
    except (TypeError, ValueError):
        return None


def _customers(response: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    customers = response.get("customers")
    if not isinstance(customers, Mapping):
        return []
    found = customers.get("customer")
    # A single match may come back as an object instead of a one-item list.
    if isinstance(found, Mapping):
        return [found]
    if isinstance(found, list):
        return [c for c in found if isinstance(c, Mapping)]
    return []


def _item_succeeded(customer: Mapping[str, Any]) -> bool:
    item_status = customer.get("item_status")
    if not isinstance(item_status, Mapping):
        return False
    return str(item_status.get("success")).strip().lower() == "true"


def _item_message(customer: Mapping[str, Any]) -> str:
    item_status = customer.get("item_status")
    if isinstance(item_status, Mapping) and item_status.get("message"):
        return f"Customer lookup unsuccessful: {item_status['message']}"
    return "Customer lookup unsuccessful"


class DetailFetcher:
    """Fetch and transform loyalty details for small groups of users."""

    def __init__(self, client: LoyaltyApiClient, executor: RetryExecutor) -> None:
        self.client = client
        self.executor = executor

    def fetch(self, users: Sequence[RawUserRecord]) -> list[UserResult]:
        if not users:
            return []

        t0 = time.perf_counter()
        try:
            external_ids = [u.loyalty_user_id for u in users]
            outcome = self.executor.execute(lambda: self.client.get_customers(external_ids))
            if isinstance(outcome, TerminalFailure):
                _logger.error(
                    "fetch:group_failed users=%d attempts=%d detail=%s",
                    len(users),
                    outcome.attempts,
                    outcome.detail,
                )
                return [UserResult.failed(u, outcome.message) for u in users]

            results = self._map_response(users, outcome)
        except Exception as e:  # noqa: BLE001
            message = str(e) or e.__class__.__name__
            _logger.error("fetch:group_crashed users=%d error=%s", len(users), message)
            return [UserResult.failed(u, f"Batch request failed: {message}") for u in users]

        _logger.debug(
            "fetch:group_done users=%d succeeded=%d latency_ms=%.2f",
            len(users),
            sum(1 for r in results if r.success),
            (time.perf_counter() - t0) * 1000.0,
        )
        return results

    def _map_response(
        self, users: Sequence[RawUserRecord], payload: Mapping[str, Any]
    ) -> list[UserResult]:
        response = payload.get("response")
        if not isinstance(response, Mapping):
            response = {}

        code = _status_code(response)
        by_external_id: dict[str, Mapping[str, Any]] = {}
        for customer in _customers(response):
            external_id = clean_str(customer.get("external_id"))
            # Records without an identifier cannot be attributed to anyone.
            if not external_id:
                continue
            # First record wins when the API repeats an identifier.
            by_external_id.setdefault(external_id, customer)

        results: list[UserResult] = []
        for user in users:
            wallet_id = new_id()
            customer = by_external_id.get(user.loyalty_user_id)

            if code not in _OK_STATUS_CODES:
                results.append(
                    UserResult.failed(
                        user,
                        f"Loyalty API returned status code {code}",
                        wallet_id=wallet_id,
                        customer=customer,
                    )
                )
            elif customer is None:
                results.append(
                    UserResult.failed(
                        user, "Customer not found in loyalty API response", wallet_id=wallet_id
                    )
                )
            elif not _item_succeeded(customer):
                results.append(
                    UserResult.failed(
                        user, _item_message(customer), wallet_id=wallet_id, customer=customer
                    )
                )
            else:
                results.append(self._migrated(user, customer, wallet_id))
        return results

    @staticmethod
    def _migrated(
        user: RawUserRecord, customer: Mapping[str, Any], wallet_id: str
    ) -> UserResult:
        return UserResult(
            id=wallet_id,
            loyalty_user_id=user.loyalty_user_id,
            current_tier_id=user.current_tier,
            loyalty_programme_id="",
            created_at=user.created_at,
            updated_at=user.updated_at,
            created_by=user.loyalty_user_id,
            updated_by=user.loyalty_user_id,
            name=derive_name(customer),
            is_multiple_points_expiry=bool(expiry_schedule(customer)),
            point_allocations=generate_point_allocations(customer, wallet_id),
            success=True,
            **derive_balances(customer),
        )


__all__ = ["DetailFetcher"]
