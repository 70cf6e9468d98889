"""Thin client for the loyalty platform's customer-details endpoint.

One ``GET /v1.1/customer/get`` per call, for a comma-joined list of external
user identifiers. Returns the parsed JSON body. Non-2xx responses raise
``requests.HTTPError`` (carrying the response, which the retry layer inspects
for rate limiting); bodies that are not JSON objects raise
:class:`~loyalty_migration.errors.LoyaltyApiError`.

Retries, logging and failure isolation live in the callers.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import requests

from .errors import LoyaltyApiError

CUSTOMER_GET_PATH = "/v1.1/customer/get"

# Fixed query flags requested alongside ``external_id``.
_CUSTOMER_GET_FLAGS: dict[str, str] = {
    "format": "json",
    "user_id": "true",
    "segments": "true",
    "tier_upgrade_criteria": "true",
    "slab_history": "true",
    "transactions": "false",
    "notes": "false",
    "mlp": "true",
    "expiry_schedule": "true",
    "expired_points": "true",
    "point_summary": "true",
}


class LoyaltyApiClient:
    """HTTP access to the loyalty API.

    ``session`` is injectable so tests (and callers wanting connection
    pooling tweaks) can supply their own ``requests.Session``-like object.
    """

    def __init__(
        self,
        host: str,
        authorization: str,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not host or not authorization:
            raise ValueError("LoyaltyApiClient requires host and authorization")

        host = host.strip().rstrip("/")
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        self.base_url = host
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Content-Type": "application/json",
            "Authorization": authorization.strip(),
        }

    def get_customers(self, external_ids: Sequence[str]) -> dict[str, Any]:
        """Fetch loyalty details for ``external_ids`` in a single request."""

        params = {"external_id": ",".join(external_ids), **_CUSTOMER_GET_FLAGS}
        response = self.session.get(
            f"{self.base_url}{CUSTOMER_GET_PATH}",
            params=params,
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as e:
            raise LoyaltyApiError(
                f"customer/get returned a non-JSON body (status {response.status_code})"
            ) from e
        if not isinstance(payload, dict):
            raise LoyaltyApiError("customer/get returned a JSON body that is not an object")
        return payload

    def close(self) -> None:
        self.session.close()


__all__ = ["CUSTOMER_GET_PATH", "LoyaltyApiClient"]
