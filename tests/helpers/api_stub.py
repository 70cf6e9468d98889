"""Test helpers to stub the HTTP session used by ``LoyaltyApiClient``.

``StubSession`` answers ``get(...)`` calls through a ``respond`` callable that
receives the requested external identifiers and the 1-based call number and
returns either a ``requests.Response`` (see :func:`make_response`) or an
exception instance to raise. It records every call and tracks how many calls
are in flight at once across threads.
"""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Callable, Sequence
from typing import Any

import requests
from requests.structures import CaseInsensitiveDict

Responder = Callable[[list[str], int], "requests.Response | BaseException"]


def make_response(
    status: int,
    body: Any = None,
    *,
    headers: dict[str, str] | None = None,
    url: str = "https://loyalty.test/v1.1/customer/get",
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.reason = {200: "OK", 429: "Too Many Requests", 500: "Internal Server Error"}.get(
        status, "Error"
    )
    resp._content = b"" if body is None else json.dumps(body).encode("utf-8")
    resp.encoding = "utf-8"
    resp.headers = CaseInsensitiveDict({"Content-Type": "application/json", **(headers or {})})
    resp.url = url
    return resp


def customer(
    external_id: str,
    *,
    firstname: str = "Ada",
    lastname: str = "Lovelace",
    loyalty_points: Any = "120.000",
    lifetime_points: Any = "300",
    expired: Any = "10",
    redeemed: Any = "150",
    returned: Any = "20",
    expiry_dates: Sequence[str] = ("2026-01-31 23:59:59",),
    success: str = "true",
    message: str = "Customer successfully retrieved",
) -> dict[str, Any]:
    """A customer record shaped like the loyalty API's ``customer/get`` output."""

    return {
        "external_id": external_id,
        "firstname": firstname,
        "lastname": lastname,
        "points_summaries": {
            "points_summary": [
                {
                    "loyaltyPoints": loyalty_points,
                    "lifetimePoints": lifetime_points,
                    "expired": expired,
                    "redeemed": redeemed,
                    "returned": returned,
                }
            ]
        },
        "expiry_schedule": [{"expiry_date": d} for d in expiry_dates],
        "item_status": {"success": success, "code": "1000", "message": message},
    }


def api_body(customers: Sequence[dict[str, Any]], *, code: int = 200) -> dict[str, Any]:
    return {
        "response": {
            "status": {"success": str(code in (200, 201)).lower(), "code": code},
            "customers": {"customer": list(customers)},
        }
    }


def all_found(ids: list[str], _call_no: int) -> requests.Response:
    """Responder: every requested user exists and succeeds."""

    return make_response(200, api_body([customer(i) for i in ids]))


class StubSession:
    """Minimal stand-in for ``requests.Session`` as used by the client."""

    def __init__(self, respond: Responder = all_found, *, sleep_per_call: float = 0.0) -> None:
        self._respond = respond
        self.sleep_per_call = sleep_per_call
        self.calls: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self.inflight = 0
        self.max_inflight = 0
        self.closed = False

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        with self._lock:
            self.inflight += 1
            self.max_inflight = max(self.max_inflight, self.inflight)
            self.calls.append({"url": url, **kwargs})
            call_no = len(self.calls)
        try:
            if self.sleep_per_call > 0:
                time.sleep(self.sleep_per_call)
            ids = [i for i in kwargs["params"]["external_id"].split(",") if i]
            outcome = self._respond(ids, call_no)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            with self._lock:
                self.inflight -= 1

    def requested_ids(self) -> list[list[str]]:
        return [c["params"]["external_id"].split(",") for c in self.calls]

    def close(self) -> None:
        self.closed = True


__all__ = ["StubSession", "all_found", "api_body", "customer", "make_response"]
