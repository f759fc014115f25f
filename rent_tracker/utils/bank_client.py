"""Akahu bank data connector.

Read-only access to a user's linked bank accounts and their transactions.
Every failure is raised as one of the ``Upstream*`` errors so callers can
tell a bad token from an unreachable API.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Optional, TypeVar

import requests
from flask import current_app

from rent_tracker.utils.errors import (
    NotConfigured,
    UpstreamError,
    UpstreamForbidden,
    UpstreamUnauthorized,
    UpstreamUnreachable,
)

DEFAULT_BASE_URL = "https://api.akahu.io/v1"
USER_AGENT = "RentTracker/1.0"


@dataclass(slots=True)
class Account:
    id: str
    name: str
    type: str | None = None
    account_number: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Account":
        attributes = raw.get("attributes") or {}
        return cls(
            id=raw["_id"],
            name=raw.get("name") or "",
            type=raw.get("type"),
            account_number=attributes.get("account_number"),
        )


@dataclass(slots=True)
class Transaction:
    id: str
    account_id: str
    date: date
    description: str
    amount: float

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Transaction":
        return cls(
            id=raw["_id"],
            account_id=raw.get("_account") or "",
            date=_parse_date(raw.get("date")),
            description=raw.get("description") or "",
            amount=float(raw.get("amount") or 0),
        )


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise UpstreamError("Transaction without a date")
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def _iso(value: date, *, end_of_day: bool = False) -> str:
    """UTC timestamp for a local date boundary, naive datetimes count as local time."""
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.max if end_of_day else time.min)
    moment = value.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.isoformat(timespec="milliseconds") + "Z"


T = TypeVar("T")


def _parse_items(items: list[Any], parser: Callable[[dict[str, Any]], T], kind: str) -> list[T]:
    try:
        return [parser(item) for item in items]
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise UpstreamError(f"Akahu API returned a malformed {kind}: {exc!r}") from exc


class AkahuClient:
    def __init__(
        self,
        *,
        app_token: str,
        user_token: str,
        base_url: str = DEFAULT_BASE_URL,
        accounts_timeout: float = 10,
        transactions_timeout: float = 15,
    ) -> None:
        self._app_token = app_token.strip()
        self._user_token = user_token.strip()
        self._base_url = base_url.rstrip("/")
        self._accounts_timeout = accounts_timeout
        self._transactions_timeout = transactions_timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._user_token}",
            "X-Akahu-ID": self._app_token,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _get_items(
        self,
        path: str,
        *,
        timeout: float,
        params: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        url = f"{self._base_url}{path}"
        try:
            resp = requests.request(
                "GET",
                url,
                headers=self._headers(),
                params=params,
                timeout=timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise UpstreamUnreachable(f"Cannot connect to Akahu API: {exc}") from exc
        except requests.RequestException as exc:
            raise UpstreamError(f"Akahu request failed: {exc}") from exc

        if resp.status_code == 401:
            raise UpstreamUnauthorized(
                "Invalid Akahu tokens. Please check your App Token and User Token.",
                status_code=401,
            )
        if resp.status_code == 403:
            raise UpstreamForbidden(
                "Access forbidden. Please check your Akahu token permissions.",
                status_code=403,
            )
        if resp.status_code >= 400:
            raise UpstreamError(
                f"Akahu API returned HTTP {resp.status_code}", status_code=resp.status_code
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamError("Akahu API returned an invalid JSON body") from exc
        if not isinstance(payload, dict):
            raise UpstreamError("Akahu API returned an unexpected JSON body")
        items = payload.get("items") or []
        if not isinstance(items, list):
            raise UpstreamError("Akahu API returned an unexpected item list")
        return items

    def get_accounts(self) -> list[Account]:
        items = self._get_items("/accounts", timeout=self._accounts_timeout)
        return _parse_items(items, Account.from_api, "account")

    def get_transactions(self, account_id: str, start: date, end: date) -> list[Transaction]:
        items = self._get_items(
            f"/accounts/{account_id}/transactions",
            timeout=self._transactions_timeout,
            params={"start": _iso(start), "end": _iso(end, end_of_day=True)},
        )
        return _parse_items(items, Transaction.from_api, "transaction")

    def test_connection(self) -> bool:
        try:
            self.get_accounts()
        except UpstreamError as exc:
            current_app.logger.warning("Akahu connection test failed: %s", exc)
            return False
        return True


def create_bank_client(user, config: Optional[dict] = None) -> AkahuClient:
    """Build the Akahu client for ``user`` from its stored tokens."""
    if user is None or not (user.bank_app_token or "").strip() or not (user.bank_user_token or "").strip():
        raise NotConfigured("Akahu not configured for user")
    config = config if config is not None else current_app.config
    return AkahuClient(
        app_token=user.bank_app_token,
        user_token=user.bank_user_token,
        base_url=config.get("AKAHU_BASE_URL", DEFAULT_BASE_URL),
        accounts_timeout=float(config.get("AKAHU_ACCOUNTS_TIMEOUT", 10)),
        transactions_timeout=float(config.get("AKAHU_TRANSACTIONS_TIMEOUT", 15)),
    )
