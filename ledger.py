from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol

import httpx
from pydantic import ValidationError

from config import Settings
from schemas import BudgetMonth

logger = logging.getLogger(__name__)

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class LedgerError(RuntimeError):
    pass


class LedgerService(Protocol):
    def connect(self) -> None: ...

    def synchronize(self) -> None: ...

    def read_budget_month(self, month: str) -> BudgetMonth: ...

    def set_budget_amount(self, month: str, category_id: str, amount: int) -> None: ...

    def run_bank_sync(self) -> None: ...

    def disconnect(self) -> None: ...


class ActualHttpLedger:
    """Ledger client for an Actual Budget server exposed through actual-http-api.

    The bridge downloads and syncs the budget file on every request, so a
    synchronize is a cheap read that forces the bridge to pull remote state
    and flush anything pending.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    def _budget_path(self, suffix: str = "") -> str:
        return f"/v1/budgets/{self.settings.sync_id}{suffix}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "x-api-key": self.settings.api_key,
            "Accept": "application/json",
        }
        if self.settings.encryption_password:
            headers["budget-encryption-password"] = self.settings.encryption_password
        return headers

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if self._client is None:
            raise LedgerError("Ledger is not connected")
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise LedgerError(
                f"Ledger request {method} {path} failed with status "
                f"{exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise LedgerError(f"Ledger request {method} {path} failed: {exc}") from exc
        return response

    def connect(self) -> None:
        logger.info(f"ledger_connect: url={self.settings.server_url}")
        self._client = httpx.Client(
            base_url=self.settings.server_url.rstrip("/"),
            headers=self._headers(),
            timeout=self.settings.http_timeout_secs,
            transport=self._transport,
        )
        try:
            self._request("GET", self._budget_path("/months"))
        except LedgerError:
            self.disconnect()
            raise
        logger.info(f"ledger_connect: budget={self.settings.sync_id} ready")

    def synchronize(self) -> None:
        self._request("GET", self._budget_path("/months"))
        logger.info("ledger_sync: done")

    def read_budget_month(self, month: str) -> BudgetMonth:
        if not _MONTH_RE.match(month):
            raise LedgerError(f"Malformed month key: {month!r}")
        response = self._request("GET", self._budget_path(f"/months/{month}"))
        try:
            payload = response.json()
        except ValueError as exc:
            raise LedgerError(f"Ledger returned invalid JSON for month {month}") from exc
        data = payload.get("data") if isinstance(payload, dict) else None
        if not data:
            raise LedgerError(f"Ledger has no budget data for month {month}")
        try:
            return BudgetMonth.model_validate(data)
        except ValidationError as exc:
            raise LedgerError(f"Unexpected budget month payload for {month}") from exc

    def set_budget_amount(self, month: str, category_id: str, amount: int) -> None:
        if not _MONTH_RE.match(month):
            raise LedgerError(f"Malformed month key: {month!r}")
        self._request(
            "PATCH",
            self._budget_path(f"/months/{month}/categories/{category_id}"),
            json={"category": {"budgeted": amount}},
        )

    def run_bank_sync(self) -> None:
        logger.info("ledger_bank_sync: start")
        self._request("POST", self._budget_path("/accounts/banksync"))
        logger.info("ledger_bank_sync: done")

    def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.close()
        except Exception:
            logger.warning("ledger_disconnect: close failed", exc_info=True)


@contextmanager
def ledger_session(ledger: LedgerService) -> Iterator[LedgerService]:
    try:
        ledger.connect()
        yield ledger
    finally:
        try:
            ledger.disconnect()
        except Exception:
            logger.warning("ledger_disconnect: failed", exc_info=True)
