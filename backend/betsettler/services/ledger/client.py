from __future__ import annotations

import logging
from typing import Any

import httpx

from betsettler.config import Settings

from .config import LedgerConfig
from .exceptions import LedgerConfigError, LedgerResponseError, LedgerTransportError
from .models import LedgerInstruction, LedgerReceipt

logger = logging.getLogger(__name__)


class LedgerClient:
    """
    Async client for the external ledger (bankroll manager).

    One PUT per bet. Any transport error or non-2xx answer is raised as a
    LedgerError; there is no partial success and no in-call retry, a failed
    bet is simply attempted again on the next cycle.
    """

    def __init__(
        self,
        config: LedgerConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or LedgerConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        logger.info(
            f"Initialized LedgerClient (url={self.config.url or 'unset'}, "
            f"api_key={'set' if self.config.api_key else 'unset'})"
        )

    async def __aenter__(self) -> LedgerClient:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def open(self) -> None:
        if self._client is not None:
            return
        limits = httpx.Limits(
            max_connections=self.config.max_connections,
            max_keepalive_connections=self.config.max_keepalive_connections,
        )
        self._client = httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            limits=limits,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed LedgerClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("LedgerClient must be used as async context manager")
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["x-api-key"] = self.config.api_key
        return headers

    async def submit(self, instruction: LedgerInstruction) -> LedgerReceipt:
        """Send one bet result; return the receipt on 2xx, raise otherwise."""
        if not self.config.url:
            raise LedgerConfigError("Ledger URL is not configured")

        bet_id = instruction.bet.bet_id
        logger.info(
            f"Sending result to ledger: {instruction.status} "
            f"(bet={bet_id}, amount={instruction.amount})"
        )

        try:
            response = await self.client.put(
                self.config.url,
                json=instruction.to_payload(),
                headers=self._headers(),
            )
        except httpx.TimeoutException as e:
            raise LedgerTransportError(f"Ledger timeout for bet {bet_id}: {e}") from e
        except httpx.RequestError as e:
            raise LedgerTransportError(
                f"Ledger network error for bet {bet_id}: {e}"
            ) from e

        body = self._parse_body(response)

        if not response.is_success:
            detail = body.get("message") if isinstance(body, dict) else None
            message = (
                f"Ledger returned status {response.status_code}: "
                f"{detail or response.reason_phrase}"
            )
            logger.error(f"{message} (bet={bet_id})")
            raise LedgerResponseError(message, status_code=response.status_code)

        return LedgerReceipt(status_code=response.status_code, body=body)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text or None


def create_ledger_client(settings: Settings) -> LedgerClient:
    config = LedgerConfig(
        url=settings.ledger.url,
        api_key=settings.ledger.api_key,
        timeout_seconds=settings.ledger.timeout_seconds,
    )
    return LedgerClient(config)
