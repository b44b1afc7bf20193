"""Async client for the RAINSONET node HTTP API.

:class:`RelyoClient` provides typed methods for every public endpoint of a
RAINSONET node. All I/O uses :mod:`httpx` so the client is fully async and
compatible with ``asyncio``.

Every response is wrapped in an envelope ``{success, data?, error?}``.
Transport failures, timeouts, non-2xx answers, ``success: false`` and an
empty ``data`` are all retried with exponential backoff; the ``data``
payload of a successful answer is then decoded strictly against the wire
model of its endpoint.
"""

from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from relyo_sdk.codec import is_valid_address
from relyo_sdk.exceptions import FormatError, NetworkError, RelyoTimeoutError, ValidationError
from relyo_sdk.types import (
    Account,
    AccountWire,
    Address,
    Amount,
    ApiResponse,
    BalanceInfo,
    BalanceWire,
    Hash,
    NetworkConfig,
    Networks,
    NodeStatus,
    SignedTransaction,
    StatusWire,
    TransactionResponse,
    TransactionWire,
)
from relyo_sdk.wallet import Wallet

logger = logging.getLogger(__name__)

W = TypeVar("W", bound=BaseModel)

DEFAULT_FEE = 0.001


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ClientConfig(BaseModel):
    """Immutable client settings.

    Attributes:
        network: Network preset; its URL is used unless ``node_url`` is set.
        node_url: Explicit node URL, overriding the preset.
        timeout: Per-request deadline in seconds.
        retries: Total attempts per request, including the first.
        retry_delay: Base backoff in seconds; attempt *n* is followed by a
            pause of ``retry_delay * 2**(n - 1)``.
    """

    model_config = ConfigDict(frozen=True)

    network: NetworkConfig = Networks.DEVNET
    node_url: str | None = None
    timeout: float = Field(default=30.0, gt=0)
    retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=1.0, ge=0)

    @property
    def base_url(self) -> str:
        return (self.node_url or self.network.node_url).rstrip("/")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class RelyoClient:
    """Async client for a RAINSONET node.

    Args:
        config: Client settings. Defaults to a local devnet node.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``
            in tests.

    Example::

        async with RelyoClient.devnet() as client:
            status = await client.get_status()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def mainnet(cls) -> "RelyoClient":
        return cls(ClientConfig(network=Networks.MAINNET))

    @classmethod
    def testnet(cls) -> "RelyoClient":
        return cls(ClientConfig(network=Networks.TESTNET))

    @classmethod
    def devnet(cls, node_url: str | None = None) -> "RelyoClient":
        return cls(ClientConfig(network=Networks.DEVNET, node_url=node_url))

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def network(self) -> NetworkConfig:
        return self._config.network

    # ----- lifecycle -------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._config.timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "RelyoClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ----- request pipeline ------------------------------------------------

    async def _send_once(self, method: str, path: str, body: Any = None) -> Any:
        """Perform one HTTP exchange and unwrap the response envelope."""
        client = await self._ensure_client()
        try:
            resp = await client.request(method, path, json=body)
        except httpx.TimeoutException as exc:
            raise RelyoTimeoutError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"cannot reach {self.base_url}: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if resp.is_error:
            detail = payload.get("error") if isinstance(payload, dict) else None
            raise NetworkError(
                f"HTTP {resp.status_code}: {detail or resp.reason_phrase}",
                status_code=resp.status_code,
            )

        try:
            envelope = ApiResponse[Any].model_validate(payload)
        except PydanticValidationError as exc:
            raise NetworkError(
                f"invalid response envelope from {method} {path}",
                status_code=resp.status_code,
            ) from exc

        if not envelope.success:
            raise NetworkError(envelope.error or "Unknown error", status_code=resp.status_code)
        if envelope.data is None:
            raise NetworkError("Empty response", status_code=resp.status_code)
        return envelope.data

    async def _request(self, method: str, path: str, body: Any = None) -> Any:
        """Send a request with timeout and bounded retries, returning ``data``.

        Raises:
            NetworkError: If every attempt failed and the last failure was
                not a timeout.
            RelyoTimeoutError: If the last attempt timed out.
        """
        retries = self._config.retries
        timeout = self._config.timeout
        last_error: NetworkError | RelyoTimeoutError | None = None

        for attempt in range(1, retries + 1):
            logger.debug("%s %s (attempt %d/%d)", method, path, attempt, retries)
            try:
                return await asyncio.wait_for(self._send_once(method, path, body), timeout)
            except (NetworkError, RelyoTimeoutError) as exc:
                last_error = exc
            except TimeoutError:
                last_error = RelyoTimeoutError(f"{method} {path} timed out after {timeout}s")

            if attempt < retries:
                delay = self._config.retry_delay * 2 ** (attempt - 1)
                logger.warning(
                    "%s %s failed (%s); retrying in %.2fs", method, path, last_error, delay
                )
                await asyncio.sleep(delay)

        logger.error("%s %s failed after %d attempts: %s", method, path, retries, last_error)
        message = f"{last_error} (after {retries} attempts)"
        if isinstance(last_error, RelyoTimeoutError):
            raise RelyoTimeoutError(message, attempts=retries) from last_error
        raise NetworkError(
            message,
            status_code=getattr(last_error, "status_code", None),
            attempts=retries,
        ) from last_error

    @staticmethod
    def _decode(model: type[W], data: Any) -> W:
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise FormatError(f"malformed {model.__name__} payload: {exc}") from exc

    @staticmethod
    def _check_address(address: Address) -> None:
        if not is_valid_address(address):
            raise ValidationError(f"Invalid address: {address!r}")

    # ----- public API ------------------------------------------------------

    async def health(self) -> bool:
        """Return ``True`` if the node answers ``GET /health``. Never raises."""
        client = await self._ensure_client()
        try:
            resp = await asyncio.wait_for(client.get("/health"), self._config.timeout)
        except (httpx.HTTPError, TimeoutError):
            return False
        return resp.status_code == 200

    async def get_status(self) -> NodeStatus:
        """Return the node's identity, state version, and mempool size."""
        data = await self._request("GET", "/status")
        return self._decode(StatusWire, data).to_model()

    async def get_account(self, address: Address) -> Account:
        """Fetch balance and nonce for *address*."""
        self._check_address(address)
        data = await self._request("GET", f"/account/{address}")
        return self._decode(AccountWire, data).to_model()

    async def get_balance(self, address: Address) -> BalanceInfo:
        """Fetch the balance of *address* in wei and formatted RELYO."""
        self._check_address(address)
        data = await self._request("GET", f"/balance/{address}")
        return self._decode(BalanceWire, data).to_model()

    async def get_nonce(self, address: Address) -> int:
        """Return the current nonce of *address*."""
        account = await self.get_account(address)
        return account.nonce

    async def get_mempool(self) -> list[Hash]:
        """Return the ids of transactions waiting in the node's mempool."""
        data = await self._request("GET", "/mempool")
        if not isinstance(data, list) or not all(isinstance(tx_id, str) for tx_id in data):
            raise FormatError("malformed mempool payload: expected a list of strings")
        return data

    async def submit_transaction(self, tx: SignedTransaction) -> TransactionResponse:
        """Broadcast a signed transaction.

        Returns:
            The node-assigned id and initial status.
        """
        data = await self._request("POST", "/transaction", tx.to_wire())
        return self._decode(TransactionWire, data).to_model()

    async def get_transaction(self, tx_id: Hash) -> TransactionResponse:
        """Fetch the current status of a transaction."""
        data = await self._request("GET", f"/transaction/{tx_id}")
        return self._decode(TransactionWire, data).to_model()

    async def send(
        self,
        wallet: Wallet,
        to: Address,
        amount: float | int | str | Decimal,
        fee: float | int | str | Decimal = DEFAULT_FEE,
    ) -> TransactionResponse:
        """Transfer *amount* RELYO from *wallet* to *to*.

        Fetches the wallet's nonce, signs, and submits. Two concurrent calls
        for the same wallet may read the same nonce; the node will then
        reject one of them.

        Args:
            wallet: Signing wallet; its address is the sender.
            to: Recipient address.
            amount: RELYO in display units, whatever the type: ``1`` is
                one RELYO (``10**18`` wei). Unlike
                :meth:`Wallet.create_transaction`, an ``int`` is not wei.
            fee: RELYO in display units, as for *amount*.
        """
        nonce = await self.get_nonce(wallet.address)
        tx = wallet.create_transaction(
            to=to,
            amount=Amount.to_wei(amount),
            fee=Amount.to_wei(fee),
            nonce=nonce,
        )
        logger.info("submitting transfer from %s nonce=%d", wallet.address, nonce)
        return await self.submit_transaction(tx)

    async def wait_for_transaction(
        self,
        tx_id: Hash,
        *,
        timeout: float = 60.0,
        poll_interval: float = 1.0,
    ) -> TransactionResponse:
        """Poll the node until a transaction is confirmed or failed.

        Args:
            tx_id: Transaction id to watch.
            timeout: Maximum seconds to wait.
            poll_interval: Seconds between polls.

        Returns:
            The final :class:`TransactionResponse`.

        Raises:
            RelyoTimeoutError: If no final status is seen within *timeout*.
        """
        deadline = time.monotonic() + timeout
        while True:
            tx = await self.get_transaction(tx_id)
            if tx.status.is_final:
                return tx
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            await asyncio.sleep(min(poll_interval, remaining))

        raise RelyoTimeoutError(f"Transaction {tx_id} timed out after {timeout}s")


def create_client(config: ClientConfig | None = None) -> RelyoClient:
    """Create a client instance."""
    return RelyoClient(config)
