"""Ledger gateway: the uniform call boundary to the external ledger.

This module provides the LedgerGateway protocol and its HTTP implementation,
HttpLedgerGateway, which talks JSON-RPC to a ledger relay. It includes:

- Read calls that return decoded raw values and never mutate remote state
- Write calls that return a pending transaction handle
- Receipt polling that yields ordered emitted events
- Circuit breaker and metrics collection for the relay connection

The gateway never retries and never estimates resource limits; both are the
caller's responsibility.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import secrets
import time
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import httpx
from jose import jwt

from tribe_ledger.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

HTTP_INTERNAL_SERVER_ERROR = 500

# JSON-RPC error codes used by wallet providers and execution clients
RPC_EXECUTION_REVERTED = 3
RPC_USER_REJECTED = 4001


class LedgerError(RuntimeError):
    """Base exception raised for ledger call failures."""


class LedgerUnreachableError(LedgerError):
    """Raised when the relay or provider cannot be reached."""


class LedgerTimeoutError(LedgerError):
    """Raised when a call or a confirmation wait runs out of time."""


class LedgerRevertedError(LedgerError):
    """Raised when the ledger refused to execute a call or transaction."""


class LedgerRejectedError(LedgerError):
    """Raised when the signer declined to sign a transaction."""


class LedgerDecodeError(LedgerError):
    """Raised when the relay returns a value that does not match the expected shape."""


class CallKind(Enum):
    """Whether a call only reads state or submits a signed transaction."""

    READ = "read"
    WRITE = "write"


class CircuitState(Enum):
    """Circuit breaker states for the relay connection."""

    CLOSED = "closed"      # Normal operation - requests allowed
    OPEN = "open"          # Circuit is open - requests blocked
    HALF_OPEN = "half_open"  # Testing if relay is back - limited requests allowed


@dataclass(frozen=True)
class CallOptions:
    """Per-call options: resource limit hint and value transferred."""

    gas_limit: int | None = None
    value: int = 0


@dataclass(frozen=True)
class RawLog:
    """An event emitted by a confirmed transaction, as reported by the relay."""

    address: str | None
    event: str | None
    args: tuple[Any, ...] = ()
    log_index: int = 0


@dataclass(frozen=True)
class Receipt:
    """Confirmation data for an included transaction."""

    tx_hash: str
    status: int
    block_number: int | None
    logs: tuple[RawLog, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class LedgerGateway(Protocol):
    """Call boundary every component goes through to reach the ledger."""

    async def call(
        self,
        kind: CallKind,
        target: str,
        method: str,
        args: Sequence[Any] = (),
        options: CallOptions | None = None,
        *,
        sender: str | None = None,
    ) -> Any:
        ...

    async def wait_for_receipt(self, tx_hash: str, timeout: float | None = None) -> Receipt:
        ...


@dataclass(frozen=True)
class PendingTransaction:
    """Handle for a submitted, not yet confirmed, transaction."""

    tx_hash: str
    gateway: LedgerGateway

    async def wait(self, timeout: float | None = None) -> Receipt:
        """Block until the transaction is included and return its receipt."""
        return await self.gateway.wait_for_receipt(self.tx_hash, timeout)


@dataclass
class GatewayMetrics:
    """Metrics collection for relay calls."""

    request_count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_response_time: float = 0.0
    min_response_time: float = float('inf')
    max_response_time: float = 0.0
    error_counts_by_type: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    method_counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_request(
        self, method: str, response_time: float, success: bool, error_type: str | None = None
    ) -> None:
        """Record a request metric."""
        self.request_count += 1
        self.total_response_time += response_time
        self.min_response_time = min(self.min_response_time, response_time)
        self.max_response_time = max(self.max_response_time, response_time)
        self.method_counts[method] += 1

        if success:
            self.success_count += 1
        else:
            self.error_count += 1
            if error_type:
                self.error_counts_by_type[error_type] += 1

    def get_average_response_time(self) -> float:
        """Get average response time."""
        return self.total_response_time / self.request_count if self.request_count > 0 else 0.0

    def get_success_rate(self) -> float:
        """Get success rate as a percentage."""
        return (self.success_count / self.request_count * 100) if self.request_count > 0 else 0.0


@dataclass
class CircuitBreaker:
    """Circuit breaker for relay calls.

    Only transport failures count against the breaker; a revert is a valid
    answer from a healthy relay.
    """

    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    success_threshold: int = 1

    _state: CircuitState = CircuitState.CLOSED
    _failure_count: int = 0
    _success_count: int = 0
    _last_failure_time: float = 0.0

    def is_open(self) -> bool:
        """Check if circuit is open."""
        if self._state == CircuitState.OPEN:
            if time.time() - self._last_failure_time > self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
            return self._state == CircuitState.OPEN
        return False

    def record_success(self) -> None:
        """Record a successful operation."""
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.success_threshold:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def record_failure(self) -> None:
        """Record a failed operation."""
        self._failure_count += 1
        self._last_failure_time = time.time()

        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN

    def get_state(self) -> CircuitState:
        """Get the current circuit breaker state."""
        return self._state

    def get_failure_count(self) -> int:
        """Get the current failure count."""
        return self._failure_count


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable configuration for relay operations."""

    rpc_url: str | None
    client_id: str
    shared_secret: str | None
    audience: str
    token_ttl_seconds: int
    timeout_seconds: float
    receipt_poll_interval: float
    receipt_timeout: float
    breaker_failure_threshold: int
    breaker_recovery_seconds: float


def load_gateway_config() -> GatewayConfig:
    """Build configuration object from global settings."""

    return GatewayConfig(
        rpc_url=settings.ledger_rpc_url,
        client_id=settings.ledger_client_id,
        shared_secret=settings.ledger_shared_secret,
        audience=settings.ledger_audience,
        token_ttl_seconds=settings.ledger_token_ttl_seconds,
        timeout_seconds=float(settings.ledger_http_timeout_seconds),
        receipt_poll_interval=float(settings.receipt_poll_interval_seconds),
        receipt_timeout=float(settings.receipt_timeout_seconds),
        breaker_failure_threshold=settings.breaker_failure_threshold,
        breaker_recovery_seconds=float(settings.breaker_recovery_seconds),
    )


def _encode_arg(value: Any) -> Any:
    # Unsigned integers travel as decimal strings.
    if isinstance(value, Enum):
        return _encode_arg(value.value)
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, list | tuple):
        return [_encode_arg(item) for item in value]
    return value


def _parse_receipt(tx_hash: str, payload: Mapping[str, Any]) -> Receipt:
    logs = tuple(
        RawLog(
            address=item.get("address"),
            event=item.get("event"),
            args=tuple(item.get("args") or ()),
            log_index=int(item.get("logIndex", index)),
        )
        for index, item in enumerate(payload.get("logs") or [])
    )
    block_number = payload.get("blockNumber")
    return Receipt(
        tx_hash=payload.get("transactionHash", tx_hash),
        status=int(payload.get("status", 0)),
        block_number=int(block_number) if block_number is not None else None,
        logs=tuple(sorted(logs, key=lambda log: log.log_index)),
    )


class HttpLedgerGateway:
    """JSON-RPC client for the ledger relay."""

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_gateway_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._ids = itertools.count(1)
        self._circuit_breaker = CircuitBreaker(
            failure_threshold=self.config.breaker_failure_threshold,
            recovery_timeout=self.config.breaker_recovery_seconds,
        )
        self._metrics = GatewayMetrics()

    @property
    def enabled(self) -> bool:
        return bool(self.config.rpc_url)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise LedgerUnreachableError("Ledger relay URL is not configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.rpc_url or "",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )

        return self._client

    def _build_auth_headers(self) -> dict[str, str]:
        headers = {
            "X-Ledger-Client-Id": self.config.client_id,
        }

        if self.config.shared_secret:
            now = int(time.time())
            payload = {
                "iss": self.config.client_id,
                "aud": self.config.audience,
                "iat": now,
                "exp": now + max(1, self.config.token_ttl_seconds),
                "jti": secrets.token_hex(8),
            }
            token = jwt.encode(payload, self.config.shared_secret, algorithm="HS256")
            headers["Authorization"] = f"Bearer {token}"

        return headers

    async def _rpc(self, method: str, params: Mapping[str, Any]) -> Any:
        if self._circuit_breaker.is_open():
            raise LedgerUnreachableError("Ledger circuit breaker is open - relay unavailable")

        client = await self._ensure_client()
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        start_time = time.time()
        success = False
        error_type: str | None = None

        try:
            response = await client.post("", json=body, headers=self._build_auth_headers())
            if response.status_code >= HTTP_INTERNAL_SERVER_ERROR:
                self._circuit_breaker.record_failure()
                error_type = f"http_{response.status_code}"
                raise LedgerUnreachableError(f"Ledger relay responded with {response.status_code}")
            response.raise_for_status()
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError("JSON-RPC response must be an object")
            success = not payload.get("error")
            if not success:
                error_type = "rpc_error"
        except httpx.TimeoutException as exc:
            self._circuit_breaker.record_failure()
            error_type = "timeout"
            raise LedgerTimeoutError(f"Ledger call {method} timed out") from exc
        except httpx.HTTPError as exc:
            self._circuit_breaker.record_failure()
            error_type = "network_error"
            raise LedgerUnreachableError(f"Ledger call {method} failed: {exc}") from exc
        except ValueError as exc:
            self._circuit_breaker.record_failure()
            error_type = "invalid_response"
            raise LedgerUnreachableError(f"Ledger relay returned invalid JSON for {method}") from exc
        finally:
            self._metrics.record_request(method, time.time() - start_time, success, error_type)

        self._circuit_breaker.record_success()
        if not success:
            raise self._map_rpc_error(method, payload["error"])
        return payload.get("result")

    @staticmethod
    def _map_rpc_error(method: str, error: Any) -> LedgerError:
        if not isinstance(error, Mapping):
            error = {"message": error}
        code = error.get("code")
        message = str(error.get("message", "unknown error"))
        if code == RPC_USER_REJECTED:
            return LedgerRejectedError(f"{method} rejected by signer: {message}")
        if code == RPC_EXECUTION_REVERTED or "revert" in message.lower():
            return LedgerRevertedError(f"{method} reverted: {message}")
        return LedgerUnreachableError(f"{method} failed with RPC error {code}: {message}")

    async def call(
        self,
        kind: CallKind,
        target: str,
        method: str,
        args: Sequence[Any] = (),
        options: CallOptions | None = None,
        *,
        sender: str | None = None,
    ) -> Any:
        """Invoke ``method`` on the contract at ``target``.

        Returns:
            The decoded return value for reads, a PendingTransaction for writes.

        Raises:
            ValueError: If a write is missing its sender or explicit gas limit.
            LedgerError: On transport failure, revert or signer rejection.
        """
        options = options or CallOptions()
        params: dict[str, Any] = {
            "to": target,
            "method": method,
            "args": [_encode_arg(arg) for arg in args],
        }

        if kind is CallKind.READ:
            if sender:
                params["from"] = sender
            return await self._rpc("ledger_call", params)

        if not sender:
            raise ValueError(f"Write call {method} requires a sender")
        if options.gas_limit is None:
            raise ValueError(f"Write call {method} requires an explicit gas limit")

        params["from"] = sender
        params["gas"] = str(options.gas_limit)
        params["value"] = str(options.value)
        tx_hash = await self._rpc("ledger_sendTransaction", params)
        logger.info("Submitted %s to %s: %s", method, target, tx_hash)
        return PendingTransaction(tx_hash=str(tx_hash), gateway=self)

    async def wait_for_receipt(self, tx_hash: str, timeout: float | None = None) -> Receipt:
        """Poll the relay until ``tx_hash`` is included.

        Raises:
            LedgerTimeoutError: If no receipt appears within ``timeout``.
            LedgerRevertedError: If the transaction was included but failed.
        """
        deadline = time.monotonic() + (timeout if timeout is not None else self.config.receipt_timeout)
        interval = max(0.05, self.config.receipt_poll_interval)

        while True:
            payload = await self._rpc("ledger_getTransactionReceipt", {"hash": tx_hash})
            if payload:
                receipt = _parse_receipt(tx_hash, payload)
                if not receipt.succeeded:
                    raise LedgerRevertedError(f"Transaction {tx_hash} reverted")
                return receipt

            if time.monotonic() >= deadline:
                raise LedgerTimeoutError(f"Transaction {tx_hash} not confirmed in time")
            await asyncio.sleep(interval)

    def get_circuit_breaker_status(self) -> dict[str, Any]:
        """Get circuit breaker status."""
        return {
            "state": self._circuit_breaker.get_state().value,
            "failure_count": self._circuit_breaker.get_failure_count(),
            "failure_threshold": self._circuit_breaker.failure_threshold,
            "recovery_timeout": self._circuit_breaker.recovery_timeout,
        }

    def get_metrics(self) -> dict[str, Any]:
        """Get relay call metrics."""
        return {
            "request_count": self._metrics.request_count,
            "success_count": self._metrics.success_count,
            "error_count": self._metrics.error_count,
            "success_rate": self._metrics.get_success_rate(),
            "average_response_time": self._metrics.get_average_response_time(),
            "error_counts_by_type": dict(self._metrics.error_counts_by_type),
            "method_counts": dict(self._metrics.method_counts),
        }

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class _LedgerGatewaySingleton:
    """Singleton holder for the process-wide gateway instance."""
    _instance: HttpLedgerGateway | None = None

    @classmethod
    def get_instance(cls) -> HttpLedgerGateway:
        if cls._instance is None:
            cls._instance = HttpLedgerGateway()
        return cls._instance


def get_ledger_gateway() -> HttpLedgerGateway:
    """Return the process-wide ledger gateway."""
    return _LedgerGatewaySingleton.get_instance()
