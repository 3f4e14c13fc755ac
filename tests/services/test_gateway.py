"""Tests for the JSON-RPC ledger gateway."""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Any

import httpx
import pytest
from jose import jwt

from tribe_ledger.schemas.post import InteractionType
from tribe_ledger.services.gateway import (
    CallKind,
    CallOptions,
    GatewayConfig,
    HttpLedgerGateway,
    LedgerRejectedError,
    LedgerRevertedError,
    LedgerTimeoutError,
    LedgerUnreachableError,
    PendingTransaction,
)

SENDER = "0xA11cE00000000000000000000000000000000001"
TARGET = "0x00000000000000000000000000000000000000a2"

BASE_CONFIG = GatewayConfig(
    rpc_url="http://relay.test/rpc",
    client_id="tribe-ledger-test",
    shared_secret=None,
    audience="ledger-relay",
    token_ttl_seconds=60,
    timeout_seconds=5.0,
    receipt_poll_interval=0.0,
    receipt_timeout=0.2,
    breaker_failure_threshold=2,
    breaker_recovery_seconds=60.0,
)


class RelayStub:
    """Records JSON-RPC requests and answers from a queue of responses."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.requests: list[dict[str, Any]] = []
        self.headers: list[httpx.Headers] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        self.headers.append(request.headers)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        payload = {"jsonrpc": "2.0", "id": body["id"]}
        payload.update(response)
        return httpx.Response(200, json=payload)


def make_gateway(stub: RelayStub, **overrides: Any) -> HttpLedgerGateway:
    config = replace(BASE_CONFIG, **overrides)
    return HttpLedgerGateway(config, transport=httpx.MockTransport(stub))


@pytest.mark.asyncio
async def test_read_encodes_integers_as_decimal_strings() -> None:
    stub = RelayStub({"result": ["7", True]})
    gateway = make_gateway(stub)

    result = await gateway.call(
        CallKind.READ, TARGET, "getInteractionCount", (5, InteractionType.SHARE, True, [1, 2])
    )

    assert result == ["7", True]
    body = stub.requests[0]
    assert body["method"] == "ledger_call"
    assert body["params"] == {
        "to": TARGET,
        "method": "getInteractionCount",
        "args": ["5", "2", True, ["1", "2"]],
    }
    assert stub.headers[0]["X-Ledger-Client-Id"] == "tribe-ledger-test"
    assert "Authorization" not in stub.headers[0]


@pytest.mark.asyncio
async def test_shared_secret_adds_bearer_token() -> None:
    stub = RelayStub({"result": "1"})
    gateway = make_gateway(stub, shared_secret="relay-secret")

    await gateway.call(CallKind.READ, TARGET, "nextTribeId")

    scheme, token = stub.headers[0]["Authorization"].split(" ", 1)
    assert scheme == "Bearer"
    claims = jwt.decode(token, "relay-secret", algorithms=["HS256"], audience="ledger-relay")
    assert claims["iss"] == "tribe-ledger-test"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "expected"),
    [
        ({"code": 3, "message": "execution reverted: not member"}, LedgerRevertedError),
        ({"code": -32000, "message": "VM Exception: revert"}, LedgerRevertedError),
        ({"code": 4001, "message": "user denied"}, LedgerRejectedError),
        ({"code": -32603, "message": "internal error"}, LedgerUnreachableError),
        ("plain failure", LedgerUnreachableError),
    ],
)
async def test_rpc_errors_are_classified(error: Any, expected: type[Exception]) -> None:
    gateway = make_gateway(RelayStub({"error": error}))

    with pytest.raises(expected):
        await gateway.call(CallKind.READ, TARGET, "getPost", (1,))


@pytest.mark.asyncio
async def test_server_errors_open_the_circuit_breaker() -> None:
    stub = RelayStub(httpx.Response(503, text="unavailable"))
    gateway = make_gateway(stub)

    for _ in range(2):
        with pytest.raises(LedgerUnreachableError):
            await gateway.call(CallKind.READ, TARGET, "getPost", (1,))

    with pytest.raises(LedgerUnreachableError, match="circuit breaker"):
        await gateway.call(CallKind.READ, TARGET, "getPost", (1,))

    assert len(stub.requests) == 2
    assert gateway.get_circuit_breaker_status()["state"] == "open"
    metrics = gateway.get_metrics()
    assert metrics["error_count"] == 2
    assert metrics["error_counts_by_type"] == {"http_503": 2}


@pytest.mark.asyncio
async def test_transport_timeout_maps_to_timeout_error() -> None:
    request = httpx.Request("POST", "http://relay.test/rpc")
    gateway = make_gateway(RelayStub(httpx.ReadTimeout("slow relay", request=request)))

    with pytest.raises(LedgerTimeoutError):
        await gateway.call(CallKind.READ, TARGET, "getPost", (1,))


@pytest.mark.asyncio
async def test_revert_does_not_count_against_breaker() -> None:
    stub = RelayStub({"error": {"code": 3, "message": "execution reverted"}})
    gateway = make_gateway(stub)

    for _ in range(3):
        with pytest.raises(LedgerRevertedError):
            await gateway.call(CallKind.READ, TARGET, "getPost", (1,))

    assert gateway.get_circuit_breaker_status()["state"] == "closed"
    assert gateway.get_metrics()["error_counts_by_type"] == {"rpc_error": 3}


@pytest.mark.asyncio
async def test_unconfigured_gateway_is_unreachable() -> None:
    gateway = make_gateway(RelayStub({"result": None}), rpc_url=None)

    assert gateway.enabled is False
    with pytest.raises(LedgerUnreachableError):
        await gateway.call(CallKind.READ, TARGET, "nextTribeId")


@pytest.mark.asyncio
async def test_write_requires_sender_and_explicit_gas_limit() -> None:
    stub = RelayStub({"result": "0xabc"})
    gateway = make_gateway(stub)

    with pytest.raises(ValueError, match="sender"):
        await gateway.call(CallKind.WRITE, TARGET, "createPost", (), CallOptions(gas_limit=1))
    with pytest.raises(ValueError, match="gas limit"):
        await gateway.call(CallKind.WRITE, TARGET, "createPost", (), sender=SENDER)

    assert stub.requests == []


@pytest.mark.asyncio
async def test_write_then_wait_returns_receipt_with_ordered_logs() -> None:
    receipt_payload = {
        "transactionHash": "0xabc",
        "status": "1",
        "blockNumber": "12",
        "logs": [
            {"address": TARGET, "event": "PostCreated", "args": ["9", SENDER, "1", "{}"], "logIndex": 4},
            {"address": TARGET, "event": "PostInteraction", "args": ["9", SENDER, "0"], "logIndex": 1},
        ],
    }
    stub = RelayStub({"result": "0xabc"}, {"result": None}, {"result": receipt_payload})
    gateway = make_gateway(stub)

    pending = await gateway.call(
        CallKind.WRITE,
        TARGET,
        "createPost",
        (1, "{}"),
        CallOptions(gas_limit=500_000, value=10),
        sender=SENDER,
    )
    assert isinstance(pending, PendingTransaction)
    assert stub.requests[0]["method"] == "ledger_sendTransaction"
    assert stub.requests[0]["params"]["from"] == SENDER
    assert stub.requests[0]["params"]["gas"] == "500000"
    assert stub.requests[0]["params"]["value"] == "10"

    receipt = await pending.wait()

    assert receipt.succeeded
    assert receipt.block_number == 12
    assert [log.event for log in receipt.logs] == ["PostInteraction", "PostCreated"]
    assert [body["method"] for body in stub.requests[1:]] == [
        "ledger_getTransactionReceipt",
        "ledger_getTransactionReceipt",
    ]


@pytest.mark.asyncio
async def test_failed_receipt_raises_reverted() -> None:
    stub = RelayStub({"result": {"transactionHash": "0xabc", "status": 0, "logs": []}})
    gateway = make_gateway(stub)

    with pytest.raises(LedgerRevertedError):
        await gateway.wait_for_receipt("0xabc")


@pytest.mark.asyncio
async def test_missing_receipt_times_out() -> None:
    gateway = make_gateway(RelayStub({"result": None}))

    with pytest.raises(LedgerTimeoutError):
        await gateway.wait_for_receipt("0xabc", timeout=0.1)


@pytest.mark.asyncio
async def test_close_releases_client() -> None:
    gateway = make_gateway(RelayStub({"result": "1"}))
    await gateway.call(CallKind.READ, TARGET, "nextTribeId")

    await gateway.close()

    assert gateway._client is None
