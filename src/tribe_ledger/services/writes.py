"""Submit state changes to the ledger and read back what they created.

A write goes through three steps:

1. Advisory preconditions (signed in, right role, target active, ...)
   checked against current ledger reads. These save a guaranteed-to-revert
   transaction but are not authoritative; the ledger may still refuse.
2. Submission with an explicit resource limit, then a wait for inclusion.
3. Extraction of a created identifier from the receipt's event log.

Nothing here retries. If the wait for confirmation is interrupted after
submission, the outcome is unknown and must be re-checked by a read.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from tribe_ledger.core.contracts import ContractInterface
from tribe_ledger.core.session import SessionContext
from tribe_ledger.core.settings import settings
from tribe_ledger.services.gateway import (
    CallKind,
    CallOptions,
    LedgerRevertedError,
    PendingTransaction,
    Receipt,
)

logger = logging.getLogger(__name__)


class PreconditionError(RuntimeError):
    """Raised when a write is refused client-side before submission."""


class NotSignedInError(PreconditionError):
    """Raised when a write is attempted without a signing account."""


Precondition = Callable[[SessionContext], Awaitable[None]]


@dataclass(frozen=True)
class Found:
    """The receipt carried the creation event; ``id`` is the new identifier."""

    id: int


@dataclass(frozen=True)
class NotFound:
    """No matching creation event was found in the receipt."""

    event_name: str


CreatedId = Found | NotFound


@dataclass(frozen=True)
class WriteAction:
    """A state-changing contract call."""

    target: str
    method: str
    args: Sequence[Any] = ()
    options: CallOptions = field(default_factory=CallOptions)
    interface: ContractInterface | None = None


@dataclass(frozen=True)
class WriteOutcome:
    """Result of a confirmed write."""

    receipt: Receipt
    created: CreatedId | None = None

    @property
    def created_id(self) -> int:
        """Return the created identifier.

        Raises:
            LookupError: If the write did not report one.
        """
        if isinstance(self.created, Found):
            return self.created.id
        raise LookupError("Write did not report a created identifier")


def extract_created_id(
    receipt: Receipt,
    event_name: str,
    interface: ContractInterface,
    *,
    address: str | None = None,
) -> CreatedId:
    """Return the first positional argument of the first ``event_name`` log.

    Logs are matched by name, not position; logs the interface cannot decode
    are skipped.
    """
    for log in receipt.logs:
        decoded = interface.decode_log(log, address=address)
        if decoded is None or decoded.name != event_name:
            continue
        try:
            return Found(int(decoded.args[0]))
        except (TypeError, ValueError):
            logger.warning(
                "%s log in %s has non-numeric id %r", event_name, receipt.tx_hash, decoded.args[0]
            )
            continue

    logger.warning("No %s event in receipt %s", event_name, receipt.tx_hash)
    return NotFound(event_name)


class WriteCoordinator:
    """Runs preconditions, submits, confirms and extracts created ids."""

    def __init__(
        self,
        *,
        default_gas_limit: int | None = None,
        confirmation_timeout: float | None = None,
    ) -> None:
        self.default_gas_limit = default_gas_limit or settings.gas_limit_default
        self.confirmation_timeout = confirmation_timeout

    async def submit_and_confirm(
        self,
        ctx: SessionContext,
        action: WriteAction,
        *,
        creation_event: str | None = None,
        preconditions: Sequence[Precondition] = (),
    ) -> WriteOutcome:
        """Submit ``action`` on behalf of ``ctx.account`` and wait for inclusion.

        Args:
            ctx: Session captured by the caller; used for every step.
            action: The contract call to submit.
            creation_event: Event whose first argument is the created id.
            preconditions: Advisory checks run in order before submission.

        Raises:
            NotSignedInError: If ``ctx`` has no account.
            PreconditionError: If an advisory check fails.
            LedgerError: If submission or confirmation fails.
        """
        if not ctx.is_signed_in:
            raise NotSignedInError(f"Sign in to call {action.method}")

        for check in preconditions:
            await check(ctx)

        options = action.options
        if options.gas_limit is None:
            options = CallOptions(gas_limit=self.default_gas_limit, value=options.value)

        pending: PendingTransaction = await ctx.gateway.call(
            CallKind.WRITE,
            action.target,
            action.method,
            action.args,
            options,
            sender=ctx.account,
        )

        try:
            receipt = await pending.wait(self.confirmation_timeout)
        except asyncio.CancelledError:
            logger.warning(
                "Stopped waiting for %s (%s); outcome unknown until re-read",
                action.method,
                pending.tx_hash,
            )
            raise

        if not receipt.succeeded:
            raise LedgerRevertedError(f"{action.method} reverted in {receipt.tx_hash}")
        logger.info("Confirmed %s in %s", action.method, receipt.tx_hash)

        created: CreatedId | None = None
        if creation_event:
            if action.interface is None:
                raise ValueError(
                    f"{action.method} needs a contract interface to decode {creation_event}"
                )
            created = extract_created_id(
                receipt, creation_event, action.interface, address=action.target
            )

        return WriteOutcome(receipt=receipt, created=created)


def require(condition: bool, message: str) -> None:
    """Raise PreconditionError with ``message`` unless ``condition`` holds."""
    if not condition:
        raise PreconditionError(message)


class _WriteCoordinatorSingleton:
    """Singleton holder for the default write coordinator."""
    _instance: WriteCoordinator | None = None

    @classmethod
    def get_instance(cls) -> WriteCoordinator:
        if cls._instance is None:
            cls._instance = WriteCoordinator()
        return cls._instance


def get_write_coordinator() -> WriteCoordinator:
    """Return the process-wide write coordinator."""
    return _WriteCoordinatorSingleton.get_instance()
