"""Session context threaded through every ledger operation.

The provider handle and the signing account change whenever the wallet
connection or network changes. Operations capture a SessionContext once, at
call time, so a context switch mid-operation cannot redirect work already in
flight.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from tribe_ledger.core.contracts import ContractAddresses, get_contract_addresses
from tribe_ledger.services.gateway import CallKind, LedgerGateway


@dataclass(frozen=True)
class SessionContext:
    """Immutable provider/signer snapshot for one session."""

    gateway: LedgerGateway
    chain_id: int
    account: str | None = None

    @property
    def is_signed_in(self) -> bool:
        return bool(self.account)

    @property
    def contracts(self) -> ContractAddresses:
        return get_contract_addresses(self.chain_id)

    def with_account(self, account: str | None) -> SessionContext:
        """Return a new context for ``account`` on the same provider."""
        return replace(self, account=account)

    def is_account(self, address: str | None) -> bool:
        """Case-insensitive comparison against the signed-in account."""
        return bool(self.account and address and self.account.lower() == address.lower())

    async def read(self, target: str, method: str, *args: Any) -> Any:
        """Issue a read-only call through this context's gateway."""
        return await self.gateway.call(CallKind.READ, target, method, args)
