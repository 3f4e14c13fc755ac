# src/tribe_ledger/services/__init__.py
"""Ledger access services for the tribe ledger client."""

from .gateway import (
    HttpLedgerGateway,
    LedgerDecodeError,
    LedgerError,
    LedgerGateway,
    LedgerRejectedError,
    LedgerRevertedError,
    LedgerTimeoutError,
    LedgerUnreachableError,
    get_ledger_gateway,
)
from .enumerator import CounterBoundedScan, Enumerator, PagedScan, SentinelScan
from .reconcile import Absent, Present

__all__ = [
    "HttpLedgerGateway",
    "LedgerGateway",
    "get_ledger_gateway",
    "LedgerError",
    "LedgerUnreachableError",
    "LedgerTimeoutError",
    "LedgerRevertedError",
    "LedgerRejectedError",
    "LedgerDecodeError",
    "Enumerator",
    "SentinelScan",
    "CounterBoundedScan",
    "PagedScan",
    "Present",
    "Absent",
]
