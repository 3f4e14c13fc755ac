"""Discover the live set of entities in an ID-indexed store.

The ledger has no "list all" primitive, so entities are found by probing
identifiers. Three strategies share one caller contract,
``Enumerator.enumerate(source)``:

- SentinelScan: probe 0, 1, 2, ... sequentially and stop at the first empty
  slot. Live entities are assumed contiguous, so writers must never leave
  holes. A transport failure on a single index is skipped, not terminal.
- CounterBoundedScan: read a monotonic counter and probe ``[0, count)``.
  Empty slots and transport failures are both skipped.
- PagedScan: walk a store that lists identifiers page by page.

The strategies are not interchangeable for a given kind; each domain
service picks the one that matches what its contract exposes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from tribe_ledger.services.gateway import LedgerError
from tribe_ledger.services.reconcile import Absent, Present, Reconciled

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class IndexedSource(Protocol[T_co]):
    """Fetches and reconciles the entity stored at one index.

    ``fetch`` raises LedgerError on transport failure and returns Absent for
    an empty slot.
    """

    kind: str

    async def fetch(self, index: int) -> Reconciled[T_co]:
        ...


@dataclass
class FunctionSource(Generic[T]):
    """IndexedSource built from a plain coroutine function."""

    kind: str
    fetcher: Callable[[int], Awaitable[Reconciled[T]]]

    async def fetch(self, index: int) -> Reconciled[T]:
        return await self.fetcher(index)


class ScanStrategy(Protocol):
    async def scan(self, source: IndexedSource[T]) -> list[T]:
        ...


async def enumerate_by_index(source: IndexedSource[T], max_count: int) -> list[T]:
    """Sentinel-terminated scan of indices ``0 .. max_count - 1``.

    Returns the entities in index order. Never inspects ``max_count`` or any
    index beyond it.
    """
    entities: list[T] = []
    for index in range(max(0, max_count)):
        try:
            result = await source.fetch(index)
        except LedgerError as exc:
            logger.debug("No %s reachable at index %d, continuing: %s", source.kind, index, exc)
            continue

        if isinstance(result, Absent):
            logger.debug("%s index %d is empty, stopping scan", source.kind, index)
            break

        entities.append(result.entity)

    return entities


@dataclass(frozen=True)
class SentinelScan:
    """Sequential scan that stops at the first empty slot."""

    max_count: int

    async def scan(self, source: IndexedSource[T]) -> list[T]:
        return await enumerate_by_index(source, self.max_count)


@dataclass(frozen=True)
class CounterBoundedScan:
    """Scan ``[0, count)`` where ``count`` comes from the store's own counter.

    A failure reading the counter propagates; per-index failures do not.
    """

    count_reader: Callable[[], Awaitable[int]]

    async def scan(self, source: IndexedSource[T]) -> list[T]:
        count = max(0, await self.count_reader())
        results = await asyncio.gather(
            *(source.fetch(index) for index in range(count)),
            return_exceptions=True,
        )

        entities: list[T] = []
        for index, result in enumerate(results):
            if isinstance(result, LedgerError):
                logger.warning(
                    "%s index %d temporarily unreachable: %s", source.kind, index, result
                )
                continue
            if isinstance(result, BaseException):
                raise result
            if isinstance(result, Present):
                entities.append(result.entity)

        return entities


@dataclass(frozen=True)
class Page:
    """One page of identifiers from a listing store."""

    ids: Sequence[int]
    total: int


@dataclass(frozen=True)
class PagedScan:
    """Walk identifier pages, then fetch each listed entity.

    ``limit`` caps the number of identifiers taken overall. A failure
    reading a page propagates; a failure fetching one listed entity skips
    that entity.
    """

    page_reader: Callable[[int, int], Awaitable[Page]]
    limit: int
    page_size: int = 20

    async def scan(self, source: IndexedSource[T]) -> list[T]:
        ids: list[int] = []
        offset = 0
        while len(ids) < self.limit:
            page = await self.page_reader(offset, min(self.page_size, self.limit - len(ids)))
            ids.extend(page.ids[: self.limit - len(ids)])
            offset += len(page.ids)
            if not page.ids or offset >= page.total:
                break

        entities: list[T] = []
        for entity_id in ids:
            try:
                result = await source.fetch(entity_id)
            except LedgerError as exc:
                logger.warning("Skipping %s %d: %s", source.kind, entity_id, exc)
                continue
            if isinstance(result, Present):
                entities.append(result.entity)

        return entities


class Enumerator:
    """Runs a scanning strategy against an indexed source.

    Each call re-scans from the beginning; results are not cached here.
    """

    def __init__(self, strategy: ScanStrategy) -> None:
        self.strategy = strategy

    async def enumerate(self, source: IndexedSource[T]) -> list[T]:
        entities = await self.strategy.scan(source)
        logger.debug(
            "Enumerated %d %s entities with %s",
            len(entities),
            source.kind,
            type(self.strategy).__name__,
        )
        return entities
