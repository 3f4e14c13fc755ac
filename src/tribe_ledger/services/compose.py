"""Combine per-parent enumerations into one sorted projection."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from tribe_ledger.services.gateway import LedgerError

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = TypeVar("P")


@dataclass(frozen=True)
class ParentResult(Generic[P, T]):
    """Outcome of enumerating one parent, failure captured as a value."""

    parent_id: P
    children: list[T] = field(default_factory=list)
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


async def _capture(
    parent_id: P,
    fetch_children: Callable[[P, int], Awaitable[list[T]]],
    limit: int,
) -> ParentResult[P, T]:
    try:
        children = await fetch_children(parent_id, limit)
    except Exception as exc:
        return ParentResult(parent_id=parent_id, error=exc)
    return ParentResult(parent_id=parent_id, children=list(children))


async def gather_children(
    parent_ids: Iterable[P],
    fetch_children: Callable[[P, int], Awaitable[list[T]]],
    limit_per_parent: int,
) -> list[ParentResult[P, T]]:
    """Enumerate every parent concurrently; one result per parent, in input order."""
    return list(
        await asyncio.gather(
            *(_capture(parent_id, fetch_children, limit_per_parent) for parent_id in parent_ids)
        )
    )


async def compose_across(
    parent_ids: Iterable[P],
    fetch_children: Callable[[P, int], Awaitable[list[T]]],
    limit_per_parent: int,
    *,
    key: Callable[[T], Any],
    reverse: bool = True,
) -> list[T]:
    """Merge the children of every parent, sorted by ``key``.

    A parent whose enumeration fails contributes nothing; its error is
    logged and never propagated. Children are not deduplicated, since each
    child belongs to exactly one parent.
    """
    results = await gather_children(parent_ids, fetch_children, limit_per_parent)

    merged: list[T] = []
    for result in results:
        if isinstance(result.error, LedgerError):
            logger.warning(
                "Dropping parent %s from composed view: %s", result.parent_id, result.error
            )
            continue
        if result.failed:
            logger.error(
                "Unexpected failure composing parent %s",
                result.parent_id,
                exc_info=result.error,
            )
            continue
        merged.extend(result.children)

    merged.sort(key=key, reverse=reverse)
    return merged
