"""Run independent awaitables concurrently and account for every outcome."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Mapping


@dataclass
class FanOutResult:
    """Outcome of a fan-out, keyed like its input. Insertion order follows the input."""

    results: dict[str, Any] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_first(self) -> None:
        """Re-raise the first failure in input order, if any."""
        for exc in self.failures.values():
            raise exc


async def gather_settled(tasks: Mapping[str, Awaitable[Any]]) -> FanOutResult:
    """Await every task to completion.

    A failing task never cancels its siblings; its exception is collected
    under its key and the others' results are kept.
    """
    keys = list(tasks)
    outcomes = await asyncio.gather(*tasks.values(), return_exceptions=True)
    result = FanOutResult()
    for key, outcome in zip(keys, outcomes, strict=True):
        if isinstance(outcome, Exception):
            result.failures[key] = outcome
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            result.results[key] = outcome
    return result
