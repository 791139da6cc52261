from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Iterable, Union

from .errors import ApplyError, PrivilegeCancelled, QueryError
from .models import SCOPES, ApplyOutcome, Change, ChangeSet, Scope, UnitRecord
from .registry import QueryFn, Registry, load_all


logger = logging.getLogger(__name__)

SetEnabledFn = Callable[[Scope, str, bool], Awaitable[None]]


@dataclass(slots=True, frozen=True)
class CycleFinished:
    """Last message of an apply cycle: every outcome plus the reloaded units.

    `units` is None when the reload failed; the caller then keeps its
    current snapshot.
    """

    outcomes: tuple[ApplyOutcome, ...]
    units: list[UnitRecord] | None
    error: QueryError | None = None

    @property
    def applied(self) -> set[tuple[Scope, str]]:
        return {o.key for o in self.outcomes if o.ok}

    @property
    def failed(self) -> list[ApplyOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def swap(self, registry: Registry) -> Registry:
        if self.units is None:
            return registry
        return registry.reconcile(self.units, self.applied)


CycleMessage = Union[ApplyOutcome, CycleFinished]


class ApplyOrchestrator:
    """Runs a confirmed change set against the enable/disable capability.

    User-scope changes go first and may run in parallel; system-scope
    changes follow one at a time because each may raise a privilege prompt.
    A dismissed prompt skips the rest of the system changes. No failure
    stops the batch and nothing already applied is rolled back.
    """

    def __init__(self, set_enabled: SetEnabledFn, concurrency: int = 4) -> None:
        self._set_enabled = set_enabled
        self.concurrency = max(1, concurrency)

    async def _attempt(self, change: Change) -> ApplyOutcome:
        try:
            await self._set_enabled(change.scope, change.unit_name, change.action == "enable")
        except PrivilegeCancelled as e:
            logger.warning("authorization cancelled for %s: %s", change.unit_name, e.reason)
            return ApplyOutcome.for_change(change, cancelled=True)
        except ApplyError as e:
            return ApplyOutcome.for_change(change, error=e.reason)
        except Exception as e:
            logger.exception("unexpected failure applying %s", change.unit_name)
            return ApplyOutcome.for_change(change, error=str(e) or type(e).__name__)
        return ApplyOutcome.for_change(change)

    async def run(self, change_set: ChangeSet) -> AsyncIterator[ApplyOutcome]:
        user_changes = [c for c in change_set if c.scope == "user"]
        system_changes = [c for c in change_set if c.scope == "system"]
        logger.info("applying %d user and %d system changes", len(user_changes), len(system_changes))

        if user_changes:
            sem = asyncio.Semaphore(self.concurrency)

            async def guarded(change: Change) -> ApplyOutcome:
                async with sem:
                    return await self._attempt(change)

            tasks = [asyncio.create_task(guarded(c)) for c in user_changes]
            try:
                for fut in asyncio.as_completed(tasks):
                    outcome = await fut
                    _log_outcome(outcome)
                    yield outcome
            finally:
                for t in tasks:
                    t.cancel()

        cancelled = False
        for change in system_changes:
            if cancelled:
                outcome = ApplyOutcome.for_change(change, cancelled=True)
            else:
                outcome = await self._attempt(change)
                cancelled = outcome.cancelled
            _log_outcome(outcome)
            yield outcome


def _log_outcome(outcome: ApplyOutcome) -> None:
    if outcome.ok:
        logger.info("%sd %s (%s)", outcome.action, outcome.unit_name, outcome.scope)
    elif outcome.cancelled:
        logger.warning("skipped %s (%s): authorization cancelled", outcome.unit_name, outcome.scope)
    else:
        logger.warning("%s %s (%s) failed: %s", outcome.action, outcome.unit_name, outcome.scope, outcome.error)


async def apply_cycle(
    change_set: ChangeSet,
    orchestrator: ApplyOrchestrator,
    query: QueryFn,
    channel: "asyncio.Queue[CycleMessage]",
    scopes: Iterable[Scope] = SCOPES,
) -> CycleFinished:
    """Apply a change set, then reload every scope.

    Each outcome is put on `channel` as soon as it is known, followed by
    one CycleFinished. The reload happens regardless of how many entries
    failed.
    """
    outcomes: list[ApplyOutcome] = []
    async for outcome in orchestrator.run(change_set):
        outcomes.append(outcome)
        await channel.put(outcome)

    units: list[UnitRecord] | None
    error: QueryError | None = None
    try:
        units = await load_all(query, scopes)
    except QueryError as e:
        logger.warning("refresh after apply failed: %s", e)
        units, error = None, e
    finished = CycleFinished(tuple(outcomes), units, error)
    await channel.put(finished)
    return finished


def drain(channel: "asyncio.Queue[CycleMessage]") -> list[CycleMessage]:
    """Everything currently waiting on the channel, without blocking."""
    items: list[CycleMessage] = []
    while True:
        try:
            items.append(channel.get_nowait())
        except asyncio.QueueEmpty:
            return items
