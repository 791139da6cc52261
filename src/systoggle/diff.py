from __future__ import annotations

from collections import Counter

from .models import ChangeSet, Change, Scope
from .registry import Registry


def pending_changes(registry: Registry) -> ChangeSet:
    """One change per dirty unit, in registry order."""
    return tuple(
        Change(u.name, u.scope, "enable" if u.desired_state == "enabled" else "disable")
        for u in registry
        if u.dirty
    )


def is_dirty(registry: Registry) -> bool:
    return any(u.dirty for u in registry)


def summarize(change_set: ChangeSet) -> dict[Scope, int]:
    counts = Counter(c.scope for c in change_set)
    return {"system": counts["system"], "user": counts["user"]}
