"""Dependency tracking engine, the heart of reactivity.

Uses a contextvar to track which effect is running, so every read made
through a reactive view can subscribe that effect to (target, key).

Ownership runs one way only:

    graph --weak--> _TargetDeps --weak--> Dep --strong--> _TargetDeps --> target
    effect.deps --strong--> Dep --strong--> effect

A target therefore stays in the graph exactly as long as some live effect is
subscribed to one of its keys. Dropping the last subscription frees the Dep,
then the per-target entry, then the graph's hold on the target.

The hold is strong while it lasts: a plain dict cannot be weakly referenced,
so the entry pins its target for as long as any live effect is subscribed
to it, even if user code has dropped every other reference.

Single-threaded: the active slot is per-context, the graph is not locked.
"""

from __future__ import annotations

import contextvars
import logging
import weakref
from typing import TYPE_CHECKING, Hashable

if TYPE_CHECKING:
    from reactivity.effect import ReactiveEffect

logger = logging.getLogger("reactivity.tracking")

# The currently-running effect. Reads through a view subscribe it.
active_effect: contextvars.ContextVar[ReactiveEffect | None] = contextvars.ContextVar(
    "active_effect", default=None
)


class Dep:
    """The subscriber set of one (target, key) pair."""

    __slots__ = ("_owner", "key", "subscribers", "__weakref__")

    def __init__(self, owner: _TargetDeps, key: Hashable) -> None:
        self._owner = owner  # keeps the per-target entry alive while subscribed
        self.key = key
        self.subscribers: set[ReactiveEffect] = set()

    def discard(self, effect: ReactiveEffect) -> None:
        self.subscribers.discard(effect)

    def __contains__(self, effect: object) -> bool:
        return effect in self.subscribers

    def __len__(self) -> int:
        return len(self.subscribers)

    def __repr__(self) -> str:
        return f"Dep({self.key!r}, {len(self.subscribers)} subscribers)"


class _TargetDeps:
    """Per-target entry: key -> Dep, held weakly."""

    __slots__ = ("target", "deps", "__weakref__")

    def __init__(self, target: object) -> None:
        self.target = target
        self.deps: weakref.WeakValueDictionary[Hashable, Dep] = weakref.WeakValueDictionary()


class DependencyGraph:
    """Registry of target -> key -> subscribing effects.

    Targets are keyed by identity, so unhashable records like dict work.
    """

    def __init__(self) -> None:
        self._targets: weakref.WeakValueDictionary[int, _TargetDeps] = (
            weakref.WeakValueDictionary()
        )

    def record(self, target: object, key: Hashable) -> None:
        """Subscribe the active effect to (target, key).

        No-op outside an effect, or when the active effect has been stopped.
        """
        effect = active_effect.get()
        if effect is None or not effect.active:
            return

        entry = self._targets.get(id(target))
        if entry is None:
            entry = _TargetDeps(target)
            self._targets[id(target)] = entry

        dep = entry.deps.get(key)
        if dep is None:
            dep = Dep(entry, key)
            entry.deps[key] = dep

        if effect not in dep.subscribers:
            dep.subscribers.add(effect)
            effect.deps.append(dep)
            logger.debug("track: %s[%r] -> effect #%d", type(target).__name__, key, effect.id)

    def notify(self, target: object, key: Hashable) -> None:
        """Re-run (or schedule) every effect subscribed to (target, key).

        Iterates a snapshot: runs may subscribe, unsubscribe or stop effects
        in the same Dep without disturbing this pass.
        """
        entry = self._targets.get(id(target))
        if entry is None:
            return
        dep = entry.deps.get(key)
        if dep is None:
            return

        snapshot = list(dep.subscribers)
        logger.debug("trigger: %s[%r] -> %d effects", type(target).__name__, key, len(snapshot))
        for effect in snapshot:
            # Stopped earlier in this pass, or writing a key it read itself.
            if not effect.active or effect.running:
                continue
            if effect.scheduler is not None:
                effect.scheduler()
            else:
                effect.run()

    def subscribers(self, target: object, key: Hashable) -> frozenset[ReactiveEffect]:
        """Effects currently subscribed to (target, key). Empty if none."""
        entry = self._targets.get(id(target))
        if entry is None:
            return frozenset()
        dep = entry.deps.get(key)
        if dep is None:
            return frozenset()
        return frozenset(dep.subscribers)

    def __contains__(self, target: object) -> bool:
        return id(target) in self._targets

    def __len__(self) -> int:
        return len(self._targets)

    def __repr__(self) -> str:
        return f"DependencyGraph({len(self._targets)} targets)"


# ─── Default graph ───────────────────────────────────────────────────────────
_default_graph = DependencyGraph()


def get_default_graph() -> DependencyGraph:
    """The graph used by views created without an explicit graph."""
    return _default_graph


def set_default_graph(graph: DependencyGraph) -> None:
    """Replace the default graph.

    Views already created keep reporting to the graph they were built with.
    Call once at startup, or around a test:

        reactivity.set_default_graph(DependencyGraph())
    """
    global _default_graph
    _default_graph = graph


def current_effect() -> ReactiveEffect | None:
    """The running effect, or None. Useful for testing."""
    return active_effect.get()
