"""Computed values: derived state with automatic dependency tracking.

A Computed wraps a function in a ReactiveEffect whose scheduler only marks
the cached result dirty. Nothing is recomputed until the next .get(), and
readers of the computed are notified once per invalidation.

Computed values are lazy: they only recompute when read.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from reactivity._tracking import DependencyGraph, get_default_graph
from reactivity.effect import ReactiveEffect

T = TypeVar("T")

_UNSET = object()


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_effect", "_graph", "_value", "_dirty", "__weakref__")

    def __init__(self, fn: Callable[[], T], *, graph: DependencyGraph | None = None) -> None:
        self._graph = graph if graph is not None else get_default_graph()
        self._value = _UNSET
        self._dirty = True
        self._effect: ReactiveEffect[T] = ReactiveEffect(fn, scheduler=self._invalidate)

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        self._graph.record(self, "value")
        if self._dirty or self._value is _UNSET or not self._effect.active:
            # Clean before running: if fn raises there is no cached value,
            # and the next invalidation must still reach our readers.
            self._dirty = False
            self._value = _UNSET
            self._value = self._effect.run()
        return self._value

    def _invalidate(self) -> None:
        """Scheduler for the inner effect: a dependency changed.

        Mark dirty and notify our own readers. We don't recompute eagerly;
        that happens on next .get().
        """
        if not self._dirty:
            self._dirty = True
            self._graph.notify(self, "value")

    def dispose(self) -> None:
        """Disconnect from all dependencies.

        A disposed computed still answers .get(), re-evaluating untracked
        every time.
        """
        self._effect.stop()
        self._dirty = True
        self._value = _UNSET

    def __repr__(self) -> str:
        state = "dirty" if self._dirty or self._value is _UNSET else f"cached={self._value!r}"
        name = getattr(self._effect.fn, "__name__", "?")
        return f"Computed({name}, {state})"


def computed(fn: Callable[[], T], *, graph: DependencyGraph | None = None) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Pass graph= (via functools.partial when decorating) to report to a
    graph other than the default one.

    Usage:
        state = reactive({"count": 0})

        @computed
        def doubled():
            return state["count"] * 2

        doubled.get()  # 0
        state["count"] = 5
        doubled.get()  # 10
    """
    return Computed(fn, graph=graph)
