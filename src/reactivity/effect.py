"""Effects: computations that re-run when the reactive state they read changes.

An effect runs once when registered. Every read it makes through a reactive
view subscribes it to that (target, key); a changed write to any of those
re-runs it, or hands it to its scheduler if it has one.

Subscriptions are rebuilt from scratch on every run, so an effect that reads
different keys on different runs is only ever subscribed to the keys of its
latest run.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Callable, Generic, TypeVar

from reactivity._tracking import active_effect

if TYPE_CHECKING:
    from reactivity._tracking import Dep

T = TypeVar("T")

Scheduler = Callable[[], None]

logger = logging.getLogger("reactivity.effect")

_id_counter = itertools.count(1)


class ReactiveEffect(Generic[T]):
    """A re-runnable computation with dependency tracking.

    States: active (initial) -> stopped (terminal, via stop() only).
    """

    __slots__ = ("id", "fn", "scheduler", "active", "running", "deps", "__weakref__")

    def __init__(self, fn: Callable[[], T], scheduler: Scheduler | None = None) -> None:
        self.id = next(_id_counter)
        self.fn = fn
        self.scheduler = scheduler
        self.active = True
        self.running = False
        # Every Dep this effect is a member of, in subscription order.
        self.deps: list[Dep] = []

    def run(self) -> T:
        """Execute fn, re-tracking dependencies unless stopped."""
        if not self.active:
            return self.fn()

        self._cleanup()

        was_running = self.running
        token = active_effect.set(self)
        self.running = True
        try:
            return self.fn()
        finally:
            self.running = was_running
            active_effect.reset(token)

    def stop(self) -> None:
        """Unsubscribe from everything. Idempotent; safe inside own run."""
        if not self.active:
            return
        self._cleanup()
        self.active = False
        logger.debug("stop: effect #%d", self.id)

    def _cleanup(self) -> None:
        for dep in self.deps:
            dep.discard(self)
        self.deps.clear()

    def __repr__(self) -> str:
        state = "active" if self.active else "stopped"
        name = getattr(self.fn, "__name__", type(self.fn).__name__)
        return f"ReactiveEffect(#{self.id}, {name}, {state}, {len(self.deps)} deps)"


class EffectRunner(Generic[T]):
    """Caller-facing handle returned by effect().

    Calling it re-runs the effect; .effect is the underlying instance.
    """

    __slots__ = ("effect",)

    def __init__(self, effect: ReactiveEffect[T]) -> None:
        self.effect = effect

    def __call__(self) -> T:
        return self.effect.run()

    def stop(self) -> None:
        self.effect.stop()

    def __repr__(self) -> str:
        return f"EffectRunner({self.effect!r})"


def effect(fn: Callable[[], T], *, scheduler: Scheduler | None = None) -> EffectRunner[T]:
    """Run fn immediately, then re-run whenever any reactive key it read changes.

    Returns an EffectRunner (call .stop() to stop).

    Usage:
        state = reactive({"count": 0})
        log = []

        runner = effect(lambda: log.append(state["count"]))
        # log == [0], ran immediately

        state["count"] = 1
        # log == [0, 1], count changed

        runner.stop()
        state["count"] = 2
        # log == [0, 1], stopped

    With a scheduler, changes call scheduler() instead of re-running; the
    scheduler decides when to call runner() itself:

        queue = []
        runner = effect(render, scheduler=lambda: queue.append(runner))
    """
    e = ReactiveEffect(fn, scheduler)
    e.run()  # Initial run to establish dependencies
    return EffectRunner(e)


def stop(runner: EffectRunner) -> None:
    """Stop the effect behind runner."""
    runner.effect.stop()
