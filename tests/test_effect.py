"""Tests for ReactiveEffect, effect(), EffectRunner and stop()."""

import logging

import pytest

from reactivity import EffectRunner, ReactiveEffect, effect, reactive, stop, to_raw
from reactivity._tracking import current_effect


class TestEffect:
    def test_runs_immediately(self):
        state = reactive({"n": 10})
        log = []
        effect(lambda: log.append(state["n"]))
        assert log == [10]

    def test_reruns_on_change(self):
        state = reactive({"n": 10})
        log = []
        effect(lambda: log.append(state["n"]))
        state["n"] = 20
        assert log == [10, 20]

    def test_returns_runner(self):
        state = reactive({"n": 1})
        runner = effect(lambda: state["n"] * 2)
        assert isinstance(runner, EffectRunner)
        assert isinstance(runner.effect, ReactiveEffect)
        assert runner() == 2

    def test_decorator(self):
        state = reactive({"n": 1})
        log = []

        @effect
        def watcher():
            log.append(state["n"])

        state["n"] = 2
        assert log == [1, 2]
        assert isinstance(watcher, EffectRunner)

    def test_multiple_keys(self):
        state = reactive({"count": 0, "message": "Hello"})
        log = []
        effect(lambda: log.append((state["count"], state["message"])))
        state["count"] += 1
        state["message"] = "Hello again"
        assert log == [(0, "Hello"), (1, "Hello"), (1, "Hello again")]

    def test_untracked_reads_outside_effect(self, graph):
        original = {"n": 1}
        state = reactive(original, graph=graph)
        state["n"]
        assert original not in graph


class TestDynamicDependencies:
    def test_stale_branch_dropped(self, graph):
        original = {"flag": True, "a": 1, "b": 2}
        state = reactive(original, graph=graph)
        log = []
        runner = effect(lambda: log.append(state["a"] if state["flag"] else state["b"]))
        assert graph.subscribers(original, "a") == {runner.effect}
        assert graph.subscribers(original, "b") == frozenset()

        state["flag"] = False
        assert log == [1, 2]
        assert graph.subscribers(original, "a") == frozenset()
        assert graph.subscribers(original, "b") == {runner.effect}

        state["a"] = 100  # no longer a dependency
        assert log == [1, 2]
        state["b"] = 200
        assert log == [1, 2, 200]

    def test_deps_rebuilt_not_appended(self):
        state = reactive({"flag": True, "a": 1, "b": 2})
        runner = effect(lambda: state["a"] if state["flag"] else state["b"])
        assert len(runner.effect.deps) == 2
        state["flag"] = False
        assert len(runner.effect.deps) == 2
        state["flag"] = True
        assert len(runner.effect.deps) == 2


class TestStop:
    def test_stop_prevents_rerun(self):
        state = reactive({"n": 10})
        log = []
        runner = effect(lambda: log.append(state["n"]))
        runner.stop()
        state["n"] = 20
        assert log == [10]

    def test_stop_function(self):
        state = reactive({"n": 10})
        log = []
        runner = effect(lambda: log.append(state["n"]))
        stop(runner)
        state["n"] = 20
        assert log == [10]
        assert not runner.effect.active

    def test_stop_clears_both_sides(self, graph):
        original = {"a": 1, "b": 2}
        state = reactive(original, graph=graph)
        runner = effect(lambda: (state["a"], state["b"]))
        runner.stop()
        assert runner.effect.deps == []
        assert graph.subscribers(original, "a") == frozenset()
        assert graph.subscribers(original, "b") == frozenset()

    def test_stop_twice_is_noop(self):
        runner = effect(lambda: None)
        runner.stop()
        runner.stop()
        assert not runner.effect.active

    def test_run_after_stop_is_untracked(self, graph):
        original = {"n": 1}
        state = reactive(original, graph=graph)
        log = []
        runner = effect(lambda: log.append(state["n"]))
        runner.stop()
        state["n"] = 2
        runner()
        assert log == [1, 2]
        assert graph.subscribers(original, "n") == frozenset()
        state["n"] = 3
        assert log == [1, 2]

    def test_self_stop_inside_run(self, graph):
        original = {"n": 0, "m": 0}
        state = reactive(original, graph=graph)
        log = []
        holder = {}

        def fn():
            log.append(state["n"])
            if state["n"] > 0:
                holder["runner"].stop()
                state["m"]  # read after stopping: not tracked

        holder["runner"] = effect(fn)
        state["n"] = 1
        assert log == [0, 1]
        assert graph.subscribers(original, "n") == frozenset()
        assert graph.subscribers(original, "m") == frozenset()
        state["n"] = 2
        assert log == [0, 1]


class TestScheduler:
    def test_scheduler_called_instead_of_run(self):
        state = reactive({"n": 0})
        log = []
        scheduled = []
        runner = effect(lambda: log.append(state["n"]), scheduler=lambda: scheduled.append(1))
        assert log == [0]  # first run is always direct

        state["n"] = 1
        assert log == [0]
        assert scheduled == [1]

        runner()
        assert log == [0, 1]

    def test_deferred_queue(self):
        state = reactive({"n": 0})
        log = []
        queue = []
        runner = effect(lambda: log.append(state["n"]), scheduler=lambda: queue.append(runner))

        state["n"] = 1
        state["n"] = 2
        assert log == [0]
        pending, queue[:] = set(queue), []
        for r in pending:
            r()
        assert log == [0, 2]

    def test_stopped_effect_not_scheduled(self):
        state = reactive({"n": 0})
        scheduled = []
        runner = effect(lambda: state["n"], scheduler=lambda: scheduled.append(1))
        runner.stop()
        state["n"] = 1
        assert scheduled == []


class TestReentrancy:
    def test_self_increment_does_not_recurse(self):
        state = reactive({"count": 0})
        runs = []

        def bump():
            runs.append(state["count"])
            state["count"] = state["count"] + 1

        effect(bump)
        assert runs == [0]
        assert state["count"] == 1

        state["count"] = 10
        assert runs == [0, 10]
        assert state["count"] == 11

    def test_write_triggers_other_effect(self):
        state = reactive({"a": 0, "b": 0})
        log = []
        effect(lambda: log.append(("b", state["b"])))
        effect(lambda: state.__setitem__("b", state["a"] * 2))
        state["a"] = 5
        assert log == [("b", 0), ("b", 10)]

    def test_nested_effect_restores_outer(self):
        state = reactive({"a": 1, "b": 2})
        outer_log, inner_log = [], []

        def outer():
            effect(lambda: inner_log.append(state["b"]))
            # Still attributed to the outer effect after the inner one ran.
            outer_log.append(state["a"])

        effect(outer)
        assert outer_log == [1]
        assert inner_log == [2]

        state["a"] = 10
        assert outer_log == [1, 10]
        assert inner_log == [2, 2]

        state["b"] = 3  # inner effects only
        assert outer_log == [1, 10]
        assert inner_log == [2, 2, 3, 3]

    def test_slot_restored_after_nested_run(self):
        seen = []
        runner = effect(lambda: None)

        def outer():
            runner()
            seen.append(current_effect())

        outer_runner = effect(outer)
        assert seen == [outer_runner.effect]
        assert current_effect() is None


class TestErrors:
    def test_error_propagates_and_restores_slot(self):
        state = reactive({"n": 0})

        def boom():
            state["n"]
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            effect(boom)
        assert current_effect() is None

    def test_throwing_effect_keeps_tracked_reads(self):
        state = reactive({"n": 0})
        calls = []

        def fn():
            calls.append(state["n"])
            if state["n"] == 1:
                raise RuntimeError("bad value")

        runner = effect(fn)
        with pytest.raises(RuntimeError):
            state["n"] = 1
        assert to_raw(state)["n"] == 1  # write landed before notify
        assert not runner.effect.running
        state["n"] = 2
        assert calls == [0, 1, 2]


class TestRepr:
    def test_repr(self):
        def named():
            pass

        runner = effect(named)
        assert "named" in repr(runner.effect)
        assert "active" in repr(runner)
        runner.stop()
        assert "stopped" in repr(runner.effect)


class TestLogging:
    def test_stop_logged(self, caplog):
        runner = effect(lambda: None)
        with caplog.at_level(logging.DEBUG, logger="reactivity.effect"):
            runner.stop()
        assert f"stop: effect #{runner.effect.id}" in [r.getMessage() for r in caplog.records]
