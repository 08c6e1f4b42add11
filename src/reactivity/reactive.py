"""Reactive views: transparent wrappers that track reads and notify writes.

reactive(target) returns a view over a plain keyed record:

- a MutableMapping (dict, ...) becomes a ReactiveDict, keyed by item;
- an object with a __dict__ becomes a ReactiveObject, keyed by attribute.

Reading a key through the view inside an effect subscribes the effect.
Writing a key through the view notifies subscribers when the value changed.
The view owns no data: reads and writes go straight to the target.

Views are cached per (target, graph) and held weakly, so the cache never
keeps a target alive.
"""

from __future__ import annotations

import logging
import types
import weakref
from collections.abc import MutableMapping
from typing import Any, Hashable, Iterator, TypeVar

from reactivity._tracking import DependencyGraph, get_default_graph

T = TypeVar("T")

logger = logging.getLogger("reactivity.reactive")

IS_REACTIVE = "__reactive__"
RAW = "__raw__"

_MISSING = object()

# Scalars compare by value; everything else by identity.
_SCALARS = (int, float, complex, str, bytes, bool, type(None))

# graph -> id(target) -> view
_views: weakref.WeakKeyDictionary[DependencyGraph, weakref.WeakValueDictionary[int, Any]] = (
    weakref.WeakKeyDictionary()
)


def has_changed(old: object, new: object) -> bool:
    """Shallow dirty check used by writes. Never compares structurally."""
    if old is new:
        return False
    if type(old) is type(new) and isinstance(old, _SCALARS):
        return old != new
    return True


class ReactiveDict(MutableMapping):
    """Tracking view over a mapping.

    Reads (view[k], get, in) track k. Writes and deletes notify k.
    Iteration and len() pass through untracked.
    """

    __slots__ = ("_reactive_target", "_reactive_graph", "__weakref__")

    __reactive__ = True

    def __init__(self, target: MutableMapping, graph: DependencyGraph) -> None:
        self._reactive_target = target
        self._reactive_graph = graph

    @property
    def __raw__(self) -> MutableMapping:
        return self._reactive_target

    def __getitem__(self, key: Hashable) -> Any:
        self._reactive_graph.record(self._reactive_target, key)
        return self._reactive_target[key]

    def __setitem__(self, key: Hashable, value: Any) -> None:
        target = self._reactive_target
        old = target.get(key, _MISSING)
        target[key] = value
        if has_changed(old, value):
            logger.debug("set: %s[%r] changed", type(target).__name__, key)
            self._reactive_graph.notify(target, key)

    def __delitem__(self, key: Hashable) -> None:
        target = self._reactive_target
        del target[key]
        logger.debug("delete: %s[%r]", type(target).__name__, key)
        self._reactive_graph.notify(target, key)

    def __iter__(self) -> Iterator:
        return iter(self._reactive_target)

    def __len__(self) -> int:
        return len(self._reactive_target)

    def __repr__(self) -> str:
        return f"ReactiveDict({self._reactive_target!r})"


def _class_attr(target: object, name: str) -> Any:
    """Look name up on type(target) without invoking descriptors."""
    for klass in type(target).__mro__:
        if name in vars(klass):
            return vars(klass)[name]
    return _MISSING


class ReactiveObject:
    """Tracking view over an object's attributes.

    Attribute reads track the attribute name; assignments and deletions
    notify it. Names defined on the view itself (__reactive__, __raw__,
    dunders) are answered by the view and never tracked.

    Methods and properties defined on the target's class run with the view
    as self, so the attributes they read and write are tracked too.
    """

    __slots__ = ("_reactive_target", "_reactive_graph", "__weakref__")

    __reactive__ = True

    def __init__(self, target: object, graph: DependencyGraph) -> None:
        object.__setattr__(self, "_reactive_target", target)
        object.__setattr__(self, "_reactive_graph", graph)

    @property
    def __raw__(self) -> object:
        return self._reactive_target

    def _reactive_class(self) -> type:
        return type(self._reactive_target)

    # isinstance(view, type(target)) holds, as methods bound to the view expect.
    __class__ = property(_reactive_class)

    def __getattr__(self, name: str) -> Any:
        # Only reached for names the view does not define itself.
        if name.startswith("_reactive_"):
            raise AttributeError(name)  # slots not set yet (copy, pickle)
        target = self._reactive_target
        attr = _class_attr(target, name)
        if isinstance(attr, property):
            return attr.__get__(self, type(target))
        if isinstance(attr, types.FunctionType) and name not in getattr(target, "__dict__", ()):
            return types.MethodType(attr, self)
        self._reactive_graph.record(target, name)
        return getattr(target, name)

    def __setattr__(self, name: str, value: Any) -> None:
        target = self._reactive_target
        attr = _class_attr(target, name)
        if isinstance(attr, property):
            attr.__set__(self, value)  # the setter writes back through the view
            return
        old = getattr(target, name, _MISSING)
        setattr(target, name, value)
        if has_changed(old, value):
            logger.debug("set: %s.%s changed", type(target).__name__, name)
            self._reactive_graph.notify(target, name)

    def __delattr__(self, name: str) -> None:
        target = self._reactive_target
        attr = _class_attr(target, name)
        if isinstance(attr, property):
            attr.__delete__(self)
            return
        delattr(target, name)
        logger.debug("delete: %s.%s", type(target).__name__, name)
        self._reactive_graph.notify(target, name)

    def __dir__(self) -> list[str]:
        return dir(self._reactive_target)

    def __repr__(self) -> str:
        return f"ReactiveObject({self._reactive_target!r})"


def is_reactive(obj: object) -> bool:
    """Is obj a reactive view?"""
    return getattr(obj, IS_REACTIVE, False) is True


def to_raw(obj: T) -> T:
    """The target behind a view, or obj itself if it is not a view."""
    if is_reactive(obj):
        return getattr(obj, RAW)
    return obj


def _view_class(target: object) -> type | None:
    if isinstance(target, MutableMapping):
        return ReactiveDict
    if (
        hasattr(target, "__dict__")
        and not isinstance(target, (type, types.ModuleType))
        and not callable(target)
    ):
        return ReactiveObject
    return None


def reactive(target: T, *, graph: DependencyGraph | None = None) -> T:
    """Return the reactive view of target.

    Views are returned as-is, and anything that is not a keyed record
    (numbers, strings, None, lists, tuples, functions, ...) comes back
    unchanged. The same target always yields the same live view.

    Usage:
        state = reactive({"count": 0})
        effect(lambda: print(state["count"]))  # prints 0
        state["count"] += 1                     # prints 1
    """
    if is_reactive(target):
        return target
    view_cls = _view_class(target)
    if view_cls is None:
        return target

    if graph is None:
        graph = get_default_graph()
    cache = _views.get(graph)
    if cache is None:
        cache = _views[graph] = weakref.WeakValueDictionary()

    view = cache.get(id(target))
    if view is None:
        view = view_cls(target, graph)
        cache[id(target)] = view
        logger.debug("reactive: wrapped %s", type(target).__name__)
    return view
