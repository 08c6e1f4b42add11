"""reactivity: fine-grained reactive dependency tracking for Python."""

from importlib.metadata import version as _version

__version__ = _version("reactivity")

from reactivity._tracking import DependencyGraph, get_default_graph, set_default_graph
from reactivity.reactive import ReactiveDict, ReactiveObject, reactive, is_reactive, to_raw
from reactivity.effect import ReactiveEffect, EffectRunner, effect, stop
from reactivity.computed import Computed, computed

__all__ = [
    "reactive",
    "is_reactive",
    "to_raw",
    "ReactiveDict",
    "ReactiveObject",
    "effect",
    "stop",
    "ReactiveEffect",
    "EffectRunner",
    "Computed",
    "computed",
    "DependencyGraph",
    "get_default_graph",
    "set_default_graph",
]
