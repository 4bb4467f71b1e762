"""Pipeline definition nodes: classification and validation.

A definition is a tree of single-key mappings::

    {"~pipe": [
        {"resize": {"width": 640}},
        {"~split": {"thumb": {"encode": None}, "full": {"store": {}}}},
    ]}

``~split`` and ``~pipe`` mark control nodes; any other single key names a
remote function (a leaf) whose value holds its parameters.

The interpreter classifies nodes lazily, one at a time, as it reaches them.
:func:`parse_tree` does the same walk eagerly for callers that want to
reject a bad definition before any remote call is made.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Tuple, Union

from .errors import (
    EmptyPipe,
    EmptySplit,
    InvalidParams,
    MalformedNode,
    UnknownControlNodeType,
)

SPLIT_KEY = "~split"
PIPE_KEY = "~pipe"
CONTROL_KEYS = frozenset({SPLIT_KEY, PIPE_KEY})


@dataclass(frozen=True)
class Leaf:
    """Remote function call: ``{name: params}``."""

    name: str
    params: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.params, MappingProxyType):
            object.__setattr__(self, "params", MappingProxyType(dict(self.params)))


@dataclass(frozen=True)
class Control:
    """Branch or stage item that is itself a control node.

    Holds the raw mapping; it is resolved by :func:`control_node` only when
    the interpreter descends into it.
    """

    node: Mapping[str, Any]


@dataclass(frozen=True)
class Split:
    """Concurrent fan-out. ``branches`` is an ordered tuple of ``(name, item)``.

    Items are raw definitions until :func:`parse_tree` resolves them.
    """

    branches: Tuple[Tuple[str, Any], ...]

    @classmethod
    def from_value(cls, value: Any) -> "Split":
        if isinstance(value, Mapping) and value:
            return cls(branches=tuple((str(k), v) for k, v in value.items()))
        if isinstance(value, (list, tuple)) and value:
            return cls(branches=tuple((str(i), v) for i, v in enumerate(value)))
        raise EmptySplit()


@dataclass(frozen=True)
class Pipe:
    """Sequential stages; each stage replaces the payload for the next."""

    stages: Tuple[Any, ...]

    @classmethod
    def from_value(cls, value: Any) -> "Pipe":
        if isinstance(value, (list, tuple)) and value:
            return cls(stages=tuple(value))
        raise EmptyPipe()


Node = Union[Leaf, Split, Pipe]


def _type_name(value: Any) -> str:
    return type(value).__name__


def _key_list(node: Mapping[str, Any]) -> str:
    return ",".join(str(key) for key in node)


def classify(item: Any) -> Union[Leaf, Control]:
    """Classify a split branch or pipe stage.

    Raises:
        MalformedNode: *item* is not a mapping with exactly one key.
        InvalidParams: leaf parameters are not ``None`` or a mapping.
    """
    if not isinstance(item, Mapping):
        raise MalformedNode(
            f'Bad FaaS pipeline: node must be an object not "{_type_name(item)}"'
        )
    if len(item) != 1:
        raise MalformedNode(
            f'Bad FaaS pipeline: node must have exactly one property "{_key_list(item)}"'
        )

    name, params = next(iter(item.items()))
    if name in CONTROL_KEYS:
        return Control(node=item)

    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise InvalidParams(name)

    return Leaf(name=name, params=params)


def control_node(node: Any) -> Union[Split, Pipe]:
    """Resolve a mapping that must be a ``~split`` or ``~pipe`` node.

    The root of a definition and every nested control item go through here.
    """
    if not isinstance(node, Mapping):
        raise MalformedNode(
            f'Bad FaaS pipeline: control node must be an object not "{_type_name(node)}"'
        )
    if len(node) != 1:
        raise MalformedNode(
            "Bad FaaS pipeline: control node must have exactly one property "
            f'not "{_key_list(node)}"'
        )

    key, value = next(iter(node.items()))
    if key == SPLIT_KEY:
        return Split.from_value(value)
    if key == PIPE_KEY:
        return Pipe.from_value(value)
    raise UnknownControlNodeType(key)


def parse_tree(node: Any) -> Union[Split, Pipe]:
    """Validate a whole definition and return it as a tree of node objects.

    Raises the same errors, with the same messages, as a run would on its
    first bad node (visited depth-first in declaration order).
    """
    control = control_node(node)

    def _resolve(item: Any) -> Node:
        classified = classify(item)
        if isinstance(classified, Leaf):
            return classified
        return parse_tree(classified.node)

    if isinstance(control, Split):
        return dataclasses.replace(
            control,
            branches=tuple((name, _resolve(item)) for name, item in control.branches),
        )
    return dataclasses.replace(
        control, stages=tuple(_resolve(item) for item in control.stages)
    )
