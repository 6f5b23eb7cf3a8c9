"""
Node type adapter.

`ValueNodeWrapper` presents a value node over one value representation as a
value node over another, given a pair of mapping functions. It holds no
graph state of its own: predecessors, the backward function and the backward
call itself are all routed to the wrapped node.

This is used where two subsystems model the same value differently, for
example a backend that tracks native gradients alongside the generic graph.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, List, Optional, TypeVar

from ..domain._backward_config import BackwardConfig
from ..domain._node import BackwardFunction, INode, IValueNode

S = TypeVar("S")
T = TypeVar("T")


class ValueNodeWrapper(Generic[S, T]):
    """
    Proxy exposing an `IValueNode[S]` as an `IValueNode[T]`.

    Parameters
    ----------
    value_node : IValueNode[S]
        The node being adapted.
    mapper : Callable[[S], T]
        Maps source values to the target representation.
    reverse_mapper : Callable[[T], S]
        Maps target values back to the source representation.
    """

    __slots__ = ("_value_node", "_mapper", "_reverse_mapper")

    def __init__(
        self,
        value_node: IValueNode[S],
        mapper: Callable[[S], T],
        reverse_mapper: Callable[[T], S],
    ) -> None:
        self._value_node = value_node
        self._mapper = mapper
        self._reverse_mapper = reverse_mapper

    @property
    def wrapped(self) -> IValueNode[S]:
        return self._value_node

    def get_value(self) -> Optional[T]:
        value = self._value_node.get_value()
        return None if value is None else self._mapper(value)

    @property
    def prev(self) -> List[INode[Any]]:
        return self._value_node.prev

    @property
    def backward_function(self) -> Optional[BackwardFunction]:
        source = self._value_node.backward_function
        if source is None:
            return None

        def backward_function(value: T, config: BackwardConfig) -> None:
            source(self._reverse_mapper(value), config)

        return backward_function

    def set_backward_function(self, backward_function: BackwardFunction) -> None:
        """
        Install `backward_function` (written against `T`) on the wrapped node.
        """
        mapper = self._mapper

        def adapted(value: S, config: BackwardConfig) -> None:
            backward_function(mapper(value), config)

        self._value_node.set_backward_function(adapted)

    def backward(self, config: BackwardConfig) -> None:
        self._value_node.backward(config)

    def __repr__(self) -> str:
        return f"ValueNodeWrapper({self._value_node!r})"
