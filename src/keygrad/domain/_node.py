"""
Graph node interfaces.

Every autograd value owns two nodes:

- a *value node* that records which nodes were consumed to produce the value
  and the backward function that propagates gradients to them, and
- a *gradient node* that accumulates the gradient flowing into the value.

Both are described here as structural protocols so that adapters (see
`ValueNodeWrapper`) and alternative implementations can stand in for the
concrete classes without inheritance.
"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    List,
    Optional,
    Protocol,
    TypeVar,
    runtime_checkable,
)

from ._backward_config import BackwardConfig

V = TypeVar("V")

BackwardFunction = Callable[[Any, BackwardConfig], None]
"""Callable invoked with (node value, active config) during a backward pass."""


@runtime_checkable
class INode(Protocol[V]):
    """
    Minimal node contract shared by value nodes and gradient nodes.
    """

    def get_value(self) -> Optional[V]:
        """
        Resolve and return the value this node currently stands for.
        """
        ...

    @property
    def prev(self) -> List["INode[Any]"]:
        """
        Ordered predecessor nodes (the operands consumed by this node).
        """
        ...

    def backward(self, config: BackwardConfig) -> None:
        """
        Invoke the attached backward function, if any.
        """
        ...


@runtime_checkable
class IValueNode(INode[V], Protocol[V]):
    """
    Forward graph node.

    A value node is created once per value and is immutable afterwards,
    except for the single backward-function assignment performed when the
    value is produced by an operator.
    """

    @property
    def backward_function(self) -> Optional[BackwardFunction]: ...

    def set_backward_function(self, backward_function: BackwardFunction) -> None:
        """
        Attach the function that propagates this node's gradient to `prev`.
        """
        ...


@runtime_checkable
class IGradNode(INode[V], Protocol[V]):
    """
    Gradient accumulator node.

    The accumulated value transitions from unset to set once, and every
    further contribution is folded in with a caller-supplied addition.
    """

    @property
    def value(self) -> Optional[V]: ...

    def set_value(self, value: Callable[[], V]) -> "IGradNode[V]":
        """
        Store the value produced by `value`; fails if already initialised.
        """
        ...

    def add_(self, value: V, add_function: Callable[[V, V], V]) -> "IGradNode[V]":
        """
        Fold `value` into the accumulator using `add_function`.
        """
        ...

    def native_grad(self) -> Optional[V]:
        """
        Return a backend-computed gradient, if the backend supplies one.
        """
        ...

    @property
    def disable_native_gradient(self) -> bool: ...
