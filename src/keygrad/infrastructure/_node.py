"""
Concrete value and gradient graph nodes.

`ValueNode` is the forward graph node every autograd value owns: it resolves
lazily to the owning value, lists the nodes consumed to produce it, and
carries the backward function installed by operator application.

`GradNode` is the gradient accumulator node. Its value transitions from
unset to set exactly once per pass; every further contribution is folded
in through a caller-supplied addition.

Both nodes resolve their value through a zero-argument supplier rather than
a direct reference. Values install a supplier that returns their *current
instance*, so a node keeps pointing at whichever object carries its state
after `AutogradValue.swap_with`.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, List, Optional, TypeVar

from ..domain._backward_config import BackwardConfig
from ..domain._errors import AccumulatorStateError, GraphStructureError
from ..domain._node import BackwardFunction, INode

V = TypeVar("V")
W = TypeVar("W")


def _constant(value: Any) -> Callable[[], Any]:
    return lambda: value


def _empty() -> None:
    return None


class ValueNode(Generic[V]):
    """
    Forward graph node.

    Parameters
    ----------
    value : Callable[[], V]
        Supplier resolving to the value this node represents.
    prev : list[INode], optional
        Ordered predecessor nodes (operands). Defaults to an empty list,
        which marks a leaf.
    backward_function : BackwardFunction, optional
        Function called as `fn(value, config)` during a backward pass.
    op : str, optional
        Label of the operation that produced the node (diagnostics only).

    Notes
    -----
    A node may be a predecessor of many downstream nodes; the graph formed
    by `prev` links is a DAG.
    """

    __slots__ = ("_value", "_prev", "_backward_function", "op")

    def __init__(
        self,
        value: Callable[[], Optional[V]],
        prev: Optional[List[INode[Any]]] = None,
        backward_function: Optional[BackwardFunction] = None,
        op: Optional[str] = None,
    ) -> None:
        self._value = value
        self._prev: List[INode[Any]] = list(prev) if prev is not None else []
        self._backward_function = backward_function
        self.op = op

    def get_value(self) -> Optional[V]:
        return self._value()

    @property
    def prev(self) -> List[INode[Any]]:
        return self._prev

    @property
    def backward_function(self) -> Optional[BackwardFunction]:
        return self._backward_function

    def set_backward_function(self, backward_function: BackwardFunction) -> None:
        self._backward_function = backward_function

    def backward(self, config: BackwardConfig) -> None:
        """
        Invoke the attached backward function with this node's current
        value and `config`. Leaves have no backward function; for them this
        is a no-op.
        """
        if self._backward_function is not None:
            self._backward_function(self.get_value(), config)

    def convert(
        self, mapper: Callable[[V], W], inverse_mapper: Callable[[W], V]
    ) -> "ValueNodeWrapper[V, W]":
        """
        View this node as a node over another value representation.

        Parameters
        ----------
        mapper : Callable[[V], W]
            Maps this node's values to the target representation.
        inverse_mapper : Callable[[W], V]
            Maps target-representation values back to this node's values.

        Returns
        -------
        ValueNodeWrapper[V, W]
            A proxy sharing this node's predecessors and backward function.
        """
        from ._node_wrapper import ValueNodeWrapper

        return ValueNodeWrapper(self, mapper, inverse_mapper)

    def __repr__(self) -> str:
        op = self.op or "leaf"
        return f"ValueNode(op={op!r}, prev={len(self._prev)})"


class GradNode(Generic[V]):
    """
    Gradient accumulator node.

    Parameters
    ----------
    value : Callable[[], V], optional
        Installed value supplier. Autograd values install a supplier that
        returns None ("unset"), which also seals the node against
        `set_value`; accumulation then goes through `add_`.
    native_gradient_supplier : Callable[[], Optional[V]], optional
        Supplier of a backend-computed gradient. Absent by default.
    prev : list[INode], optional
        Predecessor nodes. Left unset until first needed, then materialized
        to an empty list.
    backward_function : BackwardFunction, optional
        Only present on converted nodes; an accumulator that carries one
        refuses to fold a second contribution.
    """

    __slots__ = (
        "_value",
        "_prev",
        "_backward_function",
        "_native_gradient_supplier",
        "_disable_native_gradient",
    )

    def __init__(
        self,
        value: Optional[Callable[[], Optional[V]]] = None,
        native_gradient_supplier: Optional[Callable[[], Optional[V]]] = None,
        *,
        prev: Optional[List[INode[Any]]] = None,
        backward_function: Optional[BackwardFunction] = None,
    ) -> None:
        self._value = value
        self._prev = prev
        self._backward_function = backward_function
        self._native_gradient_supplier = native_gradient_supplier
        self._disable_native_gradient = False

    # ---------------------------------------------------------------------
    # Node surface
    # ---------------------------------------------------------------------
    def get_value(self) -> Optional[V]:
        if self._value is None:
            return None
        return self._value()

    @property
    def value(self) -> Optional[V]:
        return self.get_value()

    @property
    def prev(self) -> List[INode[Any]]:
        if self._prev is None:
            self._prev = []
        return self._prev

    @property
    def backward_function(self) -> Optional[BackwardFunction]:
        return self._backward_function

    def backward(self, config: BackwardConfig) -> None:
        if self._backward_function is not None:
            self._backward_function(self.get_value(), config)

    # ---------------------------------------------------------------------
    # Accumulation
    # ---------------------------------------------------------------------
    def set_value(self, value: Callable[[], V]) -> "GradNode[V]":
        """
        Initialise the accumulator with the value produced by `value`.

        Raises
        ------
        AccumulatorStateError
            If a value supplier is already installed, including the empty
            supplier autograd values install at construction.
        """
        if self._value is not None:
            raise AccumulatorStateError()
        if self._prev is None:
            self._prev = []
        self._value = _constant(value())
        return self

    def add_(self, value: V, add_function: Callable[[V, V], V]) -> "GradNode[V]":
        """
        Accumulate one gradient contribution.

        Parameters
        ----------
        value : V
            The contribution.
        add_function : Callable[[V, V], V]
            Backend addition used to fold `value` into the current total.

        Returns
        -------
        GradNode[V]
            This node.

        Raises
        ------
        GraphStructureError
            If the node already holds a value and also has predecessor edges
            or a backward function.
        """
        prev = self.prev
        current = self.get_value()
        if current is None:
            self._value = _constant(value)
            return self

        if prev or self._backward_function is not None:
            raise GraphStructureError(len(prev), self._backward_function is not None)

        total = add_function(current, value)
        self._value = _constant(total)
        return self

    def clear(self) -> None:
        """
        Return the accumulator to the unset state.
        """
        self._value = _empty

    def rebind(self, value: V) -> None:
        """
        Point the accumulator at `value` without any state check.

        Used by `AutogradValue.grad` after an identity-preserving swap: the
        previously handed-out handle now carries the accumulated state, so
        the accumulator is re-pointed at it.
        """
        self._value = _constant(value)

    # ---------------------------------------------------------------------
    # Native gradient
    # ---------------------------------------------------------------------
    def native_grad(self) -> Optional[V]:
        if self._native_gradient_supplier is None:
            return None
        return self._native_gradient_supplier()

    @property
    def native_gradient_supplier(self) -> Optional[Callable[[], Optional[V]]]:
        return self._native_gradient_supplier

    @native_gradient_supplier.setter
    def native_gradient_supplier(
        self, supplier: Optional[Callable[[], Optional[V]]]
    ) -> None:
        self._native_gradient_supplier = supplier

    @property
    def disable_native_gradient(self) -> bool:
        return self._disable_native_gradient

    @disable_native_gradient.setter
    def disable_native_gradient(self, value: bool) -> None:
        self._disable_native_gradient = bool(value)

    def convert(
        self, mapper: Callable[[V], W], inverse_mapper: Callable[[W], V]
    ) -> "GradNode[W]":
        """
        Build a gradient node over another value representation.

        The converted node shares this node's predecessor list, resolves its
        value through `mapper`, routes its backward function through
        `inverse_mapper`, and carries no native gradient.
        """
        source_value = self._value
        source_backward = self._backward_function

        def mapped_value() -> Optional[W]:
            v = source_value() if source_value is not None else None
            return None if v is None else mapper(v)

        mapped_backward = None
        if source_backward is not None:

            def mapped_backward(w: W, config: BackwardConfig) -> None:
                source_backward(inverse_mapper(w), config)

        return GradNode(mapped_value, prev=self.prev, backward_function=mapped_backward)

    def __repr__(self) -> str:
        state = "set" if self.get_value() is not None else "unset"
        return f"GradNode({state})"
