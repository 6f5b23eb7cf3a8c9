"""
Reverse-mode autograd engine.

`AutogradValue` is the abstract, payload-agnostic differentiable value. A
concrete backend fixes the payload type `D` (e.g. `float` or
`numpy.ndarray`) and the context type `C` (e.g. `Size`) and supplies a small
set of extension points:

- `create_autograd_value(data, context, children, requires_grad, create_graph)`
- `multiplicative_identity()` / `additive_identity()`
- `add(other)`

Everything else (operator application, gradient accumulation, the backward
driver and identity-preserving gradient handles) lives here.

Design notes
------------
- Every value carries a `_ValueHandle`: a one-slot cell whose target is the
  object currently holding the value's state. Nodes and backward closures
  resolve their value through the handle, never through a captured object,
  so `swap_with` only has to exchange the two state bundles and redirect
  the two handles.
- Backward closures pick their capture mode when they run: with
  `keep_graph=True` they use the live, graph-connected operands and incoming
  gradient; otherwise they use fresh leaf snapshots so repeated passes never
  extend the graph.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from typing_extensions import Self

from ..domain._backward_config import BackwardConfig
from ..domain._errors import (
    AccumulatorStateError,
    BackwardNotAllowedError,
    InvalidBackwardConfigError,
    InvalidConstructionError,
    RegistryNotAttachedError,
    SwapNotSupportedError,
)
from ..domain._node import INode
from ..domain._registry import IAutogradValueRegistry
from ._caching_supplier import CachingSupplier
from ._logging import get_logger
from ._node import GradNode, ValueNode

V = TypeVar("V", bound="AutogradValue")
D = TypeVar("D")
C = TypeVar("C")

BinaryBackward = Callable[[Any, Tuple[Any, Any]], Any]
UnaryBackward = Callable[[Any, Any], Any]

logger = get_logger("autograd")

_UNSET: Any = object()

# State exchanged by `swap_with`, besides the handle.
_SWAPPED_STATE = (
    "_value_node",
    "_grad_node",
    "_data",
    "_context",
    "_requires_grad",
    "_create_graph",
)


class _ValueHandle:
    """Redirectable reference to the object carrying a value's state."""

    __slots__ = ("target",)

    def __init__(self, target: Any) -> None:
        self.target = target


def _unset_gradient() -> None:
    return None


def _fold(first: "AutogradValue", second: "AutogradValue") -> "AutogradValue":
    return first.add(second).instance


class AutogradValue(ABC, Generic[V, D, C]):
    """
    Abstract differentiable value.

    Parameters
    ----------
    data : Callable[[], D]
        Zero-argument producer of the payload. Evaluated lazily and memoized.
    context : C
        Context descriptor of the payload (e.g. its shape).
    requires_grad : bool, optional
        Whether gradients should be accumulated for this value.
    create_graph : bool, optional
        Whether gradient computations through this value should themselves
        be recorded, enabling higher-order derivatives.
    children : Sequence[INode], optional
        Predecessor value nodes. Empty for leaves.
    registry : IAutogradValueRegistry, optional
        Registry the value attaches and registers itself to.

    Raises
    ------
    InvalidConstructionError
        If `data` is None.
    """

    def __init__(
        self,
        data: Callable[[], D],
        context: C,
        requires_grad: bool = False,
        create_graph: bool = False,
        children: Optional[Sequence[INode[Any]]] = None,
        *,
        registry: Optional[IAutogradValueRegistry] = None,
    ) -> None:
        if data is None:
            raise InvalidConstructionError(type(self).__name__)

        self._data: CachingSupplier[D] = CachingSupplier(data)
        self._context = context
        self._requires_grad = bool(requires_grad)
        self._create_graph = bool(create_graph)
        self._name: Optional[str] = None
        self._closed = False
        self._cached_grad: Optional[V] = None
        self._registry: Optional[IAutogradValueRegistry] = None

        self._handle = _ValueHandle(self.get_initial_instance())
        handle = self._handle
        self._value_node: ValueNode[V] = ValueNode(
            lambda: handle.target, list(children) if children is not None else None
        )
        # The installed empty supplier seals the accumulator against set_value.
        self._grad_node: GradNode[V] = GradNode(_unset_gradient)

        if registry is not None:
            self.attach_registry(registry)

    # ------------------------------------------------------------------
    # Extension points
    # ------------------------------------------------------------------
    @abstractmethod
    def create_autograd_value(
        self,
        data: Callable[[], D],
        context: C,
        children: Sequence[INode[Any]],
        requires_grad: bool,
        create_graph: bool,
    ) -> V:
        """
        Construct a new value of the concrete backend type.
        """
        raise NotImplementedError

    @abstractmethod
    def multiplicative_identity(self) -> D:
        """
        Return the payload `1` shaped by this value's context.
        """
        raise NotImplementedError

    @abstractmethod
    def additive_identity(self) -> D:
        """
        Return the payload `0` shaped by this value's context.
        """
        raise NotImplementedError

    @abstractmethod
    def add(self, other: V) -> V:
        """
        Differentiable addition; also used to fold gradient contributions.
        """
        raise NotImplementedError

    def get_initial_instance(self) -> Any:
        """
        Return the object this value's handle initially points at.

        Returns
        -------
        Any
            `self` by default. Backends that front their state with a proxy
            object may return it here.
        """
        return self

    def _prepare_incoming_gradient(self, grad: V, use_native: bool) -> V:
        """
        Hook applied to the incoming gradient before a backward function
        computes this value's contribution. Identity by default.
        """
        return grad

    def _adapt_gradient(
        self, incoming_data: CachingSupplier[D], contribution: V, target: V
    ) -> V:
        """
        Hook applied to a computed contribution before it is accumulated
        into `target`. Identity by default.
        """
        return contribution

    def _release(self) -> None:
        """
        Release payload resources. Called once by `close`.
        """

    # ------------------------------------------------------------------
    # Accessors / fluent mutators
    # ------------------------------------------------------------------
    @property
    def data(self) -> CachingSupplier[D]:
        """
        Lazy holder of this value's payload.

        Returns
        -------
        CachingSupplier[D]
            The memoizing holder. Call `.get()` to evaluate the payload.
        """
        return self._data

    def data_(self, data: Callable[[], D]) -> Self:
        """
        Replace the payload producer. The previous holder is discarded, not
        mutated.
        """
        if data is None:
            raise InvalidConstructionError(type(self).__name__)
        self._data = CachingSupplier(data)
        return self.instance

    @property
    def context(self) -> C:
        """
        Context descriptor of the payload (e.g. its `Size`).
        """
        return self._context

    @property
    def requires_grad(self) -> bool:
        """
        Whether gradients are accumulated for this value.
        """
        return self._requires_grad

    def requires_grad_(self, requires_grad: bool = True) -> Self:
        """
        Set the `requires_grad` flag in place.

        Parameters
        ----------
        requires_grad : bool, optional
            New flag value. Defaults to True.

        Returns
        -------
        Self
            The current instance, for chaining.
        """
        self._requires_grad = bool(requires_grad)
        return self.instance

    @property
    def create_graph(self) -> bool:
        """
        Whether gradient computations through this value are recorded.

        Set on the root by `backward` from `BackwardConfig.keep_graph`.
        """
        return self._create_graph

    @property
    def name(self) -> Optional[str]:
        """
        Optional debug label.
        """
        return self._name

    def name_(self, name: str) -> Self:
        """
        Set the debug label and return the current instance.
        """
        self._name = name
        return self.instance

    @property
    def instance(self) -> V:
        """
        Object currently carrying this value's state.

        This is `self` unless the value took part in a `swap_with`, in
        which case it is the object its state moved into.
        """
        return self._handle.target

    @property
    def value_node(self) -> ValueNode[V]:
        """
        Forward-graph node of this value.
        """
        return self._value_node

    @property
    def grad_node(self) -> GradNode[V]:
        """
        Gradient accumulator of this value.
        """
        return self._grad_node

    # ------------------------------------------------------------------
    # Gradient access
    # ------------------------------------------------------------------
    @property
    def grad(self) -> Optional[V]:
        """
        Return the accumulated gradient, or None if nothing was accumulated.

        Once a gradient handle has been returned, later reads return the same
        object: if the accumulator moved on to a new value in the meantime,
        the old handle and the new value exchange state and the accumulator
        is re-pointed at the old handle.
        """
        current = self._grad_node.value
        if current is None:
            return None

        cached = self._cached_grad
        if cached is not None and cached is not current:
            cached.swap_with(current)
            self._grad_node.rebind(cached)
        else:
            self._cached_grad = current
        return self._cached_grad

    def zero_grad(self) -> None:
        """
        Reset the gradient accumulator to the unset state.
        """
        self._grad_node.clear()

    def add_to_grad(self, contribution: V) -> None:
        """
        Accumulate `contribution` into this value's gradient.

        Does nothing unless the value requires grad or records its gradient
        graph. The first contribution is folded onto a fresh zero leaf so the
        accumulator never aliases an object owned by another node.
        """
        if not (self._requires_grad or self._create_graph):
            return
        if self._grad_node.value is None:
            self._grad_node.add_(self._leaf(self.additive_identity, False), _fold)
        self._grad_node.add_(contribution, _fold)

    # ------------------------------------------------------------------
    # Operator application
    # ------------------------------------------------------------------
    def apply_binary_operator(
        self,
        other: V,
        forward: Callable[[D, D], D],
        back_this: Optional[BinaryBackward],
        back_other: Optional[BinaryBackward],
        context_mapper: Callable[[C, C], C],
        op: Optional[str] = None,
    ) -> V:
        """
        Apply a differentiable binary operator.

        Parameters
        ----------
        other : V
            Right-hand operand.
        forward : Callable[[D, D], D]
            Payload computation, evaluated lazily on first access.
        back_this, back_other : Callable[[V, tuple[V, V]], V] or None
            Map `(incoming_grad, (this, other))` to the gradient contribution
            for the respective operand. None means no gradient flows there.
        context_mapper : Callable[[C, C], C]
            Computes the result context from the operand contexts.
        op : str, optional
            Operation label recorded on the result's value node.

        Returns
        -------
        V
            The result value. It requires grad if either operand does.
        """
        this_data, other_data = self._data, other.data
        this_ref, other_ref = self._handle, other._handle

        result = self._derive(
            lambda: forward(this_data.get(), other_data.get()),
            context_mapper(self._context, other.context),
            [self._value_node, other.value_node],
            False,
            False,
        )
        if self._requires_grad or other.requires_grad:
            result.requires_grad_(True)

        def backward_function(value: V, config: BackwardConfig) -> None:
            incoming = value.grad_node.value
            if incoming is None:
                return
            this, that = this_ref.target, other_ref.target
            if config.keep_graph:
                operands = (this, that)
            else:
                operands = (this._snapshot(), that._snapshot())
                incoming = incoming._snapshot()

            if back_this is not None:
                this._contribute(back_this, incoming, operands)
            if back_other is not None and that.requires_grad:
                that._contribute(back_other, incoming, operands)

        result.value_node.set_backward_function(backward_function)
        result.value_node.op = op
        return result

    def apply_unary_operator(
        self,
        forward: Callable[[D], D],
        back_this: Optional[UnaryBackward],
        context_mapper: Callable[[C], C],
        op: Optional[str] = None,
    ) -> V:
        """
        Apply a differentiable unary operator.

        The result inherits `requires_grad` and `create_graph` from this
        value. `back_this` maps `(incoming_grad, this)` to the contribution.
        """
        this_data = self._data
        this_ref = self._handle

        result = self._derive(
            lambda: forward(this_data.get()),
            context_mapper(self._context),
            [self._value_node],
            self._requires_grad,
            self._create_graph,
        )

        def backward_function(value: V, config: BackwardConfig) -> None:
            incoming = value.grad_node.value
            if incoming is None or back_this is None:
                return
            this = this_ref.target
            if config.keep_graph:
                operand = this
            else:
                operand = this._snapshot()
                incoming = incoming._snapshot()
            this._contribute(back_this, incoming, operand)

        result.value_node.set_backward_function(backward_function)
        result.value_node.op = op
        return result

    # ------------------------------------------------------------------
    # Backward driver
    # ------------------------------------------------------------------
    def backward(self, grad: Optional[V] = _UNSET, config: BackwardConfig = _UNSET) -> None:
        """
        Run a reverse-mode pass seeded at this value.

        Parameters
        ----------
        grad : V, optional
            Seed gradient. Defaults to a leaf over the multiplicative
            identity. A `BackwardConfig` passed here is taken as `config`,
            and a lone positional None is taken as a null config. The seed
            is copied into the accumulator, never stored by reference.
        config : BackwardConfig, optional
            Pass configuration. Defaults to `BackwardConfig()`.

        Raises
        ------
        InvalidBackwardConfigError
            If `config` is None, or None is the only argument.
        BackwardNotAllowedError
            If this value does not require grad.
        AccumulatorStateError
            If this value's accumulator already holds a gradient (call
            `zero_grad` or pass `zero_grad=True` to start a fresh pass).
        """
        if config is _UNSET and (grad is None or isinstance(grad, BackwardConfig)):
            grad, config = None, grad
        if grad is _UNSET:
            grad = None
        if config is _UNSET:
            config = BackwardConfig()
        if config is None:
            raise InvalidBackwardConfigError()
        if not self._requires_grad:
            raise BackwardNotAllowedError(self._name)

        self._create_graph = config.keep_graph
        order = self._topological_order()

        if config.zero_grad:
            for node in order:
                owner = node.get_value()
                if owner is not None:
                    owner.zero_grad()

        if grad is None:
            grad = self._leaf(self.multiplicative_identity, config.keep_graph)

        if self._grad_node.value is not None:
            raise AccumulatorStateError(
                "Gradient accumulator of the backward root already holds a value; "
                "clear it with zero_grad() before running another pass."
            )
        self._grad_node.add_(self._leaf(self.additive_identity, config.keep_graph), _fold)
        self._grad_node.add_(grad.instance, _fold)

        logger.debug(
            "backward pass over %d node(s) (keep_graph=%s, zero_grad=%s)",
            len(order),
            config.keep_graph,
            config.zero_grad,
        )
        for node in reversed(order):
            node.backward(config)

    def _topological_order(self) -> List[INode[Any]]:
        """
        Return the value nodes reachable from this value in post-order.

        Every node appears exactly once and after all of its predecessors.
        The traversal is iterative so long chains do not hit the recursion
        limit.
        """
        order: List[INode[Any]] = []
        visited = set()
        stack: List[Tuple[INode[Any], bool]] = [(self._value_node, False)]

        while stack:
            node, expanded = stack.pop()
            if expanded:
                order.append(node)
                continue
            if id(node) in visited:
                continue
            visited.add(id(node))
            stack.append((node, True))
            for child in reversed(node.prev):
                if id(child) not in visited:
                    stack.append((child, False))
        return order

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    def swap_with(self, other: V) -> None:
        """
        Exchange state with `other`.

        The two objects trade their value node, gradient node, payload,
        context and gradient flags, and each handle is redirected to the
        object that now carries its state.

        Raises
        ------
        SwapNotSupportedError
            If `other` is not an `AutogradValue`.
        """
        if not isinstance(other, AutogradValue):
            raise SwapNotSupportedError(type(other).__name__)
        if other is self:
            return

        for attr in _SWAPPED_STATE:
            mine = getattr(self, attr)
            setattr(self, attr, getattr(other, attr))
            setattr(other, attr, mine)

        self._handle, other._handle = other._handle, self._handle
        self._handle.target, other._handle.target = (
            other._handle.target,
            self._handle.target,
        )
        logger.debug("swapped state of %r and %r", self._name, other._name)

    # ------------------------------------------------------------------
    # Registry / lifecycle
    # ------------------------------------------------------------------
    @property
    def registry(self) -> Optional[IAutogradValueRegistry]:
        """
        Attached registry, or None.
        """
        return self._registry

    def attach_registry(self, registry: IAutogradValueRegistry) -> Self:
        """
        Attach `registry` and register this value with it.
        """
        self._registry = registry
        registry.register(self)
        return self.instance

    def register(self) -> Self:
        """
        Register this value with its attached registry.

        Raises
        ------
        RegistryNotAttachedError
            If no registry is attached.
        """
        if self._registry is None:
            raise RegistryNotAttachedError()
        self._registry.register(self)
        return self.instance

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """
        Mark the value closed and release its payload resources.

        Idempotent; `_release` runs at most once.
        """
        if self._closed:
            return
        self._closed = True
        self._release()

    def __enter__(self) -> Self:
        return self.instance

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _derive(
        self,
        data: Callable[[], D],
        context: C,
        children: Sequence[INode[Any]],
        requires_grad: bool,
        create_graph: bool,
    ) -> V:
        value = self.create_autograd_value(
            data, context, children, requires_grad, create_graph
        )
        if self._registry is not None and value.registry is None:
            value.attach_registry(self._registry)
        return value

    def _leaf(self, data: Callable[[], D], create_graph: bool) -> V:
        return self._derive(data, self._context, [], False, create_graph)

    def _snapshot(self) -> V:
        """
        Return a fresh leaf sharing this value's payload holder.
        """
        return self._derive(self._data, self._context, [], False, False).instance

    def _contribute(self, back: Callable[..., V], incoming: V, operands: Any) -> None:
        use_native = (
            not self._grad_node.disable_native_gradient
            and self._grad_node.native_grad() is not None
        )
        prepared = self._prepare_incoming_gradient(incoming, use_native)
        contribution = back(prepared, operands)
        self.add_to_grad(self._adapt_gradient(prepared.data, contribution, self))
