"""
Autograd value interface definitions.

This module defines the domain-level contract for differentiable values
using structural typing. An autograd value wraps a lazily produced payload
(`D`) together with a context descriptor (`C`, e.g. a shape) and takes part
in a computation graph through its value node and gradient node.

The interface is intentionally backend-agnostic: scalar, NumPy and any other
payload representation satisfy it as long as they expose these members.
"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    Optional,
    Protocol,
    runtime_checkable,
)

from ._backward_config import BackwardConfig
from ._caching_supplier import ICachingSupplier
from ._node import IGradNode, IValueNode


Producer = Callable[[], Any]
"""Zero-argument callable producing a payload."""


@runtime_checkable
class ICloseable(Protocol):
    """
    Resource-lifecycle contract consumed by registries.
    """

    @property
    def closed(self) -> bool: ...

    @property
    def name(self) -> Optional[str]: ...

    @property
    def requires_grad(self) -> bool: ...

    def close(self) -> None:
        """
        Release any resources owned by the payload. Idempotent.
        """
        ...


@runtime_checkable
class IAutogradValue(ICloseable, Protocol):
    """
    Differentiable value interface.

    Notes
    -----
    - Mutators with a trailing underscore (`requires_grad_`, `name_`,
      `data_`) are fluent and return the current instance.
    - `grad` preserves identity: once a gradient handle has been handed out,
      later reads return the same object, updated in place.
    """

    # ---------------------------------------------------------------------
    # Payload / context
    # ---------------------------------------------------------------------
    @property
    def data(self) -> ICachingSupplier[Any]:
        """
        Return the lazy, memoized payload supplier.
        """
        ...

    @property
    def context(self) -> Any:
        """
        Return the context descriptor (e.g. `Size`) of this value.
        """
        ...

    def data_(self, data: Producer) -> Any:
        """
        Replace the payload producer and return the current instance.
        """
        ...

    # ---------------------------------------------------------------------
    # Flags / identity
    # ---------------------------------------------------------------------
    @property
    def create_graph(self) -> bool: ...

    @property
    def instance(self) -> Any:
        """
        Return the object that currently carries this value's state.
        """
        ...

    def requires_grad_(self, requires_grad: bool) -> Any: ...

    def name_(self, name: str) -> Any: ...

    # ---------------------------------------------------------------------
    # Graph
    # ---------------------------------------------------------------------
    @property
    def value_node(self) -> IValueNode[Any]: ...

    @property
    def grad_node(self) -> IGradNode[Any]: ...

    @property
    def grad(self) -> Optional[Any]:
        """
        Return the accumulated gradient, or None before any backward pass.
        """
        ...

    def backward(
        self, grad: Optional[Any] = ..., config: Optional[BackwardConfig] = ...
    ) -> None:
        """
        Run a reverse-mode pass seeded at this value.
        """
        ...

    def add(self, other: Any) -> Any:
        """
        Backend addition, used to fold gradient contributions.
        """
        ...

    def swap_with(self, other: Any) -> None:
        """
        Exchange identity, nodes and payload with `other`.
        """
        ...


@runtime_checkable
class IAutogradValueFactory(Protocol):
    """
    Factory contract used to construct leaf values.
    """

    def create(self, data: Producer, context: Any) -> IAutogradValue:
        """
        Create a leaf value from a payload producer and a context.

        Raises
        ------
        InvalidConstructionError
            If `data` is None.
        """
        ...
