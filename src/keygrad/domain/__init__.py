"""
Backend-agnostic contracts for keygrad.

This package holds the structural interfaces (values, nodes, suppliers,
registries, factories), the backward-pass configuration, the `Size` context
descriptor and the error taxonomy. Nothing here depends on a concrete
payload representation.
"""

from ._autograd_value import IAutogradValue, IAutogradValueFactory, ICloseable
from ._backward_config import BackwardConfig
from ._caching_supplier import ICachingSupplier
from ._errors import (
    AccumulatorStateError,
    AutogradError,
    BackwardNotAllowedError,
    GraphStructureError,
    InvalidBackwardConfigError,
    InvalidConstructionError,
    RegistryNotAttachedError,
    SwapNotSupportedError,
    UnclosedValueError,
)
from ._node import IGradNode, INode, IValueNode
from ._registry import IAutogradValueRegistry
from ._size import Size

__all__ = [
    IAutogradValue.__name__,
    IAutogradValueFactory.__name__,
    ICloseable.__name__,
    BackwardConfig.__name__,
    ICachingSupplier.__name__,
    AccumulatorStateError.__name__,
    AutogradError.__name__,
    BackwardNotAllowedError.__name__,
    GraphStructureError.__name__,
    InvalidBackwardConfigError.__name__,
    InvalidConstructionError.__name__,
    RegistryNotAttachedError.__name__,
    SwapNotSupportedError.__name__,
    UnclosedValueError.__name__,
    IGradNode.__name__,
    INode.__name__,
    IValueNode.__name__,
    IAutogradValueRegistry.__name__,
    Size.__name__,
]
