"""
Concrete engine: caching supplier, graph nodes, the autograd value engine,
resource registries and the reference backends.
"""

from ._autograd_value import AutogradValue
from ._caching_supplier import CachingSupplier
from ._logging import get_logger
from ._node import GradNode, ValueNode
from ._node_wrapper import ValueNodeWrapper
from ._registry import AutogradValueRegistry, RegistryContext, default_registry_context
from .values import (
    NDArrayValue,
    NDArrayValueFactory,
    ScalarValue,
    ScalarValueFactory,
)

__all__ = [
    AutogradValue.__name__,
    CachingSupplier.__name__,
    get_logger.__name__,
    GradNode.__name__,
    ValueNode.__name__,
    ValueNodeWrapper.__name__,
    AutogradValueRegistry.__name__,
    RegistryContext.__name__,
    default_registry_context.__name__,
    NDArrayValue.__name__,
    NDArrayValueFactory.__name__,
    ScalarValue.__name__,
    ScalarValueFactory.__name__,
]
