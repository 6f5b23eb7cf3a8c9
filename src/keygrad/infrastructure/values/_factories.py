"""
Leaf-value factories for the reference backends.

Factories are the entry point for creating leaves: they validate the payload
producer and attach the registry they were configured with.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import numpy as np

from ...domain._errors import InvalidConstructionError
from ...domain._registry import IAutogradValueRegistry
from ...domain._size import Size
from ._ndarray import NDArrayValue
from ._scalar import ScalarValue


class ScalarValueFactory:
    """
    Create `ScalarValue` leaves.

    Parameters
    ----------
    registry : IAutogradValueRegistry, optional
        Registry attached to every created value unless overridden per call.
    """

    def __init__(self, registry: Optional[IAutogradValueRegistry] = None) -> None:
        self._registry = registry

    def create(
        self,
        data: Callable[[], float],
        context: Optional[Size] = None,
        requires_grad: bool = False,
        registry: Optional[IAutogradValueRegistry] = None,
    ) -> ScalarValue:
        if data is None:
            raise InvalidConstructionError(ScalarValue.__name__)
        return ScalarValue(
            data,
            context,
            requires_grad,
            registry=registry if registry is not None else self._registry,
        )

    def scalar(self, value: float, requires_grad: bool = False) -> ScalarValue:
        """Create a leaf holding the constant `value`."""
        v = float(value)
        return self.create(lambda: v, requires_grad=requires_grad)


class NDArrayValueFactory:
    """
    Create `NDArrayValue` leaves.

    Parameters
    ----------
    registry : IAutogradValueRegistry, optional
        Registry attached to every created value unless overridden per call.
    dtype : np.dtype, optional
        Element dtype of created values. Defaults to float64.
    """

    def __init__(
        self,
        registry: Optional[IAutogradValueRegistry] = None,
        dtype: Any = np.float64,
    ) -> None:
        self._registry = registry
        self._dtype = np.dtype(dtype)

    def create(
        self,
        data: Callable[[], np.ndarray],
        context: Size,
        requires_grad: bool = False,
        registry: Optional[IAutogradValueRegistry] = None,
    ) -> NDArrayValue:
        if data is None:
            raise InvalidConstructionError(NDArrayValue.__name__)
        return NDArrayValue(
            data,
            context,
            requires_grad,
            registry=registry if registry is not None else self._registry,
            dtype=self._dtype,
        )

    def from_numpy(self, array: Any, requires_grad: bool = False) -> NDArrayValue:
        """
        Create a leaf over a copy of `array`, with the context taken from its
        shape.
        """
        arr = np.array(array, dtype=self._dtype, copy=True)
        return self.create(lambda: arr, Size.of(arr.shape), requires_grad)

    def zeros(self, *dims: int, requires_grad: bool = False) -> NDArrayValue:
        size = Size(*dims)
        dtype = self._dtype
        return self.create(lambda: np.zeros(size.dims, dtype=dtype), size, requires_grad)
