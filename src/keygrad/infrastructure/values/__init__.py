"""
Reference backends: scalar floats and NumPy arrays.

- ``ScalarValue`` / ``ScalarValueFactory``
- ``NDArrayValue`` / ``NDArrayValueFactory``
"""

from ._arithmetic import ValueMixinArithmetic
from ._factories import NDArrayValueFactory, ScalarValueFactory
from ._ndarray import NDArrayValue, sum_to_shape
from ._scalar import ScalarValue

__all__ = [
    ValueMixinArithmetic.__name__,
    NDArrayValueFactory.__name__,
    ScalarValueFactory.__name__,
    NDArrayValue.__name__,
    ScalarValue.__name__,
    sum_to_shape.__name__,
]
