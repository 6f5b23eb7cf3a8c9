"""
NumPy ndarray reference backend.

`NDArrayValue` is an autograd value over `numpy.ndarray` payloads, with a
`Size` context mirroring the array shape.

Broadcasting
------------
Elementwise binary operators follow NumPy broadcasting. The result context is
`Size.broadcast_with` of the operand contexts, and each operand's gradient
contribution is reduced back to the operand's own shape with
:meth:`NDArrayValue.sum_to_size`. Both `sum_to_size` and `broadcast_to` are
themselves differentiable, so broadcast gradients stay correct under
`keep_graph=True` and higher-order passes.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np

from ...domain._node import INode
from ...domain._registry import IAutogradValueRegistry
from ...domain._size import Size
from .._autograd_value import AutogradValue
from ._arithmetic import ValueMixinArithmetic

Number = Union[int, float]


def _sum_to_shape_reduce_axes(
    src_shape: Tuple[int, ...], target_shape: Tuple[int, ...]
) -> Tuple[Tuple[int, ...], int]:
    """
    Compute the axes to sum over when reducing `src_shape` to `target_shape`.

    Returns
    -------
    reduce_axes : tuple[int, ...]
        Axes of the source to sum with ``keepdims=True``.
    pad : int
        Number of leading dimensions to drop afterwards.

    Raises
    ------
    ValueError
        If `target_shape` could not have been broadcast to `src_shape`.
    """
    src = tuple(int(d) for d in src_shape)
    tgt = tuple(int(d) for d in target_shape)

    if len(tgt) > len(src):
        raise ValueError(f"target_shape rank {len(tgt)} > src rank {len(src)}")

    pad = len(src) - len(tgt)
    padded_tgt = (1,) * pad + tgt

    for i, (sd, td) in enumerate(zip(src, padded_tgt)):
        if td not in (1, sd):
            raise ValueError(
                f"Cannot sum_to_shape from {src_shape} to {target_shape}: "
                f"dim mismatch at axis {i}: src={sd}, target={td}"
            )

    reduce_axes = tuple(
        i for i, (sd, td) in enumerate(zip(src, padded_tgt)) if td == 1 and sd != 1
    )
    return reduce_axes, pad


def sum_to_shape(array: np.ndarray, target_shape: Tuple[int, ...]) -> np.ndarray:
    """
    Sum-reduce `array` to `target_shape` (the inverse of broadcasting).
    """
    array = np.asarray(array)
    reduce_axes, pad = _sum_to_shape_reduce_axes(array.shape, target_shape)
    out = array.sum(axis=reduce_axes, keepdims=True) if reduce_axes else array
    if pad:
        out = out.reshape(out.shape[pad:])
    return np.array(out.reshape(tuple(target_shape)), copy=True)


def _broadcast_context(left: Size, right: Size) -> Size:
    return left.broadcast_with(right)


def _keep_context(context: Size) -> Size:
    return context


class NDArrayValue(ValueMixinArithmetic, AutogradValue["NDArrayValue", np.ndarray, Size]):
    """
    Differentiable NumPy array.

    Parameters
    ----------
    data : Callable[[], np.ndarray]
        Payload producer. The produced array's shape should match `context`.
    context : Size
        Shape of the payload.
    requires_grad : bool, optional
    create_graph : bool, optional
    children : Sequence[INode], optional
    registry : IAutogradValueRegistry, optional
    dtype : np.dtype, optional
        Element dtype used for identities and lifted constants.
        Defaults to float64.
    """

    def __init__(
        self,
        data: Callable[[], np.ndarray],
        context: Size,
        requires_grad: bool = False,
        create_graph: bool = False,
        children: Optional[Sequence[INode]] = None,
        *,
        registry: Optional[IAutogradValueRegistry] = None,
        dtype: np.dtype = np.float64,
    ) -> None:
        self._dtype = np.dtype(dtype)
        super().__init__(
            data, context, requires_grad, create_graph, children, registry=registry
        )

    # ------------------------------------------------------------------
    # Backend extension points
    # ------------------------------------------------------------------
    def create_autograd_value(
        self,
        data: Callable[[], np.ndarray],
        context: Size,
        children: Sequence[INode],
        requires_grad: bool,
        create_graph: bool,
    ) -> "NDArrayValue":
        return NDArrayValue(
            data, context, requires_grad, create_graph, children, dtype=self._dtype
        )

    def multiplicative_identity(self) -> np.ndarray:
        return np.ones(self._context.dims, dtype=self._dtype)

    def additive_identity(self) -> np.ndarray:
        return np.zeros(self._context.dims, dtype=self._dtype)

    def _number_payload(self, number: Number) -> np.ndarray:
        return np.asarray(number, dtype=self._dtype)

    def _scalar_context(self) -> Size:
        return Size()

    def _as_value(self, other: Union["NDArrayValue", Number]) -> "NDArrayValue":
        if isinstance(other, NDArrayValue):
            return other
        return self._lift(other)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._context.dims

    def numpy(self) -> np.ndarray:
        """
        Return a host copy of the payload.
        """
        return np.array(self._data.get(), dtype=self._dtype, copy=True)

    # ------------------------------------------------------------------
    # Shape plumbing
    # ------------------------------------------------------------------
    def sum_to_size(self, size: Size) -> "NDArrayValue":
        """
        Sum-reduce to `size`. Returns `self` when the shapes already match.
        """
        if self._context == size:
            return self
        dims = size.dims
        return self.apply_unary_operator(
            lambda a: sum_to_shape(a, dims),
            lambda g, x: g.broadcast_to(x.context),
            lambda _: size,
            "sum_to_size",
        )

    def broadcast_to(self, size: Size) -> "NDArrayValue":
        """
        Broadcast to `size`. Returns `self` when the shapes already match.
        """
        if self._context == size:
            return self
        dims = size.dims
        return self.apply_unary_operator(
            lambda a: np.array(np.broadcast_to(a, dims), copy=True),
            lambda g, x: g.sum_to_size(x.context),
            lambda _: size,
            "broadcast_to",
        )

    # ------------------------------------------------------------------
    # Elementwise arithmetic
    # ------------------------------------------------------------------
    def add(self, other: Union["NDArrayValue", Number]) -> "NDArrayValue":
        other = self._as_value(other)
        return self.apply_binary_operator(
            other,
            np.add,
            lambda g, p: g.sum_to_size(p[0].context),
            lambda g, p: g.sum_to_size(p[1].context),
            _broadcast_context,
            "add",
        )

    def sub(self, other: Union["NDArrayValue", Number]) -> "NDArrayValue":
        other = self._as_value(other)
        return self.apply_binary_operator(
            other,
            np.subtract,
            lambda g, p: g.sum_to_size(p[0].context),
            lambda g, p: g.neg().sum_to_size(p[1].context),
            _broadcast_context,
            "sub",
        )

    def mul(self, other: Union["NDArrayValue", Number]) -> "NDArrayValue":
        other = self._as_value(other)
        return self.apply_binary_operator(
            other,
            np.multiply,
            lambda g, p: g.mul(p[1]).sum_to_size(p[0].context),
            lambda g, p: g.mul(p[0]).sum_to_size(p[1].context),
            _broadcast_context,
            "mul",
        )

    def div(self, other: Union["NDArrayValue", Number]) -> "NDArrayValue":
        other = self._as_value(other)
        return self.apply_binary_operator(
            other,
            np.divide,
            lambda g, p: g.div(p[1]).sum_to_size(p[0].context),
            lambda g, p: g.neg().mul(p[0]).div(p[1].mul(p[1])).sum_to_size(p[1].context),
            _broadcast_context,
            "div",
        )

    def neg(self) -> "NDArrayValue":
        return self.apply_unary_operator(
            np.negative, lambda g, x: g.neg(), _keep_context, "neg"
        )

    # ------------------------------------------------------------------
    # Elementwise nonlinearities
    # ------------------------------------------------------------------
    def relu(self) -> "NDArrayValue":
        def backward(g: "NDArrayValue", x: "NDArrayValue") -> "NDArrayValue":
            x_data = x.data
            dtype = x.dtype
            mask = x._derive(
                lambda: (x_data.get() >= 0).astype(dtype), x.context, [], False, False
            )
            return g.mul(mask)

        return self.apply_unary_operator(
            lambda a: np.maximum(a, 0), backward, _keep_context, "relu"
        )

    def exp(self) -> "NDArrayValue":
        return self.apply_unary_operator(
            np.exp, lambda g, x: g.mul(x.exp()), _keep_context, "exp"
        )

    def log(self) -> "NDArrayValue":
        return self.apply_unary_operator(
            np.log, lambda g, x: g.div(x), _keep_context, "log"
        )

    # ------------------------------------------------------------------
    # Reductions / linear algebra
    # ------------------------------------------------------------------
    def sum(self) -> "NDArrayValue":
        """
        Sum of all elements, as a 0-d value.
        """
        dtype = self._dtype
        return self.apply_unary_operator(
            lambda a: np.asarray(np.sum(a), dtype=dtype),
            lambda g, x: g.broadcast_to(x.context),
            lambda _: Size(),
            "sum",
        )

    def matmul(self, other: "NDArrayValue") -> "NDArrayValue":
        """
        2-D matrix product ``self @ other``.

        Backward: ``dA = g @ B^T`` and ``dB = A^T @ g``.

        Raises
        ------
        ValueError
            If either operand is not 2-D or the inner dimensions differ.
        """
        if self._context.ndim != 2 or other.context.ndim != 2:
            raise ValueError(
                f"matmul requires 2D values, got {self._context} and {other.context}"
            )
        n, k1 = self._context.dims
        k2, m = other.context.dims
        if k1 != k2:
            raise ValueError(
                f"matmul shape mismatch: {self._context} @ {other.context} "
                f"(inner dims {k1} vs {k2})"
            )
        return self.apply_binary_operator(
            other,
            np.matmul,
            lambda g, p: g.matmul(p[1].t()),
            lambda g, p: p[0].t().matmul(g),
            lambda a, b: Size(a[0], b[1]),
            "matmul",
        )

    def __matmul__(self, other: "NDArrayValue") -> "NDArrayValue":
        return self.matmul(other)

    def t(self) -> "NDArrayValue":
        """
        2-D transpose.
        """
        if self._context.ndim != 2:
            raise ValueError(f"t() requires a 2D value, got {self._context}")
        return self.apply_unary_operator(
            lambda a: np.ascontiguousarray(a.T),
            lambda g, x: g.t(),
            lambda c: c.transpose(),
            "t",
        )

    def __repr__(self) -> str:
        label = f", name={self._name!r}" if self._name else ""
        return (
            f"NDArrayValue(shape={self._context.dims}, dtype={self._dtype}{label}, "
            f"requires_grad={self._requires_grad})"
        )
