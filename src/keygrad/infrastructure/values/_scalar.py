"""
Scalar reference backend.

`ScalarValue` is an autograd value over Python floats. Its context is always
`Size()`. Operations taking another value are binary operators; operations
taking a Python number bake the number into a unary operator.
"""

from __future__ import annotations

import math
from typing import Callable, Optional, Sequence, Union

from ...domain._node import INode
from ...domain._registry import IAutogradValueRegistry
from ...domain._size import Size
from .._autograd_value import AutogradValue
from ._arithmetic import ValueMixinArithmetic

Number = Union[int, float]


def _same_context(left: Size, right: Size) -> Size:
    return left


def _keep_context(context: Size) -> Size:
    return context


class ScalarValue(ValueMixinArithmetic, AutogradValue["ScalarValue", float, Size]):
    """
    Differentiable scalar.

    Parameters
    ----------
    data : Callable[[], float]
        Payload producer.
    context : Size, optional
        Defaults to `Size()`.
    requires_grad : bool, optional
    create_graph : bool, optional
    children : Sequence[INode], optional
    registry : IAutogradValueRegistry, optional
    """

    def __init__(
        self,
        data: Callable[[], float],
        context: Optional[Size] = None,
        requires_grad: bool = False,
        create_graph: bool = False,
        children: Optional[Sequence[INode]] = None,
        *,
        registry: Optional[IAutogradValueRegistry] = None,
    ) -> None:
        super().__init__(
            data,
            Size() if context is None else context,
            requires_grad,
            create_graph,
            children,
            registry=registry,
        )

    # ------------------------------------------------------------------
    # Backend extension points
    # ------------------------------------------------------------------
    def create_autograd_value(
        self,
        data: Callable[[], float],
        context: Size,
        children: Sequence[INode],
        requires_grad: bool,
        create_graph: bool,
    ) -> "ScalarValue":
        """
        Construct a new `ScalarValue`; used for every derived value.
        """
        return ScalarValue(data, context, requires_grad, create_graph, children)

    def multiplicative_identity(self) -> float:
        """Return ``1.0``, the default backward seed."""
        return 1.0

    def additive_identity(self) -> float:
        """Return ``0.0``, the start of every gradient accumulation."""
        return 0.0

    def _number_payload(self, number: Number) -> float:
        return float(number)

    def _scalar_context(self) -> Size:
        return Size()

    @property
    def item(self) -> float:
        """
        Evaluate and return the payload as a Python float.
        """
        return float(self._data.get())

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------
    def add(self, other: Union["ScalarValue", Number]) -> "ScalarValue":
        """
        Addition.

        Parameters
        ----------
        other : Union[ScalarValue, Number]
            Right-hand operand. A number is baked into a unary operator.

        Returns
        -------
        ScalarValue
            ``self + other``.

        Notes
        -----
        Backward rule: ``da = g`` and ``db = g``.
        """
        if isinstance(other, ScalarValue):
            return self.apply_binary_operator(
                other,
                lambda a, b: a + b,
                lambda g, p: g,
                lambda g, p: g,
                _same_context,
                "add",
            )
        n = float(other)
        return self.apply_unary_operator(
            lambda a: a + n, lambda g, x: g, _keep_context, "add"
        )

    def sub(self, other: Union["ScalarValue", Number]) -> "ScalarValue":
        """
        Subtraction. For ``a - b``: ``da = g`` and ``db = -g``.
        """
        if isinstance(other, ScalarValue):
            return self.apply_binary_operator(
                other,
                lambda a, b: a - b,
                lambda g, p: g,
                lambda g, p: g.neg(),
                _same_context,
                "sub",
            )
        n = float(other)
        return self.apply_unary_operator(
            lambda a: a - n, lambda g, x: g, _keep_context, "sub"
        )

    def mul(self, other: Union["ScalarValue", Number]) -> "ScalarValue":
        """
        Multiplication. For ``a * b``: ``da = g * b`` and ``db = g * a``.

        The backward rules are built from differentiable operations, so the
        gradients are themselves differentiable under ``keep_graph``.
        """
        if isinstance(other, ScalarValue):
            return self.apply_binary_operator(
                other,
                lambda a, b: a * b,
                lambda g, p: g.mul(p[1]),
                lambda g, p: g.mul(p[0]),
                _same_context,
                "mul",
            )
        n = float(other)
        return self.apply_unary_operator(
            lambda a: a * n, lambda g, x: g.mul(n), _keep_context, "mul"
        )

    def div(self, other: Union["ScalarValue", Number]) -> "ScalarValue":
        """
        Division. For ``a / b``: ``da = g / b`` and ``db = -g * a / b^2``.
        """
        if isinstance(other, ScalarValue):
            return self.apply_binary_operator(
                other,
                lambda a, b: a / b,
                lambda g, p: g.div(p[1]),
                lambda g, p: g.neg().mul(p[0]).div(p[1].mul(p[1])),
                _same_context,
                "div",
            )
        n = float(other)
        return self.apply_unary_operator(
            lambda a: a / n, lambda g, x: g.div(n), _keep_context, "div"
        )

    def neg(self) -> "ScalarValue":
        """Negation; the gradient is ``-g``."""
        return self.apply_unary_operator(
            lambda a: -a, lambda g, x: g.neg(), _keep_context, "neg"
        )

    def pow(self, exponent: Number) -> "ScalarValue":
        """
        Raise to a constant power.

        Parameters
        ----------
        exponent : Number
            Constant exponent ``n``.

        Returns
        -------
        ScalarValue
            ``self ** n``.

        Notes
        -----
        Backward rule: ``dx = g * n * x^(n - 1)``.
        """
        n = float(exponent)
        return self.apply_unary_operator(
            lambda a: a**n,
            lambda g, x: g.mul(x.pow(n - 1.0).mul(n)),
            _keep_context,
            "pow",
        )

    def __pow__(self, exponent: Number) -> "ScalarValue":
        return self.pow(exponent)

    # ------------------------------------------------------------------
    # Nonlinearities
    # ------------------------------------------------------------------
    def relu(self) -> "ScalarValue":
        """
        Rectified linear unit, ``max(x, 0)``.

        The gradient is ``g`` where ``x >= 0`` and zero elsewhere, so it
        passes through at exactly zero.
        """
        return self.apply_unary_operator(
            lambda a: 0.0 if a < 0 else a,
            lambda g, x: g.mul(0.0) if x.data.get() < 0 else g,
            _keep_context,
            "relu",
        )

    def exp(self) -> "ScalarValue":
        """Natural exponential; the gradient is ``g * exp(x)``."""
        return self.apply_unary_operator(
            math.exp, lambda g, x: g.mul(x.exp()), _keep_context, "exp"
        )

    def log(self) -> "ScalarValue":
        """
        Natural logarithm; the gradient is ``g / x``.

        Raises
        ------
        ValueError
            On evaluation, if the payload is not positive.
        """
        return self.apply_unary_operator(
            math.log, lambda g, x: g.div(x), _keep_context, "log"
        )

    def sigmoid(self) -> "ScalarValue":
        """
        Logistic function. The gradient is ``s * (1 - s)`` with ``s`` the
        sigmoid of the operand.
        """

        def backward(g: "ScalarValue", x: "ScalarValue") -> "ScalarValue":
            s = x.sigmoid()
            return g.mul(s.mul(s.neg().add(1.0)))

        return self.apply_unary_operator(
            lambda a: 1.0 / (1.0 + math.exp(-a)), backward, _keep_context, "sigmoid"
        )

    def __repr__(self) -> str:
        label = f", name={self._name!r}" if self._name else ""
        if self._data.is_cached:
            return f"ScalarValue({self._data.get()!r}{label}, requires_grad={self._requires_grad})"
        return f"ScalarValue(<pending>{label}, requires_grad={self._requires_grad})"
