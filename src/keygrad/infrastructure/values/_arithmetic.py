"""
Arithmetic operator mixin for concrete autograd values.

This module declares :class:`ValueMixinArithmetic`, which maps Python's
arithmetic operators onto the named differentiable methods every reference
backend implements (`add`, `sub`, `mul`, `div`, `neg`).

Right-hand operators with a Python number on the left lift the number to a
constant leaf value first, so ``10 / x`` becomes a regular binary division
whose left operand does not require grad.
"""

from abc import ABC, abstractmethod
from typing import Any, Union

Number = Union[int, float]


class ValueMixinArithmetic(ABC):
    """
    Operator overloads shared by the reference backends.

    Notes
    -----
    - Left-hand operators delegate directly; the backend decides whether
      `other` is a value (binary operator) or a number (unary operator with
      the number baked into the forward function).
    - Right-hand subtraction and division are not commutative and go through
      :meth:`_lift`.
    """

    @abstractmethod
    def _number_payload(self, number: Number) -> Any:
        """
        Convert a Python number into this backend's payload type.
        """
        raise NotImplementedError

    def _lift(self, number: Number) -> Any:
        """
        Wrap `number` as a constant leaf value of this backend.
        """
        payload = self._number_payload(number)
        return self._derive(lambda: payload, self._scalar_context(), [], False, False)

    @abstractmethod
    def _scalar_context(self) -> Any:
        raise NotImplementedError

    # ----------------------------
    # Addition
    # ----------------------------
    def __add__(self, other):
        return self.add(other)

    def __radd__(self, other):
        return self.add(other)

    # ----------------------------
    # Subtraction
    # ----------------------------
    def __sub__(self, other):
        return self.sub(other)

    def __rsub__(self, other):
        return self._lift(other).sub(self)

    # ----------------------------
    # Multiplication
    # ----------------------------
    def __mul__(self, other):
        return self.mul(other)

    def __rmul__(self, other):
        return self.mul(other)

    # ----------------------------
    # True division
    # ----------------------------
    def __truediv__(self, other):
        return self.div(other)

    def __rtruediv__(self, other):
        return self._lift(other).div(self)

    def __neg__(self):
        return self.neg()
