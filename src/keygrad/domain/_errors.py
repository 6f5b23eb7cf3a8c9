"""
Graph-construction and lifecycle exceptions for keygrad.

This module defines the error taxonomy raised by the autograd engine, its
graph nodes and the resource registry. Every error signals a programmer
mistake in how a computation graph was built or torn down; none of them are
retried or recovered from internally.

The exceptions subclass the closest built-in category (`ValueError` for bad
arguments, `RuntimeError` for illegal states, `TypeError` for unsupported
operand types) so callers can catch either the specific class or the
generic built-in one.
"""

from typing import Sequence


class AutogradError(Exception):
    """
    Common base class for all keygrad errors.
    """


class InvalidConstructionError(AutogradError, ValueError):
    """
    Raised when an autograd value is constructed without a payload producer.

    Attributes
    ----------
    owner : str
        Name of the class whose construction was rejected.
    """

    def __init__(self, owner: str) -> None:
        """
        Initialize the InvalidConstructionError.

        Parameters
        ----------
        owner : str
            Name of the class whose construction was rejected.
        """
        super().__init__(f"Data supplier can not be None (constructing {owner}).")
        self.owner = owner


class InvalidBackwardConfigError(AutogradError, ValueError):
    """
    Raised when `backward` is invoked with a `None` configuration.
    """

    def __init__(self) -> None:
        super().__init__("Backward configuration must not be None.")


class BackwardNotAllowedError(AutogradError, RuntimeError):
    """
    Raised when `backward` is invoked on a value that does not require grad.

    Attributes
    ----------
    name : str | None
        Optional debug name of the offending value.
    """

    def __init__(self, name: "str | None" = None) -> None:
        """
        Initialize the BackwardNotAllowedError.

        Parameters
        ----------
        name : str | None, optional
            Debug name of the value `backward` was called on.
        """
        label = f" '{name}'" if name else ""
        super().__init__(
            f"Cannot backpropagate through value{label} without requires_grad=True."
        )
        self.name = name


class AccumulatorStateError(AutogradError, RuntimeError):
    """
    Raised when a gradient accumulator is assigned while it already holds a value.

    This covers both the direct `GradNode.set_value` path and seeding the
    root of a backward pass whose accumulator was not cleared.
    """

    def __init__(self, detail: str = "Gradient accumulator already holds a value.") -> None:
        super().__init__(detail)


class GraphStructureError(AutogradError, RuntimeError):
    """
    Raised when a second gradient contribution is folded into an accumulator
    that also carries graph edges or a backward function.

    An accumulator node must not simultaneously be a graph-internal node and
    a raw accumulation target; reaching this state means two values alias
    the same node upstream.

    Attributes
    ----------
    num_prev : int
        Number of predecessor edges found on the accumulator.
    has_backward : bool
        Whether a backward function was attached to the accumulator.
    """

    def __init__(self, num_prev: int, has_backward: bool) -> None:
        """
        Initialize the GraphStructureError.

        Parameters
        ----------
        num_prev : int
            Number of predecessor edges found on the accumulator.
        has_backward : bool
            Whether a backward function was attached to the accumulator.
        """
        super().__init__(
            "Cannot accumulate into a gradient node that is part of the graph "
            f"(prev={num_prev}, backward_function={'set' if has_backward else 'unset'})."
        )
        self.num_prev = num_prev
        self.has_backward = has_backward


class RegistryNotAttachedError(AutogradError, RuntimeError):
    """
    Raised when a value is registered but no registry has been attached to it.
    """

    def __init__(self) -> None:
        super().__init__("No registry attached; cannot register autograd value.")


class UnclosedValueError(AutogradError, RuntimeError):
    """
    Raised when a registry is cleared while it still tracks unclosed values.

    Attributes
    ----------
    registry_name : str
        Name of the registry being cleared.
    unclosed : Sequence[object]
        The values that were never closed.
    """

    def __init__(self, registry_name: str, unclosed: Sequence[object]) -> None:
        """
        Initialize the UnclosedValueError.

        Parameters
        ----------
        registry_name : str
            Name of the registry being cleared.
        unclosed : Sequence[object]
            The values that were never closed.
        """
        super().__init__(
            f"Autograd value not closed: registry '{registry_name}' still holds "
            f"{len(unclosed)} unclosed value(s)."
        )
        self.registry_name = registry_name
        self.unclosed = tuple(unclosed)


class SwapNotSupportedError(AutogradError, TypeError):
    """
    Raised when `swap_with` targets an object that does not implement the
    engine's internal value contract.

    Attributes
    ----------
    target_type : str
        Name of the rejected target's type.
    """

    def __init__(self, target_type: str) -> None:
        """
        Initialize the SwapNotSupportedError.

        Parameters
        ----------
        target_type : str
            Name of the rejected target's type.
        """
        super().__init__(f"Swap not supported for instance of type '{target_type}'.")
        self.target_type = target_type
