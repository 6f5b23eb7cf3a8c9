"""
Resource registry for autograd values.

Values whose payload owns native or off-heap resources must be closed
explicitly. A registry records every value created under it so a caller can
close them in bulk, or verify at the end of a scope that nothing leaked.

Registries are grouped in a `RegistryContext`, which is constructed
explicitly and handed to whoever creates values. `default_registry_context`
returns a process-wide context for convenience.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from ..domain._autograd_value import ICloseable
from ..domain._errors import UnclosedValueError
from ._logging import get_logger

logger = get_logger("registry")


class AutogradValueRegistry:
    """
    Named, insertion-ordered collection of closeable values.

    Parameters
    ----------
    name : str
        Registry name used in diagnostics.

    Notes
    -----
    Registration is idempotent per object. The registry is not synchronised.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._values: Dict[int, ICloseable] = {}

    @property
    def name(self) -> str:
        return self._name

    def register(self, value: ICloseable) -> None:
        self._values.setdefault(id(value), value)

    def unclosed(self) -> List[ICloseable]:
        return [v for v in self._values.values() if not v.closed]

    def all_closed(self) -> bool:
        return all(v.closed for v in self._values.values())

    def close(self) -> None:
        """Close every tracked value that is still open."""
        for value in list(self._values.values()):
            if not value.closed:
                value.close()

    def clear(self) -> None:
        """
        Forget every tracked value.

        Raises
        ------
        UnclosedValueError
            If any tracked value is still open. The registry is left intact.
        """
        unclosed = self.unclosed()
        if unclosed:
            raise UnclosedValueError(self._name, unclosed)
        self._values.clear()

    def status(self, print_status: bool = False) -> int:
        """
        Return the number of unclosed values.

        With `print_status`, each unclosed value is logged at WARNING and
        the totals at INFO.
        """
        unclosed = self.unclosed()
        if print_status:
            for value in unclosed:
                logger.warning(
                    "registry '%s': unclosed value %s (name=%r, requires_grad=%s)",
                    self._name,
                    type(value).__name__,
                    value.name,
                    value.requires_grad,
                )
            logger.info(
                "registry '%s': %d value(s), %d unclosed",
                self._name,
                len(self._values),
                len(unclosed),
            )
        return len(unclosed)

    def __iter__(self) -> Iterator[ICloseable]:
        return iter(list(self._values.values()))

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"AutogradValueRegistry(name={self._name!r}, size={len(self)})"


class RegistryContext:
    """
    Owner of a set of named registries.
    """

    def __init__(self) -> None:
        self._registries: Dict[str, AutogradValueRegistry] = {}

    def create(self, name: str) -> AutogradValueRegistry:
        """
        Return the registry called `name`, creating it on first use.
        """
        registry = self._registries.get(name)
        if registry is None:
            registry = AutogradValueRegistry(name)
            self._registries[name] = registry
        return registry

    def get(self, name: str) -> Optional[AutogradValueRegistry]:
        return self._registries.get(name)

    def all_closed(self) -> bool:
        return all(r.all_closed() for r in self._registries.values())

    def close(self) -> None:
        for registry in self._registries.values():
            registry.close()

    def clear(self) -> None:
        """
        Clear every registry, then forget them.

        Raises
        ------
        UnclosedValueError
            From the first registry that still holds an open value.
        """
        for registry in self._registries.values():
            registry.clear()
        self._registries.clear()

    def status(self, print_status: bool = False) -> int:
        return sum(r.status(print_status) for r in self._registries.values())

    def __iter__(self) -> Iterator[AutogradValueRegistry]:
        return iter(list(self._registries.values()))

    def __len__(self) -> int:
        return len(self._registries)


_DEFAULT_CONTEXT: Optional[RegistryContext] = None


def default_registry_context() -> RegistryContext:
    """Return the process-wide registry context, creating it on first use."""
    global _DEFAULT_CONTEXT
    if _DEFAULT_CONTEXT is None:
        _DEFAULT_CONTEXT = RegistryContext()
    return _DEFAULT_CONTEXT
