"""
Resource registry interface.

Registries record every autograd value created under them so that code
owning native or off-heap payloads can verify, at shutdown or at the end of
a test, that every value was explicitly closed.
"""

from __future__ import annotations

from typing import Iterator, Protocol, runtime_checkable

from ._autograd_value import ICloseable


@runtime_checkable
class IAutogradValueRegistry(Protocol):
    """
    Named collection of closeable values with a cooperative leak check.
    """

    @property
    def name(self) -> str: ...

    def register(self, value: ICloseable) -> None:
        """
        Track `value` in this registry.
        """
        ...

    def all_closed(self) -> bool:
        """
        Return True if every tracked value has been closed.
        """
        ...

    def close(self) -> None:
        """
        Close every tracked value that is not already closed.
        """
        ...

    def clear(self) -> None:
        """
        Forget every tracked value; fails if any of them is still open.
        """
        ...

    def status(self, print_status: bool = False) -> int:
        """
        Return the number of unclosed values, optionally reporting them.
        """
        ...

    def __iter__(self) -> Iterator[ICloseable]: ...

    def __len__(self) -> int: ...
