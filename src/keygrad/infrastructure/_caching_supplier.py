"""
Lazy memoized payload holder.
"""

from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class CachingSupplier(Generic[T]):
    """
    Wrap a zero-argument producer and memoize its result.

    The producer is invoked at most once between cache clears. Replacing a
    value's payload never mutates a holder in place; a fresh holder is
    installed instead, so memoization is per holder.

    Parameters
    ----------
    supplier : Callable[[], T]
        Deferred computation of the payload.
    """

    __slots__ = ("_supplier", "_value", "_calculated")

    def __init__(self, supplier: Callable[[], T]) -> None:
        self._supplier = supplier
        self._value: Optional[T] = None
        self._calculated = False

    def get(self) -> T:
        if not self._calculated:
            self._value = self._supplier()
            self._calculated = True
        return self._value

    def clear_cache(self) -> None:
        self._calculated = False
        self._value = None

    @property
    def is_cached(self) -> bool:
        return self._calculated

    def __call__(self) -> T:
        return self.get()

    def __repr__(self) -> str:
        state = repr(self._value) if self._calculated else "<pending>"
        return f"CachingSupplier({state})"
