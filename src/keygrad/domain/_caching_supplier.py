"""
Lazy payload supplier interface.

Autograd values never hold their payload directly; they hold a supplier that
produces it on demand. This module defines the structural contract such a
supplier satisfies.
"""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class ICachingSupplier(Protocol[T_co]):
    """
    Deferred computation of a value that is memoized after first evaluation.

    Notes
    -----
    Implementations are also callable; `supplier()` is equivalent to
    `supplier.get()`, which lets a caching supplier be passed anywhere a
    plain zero-argument producer is accepted.
    """

    def get(self) -> T_co:
        """
        Evaluate the wrapped producer on first call and return the cached
        result on every later call.
        """
        ...

    def clear_cache(self) -> None:
        """
        Discard the cached value so the next `get` re-evaluates the producer.
        """
        ...

    def __call__(self) -> T_co: ...
