"""
Shape descriptor used as the context type of the reference backends.

`Size` is a small immutable value object describing the dimensions of a
payload. Operators propagate it alongside payload values through their
context mappers, combining sizes with NumPy-style broadcasting rules.
"""

from __future__ import annotations

import operator
from typing import Iterable, Iterator


class Size:
    """
    Immutable tuple of non-negative dimensions.

    Parameters
    ----------
    *dims : int
        Dimension sizes. No arguments describes a scalar (rank 0).

    Raises
    ------
    ValueError
        If any dimension is negative.
    TypeError
        If any dimension is not an integer.

    Notes
    -----
    `__slots__` keeps instances lightweight; sizes are created for every
    derived value in a graph.
    """

    __slots__ = ("_dims",)

    def __init__(self, *dims: int) -> None:
        normalized = []
        for d in dims:
            if isinstance(d, bool):
                raise TypeError("Size dimensions must be integers, got bool")
            try:
                d = operator.index(d)
            except TypeError:
                raise TypeError(
                    f"Size dimensions must be integers, got {type(d).__name__}"
                ) from None
            if d < 0:
                raise ValueError(f"Size dimensions must be non-negative, got {d}")
            normalized.append(d)
        self._dims: tuple[int, ...] = tuple(normalized)

    @classmethod
    def of(cls, dims: Iterable[int]) -> "Size":
        """
        Build a Size from any iterable of dimensions (e.g. `ndarray.shape`).
        """
        return cls(*tuple(dims))

    @property
    def dims(self) -> tuple[int, ...]:
        return self._dims

    @property
    def ndim(self) -> int:
        return len(self._dims)

    def numel(self) -> int:
        """
        Return the total number of elements described by this size.
        """
        n = 1
        for d in self._dims:
            n *= d
        return n

    def broadcast_with(self, other: "Size") -> "Size":
        """
        Combine two sizes under NumPy broadcasting rules.

        Parameters
        ----------
        other : Size
            The size of the other operand.

        Returns
        -------
        Size
            The broadcast result size.

        Raises
        ------
        ValueError
            If the two sizes are not broadcast-compatible.
        """
        a, b = self._dims, other.dims
        rank = max(len(a), len(b))
        a = (1,) * (rank - len(a)) + a
        b = (1,) * (rank - len(b)) + b

        out = []
        for i, (da, db) in enumerate(zip(a, b)):
            if da == db or db == 1:
                out.append(da)
            elif da == 1:
                out.append(db)
            else:
                raise ValueError(
                    f"Cannot broadcast {self} with {other}: "
                    f"dim mismatch at axis {i}: {da} vs {db}"
                )
        return Size(*out)

    def transpose(self) -> "Size":
        """
        Return the size with its dimensions reversed.
        """
        return Size(*reversed(self._dims))

    def __getitem__(self, index: int) -> int:
        return self._dims[index]

    def __len__(self) -> int:
        return len(self._dims)

    def __iter__(self) -> Iterator[int]:
        return iter(self._dims)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Size):
            return self._dims == other.dims
        if isinstance(other, tuple):
            return self._dims == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._dims)

    def __repr__(self) -> str:
        return f"Size({', '.join(str(d) for d in self._dims)})"
