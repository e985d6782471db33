"""
#####################################
Dense matrices (:mod:`fixmat.matrix`)
#####################################

.. currentmodule:: fixmat.matrix

This module provides dense matrices whose dimensions are part of their type.

Matrices
========

.. autosummary::
    :toctree: generated/

    Matrix

Constructors
============

.. autosummary::
    :toctree: generated/

    eye
    ones
    zeros

Miscellaneous
=============

.. autosummary::
    :toctree: generated/

    isequal
    ShapeError

"""

import logging
import numbers
import operator
import sys
import threading
from collections.abc import Iterator
from typing import IO, Any, ClassVar, Self

import numpy as np
import numpy.typing as npt

from fixmat.context import getcontext
from fixmat.typing import ArrayLike, Scalar

_LOG: logging.Logger = logging.getLogger(__name__)


class ShapeError(ValueError):
    """Error raised when the shapes of operands are incompatible."""


_registry: dict[tuple[type, np.dtype, int, int], type] = {}
_registry_lock = threading.Lock()


def _dimension(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise TypeError(f"dimension must be an integer, not {type(value).__name__}")

    if value < 1:
        raise ValueError(f"dimension must be positive, got {value}")

    return int(value)


def _offset(value: Any, extent: int, limit: int, axis: str) -> int:
    value = operator.index(value)

    if not 0 <= value <= limit - extent:
        raise IndexError(
            f"{axis} range [{value}, {value + extent}) exceeds size {limit}"
        )

    return value


def _restore(generic, dtype, m, n, data):
    return generic[dtype, m, n]._fromarray(data)


class rowiter(Iterator):
    __slots__ = ("_iter", "_matrix")
    _iter: Iterator[int]
    _matrix: "Matrix"

    def __init__(self, a: "Matrix", /):
        self._iter = iter(range(len(a)))
        self._matrix = a

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> "Matrix":
        return self._matrix.getrow(next(self._iter))


class Matrix:
    """Dense matrix with a fixed number of rows and columns.

    The dimensions are bound to the class: ``Matrix[M, N]`` is the type of
    `M`-by-`N` matrices of double-precision numbers, and ``Matrix[dtype, M, N]``
    selects another element type. Specializations are created once and shared, so
    ``Matrix[2, 3] is Matrix[2, 3]``.

    Elements are stored contiguously in row-major order. Copies never share
    storage.

    Parameters
    ----------
    data : Matrix | ndarray | Sequence, optional
        Initial contents. A nested sequence or 2-D array must match the shape
        exactly. A flat sequence or 1-D array must hold at least ``M * N`` elements,
        which are read in row-major order; extra elements are ignored. Another matrix
        must have the same shape. If omitted, the matrix is filled with zeros.

    Raises
    ------
    ShapeError
        If `data` does not have the required shape.
    ValueError
        If a flat buffer is too short.

    Notes
    -----
    Calling ``Matrix(data)`` without a shape infers it from a 2-D `data` and returns
    an instance of the matching specialization.

    Examples
    --------
    >>> a = Matrix[2, 2]([[1, 2], [3, 4]])
    >>> b = Matrix[2, 2]([5, 6, 7, 8])
    >>> a @ b
    Matrix[float64, 2, 2]([[19.0, 22.0], [43.0, 50.0]])
    >>> (a + b).max()
    np.float64(12.0)
    """

    __slots__ = ("_data",)
    __array_ufunc__ = None
    __hash__ = None  # type: ignore[assignment]
    shape: ClassVar[tuple[int, int]]
    dtype: ClassVar[np.dtype]
    _generic: ClassVar[type["Matrix"]]
    _data: npt.NDArray

    def __class_getitem__(cls, params) -> type[Self]:
        if hasattr(cls, "shape"):
            raise TypeError(f"{cls.__name__} is already specialized")

        match params:
            case (m, n):
                dtype = np.float64

            case (dtype, m, n):
                pass

            case _:
                raise TypeError(
                    f"expected {cls.__name__}[M, N] or {cls.__name__}[dtype, M, N]"
                )

        dtype = np.dtype(dtype)
        m, n = _dimension(m), _dimension(n)
        key = (cls, dtype, m, n)

        created = False

        with _registry_lock:
            if (result := _registry.get(key)) is None:
                name = f"{cls.__name__}[{dtype.name}, {m}, {n}]"
                namespace = {
                    "__slots__": (),
                    "__module__": cls.__module__,
                    "__qualname__": name,
                    "shape": (m, n),
                    "dtype": dtype,
                    "_generic": cls,
                }
                result = type(cls)(name, (cls,), namespace)
                _registry[key] = result
                created = True

        if created:
            _LOG.debug("Created matrix type %s", result.__name__)

        return result

    def __new__(cls, *args, **kwargs):
        if hasattr(cls, "shape"):
            return super().__new__(cls)

        if len(args) != 1 or args[0] is None:
            raise TypeError(
                f"cannot infer dimensions without data; use {cls.__name__}[M, N]"
            )

        match data := args[0]:
            case Matrix():
                cls = cls[data.dtype, *data.shape]

            case _:
                shape = np.shape(data)

                if len(shape) != 2:
                    raise TypeError(
                        f"cannot infer dimensions from {len(shape)}-D data; "
                        f"use {cls.__name__}[M, N]"
                    )

                cls = cls[shape]

        return super().__new__(cls)

    def __init__(self, data: "Matrix | ArrayLike | None" = None, /):
        m, n = self.shape

        if data is None:
            self._data = np.zeros((m, n), self.dtype)
            return

        if isinstance(data, Matrix):
            if data.shape != self.shape:
                raise ShapeError(f"cannot copy {data.shape} matrix into {self.shape}")

            self._data = np.array(data._data, self.dtype)
            return

        tmp = np.asarray(data, self.dtype)

        match tmp.ndim:
            case 1:
                if tmp.size < m * n:
                    raise ValueError(
                        f"buffer holds {tmp.size} elements, {m * n} are required"
                    )

                self._data = np.array(tmp[: m * n].reshape(m, n), order="C")

            case 2:
                if tmp.shape != self.shape:
                    raise ShapeError(f"expected shape {self.shape}, got {tmp.shape}")

                self._data = np.array(tmp, order="C")

            case _:
                raise ShapeError(f"expected 1-D or 2-D data, got {tmp.ndim}-D")

    @classmethod
    def _fromarray(cls, array: npt.ArrayLike) -> Self:
        result = object.__new__(cls)
        result._data = np.array(array, cls.dtype, order="C")
        return result

    @classmethod
    def zeros(cls) -> Self:
        """Return a new matrix filled with zeros."""
        return cls()

    @classmethod
    def ones(cls) -> Self:
        """Return a new matrix filled with ones."""
        result = cls()
        result.setone()
        return result

    @classmethod
    def identity(cls) -> Self:
        """Return a new matrix with ones on the main diagonal and zeros elsewhere.

        The matrix need not be square: only the first ``min(M, N)`` diagonal
        entries are set.
        """
        result = cls()
        result.setidentity()
        return result

    @property
    def data(self) -> npt.NDArray:
        """Writable flat view of the backing store in row-major order.

        Examples
        --------
        >>> a = Matrix[2, 2]()
        >>> a.data[1] = 5.0
        >>> a[0, 1]
        np.float64(5.0)
        """
        return self._data.reshape(-1)

    @property
    def size(self) -> int:
        return self._data.size

    @property
    def T(self) -> "Matrix":
        """Shorthand for :meth:`transpose`."""
        return self.transpose()

    def copy(self) -> Self:
        """Return a copy of the matrix."""
        return self._fromarray(self._data)

    def _resized(self, m: int, n: int) -> type["Matrix"]:
        return self._generic[self.dtype, m, n]

    def _index(self, key) -> tuple[int, int]:
        if not (isinstance(key, tuple) and len(key) == 2):
            raise TypeError("matrix indices must be a pair of integers")

        i, j = operator.index(key[0]), operator.index(key[1])
        m, n = self.shape

        if not (0 <= i < m and 0 <= j < n):
            raise IndexError(f"index ({i}, {j}) is out of bounds for {self.shape}")

        return i, j

    def _row(self, i) -> int:
        i = operator.index(i)

        if not 0 <= i < self.shape[0]:
            raise IndexError(f"row {i} is out of bounds for {self.shape[0]} rows")

        return i

    def _col(self, j) -> int:
        j = operator.index(j)

        if not 0 <= j < self.shape[1]:
            raise IndexError(f"column {j} is out of bounds for {self.shape[1]} columns")

        return j

    def _operand(self, value, shape: tuple[int, int] | None = None) -> Any:
        if shape is None:
            shape = self.shape

        match value:
            case Matrix():
                array = value._data

            case np.ndarray():
                array = value

            case _:
                return None

        if array.shape != shape:
            raise ShapeError(f"operand has shape {array.shape}, {shape} is required")

        return array.astype(self.dtype, copy=False)

    def _rhs(self, value) -> Any:
        if isinstance(value, numbers.Number):
            return self.dtype.type(value)

        return self._operand(value)

    def emult(self, other: "Matrix | npt.NDArray") -> Self:
        """Return the element-wise product with a matrix of the same shape.

        Raises
        ------
        ShapeError
            If the shapes differ.
        """
        if (rhs := self._operand(other)) is None:
            raise TypeError(f"cannot multiply element-wise by {type(other).__name__}")

        return self._fromarray(self._data * rhs)

    def isclose(self, other: "Matrix | npt.NDArray", atol: float | None = None) -> bool:
        """Return ``True`` if no pair of elements differs by more than `atol`.

        Parameters
        ----------
        other : Matrix | ndarray
        atol : float, optional
            Absolute tolerance. If no tolerance is given, the tolerance of the current
            context is used (see :func:`fixmat.context.getcontext`).

        Notes
        -----
        Matrices of different shapes are never close. A NaN element is never close to
        anything.
        """
        if atol is None:
            atol = getcontext().atol
        elif not atol >= 0:
            raise ValueError(f"tolerance must be non-negative, got {atol!r}")

        match other:
            case Matrix():
                array = other._data

            case np.ndarray():
                array = other

            case _:
                raise TypeError

        if array.shape != self.shape:
            return False

        return bool(np.all(np.abs(self._data - array) <= atol))

    def transpose(self) -> "Matrix":
        """Return a new `N`-by-`M` matrix with rows and columns exchanged."""
        m, n = self.shape
        return self._resized(n, m)._fromarray(self._data.T)

    def slice(self, p: int, q: int, x0: int, y0: int) -> "Matrix":
        """Return a copy of the `p`-by-`q` block whose top-left element is at row `x0`,
        column `y0`.

        Raises
        ------
        IndexError
            If the block does not lie inside the matrix.

        Examples
        --------
        >>> a = Matrix([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        >>> a.slice(2, 2, 1, 1)
        Matrix[float64, 2, 2]([[5.0, 6.0], [8.0, 9.0]])
        """
        p, q = _dimension(p), _dimension(q)
        m, n = self.shape
        x0 = _offset(x0, p, m, "row")
        y0 = _offset(y0, q, n, "column")
        return self._resized(p, q)._fromarray(self._data[x0 : x0 + p, y0 : y0 + q])

    def set(self, block: "Matrix | npt.NDArray", x0: int, y0: int) -> None:
        """Overwrite the block whose top-left element is at row `x0`, column `y0` with
        the contents of `block`.

        Raises
        ------
        IndexError
            If `block` placed at ``(x0, y0)`` does not fit inside the matrix.
        """
        match block:
            case Matrix():
                array = block._data

            case np.ndarray() if block.ndim == 2:
                array = block

            case _:
                raise TypeError("block must be a matrix or a 2-D array")

        p, q = array.shape
        m, n = self.shape
        x0 = _offset(x0, p, m, "row")
        y0 = _offset(y0, q, n, "column")
        self._data[x0 : x0 + p, y0 : y0 + q] = array

    def getrow(self, i: int) -> "Matrix":
        """Return a copy of row `i` as a 1-by-`N` matrix."""
        i = self._row(i)
        return self._resized(1, self.shape[1])._fromarray(self._data[i : i + 1, :])

    def getcol(self, j: int) -> "Matrix":
        """Return a copy of column `j` as an `M`-by-1 matrix."""
        j = self._col(j)
        return self._resized(self.shape[0], 1)._fromarray(self._data[:, j : j + 1])

    def setrow(self, i: int, row: "Matrix | npt.NDArray") -> None:
        i = self._row(i)

        if (array := self._operand(row, (1, self.shape[1]))) is None:
            raise TypeError("row must be a matrix or an array")

        self._data[i, :] = array[0]

    def setcol(self, j: int, col: "Matrix | npt.NDArray") -> None:
        j = self._col(j)

        if (array := self._operand(col, (self.shape[0], 1))) is None:
            raise TypeError("column must be a matrix or an array")

        self._data[:, j] = array[:, 0]

    def swaprows(self, a: int, b: int) -> None:
        """Exchange rows `a` and `b` in place."""
        a, b = self._row(a), self._row(b)

        if a != b:
            self._data[[a, b], :] = self._data[[b, a], :]

    def swapcols(self, a: int, b: int) -> None:
        """Exchange columns `a` and `b` in place."""
        a, b = self._col(a), self._col(b)

        if a != b:
            self._data[:, [a, b]] = self._data[:, [b, a]]

    def setzero(self) -> None:
        self._data[...] = 0

    def setall(self, value: Scalar) -> None:
        self._data[...] = value

    def setone(self) -> None:
        self.setall(1)

    def setidentity(self) -> None:
        self.setzero()
        np.fill_diagonal(self._data, 1)

    def max(self) -> Any:
        """Return the largest element.

        The elements are scanned in row-major order starting from ``self[0, 0]``, and
        an element replaces the running maximum only if it compares greater.
        """
        result = self._data[0, 0]

        for value in self._data.flat:
            if value > result:
                result = value

        return result

    def min(self) -> Any:
        """Return the smallest element, scanning like :meth:`max`."""
        result = self._data[0, 0]

        for value in self._data.flat:
            if value < result:
                result = value

        return result

    def limited(
        self, lower: "Matrix | npt.NDArray", upper: "Matrix | npt.NDArray"
    ) -> Self:
        """Return a copy with each element clamped between the corresponding elements
        of `lower` and `upper`.

        The lower bound is applied first and the upper bound second, so where
        ``lower[i, j] > upper[i, j]`` the result is ``upper[i, j]``.

        Examples
        --------
        >>> Matrix([[5]]).limited(Matrix([[0]]), Matrix([[3]]))
        Matrix[float64, 1, 1]([[3.0]])
        """
        lo, hi = self._operand(lower), self._operand(upper)

        if lo is None or hi is None:
            raise TypeError("bounds must be matrices or arrays")

        result = np.where(self._data < lo, lo, self._data)
        result = np.where(result > hi, hi, result)
        return self._fromarray(result)

    def write_string(self, size: int) -> str:
        """Render the matrix as it would fit into a character buffer of `size` bytes.

        Every element is written as ``"\\t%.2g"`` and every row is terminated by a
        newline. Output that does not fit into ``size - 1`` characters is dropped
        without notice.
        """
        text = "".join(
            "".join(f"\t{float(value):.2g}" for value in row) + "\n"
            for row in self._data
        )
        return text[: max(size - 1, 0)]

    def print(self, file: IO[str] | None = None) -> None:
        """Write :meth:`write_string` with a 200-byte budget to `file`."""
        if file is None:
            file = sys.stdout

        file.write(self.write_string(200) + "\n")

    def __reduce__(self):
        return (_restore, (self._generic, self.dtype, *self.shape, self._data))

    def __array__(self, dtype=None, copy=None) -> npt.NDArray:
        if copy is False:
            raise ValueError("a matrix cannot be converted without copying")

        return np.array(self._data, dtype)

    def __str__(self):
        return "\n".join(
            "[" + "".join(f"{float(value):>10.6g}\t" for value in row) + "]"
            for row in self._data
        )

    def __repr__(self):
        return f"{type(self).__name__}({self._data.tolist()!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, (Matrix, np.ndarray)):
            return NotImplemented

        return self.isclose(other)

    def __len__(self) -> int:
        return self.shape[0]

    def __iter__(self) -> rowiter:
        return rowiter(self)

    def __getitem__(self, key: tuple[int, int]) -> Any:
        return self._data[self._index(key)]

    def __setitem__(self, key: tuple[int, int], value: Scalar) -> None:
        self._data[self._index(key)] = value

    def __add__(self, rhs: "Matrix | npt.NDArray | Scalar") -> Self:
        if (other := self._rhs(rhs)) is None:
            return NotImplemented

        return self._fromarray(self._data + other)

    def __sub__(self, rhs: "Matrix | npt.NDArray | Scalar") -> Self:
        if (other := self._rhs(rhs)) is None:
            return NotImplemented

        return self._fromarray(self._data - other)

    def __mul__(self, rhs: "Matrix | npt.NDArray | Scalar") -> Self:
        if (other := self._rhs(rhs)) is None:
            return NotImplemented

        return self._fromarray(self._data * other)

    def __truediv__(self, rhs: Scalar) -> Self:
        if not isinstance(rhs, numbers.Number):
            return NotImplemented

        return self * np.reciprocal(self.dtype.type(rhs))

    def __matmul__(self, rhs: "Matrix | npt.NDArray") -> "Matrix":
        match rhs:
            case Matrix():
                other = rhs._data.astype(self.dtype, copy=False)

            case np.ndarray() if rhs.ndim == 2:
                other = rhs.astype(self.dtype, copy=False)

            case _:
                return NotImplemented

        result = _product(self._data, other)
        return self._resized(*result.shape)._fromarray(result)

    def __radd__(self, lhs: "npt.NDArray | Scalar") -> Self:
        return self.__add__(lhs)

    def __rsub__(self, lhs: "npt.NDArray | Scalar") -> Self:
        if (other := self._rhs(lhs)) is None:
            return NotImplemented

        return self._fromarray(other - self._data)

    def __rmul__(self, lhs: "npt.NDArray | Scalar") -> Self:
        return self.__mul__(lhs)

    def __rmatmul__(self, lhs: npt.NDArray) -> "Matrix":
        if not (isinstance(lhs, np.ndarray) and lhs.ndim == 2):
            return NotImplemented

        other = lhs.astype(self.dtype, copy=False)
        result = _product(other, self._data)
        return self._resized(*result.shape)._fromarray(result)

    def _assign(self, result) -> Self:
        if result is NotImplemented:
            return NotImplemented

        if result.shape != self.shape:
            raise ShapeError(
                f"result of shape {result.shape} cannot be stored in {self.shape}"
            )

        self._data[...] = result._data
        return self

    def __iadd__(self, rhs: "Matrix | npt.NDArray | Scalar") -> Self:
        return self._assign(self.__add__(rhs))

    def __isub__(self, rhs: "Matrix | npt.NDArray | Scalar") -> Self:
        return self._assign(self.__sub__(rhs))

    def __imul__(self, rhs: "Matrix | npt.NDArray | Scalar") -> Self:
        return self._assign(self.__mul__(rhs))

    def __itruediv__(self, rhs: Scalar) -> Self:
        return self._assign(self.__truediv__(rhs))

    def __imatmul__(self, rhs: "Matrix | npt.NDArray") -> Self:
        return self._assign(self.__matmul__(rhs))

    def __neg__(self) -> Self:
        return self._fromarray(-self._data)

    def __pos__(self) -> Self:
        return self.copy()

    def __abs__(self) -> Self:
        return self._fromarray(np.abs(self._data))

    def __copy__(self) -> Self:
        return self.copy()


def _product(a: npt.NDArray, b: npt.NDArray) -> npt.NDArray:
    """Multiply `a` by `b`, summing ``a[i, j] * b[j, k]`` over ``j = 0, 1, ...`` in
    order for every output element."""
    (m, n), (n_, p) = a.shape, b.shape

    if n != n_:
        raise ShapeError(f"cannot multiply {a.shape} matrix by {b.shape} matrix")

    result = np.zeros((m, p), np.result_type(a, b))

    for j in range(n):
        result += np.multiply.outer(a[:, j], b[j, :])

    return result


def zeros(m: int, n: int, dtype: npt.DTypeLike = np.float64) -> Matrix:
    """Return a new `m`-by-`n` matrix filled with zeros."""
    return Matrix[dtype, m, n].zeros()


def ones(m: int, n: int, dtype: npt.DTypeLike = np.float64) -> Matrix:
    """Return a new `m`-by-`n` matrix filled with ones."""
    return Matrix[dtype, m, n].ones()


def eye(n: int, m: int | None = None, dtype: npt.DTypeLike = np.float64) -> Matrix:
    """Return a matrix with ones on the diagonal and zeros elsewhere.

    Parameters
    ----------
    n : int
        Number of rows.
    m : int, optional
        Number of columns. Defaults to `n`.

    Examples
    --------
    >>> eye(2, 3)
    Matrix[float64, 2, 3]([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    """
    if m is None:
        m = n

    return Matrix[dtype, n, m].identity()


def isequal(x: Matrix, y: Matrix, file: IO[str] | None = None) -> bool:
    """Return ``x == y``, reporting both operands if they are not equal.

    On mismatch, both matrices are rendered with :meth:`Matrix.write_string` and a
    100-byte budget and written to `file` (standard output by default).
    """
    if result := x == y:
        return result

    if file is None:
        file = sys.stdout

    _LOG.debug("Matrices %r and %r are not equal", x, y)
    file.write(f"not equal\nx:\n{x.write_string(100)}\ny:\n{y.write_string(100)}\n")
    return result
