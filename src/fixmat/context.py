"""
##################################################
Comparison settings (:mod:`fixmat.context`)
##################################################

.. currentmodule:: fixmat.context

This module controls how matrices are compared for approximate equality.

.. autosummary::
    :toctree: generated/

    Context
    getcontext
    localcontext
    setcontext

"""

import contextlib
import contextvars
import logging
from typing import Self

_LOG: logging.Logger = logging.getLogger(__name__)

DEFAULT_ATOL = 1e-4


class Context:
    """Create a new context.

    Parameters
    ----------
    atol : float, default=1e-4
        Absolute tolerance. Two matrices of the same shape are equal if no pair of
        elements differs by more than `atol`.

    Raises
    ------
    ValueError
        If `atol` is negative or NaN.
    """

    __slots__ = ("_atol",)
    _atol: float

    def __init__(self, atol: float = DEFAULT_ATOL):
        atol = float(atol)

        if not atol >= 0.0:
            raise ValueError(f"tolerance must be non-negative, got {atol!r}")

        self._atol = atol

    @property
    def atol(self) -> float:
        return self._atol

    def copy(self) -> Self:
        return self.__class__(self._atol)

    def __repr__(self):
        return f"{type(self).__name__}(atol={self._atol!r})"

    def __copy__(self) -> Self:
        return self.copy()


_var: contextvars.ContextVar[Context] = contextvars.ContextVar("fixmat")


def getcontext() -> Context:
    """Return the current context for the active thread."""
    if context := _var.get(None):
        return context

    context = Context()
    _var.set(context)
    return context


def setcontext(ctx: Context) -> None:
    """Set the current context for the active thread to `ctx`."""
    if not isinstance(ctx, Context):
        raise TypeError

    _LOG.debug("setting comparison context to %r", ctx)
    _var.set(ctx)


@contextlib.contextmanager
def localcontext(ctx: Context | None = None, *, atol: float | None = None):
    """Return a context manager that will set the current context for the active thread
    to a copy of `ctx` on entry to the with-statement and restore the previous context
    when exiting the with-statement.

    Examples
    --------
    >>> from fixmat import Matrix
    >>> a = Matrix([[1.0]])
    >>> a == Matrix([[1.01]])
    False
    >>> with localcontext(atol=0.1):
    ...     a == Matrix([[1.01]])
    True
    """
    if ctx is None:
        ctx = getcontext()

    if atol is None:
        atol = ctx.atol

    ctx = Context(atol)
    token = _var.set(ctx)

    try:
        yield ctx
    finally:
        _var.reset(token)
