"""
###########################################
Fixed-dimension matrices (:mod:`fixmat`)
###########################################

.. currentmodule:: fixmat

Dense matrices whose dimensions are fixed by their type, for small numeric
pipelines such as state estimators.

.. autosummary::
    :toctree: generated/

    Matrix
    ShapeError
    eye
    isequal
    ones
    zeros

Comparison context
==================

.. autosummary::
    :toctree: generated/

    Context
    getcontext
    localcontext
    setcontext

"""

import logging

from .context import Context, getcontext, localcontext, setcontext
from .matrix import Matrix, ShapeError, eye, isequal, ones, zeros

__all__ = [
    "Context",
    "Matrix",
    "ShapeError",
    "eye",
    "getcontext",
    "isequal",
    "localcontext",
    "ones",
    "setcontext",
    "zeros",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
