"""
#############################
Typing (:mod:`fixmat.typing`)
#############################

This module provides type aliases shared between modules.

.. autodata:: Scalar

.. autodata:: ArrayLike

"""

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

type Scalar = int | float | np.number
"""Value that can be broadcast over every element of a matrix."""

type ArrayLike = npt.NDArray | Sequence[Scalar] | Sequence[Sequence[Scalar]]
"""Raw data a matrix can be constructed from, either flat or nested."""
