import hypothesis.strategies as st
import numpy as np
from hypothesis import given
from hypothesis.extra.numpy import arrays

from fixmat import Matrix, eye

dims = st.integers(1, 4)
elements = st.floats(-10, 10, allow_nan=False, allow_infinity=False)


@st.composite
def matrices(draw, m=None, n=None):
    m = draw(dims) if m is None else m
    n = draw(dims) if n is None else n
    return Matrix[m, n](draw(arrays(np.float64, (m, n), elements=elements)))


@given(matrices())
def test_identity(a):
    m, n = a.shape
    assert eye(m) @ a == a
    assert a @ eye(n) == a


@given(matrices())
def test_transpose_involution(a):
    assert np.array_equal(np.asarray(a.T.T), np.asarray(a))


@given(st.data(), dims, dims, dims, dims)
def test_associativity(data, m, n, p, q):
    a = data.draw(matrices(m, n))
    b = data.draw(matrices(n, p))
    c = data.draw(matrices(p, q))
    assert (a @ b) @ c == a @ (b @ c)


@given(st.data(), matrices())
def test_slice_set(data, a):
    m, n = a.shape
    p, q = data.draw(st.integers(1, m)), data.draw(st.integers(1, n))
    x0, y0 = data.draw(st.integers(0, m - p)), data.draw(st.integers(0, n - q))
    b = a.copy()
    b.set(a.slice(p, q, x0, y0), x0, y0)
    assert np.array_equal(np.asarray(b), np.asarray(a))


@given(st.data(), matrices())
def test_swap_involution(data, a):
    m, n = a.shape
    i, j = data.draw(st.integers(0, m - 1)), data.draw(st.integers(0, m - 1))
    b = a.copy()
    b.swaprows(i, j)
    b.swaprows(i, j)
    assert np.array_equal(np.asarray(b), np.asarray(a))

    k, h = data.draw(st.integers(0, n - 1)), data.draw(st.integers(0, n - 1))
    b.swapcols(k, h)
    b.swapcols(k, h)
    assert np.array_equal(np.asarray(b), np.asarray(a))
