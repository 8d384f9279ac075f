"""Tests for numeric-primitive backends."""

import numpy as np
import pytest

from tridiag_lab.algorithms.backends import (
    LapackBackend,
    LinalgBackend,
    NumpyBackend,
    create_backend,
)
from tridiag_lab.algorithms.matrices import TridiagonalMatrix
from tridiag_lab.data.precision_types import PrecisionFormat

BACKENDS = [LapackBackend(), NumpyBackend()]


def _spd_matrix(n: int, seed: int = 0) -> TridiagonalMatrix:
    """Diagonally dominant tridiagonal matrix (hence SPD)."""
    rng = np.random.default_rng(seed)
    return TridiagonalMatrix(
        diag=4.0 + rng.random(n),
        offdiag=rng.uniform(-1.0, 1.0, n - 1),
    )


@pytest.fixture(params=BACKENDS, ids=repr)
def backend(request: pytest.FixtureRequest) -> LinalgBackend:
    return request.param


class TestVectorPrimitives:
    """Tests for copy, axpy, norm2 and scale."""

    def test_copy(self, backend: LinalgBackend) -> None:
        """copy should overwrite dst in place."""
        src = np.array([1.0, 2.0, 3.0])
        dst = np.zeros(3)
        backend.copy(3, src, dst)
        assert np.array_equal(dst, src)

    def test_copy_leading_entries_only(self, backend: LinalgBackend) -> None:
        """copy should leave entries past n untouched."""
        dst = np.full(4, -1.0)
        backend.copy(2, np.array([5.0, 6.0, 7.0, 8.0]), dst)
        assert np.array_equal(dst, [5.0, 6.0, -1.0, -1.0])

    def test_copy_zero_length(self, backend: LinalgBackend) -> None:
        """copy of zero entries should be a no-op."""
        dst = np.zeros(0)
        backend.copy(0, np.zeros(0), dst)
        assert dst.shape == (0,)

    def test_axpy(self, backend: LinalgBackend) -> None:
        """axpy should compute y <- a*x + y in place."""
        x = np.array([1.0, 2.0, 3.0])
        y = np.array([10.0, 20.0, 30.0])
        backend.axpy(3, -2.0, x, y)
        assert np.allclose(y, [8.0, 16.0, 24.0])

    def test_axpy_builds_shifted_diagonal(self, backend: LinalgBackend) -> None:
        """axpy with a ones vector subtracts a shift from the diagonal."""
        diag = np.array([1.0, 2.0, -1.75])
        ones = np.ones(3)
        backend.axpy(3, 2.0, ones, diag)
        assert np.allclose(diag, [3.0, 4.0, 0.25])

    def test_norm2(self, backend: LinalgBackend) -> None:
        """norm2 should return the Euclidean norm."""
        assert np.isclose(backend.norm2(2, np.array([3.0, 4.0])), 5.0)

    def test_norm2_large_entries(self, backend: LinalgBackend) -> None:
        """Squares past the overflow threshold should not overflow the norm."""
        x = np.array([0.0, 1e200, 1e200])
        assert np.isclose(backend.norm2(3, x), np.sqrt(2.0) * 1e200)

    def test_norm2_subnormal_entries(self, backend: LinalgBackend) -> None:
        """Subnormal entries should give a nonzero norm."""
        x = np.array([0.0, 3e-320, 4e-320])
        assert np.isclose(backend.norm2(3, x), 5e-320, rtol=1e-3, atol=0.0)

    def test_norm2_returns_float(self, backend: LinalgBackend) -> None:
        """norm2 should return a plain Python float."""
        assert isinstance(backend.norm2(2, np.array([3.0, 4.0])), float)

    def test_scale(self, backend: LinalgBackend) -> None:
        """scale should multiply in place."""
        x = np.array([1.0, -2.0, 4.0])
        backend.scale(3, 0.5, x)
        assert np.allclose(x, [0.5, -1.0, 2.0])


class TestTridiagonalFactorize:
    """Tests for tridiagonal_factorize."""

    @pytest.mark.parametrize("n", [2, 5, 40])
    def test_spd_factorization_reconstructs(self, backend: LinalgBackend, n: int) -> None:
        """L·D·Lᵀ should reproduce T for an SPD matrix."""
        matrix = _spd_matrix(n, seed=n)
        d = matrix.diag.copy()
        e = matrix.offdiag.copy()

        assert backend.tridiagonal_factorize(n, d, e) == 0

        L = np.eye(n) + np.diag(e, k=-1)
        assert np.allclose(L @ np.diag(d) @ L.T, matrix.to_dense())

    def test_backends_agree(self) -> None:
        """LAPACK and NumPy factors should agree to rounding."""
        matrix = _spd_matrix(30, seed=7)
        factors = []
        for backend in BACKENDS:
            d = matrix.diag.copy()
            e = matrix.offdiag.copy()
            backend.tridiagonal_factorize(30, d, e)
            factors.append((d, e))

        assert np.allclose(factors[0][0], factors[1][0], rtol=1e-13)
        assert np.allclose(factors[0][1], factors[1][1], rtol=1e-13)

    def test_indefinite_reports_pivot_index(self, backend: LinalgBackend) -> None:
        """A negative pivot should be reported at its 1-based index."""
        d = np.array([1.0, -1.0, 1.0])
        e = np.array([0.0, 0.0])
        assert backend.tridiagonal_factorize(3, d, e) == 2

    def test_singular_last_pivot(self, backend: LinalgBackend) -> None:
        """T + 2I of the reducible matrix has an exactly zero last pivot."""
        d = np.array([3.0, 4.0, 0.25])
        e = np.array([0.0, 1.0])
        assert backend.tridiagonal_factorize(3, d, e) == 3

    def test_first_pivot_nonpositive(self, backend: LinalgBackend) -> None:
        """A non-positive leading entry fails at index 1."""
        d = np.array([0.0, 2.0])
        e = np.array([1.0])
        assert backend.tridiagonal_factorize(2, d, e) == 1

    @pytest.mark.parametrize("value,expected", [(2.0, 0), (0.0, 1), (-1.0, 1)])
    def test_one_by_one(self, backend: LinalgBackend, value: float, expected: int) -> None:
        """A 1×1 matrix factors exactly when its entry is positive."""
        d = np.array([value])
        e = np.zeros(0)
        assert backend.tridiagonal_factorize(1, d, e) == expected


class TestTridiagonalSolve:
    """Tests for tridiagonal_solve."""

    @pytest.mark.parametrize("n", [2, 6, 25])
    def test_matches_dense_solve(self, backend: LinalgBackend, n: int) -> None:
        """Solution should match numpy.linalg.solve on the dense matrix."""
        matrix = _spd_matrix(n, seed=100 + n)
        rhs = np.random.default_rng(n).standard_normal(n)
        expected = np.linalg.solve(matrix.to_dense(), rhs)

        d = matrix.diag.copy()
        e = matrix.offdiag.copy()
        assert backend.tridiagonal_factorize(n, d, e) == 0

        x = rhs.copy()
        assert backend.tridiagonal_solve(n, d, e, x) == 0
        assert np.allclose(x, expected, rtol=1e-12)

    def test_one_by_one(self, backend: LinalgBackend) -> None:
        """A 1×1 solve divides by the pivot."""
        d = np.array([4.0])
        e = np.zeros(0)
        backend.tridiagonal_factorize(1, d, e)
        x = np.array([2.0])
        assert backend.tridiagonal_solve(1, d, e, x) == 0
        assert np.isclose(x[0], 0.5)


class TestLapackBackend:
    """Tests specific to the SciPy backend."""

    def test_default_precision(self) -> None:
        """Default precision should be FP64."""
        assert LapackBackend().precision is PrecisionFormat.FP64

    def test_fp32_routines(self) -> None:
        """FP32 backend should work on float32 arrays."""
        backend = LapackBackend("fp32")
        matrix = _spd_matrix(8, seed=3)
        d = matrix.diag.astype(np.float32)
        e = matrix.offdiag.astype(np.float32)
        assert backend.tridiagonal_factorize(8, d, e) == 0

        rhs = np.ones(8, dtype=np.float32)
        x = rhs.copy()
        assert backend.tridiagonal_solve(8, d, e, x) == 0
        expected = np.linalg.solve(matrix.to_dense(), np.ones(8))
        assert np.allclose(x, expected, rtol=1e-4)
        assert x.dtype == np.float32

    def test_repr(self) -> None:
        """repr should name the precision."""
        assert repr(LapackBackend("fp32")) == "LapackBackend(precision='fp32')"


class TestCreateBackend:
    """Tests for create_backend factory."""

    @pytest.mark.parametrize(
        "name,expected",
        [("lapack", LapackBackend), ("numpy", NumpyBackend)],
    )
    def test_creates_backend(self, name: str, expected: type) -> None:
        """Factory should return the requested backend type."""
        assert isinstance(create_backend(name), expected)

    def test_precision_forwarded(self) -> None:
        """LAPACK backend should get the requested precision."""
        backend = create_backend("lapack", "fp32")
        assert isinstance(backend, LapackBackend)
        assert backend.precision is PrecisionFormat.FP32

    def test_unknown_backend(self) -> None:
        """Unknown backends should raise ValueError."""
        with pytest.raises(ValueError, match="Unknown backend"):
            create_backend("cuda")

    def test_abstract_base_not_instantiable(self) -> None:
        """LinalgBackend should be abstract."""
        with pytest.raises(TypeError):
            LinalgBackend()  # type: ignore[abstract]
