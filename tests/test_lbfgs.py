"""Tests for the limited-memory BFGS operator."""

import logging
import numpy as np
import pytest

from spotops import (
    CurvatureRejectedWarning,
    DimensionMismatch,
    ForwardModeDisabled,
    LBFGSOperator,
    Mode,
)


def _spd_matrix(n, rng):
    """Well-conditioned SPD matrix with eigenvalues in [1, 4]."""
    Q, _ = np.linalg.qr(rng.standard_normal((n, n)))
    return Q @ np.diag(np.linspace(1.0, 4.0, n)) @ Q.T


def _pairs(n, count, seed=0):
    """Curvature pairs (s, A s) from a fixed SPD matrix A."""
    rng = np.random.default_rng(seed)
    A = _spd_matrix(n, rng)
    pairs = []
    for _ in range(count):
        s = rng.standard_normal(n)
        pairs.append((s, A @ s))
    return pairs


def _dense_bfgs(pairs, n):
    """Explicit BFGS Hessian approximation starting from B0 = I."""
    B = np.eye(n)
    for s, y in pairs:
        Bs = B @ s
        B = B - np.outer(Bs, Bs) / (s @ Bs) + np.outer(y, y) / (y @ s)
    return B


def _dense_inverse_bfgs(pairs, n, H0=None):
    """Explicit inverse BFGS approximation starting from H0 (default I)."""
    H = np.eye(n) if H0 is None else H0
    I = np.eye(n)
    for s, y in pairs:
        rho = 1.0 / (y @ s)
        V = I - rho * np.outer(y, s)
        H = V.T @ H @ V + rho * np.outer(s, s)
    return H


def test_construction_defaults():
    B = LBFGSOperator(4)

    assert B.shape == (4, 4)
    assert B.memory == 1
    assert B.num_pairs == 0
    assert B.insert_index == 0
    assert not B.forward_enabled
    assert not B.use_scaling
    assert not B.is_complex
    assert B.a is None and B.b is None
    assert str(B) == "L-BFGS(4,4)"


def test_memory_is_clamped_to_one():
    assert LBFGSOperator(3, memory=0).memory == 1
    assert LBFGSOperator(3, memory=-2).memory == 1


@pytest.mark.parametrize("memory", [2.5, "3", None])
def test_memory_must_be_integer(memory):
    with pytest.raises(ValueError):
        LBFGSOperator(3, memory=memory)


def test_dimension_must_be_positive():
    with pytest.raises(ValueError):
        LBFGSOperator(0)


def test_empty_operator_is_identity():
    """With no pairs, both products are the identity."""
    B = LBFGSOperator(3, memory=2, forward=True)
    x = np.array([1.0, -2.0, 3.0])

    assert np.allclose(B.solve(x), x)
    assert np.allclose(B.apply(x), x)


def test_inverse_matches_explicit_recursion():
    n = 5
    pairs = _pairs(n, 3)
    B = LBFGSOperator(n, memory=3)
    for s, y in pairs:
        assert B.update(s, y)

    assert np.allclose(B.to_dense(inverse=True), _dense_inverse_bfgs(pairs, n))


def test_forward_matches_explicit_recursion():
    n = 5
    pairs = _pairs(n, 3)
    B = LBFGSOperator(n, memory=3, forward=True)
    for s, y in pairs:
        B.update(s, y)

    assert np.allclose(B.to_dense(), _dense_bfgs(pairs, n))


def test_secant_conditions():
    """The newest pair satisfies B s = y and H y = s."""
    n = 6
    pairs = _pairs(n, 4)
    B = LBFGSOperator(n, memory=3, forward=True)
    for s, y in pairs:
        B.update(s, y)

    s, y = pairs[-1]
    assert np.allclose(B.apply(s), y)
    assert np.allclose(B.solve(y), s)


def test_forward_inverse_consistency():
    """B (B^{-1} x) = x once memory is warmed up."""
    n = 6
    B = LBFGSOperator(n, memory=4, forward=True)
    for s, y in _pairs(n, 7, seed=3):
        B.update(s, y)
    x = np.random.default_rng(11).standard_normal(n)

    assert np.allclose(B.apply(B.solve(x)), x)
    assert np.allclose(B.solve(B.apply(x)), x)


def test_adjoint_mode_matches_forward():
    """The approximation is symmetric."""
    n = 4
    B = LBFGSOperator(n, memory=2, forward=True)
    for s, y in _pairs(n, 2):
        B.update(s, y)
    x = np.arange(1.0, n + 1)

    assert np.allclose(B.apply(x, Mode.ADJOINT), B.apply(x))
    assert np.allclose(B.solve(x, Mode.ADJOINT), B.solve(x))
    assert np.allclose(B.H.apply(x), B.apply(x))
    D = B.to_dense()
    assert np.allclose(D, D.T)


def test_forward_mode_disabled():
    B = LBFGSOperator(3)
    B.update(np.ones(3), np.ones(3))

    with pytest.raises(ForwardModeDisabled):
        B.apply(np.ones(3))
    with pytest.raises(ForwardModeDisabled):
        B.to_dense()


def test_enable_forward_mode_rebuilds_history():
    """Enabling forward mode late gives the same products as from the start."""
    n = 4
    pairs = _pairs(n, 3)
    early = LBFGSOperator(n, memory=3, forward=True)
    late = LBFGSOperator(n, memory=3)
    for s, y in pairs:
        early.update(s, y)
        late.update(s, y)

    late.enable_forward_mode()

    assert late.forward_enabled
    assert np.allclose(late.to_dense(), early.to_dense())


def test_disable_forward_mode():
    B = LBFGSOperator(3, forward=True)
    B.disable_forward_mode()

    assert not B.forward_enabled
    assert B.a is None
    with pytest.raises(ForwardModeDisabled):
        B.apply(np.ones(3))


def test_curvature_rejection_leaves_state_untouched():
    n = 3
    B = LBFGSOperator(n, memory=2, forward=True)
    s0, y0 = _pairs(n, 1)[0]
    B.update(s0, y0)
    before = (B.s.copy(), B.y.copy(), B.ys.copy(), B.a.copy(), B.insert_index)

    with pytest.warns(CurvatureRejectedWarning):
        accepted = B.update(np.array([1.0, 0.0, 0.0]), np.array([-1.0, 0.0, 0.0]))

    assert not accepted
    assert np.array_equal(B.s, before[0])
    assert np.array_equal(B.y, before[1])
    assert np.array_equal(B.ys, before[2])
    assert np.array_equal(B.a, before[3])
    assert B.insert_index == before[4]
    assert B.num_pairs == 1


def test_zero_curvature_is_rejected():
    B = LBFGSOperator(2)
    with pytest.warns(CurvatureRejectedWarning):
        assert not B.update(np.array([1.0, 0.0]), np.array([0.0, 1.0]))
    assert B.num_pairs == 0


def test_curvature_rejection_is_logged(caplog):
    B = LBFGSOperator(2)
    with caplog.at_level(logging.WARNING, logger="spotops.quasi_newton.lbfgs"):
        with pytest.warns(CurvatureRejectedWarning):
            B.update(np.zeros(2), np.zeros(2))
    assert "rejecting" in caplog.text


def test_update_dimension_mismatch():
    B = LBFGSOperator(3)
    with pytest.raises(DimensionMismatch):
        B.update(np.ones(2), np.ones(3))
    with pytest.raises(DimensionMismatch):
        B.update(np.ones(3), np.ones(4))
    assert B.num_pairs == 0


def test_apply_dimension_mismatch():
    B = LBFGSOperator(3)
    with pytest.raises(DimensionMismatch):
        B.solve(np.ones(4))


def test_ring_buffer_wraparound():
    """memory + 1 pairs leave exactly memory pairs; the oldest is evicted."""
    n = 3
    P1, P2, P3 = _pairs(n, 3, seed=5)
    B = LBFGSOperator(n, memory=2, forward=True)
    for s, y in (P1, P2, P3):
        B.update(s, y)

    recent = LBFGSOperator(n, memory=2, forward=True)
    for s, y in (P2, P3):
        recent.update(s, y)

    assert B.num_pairs == 2
    assert B.insert_index == 1
    assert np.count_nonzero(B.ys) == 2
    assert np.allclose(B.s[0], P3[0])
    assert np.allclose(B.s[1], P2[0])
    assert np.allclose(B.to_dense(inverse=True), _dense_inverse_bfgs([P2, P3], n))
    assert np.allclose(B.to_dense(inverse=True), recent.to_dense(inverse=True))
    assert np.allclose(B.to_dense(), _dense_bfgs([P2, P3], n))


def test_to_dense_matches_apply_on_basis():
    """Materialized columns match direct products to 1e-10 relative error."""
    n = 3
    B = LBFGSOperator(n, memory=2, forward=True)
    for s, y in _pairs(n, 3, seed=9):
        B.update(s, y)

    H = B.to_dense(inverse=True)
    D = B.to_dense()
    for i, e in enumerate(np.eye(n)):
        h = B.solve(e)
        d = B.apply(e)
        assert np.linalg.norm(H[:, i] - h) <= 1e-10 * np.linalg.norm(h)
        assert np.linalg.norm(D[:, i] - d) <= 1e-10 * np.linalg.norm(d)


def test_scaling_uses_newest_pair():
    """Scaled inverse starts from H0 = (s'y / y'y) I."""
    n = 4
    pairs = _pairs(n, 3)
    B = LBFGSOperator(n, memory=3, scaling=True)
    for s, y in pairs:
        B.update(s, y)

    s, y = pairs[-1]
    H0 = (s @ y) / (y @ y) * np.eye(n)
    assert np.allclose(B.to_dense(inverse=True), _dense_inverse_bfgs(pairs, n, H0))


def test_scaling_is_a_plain_flag():
    n = 4
    B = LBFGSOperator(n, memory=2)
    for s, y in _pairs(n, 2):
        B.update(s, y)
    unscaled = B.to_dense(inverse=True)

    B.use_scaling = True
    assert not np.allclose(B.to_dense(inverse=True), unscaled)
    B.use_scaling = False
    assert np.allclose(B.to_dense(inverse=True), unscaled)


def test_block_input_is_swept():
    n = 4
    B = LBFGSOperator(n, memory=2, forward=True)
    for s, y in _pairs(n, 2):
        B.update(s, y)
    X = np.random.default_rng(2).standard_normal((n, 3))

    assert np.allclose(B.solve(X), B.to_dense(inverse=True) @ X)
    assert np.allclose(B @ X, B.to_dense() @ X)


def test_apply_does_not_mutate():
    n = 3
    B = LBFGSOperator(n, memory=2, forward=True)
    for s, y in _pairs(n, 2):
        B.update(s, y)
    g = np.ones(n)
    first = B.solve(g)

    B.apply(g)
    B.solve(g)

    assert np.allclose(B.solve(g), first)
    assert np.array_equal(g, np.ones(n))


def test_stored_views_are_read_only():
    B = LBFGSOperator(2)
    with pytest.raises(ValueError):
        B.s[0, 0] = 1.0


def test_composes_with_other_operators():
    """Search direction d = -H g through the operator algebra."""
    n = 3
    B = LBFGSOperator(n, memory=2, forward=True)
    for s, y in _pairs(n, 2):
        B.update(s, y)
    x = np.ones(n)

    assert np.allclose((-B) @ x, -B.apply(x))
    assert np.allclose((2.0 * B).to_dense(), 2.0 * B.to_dense())


def test_one_dimensional_operator_applies_to_vector():
    """On a 1x1 approximation, B @ g is a product, not a composition."""
    B = LBFGSOperator(1, forward=True)
    B.update(np.array([1.0]), np.array([2.0]))
    g = np.array([4.0])

    assert isinstance(B @ g, np.ndarray)
    assert np.allclose(B @ g, [8.0])
    assert np.allclose(B.solve(g), [2.0])
