"""
The utils test module contains tests for the helper routines.
"""
import logging
import pytest
from numpy.testing import assert_allclose
from multiphase import InvalidInputError, EquilibriumTrace, variables as v
from multiphase.core.utils import make_callable, normalize_fractions, unpack_composition
from multiphase.log import logger, solver_level, debug_mode


def test_make_callable():
    f = make_callable(2 * v.T, [v.T])
    assert f(300.0) == 600.0
    g = make_callable(v.T * v.P, [v.T, v.P], mode='sympy')
    assert_allclose(g(2.0, 3.0), 6.0)


def test_normalize_fractions():
    assert_allclose(normalize_fractions([1, 3]), [0.25, 0.75])
    for bad in ([0.0, 0.0], [1.0, -0.5], [float('nan'), 1.0]):
        with pytest.raises(InvalidInputError):
            normalize_fractions(bad)
    with pytest.raises(InvalidInputError):
        normalize_fractions([1.0, 1.0], size=3)


def test_unpack_composition():
    names = ['A', 'B', 'A']
    assert_allclose(unpack_composition('A:2', names), [2.0, 0.0, 2.0])
    assert_allclose(unpack_composition({'B': 1}, names), [0.0, 1.0, 0.0])
    with pytest.raises(InvalidInputError):
        unpack_composition({'C': 1}, names)
    with pytest.raises(InvalidInputError):
        unpack_composition({'A': 'lots'}, names)
    with pytest.raises(InvalidInputError):
        unpack_composition([1.0, 2.0], names)


def test_equilibrium_trace():
    trace = EquilibriumTrace()
    trace.add_step('inner', iteration=0, error=1.0)
    trace.add_step('outer', iteration=0, T=1000.0)
    assert len(trace) == 2
    assert_allclose(trace['error'][:1], [1.0])
    ds = trace.get_dataset()
    assert list(ds.kind.values) == ['inner', 'outer']
    assert_allclose(ds['T'].values[1], 1000.0)
    with pytest.raises(KeyError):
        trace.add_step('inner', residual=1.0)
    with pytest.raises(KeyError):
        trace['residual']
    trace.clear()
    assert len(trace) == 0


def test_solver_log_level():
    assert solver_level(1) == logging.INFO
    assert solver_level(-99) == logging.DEBUG
    level = logger.level
    try:
        debug_mode()
        assert logger.isEnabledFor(solver_level(0))
    finally:
        logger.setLevel(level)
