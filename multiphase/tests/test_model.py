"""
The model test module verifies the standard-state thermodynamic functions
of SpeciesThermo.
"""
import numpy as np
import pytest
from numpy.testing import assert_allclose
from multiphase import SpeciesThermo, InvalidInputError, variables as v
from multiphase.core.constants import GAS_CONSTANT


def test_constant_cp_model():
    thermo = SpeciesThermo.constant_cp('Ar', h0=1.0e6, s0=154.8e3, cp0=20.786e3)
    assert thermo.name == 'Ar'
    assert_allclose(thermo.cp(1000.0), 20.786e3)
    assert_allclose(thermo.enthalpy(1000.0), 1.0e6 + 20.786e3 * (1000.0 - 298.15))
    assert_allclose(thermo.entropy(1000.0), 154.8e3 + 20.786e3 * np.log(1000.0 / 298.15))
    assert_allclose(thermo.gibbs(1000.0), thermo.enthalpy(1000.0) - 1000.0 * thermo.entropy(1000.0))


def test_symbolic_derivation():
    "GM and CPM are derived from HM and SM."
    thermo = SpeciesThermo('Q', 5.0 * v.T**2, 10.0 * v.T)
    assert_allclose(thermo.cp(300.0), 3000.0)
    assert_allclose(thermo.gibbs(300.0), 5.0 * 300.0**2 - 300.0 * 3000.0)


def test_nasa7_model():
    "A constant a1 gives cp = a1 R in both ranges."
    low = [3.5, 0.0, 0.0, 0.0, 0.0, -1000.0, 3.0]
    high = [3.5, 0.0, 0.0, 0.0, 0.0, -1000.0, 3.0]
    thermo = SpeciesThermo.nasa7('N2', 1000.0, low, high)
    for temperature in (500.0, 1500.0):
        assert_allclose(thermo.cp(temperature), 3.5 * GAS_CONSTANT)
        assert_allclose(thermo.enthalpy(temperature), GAS_CONSTANT * (3.5 * temperature - 1000.0))
    assert thermo.tmin == 200.0
    assert thermo.tmax == 6000.0


def test_nasa7_uses_upper_range_above_tmid():
    low = [3.5, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0]
    high = [4.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0]
    thermo = SpeciesThermo.nasa7('N2', 1000.0, low, high)
    assert_allclose(thermo.cp(999.0), 3.5 * GAS_CONSTANT)
    assert_allclose(thermo.cp(1001.0), 4.0 * GAS_CONSTANT)


def test_nasa7_needs_seven_coefficients():
    with pytest.raises(InvalidInputError):
        SpeciesThermo.nasa7('N2', 1000.0, [3.5], [3.5])


def test_valid_range():
    thermo = SpeciesThermo.constant_cp('Ar', cp0=20.786e3, tmin=300.0, tmax=1000.0)
    assert thermo.valid(500.0)
    assert not thermo.valid(1500.0)
    with pytest.raises(InvalidInputError):
        SpeciesThermo.constant_cp('Ar', tmin=1000.0, tmax=300.0)
