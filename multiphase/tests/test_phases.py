"""
The phases test module verifies the property functions and composition
handling of the phase classes.
"""
import numpy as np
import pytest
from numpy.testing import assert_allclose
from multiphase import IdealGasPhase, IdealSolutionPhase, StoichSubstance, Phase, SpeciesThermo, \
    ThermoDatabase, InvalidInputError
from multiphase.core.constants import GAS_CONSTANT, ONE_ATM, SMALL_NUMBER
from multiphase.tests.fixtures import water_gas, graphite, isomer_gas, H2_DATA, O2_DATA


def test_ideal_gas_chemical_potentials():
    "mu_k = g_k + RT ln(P/P0) + RT ln(x_k)"
    gas = water_gas()
    gas.set_state_tpx(1000.0, 2.0 * ONE_ATM, [0.5, 0.25, 0.25])
    rt = GAS_CONSTANT * 1000.0
    expected = gas.standard_gibbs() + rt * np.log(2.0) + rt * np.log([0.5, 0.25, 0.25])
    assert_allclose(gas.chem_potentials(), expected)
    assert_allclose(gas.volume_mole(), rt / (2.0 * ONE_ATM))


def test_ideal_gas_molar_properties_are_consistent():
    gas = water_gas()
    gas.set_state_tpx(800.0, ONE_ATM, [0.2, 0.3, 0.5])
    assert_allclose(gas.gibbs_mole(), np.dot(gas.get_mole_fractions(), gas.chem_potentials()))
    assert_allclose(gas.cp_mole(), np.dot([0.2, 0.3, 0.5], gas.standard_cp()))


def test_zero_mole_fraction_is_clamped():
    "A species with zero mole fraction has a finite chemical potential."
    gas = isomer_gas()
    mu = gas.chem_potentials()
    assert np.all(np.isfinite(mu))
    assert_allclose(mu[1] - gas.standard_chem_potentials()[1], gas.RT * np.log(SMALL_NUMBER))


def test_set_mole_fractions_normalizes():
    gas = water_gas()
    gas.set_mole_fractions([2.0, 1.0, 1.0])
    assert_allclose(gas.get_mole_fractions(), [0.5, 0.25, 0.25])
    gas.set_mole_fractions('O2:3, H2O:1')
    assert_allclose(gas.get_mole_fractions(), [0.0, 0.75, 0.25])
    with pytest.raises(InvalidInputError):
        gas.set_mole_fractions([1.0, 1.0])
    with pytest.raises(InvalidInputError):
        gas.set_mole_fractions('N2:1')


def test_phase_species_and_elements():
    gas = water_gas()
    assert gas.n_species == 3
    assert gas.species_names == ['H2', 'O2', 'H2O']
    assert gas.element_names == ['H', 'O']
    assert gas.species_index('H2O') == 2
    assert gas.n_atoms(2, 'H') == 2
    assert gas.n_atoms(0, 'O') == 0
    assert gas.charge(0) == 0
    with pytest.raises(InvalidInputError):
        gas.species_index('CH4')


def test_invalid_state_rejected():
    gas = water_gas()
    with pytest.raises(InvalidInputError):
        gas.temperature = 0.0
    with pytest.raises(InvalidInputError):
        gas.pressure = -1.0


def test_valid_temperature_range_is_intersection():
    low = SpeciesThermo.constant_cp('H2', tmin=200.0, tmax=3000.0, **H2_DATA)
    high = SpeciesThermo.constant_cp('O2', tmin=300.0, tmax=5000.0, **O2_DATA)
    gas = IdealGasPhase('gas', [low, high])
    assert gas.min_temp == 300.0
    assert gas.max_temp == 3000.0


def test_ideal_solution_pressure_dependence():
    "Condensed species depend on pressure through their molar volume."
    a = SpeciesThermo.constant_cp('Fe', h0=0.0, s0=27.3e3, cp0=25.1e3, molar_volume=7.09e-3)
    b = SpeciesThermo.constant_cp('Ni', h0=0.0, s0=29.9e3, cp0=26.1e3, molar_volume=6.59e-3)
    alloy = IdealSolutionPhase('alloy', [a, b], mole_fractions=[0.5, 0.5])
    mu0 = alloy.chem_potentials()
    alloy.pressure = ONE_ATM + 1.0e6
    assert_allclose(alloy.chem_potentials() - mu0, [7.09e-3 * 1.0e6, 6.59e-3 * 1.0e6])
    assert_allclose(alloy.volume_mole(), 0.5 * (7.09e-3 + 6.59e-3))
    assert_allclose(alloy.entropy_mole(), 0.5 * (27.3e3 + 29.9e3) + GAS_CONSTANT * np.log(2.0))


def test_stoich_substance():
    solid = graphite()
    assert solid.is_stoichiometric
    assert solid.n_species == 1
    assert_allclose(solid.chem_potentials(), solid.standard_gibbs())
    with pytest.raises(InvalidInputError):
        StoichSubstance('two', water_gas().species_thermo[:2])


def test_abstract_phase_raises():
    phase = Phase('abstract', water_gas().species_thermo)
    with pytest.raises(NotImplementedError):
        phase.chem_potentials()


def test_phase_from_database():
    dbf = ThermoDatabase()
    dbf.add_species('H2', parameters=H2_DATA)
    dbf.add_species('O2', parameters=O2_DATA)
    gas = IdealGasPhase.from_database(dbf, 'gas', ['H2', 'O2'], temperature=500.0)
    assert gas.species_names == ['H2', 'O2']
    assert gas.temperature == 500.0
    with pytest.raises(InvalidInputError):
        IdealGasPhase.from_database(dbf, 'gas', ['H2', 'N2'])


def test_phase_construction_validation():
    with pytest.raises(InvalidInputError):
        IdealGasPhase('empty', [])
    with pytest.raises(InvalidInputError):
        IdealGasPhase('duplicates', [water_gas().species_thermo[0]] * 2)
