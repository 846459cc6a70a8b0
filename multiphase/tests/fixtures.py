"""
Builders of small thermodynamic systems shared by the test modules.
"""
import numpy as np
import pytest
from multiphase import IdealGasPhase, IdealSolutionPhase, StoichSubstance, Mixture, SpeciesThermo
from multiphase.core.constants import GAS_CONSTANT
from multiphase.variables import Species

# Approximate data at 298.15 K; enthalpies in J/kmol, entropies and heat capacities in J/kmol/K
H2_DATA = dict(h0=0.0, s0=130.68e3, cp0=28.84e3)
O2_DATA = dict(h0=0.0, s0=205.15e3, cp0=29.38e3)
H2O_DATA = dict(h0=-241.83e6, s0=188.84e3, cp0=33.59e3)
OH_DATA = dict(h0=37.28e6, s0=183.74e3, cp0=29.89e3)
GRAPHITE_DATA = dict(h0=0.0, s0=5.74e3, cp0=8.52e3)


def isomer_thermo(b_stabilization=np.log(3.0), **kwargs):
    """
    Two isomers A and B of the element X with equal heat capacity.
    g_B - g_A = -RT * b_stabilization at every temperature.
    """
    a = SpeciesThermo.constant_cp(Species('A', {'X': 1}), h0=0.0, s0=0.0, cp0=30.0e3, **kwargs)
    b = SpeciesThermo.constant_cp(Species('B', {'X': 1}), h0=0.0, s0=GAS_CONSTANT * b_stabilization,
                                  cp0=30.0e3, **kwargs)
    return a, b


def isomer_gas(**kwargs):
    return IdealGasPhase('gas', isomer_thermo(**kwargs), mole_fractions=[1.0, 0.0])


def isomer_mixture(moles_a=1.0, moles_b=0.0, temperature=300.0):
    "Initialized mixture of a single ideal gas of the isomers A and B."
    mix = Mixture(temperature=temperature)
    mix.add_phase(isomer_gas(), moles_a + moles_b)
    mix.init()
    mix.set_moles([moles_a, moles_b])
    return mix


def water_gas(with_oh=False):
    species = [SpeciesThermo.constant_cp('H2', **H2_DATA),
               SpeciesThermo.constant_cp('O2', **O2_DATA),
               SpeciesThermo.constant_cp('H2O', **H2O_DATA)]
    if with_oh:
        species.append(SpeciesThermo.constant_cp('OH', **OH_DATA))
    return IdealGasPhase('gas', species)


def graphite(**kwargs):
    return StoichSubstance('graphite', SpeciesThermo.constant_cp('C(gr)', **GRAPHITE_DATA, **kwargs))


def water_graphite_mixture():
    "Initialized mixture of an H2/O2/H2O gas and graphite, with elements H, O, C."
    mix = Mixture(temperature=1000.0)
    mix.add_phase(water_gas(), 1.0)
    mix.add_phase(graphite(), 0.5)
    mix.init()
    return mix


def brine():
    "Ideal solution of two ions."
    sodium = SpeciesThermo.constant_cp(Species('NA+', {'Na': 1}, charge=1), h0=-240.1e6, s0=59.0e3, cp0=46.4e3)
    chloride = SpeciesThermo.constant_cp(Species('CL-', {'Cl': 1}, charge=-1), h0=-167.2e6, s0=56.5e3,
                                         cp0=-136.4e3)
    return IdealSolutionPhase('brine', [sodium, chloride], mole_fractions=[0.5, 0.5])


@pytest.fixture
def isomers():
    return isomer_mixture()


@pytest.fixture
def water_graphite():
    return water_graphite_mixture()
