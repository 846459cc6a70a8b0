"""
The phases module defines the thermodynamic phase objects that a Mixture
is built from.

A phase owns its species, its temperature, pressure and composition, and
evaluates molar properties at that state. Subclasses only implement the
property functions; the bookkeeping lives in the Phase base class.
"""
import numpy as np
from multiphase.core.constants import GAS_CONSTANT, ONE_ATM, SMALL_NUMBER
from multiphase.core.errors import InvalidInputError
from multiphase.core.utils import normalize_fractions, unpack_composition
from multiphase.model import SpeciesThermo


class Phase(object):
    """
    Base class for phases.

    Parameters
    ----------
    name : str
        Name of the phase.
    species_thermo : Sequence[SpeciesThermo]
        Species of the phase with their standard-state models.
    temperature : float, optional
        Initial temperature [K].
    pressure : float, optional
        Initial pressure [Pa].
    mole_fractions : Sequence[float] or str or Mapping, optional
        Initial composition. Defaults to pure first species.
    reference_pressure : float, optional
        Pressure of the standard state [Pa].
    """
    is_stoichiometric = False

    def __init__(self, name, species_thermo, temperature=298.15, pressure=ONE_ATM,
                 mole_fractions=None, reference_pressure=ONE_ATM):
        species_thermo = list(species_thermo)
        if len(species_thermo) == 0:
            raise InvalidInputError('Phase {!r} needs at least one species'.format(name))
        for thermo in species_thermo:
            if not isinstance(thermo, SpeciesThermo):
                raise InvalidInputError('Expected SpeciesThermo, got {!r}'.format(thermo))
        names = [thermo.name for thermo in species_thermo]
        if len(set(names)) != len(names):
            raise InvalidInputError('Duplicate species in phase {!r}'.format(name))
        self.name = name
        self.species_thermo = species_thermo
        self.species = [thermo.species for thermo in species_thermo]
        self.reference_pressure = float(reference_pressure)
        self._temperature = float(temperature)
        self._pressure = float(pressure)
        self._mole_fractions = np.zeros(len(species_thermo))
        self._mole_fractions[0] = 1.0
        if mole_fractions is not None:
            self.set_mole_fractions(mole_fractions)
        elements = []
        for sp in self.species:
            for el in sp.elements:
                if el not in elements:
                    elements.append(el)
        self.element_names = elements

    @classmethod
    def from_database(cls, dbf, name, species_names, **kwargs):
        """
        Build a phase from species stored in a ThermoDatabase.

        Parameters
        ----------
        dbf : ThermoDatabase
        name : str
            Name of the new phase.
        species_names : Sequence[str]
        kwargs
            Passed to the phase constructor.
        """
        return cls(name, [dbf.species_thermo(sp) for sp in species_names], **kwargs)

    def __repr__(self):
        return '{}({!r}, {})'.format(self.__class__.__name__, self.name, self.species_names)

    @property
    def n_species(self):
        return len(self.species)

    @property
    def species_names(self):
        return [sp.name for sp in self.species]

    def species_index(self, name):
        "Local index of the species called `name`."
        try:
            return self.species_names.index(name)
        except ValueError:
            raise InvalidInputError('Species {!r} not found in phase {!r}'.format(name, self.name)) from None

    def n_atoms(self, k, element):
        "Number of atoms of `element` in local species `k`."
        return self.species[k].constituents.get(element, 0.0)

    def charge(self, k):
        "Charge of local species `k` in units of the elementary charge."
        return self.species[k].charge

    @property
    def temperature(self):
        return self._temperature

    @temperature.setter
    def temperature(self, value):
        if value <= 0:
            raise InvalidInputError('Temperature must be positive, got {}'.format(value))
        self._temperature = float(value)

    @property
    def pressure(self):
        return self._pressure

    @pressure.setter
    def pressure(self, value):
        if value <= 0:
            raise InvalidInputError('Pressure must be positive, got {}'.format(value))
        self._pressure = float(value)

    def get_mole_fractions(self):
        return self._mole_fractions.copy()

    def set_mole_fractions(self, x):
        """
        Set the composition. Input is normalized to sum to one.

        Parameters
        ----------
        x : Sequence[float] or str or Mapping
            Mole fractions, or a composition map of species names.
        """
        if isinstance(x, str) or hasattr(x, 'keys'):
            x = unpack_composition(x, self.species_names)
        self._mole_fractions = normalize_fractions(x, size=self.n_species)

    def set_state_tpx(self, temperature, pressure, x=None):
        self.temperature = temperature
        self.pressure = pressure
        if x is not None:
            self.set_mole_fractions(x)

    @property
    def min_temp(self):
        "Lowest temperature for which the data of every species are valid."
        return max(thermo.tmin for thermo in self.species_thermo)

    @property
    def max_temp(self):
        "Highest temperature for which the data of every species are valid."
        return min(thermo.tmax for thermo in self.species_thermo)

    @property
    def RT(self):
        return GAS_CONSTANT * self._temperature

    def _log_mole_fractions(self):
        return np.log(np.maximum(self._mole_fractions, SMALL_NUMBER))

    def _mixing_entropy(self):
        "Ideal entropy of mixing per kmol of phase [J/kmol/K]."
        x = self._mole_fractions
        nonzero = x > 0
        return -GAS_CONSTANT * np.sum(x[nonzero] * np.log(x[nonzero]))

    def standard_gibbs(self):
        "Standard-state Gibbs energies at the reference pressure [J/kmol]."
        return np.array([thermo.gibbs(self._temperature) for thermo in self.species_thermo])

    def standard_enthalpies(self):
        return np.array([thermo.enthalpy(self._temperature) for thermo in self.species_thermo])

    def standard_entropies(self):
        return np.array([thermo.entropy(self._temperature) for thermo in self.species_thermo])

    def standard_cp(self):
        return np.array([thermo.cp(self._temperature) for thermo in self.species_thermo])

    def standard_chem_potentials(self):
        """
        *Implement this method.*
        Chemical potentials of the pure species at the current T and P [J/kmol].
        """
        raise NotImplementedError("A subclass of Phase must be implemented.")

    def chem_potentials(self):
        """
        *Implement this method.*
        Chemical potentials of the species at the current state [J/kmol].
        """
        raise NotImplementedError("A subclass of Phase must be implemented.")

    def enthalpy_mole(self):
        "*Implement this method.* Molar enthalpy [J/kmol]."
        raise NotImplementedError("A subclass of Phase must be implemented.")

    def entropy_mole(self):
        "*Implement this method.* Molar entropy [J/kmol/K]."
        raise NotImplementedError("A subclass of Phase must be implemented.")

    def cp_mole(self):
        "Molar heat capacity at constant pressure [J/kmol/K]."
        return float(np.dot(self._mole_fractions, self.standard_cp()))

    def volume_mole(self):
        "*Implement this method.* Molar volume [m^3/kmol]."
        raise NotImplementedError("A subclass of Phase must be implemented.")

    def gibbs_mole(self):
        "Molar Gibbs energy [J/kmol]."
        return self.enthalpy_mole() - self._temperature * self.entropy_mole()


class IdealGasPhase(Phase):
    """
    Ideal gas mixture.

    The chemical potential of species k is
    mu_k = g_k(T) + RT ln(P/P_ref) + RT ln(x_k).
    """
    def standard_chem_potentials(self):
        return self.standard_gibbs() + self.RT * np.log(self._pressure / self.reference_pressure)

    def chem_potentials(self):
        return self.standard_chem_potentials() + self.RT * self._log_mole_fractions()

    def enthalpy_mole(self):
        return float(np.dot(self._mole_fractions, self.standard_enthalpies()))

    def entropy_mole(self):
        s0 = float(np.dot(self._mole_fractions, self.standard_entropies()))
        return s0 + self._mixing_entropy() - GAS_CONSTANT * np.log(self._pressure / self.reference_pressure)

    def volume_mole(self):
        return self.RT / self._pressure


class IdealSolutionPhase(Phase):
    """
    Ideal condensed solution with incompressible species.

    The chemical potential of species k is
    mu_k = g_k(T) + v_k (P - P_ref) + RT ln(x_k),
    where v_k is the molar volume of the pure species.
    """
    def _molar_volumes(self):
        return np.array([thermo.molar_volume for thermo in self.species_thermo])

    def standard_chem_potentials(self):
        return self.standard_gibbs() + self._molar_volumes() * (self._pressure - self.reference_pressure)

    def chem_potentials(self):
        return self.standard_chem_potentials() + self.RT * self._log_mole_fractions()

    def enthalpy_mole(self):
        h = self.standard_enthalpies() + self._molar_volumes() * (self._pressure - self.reference_pressure)
        return float(np.dot(self._mole_fractions, h))

    def entropy_mole(self):
        return float(np.dot(self._mole_fractions, self.standard_entropies())) + self._mixing_entropy()

    def volume_mole(self):
        return float(np.dot(self._mole_fractions, self._molar_volumes()))


class StoichSubstance(IdealSolutionPhase):
    """
    Pure condensed phase of fixed composition.

    Stoichiometric phases may carry thermo data valid only where they are
    stable, so a Mixture does not use them to bound its valid temperature
    range.
    """
    is_stoichiometric = True

    def __init__(self, name, species_thermo, **kwargs):
        if isinstance(species_thermo, SpeciesThermo):
            species_thermo = [species_thermo]
        species_thermo = list(species_thermo)
        if len(species_thermo) != 1:
            raise InvalidInputError('Stoichiometric phase {!r} must have exactly one species'.format(name))
        super().__init__(name, species_thermo, **kwargs)
