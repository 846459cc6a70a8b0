"""
The mixture module defines Mixture, a set of phases sharing a common
temperature and pressure, each with its own composition and amount.

All phases of a mixture are indexed in one global element/species space:
global species k of phase p has index ``spstart[p] + local index``, and an
element present in several phases gets a single global index. The mixture
does not own its phases. It writes its temperature, pressure and
compositions into them before every property evaluation; a caller who
modifies a phase directly must call `Mixture.update_mole_fractions`.
"""
import functools
import warnings
import numpy as np
from xarray import Dataset
from multiphase.core.constants import T_MIN, T_MAX, ONE_ATM
from multiphase.core.equilibrium import equilibrate
from multiphase.core.errors import InvalidStateError, InvalidInputError
from multiphase.core.utils import normalize_fractions, unpack_composition
from multiphase.log import logger


def _requires_init(func):
    "Raise InvalidStateError when the global indices have not been built yet."
    @functools.wraps(func)
    def wrapped(self, *args, **kwargs):
        if not self._initialized:
            raise InvalidStateError('Mixture.init() must be called before {}()'.format(func.__name__))
        return func(self, *args, **kwargs)
    return wrapped


class Mixture(object):
    """
    A multiphase mixture.

    Phases are added with `add_phase` and the mixture is finalized with
    `init`, after which no more phases may be added.

    Parameters
    ----------
    temperature : float, optional
        Initial temperature [K].
    pressure : float, optional
        Initial pressure [Pa].

    Attributes
    ----------
    equilibrium_trace : EquilibriumTrace or None
        Diagnostic trace of the last `equilibrate` call made with a
        positive loglevel.

    Examples
    --------
    >>> mix = Mixture()
    >>> mix.add_phase(gas, 1.0)
    >>> mix.add_phase(graphite, 0.5)
    >>> mix.init()
    >>> mix.equilibrate('TP')
    """
    def __init__(self, temperature=298.15, pressure=ONE_ATM):
        self._phases = []
        self._moles = []
        self._mole_fractions = np.zeros(0)
        self._spstart = []
        self._spphase = []
        self._species_names = []
        self._initialized = False
        self._element_names = []
        self._element_index = {}
        self._atoms = np.zeros((0, 0))
        self._tmin = T_MIN
        self._tmax = T_MAX
        # Invalidate-on-write caches
        self._elem_abundances = None
        self._temp_ok = None
        # Species moles exactly as last given to set_moles, for exact round trips
        self._species_moles = None
        self.equilibrium_trace = None
        self.temperature = temperature
        self.pressure = pressure

    #
    # Construction
    #

    def add_phase(self, phase, moles):
        """
        Add a phase to the mixture.

        Parameters
        ----------
        phase : Phase
            The mixture keeps a reference to it; it is not copied.
        moles : float
            Total amount of the phase [kmol].

        Raises
        ------
        InvalidStateError
            If `init` has already been called.
        """
        if self._initialized:
            raise InvalidStateError('Phases cannot be added after Mixture.init()')
        moles = float(moles)
        if moles < 0 or not np.isfinite(moles):
            raise InvalidInputError('Phase moles must be non-negative, got {}'.format(moles))
        self._spstart.append(len(self._species_names))
        for name in phase.species_names:
            self._species_names.append(name)
            self._spphase.append(len(self._phases))
        self._phases.append(phase)
        self._moles.append(moles)
        self._mole_fractions = np.concatenate((self._mole_fractions, phase.get_mole_fractions()))
        logger.debug('Added phase %s with %d species and %g kmol', phase.name, phase.n_species, moles)

    def add_phases(self, phases, moles=None):
        """
        Add several phases, in order.

        Parameters
        ----------
        phases : Sequence[Phase] or Mixture
            When a Mixture is given, its phases are added with its phase moles.
        moles : Sequence[float], optional
            Moles of each phase. Required unless `phases` is a Mixture.
        """
        if isinstance(phases, Mixture):
            moles = [phases.phase_moles(n) for n in range(phases.n_phases)]
            phases = list(phases._phases)
        elif moles is None:
            raise InvalidInputError('Phase moles are required when adding a list of phases')
        phases = list(phases)
        moles = list(moles)
        if len(phases) != len(moles):
            raise InvalidInputError('Got {} phases but {} phase moles'.format(len(phases), len(moles)))
        for phase, phase_moles in zip(phases, moles):
            self.add_phase(phase, phase_moles)

    def init(self):
        """
        Build the global element index and the atom matrix.

        This method must be called after all phases are added, before doing
        anything else with the mixture. Calling it again has no effect.
        """
        if self._initialized:
            return
        for phase in self._phases:
            for el in phase.element_names:
                if el not in self._element_index:
                    self._element_index[el] = len(self._element_names)
                    self._element_names.append(el)
        atoms = np.zeros((len(self._element_names), len(self._species_names)))
        for p, phase in enumerate(self._phases):
            for k in range(phase.n_species):
                kglob = self._spstart[p] + k
                for el in phase.element_names:
                    atoms[self._element_index[el], kglob] = phase.n_atoms(k, el)
        self._atoms = atoms
        tmin, tmax = T_MIN, T_MAX
        for phase in self._phases:
            if not phase.is_stoichiometric:
                tmin = max(tmin, phase.min_temp)
                tmax = min(tmax, phase.max_temp)
        if tmin > tmax:
            warnings.warn('The solution phases of this mixture have no common valid temperature range')
        self._tmin, self._tmax = tmin, tmax
        self._initialized = True
        self._invalidate()
        self._update_phases()
        logger.debug('Initialized mixture with %d phases, %d elements and %d species',
                     self.n_phases, self.n_elements, self.n_species)

    #
    # Sizes and names
    #

    @property
    def n_phases(self):
        return len(self._phases)

    @property
    @_requires_init
    def n_elements(self):
        return len(self._element_names)

    @property
    @_requires_init
    def n_species(self):
        return len(self._species_names)

    @_requires_init
    def element_name(self, m):
        return self._element_names[m]

    @_requires_init
    def element_index(self, name):
        "Global index of the element called `name`."
        try:
            return self._element_index[name]
        except KeyError:
            raise InvalidInputError('Element {!r} not found in mixture'.format(name)) from None

    @_requires_init
    def species_name(self, k):
        return self._species_names[k]

    @property
    @_requires_init
    def species_names(self):
        return list(self._species_names)

    @_requires_init
    def species_index(self, k, p):
        "Global index of local species `k` of phase `p`."
        if not 0 <= k < self._phases[p].n_species:
            raise InvalidInputError('Phase {} has no species {}'.format(p, k))
        return self._spstart[p] + k

    @_requires_init
    def species_phase_index(self, k):
        "Index of the phase owning global species `k`."
        return self._spphase[k]

    @_requires_init
    def solution_species(self, k):
        "True if global species `k` belongs to a multicomponent solution phase."
        phase = self._phases[self._spphase[k]]
        return phase.n_species > 1 and not phase.is_stoichiometric

    @_requires_init
    def n_atoms(self, k, m):
        "Number of atoms of element `m` in global species `k`."
        return self._atoms[m, k]

    @property
    @_requires_init
    def atom_matrix(self):
        "Copy of the (n_elements, n_species) atom matrix."
        return self._atoms.copy()

    @property
    def min_temp(self):
        """
        Minimum temperature for which all solution phases have valid thermo
        data. Stoichiometric phases are not considered, since they may have
        data only valid where they are stable.
        """
        return self._tmin

    @property
    def max_temp(self):
        "Maximum temperature for which all solution phases have valid thermo data."
        return self._tmax

    def _phase_slice(self, p):
        start = self._spstart[p]
        return slice(start, start + self._phases[p].n_species)

    #
    # State
    #

    @property
    def temperature(self):
        return self._temperature

    @temperature.setter
    def temperature(self, value):
        if value <= 0 or not np.isfinite(value):
            raise InvalidInputError('Temperature must be positive, got {}'.format(value))
        self._temperature = float(value)
        self._temp_ok = None
        self._update_phases()

    @property
    def pressure(self):
        return self._pressure

    @pressure.setter
    def pressure(self, value):
        if value <= 0 or not np.isfinite(value):
            raise InvalidInputError('Pressure must be positive, got {}'.format(value))
        self._pressure = float(value)
        self._update_phases()

    def set_temperature(self, value):
        self.temperature = value

    def set_pressure(self, value):
        self.pressure = value

    def _invalidate(self):
        self._elem_abundances = None
        self._temp_ok = None

    def _update_phases(self):
        """
        Set the states of the phase objects to the locally-stored state.
        If individual phases have T and P different than that stored
        locally, the phase T and P will be modified. Composition slices that
        sum to zero (phases without moles) leave the phase composition as is.
        """
        for p, phase in enumerate(self._phases):
            x = self._mole_fractions[self._phase_slice(p)]
            phase.set_state_tpx(self._temperature, self._pressure, x if x.sum() > 0 else None)

    def update_mole_fractions(self):
        """
        Update the locally-stored composition to match the current
        compositions of the phase objects.
        """
        for p, phase in enumerate(self._phases):
            self._mole_fractions[self._phase_slice(p)] = phase.get_mole_fractions()
        self._species_moles = None
        self._invalidate()

    @_requires_init
    def phase(self, n):
        """
        Return phase `n` after writing the mixture's temperature, pressure
        and composition of that phase into it.
        """
        phase = self._phases[n]
        x = self._mole_fractions[self._phase_slice(n)]
        phase.set_state_tpx(self._temperature, self._pressure, x if x.sum() > 0 else None)
        return phase

    def phase_moles(self, n):
        "Total amount of phase `n` [kmol]."
        return self._moles[n]

    @_requires_init
    def set_phase_moles(self, n, moles):
        moles = float(moles)
        if moles < 0 or not np.isfinite(moles):
            raise InvalidInputError('Phase moles must be non-negative, got {}'.format(moles))
        self._moles[n] = moles
        self._species_moles = None
        self._invalidate()

    @_requires_init
    def get_mole_fractions(self):
        "Species mole fractions, normalized to sum to one within each phase."
        return self._mole_fractions.copy()

    @_requires_init
    def mole_fraction(self, k):
        return self._mole_fractions[k]

    @_requires_init
    def set_phase_mole_fractions(self, n, x):
        """
        Set the composition of phase `n`. The input is normalized to sum to one.

        Raises
        ------
        InvalidInputError
            If `x` has the wrong length, negative entries or sums to zero.
        """
        phase = self._phases[n]
        x = normalize_fractions(x, size=phase.n_species)
        self._mole_fractions[self._phase_slice(n)] = x
        phase.set_state_tpx(self._temperature, self._pressure, x)
        self._species_moles = None
        self._invalidate()

    @_requires_init
    def species_moles(self, k):
        "Amount of global species `k` [kmol]."
        if self._species_moles is not None:
            return self._species_moles[k]
        return self._moles[self._spphase[k]] * self._mole_fractions[k]

    @_requires_init
    def get_moles(self):
        "Amounts of all global species [kmol]."
        if self._species_moles is not None:
            return self._species_moles.copy()
        return np.array(self._moles)[self._spphase] * self._mole_fractions

    @_requires_init
    def set_moles(self, n):
        """
        Set the amounts of all global species [kmol].

        Phase totals and mole fractions are recomputed; the fractions of a
        phase with no moles are zero.
        """
        n = np.array(n, dtype=np.float64).ravel()
        if n.shape[0] != self.n_species:
            raise InvalidInputError('Expected {} species moles, got {}'.format(self.n_species, n.shape[0]))
        if np.any(n < 0) or not np.all(np.isfinite(n)):
            raise InvalidInputError('Species moles must be finite and non-negative')
        for p in range(self.n_phases):
            sl = self._phase_slice(p)
            total = n[sl].sum()
            self._moles[p] = total
            if total > 0:
                self._mole_fractions[sl] = n[sl] / total
            else:
                self._mole_fractions[sl] = 0.0
        self._species_moles = n
        self._invalidate()
        self._update_phases()

    @_requires_init
    def set_moles_by_name(self, composition):
        """
        Set the species amounts from a composition map.

        Species which are not listed are set to zero. A name shared by
        species of several phases sets all of them.

        Parameters
        ----------
        composition : str or Mapping[str, float]
            For example 'CH4:1, O2:2' or {'CH4': 1.0, 'O2': 2.0}.

        Raises
        ------
        InvalidInputError
            If a name is not a species of the mixture or the map is malformed.
        """
        self.set_moles(unpack_composition(composition, self._species_names))

    @_requires_init
    def get_elem_abundances(self):
        "Total amounts of all elements [kmol]."
        if self._elem_abundances is None:
            self._elem_abundances = self._atoms @ self.get_moles()
        return self._elem_abundances.copy()

    @_requires_init
    def element_moles(self, m):
        "Total amount of element `m`, summed over all phases [kmol]."
        return float(self._atoms[m] @ self.get_moles())

    @_requires_init
    def phase_charge(self, p):
        "Charge of phase `p` [kmol of elementary charge]."
        phase = self._phases[p]
        sl = self._phase_slice(p)
        charges = np.array([phase.charge(k) for k in range(phase.n_species)], dtype=np.float64)
        return float(self._moles[p] * np.dot(charges, self._mole_fractions[sl]))

    @_requires_init
    def charge(self):
        "Total charge [kmol of elementary charge]."
        return sum(self.phase_charge(p) for p in range(self.n_phases))

    @_requires_init
    def temp_ok(self, p):
        """
        True if phase `p` has valid thermo data at the current temperature.
        Stoichiometric phases are always considered valid.
        """
        if self._temp_ok is None:
            self._temp_ok = [phase.is_stoichiometric or (phase.min_temp <= self._temperature <= phase.max_temp)
                             for phase in self._phases]
        return self._temp_ok[p]

    #
    # Properties
    #

    @_requires_init
    def get_chem_potentials(self):
        "Chemical potentials of all species [J/kmol]."
        self._update_phases()
        return np.concatenate([phase.chem_potentials() for phase in self._phases])

    @_requires_init
    def get_valid_chem_potentials(self, not_mu, standard=False):
        """
        Chemical potentials of all species [J/kmol], with `not_mu` in place
        of those whose phase has invalid thermo data at the current
        temperature.

        Parameters
        ----------
        not_mu : float
            Value used for species of phases outside their valid range.
        standard : bool, optional
            If True, return standard chemical potentials instead.
        """
        self._update_phases()
        mu = np.empty(self.n_species)
        for p, phase in enumerate(self._phases):
            sl = self._phase_slice(p)
            if not self.temp_ok(p):
                mu[sl] = not_mu
            elif standard:
                mu[sl] = phase.standard_chem_potentials()
            else:
                mu[sl] = phase.chem_potentials()
        return mu

    def _extensive(self, molar_property):
        self._update_phases()
        return sum(self._moles[p] * getattr(phase, molar_property)()
                   for p, phase in enumerate(self._phases) if self._moles[p] > 0)

    @_requires_init
    def volume(self):
        "Volume [m^3]."
        return self._extensive('volume_mole')

    @_requires_init
    def enthalpy(self):
        "Enthalpy [J]."
        return self._extensive('enthalpy_mole')

    @_requires_init
    def entropy(self):
        "Entropy [J/K]."
        return self._extensive('entropy_mole')

    @_requires_init
    def gibbs(self):
        "Gibbs energy [J]."
        return self._extensive('gibbs_mole')

    @_requires_init
    def cp(self):
        "Heat capacity at constant pressure [J/K]."
        return self._extensive('cp_mole')

    #
    # Equilibrium
    #

    @_requires_init
    def equilibrate(self, XY='TP', err=1.0e-9, maxsteps=1000, maxiter=200, loglevel=-99, trace=None):
        """
        Set the mixture to a state of chemical equilibrium.

        See multiphase.core.equilibrium.equilibrate.
        """
        return equilibrate(self, XY=XY, err=err, maxsteps=maxsteps, maxiter=maxiter,
                           loglevel=loglevel, trace=trace)

    #
    # Reporting
    #

    @_requires_init
    def get_dataset(self):
        """
        Build an xarray Dataset of the current state.

        Species are indexed by global species index; the 'phase' coordinate
        gives the owning phase name of each species.
        """
        mu = self.get_chem_potentials()
        phase_names = [phase.name for phase in self._phases]
        data_vars = {
            'NP': (('phase_index',), np.array(self._moles)),
            'X': (('species_index',), self.get_mole_fractions()),
            'NS': (('species_index',), self.get_moles()),
            'MU': (('species_index',), mu),
            'B': (('element',), self.get_elem_abundances()),
        }
        coords = {
            'phase_index': np.arange(self.n_phases),
            'species_index': np.arange(self.n_species),
            'element': list(self._element_names),
            'species': (('species_index',), list(self._species_names)),
            'phase': (('species_index',), [phase_names[p] for p in self._spphase]),
            'phase_name': (('phase_index',), phase_names),
        }
        attrs = {'T': self._temperature, 'P': self._pressure}
        return Dataset(data_vars, coords, attrs)

    def __str__(self):
        lines = []
        for p, phase in enumerate(self._phases):
            if phase.name != '':
                lines.append('*************** {} *****************'.format(phase.name))
            else:
                lines.append('*************** Phase {} *****************'.format(p))
            lines.append('Moles: {:g}'.format(self._moles[p]))
            lines.append('  temperature    {:12.6g} K'.format(self._temperature))
            lines.append('  pressure       {:12.6g} Pa'.format(self._pressure))
            if self._initialized:
                sl = self._phase_slice(p)
                for name, x in zip(phase.species_names, self._mole_fractions[sl]):
                    lines.append('  {:>16s}   {:12.6g}'.format(name, x))
            lines.append('')
        return '\n'.join(lines)

    def __repr__(self):
        return 'Mixture({})'.format(', '.join(repr(phase.name) for phase in self._phases))
