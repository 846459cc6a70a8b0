"""
The model module provides support for building the standard-state
thermodynamic functions of a species and compiling them for evaluation.
"""
from sympy import Piecewise, log, sympify
import multiphase.variables as v
from multiphase.core.constants import GAS_CONSTANT, T_MIN, T_MAX
from multiphase.core.errors import InvalidInputError
from multiphase.core.utils import make_callable


class SpeciesThermo(object):
    """
    Standard-state properties of a species as functions of temperature.

    Only the molar enthalpy and entropy need to be supplied; the Gibbs
    energy and the heat capacity are derived symbolically.

    Parameters
    ----------
    species : Species or str
        Species described by this model. Strings are parsed as formulas.
    HM : SymPy object
        Molar enthalpy [J/kmol] as a function of v.T.
    SM : SymPy object
        Molar entropy at the reference pressure [J/kmol/K] as a function of v.T.
    tmin, tmax : float, optional
        Valid temperature range of the data [K].
    molar_volume : float, optional
        Molar volume of the pure species [m^3/kmol]. Used by condensed phases.

    Attributes
    ----------
    GM, HM, SM, CPM : SymPy object
        Molar Gibbs energy, enthalpy, entropy and heat capacity.

    Examples
    --------
    >>> thermo = SpeciesThermo.constant_cp('Ar', h0=0.0, s0=154.8e3, cp0=20.786e3)
    >>> thermo.cp(1000.)
    20786.0
    """
    contributions = [('GM', 'gibbs'), ('HM', 'enthalpy'), ('SM', 'entropy'), ('CPM', 'cp')]

    def __init__(self, species, HM, SM, tmin=T_MIN, tmax=T_MAX, molar_volume=0.0):
        self.species = v.Species(species)
        if tmin >= tmax:
            raise InvalidInputError('Invalid temperature range [{}, {}] for species {}'
                                    .format(tmin, tmax, self.species.name))
        self.tmin = float(tmin)
        self.tmax = float(tmax)
        self.molar_volume = float(molar_volume)
        self.HM = sympify(HM)
        self.SM = sympify(SM)
        self.GM = self.HM - v.T * self.SM
        self.CPM = self.HM.diff(v.T)
        self._callables = {}
        for attr, _ in self.contributions:
            self._callables[attr] = make_callable(getattr(self, attr), [v.T])

    @property
    def name(self):
        return self.species.name

    @classmethod
    def constant_cp(cls, species, h0=0.0, s0=0.0, cp0=0.0, t0=298.15, **kwargs):
        """
        Model with a temperature-independent heat capacity.

        Parameters
        ----------
        species : Species or str
        h0 : float
            Molar enthalpy at t0 [J/kmol].
        s0 : float
            Molar entropy at t0 [J/kmol/K].
        cp0 : float
            Molar heat capacity [J/kmol/K].
        t0 : float
            Reference temperature [K].
        kwargs
            Passed to the constructor (tmin, tmax, molar_volume).
        """
        T = v.T
        HM = h0 + cp0 * (T - t0)
        SM = s0 + cp0 * log(T / t0)
        return cls(species, HM, SM, **kwargs)

    @classmethod
    def nasa7(cls, species, tmid, low, high, tmin=200.0, tmax=6000.0, **kwargs):
        """
        Model from NASA 7-coefficient polynomials over two temperature ranges.

        Parameters
        ----------
        species : Species or str
        tmid : float
            Temperature separating the two ranges [K].
        low, high : Sequence[float]
            Coefficients a1..a7 below and above tmid.
        tmin, tmax : float
            Valid temperature range [K].
        """
        if len(low) != 7 or len(high) != 7:
            raise InvalidInputError('NASA polynomials need exactly 7 coefficients per range')
        T = v.T
        R = GAS_CONSTANT

        def enthalpy(a):
            return R * (a[0]*T + a[1]*T**2/2 + a[2]*T**3/3 + a[3]*T**4/4 + a[4]*T**5/5 + a[5])

        def entropy(a):
            return R * (a[0]*log(T) + a[1]*T + a[2]*T**2/2 + a[3]*T**3/3 + a[4]*T**4/4 + a[6])

        HM = Piecewise((enthalpy(low), T <= tmid), (enthalpy(high), True))
        SM = Piecewise((entropy(low), T <= tmid), (entropy(high), True))
        return cls(species, HM, SM, tmin=tmin, tmax=tmax, **kwargs)

    def gibbs(self, temperature):
        "Molar Gibbs energy [J/kmol]."
        return self._callables['GM'](temperature)

    def enthalpy(self, temperature):
        "Molar enthalpy [J/kmol]."
        return self._callables['HM'](temperature)

    def entropy(self, temperature):
        "Molar entropy at the reference pressure [J/kmol/K]."
        return self._callables['SM'](temperature)

    def cp(self, temperature):
        "Molar heat capacity at constant pressure [J/kmol/K]."
        return self._callables['CPM'](temperature)

    def valid(self, temperature):
        return self.tmin <= temperature <= self.tmax

    def __repr__(self):
        return 'SpeciesThermo({!r}, tmin={}, tmax={})'.format(self.species.name, self.tmin, self.tmax)
