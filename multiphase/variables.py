#pylint: disable=C0103,R0903,W0232
"""
Classes and constants for representing thermodynamic variables.
"""

from sympy import Symbol
from multiphase.io.grammar import parse_chemical_formula
from multiphase.core.errors import InvalidInputError


class Species(object):
    """
    A chemical species.

    Attributes
    ----------
    name : string
        Name of the species
    constituents : dict
        Dictionary of {element: quantity} where the element is a string and the quantity a float.
    charge : int
        Integer charge. Can be positive or negative.
    """
    def __new__(cls, name, constituents=None, charge=0):
        # if a Species is passed in, return it
        if name.__class__ == cls:
            return name
        new_self = object.__new__(cls)
        new_self.name = name
        if constituents is not None:
            new_self.constituents = {str(el): float(amnt) for el, amnt in dict(constituents).items()}
            new_self.charge = charge
            return new_self
        parse_list, parsed_charge = parse_chemical_formula(name)
        if len(parse_list) == 0:
            raise InvalidInputError('Cannot deduce the elements of species {!r}'.format(name))
        constituents = {}
        for el, amnt in parse_list:
            constituents[el] = constituents.get(el, 0.0) + amnt
        new_self.constituents = constituents
        new_self.charge = parsed_charge
        return new_self

    def __getnewargs__(self):
        return self.name, self.constituents, self.charge

    def __eq__(self, other):
        """Two species are the same if their names and constituents are the same."""
        if isinstance(other, self.__class__):
            return (self.name == other.name) and (self.constituents == other.constituents)
        else:
            return False

    def __ne__(self, other):
        return not self.__eq__(other)

    def __lt__(self, other):
        return self.name < other.name

    def __str__(self):
        return self.name

    @property
    def elements(self):
        "Element names in order of appearance."
        return list(self.constituents.keys())

    @property
    def number_of_atoms(self):
        "Number of atoms per formula unit."
        return sum(self.constituents.values())

    def __repr__(self):
        species_constituents = ''.join(
            ['{}{}'.format(el, val) for el, val in sorted(self.constituents.items(), key=lambda t: t[0])])
        if self.charge == 0:
            repr_str = "(\'{0}\', \'{1}\')"
        else:
            repr_str = "(\'{0}\', \'{1}\', charge={2})"
        return str(self.__class__.__name__)+repr_str.format(self.name, species_constituents, self.charge)

    def __hash__(self):
        return hash(self.name)


class StateVariable(Symbol):
    """
    State variables are symbols with built-in assumptions of being real.
    """
    implementation_units = ''

    def __new__(cls, name):
        return super().__new__(cls, name.upper(), real=True)


class TemperatureType(StateVariable):
    implementation_units = 'kelvin'

    def __new__(cls):
        return super().__new__(cls, 'T')

    def __reduce__(self):
        return self.__class__, ()


class PressureType(StateVariable):
    implementation_units = 'pascal'

    def __new__(cls):
        return super().__new__(cls, 'P')

    def __reduce__(self):
        return self.__class__, ()


temperature = T = TemperatureType()
pressure = P = PressureType()
enthalpy = H = StateVariable('H')
entropy = S = StateVariable('S')
volume = V = StateVariable('V')

# Pairs of properties that can be held fixed during an equilibrium calculation.
# The first entry is the property adjusted by the outer iteration, if any.
FIXED_PROPERTY_PAIRS = {
    'TP': (T, P),
    'HP': (H, P),
    'SP': (S, P),
    'TV': (T, V),
}


def unpack_fixed_properties(xy):
    """
    Convert a fixed-property specification to its canonical name.

    Parameters
    ----------
    xy : str or tuple of StateVariable
        Either a two letter string such as 'TP' or 'hp', or a pair of state
        variables such as (v.H, v.P), in any order.

    Returns
    -------
    str
        One of the keys of FIXED_PROPERTY_PAIRS.

    Examples
    --------
    >>> unpack_fixed_properties((v.P, v.H))
    'HP'
    """
    if isinstance(xy, str):
        key = xy.upper()
        if key in FIXED_PROPERTY_PAIRS:
            return key
        if key[::-1] in FIXED_PROPERTY_PAIRS:
            return key[::-1]
    else:
        try:
            names = {str(x).upper() for x in xy}
        except TypeError:
            names = set()
        for key, pair in FIXED_PROPERTY_PAIRS.items():
            if names == {str(x) for x in pair}:
                return key
    raise InvalidInputError('Unsupported pair of fixed properties: {!r}. Supported pairs are {}'
                            .format(xy, ', '.join(FIXED_PROPERTY_PAIRS.keys())))
