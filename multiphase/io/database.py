"""
The database module provides an in-memory store of species records from
which standard-state thermo models and phases are built.
"""
from copy import deepcopy
from tinydb import TinyDB, where
from tinydb.storages import MemoryStorage
from multiphase.core.errors import InvalidInputError
from multiphase.model import SpeciesThermo
from multiphase.variables import Species


class ThermoDatabase(object):
    """
    Species thermodynamic data.

    Every record is a dict with the keys 'name', 'constituents', 'charge',
    'model' ('constant_cp' or 'nasa7'), 'parameters' (keyword arguments of
    the corresponding SpeciesThermo constructor), 'tmin', 'tmax' and
    'molar_volume'.

    Examples
    --------
    >>> dbf = ThermoDatabase()
    >>> dbf.add_species('Ar', model='constant_cp', parameters={'cp0': 20786.})
    >>> dbf.species_thermo('Ar').cp(500.)
    20786.0
    """
    models = {
        'constant_cp': SpeciesThermo.constant_cp,
        'nasa7': SpeciesThermo.nasa7,
    }

    def __init__(self):
        self._species = TinyDB(storage=MemoryStorage)
        self._cache = {}

    @classmethod
    def from_dict(cls, data):
        """
        Create a database from a mapping of species name to record.

        Parameters
        ----------
        data : Mapping[str, dict]
            Records without the 'name' key; see the class docstring.
        """
        dbf = cls()
        for name, record in data.items():
            dbf.add_species(name, **record)
        return dbf

    def __len__(self):
        return len(self._species)

    def __contains__(self, name):
        return len(self._species.search(where('name') == name)) > 0

    def __getstate__(self):
        return {'_species': self._species.all()}

    def __setstate__(self, state):
        self._species = TinyDB(storage=MemoryStorage)
        self._species.insert_multiple(state['_species'])
        self._cache = {}

    def __deepcopy__(self, memo):
        copy = type(self)()
        memo[id(self)] = copy
        copy._species.insert_multiple(deepcopy(self._species.all(), memo))
        return copy

    @property
    def species(self):
        "Names of all species in insertion order."
        return [record['name'] for record in self._species.all()]

    @property
    def elements(self):
        elements = set()
        for record in self._species.all():
            elements.update(record['constituents'].keys())
        return elements

    def add_species(self, name, constituents=None, charge=None, model='constant_cp', parameters=None,
                    tmin=None, tmax=None, molar_volume=0.0):
        """
        Add a species record.

        Parameters
        ----------
        name : str
            Species name. It is parsed as a formula when `constituents` is None.
        constituents : Mapping[str, float], optional
        charge : int, optional
        model : str
            Key of ThermoDatabase.models.
        parameters : dict, optional
            Keyword arguments of the model constructor.
        tmin, tmax : float, optional
        molar_volume : float, optional
        """
        if name in self:
            raise InvalidInputError('Species {!r} already in database'.format(name))
        if model not in self.models:
            raise InvalidInputError('Unknown thermo model {!r} for species {!r}'.format(model, name))
        species = Species(name, constituents, charge if charge is not None else 0)
        if constituents is None and charge is not None:
            species.charge = charge
        record = {
            'name': name,
            'constituents': dict(species.constituents),
            'charge': species.charge,
            'model': model,
            'parameters': dict(parameters or {}),
            'molar_volume': float(molar_volume),
        }
        if tmin is not None:
            record['tmin'] = float(tmin)
        if tmax is not None:
            record['tmax'] = float(tmax)
        self._species.insert(record)

    def search(self, query):
        """
        Search the species records.

        Parameters
        ----------
        query
            Structured database query in TinyDB format.

        Examples
        --------
        >>>> from tinydb import where
        >>>> db = ThermoDatabase()
        >>>> db.search(where('model') == 'nasa7')
        """
        return self._species.search(query)

    def species_thermo(self, name):
        """
        Build the SpeciesThermo of a stored species.

        Raises
        ------
        InvalidInputError
            If the species is not in the database.
        """
        if name in self._cache:
            return self._cache[name]
        records = self._species.search(where('name') == name)
        if len(records) == 0:
            raise InvalidInputError('Species {!r} not found in database'.format(name))
        record = records[0]
        species = Species(record['name'], record['constituents'], record['charge'])
        kwargs = dict(record['parameters'])
        kwargs['molar_volume'] = record['molar_volume']
        for key in ('tmin', 'tmax'):
            if key in record:
                kwargs[key] = record[key]
        thermo = self.models[record['model']](species, **kwargs)
        self._cache[name] = thermo
        return thermo

    def __str__(self):
        result = 'Elements: {0}\n'.format(sorted(self.elements))
        result += 'Species: {0}\n'.format(self.species)
        result += '{0} species records in database\n'.format(len(self))
        return result

    def __eq__(self, other):
        if type(self) != type(other):
            return False
        return sorted(self._species.all(), key=lambda r: r['name']) == \
            sorted(other._species.all(), key=lambda r: r['name'])

    def __ne__(self, other):
        return not self.__eq__(other)

    __hash__ = None
