"""Defines a class for recording the iterations of equilibrium calculations"""

import numpy as np
from xarray import Dataset


class EquilibriumTrace:
    """
    Record of the steps taken by an equilibrium calculation.

    Every step is a row of scalar values. Rows from the inner (fixed T and
    P) solver and from the outer loop are stored together, distinguished
    by the 'kind' column.

    Attributes
    ----------
    columns : tuple
        Names of the recorded values.
    rows : list of dict

    Notes
    -----
    Steps are appended as plain dicts because building an xarray Dataset
    inside the solver loop costs more than the step itself. Call
    `get_dataset` after the calculation to obtain a Dataset with a 'step'
    dimension.

    """
    columns = ('kind', 'iteration', 'T', 'P', 'error', 'alpha', 'n_components', 'n_reactions')

    def __init__(self):
        self.rows = []

    def __len__(self):
        return len(self.rows)

    def __getitem__(self, item):
        if item not in self.columns:
            raise KeyError("`{}` is not a recorded variable".format(item))
        return np.array([row.get(item, np.nan) for row in self.rows])

    def add_step(self, kind, **values):
        unknown = set(values) - set(self.columns)
        if unknown:
            raise KeyError("Unknown trace variables: {}".format(sorted(unknown)))
        row = {name: np.nan for name in self.columns}
        row.update(values)
        row['kind'] = kind
        self.rows.append(row)

    def clear(self):
        self.rows = []

    def get_dataset(self):
        """Build an xarray Dataset"""
        data_vars = {}
        for name in self.columns:
            if name == 'kind':
                values = np.array([row['kind'] for row in self.rows], dtype=object)
            else:
                values = np.array([row[name] for row in self.rows], dtype=np.float64)
            data_vars[name] = (('step',), values)
        return Dataset(data_vars, {'step': np.arange(len(self.rows))})

    def to_html(self):
        "Render the trace as an HTML table."
        return self.get_dataset().to_dataframe().to_html()
