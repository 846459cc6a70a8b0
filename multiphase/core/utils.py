"""
The utils module handles helper routines for equilibrium calculation.
"""
from sympy.utilities.lambdify import lambdify
import numpy as np

from multiphase.core.errors import InvalidInputError
from multiphase.io.grammar import parse_composition


def make_callable(model, variables, mode=None):
    """
    Take a SymPy object and create a callable function.

    Parameters
    ----------
    model, SymPy object
        Abstract representation of function
    variables, list
        Input variables, ordered in the way the return function will expect
    mode, ['numpy', 'math', 'sympy'], optional
        Method to use when 'compiling' the function. SymPy mode is
        slow and should only be used for debugging.

    Returns
    -------
    Function that takes arguments in the same order as 'variables'
    and returns a float.

    Examples
    --------
    >>> f = make_callable(2*v.T, [v.T])
    >>> f(300.)
    600.0
    """
    if mode is None:
        mode = 'numpy'

    if mode == 'sympy':
        energy = lambda *vs: float(model.subs(zip(variables, vs)).evalf())
    else:
        compiled = lambdify(tuple(variables), model, dummify=True, modules=mode)
        energy = lambda *vs: float(compiled(*vs))

    return energy


def normalize_fractions(x, size=None):
    """
    Return a copy of `x` scaled to sum to one.

    Raises
    ------
    InvalidInputError
        If the length is wrong, any entry is negative or not finite, or all
        entries are zero.
    """
    x = np.array(x, dtype=np.float64).ravel()
    if size is not None and x.shape[0] != size:
        raise InvalidInputError('Expected {} mole fractions, got {}'.format(size, x.shape[0]))
    if not np.all(np.isfinite(x)):
        raise InvalidInputError('Mole fractions must be finite')
    if np.any(x < 0):
        raise InvalidInputError('Mole fractions must be non-negative')
    total = x.sum()
    if total <= 0:
        raise InvalidInputError('Mole fractions must not all be zero')
    return x / total


def unpack_composition(composition, names):
    """
    Convert a composition map into an array ordered like `names`.

    Parameters
    ----------
    composition : str or Mapping
        Either a composition string ('CH4:1, O2:2') or a mapping of
        species name to amount. Species not listed are zero.
    names : Sequence[str]
        Species names in output order. A name may occur more than once,
        in which case each occurrence receives the amount.

    Returns
    -------
    ndarray
    """
    if isinstance(composition, str):
        composition = parse_composition(composition)
    elif not hasattr(composition, 'keys'):
        raise InvalidInputError('Composition must be a string or a mapping, got {!r}'.format(composition))
    known = set(names)
    for name in composition.keys():
        if name not in known:
            raise InvalidInputError('Unknown species {!r}'.format(name))
    values = np.zeros(len(names))
    for idx, name in enumerate(names):
        amount = composition.get(name, 0.0)
        try:
            values[idx] = float(amount)
        except (TypeError, ValueError) as e:
            raise InvalidInputError('Invalid amount {!r} for species {!r}'.format(amount, name)) from e
        if values[idx] < 0 or not np.isfinite(values[idx]):
            raise InvalidInputError('Invalid amount {!r} for species {!r}'.format(amount, name))
    return values
