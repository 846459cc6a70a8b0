"""
The basis module selects the component species and elements of a mixture.

Components are a set of species whose atom vectors span the element space
of the mixture (or its usable part); every other species can be formed
from the components by a formation reaction.
"""
from collections import namedtuple
import numpy as np
from scipy.linalg import lu_factor, lu_solve
from multiphase.core.constants import BASIS_PIVOT_TOL, DEPENDENT_ROW_TOL, FORMATION_TOL
from multiphase.core.errors import SingularBasisError, InvalidInputError
from multiphase.log import logger

BasisResult = namedtuple('BasisResult', ['n_components', 'species_order', 'element_order',
                                         'formation_matrix', 'zeroed_species', 'formable'])
BasisResult.__doc__ = """
Result of basis_optimize.

Attributes
----------
n_components : int
    Number of component species; equals the number of independent elements.
species_order : ndarray
    Global species indices, components first, then the other species in
    ascending index.
element_order : ndarray
    Global element indices, pivot elements first, then dependent elements.
formation_matrix : ndarray or None
    Shape (n_components, n_species - n_components). Column j holds the
    moles of each component needed to form species species_order[n_components + j].
zeroed_species : list
    Global indices of species with no moles; never chosen as components.
formable : ndarray or None
    Boolean per formation_matrix column; False where the species cannot be
    formed from the components, in which case the column is NaN.
"""


def _pivot_candidate(work, rows, candidates, moles, col_scale):
    "Best pivot species for the remaining `rows`, or None."
    best = None
    best_score = -1.0
    for k in candidates:
        magnitude = np.max(np.abs(work[rows, k]))
        # Near-singular columns are skipped for this step
        if magnitude <= BASIS_PIVOT_TOL * col_scale[k]:
            continue
        score = moles[k] * magnitude
        if score > best_score:
            best, best_score = k, score
    return best


def basis_optimize(mixture, form_reactions=True, excluded_species=None):
    """
    Choose a well-conditioned set of component species by Gaussian
    elimination of the atom matrix.

    At each step the candidate with the largest (moles * largest remaining
    atom count) becomes a component, and the element row holding that atom
    count becomes its pivot row. Species with zero moles are never
    candidates.

    Parameters
    ----------
    mixture : Mixture
        Initialized mixture. It is not modified.
    form_reactions : bool, optional
        If True, also compute the formation matrix.
    excluded_species : Iterable[int], optional
        Global species indices which must not be components.

    Returns
    -------
    BasisResult

    Raises
    ------
    SingularBasisError
        If the mixture has elements but no species can be a component.
    """
    atoms = mixture.atom_matrix
    moles = mixture.get_moles()
    n_elements, n_species = atoms.shape
    excluded = set() if excluded_species is None else {int(k) for k in excluded_species}
    zeroed = [k for k in range(n_species) if moles[k] <= 0]
    candidates = [k for k in range(n_species) if moles[k] > 0 and k not in excluded]
    col_scale = np.max(np.abs(atoms), axis=0) if n_elements > 0 else np.zeros(n_species)

    work = atoms.copy()
    rows = list(range(n_elements))
    components = []
    pivots = []
    while len(rows) > 0 and len(candidates) > 0:
        best = _pivot_candidate(work, rows, candidates, moles, col_scale)
        if best is None:
            break
        pivot = rows[int(np.argmax(np.abs(work[rows, best])))]
        rows.remove(pivot)
        for r in rows:
            factor = work[r, best] / work[pivot, best]
            if factor != 0:
                work[r] -= factor * work[pivot]
        candidates.remove(best)
        components.append(best)
        pivots.append(pivot)

    if n_elements > 0 and len(components) == 0:
        raise SingularBasisError('No species can be chosen as a component')
    if len(rows) > 0:
        logger.debug('Dependent elements: %s', [mixture.element_name(m) for m in rows])

    n_components = len(components)
    others = [k for k in range(n_species) if k not in components]
    species_order = np.array(components + others, dtype=np.int_)
    element_order = np.array(pivots + rows, dtype=np.int_)

    formation_matrix = None
    formable = None
    if form_reactions:
        formation_matrix = np.zeros((n_components, len(others)))
        formable = np.ones(len(others), dtype=bool)
        if n_components > 0 and len(others) > 0:
            comp_atoms = atoms[:, components]
            lu_piv = lu_factor(comp_atoms[pivots])
            formation_matrix = lu_solve(lu_piv, atoms[np.ix_(pivots, others)])
            residual = comp_atoms @ formation_matrix - atoms[:, others]
            scale = np.maximum(1.0, np.max(np.abs(atoms[:, others]), axis=0))
            formable = np.max(np.abs(residual), axis=0) <= FORMATION_TOL * scale
            formation_matrix[:, ~formable] = np.nan
        elif n_components == 0 and len(others) > 0:
            formable = np.all(atoms[:, others] == 0, axis=0)
            formation_matrix = np.zeros((0, len(others)))
    return BasisResult(n_components, species_order, element_order, formation_matrix, zeroed, formable)


def elem_rearrange(n_components, element_abundances, mixture, species_order=None):
    """
    Order elements so that the first `n_components` are independent.

    Elements are considered by decreasing abundance. An element is accepted
    when its atom row, restricted to the first `n_components` species of
    `species_order`, is linearly independent of the rows already accepted.

    Parameters
    ----------
    n_components : int
    element_abundances : Sequence[float]
        Moles of each element, indexed like the mixture's elements.
    mixture : Mixture
    species_order : Sequence[int], optional
        Global species order, components first. Defaults to the mixture order.

    Returns
    -------
    ndarray
        Global element indices, accepted elements first.

    Raises
    ------
    SingularBasisError
        If fewer than `n_components` independent element rows exist.
    """
    atoms = mixture.atom_matrix
    n_elements, n_species = atoms.shape
    abundances = np.asarray(element_abundances, dtype=np.float64)
    if abundances.shape != (n_elements,):
        raise InvalidInputError('Expected {} element abundances, got {}'.format(n_elements, abundances.shape))
    if not 0 <= n_components <= min(n_elements, n_species):
        raise InvalidInputError('Invalid number of components: {}'.format(n_components))
    if species_order is None:
        species_order = np.arange(n_species)
    restricted = atoms[:, np.asarray(species_order, dtype=np.int_)[:n_components]]
    by_abundance = sorted(range(n_elements), key=lambda m: (-abundances[m], m))

    accepted = []
    basis = []
    for m in by_abundance:
        if len(accepted) == n_components:
            break
        row = restricted[m].astype(np.float64)
        row_norm = np.linalg.norm(row)
        if row_norm == 0:
            continue
        for q in basis:
            row = row - np.dot(q, row) * q
        residual_norm = np.linalg.norm(row)
        if residual_norm > DEPENDENT_ROW_TOL * row_norm:
            basis.append(row / residual_norm)
            accepted.append(m)
    if len(accepted) < n_components:
        raise SingularBasisError('Only {} of {} element rows are independent'.format(len(accepted), n_components))
    return np.array(accepted + [m for m in by_abundance if m not in accepted], dtype=np.int_)
