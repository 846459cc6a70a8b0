"""
The equilibrium module defines routines for computing the chemical
equilibrium state of a Mixture.
"""
from collections import namedtuple
import numpy as np
from scipy.linalg import lstsq, null_space
import multiphase.variables as v
from multiphase.core.basis import basis_optimize
from multiphase.core.constants import GAS_CONSTANT, NOT_MU, SEED_FRACTION, MAX_SOLUTION_SHRINK, \
    MAX_LINE_SEARCH, ARMIJO_SLOPE, MAX_TEMPERATURE_STEP, FLAT_DIRECTION_TOL, PHASE_REMOVAL_TOL, FORMATION_TOL
from multiphase.core.equilibrium_result import EquilibriumTrace
from multiphase.core.errors import ConvergenceError, InvalidInputError
from multiphase.log import logger, solver_level

SolverResult = namedtuple('SolverResult', ['converged', 'error', 'iterations', 'moles'])


class SolverBase(object):
    """Base class for solvers."""
    def solve(self, mixture):
        """
        *Implement this method.*
        Minimize the Gibbs energy of the mixture at its current temperature and pressure.

        Parameters
        ----------
        mixture : multiphase.core.mixture.Mixture
            Initialized mixture. Its species moles are modified in place.

        Returns
        -------
        multiphase.core.equilibrium.SolverResult
        """
        raise NotImplementedError("A subclass of Solver must be implemented.")


class TPEquilibrium(SolverBase):
    """
    Gibbs energy minimization at fixed temperature and pressure.

    The species moles are the unknowns. At every step a component basis is
    chosen with basis_optimize, and each other species defines a formation
    reaction from the components, so element abundances are conserved by
    construction. The reaction extents are updated by a damped Newton step.

    Parameters
    ----------
    err : float
        Convergence tolerance on the largest reaction affinity, in units of RT.
    maxsteps : int
        Largest number of steps.
    loglevel : int
        Steps are logged at INFO level when positive, DEBUG otherwise.
    trace : EquilibriumTrace, optional
        Receives one row per step.
    options
        Overrides of the numerical settings: not_mu, seed_fraction,
        max_solution_shrink, max_line_search, armijo_slope.
    """
    option_defaults = {
        'not_mu': NOT_MU,
        'seed_fraction': SEED_FRACTION,
        'max_solution_shrink': MAX_SOLUTION_SHRINK,
        'max_line_search': MAX_LINE_SEARCH,
        'armijo_slope': ARMIJO_SLOPE,
    }

    def __init__(self, err=1.0e-9, maxsteps=1000, loglevel=-99, trace=None, **options):
        unknown = set(options) - set(self.option_defaults)
        if unknown:
            raise InvalidInputError('Unknown solver options: {}'.format(sorted(unknown)))
        if err <= 0:
            raise InvalidInputError('Tolerance must be positive, got {}'.format(err))
        self.err = err
        self.maxsteps = int(maxsteps)
        self.loglevel = loglevel
        self.trace = trace
        for name, default in self.option_defaults.items():
            setattr(self, name, options.get(name, default))

    def _log(self, msg, *args):
        logger.log(solver_level(self.loglevel), msg, *args)

    @staticmethod
    def _reactions(mixture, basis, frozen):
        """
        Formation reactions of the non-component species.

        Returns the (n_species, n_reactions) stoichiometric matrix and the
        species formed by each reaction.
        """
        n_species = mixture.n_species
        components = basis.species_order[:basis.n_components]
        columns = []
        formed = []
        for j, k in enumerate(basis.species_order[basis.n_components:]):
            if frozen[k] or not basis.formable[j]:
                continue
            nu = np.zeros(n_species)
            nu[k] = 1.0
            nu[components] -= basis.formation_matrix[:, j]
            columns.append(nu)
            formed.append(k)
        if len(columns) == 0:
            return np.zeros((n_species, 0)), np.zeros(0, dtype=np.int_)
        return np.array(columns).T, np.array(formed, dtype=np.int_)

    @staticmethod
    def _solution_phases(mixture):
        "Global species indices of each multicomponent solution phase."
        groups = []
        for p in range(mixture.n_phases):
            members = np.array([k for k in range(mixture.n_species)
                                if mixture.species_phase_index(k) == p and mixture.solution_species(k)],
                               dtype=np.int_)
            if len(members) > 0:
                groups.append(members)
        return groups

    @staticmethod
    def _hessian(moles, groups):
        "Hessian of G/RT for ideal mixing in each solution phase."
        n_species = moles.shape[0]
        hess = np.zeros((n_species, n_species))
        for members in groups:
            total = moles[members].sum()
            if total <= 0:
                continue
            hess[np.ix_(members, members)] -= 1.0 / total
            for k in members:
                if moles[k] > 0:
                    hess[k, k] += 1.0 / moles[k]
        return hess

    @staticmethod
    def _limiting_extent(moles, nu):
        "Largest extent of reaction `nu` before a consumed species runs out."
        consumed = nu < 0
        if not np.any(consumed):
            return moles.sum()
        return float(np.min(moles[consumed] / -nu[consumed]))

    def _gibbs_rt(self, mixture, moles, free, rt):
        mixture.set_moles(moles)
        mu = mixture.get_valid_chem_potentials(self.not_mu) / rt
        return float(np.dot(moles[free], mu[free]))

    def _newton_direction(self, moles, reactions, formed, affinity, hess):
        "Reaction extents of a full Newton step."
        extents = np.zeros(reactions.shape[1])
        curvature = np.einsum('kj,kl,lj->j', reactions, hess, reactions)
        soft = np.nonzero(curvature > 0)[0]
        if len(soft) > 0:
            # Unit-diagonal scaling, so that rank decisions do not depend on the species amounts
            scale = 1.0 / np.sqrt(curvature[soft])
            jac = reactions[:, soft].T @ hess @ reactions[:, soft] * np.outer(scale, scale)
            extents[soft] = -scale * lstsq(jac, scale * affinity[soft], cond=FLAT_DIRECTION_TOL)[0]
            # Moving a phase at fixed composition leaves G linear: go as far as possible downhill
            for q in null_space(jac, rcond=FLAT_DIRECTION_TOL).T:
                direction = np.zeros_like(extents)
                direction[soft] = scale * q
                direction /= np.max(np.abs(direction))
                drive = np.dot(affinity, direction)
                if abs(drive) < self.err:
                    continue
                direction *= -np.sign(drive)
                extents += self._limiting_extent(moles, reactions @ direction) * direction
        # Reactions among pure phases only are linear in G: convert fully downhill
        for j in np.nonzero(curvature <= 0)[0]:
            if affinity[j] > 0:
                extents[j] = -moles[formed[j]]
            else:
                extents[j] = self._limiting_extent(moles, reactions[:, j])
        # A species which is not present cannot be consumed
        extents[(moles[formed] <= 0) & (extents < 0)] = 0.0
        return extents

    def _max_step(self, moles, delta, groups, solution):
        """
        Largest step length keeping moles non-negative, and the species
        which reach zero at that length.

        Pure species may be used up exactly. Solution species may only lose
        max_solution_shrink of their amount, unless their whole phase is
        being emptied at fixed composition.
        """
        alpha = 1.0
        limiting = None
        for k in np.nonzero((delta < 0) & ~solution)[0]:
            bound = moles[k] / -delta[k]
            if bound < alpha:
                alpha, limiting = bound, [k]
        for members in groups:
            present = members[moles[members] > 0]
            if len(present) == 0:
                continue
            rates = -delta[present] / moles[present]
            if np.max(rates) <= 0:
                continue
            absent = members[moles[members] <= 0]
            if np.all(rates > 0) and np.all(delta[absent] <= 0) and \
                    np.ptp(rates) <= PHASE_REMOVAL_TOL * np.max(rates):
                bound, snap = 1.0 / np.max(rates), list(present)
            else:
                bound, snap = self.max_solution_shrink / np.max(rates), None
            if bound < alpha:
                alpha, limiting = bound, snap
        return alpha, limiting

    @staticmethod
    def _trial_moles(moles, delta, alpha, atoms, components, snap=None):
        """
        Moles after a step of length `alpha` along `delta`.

        Species in `snap`, and species pushed below zero by round-off, are
        set to zero. The elements they still held are handed back to the
        component species, so element abundances are unchanged. If the
        components cannot take them, only species that are empty to
        round-off are zeroed.
        """
        trial = moles + alpha * delta
        zeroed = trial < 0
        if snap is not None:
            zeroed[snap] = True
        if not np.any(zeroed):
            return trial
        leftover = atoms[:, zeroed] @ trial[zeroed]
        receivers = np.array([k for k in components if not zeroed[k]], dtype=np.int_)
        if len(receivers) > 0:
            amounts = lstsq(atoms[:, receivers], leftover)[0]
            balanced = np.allclose(atoms[:, receivers] @ amounts, leftover, rtol=0.0,
                                   atol=FORMATION_TOL * np.max(np.abs(leftover)))
            if balanced and np.all(trial[receivers] + amounts >= 0):
                trial[zeroed] = 0.0
                trial[receivers] += amounts
                return trial
        # Nothing can take the leftover: only zero species that are empty to round-off
        roundoff = 4.0 * np.finfo(float).eps * np.maximum(moles, np.abs(alpha * delta))
        trial[zeroed & (np.abs(trial) <= roundoff)] = 0.0
        return trial

    def _seed(self, mixture, moles, reactions, formed, solution):
        """
        Give absent solution species with negative affinity a small amount,
        moved along their formation reactions. Returns True if any were seeded.
        """
        seeded = False
        for j, k in enumerate(formed):
            if moles[k] > 0 or not solution[k]:
                continue
            amount = self.seed_fraction * self._limiting_extent(moles, reactions[:, j])
            if amount <= 0:
                continue
            moles = moles + amount * reactions[:, j]
            moles[moles < 0] = 0.0
            seeded = True
        if seeded:
            mixture.set_moles(moles)
        return seeded

    def solve(self, mixture):
        """
        Minimize the Gibbs energy of the mixture at its current temperature and pressure.

        Species of phases whose thermo data are not valid at the current
        temperature keep their moles and take no part in reactions.

        Parameters
        ----------
        mixture : multiphase.core.mixture.Mixture

        Returns
        -------
        SolverResult

        Raises
        ------
        ConvergenceError
            If the tolerance is not reached within maxsteps.
        SingularBasisError
            If no component species can be found.
        """
        n_species = mixture.n_species
        rt = GAS_CONSTANT * mixture.temperature
        frozen = np.array([not mixture.temp_ok(mixture.species_phase_index(k)) for k in range(n_species)],
                          dtype=bool)
        free = ~frozen
        solution = np.array([mixture.solution_species(k) for k in range(n_species)], dtype=bool)
        groups = self._solution_phases(mixture)
        excluded = np.nonzero(frozen)[0]
        atoms = mixture.atom_matrix
        error = np.inf
        for step in range(self.maxsteps):
            moles = mixture.get_moles()
            basis = basis_optimize(mixture, form_reactions=True, excluded_species=excluded)
            components = basis.species_order[:basis.n_components]
            reactions, formed = self._reactions(mixture, basis, frozen)
            mu = mixture.get_valid_chem_potentials(self.not_mu) / rt
            affinity = reactions.T @ mu
            active = (moles[formed] > 0) | (affinity < 0)
            error = float(np.max(np.abs(affinity[active]))) if np.any(active) else 0.0
            if error < self.err:
                self._record('inner', step, mixture, error, 0.0, basis.n_components, int(active.sum()))
                self._log('Converged in %d steps, error %.3e', step, error)
                return SolverResult(converged=True, error=error, iterations=step, moles=moles)
            reactions, formed, affinity = reactions[:, active], formed[active], affinity[active]
            if self._seed(mixture, moles, reactions, formed, solution):
                self._record('inner', step, mixture, error, 0.0, basis.n_components, len(formed))
                continue

            hess = self._hessian(moles, groups)
            extents = self._newton_direction(moles, reactions, formed, affinity, hess)
            delta = reactions @ extents
            alpha_max, limiting = self._max_step(moles, delta, groups, solution)
            slope = float(np.dot(affinity, extents))
            g0 = float(np.dot(moles[free], mu[free]))
            alpha = alpha_max
            for _ in range(self.max_line_search):
                trial = self._trial_moles(moles, delta, alpha, atoms, components,
                                          limiting if alpha == alpha_max else None)
                if self._gibbs_rt(mixture, trial, free, rt) <= g0 + self.armijo_slope * alpha * slope:
                    break
                alpha *= 0.5
            else:
                # No decrease found within round-off: keep the largest admissible step
                alpha = alpha_max
                mixture.set_moles(self._trial_moles(moles, delta, alpha, atoms, components, limiting))
            self._record('inner', step, mixture, error, alpha, basis.n_components, len(formed))
            self._log('Step %d: error %.3e, alpha %.3e, %d components', step, error, alpha, basis.n_components)
        raise ConvergenceError('No equilibrium after {} steps at T={} K, P={} Pa (error {:.3e})'
                               .format(self.maxsteps, mixture.temperature, mixture.pressure, error), error=error)

    def _record(self, kind, iteration, mixture, error, alpha, n_components, n_reactions):
        if self.trace is None:
            return
        self.trace.add_step(kind, iteration=iteration, T=mixture.temperature, P=mixture.pressure,
                            error=error, alpha=alpha, n_components=n_components, n_reactions=n_reactions)


def _outer_iteration(mixture, solver, fixed, maxiter):
    """
    Adjust temperature (HP, SP) or pressure (TV) until the held property
    recovers its initial value, solving at fixed T and P at each iteration.

    Returns the final relative mismatch of the held property.
    """
    total_moles = float(mixture.get_moles().sum())
    if fixed == 'HP':
        target = mixture.enthalpy()
        measure = mixture.enthalpy
    elif fixed == 'SP':
        target = mixture.entropy()
        measure = mixture.entropy
    else:
        target = mixture.volume()
        measure = mixture.volume
        if target <= 0:
            raise InvalidInputError('Fixed volume equilibrium needs a mixture with positive volume')

    previous = None
    mismatch = np.inf
    for iteration in range(maxiter):
        solver.solve(mixture)
        value = measure()
        residual = value - target
        if fixed == 'HP':
            scale = max(abs(target), GAS_CONSTANT * mixture.temperature * total_moles)
        elif fixed == 'SP':
            scale = max(abs(target), GAS_CONSTANT * total_moles)
        else:
            scale = target
        mismatch = abs(residual) / scale
        if solver.trace is not None:
            solver.trace.add_step('outer', iteration=iteration, T=mixture.temperature, P=mixture.pressure,
                                  error=mismatch)
        solver._log('%s iteration %d: T=%g K, P=%g Pa, relative error %.3e', fixed, iteration,
                    mixture.temperature, mixture.pressure, mismatch)
        if mismatch < solver.err:
            return mismatch

        if fixed == 'TV':
            pressure = mixture.pressure
            if previous is None or residual == previous[1]:
                new_pressure = pressure * value / target
            else:
                new_pressure = pressure - residual * (pressure - previous[0]) / (residual - previous[1])
            if new_pressure <= 0:
                new_pressure = 0.5 * pressure
            previous = (pressure, residual)
            mixture.pressure = new_pressure
            continue

        temperature = mixture.temperature
        if previous is None or residual == previous[1]:
            cp = mixture.cp()
            if cp <= 0:
                raise ConvergenceError('Heat capacity must be positive to adjust the temperature',
                                       error=mismatch)
            if fixed == 'HP':
                delta = -residual / cp
            else:
                delta = -temperature * residual / cp
        else:
            delta = -residual * (temperature - previous[0]) / (residual - previous[1])
        delta = float(np.clip(delta, -MAX_TEMPERATURE_STEP, MAX_TEMPERATURE_STEP))
        new_temperature = float(np.clip(temperature + delta, mixture.min_temp, mixture.max_temp))
        previous = (temperature, residual)
        mixture.temperature = new_temperature
    raise ConvergenceError('{} equilibrium did not converge after {} iterations (relative error {:.3e})'
                           .format(fixed, maxiter, mismatch), error=mismatch)


def equilibrate(mixture, XY='TP', err=1.0e-9, maxsteps=1000, maxiter=200, loglevel=-99, trace=None):
    """
    Set the mixture to a state of chemical equilibrium.

    Parameters
    ----------
    mixture : Mixture
        Initialized mixture. Its species moles, and its temperature (HP, SP)
        or pressure (TV), are modified in place.
    XY : str or tuple, optional
        Pair of properties held fixed: 'TP', 'HP', 'SP' or 'TV'. The values
        held for H, S or V are those of the mixture on entry.
    err : float, optional
        Tolerance on the largest reaction affinity (in units of RT), and on
        the relative mismatch of the held property.
    maxsteps : int, optional
        Maximum number of steps of each fixed T and P solve.
    maxiter : int, optional
        Maximum number of temperature or pressure iterations.
    loglevel : int, optional
        If positive, every step is logged at INFO level and recorded in an
        EquilibriumTrace, stored as `mixture.equilibrium_trace`.
    trace : EquilibriumTrace, optional
        Trace to append to instead of a new one. Only used if loglevel is positive.

    Returns
    -------
    float
        Error achieved: the largest reaction affinity for 'TP', otherwise
        the relative mismatch of the held property.

    Raises
    ------
    ConvergenceError
    InvalidInputError
        If XY is not a supported pair.

    Examples
    --------
    >>> equilibrate(mix, 'HP')  # doctest: +SKIP
    """
    fixed = v.unpack_fixed_properties(XY)
    if loglevel > 0:
        if trace is None:
            trace = EquilibriumTrace()
        mixture.equilibrium_trace = trace
    else:
        trace = None
    solver = TPEquilibrium(err=err, maxsteps=maxsteps, loglevel=loglevel, trace=trace)
    if fixed == 'TP':
        return solver.solve(mixture).error
    return _outer_iteration(mixture, solver, fixed, maxiter)
