"""
The constants module contains some numerical constants for use
in the module.
Note that modifying these may yield unpredictable results.
"""
# Universal gas constant [J/kmol/K]
GAS_CONSTANT = 8314.46261815324
# Reference pressure of standard states [Pa]
ONE_ATM = 101325.0
# Mole fractions are clamped to this value before taking logarithms
SMALL_NUMBER = 1e-300

# Default bounds of the valid temperature range of a mixture [K]
T_MIN = 1.0
T_MAX = 100000.0

# Pivots smaller than this fraction of the original column magnitude are
# treated as singular by the basis optimizer.
BASIS_PIVOT_TOL = 1e-10
# Two rows are treated as dependent below this relative residual norm.
DEPENDENT_ROW_TOL = 1e-10
# Formation reactions must reproduce atom vectors to this absolute tolerance.
FORMATION_TOL = 1e-8

# Chemical potential assigned to species with invalid thermo data [J/kmol]
NOT_MU = 1.0e12
# Zero-moles solution species are seeded with this fraction of the limiting
# component amount of their formation reaction.
SEED_FRACTION = 1e-10
# Largest relative decrease of a solution species in a single step
MAX_SOLUTION_SHRINK = 0.99
MAX_LINE_SEARCH = 20
ARMIJO_SLOPE = 1e-4
# Largest temperature change in one outer iteration [K]
MAX_TEMPERATURE_STEP = 100.0
# Singular values of the scaled reaction Hessian below this fraction of the
# largest one span directions along which the Gibbs energy is linear.
FLAT_DIRECTION_TOL = 1e-10
# A solution phase whose species all shrink at the same relative rate (to
# this tolerance) is being emptied at fixed composition and may reach zero.
PHASE_REMOVAL_TOL = 1e-6
