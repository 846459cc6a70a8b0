"""
The log module handles setup for logging errors, debug messages and warnings.

Equilibrium solvers report their steps through the 'multiphase' logger.
The level of these messages follows the solver's `loglevel` argument, see
`solver_level`.
"""

#pylint: disable=C0103
import logging
logger = logging.getLogger('multiphase')
if not logger.handlers:
    _h = logging.StreamHandler()
    fmt = '%(name)s %(levelname)s %(asctime)s [%(funcName)s %(lineno)d] %(message)s'
    _h.setFormatter(logging.Formatter(fmt))
    logger.addHandler(_h)
logger.setLevel(logging.INFO)
logger.propagate = False


def solver_level(loglevel):
    "Logging level of solver step messages: INFO when loglevel is positive, DEBUG otherwise."
    return logging.INFO if loglevel > 0 else logging.DEBUG


def debug_mode():
    "Set logger level to log debug messages, including every solver step."
    logger.setLevel(logging.DEBUG)
