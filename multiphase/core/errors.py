class MultiphaseError(Exception):
    "Base class for errors raised by multiphase."


class InvalidStateError(MultiphaseError):
    "Operation not allowed in the current lifecycle state of a Mixture."
    pass


class InvalidInputError(MultiphaseError, ValueError):
    "Unknown species or element name, malformed composition, or bad argument."
    pass


class SingularBasisError(MultiphaseError):
    "No viable set of components could be selected from the atom matrix."
    pass


class ConvergenceError(MultiphaseError):
    """
    Exception related to calculation of equilibrium.

    Attributes
    ----------
    error : float
        Last residual reached before the iteration budget ran out.
    """
    def __init__(self, msg, error=float('nan')):
        super().__init__(msg)
        self.error = error
