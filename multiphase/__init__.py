from multiphase.core.errors import *
import multiphase.variables as v
from multiphase.model import SpeciesThermo
from multiphase.io.database import ThermoDatabase
from multiphase.phases import Phase, IdealGasPhase, IdealSolutionPhase, StoichSubstance
from multiphase.core.mixture import Mixture
from multiphase.core.basis import basis_optimize, elem_rearrange
from multiphase.core.equilibrium import equilibrate, TPEquilibrium
from multiphase.core.equilibrium_result import EquilibriumTrace

# Set the version of multiphase from the metadata of the installed package
from importlib.metadata import version, PackageNotFoundError
try:
    __version__ = version("multiphase")
except PackageNotFoundError:
    __version__ = "unknown"
del version, PackageNotFoundError
