import jax

# Derivatives must carry full double precision through every contribution
jax.config.update("jax_enable_x64", True)

from . import errors
from . import molecule
from . import ideal_gas
from . import parameters
from . import WeightFunction
from . import eos
from . import dft

SiteType = molecule.SiteType
AssociationSite = molecule.AssociationSite
MoleculeGraph = molecule.MoleculeGraph
SegmentRecord = parameters.SegmentRecord
BinaryRecord = parameters.BinaryRecord
JobackRecord = ideal_gas.JobackRecord
GroupTable = parameters.GroupTable
ParameterSet = parameters.ParameterSet
build_parameters = parameters.build_parameters
GcPcSaft = eos.GcPcSaft
GcPcSaftFunctional = dft.GcPcSaftFunctional
FMTVersion = dft.FMTVersion

InvalidGraph = errors.InvalidGraph
MissingParameter = errors.MissingParameter
AssociationNotConverged = errors.AssociationNotConverged
DimensionMismatch = errors.DimensionMismatch
