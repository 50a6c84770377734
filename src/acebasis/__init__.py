"""
acebasis - invariant bases of atomic environments (atomic cluster
expansion).

"""

import os

from .config import ACEBasisConfig
from .coupling import CouplingCoefficients
from .degree import BasisSpec, SparsePSHDegree, SparsePSHDegreeM
from .exceptions import (ACEBasisError, ConfigurationError, DomainError,
                         InternalConsistencyError)
from .oneparticlebasis import BasicPSH1pBasis, PSH1pBasisFcn, basic_1p_basis
from .orthpolys import transformed_jacobi
from .pibasis import PIBasis, pi_basis
from .potential import RPIPotential, combine, diagonal_regulariser
from .rpibasis import RPIBasis, rpi_basis
from .species import SpeciesList

with open(os.path.join(os.path.dirname(__file__), 'VERSION')) as _fp:
    __version__ = _fp.read().strip()
