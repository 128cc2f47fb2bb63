# -- Registration Core Package -- #

'''
Core building blocks for point set registration.

Provides the point set container, k-nearest-neighbor indices,
soft correspondence kernels, error types, and the configuration
and result records.

Sean Bowman [10/19/2026]
'''

from expectationRegistration.core.exceptions import (
    RegistrationError, ConfigurationError, NumericalError, OptimizerStateError,
)
from expectationRegistration.core.pointSet import PointSet
from expectationRegistration.core.neighborSearch import (
    BruteForceNeighborIndex, KdTreeNeighborIndex, createNeighborIndex,
)
from expectationRegistration.core.kernels import GaussianKernel
from expectationRegistration.core.protocols import RegistrationConfig, RegistrationResult
