# -- expectationRegistration Package -- #

'''
Expectation-based point set registration.

Aligns a moving point set to a fixed one without explicit
correspondences: a Gaussian soft-correspondence metric is minimized
over the parameters of a translation, rigid, or affine transform by
scaled gradient descent.

Sean Bowman [10/19/2026]
'''

__version__ = '0.1.0'

from expectationRegistration.core import (
    PointSet, RegistrationConfig, RegistrationResult,
    RegistrationError, ConfigurationError, NumericalError, OptimizerStateError,
)
from expectationRegistration.transforms import (
    TranslationTransform, IdentityTransform, Rigid2DTransform, AffineTransform, createTransform,
)
from expectationRegistration.metrics import ExpectationPointSetMetric
from expectationRegistration.optimization import (
    GradientDescentOptimizer, ScalesFromShiftEstimator, ScalesFromJacobianEstimator,
)
from expectationRegistration.registration import registerPointSets
