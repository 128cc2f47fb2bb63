# -- Optimization Package -- #

'''
Gradient descent, convergence monitoring, and parameter scales.

Sean Bowman [10/19/2026]
'''

from expectationRegistration.optimization.convergenceMonitor import WindowConvergenceMonitor
from expectationRegistration.optimization.scalesEstimator import (
    ScalesEstimator, ScalesFromJacobianEstimator, ScalesFromShiftEstimator,
)
from expectationRegistration.optimization.gradientDescent import GradientDescentOptimizer
