# -- Point Set Registration -- #

'''
One-call registration: build the expectation metric from a
RegistrationConfig, initialize it, and run gradient descent once.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from typing import Callable

from expectationRegistration.core.pointSet import PointSet
from expectationRegistration.core.protocols import RegistrationConfig, RegistrationResult
from expectationRegistration.metrics.expectationMetric import ExpectationPointSetMetric
from expectationRegistration.optimization.gradientDescent import GradientDescentOptimizer
from expectationRegistration.optimization.scalesEstimator import ScalesEstimator
from expectationRegistration.transforms.protocols import Transform


def registerPointSets(
    fixedPointSet: PointSet,
    movingPointSet: PointSet,
    transform: Transform,
    config: RegistrationConfig | None = None,
    scalesEstimator: ScalesEstimator | None = None,
    fixedTransform: Transform | None = None,
    cancelCallback: Callable[[], bool] | None = None,
    iterationCallback: Callable[[GradientDescentOptimizer], None] | None = None,
) -> RegistrationResult:
    '''
    Register a moving point set onto a fixed point set.

    The transform is optimized in place: it starts from its current
    parameters and holds the final parameters on return.

    Parameters:
    -----------
    fixedPointSet : PointSet
        Reference points
    movingPointSet : PointSet
        Points mapped through the transform
    transform : Transform
        Moving transform to optimize
    config : RegistrationConfig | None
        Metric and optimizer settings (defaults if None)
    scalesEstimator : ScalesEstimator | None
        Used when config.scales is None, and for learning rate
        estimation when config.maximumStepSizeInPhysicalUnits is set
    fixedTransform : Transform | None
        Static transform applied to the fixed points
    cancelCallback : Callable[[], bool] | None
        Polled once per iteration
    iterationCallback : Callable[[GradientDescentOptimizer], None] | None
        Called after every parameter update

    Returns:
    --------
    RegistrationResult : Final parameters, value and stop condition
    '''
    if config is None:
        config = RegistrationConfig()

    metric = ExpectationPointSetMetric(
        fixedPointSet=fixedPointSet,
        movingPointSet=movingPointSet,
        movingTransform=transform,
        pointSetSigma=config.pointSetSigma,
        evaluationKNeighborhood=config.evaluationKNeighborhood,
        fixedTransform=fixedTransform,
        neighborIndexType=config.neighborIndexType,
        numberOfWorkers=config.numberOfWorkers,
    )
    metric.initialize()

    optimizer = GradientDescentOptimizer(
        metric,
        numberOfIterations=config.numberOfIterations,
        learningRate=config.learningRate,
        scales=config.scalesVector(metric.getNumberOfParameters()),
        scalesEstimator=scalesEstimator,
        minimumConvergenceValue=config.minimumConvergenceValue,
        convergenceWindowSize=config.convergenceWindowSize,
        maximumStepSizeInPhysicalUnits=config.maximumStepSizeInPhysicalUnits,
        cancelCallback=cancelCallback,
        iterationCallback=iterationCallback,
        verbose=config.verbose,
        printInterval=config.printInterval,
    )
    return optimizer.startOptimization()
