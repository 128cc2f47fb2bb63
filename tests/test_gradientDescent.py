# -- Gradient Descent Optimizer Tests -- #

'''
Optimizer lifecycle, stop conditions, failure handling, scales, and
translation recovery through the expectation metric.

Sean Bowman [10/19/2026]
'''

import numpy as np
import pytest

from expectationRegistration.core.exceptions import (
    ConfigurationError, NumericalError, OptimizerStateError,
)
from expectationRegistration.core.pointSet import PointSet
from expectationRegistration.metrics import ExpectationPointSetMetric
from expectationRegistration.optimization import (
    GradientDescentOptimizer, ScalesFromJacobianEstimator, ScalesFromShiftEstimator,
)
from expectationRegistration.transforms import Rigid2DTransform, TranslationTransform


class QuadraticBowlMetric:
    '''
    value = |theta - center|^2, derivative = -2 (theta - center).

    Optionally turns non-finite after a number of evaluations.
    '''

    def __init__(self, center, failAfter=None):
        self.center = np.asarray(center, dtype=float)
        self.parameters = np.zeros_like(self.center)
        self.failAfter = failAfter
        self.evaluations = 0

    def getNumberOfParameters(self):
        return len(self.center)

    def getCurrentParameters(self):
        return self.parameters.copy()

    def setCurrentParameters(self, parameters):
        self.parameters = np.array(parameters, dtype=float)

    def getValue(self, parameters):
        return float(np.sum((parameters - self.center) ** 2))

    def getValueAndDerivative(self, parameters):
        self.evaluations += 1
        if self.failAfter is not None and self.evaluations > self.failAfter:
            return float('nan'), np.full_like(self.center, np.nan)
        return self.getValue(parameters), -2.0 * (parameters - self.center)


def _gridPoints(n=4, spacing=50.0):
    xs, ys = np.meshgrid(np.arange(n) * spacing, np.arange(n) * spacing)
    return np.column_stack([xs.ravel(), ys.ravel()])


def _translationMetric(fixed, moving, k=10):
    metric = ExpectationPointSetMetric(
        PointSet(fixed), PointSet(moving), TranslationTransform(2),
        pointSetSigma=2.0, evaluationKNeighborhood=k,
    )
    metric.initialize()
    return metric


######################################################################
# -- Registration Behavior -- #
######################################################################

def testTranslationRecovery():
    '''moving = fixed + v is undone by theta = -v.'''
    fixed = _gridPoints()
    offset = np.array([1.5, -1.0])
    metric = _translationMetric(fixed, fixed + offset)

    optimizer = GradientDescentOptimizer(
        metric,
        numberOfIterations=2000,
        learningRate=0.1,
        scales=np.full(2, 0.1),
        minimumConvergenceValue=0.0,
        convergenceWindowSize=10,
    )
    result = optimizer.startOptimization()

    np.testing.assert_allclose(result.finalParameters, -offset, atol=1e-4)
    np.testing.assert_array_equal(metric.getMovingTransform().getParameters(), result.finalParameters)
    # tau = 0: only the budget or an exactly zero derivative can stop the run
    assert result.stopCondition in ('exhausted', 'converged')
    assert result.finalValue < result.initialValue
    assert optimizer.getValue() == result.finalValue
    assert len(optimizer.getValueHistory()) >= result.iterations


def testCoincidentSetsConvergeImmediately():
    points = _gridPoints(n=5, spacing=100.0)
    metric = _translationMetric(points, points, k=3)

    optimizer = GradientDescentOptimizer(metric, numberOfIterations=100)
    result = optimizer.startOptimization()

    assert result.converged
    assert result.iterations == 0
    assert result.finalValue == 0.0
    assert optimizer.getCurrentIteration() == 0
    np.testing.assert_array_equal(optimizer.getCurrentPosition(), [0.0, 0.0])


def testWindowConvergenceStopsEarly():
    metric = QuadraticBowlMetric([1.0, -2.0])
    optimizer = GradientDescentOptimizer(
        metric,
        numberOfIterations=10000,
        learningRate=0.25,
        minimumConvergenceValue=1e-6,
        convergenceWindowSize=5,
    )
    result = optimizer.startOptimization()

    assert result.stopCondition == 'converged'
    assert result.iterations < 10000
    assert optimizer.getConvergenceValue() < 1e-6
    np.testing.assert_allclose(result.finalParameters, [1.0, -2.0], atol=1e-6)
    assert 'below threshold' in optimizer.getStopConditionDescription()


def testIterationBudgetExhausted():
    metric = QuadraticBowlMetric([3.0])
    optimizer = GradientDescentOptimizer(metric, numberOfIterations=3, learningRate=0.1,
                                         minimumConvergenceValue=0.0)
    result = optimizer.startOptimization()

    assert result.stopCondition == 'exhausted'
    assert result.iterations == 3
    assert len(result.valueHistory) == 3
    # Each step closes 20% of the gap
    np.testing.assert_allclose(result.finalParameters, [3.0 * (1.0 - 0.8 ** 3)])
    np.testing.assert_allclose(metric.parameters, result.finalParameters)


def testZeroIterationBudget():
    metric = QuadraticBowlMetric([2.0])
    result = GradientDescentOptimizer(metric, numberOfIterations=0).startOptimization()

    assert result.stopCondition == 'exhausted'
    assert result.iterations == 0
    assert result.finalValue == 4.0
    assert result.initialValue == 4.0


######################################################################
# -- Lifecycle -- #
######################################################################

def testOptimizerCannotBeReused():
    optimizer = GradientDescentOptimizer(QuadraticBowlMetric([1.0]), numberOfIterations=2)
    optimizer.startOptimization()

    with pytest.raises(OptimizerStateError):
        optimizer.startOptimization()
    with pytest.raises(OptimizerStateError):
        optimizer.setLearningRate(0.5)


def testResultUnavailableBeforeRun():
    optimizer = GradientDescentOptimizer(QuadraticBowlMetric([1.0]))
    assert optimizer.state == 'ready'
    with pytest.raises(OptimizerStateError):
        optimizer.getResult()


def testCancellationAtIterationBoundary():
    calls = []

    def cancel():
        calls.append(1)
        return len(calls) > 5

    metric = QuadraticBowlMetric([10.0, 10.0])
    optimizer = GradientDescentOptimizer(metric, numberOfIterations=100, learningRate=0.01,
                                         minimumConvergenceValue=0.0, cancelCallback=cancel)
    result = optimizer.startOptimization()

    assert result.stopCondition == 'cancelled'
    assert optimizer.state == 'cancelled'
    assert result.iterations == 5
    np.testing.assert_allclose(metric.parameters, result.finalParameters)


def testIterationCallbackSeesEveryUpdate():
    seen = []
    optimizer = GradientDescentOptimizer(
        QuadraticBowlMetric([1.0]), numberOfIterations=4, minimumConvergenceValue=0.0,
        learningRate=0.1, iterationCallback=lambda opt: seen.append(opt.getCurrentIteration()),
    )
    optimizer.startOptimization()

    assert seen == [1, 2, 3, 4]


def testNonFiniteDerivativeFails():
    metric = QuadraticBowlMetric([5.0, 5.0], failAfter=2)
    optimizer = GradientDescentOptimizer(metric, numberOfIterations=50, learningRate=0.1)

    with pytest.raises(NumericalError) as excInfo:
        optimizer.startOptimization()

    error = excInfo.value
    assert optimizer.state == 'failed'
    assert error.iteration == 2
    np.testing.assert_allclose(error.lastValidParameters, metric.parameters)
    np.testing.assert_allclose(error.lastValidParameters, optimizer.getCurrentPosition())
    assert np.all(np.isfinite(metric.parameters))


def testVerboseProgressIsPrinted(capsys):
    optimizer = GradientDescentOptimizer(QuadraticBowlMetric([1.0]), numberOfIterations=4,
                                         learningRate=0.1, minimumConvergenceValue=0.0,
                                         verbose=True, printInterval=2)
    optimizer.startOptimization()

    output = capsys.readouterr().out
    assert 'GRADIENT DESCENT' in output
    assert 'exhausted' in output


######################################################################
# -- Configuration -- #
######################################################################

@pytest.mark.parametrize('options', [
    {'scales': np.ones(3)},
    {'scales': np.array([1.0, 0.0])},
    {'scales': np.array([1.0, -1.0])},
    {'learningRate': 0.0},
    {'learningRate': float('nan')},
    {'numberOfIterations': -1},
    {'convergenceWindowSize': 0},
    {'minimumConvergenceValue': -1e-3},
    {'maximumStepSizeInPhysicalUnits': 1.0},
])
def testInvalidConfigurationRaisesBeforeIterating(options):
    metric = QuadraticBowlMetric([1.0, 1.0])
    optimizer = GradientDescentOptimizer(metric, **options)

    with pytest.raises(ConfigurationError):
        optimizer.startOptimization()
    assert optimizer.state == 'ready'
    assert metric.evaluations == 0


def testScalesFromEstimator():
    points = np.array([[100.0, 0.0], [0.0, 100.0], [-100.0, 0.0]])
    estimator = ScalesFromShiftEstimator(Rigid2DTransform(), points)
    metric = QuadraticBowlMetric([0.01, 1.0, 1.0])

    optimizer = GradientDescentOptimizer(metric, numberOfIterations=1, scalesEstimator=estimator)
    optimizer.startOptimization()

    np.testing.assert_allclose(optimizer.getScales(), estimator.estimateScales())
    assert optimizer.getScales()[0] < 1e-3


def testExplicitScalesOverrideEstimator():
    estimator = ScalesFromJacobianEstimator(Rigid2DTransform(), np.array([[10.0, 0.0]]))
    optimizer = GradientDescentOptimizer(QuadraticBowlMetric([0.0, 1.0, 1.0]), numberOfIterations=1,
                                         scales=np.array([0.5, 0.5, 0.5]), scalesEstimator=estimator)
    optimizer.startOptimization()

    np.testing.assert_array_equal(optimizer.getScales(), [0.5, 0.5, 0.5])


def testLearningRateEstimatedFromMaximumStep():
    '''The first step moves the sample points exactly the maximum step size.'''
    estimator = ScalesFromJacobianEstimator(TranslationTransform(2), np.array([[0.0, 0.0], [1.0, 1.0]]))
    metric = QuadraticBowlMetric([3.0, 4.0])

    optimizer = GradientDescentOptimizer(metric, numberOfIterations=1, scalesEstimator=estimator,
                                         maximumStepSizeInPhysicalUnits=0.5)
    optimizer.startOptimization()

    assert optimizer.getLearningRate() == pytest.approx(0.05)
    np.testing.assert_allclose(np.linalg.norm(optimizer.getCurrentPosition()), 0.5)


@pytest.mark.parametrize('neighborIndexType', ['kdTree', 'bruteForce'])
def testDivergingRegistrationFails(neighborIndexType):
    '''An oversized learning rate drives the offset until distances overflow.'''
    fixed = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    transform = TranslationTransform(2)
    metric = ExpectationPointSetMetric(
        PointSet(fixed), PointSet(fixed + 0.5), transform,
        pointSetSigma=2.0, evaluationKNeighborhood=2, neighborIndexType=neighborIndexType,
    )
    metric.initialize()
    optimizer = GradientDescentOptimizer(metric, numberOfIterations=10000, learningRate=10.0,
                                         minimumConvergenceValue=0.0)

    with np.errstate(over='ignore', invalid='ignore'):
        with pytest.raises(NumericalError) as excInfo:
            optimizer.startOptimization()

    error = excInfo.value
    assert optimizer.state == 'failed'
    assert error.iteration > 0
    assert np.all(np.isfinite(error.lastValidParameters))
    np.testing.assert_array_equal(error.lastValidParameters, transform.getParameters())


@pytest.mark.parametrize('options', [
    {'convergenceWindowSize': 10.0},
    {'numberOfIterations': 5.0},
    {'numberOfIterations': True},
])
def testNonIntegerCountsRaiseBeforeIterating(options):
    metric = QuadraticBowlMetric([1.0])
    optimizer = GradientDescentOptimizer(metric, **options)

    with pytest.raises(ConfigurationError):
        optimizer.startOptimization()
    assert optimizer.state == 'ready'
    assert metric.evaluations == 0


def testUnexpectedErrorMarksRunFailed():
    class BrokenMetric(QuadraticBowlMetric):
        def getValueAndDerivative(self, parameters):
            raise IndexError('broken')

    optimizer = GradientDescentOptimizer(BrokenMetric([1.0]), numberOfIterations=5)

    with pytest.raises(IndexError):
        optimizer.startOptimization()
    assert optimizer.state == 'failed'
