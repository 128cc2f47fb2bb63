# -- Gradient Descent Optimizer -- #

'''
Scaled gradient descent with a windowed convergence test.

The optimizer owns the parameter vector for the duration of a run.
After every update it writes the new vector into the metric's moving
transform, so the transform always reflects the optimizer's progress
and holds the final parameters when the run ends.

Update rule (componentwise):

    theta_i <- theta_i + eta * (s_i * d_i)

where d is the metric's derivative, already signed as the
steepest-descent direction (-dValue/dTheta), s are the per-parameter
scales and eta is the learning rate.

Lifecycle:
    ready -> running -> converged | exhausted | cancelled
    running -> failed            (non-finite value or derivative)

A finished optimizer cannot be restarted; construct a new one.

Convergence: the magnitude |s * d| of every iteration is pushed into
a window of the last W iterations. Once the window is full and its
average drops below the threshold tau the run converges. tau = 0
disables this early stop. An exactly zero derivative is a stationary
point and converges immediately.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import math
from typing import Callable

import numpy as np

from expectationRegistration import constants as const
from expectationRegistration.core.exceptions import (
    ConfigurationError, NumericalError, OptimizerStateError,
)
from expectationRegistration.core.protocols import (
    OptimizerState, PointSetMetric, RegistrationResult, StopCondition,
)
from expectationRegistration.optimization.convergenceMonitor import WindowConvergenceMonitor
from expectationRegistration.optimization.scalesEstimator import ScalesEstimator


def _isInteger(value) -> bool:
    '''True for ints (numpy included), False for bools and floats.'''
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


class GradientDescentOptimizer:
    '''
    Gradient descent over a point set metric.

    Parameters:
    -----------
    metric : PointSetMetric
        Initialized metric; its moving transform supplies the
        starting parameters and receives every update
    numberOfIterations : int
        Iteration budget
    learningRate : float
        Step multiplier eta > 0
    scales : np.ndarray | None
        Per-parameter scales, length P, all > 0. When None, the
        scales estimator is consulted once, else all scales are 1.
    scalesEstimator : ScalesEstimator | None
        Strategy used for missing scales and learning rate estimation
    minimumConvergenceValue : float
        Threshold tau on the windowed derivative magnitude
    convergenceWindowSize : int
        Window length W
    maximumStepSizeInPhysicalUnits : float | None
        When set, the learning rate is estimated once so the first
        step moves sample points at most this far (needs a scales
        estimator)
    cancelCallback : Callable[[], bool] | None
        Checked once per iteration before evaluating; returning True
        ends the run as 'cancelled'
    iterationCallback : Callable[[GradientDescentOptimizer], None] | None
        Called after every parameter update
    verbose : bool
        Print a progress table
    printInterval : int
        Iterations between progress lines
    '''

    def __init__(
        self,
        metric: PointSetMetric,
        numberOfIterations: int = const.numberOfIterations,
        learningRate: float = const.learningRate,
        scales: np.ndarray | None = None,
        scalesEstimator: ScalesEstimator | None = None,
        minimumConvergenceValue: float = const.minimumConvergenceValue,
        convergenceWindowSize: int = const.convergenceWindowSize,
        maximumStepSizeInPhysicalUnits: float | None = None,
        cancelCallback: Callable[[], bool] | None = None,
        iterationCallback: Callable[[GradientDescentOptimizer], None] | None = None,
        verbose: bool = False,
        printInterval: int = const.printInterval,
    ) -> None:
        self._metric = metric
        self._numberOfIterations = numberOfIterations
        self._learningRate = learningRate
        self._scales = None if scales is None else np.asarray(scales, dtype=np.float64)
        self._scalesEstimator = scalesEstimator
        self._minimumConvergenceValue = minimumConvergenceValue
        self._convergenceWindowSize = convergenceWindowSize
        self._maximumStepSizeInPhysicalUnits = maximumStepSizeInPhysicalUnits
        self._cancelCallback = cancelCallback
        self._iterationCallback = iterationCallback
        self._verbose = verbose
        self._printInterval = max(1, int(printInterval))

        self._state: OptimizerState = 'ready'
        self._currentPosition: np.ndarray | None = None
        self._currentIteration = 0
        self._value = float('nan')
        self._initialValue = float('nan')
        self._convergenceValue = float('inf')
        self._valueHistory: list[float] = []
        self._stopCondition: StopCondition | None = None
        self._stopConditionDescription = ''

    ######################################################################
    # -- Configuration -- #
    ######################################################################

    def _checkReady(self) -> None:
        if self._state != 'ready':
            raise OptimizerStateError(
                f'Optimizer is {self._state}; configuration can only change before the run starts'
            )

    def setNumberOfIterations(self, numberOfIterations: int) -> None:
        self._checkReady()
        self._numberOfIterations = numberOfIterations

    def setLearningRate(self, learningRate: float) -> None:
        self._checkReady()
        self._learningRate = learningRate

    def setScales(self, scales: np.ndarray) -> None:
        self._checkReady()
        self._scales = np.asarray(scales, dtype=np.float64)

    def setScalesEstimator(self, scalesEstimator: ScalesEstimator | None) -> None:
        self._checkReady()
        self._scalesEstimator = scalesEstimator

    def setMinimumConvergenceValue(self, value: float) -> None:
        self._checkReady()
        self._minimumConvergenceValue = value

    def setConvergenceWindowSize(self, windowSize: int) -> None:
        self._checkReady()
        self._convergenceWindowSize = windowSize

    def setMaximumStepSizeInPhysicalUnits(self, stepSize: float | None) -> None:
        self._checkReady()
        self._maximumStepSizeInPhysicalUnits = stepSize

    def _validateConfiguration(self) -> np.ndarray:
        '''
        Check the run configuration and resolve the scales vector.

        Returns:
        --------
        np.ndarray : Scales of length P

        Raises:
        -------
        ConfigurationError : On any invalid setting
        '''
        nParameters = self._metric.getNumberOfParameters()
        if nParameters < 1:
            raise ConfigurationError('Metric has no parameters to optimize')

        if not _isInteger(self._numberOfIterations) or self._numberOfIterations < 0:
            raise ConfigurationError(
                f'Number of iterations must be an integer >= 0, got {self._numberOfIterations!r}'
            )
        if not math.isfinite(self._learningRate) or self._learningRate <= 0.0:
            raise ConfigurationError(f'Learning rate must be > 0, got {self._learningRate}')
        if not _isInteger(self._convergenceWindowSize) or self._convergenceWindowSize < 1:
            raise ConfigurationError(
                f'Convergence window size must be an integer >= 1, got {self._convergenceWindowSize!r}'
            )
        if not math.isfinite(self._minimumConvergenceValue) or self._minimumConvergenceValue < 0.0:
            raise ConfigurationError(
                f'Minimum convergence value must be >= 0, got {self._minimumConvergenceValue}'
            )
        if self._maximumStepSizeInPhysicalUnits is not None:
            if self._scalesEstimator is None:
                raise ConfigurationError('Learning rate estimation needs a scales estimator')
            if self._maximumStepSizeInPhysicalUnits <= 0.0:
                raise ConfigurationError(
                    f'Maximum step size must be > 0, got {self._maximumStepSizeInPhysicalUnits}'
                )

        if self._scales is not None:
            scales = self._scales
        elif self._scalesEstimator is not None:
            scales = np.asarray(self._scalesEstimator.estimateScales(), dtype=np.float64)
        else:
            scales = np.ones(nParameters)

        if scales.shape != (nParameters,):
            raise ConfigurationError(
                f'Scales length {scales.size} does not match parameter count {nParameters}'
            )
        if not np.all(np.isfinite(scales)) or np.any(scales <= 0.0):
            raise ConfigurationError(f'Scales must be finite and > 0, got {scales}')

        return scales

    ######################################################################
    # -- Optimization Loop -- #
    ######################################################################

    def startOptimization(self) -> RegistrationResult:
        '''
        Run gradient descent until convergence, exhaustion, or cancellation.

        Returns:
        --------
        RegistrationResult : Final parameters, value, and stop condition

        Raises:
        -------
        OptimizerStateError : If this optimizer has already run
        ConfigurationError : Before the first iteration, on bad settings
        NumericalError : If the metric produces non-finite numbers; the
            transform keeps the last valid parameters
        '''
        if self._state != 'ready':
            raise OptimizerStateError(
                f'Optimizer is {self._state}; construct a new optimizer to run again'
            )

        scales = self._validateConfiguration()
        position = np.asarray(self._metric.getCurrentParameters(), dtype=np.float64).copy()
        if not np.all(np.isfinite(position)):
            raise ConfigurationError(f'Initial parameters are not finite: {position}')

        self._currentPosition = position
        self._scales = scales
        self._state = 'running'

        if self._verbose:
            self._printHeader()

        try:
            self._iterate(scales)
            self._value = self._checkedValue(self._metric.getValue(self._currentPosition))
        except NumericalError as e:
            self._state = 'failed'
            raise NumericalError(
                e.diagnostic,
                lastValidParameters=self._currentPosition,
                iteration=self._currentIteration,
            ) from e
        except Exception:
            self._state = 'failed'
            raise

        if self._verbose:
            self._printSummary()

        return self.getResult()

    def _iterate(self, scales: np.ndarray) -> None:
        monitor = WindowConvergenceMonitor(self._convergenceWindowSize)
        nParameters = len(scales)

        while True:
            if self._cancelCallback is not None and self._cancelCallback():
                self._stop('cancelled', f'Cancelled before iteration {self._currentIteration}')
                return

            if self._currentIteration >= self._numberOfIterations:
                self._stop(
                    'exhausted',
                    f'Maximum number of iterations ({self._numberOfIterations}) exceeded',
                )
                return

            value, derivative = self._metric.getValueAndDerivative(self._currentPosition)
            value = self._checkedValue(value)
            derivative = np.asarray(derivative, dtype=np.float64)
            if derivative.shape != (nParameters,):
                raise ConfigurationError(
                    f'Metric derivative has shape {derivative.shape}, expected ({nParameters},)'
                )
            if not np.all(np.isfinite(derivative)):
                raise NumericalError(f'Metric derivative is not finite ({derivative})')

            self._value = value
            self._valueHistory.append(value)
            if self._currentIteration == 0:
                self._initialValue = value

            if not np.any(derivative):
                self._convergenceValue = 0.0
                self._stop('converged', 'Zero derivative (stationary point)')
                return

            scaledDerivative = scales * derivative

            if self._currentIteration == 0 and self._maximumStepSizeInPhysicalUnits is not None:
                self._estimateLearningRate(scaledDerivative)

            monitor.addEnergyValue(float(np.linalg.norm(scaledDerivative)))
            self._convergenceValue = monitor.getConvergenceValue()
            if monitor.isFull and self._convergenceValue < self._minimumConvergenceValue:
                self._stop(
                    'converged',
                    f'Convergence value {self._convergenceValue:.3e} below threshold '
                    f'{self._minimumConvergenceValue:.3e}',
                )
                return

            newPosition = self._currentPosition + self._learningRate * scaledDerivative
            if not np.all(np.isfinite(newPosition)):
                raise NumericalError(f'Parameter update is not finite ({newPosition})')

            self._currentPosition = newPosition
            self._metric.setCurrentParameters(newPosition)
            self._currentIteration += 1

            if self._iterationCallback is not None:
                self._iterationCallback(self)

            if self._verbose and self._currentIteration % self._printInterval == 0:
                print(
                    f'  {self._currentIteration:8d}  {value:14.6e}  '
                    f'{self._learningRate * np.linalg.norm(scaledDerivative):12.4e}  '
                    f'{self._convergenceValue:12.4e}'
                )

    def _estimateLearningRate(self, scaledDerivative: np.ndarray) -> None:
        '''Learning rate so the first step moves points at most the maximum step size.'''
        stepScale = self._scalesEstimator.estimateStepScale(scaledDerivative)
        if stepScale > 0.0 and math.isfinite(stepScale):
            self._learningRate = self._maximumStepSizeInPhysicalUnits / stepScale
            if self._verbose:
                print(f'  Estimated learning rate: {self._learningRate:.4e}')

    def _checkedValue(self, value: float) -> float:
        value = float(value)
        if not math.isfinite(value):
            raise NumericalError(f'Metric value is not finite ({value})')
        return value

    def _stop(self, condition: StopCondition, description: str) -> None:
        self._state = condition
        self._stopCondition = condition
        self._stopConditionDescription = description

    ######################################################################
    # -- Results -- #
    ######################################################################

    @property
    def state(self) -> OptimizerState:
        '''Lifecycle state.'''
        return self._state

    def getCurrentPosition(self) -> np.ndarray:
        '''Copy of the optimizer's parameter vector.'''
        if self._currentPosition is None:
            return np.asarray(self._metric.getCurrentParameters(), dtype=np.float64).copy()
        return self._currentPosition.copy()

    def getValue(self) -> float:
        '''Metric value at the current position (after the run: the final value).'''
        return self._value

    def getCurrentIteration(self) -> int:
        '''Number of parameter updates performed.'''
        return self._currentIteration

    def getLearningRate(self) -> float:
        return self._learningRate

    def getScales(self) -> np.ndarray | None:
        return None if self._scales is None else self._scales.copy()

    def getConvergenceValue(self) -> float:
        '''Latest windowed derivative magnitude.'''
        return self._convergenceValue

    def getStopCondition(self) -> StopCondition | None:
        return self._stopCondition

    def getStopConditionDescription(self) -> str:
        return self._stopConditionDescription

    def getValueHistory(self) -> list[float]:
        '''Metric value seen at the start of every iteration.'''
        return list(self._valueHistory)

    def getResult(self) -> RegistrationResult:
        '''
        Outcome of a finished run.

        Raises:
        -------
        OptimizerStateError : If the run has not finished normally
        '''
        if self._stopCondition is None:
            raise OptimizerStateError(f'No result available; optimizer is {self._state}')

        initialValue = self._initialValue if self._valueHistory else self._value
        return RegistrationResult(
            finalParameters=self._currentPosition.copy(),
            finalValue=self._value,
            initialValue=initialValue,
            iterations=self._currentIteration,
            stopCondition=self._stopCondition,
            message=self._stopConditionDescription,
            valueHistory=list(self._valueHistory),
        )

    ######################################################################
    # -- Progress Printing -- #
    ######################################################################

    def _printHeader(self) -> None:
        print('-' * 62)
        print('  GRADIENT DESCENT')
        print('-' * 62)
        print(f'  Parameters:        {len(self._scales):8d}')
        print(f'  Iterations:        {self._numberOfIterations:8d}')
        print(f'  Learning Rate:     {self._learningRate:8.4g}')
        print(f'  Window / Tau:      {self._convergenceWindowSize:8d} / {self._minimumConvergenceValue:.2e}')
        print()
        print(f'  {"Iter":>8}  {"Value":>14}  {"|Step|":>12}  {"Conv":>12}')
        print('  ' + '-' * 52)

    def _printSummary(self) -> None:
        print()
        print(f'  Stop condition:    {self._stopCondition}')
        print(f'  {self._stopConditionDescription}')
        print(f'  Iterations:        {self._currentIteration:8d}')
        print(f'  Final value:       {self._value:14.6e}')
        print(f'  Final position:    {np.array2string(self._currentPosition, precision=6)}')
        print()
