# -- Registration Protocols -- #

'''
Configuration and result records for point set registration, and
the metric protocol the optimizer is written against.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Literal, Protocol

import numpy as np

from expectationRegistration import constants as const
from expectationRegistration.core.exceptions import ConfigurationError


StopCondition = Literal['converged', 'exhausted', 'cancelled']
OptimizerState = Literal['ready', 'running', 'converged', 'exhausted', 'cancelled', 'failed']


######################################################################
# -- Registration Configuration -- #
######################################################################

@dataclass
class RegistrationConfig:
    '''
    Configuration for one registration run.

    Parameters:
    -----------
    pointSetSigma : float
        Gaussian kernel bandwidth, same units as the points
    evaluationKNeighborhood : int
        Moving neighbors blended into each fixed point's expectation
    neighborIndexType : str
        Neighbor index: 'kdTree' or 'bruteForce'
    numberOfWorkers : int
        Worker threads per metric evaluation (1 = serial)
    numberOfIterations : int
        Optimizer iteration budget
    learningRate : float
        Gradient descent step multiplier
    scales : float | list[float] | None
        Per-parameter scales; a scalar fills every parameter, None
        defers to a scales estimator (or 1.0 without one)
    minimumConvergenceValue : float
        Convergence threshold on the windowed derivative magnitude
        (0 disables the early stop)
    convergenceWindowSize : int
        Iterations averaged by the convergence test
    maximumStepSizeInPhysicalUnits : float | None
        When set together with a scales estimator, the learning rate
        is estimated so the first step moves points at most this far
    verbose : bool
        Print optimizer progress
    printInterval : int
        Iterations between progress lines
    '''

    pointSetSigma: float = const.pointSetSigma
    evaluationKNeighborhood: int = const.evaluationKNeighborhood
    neighborIndexType: str = const.neighborIndexType
    numberOfWorkers: int = const.numberOfWorkers
    numberOfIterations: int = const.numberOfIterations
    learningRate: float = const.learningRate
    scales: float | list[float] | None = None
    minimumConvergenceValue: float = const.minimumConvergenceValue
    convergenceWindowSize: int = const.convergenceWindowSize
    maximumStepSizeInPhysicalUnits: float | None = None
    verbose: bool = False
    printInterval: int = const.printInterval

    def scalesVector(self, numberOfParameters: int) -> np.ndarray | None:
        '''
        Expand the configured scales to a per-parameter vector.

        Parameters:
        -----------
        numberOfParameters : int
            Transform parameter count P

        Returns:
        --------
        np.ndarray | None : Scales of length P, or None if unset

        Raises:
        -------
        ConfigurationError : If a list of the wrong length was given
        '''
        if self.scales is None:
            return None
        if np.isscalar(self.scales):
            return np.full(numberOfParameters, float(self.scales))

        scales = np.asarray(self.scales, dtype=np.float64)
        if scales.shape != (numberOfParameters,):
            raise ConfigurationError(
                f'Scales length {scales.size} does not match parameter count {numberOfParameters}'
            )
        return scales

    @classmethod
    def circleTest(cls) -> RegistrationConfig:
        '''
        Settings of the two-circle translation test.

        sigma = 2, k = 10, 10000 iterations, learning rate 0.1,
        scales 0.1, window 10, early stop disabled.
        '''
        return cls(
            pointSetSigma=2.0,
            evaluationKNeighborhood=10,
            numberOfIterations=10000,
            learningRate=0.1,
            scales=0.1,
            minimumConvergenceValue=0.0,
            convergenceWindowSize=10,
        )

    @classmethod
    def ellipseTest(cls) -> RegistrationConfig:
        '''
        Settings for the phase-shifted ellipse pair.

        Narrow kernel for the 1-unit minor axis; scales are left to an
        estimator.
        '''
        return cls(
            pointSetSigma=0.5,
            evaluationKNeighborhood=10,
            numberOfIterations=2000,
            learningRate=0.1,
            minimumConvergenceValue=1e-8,
            convergenceWindowSize=10,
        )

    @classmethod
    def squareTest(cls) -> RegistrationConfig:
        '''
        Settings for the rotated four-corner square.

        Only 4 points, so k = 3; scales are left to an estimator.
        '''
        return cls(
            pointSetSigma=2.0,
            evaluationKNeighborhood=3,
            numberOfIterations=1000,
            learningRate=0.1,
            minimumConvergenceValue=0.0,
            convergenceWindowSize=10,
        )

    @classmethod
    def fromJson(cls, configPath: str) -> RegistrationConfig:
        '''
        Load configuration from a JSON file.

        Reads the 'metric' and 'optimizer' sections; missing keys
        fall back to the module defaults.

        Parameters:
        -----------
        configPath : str
            Path to the JSON configuration file

        Returns:
        --------
        RegistrationConfig : Loaded configuration
        '''
        with open(configPath, 'r') as f:
            data = json.load(f)

        metricSection = data.get('metric', {})
        optimizerSection = data.get('optimizer', {})

        return cls(
            pointSetSigma=metricSection.get('pointSetSigma', const.pointSetSigma),
            evaluationKNeighborhood=metricSection.get('evaluationKNeighborhood', const.evaluationKNeighborhood),
            neighborIndexType=metricSection.get('neighborIndexType', const.neighborIndexType),
            numberOfWorkers=metricSection.get('numberOfWorkers', const.numberOfWorkers),
            numberOfIterations=optimizerSection.get('numberOfIterations', const.numberOfIterations),
            learningRate=optimizerSection.get('learningRate', const.learningRate),
            scales=optimizerSection.get('scales', None),
            minimumConvergenceValue=optimizerSection.get('minimumConvergenceValue', const.minimumConvergenceValue),
            convergenceWindowSize=optimizerSection.get('convergenceWindowSize', const.convergenceWindowSize),
            maximumStepSizeInPhysicalUnits=optimizerSection.get('maximumStepSizeInPhysicalUnits', None),
            verbose=optimizerSection.get('verbose', False),
            printInterval=optimizerSection.get('printInterval', const.printInterval),
        )


######################################################################
# -- Registration Result -- #
######################################################################

@dataclass
class RegistrationResult:
    '''
    Outcome of one registration run.

    Parameters:
    -----------
    finalParameters : np.ndarray
        Transform parameters at termination
    finalValue : float
        Metric value at the final parameters
    initialValue : float
        Metric value at the starting parameters
    iterations : int
        Parameter updates performed
    stopCondition : StopCondition
        'converged', 'exhausted', or 'cancelled'
    message : str
        Human-readable description of the stop
    valueHistory : list[float]
        Metric value seen at the start of every iteration
    '''

    finalParameters: np.ndarray
    finalValue: float
    initialValue: float
    iterations: int
    stopCondition: StopCondition
    message: str
    valueHistory: list[float] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        '''True when the convergence test stopped the run.'''
        return self.stopCondition == 'converged'

    def toDict(self) -> dict:
        '''Convert to dictionary for JSON serialization.'''
        return {
            'finalParameters': np.asarray(self.finalParameters).tolist(),
            'finalValue': self.finalValue,
            'initialValue': self.initialValue,
            'iterations': self.iterations,
            'stopCondition': self.stopCondition,
            'message': self.message,
        }


######################################################################
# -- Metric Protocol -- #
######################################################################

class PointSetMetric(Protocol):
    '''Protocol for metrics driven by the gradient descent optimizer.'''

    def getNumberOfParameters(self) -> int:
        '''Number of transform parameters P.'''
        ...

    def getCurrentParameters(self) -> np.ndarray:
        '''Parameters currently held by the moving transform.'''
        ...

    def setCurrentParameters(self, parameters: np.ndarray) -> None:
        '''Write parameters into the moving transform.'''
        ...

    def getValue(self, parameters: np.ndarray) -> float:
        '''Metric value at the given parameters.'''
        ...

    def getValueAndDerivative(self, parameters: np.ndarray) -> tuple[float, np.ndarray]:
        '''
        Metric value and steepest-descent derivative.

        The derivative is -dValue/dParameters, so adding a positive
        multiple of it decreases the value.
        '''
        ...
