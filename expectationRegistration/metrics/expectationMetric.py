# -- Expectation-Based Point Set Metric -- #

'''
Soft-correspondence dissimilarity between a fixed and a moving
point set, with an analytic derivative for first-order optimization.

No explicit correspondences are required. Every fixed point is
matched to the Gaussian-weighted centroid (the expectation) of its
k nearest transformed moving points, and the metric is the mean
squared distance between fixed points and their expectations.

Algorithm per evaluation at parameters theta:
    1. Map every moving point through the moving transform at theta
    2. Build a neighbor index over the mapped moving points (reused
       when theta is bit-identical to the previous evaluation)
    3. Query the k nearest mapped moving points of every fixed point
    4. w_ij = exp(-d_ij^2 / (2 sigma^2)), normalized over the
       neighborhood (uniform 1/k when every weight underflows)
    5. e_i = sum_j w_ij m'_j
    6. value = (1/N_f) sum_i |f_i - e_i|^2
    7. derivative = (2/N_f) sum_i sum_j w_ij J(m_j) (f_i - e_i)

The weights are held constant while differentiating (EM-style soft
assignment), so the derivative is the steepest-descent direction of
the value for fixed correspondences. It is returned with the
descent sign: adding a positive multiple of the derivative to theta
decreases the value, and the optimizer adds it.

Fixed points are independent of each other, so the accumulation in
steps 4-7 can be split into contiguous chunks on a thread pool.
Chunk partial sums are combined in chunk order, which keeps repeated
evaluations bit-identical.

References:
-----------
Pluta et al. (2009) -- In vivo analysis of hippocampal subfield
    atrophy in mild cognitive impairment via semi-automatic
    segmentation of T2-weighted MRI
Avants et al. (2014) -- The Insight ToolKit image registration framework
Dempster, Laird & Rubin (1977) -- Maximum likelihood from incomplete
    data via the EM algorithm

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from expectationRegistration import constants as const
from expectationRegistration.core.exceptions import ConfigurationError, NumericalError
from expectationRegistration.core.kernels import GaussianKernel
from expectationRegistration.core.neighborSearch import NeighborIndex, createNeighborIndex
from expectationRegistration.core.pointSet import PointSet
from expectationRegistration.transforms.protocols import Transform
from expectationRegistration.transforms.translation import IdentityTransform


class ExpectationPointSetMetric:
    '''
    Expectation-based point set to point set metric.

    The metric borrows the moving transform; it reads the transform's
    mapping at whatever parameters it is handed and never stores the
    parameter vector. The optimizer owns the parameters.

    Parameters:
    -----------
    fixedPointSet : PointSet
        Reference points (never moved by the optimizer)
    movingPointSet : PointSet
        Points mapped through the moving transform
    movingTransform : Transform
        Parameterized transform being optimized
    pointSetSigma : float
        Gaussian kernel bandwidth [point units]
    evaluationKNeighborhood : int
        Moving neighbors per fixed point, 1 <= k < N_moving
    fixedTransform : Transform | None
        Static transform applied once to the fixed points
        (identity if None)
    neighborIndexType : str
        'kdTree' or 'bruteForce'
    numberOfWorkers : int
        Threads per evaluation (1 = serial)
    '''

    def __init__(
        self,
        fixedPointSet: PointSet,
        movingPointSet: PointSet,
        movingTransform: Transform,
        pointSetSigma: float = const.pointSetSigma,
        evaluationKNeighborhood: int = const.evaluationKNeighborhood,
        fixedTransform: Transform | None = None,
        neighborIndexType: str = const.neighborIndexType,
        numberOfWorkers: int = const.numberOfWorkers,
    ) -> None:
        self._fixedPointSet = fixedPointSet
        self._movingPointSet = movingPointSet
        self._movingTransform = movingTransform
        self._fixedTransform = fixedTransform
        self._pointSetSigma = pointSetSigma
        self._evaluationKNeighborhood = evaluationKNeighborhood
        self._neighborIndexType = neighborIndexType
        self._numberOfWorkers = numberOfWorkers

        self._initialized = False
        self._kernel: GaussianKernel | None = None
        self._fixedPoints: np.ndarray | None = None

        # Index over the mapped moving points and the parameters it was built at
        self._index: NeighborIndex | None = None
        self._indexParameters: np.ndarray | None = None
        self._transformedMoving: np.ndarray | None = None

    ######################################################################
    # -- Setup -- #
    ######################################################################

    def setFixedPointSet(self, pointSet: PointSet) -> None:
        self._fixedPointSet = pointSet
        self._initialized = False

    def setMovingPointSet(self, pointSet: PointSet) -> None:
        self._movingPointSet = pointSet
        self._initialized = False

    def setMovingTransform(self, transform: Transform) -> None:
        self._movingTransform = transform
        self._initialized = False

    def setFixedTransform(self, transform: Transform | None) -> None:
        self._fixedTransform = transform
        self._initialized = False

    def setPointSetSigma(self, sigma: float) -> None:
        self._pointSetSigma = sigma
        self._initialized = False

    def setEvaluationKNeighborhood(self, k: int) -> None:
        self._evaluationKNeighborhood = k
        self._initialized = False

    def setNumberOfWorkers(self, numberOfWorkers: int) -> None:
        self._numberOfWorkers = numberOfWorkers
        self._initialized = False

    def getMovingTransform(self) -> Transform:
        return self._movingTransform

    def getFixedTransform(self) -> Transform | None:
        '''Fixed-side transform (the identity default after initialize()).'''
        return self._fixedTransform

    @property
    def pointSetSigma(self) -> float:
        return self._pointSetSigma

    @property
    def evaluationKNeighborhood(self) -> int:
        return self._evaluationKNeighborhood

    @property
    def isInitialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        '''
        Validate the configuration and prepare the fixed points.

        Raises:
        -------
        ConfigurationError : If sigma <= 0, k < 1, k >= N_moving,
            either point set is empty or non-finite, or the point and
            transform dimensions disagree
        '''
        self._initialized = False
        fixed = self._fixedPointSet
        moving = self._movingPointSet

        if fixed is None or moving is None:
            raise ConfigurationError('Both fixed and moving point sets must be set')
        if fixed.isEmpty():
            raise ConfigurationError('Fixed point set is empty')
        if moving.isEmpty():
            raise ConfigurationError('Moving point set is empty')
        if fixed.dimensions != moving.dimensions:
            raise ConfigurationError(
                f'Fixed points are {fixed.dimensions}D but moving points are {moving.dimensions}D'
            )
        if not (np.all(np.isfinite(fixed.points)) and np.all(np.isfinite(moving.points))):
            raise ConfigurationError('Point sets must contain only finite coordinates')

        sigma = self._pointSetSigma
        if sigma is None or not math.isfinite(sigma) or sigma <= 0.0:
            raise ConfigurationError(f'Point set sigma must be > 0, got {sigma}')

        k = self._evaluationKNeighborhood
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1:
            raise ConfigurationError(f'Evaluation k-neighborhood must be an integer >= 1, got {k}')
        if k >= moving.numberOfPoints:
            raise ConfigurationError(
                f'Evaluation k-neighborhood ({k}) must be smaller than the moving '
                f'point set size ({moving.numberOfPoints})'
            )

        if self._numberOfWorkers < 1:
            raise ConfigurationError(f'Number of workers must be >= 1, got {self._numberOfWorkers}')

        if self._movingTransform is None:
            raise ConfigurationError('Moving transform must be set')
        if self._movingTransform.dimensions != moving.dimensions:
            raise ConfigurationError(
                f'Moving transform acts on {self._movingTransform.dimensions}D points '
                f'but the point sets are {moving.dimensions}D'
            )

        if self._fixedTransform is None:
            self._fixedTransform = IdentityTransform(fixed.dimensions)
        if self._fixedTransform.dimensions != fixed.dimensions:
            raise ConfigurationError(
                f'Fixed transform acts on {self._fixedTransform.dimensions}D points '
                f'but the point sets are {fixed.dimensions}D'
            )

        try:
            createNeighborIndex(self._neighborIndexType)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        self._kernel = GaussianKernel(sigma)
        self._fixedPoints = self._fixedTransform.transformPoints(fixed.points)
        self._fixedPoints.setflags(write=False)

        self._index = None
        self._indexParameters = None
        self._transformedMoving = None
        self._initialized = True

    ######################################################################
    # -- Queries -- #
    ######################################################################

    def getNumberOfParameters(self) -> int:
        '''Number of moving transform parameters P.'''
        return self._movingTransform.numberOfParameters

    def getNumberOfComponents(self) -> int:
        '''Number of fixed points contributing to the value.'''
        return self._fixedPointSet.numberOfPoints

    def getCurrentParameters(self) -> np.ndarray:
        '''Parameters currently held by the moving transform.'''
        return self._movingTransform.getParameters()

    def setCurrentParameters(self, parameters: np.ndarray) -> None:
        '''Write parameters into the moving transform.'''
        self._movingTransform.setParameters(parameters)

    def getValue(self, parameters: np.ndarray) -> float:
        '''
        Metric value at the given parameters.

        Parameters:
        -----------
        parameters : np.ndarray
            Moving transform parameters, length P

        Returns:
        --------
        float : Mean squared fixed-to-expectation distance
        '''
        value, _ = self._evaluate(parameters, withDerivative=False)
        return value

    def getValueAndDerivative(self, parameters: np.ndarray) -> tuple[float, np.ndarray]:
        '''
        Metric value and steepest-descent derivative.

        Parameters:
        -----------
        parameters : np.ndarray
            Moving transform parameters, length P

        Returns:
        --------
        tuple[float, np.ndarray] :
            (value, derivative) where derivative = -dValue/dParameters
            with the kernel weights held constant
        '''
        return self._evaluate(parameters, withDerivative=True)

    def getGradient(self, parameters: np.ndarray) -> np.ndarray:
        '''Gradient dValue/dParameters (the negated derivative).'''
        _, derivative = self._evaluate(parameters, withDerivative=True)
        return -derivative

    def getExpectedPoints(self, parameters: np.ndarray) -> np.ndarray:
        '''
        Expectation of every fixed point's match at the given parameters.

        Parameters:
        -----------
        parameters : np.ndarray
            Moving transform parameters, length P

        Returns:
        --------
        np.ndarray : Weighted neighborhood centroids, shape (N_f, dim)
        '''
        parameters = self._prepareEvaluation(parameters)
        transformedMoving, weights, indices = self._softCorrespondences(parameters)
        return np.sum(weights[..., np.newaxis] * transformedMoving[indices], axis=1)

    ######################################################################
    # -- Evaluation -- #
    ######################################################################

    def _prepareEvaluation(self, parameters: np.ndarray) -> np.ndarray:
        if not self._initialized:
            raise RuntimeError('Metric not initialized. Call initialize() first.')

        parameters = np.asarray(parameters, dtype=np.float64).reshape(-1)
        if parameters.size != self.getNumberOfParameters():
            raise ConfigurationError(
                f'Expected {self.getNumberOfParameters()} parameters, got {parameters.size}'
            )
        if not np.all(np.isfinite(parameters)):
            raise NumericalError(f'Parameters contain non-finite values ({parameters})')
        return parameters

    def _softCorrespondences(self, parameters: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        '''
        Mapped moving points, neighborhood weights and neighbor indices.

        Returns:
        --------
        tuple[np.ndarray, np.ndarray, np.ndarray] :
            (transformedMoving (N_m, dim), weights (N_f, k), indices (N_f, k))
        '''
        index, transformedMoving = self._neighborIndexAt(parameters)
        try:
            distSq, indices = index.query(self._fixedPoints, self._evaluationKNeighborhood)
        except FloatingPointError as e:
            raise NumericalError(str(e)) from e
        weights = self._kernel.normalizedWeights(distSq)
        return transformedMoving, weights, indices

    def _neighborIndexAt(self, parameters: np.ndarray) -> tuple[NeighborIndex, np.ndarray]:
        '''Index over the moving points mapped at the given parameters.'''
        if self._indexParameters is not None and np.array_equal(parameters, self._indexParameters):
            return self._index, self._transformedMoving

        transformedMoving = self._movingTransform.transformPoints(
            self._movingPointSet.points, parameters
        )
        if not np.all(np.isfinite(transformedMoving)):
            raise NumericalError('Transformed moving points are not finite')
        transformedMoving.setflags(write=False)

        # Fresh index per parameter change; the previous one is never mutated
        index = createNeighborIndex(self._neighborIndexType, workers=self._numberOfWorkers)
        index.build(transformedMoving)

        self._index = index
        self._indexParameters = parameters.copy()
        self._transformedMoving = transformedMoving
        return index, transformedMoving

    def _evaluate(self, parameters: np.ndarray, withDerivative: bool) -> tuple[float, np.ndarray | None]:
        parameters = self._prepareEvaluation(parameters)
        transformedMoving, weights, indices = self._softCorrespondences(parameters)

        nFixed = len(self._fixedPoints)
        nWorkers = min(self._numberOfWorkers, nFixed)
        chunkSize = int(math.ceil(nFixed / nWorkers))
        bounds = [(start, min(start + chunkSize, nFixed)) for start in range(0, nFixed, chunkSize)]

        def accumulate(start: int, stop: int) -> tuple[float, np.ndarray | None]:
            return self._accumulateChunk(
                self._fixedPoints[start:stop], transformedMoving,
                weights[start:stop], indices[start:stop], withDerivative,
            )

        if len(bounds) == 1:
            partials = [accumulate(*bounds[0])]
        else:
            with ThreadPoolExecutor(max_workers=nWorkers) as executor:
                futures = [executor.submit(accumulate, start, stop) for start, stop in bounds]
                partials = [future.result() for future in futures]

        # Reduce in chunk order
        valueSum = 0.0
        for partialValue, _ in partials:
            valueSum += partialValue
        value = valueSum / nFixed

        if not math.isfinite(value):
            raise NumericalError(f'Metric value is not finite ({value})')

        if not withDerivative:
            return value, None

        residualMass = partials[0][1].copy()
        for _, partialMass in partials[1:]:
            residualMass += partialMass

        # J(m) evaluated at the untransformed moving points
        movingJacobians = self._movingTransform.jacobians(self._movingPointSet.points, parameters)
        derivative = 2.0 * np.einsum('mpd,md->p', movingJacobians, residualMass) / nFixed

        if not np.all(np.isfinite(derivative)):
            raise NumericalError(f'Metric derivative is not finite ({derivative})')

        return value, derivative

    def _accumulateChunk(
        self,
        fixedPoints: np.ndarray,
        transformedMoving: np.ndarray,
        weights: np.ndarray,
        indices: np.ndarray,
        withDerivative: bool,
    ) -> tuple[float, np.ndarray | None]:
        '''
        Partial value sum and per-moving-point residual mass of a chunk.

        The residual mass of moving point m is sum of w_ij (f_i - e_i)
        over every (i, j) whose neighbor is m. Contracting it with the
        moving Jacobians gives the chunk's derivative contribution.

        Parameters:
        -----------
        fixedPoints : np.ndarray
            Chunk fixed points, shape (c, dim)
        transformedMoving : np.ndarray
            All mapped moving points, shape (N_m, dim)
        weights : np.ndarray
            Chunk neighborhood weights, shape (c, k)
        indices : np.ndarray
            Chunk neighbor indices, shape (c, k)
        withDerivative : bool
            Also accumulate the residual mass

        Returns:
        --------
        tuple[float, np.ndarray | None] : (sum of |f - e|^2, residual mass (N_m, dim))
        '''
        expectations = np.sum(weights[..., np.newaxis] * transformedMoving[indices], axis=1)
        residuals = fixedPoints - expectations
        valueSum = float(np.sum(residuals * residuals))

        if not withDerivative:
            return valueSum, None

        dim = fixedPoints.shape[1]
        weightedResiduals = weights[..., np.newaxis] * residuals[:, np.newaxis, :]  # (c, k, dim)
        residualMass = np.zeros_like(transformedMoving)
        np.add.at(residualMass, indices.ravel(), weightedResiduals.reshape(-1, dim))

        return valueSum, residualMass
