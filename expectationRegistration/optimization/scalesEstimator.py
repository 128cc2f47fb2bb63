# -- Parameter Scales Estimation -- #

'''
Estimate per-parameter scales from the transform's local sensitivity.

Transform parameters come in mixed units (a rotation angle in radians
moves a point 100 units away from the center by ~100 units per
radian, a translation moves it by 1 unit per unit). Multiplying each
derivative component by a scale inversely proportional to its
sensitivity makes one learning rate meaningful for all of them.

    sensitivity_i = (max point shift per unit change of theta_i)^2
    scale_i       = min_j(sensitivity_j) / sensitivity_i

so the least sensitive parameter gets scale 1. Parameters that do
not move any sample point get scale 1.

Two estimators are provided:
- ScalesFromShiftEstimator: finite parameter perturbation, measures
  the resulting maximum point displacement
- ScalesFromJacobianEstimator: mean squared Jacobian row norm

Both also estimate the physical size of a parameter step, which the
optimizer uses to pick a learning rate from a maximum step size.

References:
-----------
Avants et al. (2014) -- The Insight ToolKit image registration framework
    (RegistrationParameterScalesFromShift / FromJacobian)

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from typing import Protocol

import numpy as np

from expectationRegistration import constants as const
from expectationRegistration.core.exceptions import ConfigurationError
from expectationRegistration.transforms.protocols import Transform


######################################################################
# -- Scales Estimator Protocol -- #
######################################################################

class ScalesEstimator(Protocol):
    '''Protocol for parameter scale estimation strategies.'''

    def estimateScales(self) -> np.ndarray:
        '''Per-parameter multiplicative scales, shape (P,).'''
        ...

    def estimateStepScale(self, step: np.ndarray) -> float:
        '''Largest point displacement caused by a parameter step.'''
        ...


def _normalizeSensitivities(sensitivities: np.ndarray) -> np.ndarray:
    '''Turn sensitivities into scales with the least sensitive parameter at 1.'''
    scales = np.ones_like(sensitivities)
    active = sensitivities > 0.0
    if np.any(active):
        scales[active] = np.min(sensitivities[active]) / sensitivities[active]
    return scales


def _subsample(samplePoints: np.ndarray, maxSamples: int) -> np.ndarray:
    '''Evenly strided subset of at most maxSamples points.'''
    samplePoints = np.asarray(samplePoints, dtype=np.float64)
    if samplePoints.ndim != 2 or len(samplePoints) == 0:
        raise ConfigurationError('Scales estimation needs a non-empty (N, dim) sample point array')
    if len(samplePoints) <= maxSamples:
        return samplePoints
    stride = int(np.ceil(len(samplePoints) / maxSamples))
    return samplePoints[::stride]


######################################################################
# -- Shift-Based Estimator -- #
######################################################################

class ScalesFromShiftEstimator:
    '''
    Scales from the point shift caused by small parameter changes.

    Parameters:
    -----------
    transform : Transform
        Transform whose parameters are being scaled (read at its
        current parameters)
    samplePoints : np.ndarray
        Points the shifts are measured on, shape (N, dim)
    smallParameterVariation : float
        Perturbation delta applied to one parameter at a time
    maxSamples : int
        Upper bound on the number of points used
    '''

    def __init__(
        self,
        transform: Transform,
        samplePoints: np.ndarray,
        smallParameterVariation: float = const.smallParameterVariation,
        maxSamples: int = const.maxScaleSamples,
    ) -> None:
        if smallParameterVariation <= 0.0:
            raise ConfigurationError(
                f'Small parameter variation must be > 0, got {smallParameterVariation}'
            )
        self._transform = transform
        self._samplePoints = _subsample(samplePoints, maxSamples)
        self._delta = smallParameterVariation

    def _maximumShift(self, step: np.ndarray) -> float:
        parameters = self._transform.getParameters()
        before = self._transform.transformPoints(self._samplePoints, parameters)
        after = self._transform.transformPoints(self._samplePoints, parameters + step)
        return float(np.max(np.linalg.norm(after - before, axis=1)))

    def estimateScales(self) -> np.ndarray:
        '''
        Per-parameter scales from finite perturbations.

        Returns:
        --------
        np.ndarray : Scales, shape (P,)
        '''
        nParameters = self._transform.numberOfParameters
        sensitivities = np.zeros(nParameters)
        for i in range(nParameters):
            step = np.zeros(nParameters)
            step[i] = self._delta
            shift = self._maximumShift(step)
            sensitivities[i] = (shift / self._delta) ** 2
        return _normalizeSensitivities(sensitivities)

    def estimateStepScale(self, step: np.ndarray) -> float:
        '''
        Largest sample displacement caused by applying a parameter step.

        Parameters:
        -----------
        step : np.ndarray
            Parameter step, shape (P,)

        Returns:
        --------
        float : Maximum displacement [point units]
        '''
        return self._maximumShift(np.asarray(step, dtype=np.float64))


######################################################################
# -- Jacobian-Based Estimator -- #
######################################################################

class ScalesFromJacobianEstimator:
    '''
    Scales from the mean squared norm of each Jacobian row.

    Parameters:
    -----------
    transform : Transform
        Transform whose parameters are being scaled
    samplePoints : np.ndarray
        Points the Jacobians are evaluated at, shape (N, dim)
    maxSamples : int
        Upper bound on the number of points used
    '''

    def __init__(
        self,
        transform: Transform,
        samplePoints: np.ndarray,
        maxSamples: int = const.maxScaleSamples,
    ) -> None:
        self._transform = transform
        self._samplePoints = _subsample(samplePoints, maxSamples)

    def estimateScales(self) -> np.ndarray:
        '''
        Per-parameter scales from the Jacobian rows.

        Returns:
        --------
        np.ndarray : Scales, shape (P,)
        '''
        jacobians = self._transform.jacobians(self._samplePoints)  # (N, P, dim)
        sensitivities = np.mean(np.sum(jacobians * jacobians, axis=2), axis=0)
        return _normalizeSensitivities(sensitivities)

    def estimateStepScale(self, step: np.ndarray) -> float:
        '''
        Largest first-order sample displacement J^T step.

        Parameters:
        -----------
        step : np.ndarray
            Parameter step, shape (P,)

        Returns:
        --------
        float : Maximum displacement [point units]
        '''
        jacobians = self._transform.jacobians(self._samplePoints)
        displacements = np.einsum('npd,p->nd', jacobians, np.asarray(step, dtype=np.float64))
        return float(np.max(np.linalg.norm(displacements, axis=1)))
