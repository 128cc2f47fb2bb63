# -- Transform Protocol -- #

'''
Capability set shared by every parameterized transform.

The metric and optimizer only ever talk to this protocol, so
translation, rigid, and affine variants plug in without either of
them knowing which one they are driving.

Points are mapped in batches. Passing an explicit parameter vector
evaluates the mapping at that vector without touching the stored
parameters; this is how the metric stays a pure function of the
parameters it is handed. The optimizer is the only writer of the
stored parameters, through setParameters().

Jacobian layout is (P, dim) per point:

    J[p, d] = d x'_d / d theta_p

and (N, P, dim) for a batch.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from typing import Protocol

import numpy as np

from expectationRegistration.core.exceptions import ConfigurationError


######################################################################
# -- Transform Protocol -- #
######################################################################

class Transform(Protocol):
    '''Protocol for parameterized point mappings.'''

    @property
    def numberOfParameters(self) -> int:
        '''Degrees of freedom P.'''
        ...

    @property
    def dimensions(self) -> int:
        '''Point dimension the transform acts on.'''
        ...

    def getParameters(self) -> np.ndarray:
        '''Copy of the current parameter vector.'''
        ...

    def setParameters(self, parameters: np.ndarray) -> None:
        '''Replace the current parameter vector.'''
        ...

    def setIdentity(self) -> None:
        '''Reset the parameters to the identity mapping.'''
        ...

    def transformPoint(self, point: np.ndarray) -> np.ndarray:
        '''Map one point with the current parameters.'''
        ...

    def transformPoints(self, points: np.ndarray, parameters: np.ndarray | None = None) -> np.ndarray:
        '''Map an (N, dim) batch, optionally at explicit parameters.'''
        ...

    def jacobian(self, point: np.ndarray) -> np.ndarray:
        '''(P, dim) Jacobian at one point with the current parameters.'''
        ...

    def jacobians(self, points: np.ndarray, parameters: np.ndarray | None = None) -> np.ndarray:
        '''(N, P, dim) Jacobians, optionally at explicit parameters.'''
        ...

    def getInverseTransform(self) -> Transform | None:
        '''Inverse mapping, or None when it does not exist.'''
        ...


######################################################################
# -- Shared Parameter Handling -- #
######################################################################

class ParameterizedTransform:
    '''
    Parameter storage and point validation common to all variants.

    Subclasses implement _identityParameters(), _mapPoints(),
    _mapJacobians() and getInverseTransform().

    Parameters:
    -----------
    dimensions : int
        Point dimension
    numberOfParameters : int
        Degrees of freedom P
    '''

    def __init__(self, dimensions: int, numberOfParameters: int) -> None:
        if dimensions < 1:
            raise ConfigurationError(f'Transform dimension must be >= 1, got {dimensions}')
        self._dimensions = dimensions
        self._numberOfParameters = numberOfParameters
        self._parameters = self._identityParameters()

    @property
    def numberOfParameters(self) -> int:
        '''Degrees of freedom P.'''
        return self._numberOfParameters

    @property
    def dimensions(self) -> int:
        '''Point dimension the transform acts on.'''
        return self._dimensions

    def getParameters(self) -> np.ndarray:
        '''Copy of the current parameter vector.'''
        return self._parameters.copy()

    def setParameters(self, parameters: np.ndarray) -> None:
        '''
        Replace the current parameter vector.

        Parameters:
        -----------
        parameters : np.ndarray
            New parameters, length P (copied)
        '''
        self._parameters = self._checkParameters(parameters).copy()

    def setIdentity(self) -> None:
        '''Reset the parameters to the identity mapping.'''
        self._parameters = self._identityParameters()

    def transformPoint(self, point: np.ndarray) -> np.ndarray:
        '''Map one point with the current parameters.'''
        return self.transformPoints(np.asarray(point, dtype=np.float64)[np.newaxis, :])[0]

    def transformPoints(self, points: np.ndarray, parameters: np.ndarray | None = None) -> np.ndarray:
        '''
        Map a batch of points.

        Parameters:
        -----------
        points : np.ndarray
            Input points, shape (N, dim)
        parameters : np.ndarray | None
            Parameters to evaluate at (current parameters if None)

        Returns:
        --------
        np.ndarray : Mapped points, shape (N, dim)
        '''
        return self._mapPoints(self._checkPoints(points), self._resolveParameters(parameters))

    def jacobian(self, point: np.ndarray) -> np.ndarray:
        '''(P, dim) Jacobian at one point with the current parameters.'''
        return self.jacobians(np.asarray(point, dtype=np.float64)[np.newaxis, :])[0]

    def jacobians(self, points: np.ndarray, parameters: np.ndarray | None = None) -> np.ndarray:
        '''
        Jacobians of the mapped coordinates with respect to the parameters.

        Parameters:
        -----------
        points : np.ndarray
            Input points, shape (N, dim)
        parameters : np.ndarray | None
            Parameters to evaluate at (current parameters if None)

        Returns:
        --------
        np.ndarray : Jacobians, shape (N, P, dim)
        '''
        return self._mapJacobians(self._checkPoints(points), self._resolveParameters(parameters))

    def __repr__(self) -> str:
        return f'{type(self).__name__}(dimensions={self._dimensions}, parameters={self._parameters.tolist()})'

    ######################################################################
    # -- Validation -- #
    ######################################################################

    def _checkParameters(self, parameters: np.ndarray) -> np.ndarray:
        '''Coerce to a float vector of length P.'''
        parameters = np.asarray(parameters, dtype=np.float64).reshape(-1)
        if parameters.size != self._numberOfParameters:
            raise ConfigurationError(
                f'{type(self).__name__} expects {self._numberOfParameters} parameters, '
                f'got {parameters.size}'
            )
        return parameters

    def _resolveParameters(self, parameters: np.ndarray | None) -> np.ndarray:
        if parameters is None:
            return self._parameters
        return self._checkParameters(parameters)

    def _checkPoints(self, points: np.ndarray) -> np.ndarray:
        '''Coerce to an (N, dim) float array.'''
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != self._dimensions:
            raise ConfigurationError(
                f'{type(self).__name__} acts on ({self._dimensions},) points, '
                f'got array of shape {points.shape}'
            )
        return points

    ######################################################################
    # -- Variant Hooks -- #
    ######################################################################

    def _identityParameters(self) -> np.ndarray:
        raise NotImplementedError

    def _mapPoints(self, points: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _mapJacobians(self, points: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def getInverseTransform(self) -> Transform | None:
        raise NotImplementedError
