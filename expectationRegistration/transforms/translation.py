# -- Translation and Identity Transforms -- #

'''
The two simplest transform variants.

TranslationTransform shifts every point by the parameter vector
(P = dim); its Jacobian is the identity matrix at every point.
IdentityTransform has no parameters and is the default fixed-side
transform of the metric.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import numpy as np

from expectationRegistration.transforms.protocols import ParameterizedTransform


#--------------------------------------------------------------------#
# -- Translation -- #
#--------------------------------------------------------------------#

class TranslationTransform(ParameterizedTransform):
    '''
    Pure translation x' = x + t.

    Parameters:
    -----------
    dimensions : int
        Point dimension (number of parameters equals dimension)
    offset : np.ndarray | None
        Initial translation (identity if None)
    '''

    def __init__(self, dimensions: int = 2, offset: np.ndarray | None = None) -> None:
        super().__init__(dimensions, dimensions)
        if offset is not None:
            self.setParameters(offset)

    def _identityParameters(self) -> np.ndarray:
        return np.zeros(self._dimensions)

    def _mapPoints(self, points: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        return points + parameters

    def _mapJacobians(self, points: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        # Independent of the input point
        return np.broadcast_to(
            np.eye(self._dimensions), (len(points), self._dimensions, self._dimensions)
        ).copy()

    def getInverseTransform(self) -> TranslationTransform:
        '''Translation by the negated offset.'''
        return TranslationTransform(self._dimensions, offset=-self._parameters)


#--------------------------------------------------------------------#
# -- Identity -- #
#--------------------------------------------------------------------#

class IdentityTransform(ParameterizedTransform):
    '''
    Parameterless identity mapping.

    Parameters:
    -----------
    dimensions : int
        Point dimension
    '''

    def __init__(self, dimensions: int = 2) -> None:
        super().__init__(dimensions, 0)

    def _identityParameters(self) -> np.ndarray:
        return np.zeros(0)

    def _mapPoints(self, points: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        return points.copy()

    def _mapJacobians(self, points: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        return np.zeros((len(points), 0, self._dimensions))

    def getInverseTransform(self) -> IdentityTransform:
        '''The identity is its own inverse.'''
        return IdentityTransform(self._dimensions)
