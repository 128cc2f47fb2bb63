# -- Affine Transform -- #

'''
General affine mapping about a fixed center.

    x' = A (x - c) + c + t

Parameters are the row-major entries of the dim x dim matrix A
followed by the translation t, so P = dim^2 + dim. The identity is
A = I, t = 0.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import numpy as np

from expectationRegistration.transforms.protocols import ParameterizedTransform


class AffineTransform(ParameterizedTransform):
    '''
    Affine transform with a fixed center.

    Parameters:
    -----------
    dimensions : int
        Point dimension
    center : np.ndarray | None
        Center of the linear part (origin if None)
    '''

    def __init__(self, dimensions: int = 2, center: np.ndarray | None = None) -> None:
        super().__init__(dimensions, dimensions * dimensions + dimensions)
        self._center = (
            np.zeros(dimensions) if center is None
            else np.asarray(center, dtype=np.float64).reshape(dimensions)
        )

    @property
    def center(self) -> np.ndarray:
        '''Center of the linear part.'''
        return self._center.copy()

    @property
    def matrix(self) -> np.ndarray:
        '''Current linear part A.'''
        return self._splitParameters(self._parameters)[0].copy()

    @property
    def translation(self) -> np.ndarray:
        '''Current translation t.'''
        return self._splitParameters(self._parameters)[1].copy()

    def setMatrixAndTranslation(self, matrix: np.ndarray, translation: np.ndarray) -> None:
        '''Set the parameters from A and t.'''
        self.setParameters(np.concatenate((np.asarray(matrix, dtype=np.float64).ravel(),
                                           np.asarray(translation, dtype=np.float64).ravel())))

    def _splitParameters(self, parameters: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        dim = self._dimensions
        return parameters[:dim * dim].reshape(dim, dim), parameters[dim * dim:]

    def _identityParameters(self) -> np.ndarray:
        dim = self._dimensions
        return np.concatenate((np.eye(dim).ravel(), np.zeros(dim)))

    def _mapPoints(self, points: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        matrix, translation = self._splitParameters(parameters)
        return (points - self._center) @ matrix.T + self._center + translation

    def _mapJacobians(self, points: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        dim = self._dimensions
        rel = points - self._center

        # d x'_a / d A[a, b] = rel_b ; d x'_d / d t_d = 1
        jac = np.zeros((len(points), self._numberOfParameters, dim))
        for row in range(dim):
            jac[:, row * dim:(row + 1) * dim, row] = rel
        for d in range(dim):
            jac[:, dim * dim + d, d] = 1.0
        return jac

    def getInverseTransform(self) -> AffineTransform | None:
        '''
        Inverse affine map about the same center, or None if A is singular.

        x = A^-1 (x' - c) + c - A^-1 t
        '''
        matrix, translation = self._splitParameters(self._parameters)
        try:
            inverseMatrix = np.linalg.inv(matrix)
        except np.linalg.LinAlgError:
            return None

        inverse = AffineTransform(self._dimensions, center=self._center)
        inverse.setMatrixAndTranslation(inverseMatrix, -inverseMatrix @ translation)
        return inverse
