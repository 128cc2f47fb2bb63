# -- 2D Rigid (Euler) Transform -- #

'''
Rotation about a fixed center followed by a translation, in 2D.

    x' = R(angle) (x - c) + c + t

Parameters are ordered (angle [rad], tx, ty). The angle is in
radians while the translation is in point units, which is exactly
the case the optimizer's per-parameter scales exist for.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import math

import numpy as np

from expectationRegistration.transforms.protocols import ParameterizedTransform


class Rigid2DTransform(ParameterizedTransform):
    '''
    2D rigid transform with a fixed rotation center.

    Parameters:
    -----------
    center : np.ndarray | None
        Rotation center (origin if None)
    angle : float
        Initial rotation angle [rad]
    translation : np.ndarray | None
        Initial translation (zero if None)
    '''

    def __init__(
        self,
        center: np.ndarray | None = None,
        angle: float = 0.0,
        translation: np.ndarray | None = None,
    ) -> None:
        super().__init__(2, 3)
        self._center = np.zeros(2) if center is None else np.asarray(center, dtype=np.float64).reshape(2)
        translation = np.zeros(2) if translation is None else np.asarray(translation, dtype=np.float64)
        self.setParameters(np.concatenate(([angle], translation)))

    @property
    def center(self) -> np.ndarray:
        '''Rotation center.'''
        return self._center.copy()

    @staticmethod
    def rotationMatrix(angle: float) -> np.ndarray:
        '''2x2 counter-clockwise rotation matrix.'''
        cosA = math.cos(angle)
        sinA = math.sin(angle)
        return np.array([[cosA, -sinA], [sinA, cosA]])

    def _identityParameters(self) -> np.ndarray:
        return np.zeros(3)

    def _mapPoints(self, points: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        rotation = self.rotationMatrix(parameters[0])
        return (points - self._center) @ rotation.T + self._center + parameters[1:]

    def _mapJacobians(self, points: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        cosA = math.cos(parameters[0])
        sinA = math.sin(parameters[0])
        rel = points - self._center

        jac = np.zeros((len(points), 3, 2))
        # d/d(angle) of R(angle) @ rel
        jac[:, 0, 0] = -sinA * rel[:, 0] - cosA * rel[:, 1]
        jac[:, 0, 1] = cosA * rel[:, 0] - sinA * rel[:, 1]
        jac[:, 1, 0] = 1.0
        jac[:, 2, 1] = 1.0
        return jac

    def getInverseTransform(self) -> Rigid2DTransform:
        '''
        Analytic inverse about the same center.

        x = R(-angle) (x' - c) + c - R(-angle) t
        '''
        angle = self._parameters[0]
        inverseTranslation = -self.rotationMatrix(-angle) @ self._parameters[1:]
        return Rigid2DTransform(center=self._center, angle=-angle, translation=inverseTranslation)
