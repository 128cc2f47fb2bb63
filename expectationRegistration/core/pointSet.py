# -- Point Set Container -- #

'''
Ordered, immutable collection of fixed-dimension points.

Points are stored as a contiguous (N, dim) float64 NumPy array
whose write flag is cleared at construction, so a point set cannot
drift while a registration run is reading it. The row index of a
point is its identity for the whole run.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, TYPE_CHECKING

import numpy as np

from expectationRegistration.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from expectationRegistration.transforms.protocols import Transform


@dataclass(frozen=True, eq=False)
class PointSet:
    '''
    Immutable ordered point set.

    Parameters:
    -----------
    positions : np.ndarray
        Point coordinates, shape (N, dim). Copied and frozen.
    '''

    positions: np.ndarray

    def __post_init__(self) -> None:
        positions = np.array(self.positions, dtype=np.float64, copy=True)
        if positions.ndim == 1 and positions.size == 0:
            positions = positions.reshape(0, 0)
        if positions.ndim != 2:
            raise ConfigurationError(
                f'Point set must be a 2D array of shape (N, dim), got shape {positions.shape}'
            )
        positions.setflags(write=False)
        object.__setattr__(self, 'positions', positions)

    @classmethod
    def fromPoints(cls, points: Iterable[Iterable[float]]) -> PointSet:
        '''
        Build a point set from any iterable of coordinate sequences.

        Parameters:
        -----------
        points : Iterable[Iterable[float]]
            Points in index order

        Returns:
        --------
        PointSet : New frozen point set
        '''
        return cls(np.array([list(p) for p in points], dtype=np.float64))

    @property
    def numberOfPoints(self) -> int:
        '''Number of points N.'''
        return self.positions.shape[0]

    @property
    def dimensions(self) -> int:
        '''Point dimension D.'''
        return self.positions.shape[1]

    @property
    def points(self) -> np.ndarray:
        '''Read-only (N, dim) coordinate array.'''
        return self.positions

    def isEmpty(self) -> bool:
        '''True when the set holds no points.'''
        return self.numberOfPoints == 0

    def getPoint(self, index: int) -> np.ndarray:
        '''Copy of the point at the given index.'''
        return self.positions[index].copy()

    def transformed(self, transform: Transform) -> PointSet:
        '''
        New point set holding every point mapped through a transform.

        Parameters:
        -----------
        transform : Transform
            Mapping evaluated at its current parameters

        Returns:
        --------
        PointSet : Transformed copy, same point order
        '''
        return PointSet(transform.transformPoints(self.positions))

    def __len__(self) -> int:
        return self.numberOfPoints
