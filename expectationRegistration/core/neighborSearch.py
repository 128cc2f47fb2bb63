# -- Spatial Index for k-Nearest-Neighbor Search -- #

'''
k-nearest-neighbor queries over a point set.

The metric builds one index over the transformed moving points per
evaluation and queries it once for every fixed point. Results are
ordered by ascending Euclidean distance with ties broken by
ascending point index, so two evaluations over identical inputs
always see identical neighborhoods.

Two implementations share the same contract:
- KdTreeNeighborIndex: scipy cKDTree, O(N log N) build and
  O(log N + k) expected query
- BruteForceNeighborIndex: vectorized NumPy distance matrix, used as
  the reference implementation and for very small sets

References:
-----------
Bentley (1975) -- Multidimensional binary search trees used for
    associative searching
Maneewongvatana & Mount (1999) -- Analysis of approximate nearest
    neighbor searching with clustered point sets

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from typing import Protocol

import numpy as np
from scipy.spatial import cKDTree


# Relative slack used when deciding that two distances tie
_tieTolerance: float = 1e-9


#--------------------------------------------------------------------#
# -- Neighbor Index Protocol -- #
#--------------------------------------------------------------------#

class NeighborIndex(Protocol):
    '''Protocol for k-nearest-neighbor search structures.'''

    def build(self, positions: np.ndarray) -> None:
        '''Build the search structure over an (N, dim) point array.'''
        ...

    def query(self, queryPoints: np.ndarray, k: int) -> tuple[np.ndarray, np.ndarray]:
        '''
        Find the k nearest indexed points of every query point.

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] :
            (squaredDistances, indices), both shape (M, k), ordered by
            ascending distance then ascending index.
        '''
        ...

    @property
    def numberOfPoints(self) -> int:
        '''Number of indexed points.'''
        ...


def _squaredDistances(positions: np.ndarray, queryPoints: np.ndarray, indices: np.ndarray) -> np.ndarray:
    '''Squared distances from each query row to its candidate indices, shape (M, c).'''
    diff = positions[indices] - queryPoints[:, np.newaxis, :]
    return np.sum(diff * diff, axis=2)


def _prepareQuery(queryPoints: np.ndarray, k: int, dimensions: int) -> np.ndarray:
    '''Validate k and coerce queries to a (M, dim) float array.'''
    if k < 1:
        raise ValueError(f'Neighborhood size k must be >= 1, got {k}')

    queryPoints = np.atleast_2d(np.asarray(queryPoints, dtype=np.float64))
    if queryPoints.shape[1] != dimensions:
        raise ValueError(
            f'Query dimension {queryPoints.shape[1]} does not match index dimension {dimensions}'
        )
    return queryPoints


#--------------------------------------------------------------------#
# -- Brute Force Index -- #
#--------------------------------------------------------------------#

class BruteForceNeighborIndex:
    '''
    Exhaustive k-nearest-neighbor search.

    Computes the full (M, N) squared distance matrix with NumPy
    broadcasting and takes a stable sort per row, which orders tied
    distances by index.
    '''

    def __init__(self) -> None:
        self._positions: np.ndarray | None = None

    @property
    def numberOfPoints(self) -> int:
        '''Number of indexed points.'''
        return 0 if self._positions is None else self._positions.shape[0]

    def build(self, positions: np.ndarray) -> None:
        '''
        Store a private copy of the points.

        Parameters:
        -----------
        positions : np.ndarray
            Points to index, shape (N, dim)
        '''
        self._positions = np.array(positions, dtype=np.float64, copy=True)

    def query(self, queryPoints: np.ndarray, k: int) -> tuple[np.ndarray, np.ndarray]:
        '''
        k nearest neighbors by exhaustive search.

        Parameters:
        -----------
        queryPoints : np.ndarray
            Query points, shape (M, dim) or (dim,)
        k : int
            Neighbors per query; truncated to the indexed set size

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] : (squaredDistances, indices), shape (M, k)
        '''
        if self._positions is None:
            raise RuntimeError('Neighbor index not built. Call build() first.')

        queryPoints = _prepareQuery(queryPoints, k, self._positions.shape[1])
        k = min(k, self.numberOfPoints)

        allIndices = np.broadcast_to(
            np.arange(self.numberOfPoints), (len(queryPoints), self.numberOfPoints)
        )
        distSq = _squaredDistances(self._positions, queryPoints, allIndices)

        order = np.argsort(distSq, axis=1, kind='stable')[:, :k]
        return np.take_along_axis(distSq, order, axis=1), order


#--------------------------------------------------------------------#
# -- KD-Tree Index -- #
#--------------------------------------------------------------------#

class KdTreeNeighborIndex:
    '''
    k-nearest-neighbor search backed by scipy's cKDTree.

    cKDTree does not define an order among equidistant points, so
    each query fetches k+1 neighbors. Rows whose k-th and (k+1)-th
    distances tie are re-resolved with a ball query at the k-th
    radius, and every row is finally ordered by (distance, index).

    Parameters:
    -----------
    workers : int
        Threads used by cKDTree queries (-1 = all cores)
    leafSize : int
        cKDTree leaf size
    '''

    def __init__(self, workers: int = 1, leafSize: int = 16) -> None:
        self._workers = workers
        self._leafSize = leafSize
        self._positions: np.ndarray | None = None
        self._tree: cKDTree | None = None

    @property
    def numberOfPoints(self) -> int:
        '''Number of indexed points.'''
        return 0 if self._positions is None else self._positions.shape[0]

    def build(self, positions: np.ndarray) -> None:
        '''
        Build the kd-tree over a private copy of the points.

        Parameters:
        -----------
        positions : np.ndarray
            Points to index, shape (N, dim)
        '''
        self._positions = np.array(positions, dtype=np.float64, copy=True)
        self._tree = cKDTree(self._positions, leafsize=self._leafSize)

    def query(self, queryPoints: np.ndarray, k: int) -> tuple[np.ndarray, np.ndarray]:
        '''
        k nearest neighbors with deterministic tie-breaking.

        Parameters:
        -----------
        queryPoints : np.ndarray
            Query points, shape (M, dim) or (dim,)
        k : int
            Neighbors per query; truncated to the indexed set size

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] : (squaredDistances, indices), shape (M, k)
        '''
        if self._tree is None:
            raise RuntimeError('Neighbor index not built. Call build() first.')

        queryPoints = _prepareQuery(queryPoints, k, self._positions.shape[1])
        nQueries = len(queryPoints)
        k = min(k, self.numberOfPoints)
        kFetch = min(k + 1, self.numberOfPoints)

        treeDist, indices = self._tree.query(queryPoints, k=kFetch, workers=self._workers)
        # cKDTree drops the neighbor axis when k == 1
        indices = np.asarray(indices, dtype=np.intp).reshape(nQueries, kFetch)

        # Overflowing distances come back as missing neighbors (index N, distance inf)
        if np.any(indices >= self.numberOfPoints) or not np.all(np.isfinite(treeDist)):
            raise FloatingPointError('Neighbor distances overflow; point coordinates are too large')

        # Exact distances, then order by (distance, index)
        distSq = _squaredDistances(self._positions, queryPoints, indices)
        order = np.lexsort((indices, distSq), axis=-1)
        indices = np.take_along_axis(indices, order, axis=1)
        distSq = np.take_along_axis(distSq, order, axis=1)

        if kFetch == k:
            return distSq, indices

        resultDistSq = distSq[:, :k].copy()
        resultIndices = indices[:, :k].copy()

        # Rows where a tie straddles the k-th position
        kthDistSq = distSq[:, k - 1]
        tied = distSq[:, k] <= kthDistSq * (1.0 + _tieTolerance) + np.finfo(float).tiny
        for row in np.flatnonzero(tied):
            radius = np.sqrt(kthDistSq[row]) * (1.0 + _tieTolerance) + np.finfo(float).tiny
            candidates = self._tree.query_ball_point(queryPoints[row], r=radius)
            candidates = np.union1d(np.asarray(candidates, dtype=np.intp), indices[row])

            candidateDistSq = _squaredDistances(
                self._positions, queryPoints[row:row + 1], candidates[np.newaxis, :]
            )[0]
            best = np.lexsort((candidates, candidateDistSq))[:k]
            resultDistSq[row] = candidateDistSq[best]
            resultIndices[row] = candidates[best]

        return resultDistSq, resultIndices


#--------------------------------------------------------------------#
# -- Index Factory -- #
#--------------------------------------------------------------------#

def createNeighborIndex(indexType: str, workers: int = 1) -> NeighborIndex:
    '''
    Create a neighbor index by type name.

    Parameters:
    -----------
    indexType : str
        Index type: 'kdTree' or 'bruteForce'
    workers : int
        Query threads for the kd-tree (ignored by brute force)

    Returns:
    --------
    NeighborIndex : Unbuilt index instance

    Raises:
    -------
    ValueError : If index type is unknown
    '''
    if indexType == 'kdTree':
        return KdTreeNeighborIndex(workers=workers)
    elif indexType == 'bruteForce':
        return BruteForceNeighborIndex()
    else:
        raise ValueError(f'Unknown neighbor index type: {indexType}')
