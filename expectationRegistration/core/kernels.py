# -- Soft Correspondence Kernels -- #

'''
Kernel weighting for soft (probabilistic) correspondences.

Each fixed point is associated with a weighted blend of its k
nearest moving points. The weights come from an isotropic Gaussian
in the squared distance and are normalized to sum to one within
each neighborhood, which makes the blended position the
expectation of where the fixed point's match lies.

    w_j = exp(-d_j^2 / (2 sigma^2)) / sum_l exp(-d_l^2 / (2 sigma^2))

The Gaussian normalization constant 1 / (sqrt(2 pi) sigma)^dim
cancels in the ratio and is never computed.

When every neighbor is so far away that all weights underflow to
zero, the neighborhood falls back to uniform weights 1/k so the
expectation stays defined in sparse regions.

References:
-----------
Jian & Vemuri (2011) -- Robust point set registration using Gaussian
    mixture models
Myronenko & Song (2010) -- Point set registration: coherent point drift

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from typing import Protocol

import numpy as np


######################################################################
# -- Kernel Protocol -- #
######################################################################

class CorrespondenceKernel(Protocol):
    '''Protocol for neighborhood weighting kernels.'''

    def evaluateBatch(self, squaredDistances: np.ndarray) -> np.ndarray:
        '''Unnormalized kernel values for an array of squared distances.'''
        ...

    def normalizedWeights(self, squaredDistances: np.ndarray) -> np.ndarray:
        '''Weights normalized to unit sum along the last axis.'''
        ...


######################################################################
# -- Gaussian Kernel -- #
######################################################################

class GaussianKernel:
    '''
    Isotropic Gaussian kernel in squared distance.

    Parameters:
    -----------
    sigma : float
        Kernel bandwidth, same units as the point coordinates
    '''

    def __init__(self, sigma: float) -> None:
        if not np.isfinite(sigma) or sigma <= 0.0:
            raise ValueError(f'Kernel bandwidth sigma must be > 0, got {sigma}')
        self._sigma = float(sigma)
        self._denominator = 2.0 * self._sigma * self._sigma

    @property
    def sigma(self) -> float:
        '''Kernel bandwidth.'''
        return self._sigma

    def evaluate(self, squaredDistance: float) -> float:
        '''
        Evaluate exp(-d^2 / (2 sigma^2)) for one squared distance.

        Parameters:
        -----------
        squaredDistance : float
            Squared Euclidean distance

        Returns:
        --------
        float : Kernel value in [0, 1]
        '''
        return float(np.exp(-squaredDistance / self._denominator))

    ######################################################################
    # -- Vectorized (Batch) Operations -- #
    ######################################################################

    def evaluateBatch(self, squaredDistances: np.ndarray) -> np.ndarray:
        '''
        Evaluate the kernel for an array of squared distances.

        Parameters:
        -----------
        squaredDistances : np.ndarray
            Squared distances, any shape

        Returns:
        --------
        np.ndarray : Kernel values, same shape
        '''
        return np.exp(-np.asarray(squaredDistances, dtype=np.float64) / self._denominator)

    def normalizedWeights(self, squaredDistances: np.ndarray) -> np.ndarray:
        '''
        Kernel weights normalized within each neighborhood.

        Parameters:
        -----------
        squaredDistances : np.ndarray
            Neighborhood squared distances, shape (M, k)

        Returns:
        --------
        np.ndarray : Weights, shape (M, k), each row summing to 1
        '''
        weights = self.evaluateBatch(squaredDistances)
        weightSums = np.sum(weights, axis=-1, keepdims=True)

        # Uniform fallback where every weight underflowed
        underflow = weightSums[..., 0] <= 0.0
        safeSums = np.where(weightSums > 0.0, weightSums, 1.0)
        weights = weights / safeSums
        if np.any(underflow):
            weights[underflow] = 1.0 / weights.shape[-1]

        return weights
