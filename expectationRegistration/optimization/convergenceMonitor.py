# -- Windowed Convergence Monitor -- #

'''
Sliding-window convergence test for iterative optimizers.

A single iteration's derivative can be noisy; stopping as soon as
one of them is small stops too early. The monitor keeps the last W
per-iteration magnitudes and reports their average, optionally
weighted linearly towards the most recent entry.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from collections import deque
from typing import Literal

import numpy as np


WindowWeighting = Literal['simple', 'linear']


class WindowConvergenceMonitor:
    '''
    Average of the last W recorded energy values.

    Parameters:
    -----------
    windowSize : int
        Number of recent values kept (W >= 1)
    weighting : WindowWeighting
        'simple' for the plain mean, 'linear' for weights 1..W with
        the newest value weighted W
    '''

    def __init__(self, windowSize: int = 10, weighting: WindowWeighting = 'simple') -> None:
        if windowSize < 1:
            raise ValueError(f'Convergence window size must be >= 1, got {windowSize}')
        if weighting not in ('simple', 'linear'):
            raise ValueError(f'Unknown window weighting: {weighting}')

        self._windowSize = windowSize
        self._weighting = weighting
        self._values: deque[float] = deque(maxlen=windowSize)

    @property
    def windowSize(self) -> int:
        return self._windowSize

    @property
    def isFull(self) -> bool:
        '''True once W values have been recorded.'''
        return len(self._values) == self._windowSize

    @property
    def numberOfValues(self) -> int:
        return len(self._values)

    def addEnergyValue(self, value: float) -> None:
        '''Record one iteration's value, evicting the oldest when full.'''
        self._values.append(float(value))

    def getConvergenceValue(self) -> float:
        '''
        Windowed average of the recorded values.

        Returns:
        --------
        float : Average, or inf when nothing has been recorded
        '''
        if not self._values:
            return float('inf')

        values = np.fromiter(self._values, dtype=np.float64, count=len(self._values))
        if self._weighting == 'linear':
            weights = np.arange(1, len(values) + 1, dtype=np.float64)
            return float(np.sum(weights * values) / np.sum(weights))
        return float(np.mean(values))

    def clear(self) -> None:
        '''Forget every recorded value.'''
        self._values.clear()
