# -- Registration Errors -- #

'''
Exception types raised by the registration core.

Configuration problems are reported before the first iteration.
Numerical problems abort a run and carry the last valid parameters.
Running out of iterations is not an error; it is reported through
the optimizer's stop condition.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import numpy as np


class RegistrationError(Exception):
    '''Base class for all registration errors.'''


class ConfigurationError(RegistrationError, ValueError):
    '''Invalid metric, transform, or optimizer setup.'''


class OptimizerStateError(RegistrationError, RuntimeError):
    '''Optimizer used outside of its READY state.'''


class NumericalError(RegistrationError, ArithmeticError):
    '''
    Non-finite value or derivative encountered during evaluation.

    Parameters:
    -----------
    diagnostic : str
        Description of what became non-finite
    lastValidParameters : np.ndarray | None
        Parameter vector of the last finite evaluation
    iteration : int | None
        Optimizer iteration at which the failure occurred
    '''

    def __init__(
        self,
        diagnostic: str,
        lastValidParameters: np.ndarray | None = None,
        iteration: int | None = None,
    ) -> None:
        self.diagnostic = diagnostic
        self.lastValidParameters = (
            None if lastValidParameters is None else np.array(lastValidParameters, dtype=float)
        )
        self.iteration = iteration

        message = diagnostic
        if iteration is not None:
            message = f'{diagnostic} (iteration {iteration})'
        super().__init__(message)
