# -- Transform Factory -- #

'''
Create transform variants by name.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import numpy as np

from expectationRegistration.transforms.protocols import Transform
from expectationRegistration.transforms.translation import TranslationTransform, IdentityTransform
from expectationRegistration.transforms.rigid2D import Rigid2DTransform
from expectationRegistration.transforms.affine import AffineTransform


TRANSFORM_TYPES = ('identity', 'translation', 'rigid2D', 'affine')


def createTransform(
    transformType: str,
    dimensions: int = 2,
    center: np.ndarray | None = None,
) -> Transform:
    '''
    Create an identity-initialized transform by type name.

    Parameters:
    -----------
    transformType : str
        One of 'identity', 'translation', 'rigid2D', 'affine'
    dimensions : int
        Point dimension
    center : np.ndarray | None
        Rotation / linear-part center for rigid2D and affine

    Returns:
    --------
    Transform : Transform instance at identity

    Raises:
    -------
    ValueError : If the type is unknown or rigid2D is requested
        for a dimension other than 2
    '''
    if transformType == 'identity':
        return IdentityTransform(dimensions)
    elif transformType == 'translation':
        return TranslationTransform(dimensions)
    elif transformType == 'rigid2D':
        if dimensions != 2:
            raise ValueError(f'rigid2D transform requires dimensions == 2, got {dimensions}')
        return Rigid2DTransform(center=center)
    elif transformType == 'affine':
        return AffineTransform(dimensions, center=center)
    else:
        raise ValueError(f'Unknown transform type: {transformType}')
