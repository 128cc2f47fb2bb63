# -- Transforms Package -- #

'''
Parameterized point transforms driven by the optimizer.

Sean Bowman [10/19/2026]
'''

from expectationRegistration.transforms.protocols import Transform, ParameterizedTransform
from expectationRegistration.transforms.translation import TranslationTransform, IdentityTransform
from expectationRegistration.transforms.rigid2D import Rigid2DTransform
from expectationRegistration.transforms.affine import AffineTransform
from expectationRegistration.transforms.transformFactory import createTransform
