# -- Transform Tests -- #

'''
Mapping, analytic Jacobians against finite differences, inverses,
and parameter validation for every transform variant.

Sean Bowman [10/19/2026]
'''

import math

import numpy as np
import pytest

from expectationRegistration.core.exceptions import ConfigurationError
from expectationRegistration.transforms import (
    AffineTransform, IdentityTransform, Rigid2DTransform, TranslationTransform, createTransform,
)


def _finiteDifferenceJacobians(transform, points, parameters, step=1e-6):
    '''Central-difference (N, P, dim) Jacobians.'''
    nParameters = transform.numberOfParameters
    jac = np.zeros((len(points), nParameters, points.shape[1]))
    for p in range(nParameters):
        delta = np.zeros(nParameters)
        delta[p] = step
        forward = transform.transformPoints(points, parameters + delta)
        backward = transform.transformPoints(points, parameters - delta)
        jac[:, p, :] = (forward - backward) / (2.0 * step)
    return jac


def _samplePoints(dim=2):
    rng = np.random.default_rng(3)
    return rng.uniform(-5.0, 5.0, size=(12, dim))


def _transformCases():
    affine2D = AffineTransform(2, center=np.array([1.0, -2.0]))
    affine3D = AffineTransform(3)
    return [
        (TranslationTransform(2), np.array([0.7, -1.3])),
        (TranslationTransform(3), np.array([0.1, 0.2, 0.3])),
        (Rigid2DTransform(center=np.array([0.5, 1.5])), np.array([0.3, 2.0, -1.0])),
        (affine2D, np.array([1.1, 0.2, -0.3, 0.9, 0.5, -0.5])),
        (affine3D, np.array([1.0, 0.1, 0.0, -0.2, 1.2, 0.1, 0.0, 0.3, 0.8, 1.0, 2.0, 3.0])),
    ]


@pytest.mark.parametrize('transform, parameters', _transformCases())
def testJacobiansMatchFiniteDifferences(transform, parameters):
    points = _samplePoints(transform.dimensions)

    analytic = transform.jacobians(points, parameters)
    numeric = _finiteDifferenceJacobians(transform, points, parameters)

    assert analytic.shape == (len(points), transform.numberOfParameters, transform.dimensions)
    np.testing.assert_allclose(analytic, numeric, rtol=1e-6, atol=1e-6)


@pytest.mark.parametrize('transform, parameters', _transformCases())
def testInverseUndoesTransform(transform, parameters):
    points = _samplePoints(transform.dimensions)
    transform.setParameters(parameters)

    inverse = transform.getInverseTransform()
    roundTrip = inverse.transformPoints(transform.transformPoints(points))

    np.testing.assert_allclose(roundTrip, points, atol=1e-10)


@pytest.mark.parametrize('transform, parameters', _transformCases())
def testExplicitParametersLeaveStoredParametersAlone(transform, parameters):
    transform.setIdentity()
    points = _samplePoints(transform.dimensions)

    transform.transformPoints(points, parameters)
    transform.jacobians(points, parameters)

    np.testing.assert_allclose(transform.transformPoints(points), points, atol=1e-12)


def testRigidRotationAboutCenter():
    transform = Rigid2DTransform(center=np.array([1.0, 1.0]), angle=math.pi / 2.0)

    np.testing.assert_allclose(transform.transformPoint(np.array([2.0, 1.0])), [1.0, 2.0], atol=1e-12)
    np.testing.assert_allclose(transform.transformPoint(np.array([1.0, 1.0])), [1.0, 1.0], atol=1e-12)
    np.testing.assert_allclose(transform.jacobian(np.array([1.0, 1.0]))[1:], np.eye(2))


def testTranslationJacobianIsIdentity():
    transform = TranslationTransform(2, offset=np.array([3.0, 4.0]))

    np.testing.assert_array_equal(transform.jacobian(np.array([10.0, -7.0])), np.eye(2))
    np.testing.assert_array_equal(transform.transformPoint(np.array([1.0, 1.0])), [4.0, 5.0])


def testAffineSingularHasNoInverse():
    transform = AffineTransform(2)
    transform.setMatrixAndTranslation(np.array([[1.0, 2.0], [2.0, 4.0]]), np.zeros(2))

    assert transform.getInverseTransform() is None


def testAffineParameterLayout():
    transform = AffineTransform(2)
    np.testing.assert_array_equal(transform.getParameters(), [1.0, 0.0, 0.0, 1.0, 0.0, 0.0])

    transform.setMatrixAndTranslation(np.array([[2.0, 0.0], [0.0, 3.0]]), np.array([1.0, -1.0]))
    np.testing.assert_array_equal(transform.matrix, [[2.0, 0.0], [0.0, 3.0]])
    np.testing.assert_array_equal(transform.translation, [1.0, -1.0])
    np.testing.assert_array_equal(transform.transformPoint(np.array([1.0, 1.0])), [3.0, 2.0])


def testIdentityTransformHasNoParameters():
    transform = IdentityTransform(3)
    points = _samplePoints(3)

    assert transform.numberOfParameters == 0
    assert transform.jacobians(points).shape == (len(points), 0, 3)
    np.testing.assert_array_equal(transform.transformPoints(points), points)


def testParameterValidation():
    transform = TranslationTransform(2)

    with pytest.raises(ConfigurationError):
        transform.setParameters(np.zeros(3))
    with pytest.raises(ConfigurationError):
        transform.transformPoints(np.zeros((4, 3)))
    with pytest.raises(ConfigurationError):
        TranslationTransform(0)


def testGetParametersReturnsCopy():
    transform = TranslationTransform(2, offset=np.array([1.0, 2.0]))
    parameters = transform.getParameters()
    parameters[0] = 50.0

    np.testing.assert_array_equal(transform.getParameters(), [1.0, 2.0])


def testFactory():
    assert isinstance(createTransform('translation', 3), TranslationTransform)
    assert isinstance(createTransform('rigid2D'), Rigid2DTransform)
    assert createTransform('affine', 3).numberOfParameters == 12
    assert createTransform('identity').numberOfParameters == 0

    with pytest.raises(ValueError):
        createTransform('rigid2D', 3)
    with pytest.raises(ValueError):
        createTransform('bspline')
