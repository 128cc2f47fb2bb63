# -- Registration Scenario Tests -- #

'''
End-to-end registration of the synthetic scenarios and the command
line runner.

Sean Bowman [10/19/2026]
'''

import math

import numpy as np
import pytest

from expectationRegistration import constants as const
from expectationRegistration.core.protocols import RegistrationConfig
from expectationRegistration.optimization import ScalesFromShiftEstimator
from expectationRegistration.registration import registerPointSets
from expectationRegistration.runner import main
from expectationRegistration.scenarios import (
    CircleScenarioConfig,
    computePairResiduals,
    createCircleScenario,
    createEllipseScenario,
    createSquareScenario,
)
from expectationRegistration.transforms import Rigid2DTransform, TranslationTransform


######################################################################
# -- Scenario Construction -- #
######################################################################

def testCircleScenarioSampling():
    scenario = createCircleScenario()

    # theta = 0, 0.1, ..., 6.2 accumulated in single precision
    assert scenario.numberOfPoints == 63
    assert scenario.pairedPoints
    np.testing.assert_allclose(np.linalg.norm(scenario.fixedPointSet.points, axis=1), 100.0)
    np.testing.assert_allclose(
        scenario.movingPointSet.points - scenario.fixedPointSet.points, np.full((63, 2), 2.0)
    )


def testCircleScenarioIn3D():
    scenario = createCircleScenario(CircleScenarioConfig.standard3D())

    assert scenario.fixedPointSet.dimensions == 3
    np.testing.assert_allclose(scenario.fixedPointSet.points[:, 2], scenario.fixedPointSet.points[:, 1])

    with pytest.raises(ValueError):
        createCircleScenario(CircleScenarioConfig(offset=[1.0, 1.0, 1.0]))


def testEllipseScenarioIsUnpaired():
    scenario = createEllipseScenario()

    assert not scenario.pairedPoints
    assert scenario.fixedPointSet.numberOfPoints == scenario.movingPointSet.numberOfPoints
    with pytest.raises(ValueError):
        computePairResiduals(scenario, TranslationTransform(2))


def testSquareScenarioIsRotation():
    scenario = createSquareScenario()
    moving = scenario.movingPointSet.points

    np.testing.assert_allclose(moving[0], [0.0, 0.0])
    np.testing.assert_allclose(np.linalg.norm(moving, axis=1), np.linalg.norm(scenario.fixedPointSet.points, axis=1))
    assert math.degrees(math.atan2(moving[1, 1], moving[1, 0])) == pytest.approx(10.0)


######################################################################
# -- Registration -- #
######################################################################

def testOffsetCirclesRecovered():
    '''10000 iterations match every fixed/moving pair within 1e-4.'''
    scenario = createCircleScenario()
    transform = TranslationTransform(2)

    result = registerPointSets(
        scenario.fixedPointSet,
        scenario.movingPointSet,
        transform,
        config=RegistrationConfig.circleTest(),
    )

    residuals = computePairResiduals(scenario, transform)
    assert np.max(np.abs(residuals)) < const.residualTolerance
    np.testing.assert_allclose(result.finalParameters, [-2.0, -2.0], atol=1e-4)
    assert result.finalValue < result.initialValue


def testRotatedSquareRecovered():
    scenario = createSquareScenario()
    transform = Rigid2DTransform()
    estimator = ScalesFromShiftEstimator(transform, scenario.movingPointSet.points)

    result = registerPointSets(
        scenario.fixedPointSet,
        scenario.movingPointSet,
        transform,
        config=RegistrationConfig.squareTest(),
        scalesEstimator=estimator,
    )

    assert result.finalParameters[0] == pytest.approx(-math.radians(10.0), abs=1e-6)
    assert np.max(np.abs(computePairResiduals(scenario, transform))) < const.residualTolerance


def testRegistrationCancelled():
    scenario = createCircleScenario()

    result = registerPointSets(
        scenario.fixedPointSet,
        scenario.movingPointSet,
        TranslationTransform(2),
        config=RegistrationConfig.circleTest(),
        cancelCallback=lambda: True,
    )

    assert result.stopCondition == 'cancelled'
    assert result.iterations == 0


######################################################################
# -- Command Line -- #
######################################################################

def testRunnerPassesSquare(capsys):
    exitCode = main(['--scenario', 'square', '--quiet'])

    output = capsys.readouterr().out
    assert exitCode == 0
    assert 'REGISTRATION SUMMARY' in output
    assert 'PASS' in output


def testRunnerFailsWithTooFewIterations(capsys):
    exitCode = main(['--scenario', 'circles', '--iterations', '10', '--quiet'])

    output = capsys.readouterr().out
    assert exitCode == 1
    assert 'FAIL' in output
