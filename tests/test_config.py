# -- Configuration and Result Record Tests -- #

'''
RegistrationConfig presets, JSON loading, and result serialization.

Sean Bowman [10/19/2026]
'''

import json

import numpy as np
import pytest

from expectationRegistration import constants as const
from expectationRegistration.core.exceptions import ConfigurationError
from expectationRegistration.core.protocols import RegistrationConfig, RegistrationResult


def testDefaultsComeFromConstants():
    config = RegistrationConfig()

    assert config.pointSetSigma == const.pointSetSigma
    assert config.evaluationKNeighborhood == const.evaluationKNeighborhood
    assert config.numberOfIterations == const.numberOfIterations
    assert config.scales is None


def testCircleTestPreset():
    config = RegistrationConfig.circleTest()

    assert config.pointSetSigma == 2.0
    assert config.evaluationKNeighborhood == 10
    assert config.numberOfIterations == 10000
    assert config.learningRate == 0.1
    assert config.minimumConvergenceValue == 0.0
    assert config.convergenceWindowSize == 10
    np.testing.assert_array_equal(config.scalesVector(2), [0.1, 0.1])


def testScalesVector():
    assert RegistrationConfig(scales=None).scalesVector(3) is None
    np.testing.assert_array_equal(RegistrationConfig(scales=[1.0, 2.0]).scalesVector(2), [1.0, 2.0])

    with pytest.raises(ConfigurationError):
        RegistrationConfig(scales=[1.0, 2.0]).scalesVector(3)


def testFromJson(tmp_path):
    configPath = tmp_path / 'registration.json'
    configPath.write_text(json.dumps({
        'metric': {
            'pointSetSigma': 3.5,
            'evaluationKNeighborhood': 7,
            'neighborIndexType': 'bruteForce',
            'numberOfWorkers': 2,
        },
        'optimizer': {
            'numberOfIterations': 250,
            'learningRate': 0.05,
            'scales': [0.1, 0.2],
            'verbose': True,
        },
    }))

    config = RegistrationConfig.fromJson(str(configPath))

    assert config.pointSetSigma == 3.5
    assert config.evaluationKNeighborhood == 7
    assert config.neighborIndexType == 'bruteForce'
    assert config.numberOfWorkers == 2
    assert config.numberOfIterations == 250
    assert config.learningRate == 0.05
    assert config.scales == [0.1, 0.2]
    assert config.verbose is True
    # Missing keys fall back to the defaults
    assert config.convergenceWindowSize == const.convergenceWindowSize
    assert config.minimumConvergenceValue == const.minimumConvergenceValue


def testFromJsonEmptySections(tmp_path):
    configPath = tmp_path / 'empty.json'
    configPath.write_text('{}')

    config = RegistrationConfig.fromJson(str(configPath))

    assert config == RegistrationConfig()


def testResultToDictIsJsonSerializable():
    result = RegistrationResult(
        finalParameters=np.array([-2.0, -2.0]),
        finalValue=1e-12,
        initialValue=8.0,
        iterations=10000,
        stopCondition='exhausted',
        message='Maximum number of iterations (10000) exceeded',
        valueHistory=[8.0, 7.5],
    )

    data = json.loads(json.dumps(result.toDict()))

    assert data['finalParameters'] == [-2.0, -2.0]
    assert data['stopCondition'] == 'exhausted'
    assert not result.converged
