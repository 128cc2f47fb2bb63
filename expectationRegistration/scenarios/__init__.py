# -- Synthetic Scenarios Package -- #

'''
Pre-configured fixed/moving point set pairs.

Sean Bowman [10/19/2026]
'''

from expectationRegistration.scenarios.syntheticPointSets import (
    PointSetScenario,
    CircleScenarioConfig,
    EllipseScenarioConfig,
    SquareScenarioConfig,
    createCircleScenario,
    createEllipseScenario,
    createSquareScenario,
    computePairResiduals,
)
