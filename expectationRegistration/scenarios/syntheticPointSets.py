# -- Synthetic Point Set Scenarios -- #

'''
Synthetic fixed/moving point set pairs for registration tests and
the command-line runner.

Scenarios:
1. Circles: a circle at the origin and the same circle shifted by a
   constant offset. Point n of both sets is a true correspondence,
   recovered exactly by a translation.
2. Ellipses: the same ellipse sampled twice with a phase shift. The
   moving points slide along the fixed curve, so the pairs are not
   correspondences and only the metric value can be judged.
3. Square: four corners and the same corners rotated about the
   origin, recovered exactly by a rigid transform.

Angles are accumulated in single precision, which fixes the number
of samples on the curve (63 for a 0.1 rad step).

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from expectationRegistration.core.pointSet import PointSet
from expectationRegistration.transforms.protocols import Transform


######################################################################
# -- Scenario Record -- #
######################################################################

@dataclass
class PointSetScenario:
    '''
    A fixed/moving point set pair.

    Parameters:
    -----------
    name : str
        Scenario identifier
    fixedPointSet : PointSet
        Reference points
    movingPointSet : PointSet
        Points to register onto the reference
    pairedPoints : bool
        True when fixed point n and moving point n correspond, so the
        pair residual is a meaningful check
    description : str
        One-line summary for reports
    '''

    name: str
    fixedPointSet: PointSet
    movingPointSet: PointSet
    pairedPoints: bool = True
    description: str = ''

    @property
    def numberOfPoints(self) -> int:
        return self.fixedPointSet.numberOfPoints


def _sampleAngles(angularStep: float) -> np.ndarray:
    '''Angles 0, step, 2*step, ... below 2*pi, accumulated in float32.'''
    if angularStep <= 0.0:
        raise ValueError(f'Angular step must be > 0, got {angularStep}')

    angles = []
    step = np.float32(angularStep)
    theta = np.float32(0.0)
    while theta < 2.0 * math.pi:
        angles.append(float(theta))
        theta = np.float32(theta + step)
    return np.asarray(angles)


######################################################################
# -- Circles -- #
######################################################################

@dataclass
class CircleScenarioConfig:
    '''
    Two offset circles.

    Parameters:
    -----------
    radius : float
        Circle radius [point units]
    angularStep : float
        Sampling increment [rad]
    offset : list[float]
        Moving minus fixed, one entry per dimension
    dimensions : int
        2, or 3 to lift the circle with z = radius * sin(theta)
    '''

    radius: float = 100.0
    angularStep: float = 0.1
    offset: list[float] = field(default_factory=lambda: [2.0, 2.0])
    dimensions: int = 2

    @classmethod
    def standard2D(cls) -> CircleScenarioConfig:
        '''Radius 100, 0.1 rad sampling, offset (2, 2).'''
        return cls()

    @classmethod
    def standard3D(cls) -> CircleScenarioConfig:
        '''Tilted circle in 3D with offset (2, 2, 2).'''
        return cls(offset=[2.0, 2.0, 2.0], dimensions=3)


def createCircleScenario(config: CircleScenarioConfig | None = None) -> PointSetScenario:
    '''
    Circle at the origin and the same circle shifted by the offset.

    Parameters:
    -----------
    config : CircleScenarioConfig | None
        Scenario configuration (standard2D if None)

    Returns:
    --------
    PointSetScenario : Paired fixed and moving sets
    '''
    if config is None:
        config = CircleScenarioConfig.standard2D()
    if config.dimensions not in (2, 3):
        raise ValueError(f'Circle scenario supports 2 or 3 dimensions, got {config.dimensions}')

    offset = np.asarray(config.offset, dtype=np.float64)
    if offset.shape != (config.dimensions,):
        raise ValueError(f'Offset must have {config.dimensions} entries, got {offset.size}')

    angles = _sampleAngles(config.angularStep)
    columns = [config.radius * np.cos(angles), config.radius * np.sin(angles)]
    if config.dimensions == 3:
        columns.append(config.radius * np.sin(angles))
    fixed = np.column_stack(columns)

    return PointSetScenario(
        name='circles',
        fixedPointSet=PointSet(fixed),
        movingPointSet=PointSet(fixed + offset),
        pairedPoints=True,
        description=f'{len(fixed)} points, radius {config.radius:g}, offset {offset.tolist()}',
    )


######################################################################
# -- Ellipses -- #
######################################################################

@dataclass
class EllipseScenarioConfig:
    '''
    One ellipse sampled twice with a phase shift.

    Parameters:
    -----------
    semiMajorAxis : float
        x semi-axis [point units]
    semiMinorAxis : float
        y semi-axis [point units]
    angularStep : float
        Sampling increment [rad]
    phaseShift : float
        Parameter shift of the moving samples [rad]
    '''

    semiMajorAxis: float = 5.0
    semiMinorAxis: float = 1.0
    angularStep: float = 0.1
    phaseShift: float = 0.1 * math.pi


def createEllipseScenario(config: EllipseScenarioConfig | None = None) -> PointSetScenario:
    '''Ellipse samples at theta (fixed) and theta + phaseShift (moving).'''
    if config is None:
        config = EllipseScenarioConfig()

    angles = _sampleAngles(config.angularStep)
    shifted = angles + config.phaseShift
    fixed = np.column_stack([
        config.semiMajorAxis * np.cos(angles),
        config.semiMinorAxis * np.sin(angles),
    ])
    moving = np.column_stack([
        config.semiMajorAxis * np.cos(shifted),
        config.semiMinorAxis * np.sin(shifted),
    ])

    return PointSetScenario(
        name='ellipses',
        fixedPointSet=PointSet(fixed),
        movingPointSet=PointSet(moving),
        pairedPoints=False,
        description=(
            f'{len(fixed)} points, axes {config.semiMajorAxis:g} x {config.semiMinorAxis:g}, '
            f'phase shift {config.phaseShift:.4f} rad'
        ),
    )


######################################################################
# -- Rotated Square -- #
######################################################################

@dataclass
class SquareScenarioConfig:
    '''
    Square corners rotated about the origin.

    Parameters:
    -----------
    size : float
        Side length [point units]
    rotationDeg : float
        Rotation of the moving corners [degrees]
    '''

    size: float = 100.0
    rotationDeg: float = 10.0


def createSquareScenario(config: SquareScenarioConfig | None = None) -> PointSetScenario:
    '''Corners (0,0), (s,0), (s,s), (0,s) and their rotation about the origin.'''
    if config is None:
        config = SquareScenarioConfig()

    s = config.size
    fixed = np.array([[0.0, 0.0], [s, 0.0], [s, s], [0.0, s]])

    angle = math.radians(config.rotationDeg)
    rotation = np.array([
        [math.cos(angle), -math.sin(angle)],
        [math.sin(angle), math.cos(angle)],
    ])
    moving = fixed @ rotation.T

    return PointSetScenario(
        name='square',
        fixedPointSet=PointSet(fixed),
        movingPointSet=PointSet(moving),
        pairedPoints=True,
        description=f'4 corners, size {s:g}, rotated {config.rotationDeg:g} deg',
    )


######################################################################
# -- Verification -- #
######################################################################

def computePairResiduals(
    scenario: PointSetScenario,
    transform: Transform,
    fixedTransform: Transform | None = None,
) -> np.ndarray:
    '''
    Residual of every fixed/moving pair after registration.

    The fixed point (through the fixed transform, if any) is mapped
    back into the moving space with the inverse of the registered
    transform and compared to its moving partner:

        r_n = T^-1(F(f_n)) - m_n

    Parameters:
    -----------
    scenario : PointSetScenario
        Paired scenario
    transform : Transform
        Registered moving transform
    fixedTransform : Transform | None
        Fixed-side transform used during registration

    Returns:
    --------
    np.ndarray : Residuals, shape (N, dim)

    Raises:
    -------
    ValueError : If the scenario is unpaired or the transform has no inverse
    '''
    if not scenario.pairedPoints:
        raise ValueError(f'Scenario {scenario.name} has no point correspondences')
    if scenario.fixedPointSet.numberOfPoints != scenario.movingPointSet.numberOfPoints:
        raise ValueError('Paired scenarios need equally sized point sets')

    inverse = transform.getInverseTransform()
    if inverse is None:
        raise ValueError('Registered transform is not invertible')

    fixed = scenario.fixedPointSet.points
    if fixedTransform is not None:
        fixed = fixedTransform.transformPoints(fixed)

    return inverse.transformPoints(fixed) - scenario.movingPointSet.points
