"""
Particle Factory

Builds the initial particle set of a burst from a style and an origin.

Particles are emitted from a single point inside an upward cone: angles are
measured with 0 along +x and -pi/2 pointing up, so the default range
[-0.9pi, -0.1pi] sprays mostly upward with some sideways spread. Every
particle also gets a little random jitter on top of its cone velocity.
"""

import math
import numpy as np
from typing import List, Optional, Union
from dataclasses import dataclass
from enum import Enum

from .styles import BurstStyle, BurstKind, get_style


class ShapeVariant(Enum):
    """Decided once per particle at spawn"""
    FILLED = "filled"
    HOLLOW = "hollow"


@dataclass
class Particle:
    """Individual particle state, in surface-local units"""
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0

    life: float = 1.0           # 1 = just spawned, 0 = dead

    size: float = 1.0
    rotation: float = 0.0
    angular_velocity: float = 0.0
    shape: ShapeVariant = ShapeVariant.FILLED

    @property
    def alive(self) -> bool:
        return self.life > 0.0

    @property
    def hollow(self) -> bool:
        return self.shape == ShapeVariant.HOLLOW


def _uniform(rng: np.random.Generator, bounds) -> float:
    low, high = bounds
    return float(rng.uniform(low, high))


def create_burst(
    style: Union[BurstStyle, BurstKind, str],
    origin_x: float,
    origin_y: float,
    rng: Optional[np.random.Generator] = None
) -> List[Particle]:
    """
    Create the particles of one burst.

    Args:
        style: Style, kind or style name ('game', 'media', ...)
        origin_x, origin_y: Emission point in surface-local coordinates
        rng: Random source (a fresh default_rng() if omitted)

    Returns:
        Ordered list of freshly spawned particles (life = 1)

    Raises:
        UnknownStyleError: if the style is not recognized
    """
    style = get_style(style)
    if rng is None:
        rng = np.random.default_rng()

    jitter_x, jitter_y = style.jitter
    particles = []

    for _ in range(style.count):
        angle = _uniform(rng, style.angle_range)
        speed = _uniform(rng, style.speed_range)

        vx = math.cos(angle) * speed + _uniform(rng, (-jitter_x, jitter_x))
        vy = math.sin(angle) * speed + _uniform(rng, (-jitter_y, jitter_y))

        size = _uniform(rng, style.size_range)
        rotation = _uniform(rng, (0.0, 2 * math.pi))
        angular_velocity = _uniform(rng, style.spin_range)

        shape = ShapeVariant.FILLED
        if style.hollow_chance > 0 and float(rng.random()) < style.hollow_chance:
            shape = ShapeVariant.HOLLOW

        particles.append(Particle(
            x=float(origin_x),
            y=float(origin_y),
            vx=vx,
            vy=vy,
            life=1.0,
            size=size,
            rotation=rotation,
            angular_velocity=angular_velocity,
            shape=shape,
        ))

    return particles
