"""
Burst Simulation Loop

Owns one burst per drawing surface and advances it once per frame until every
particle has faded out, then stops asking for frames.

States:
    IDLE    - no burst
    RUNNING - burst active, frame requested

Each frame:
    1. dt = time since the previous frame, clamped to [0, max_dt]
    2. clear the surface
    3. integrate every particle (gravity, drag, motion, spin, fade)
    4. draw the particles that are still alive, opacity = life
    5. drop dead particles
    6. request the next frame, or go idle when nothing is left

Drag is a per-frame factor at a 60 fps reference, raised to dt * 60 so the
result does not depend on the real frame rate.

Every frame request carries the generation it was made under. Activating,
deactivating or detaching bumps the generation, so a callback that was
already queued for an older burst finds a mismatch and is dropped.
"""

import functools
import logging
import time
import numpy as np
from typing import Callable, List, Optional, Tuple, Union
from dataclasses import dataclass
from enum import Enum

from .particles import Particle, create_burst
from .scheduler import FrameScheduler
from .styles import BurstKind, BurstStyle, ShapePolicy, get_style
from .surface import DrawingSurface

logger = logging.getLogger(__name__)

StyleLike = Union[BurstStyle, BurstKind, str]
Factory = Callable[[BurstStyle, float, float, np.random.Generator], List[Particle]]


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class LoopConfig:
    """Timing configuration for the loop"""
    max_dt: float = 0.033           # seconds; caps the step after stalls
    reference_fps: float = 60.0     # frame rate the drag factor is defined at

    def validate(self) -> 'LoopConfig':
        if self.max_dt <= 0:
            raise ValueError(f"max_dt must be positive, got {self.max_dt}")
        if self.reference_fps <= 0:
            raise ValueError(f"reference_fps must be positive, got {self.reference_fps}")
        return self


class LoopState(Enum):
    IDLE = "idle"
    RUNNING = "running"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# =============================================================================
# Physics and drawing
# =============================================================================

def integrate(particle: Particle, style: BurstStyle, dt: float, reference_fps: float = 60.0) -> None:
    """Advance one particle by dt seconds in place"""
    particle.vy += style.gravity * dt

    drag = style.drag ** (dt * reference_fps)
    particle.vx *= drag
    particle.vy *= drag

    particle.x += particle.vx * dt
    particle.y += particle.vy * dt

    particle.rotation += particle.angular_velocity * dt

    particle.life = clamp(particle.life - style.fade_rate * dt, 0.0, 1.0)


def pick_color_pair(style: BurstStyle, rng: np.random.Generator):
    """Uniform choice of a (fill, stroke) pair; two pairs means a 50/50 hot/cool draw"""
    pairs = style.color_pairs
    if len(pairs) == 1:
        return pairs[0]
    index = min(int(float(rng.random()) * len(pairs)), len(pairs) - 1)
    return pairs[index]


def draw_particle(
    surface: DrawingSurface,
    particle: Particle,
    style: BurstStyle,
    rng: np.random.Generator
) -> None:
    """Draw one live particle using the style's shape rule; dead ones are skipped"""
    if not particle.alive:
        return

    alpha = particle.life

    if style.shape_policy == ShapePolicy.SQUARE:
        surface.fill_rect(particle.x, particle.y, particle.size, particle.rotation,
                          style.fill_color, alpha)
        return

    # Colour is re-rolled every frame, not fixed at spawn
    fill, stroke = pick_color_pair(style, rng)
    radius = particle.size / 2.0

    if particle.hollow:
        surface.stroke_circle(particle.x, particle.y, radius, stroke, alpha, style.stroke_width)
    else:
        surface.fill_circle(particle.x, particle.y, radius, fill, alpha)


# =============================================================================
# Loop
# =============================================================================

class BurstLoop:
    """
    Frame-driven burst simulation for a single surface.

    Example:
        scheduler = ManualScheduler()
        loop = BurstLoop(scheduler, RasterSurface(400, 300))
        loop.activate('media')
        scheduler.run(fps=60)
        assert not loop.is_running
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        surface: Optional[DrawingSurface] = None,
        config: Optional[LoopConfig] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], float]] = None,
        factory: Factory = create_burst,
        on_complete: Optional[Callable[[BurstStyle], None]] = None
    ):
        """
        Args:
            scheduler: Frame scheduler the loop re-registers with every frame
            surface: Drawing surface (may be attached later)
            config: Timing configuration
            rng: Random source shared by the factory and the renderer
            clock: Returns the current time in seconds, same timebase as the
                scheduler's timestamps (default: time.perf_counter)
            factory: Builds the particle list for a burst
            on_complete: Called with the style when a burst fades out on its own
        """
        self.scheduler = scheduler
        self.config = (config or LoopConfig()).validate()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or time.perf_counter
        self.factory = factory
        self.on_complete = on_complete

        self._surface = surface
        self._state = LoopState.IDLE
        self._style: Optional[BurstStyle] = None
        self._particles: List[Particle] = []
        self._last_time = 0.0
        self._handle: Optional[int] = None
        self._generation = 0
        self._signal: Tuple[bool, BurstKind] = (False, BurstKind.NONE)

        self.frames_rendered = 0

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LoopState.RUNNING

    @property
    def style(self) -> Optional[BurstStyle]:
        return self._style

    @property
    def particles(self) -> Tuple[Particle, ...]:
        return tuple(self._particles)

    @property
    def particle_count(self) -> int:
        return len(self._particles)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def surface(self) -> Optional[DrawingSurface]:
        return self._surface

    # -------------------------------------------------------------------------
    # Surface lifecycle
    # -------------------------------------------------------------------------

    def attach(self, surface: DrawingSurface) -> None:
        """Attach a surface, cancelling any burst drawn on a previous one"""
        if self._surface is not None and self._surface is not surface:
            self.deactivate()
        self._surface = surface

    def detach(self) -> None:
        """Cancel everything and forget the surface; the loop no-ops until reattached"""
        self.deactivate()
        self._surface = None

    # -------------------------------------------------------------------------
    # Activation
    # -------------------------------------------------------------------------

    def activate(self, style: StyleLike, origin: Optional[Tuple[float, float]] = None) -> bool:
        """
        Start a burst, replacing any burst already running.

        Args:
            style: Style, kind or style name
            origin: Emission point (default: surface centre)

        Returns:
            True if a burst started, False if no surface is attached

        Raises:
            UnknownStyleError: if the style is not recognized
        """
        style = get_style(style)
        self._cancel()

        if self._surface is None:
            logger.debug("No surface attached, ignoring '%s' activation", style.name)
            return False

        if origin is None:
            origin = self._surface.center
        ox, oy = origin

        self._particles = list(self.factory(style, ox, oy, self.rng))
        self._style = style
        self._state = LoopState.RUNNING
        self._last_time = self.clock()
        self.frames_rendered = 0

        logger.debug(
            "Burst '%s' started: %d particles at (%.1f, %.1f), generation %d",
            style.name, len(self._particles), ox, oy, self._generation
        )

        self._request_next()
        return True

    def deactivate(self) -> bool:
        """
        Cancel the running burst and leave the surface cleared.

        Returns:
            True if a burst was running
        """
        was_running = self.is_running
        self._cancel()

        if self._surface is not None:
            self._surface.clear()

        if was_running:
            logger.debug("Burst cancelled, generation now %d", self._generation)
        return was_running

    def update_signal(
        self,
        active: bool,
        kind: Union[BurstKind, str, None],
        origin: Optional[Tuple[float, float]] = None
    ) -> None:
        """
        Observe the caller's (active, kind) pair and react to transitions.

        inactive -> active with a style starts a burst, a different style while
        active replaces it, and active -> inactive (or kind 'none') cancels.
        """
        kind = BurstKind.parse(kind)
        now_on = bool(active) and kind is not BurstKind.NONE
        was_on, was_kind = self._signal
        self._signal = (now_on, kind)

        if now_on and (not was_on or kind is not was_kind):
            self.activate(kind, origin)
        elif was_on and not now_on:
            self.deactivate()

    # -------------------------------------------------------------------------
    # Frames
    # -------------------------------------------------------------------------

    def step(self, dt: float) -> bool:
        """
        Advance the running burst by an explicit dt (clamped like a frame).

        Returns:
            True if the burst is still running afterwards
        """
        if not self.is_running or self._surface is None:
            return False

        dt = clamp(dt, 0.0, self.config.max_dt)
        self._last_time += dt
        self._advance(dt)

        if not self._particles:
            self._complete()
        return self.is_running

    def _request_next(self):
        callback = functools.partial(self._on_frame, self._generation)
        self._handle = self.scheduler.request_frame(callback)

    def _on_frame(self, generation: int, timestamp: float) -> None:
        if generation != self._generation or not self.is_running:
            logger.debug("Dropping stale frame (generation %d, current %d)", generation, self._generation)
            return

        self._handle = None

        if self._surface is None:
            logger.debug("Surface gone, stopping burst")
            self._cancel()
            return

        dt = clamp(timestamp - self._last_time, 0.0, self.config.max_dt)
        self._last_time = timestamp
        self._advance(dt)

        if self._particles:
            self._request_next()
        else:
            self._complete()

    def _advance(self, dt: float) -> None:
        surface = self._surface
        style = self._style

        surface.clear()

        for p in self._particles:
            integrate(p, style, dt, self.config.reference_fps)
            if p.alive:
                draw_particle(surface, p, style, self.rng)

        self._particles = [p for p in self._particles if p.alive]
        self.frames_rendered += 1

    def _complete(self) -> None:
        style = self._style
        frames = self.frames_rendered

        self._cancel()
        if self._surface is not None:
            self._surface.clear()

        logger.info("Burst '%s' finished after %d frames", style.name, frames)
        if self.on_complete is not None:
            self.on_complete(style)

    def _cancel(self) -> None:
        if self._handle is not None:
            self.scheduler.cancel_frame(self._handle)
            self._handle = None

        self._generation += 1
        self._particles = []
        self._style = None
        self._state = LoopState.IDLE
