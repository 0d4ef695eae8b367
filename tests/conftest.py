"""Shared fakes for burst tests"""

from collections import namedtuple

import pytest

from burst.core.scheduler import ManualScheduler
from burst.core.styles import reset_styles
from burst.core.surface import DrawingSurface


DrawCall = namedtuple('DrawCall', ['op', 'args'])


class RecordingSurface(DrawingSurface):
    """Surface that records every call instead of drawing"""

    def __init__(self, width=200.0, height=200.0):
        self._width = float(width)
        self._height = float(height)
        self.calls = []

    @property
    def width(self):
        return self._width

    @property
    def height(self):
        return self._height

    def resize(self, width, height):
        self._width = float(width)
        self._height = float(height)

    def clear(self, rect=None):
        self.calls.append(DrawCall('clear', {'rect': rect}))

    def fill_rect(self, cx, cy, size, rotation, color, alpha):
        self.calls.append(DrawCall('fill_rect', dict(
            cx=cx, cy=cy, size=size, rotation=rotation, color=color, alpha=alpha)))

    def fill_circle(self, cx, cy, radius, color, alpha):
        self.calls.append(DrawCall('fill_circle', dict(
            cx=cx, cy=cy, radius=radius, color=color, alpha=alpha)))

    def stroke_circle(self, cx, cy, radius, color, alpha, width=1.0):
        self.calls.append(DrawCall('stroke_circle', dict(
            cx=cx, cy=cy, radius=radius, color=color, alpha=alpha, width=width)))

    def draws(self, since=0):
        return [c for c in self.calls[since:] if c.op != 'clear']


class LeakyScheduler(ManualScheduler):
    """Ignores cancellation, so callbacks queued before a cancel still fire"""

    def __init__(self):
        super().__init__()
        self.cancelled = []

    def cancel_frame(self, handle):
        self.cancelled.append(handle)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class ScriptedRng:
    """
    Stand-in for numpy's Generator: uniform() returns a fixed fraction of the
    range, random() cycles through a script.
    """

    def __init__(self, randoms=(0.5,), uniform_at=0.5):
        self.randoms = list(randoms)
        self.uniform_at = uniform_at
        self.calls = 0

    def random(self):
        value = self.randoms[self.calls % len(self.randoms)]
        self.calls += 1
        return value

    def uniform(self, low, high):
        return low + (high - low) * self.uniform_at


@pytest.fixture(autouse=True)
def _reset_style_registry():
    yield
    reset_styles()


@pytest.fixture
def surface():
    return RecordingSurface(200, 200)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock(0.0)
