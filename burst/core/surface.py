"""
Drawing Surfaces

The loop only talks to a DrawingSurface: clear it, draw rotated squares,
draw filled or stroked circles. All coordinates are logical (surface-local)
units; a surface with a pixel ratio above 1 scales them to device pixels
internally, so resizing or changing density never touches particle state.

RasterSurface is an offscreen RGB canvas drawn with Pillow and readable as a
numpy array, used for export and for headless runs.
"""

import math
import numpy as np
from abc import ABC, abstractmethod
from typing import Optional, Tuple
from PIL import Image, ImageDraw

Color = Tuple[int, int, int]
Rect = Tuple[float, float, float, float]  # (x, y, w, h)


def rgba(color: Color, alpha: float) -> Tuple[int, int, int, int]:
    """RGB tuple + opacity in [0, 1] -> RGBA tuple 0-255"""
    alpha = min(max(alpha, 0.0), 1.0)
    return (int(color[0]), int(color[1]), int(color[2]), int(round(alpha * 255)))


def square_corners(cx: float, cy: float, size: float, rotation: float):
    """Corners of a square of side `size` centred on (cx, cy), rotated by `rotation`"""
    half = size / 2.0
    cos_r = math.cos(rotation)
    sin_r = math.sin(rotation)
    corners = []
    for dx, dy in ((-half, -half), (half, -half), (half, half), (-half, half)):
        corners.append((cx + dx * cos_r - dy * sin_r, cy + dx * sin_r + dy * cos_r))
    return corners


class DrawingSurface(ABC):
    """Canvas-like 2D drawing contract consumed by the burst loop"""

    @property
    @abstractmethod
    def width(self) -> float:
        """Logical width"""
        pass

    @property
    @abstractmethod
    def height(self) -> float:
        """Logical height"""
        pass

    @property
    def center(self) -> Tuple[float, float]:
        return (self.width / 2.0, self.height / 2.0)

    @abstractmethod
    def clear(self, rect: Optional[Rect] = None) -> None:
        """Clear the whole surface, or just `rect`"""
        pass

    @abstractmethod
    def fill_rect(self, cx: float, cy: float, size: float, rotation: float,
                  color: Color, alpha: float) -> None:
        """Fill a square centred on (cx, cy) in a frame rotated by `rotation` radians"""
        pass

    @abstractmethod
    def fill_circle(self, cx: float, cy: float, radius: float,
                    color: Color, alpha: float) -> None:
        pass

    @abstractmethod
    def stroke_circle(self, cx: float, cy: float, radius: float,
                      color: Color, alpha: float, width: float = 1.0) -> None:
        pass

    @abstractmethod
    def resize(self, width: float, height: float) -> None:
        """Change the logical size; drawn content may be discarded"""
        pass


class RasterSurface(DrawingSurface):
    """
    Offscreen RGB canvas.

    Example:
        surface = RasterSurface(400, 300, pixel_ratio=2.0)
        surface.fill_circle(200, 150, 4, (255, 90, 165), 0.5)
        pixels = surface.to_array()   # (600, 800, 3) uint8
    """

    def __init__(
        self,
        width: float,
        height: float,
        pixel_ratio: float = 1.0,
        background: Color = (0, 0, 0)
    ):
        if pixel_ratio <= 0:
            raise ValueError(f"pixel_ratio must be positive, got {pixel_ratio}")

        self._width = float(width)
        self._height = float(height)
        self.pixel_ratio = float(pixel_ratio)
        self.background = tuple(background)
        self._allocate()

    def _allocate(self):
        """(Re)create the backing image at device resolution"""
        pw = max(1, int(math.floor(self._width * self.pixel_ratio)))
        ph = max(1, int(math.floor(self._height * self.pixel_ratio)))
        self.image = Image.new('RGB', (pw, ph), self.background)
        # RGBA ink on an RGB image blends with the existing pixels
        self._draw = ImageDraw.Draw(self.image, 'RGBA')

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def pixel_size(self) -> Tuple[int, int]:
        return self.image.size

    def resize(self, width: float, height: float, pixel_ratio: Optional[float] = None) -> None:
        self._width = float(width)
        self._height = float(height)
        if pixel_ratio is not None:
            if pixel_ratio <= 0:
                raise ValueError(f"pixel_ratio must be positive, got {pixel_ratio}")
            self.pixel_ratio = float(pixel_ratio)
        self._allocate()

    def clear(self, rect: Optional[Rect] = None) -> None:
        if rect is None:
            self._draw.rectangle((0, 0, self.image.width, self.image.height), fill=self.background)
            return

        x, y, w, h = rect
        s = self.pixel_ratio
        self._draw.rectangle((x * s, y * s, (x + w) * s, (y + h) * s), fill=self.background)

    def fill_rect(self, cx, cy, size, rotation, color, alpha):
        s = self.pixel_ratio
        points = [(px * s, py * s) for px, py in square_corners(cx, cy, size, rotation)]
        self._draw.polygon(points, fill=rgba(color, alpha))

    def fill_circle(self, cx, cy, radius, color, alpha):
        self._draw.ellipse(self._circle_box(cx, cy, radius), fill=rgba(color, alpha))

    def stroke_circle(self, cx, cy, radius, color, alpha, width=1.0):
        line = max(1, int(round(width * self.pixel_ratio)))
        self._draw.ellipse(self._circle_box(cx, cy, radius), outline=rgba(color, alpha), width=line)

    def _circle_box(self, cx, cy, radius):
        s = self.pixel_ratio
        r = max(radius, 0.0) * s
        return (cx * s - r, cy * s - r, cx * s + r, cy * s + r)

    def to_image(self) -> Image.Image:
        return self.image.copy()

    def to_array(self) -> np.ndarray:
        """Current pixels as an (H, W, 3) uint8 array"""
        return np.array(self.image, dtype=np.uint8)
