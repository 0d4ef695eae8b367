"""
Burst Exporter - Renders a whole burst offscreen and writes it out

render_burst() drives a BurstLoop on a RasterSurface with a ManualScheduler
ticking at a fixed frame rate, collecting one RGB frame per rendered frame.
BurstExporter writes the frames as an animated GIF, a numbered PNG sequence
or a spritesheet with JSON metadata.
"""

import json
import logging
import numpy as np
from PIL import Image
from pathlib import Path
from typing import List, Optional, Tuple, Union
from dataclasses import dataclass

from .loop import BurstLoop, LoopConfig, StyleLike
from .scheduler import ManualScheduler
from .surface import RasterSurface

logger = logging.getLogger(__name__)


@dataclass
class ExportConfig:
    """Offscreen rendering settings"""
    width: int = 400
    height: int = 300
    fps: float = 60.0
    pixel_ratio: float = 1.0
    background: Tuple[int, int, int] = (16, 16, 20)
    max_frames: int = 600
    seed: Optional[int] = None
    frame_step: int = 1             # keep every n-th rendered frame

    def validate(self) -> 'ExportConfig':
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Canvas size must be positive, got {self.width}x{self.height}")
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")
        if self.max_frames <= 0:
            raise ValueError(f"max_frames must be positive, got {self.max_frames}")
        if self.frame_step < 1:
            raise ValueError(f"frame_step must be >= 1, got {self.frame_step}")
        return self


def render_burst(
    style: StyleLike,
    config: Optional[ExportConfig] = None,
    origin: Optional[Tuple[float, float]] = None,
    rng: Optional[np.random.Generator] = None,
    loop_config: Optional[LoopConfig] = None
) -> List[np.ndarray]:
    """
    Simulate one burst from activation to fade-out.

    Args:
        style: Style, kind or style name
        config: Canvas and timing settings
        origin: Emission point (default: canvas centre)
        rng: Random source (default: seeded from config.seed)
        loop_config: Loop timing settings

    Returns:
        List of (H, W, 3) uint8 frames, starting with the dt = 0 frame
    """
    config = (config or ExportConfig()).validate()
    if rng is None:
        rng = np.random.default_rng(config.seed)

    surface = RasterSurface(config.width, config.height, config.pixel_ratio, config.background)
    scheduler = ManualScheduler()

    # Activation happens at t = 0 on the scheduler's timebase
    loop = BurstLoop(scheduler, surface, config=loop_config, rng=rng, clock=lambda: 0.0)
    loop.activate(style, origin)

    frames: List[np.ndarray] = []
    rendered = [0]

    def capture(index: int, timestamp: float):
        # The frame that empties the burst is blank, only keep live frames
        if not loop.is_running:
            return
        if rendered[0] % config.frame_step == 0:
            frames.append(surface.to_array())
        rendered[0] += 1

    ticks = scheduler.run(fps=config.fps, max_frames=config.max_frames, start=0.0, on_tick=capture)

    if loop.is_running:
        logger.warning("Burst still running after %d frames, truncating", ticks)
        loop.deactivate()

    logger.debug("Rendered %d frames (%d kept)", ticks, len(frames))
    return frames


def _to_image(frame: np.ndarray) -> Image.Image:
    # (H, W, 3) -> RGB, (H, W, 4) -> RGBA
    return Image.fromarray(np.ascontiguousarray(frame, dtype=np.uint8))


class BurstExporter:
    """Writes rendered bursts to disk"""

    @classmethod
    def to_gif(
        cls,
        frames: List[np.ndarray],
        path: Union[str, Path],
        fps: float = 60.0,
        loop: int = 0
    ) -> Path:
        """Export frames to an animated GIF"""
        if not frames:
            raise ValueError("No frames to export")

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        duration = max(10, int(round(1000.0 / fps)))
        images = [
            _to_image(frame).convert('RGB').convert('P', palette=Image.Palette.ADAPTIVE, colors=255)
            for frame in frames
        ]

        images[0].save(
            path,
            save_all=True,
            append_images=images[1:],
            duration=duration,
            loop=loop,
        )
        return path

    @classmethod
    def to_frames(
        cls,
        frames: List[np.ndarray],
        directory: Union[str, Path],
        prefix: str = "burst"
    ) -> List[Path]:
        """Export frames as individual PNGs"""
        if not frames:
            raise ValueError("No frames to export")

        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        paths = [directory / f"{prefix}_{i:04d}.png" for i in range(len(frames))]
        for frame, frame_path in zip(frames, paths):
            _to_image(frame).save(frame_path, 'PNG')
        return paths

    @classmethod
    def to_spritesheet(
        cls,
        frames: List[np.ndarray],
        path: Union[str, Path],
        columns: Optional[int] = None,
        padding: int = 0,
        fps: float = 60.0
    ) -> Tuple[Path, dict]:
        """
        Pack frames row by row into one PNG.

        A JSON sidecar next to the image lists the grid and the pixel rect of
        every frame, in playback order.
        """
        if not frames:
            raise ValueError("No frames to export")

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        images = [_to_image(frame) for frame in frames]
        cell_w, cell_h = images[0].size
        columns = columns or min(len(images), 8)
        rows = -(-len(images) // columns)
        pitch_x, pitch_y = cell_w + padding, cell_h + padding

        sheet = Image.new(images[0].mode, (columns * pitch_x - padding, rows * pitch_y - padding))
        cells = []
        for index, image in enumerate(images):
            row, col = divmod(index, columns)
            sheet.paste(image, (col * pitch_x, row * pitch_y))
            cells.append({'x': col * pitch_x, 'y': row * pitch_y, 'w': cell_w, 'h': cell_h})
        sheet.save(path, 'PNG')

        metadata = {
            'image': path.name,
            'fps': fps,
            'columns': columns,
            'rows': rows,
            'padding': padding,
            'size': [sheet.width, sheet.height],
            'frames': cells,
        }
        path.with_suffix('.json').write_text(json.dumps(metadata, indent=2))

        return path, metadata
