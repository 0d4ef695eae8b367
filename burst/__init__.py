"""
Particle Burst - Short particle burst animations for interactive launchers
"""

from pathlib import Path
from typing import Optional, Tuple, Union

from .core import (
    BurstStyle, BurstKind, UnknownStyleError, get_style,
    Particle, create_burst,
    ManualScheduler, RasterSurface,
    BurstLoop, LoopConfig,
    ExportConfig, render_burst, BurstExporter,
)

__version__ = "0.1.0"
__all__ = [
    'BurstStyle',
    'BurstKind',
    'UnknownStyleError',
    'get_style',
    'Particle',
    'create_burst',
    'ManualScheduler',
    'RasterSurface',
    'BurstLoop',
    'LoopConfig',
    'ExportConfig',
    'render_burst',
    'BurstExporter',
    'export',
]


def export(
    style: Union[BurstStyle, BurstKind, str],
    output_path: Optional[Union[str, Path]] = None,
    format: str = 'gif',
    config: Optional[ExportConfig] = None,
    origin: Optional[Tuple[float, float]] = None,
) -> Path:
    """
    Render a burst and write it to disk.

    Args:
        style: Style, kind or style name
        output_path: Output path (auto-generated if None)
        format: Output format ('gif', 'spritesheet', 'frames')
        config: Canvas and timing settings
        origin: Emission point (default: canvas centre)

    Returns:
        Path to the output file or directory
    """
    if format not in ('gif', 'spritesheet', 'frames'):
        raise ValueError(f"Unknown format: {format}")

    config = config or ExportConfig()
    style = get_style(style)

    if output_path is None:
        if format == 'gif':
            output_path = f"{style.name}_burst.gif"
        elif format == 'spritesheet':
            output_path = f"{style.name}_burst_sheet.png"
        else:
            output_path = f"{style.name}_burst_frames"

    frames = render_burst(style, config, origin=origin)

    fps = config.fps / config.frame_step
    if format == 'gif':
        return BurstExporter.to_gif(frames, output_path, fps=fps)
    elif format == 'spritesheet':
        path, _ = BurstExporter.to_spritesheet(frames, output_path, fps=fps)
        return path
    else:
        BurstExporter.to_frames(frames, output_path, prefix=style.name)
        return Path(output_path)
