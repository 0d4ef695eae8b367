"""
Particle Burst - Core
"""

from .styles import (
    # Style data
    BurstStyle, BurstKind, ShapePolicy, UnknownStyleError,
    # Built-ins
    GAME_STYLE, MEDIA_STYLE, STYLES,
    # Lookup
    get_style, register_style, reset_styles,
    # YAML
    load_style_file, StyleManager,
    # Colours
    parse_color, color_to_hex,
)
from .particles import (
    Particle, ShapeVariant, create_burst,
)
from .scheduler import (
    FrameScheduler, ManualScheduler,
)
from .surface import (
    DrawingSurface, RasterSurface,
)
from .loop import (
    # Config
    LoopConfig, LoopState,
    # Per-particle steps
    integrate, draw_particle, pick_color_pair,
    # Loop
    BurstLoop,
)
from .exporter import (
    ExportConfig, render_burst, BurstExporter,
)
from .preview import (
    PreviewConfig, PreviewWindow, PygameSurface,
    preview_bursts, check_pygame_available,
)

__all__ = [
    # Styles
    'BurstStyle', 'BurstKind', 'ShapePolicy', 'UnknownStyleError',
    'GAME_STYLE', 'MEDIA_STYLE', 'STYLES',
    'get_style', 'register_style', 'reset_styles',
    'load_style_file', 'StyleManager',
    'parse_color', 'color_to_hex',
    # Particles
    'Particle', 'ShapeVariant', 'create_burst',
    # Scheduling
    'FrameScheduler', 'ManualScheduler',
    # Surfaces
    'DrawingSurface', 'RasterSurface',
    # Loop
    'LoopConfig', 'LoopState',
    'integrate', 'draw_particle', 'pick_color_pair',
    'BurstLoop',
    # Export
    'ExportConfig', 'render_burst', 'BurstExporter',
    # Preview
    'PreviewConfig', 'PreviewWindow', 'PygameSurface',
    'preview_bursts', 'check_pygame_available',
]
