"""
Burst Styles - Parameter bundles for each kind of particle burst

A style is resolved once when a burst starts and never changes mid-burst.
Two built-in styles ship with the package:

- game:  white rotating squares, heavier gravity, faster fade
- media: pink circles, some of them hollow, colour re-rolled every frame

User styles can be added as YAML files and override built-ins by name.
"""

import copy
import logging
import math
import yaml
from pathlib import Path
from typing import Dict, List, Optional, Any, Tuple, Union
from dataclasses import dataclass, field, asdict
from enum import Enum


logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]


class UnknownStyleError(ValueError):
    """Raised when a burst is requested with a style nobody registered"""


class BurstKind(Enum):
    """Activation selector observed by the loop"""
    NONE = "none"
    GAME = "game"
    MEDIA = "media"

    @classmethod
    def parse(cls, value: Union['BurstKind', str, None]) -> 'BurstKind':
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnknownStyleError(
                f"Unknown burst kind '{value}'. Available: {[k.value for k in cls]}"
            ) from None


class ShapePolicy(Enum):
    """How live particles are drawn"""
    SQUARE = "square"   # rotated filled square, side = size
    CIRCLE = "circle"   # circle of radius size / 2, filled or stroked


# =============================================================================
# Colour helpers
# =============================================================================

def parse_color(value: Union[str, List[int], Tuple[int, ...]]) -> Color:
    """
    Parse '#rrggbb', '#rgb', 'r,g,b' or a sequence into an RGB tuple.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.startswith('#'):
            text = text[1:]
            if len(text) == 3:
                text = ''.join(c * 2 for c in text)
            if len(text) != 6:
                raise ValueError(f"Invalid hex colour: {value!r}")
            return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
        parts = [p for p in text.split(',') if p.strip()]
        if len(parts) != 3:
            raise ValueError(f"Invalid colour: {value!r}")
        return tuple(int(p) for p in parts)

    if len(value) < 3:
        raise ValueError(f"Invalid colour: {value!r}")
    return (int(value[0]), int(value[1]), int(value[2]))


def color_to_hex(color: Color) -> str:
    return '#{:02x}{:02x}{:02x}'.format(*color)


# =============================================================================
# Style data structure
# =============================================================================

@dataclass
class BurstStyle:
    """Everything the factory and the loop need to know about one burst kind"""

    name: str
    description: str = ""

    # Spawn
    count: int = 50
    speed_range: Tuple[float, float] = (120.0, 300.0)
    size_range: Tuple[float, float] = (3.0, 9.0)
    angle_range: Tuple[float, float] = (-math.pi * 0.9, -math.pi * 0.1)  # 0 = +x, -pi/2 = up
    jitter: Tuple[float, float] = (60.0, 40.0)                           # +/- horizontal, vertical
    spin_range: Tuple[float, float] = (-6.0, 6.0)                        # rad/s
    hollow_chance: float = 0.0

    # Physics
    gravity: float = 480.0      # units/s^2, +y is down
    drag: float = 0.87          # velocity kept per 1/60 s
    fade_rate: float = 1.25     # life units per second

    # Look
    shape_policy: ShapePolicy = ShapePolicy.SQUARE
    fill_color: Color = (255, 255, 255)
    color_pairs: List[Tuple[Color, Color]] = field(default_factory=list)  # (fill, stroke)
    stroke_width: float = 2.0

    tags: List[str] = field(default_factory=list)

    def validate(self) -> 'BurstStyle':
        """Raise ValueError if the bundle cannot produce a sane burst"""
        if self.count < 0:
            raise ValueError(f"Style '{self.name}': count must be >= 0, got {self.count}")
        for label in ('speed_range', 'size_range', 'angle_range', 'spin_range'):
            low, high = getattr(self, label)
            if low > high:
                raise ValueError(f"Style '{self.name}': {label} is reversed ({low} > {high})")
        if self.size_range[0] < 0:
            raise ValueError(f"Style '{self.name}': size_range must be non-negative")
        if not 0.0 < self.drag <= 1.0:
            raise ValueError(f"Style '{self.name}': drag must be in (0, 1], got {self.drag}")
        if self.fade_rate <= 0:
            raise ValueError(f"Style '{self.name}': fade_rate must be positive")
        if not 0.0 <= self.hollow_chance <= 1.0:
            raise ValueError(f"Style '{self.name}': hollow_chance must be in [0, 1]")
        if self.shape_policy == ShapePolicy.CIRCLE and not self.color_pairs:
            raise ValueError(f"Style '{self.name}': circle styles need at least one colour pair")
        if not isinstance(self.tags, list) or not all(isinstance(t, str) for t in self.tags):
            raise ValueError(f"Style '{self.name}': tags must be a list of strings, got {self.tags!r}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain types for YAML serialization"""
        data = asdict(self)
        data['speed_range'] = list(self.speed_range)
        data['size_range'] = list(self.size_range)
        data['angle_range'] = list(self.angle_range)
        data['jitter'] = list(self.jitter)
        data['spin_range'] = list(self.spin_range)
        data['shape_policy'] = self.shape_policy.value
        data['fill_color'] = color_to_hex(self.fill_color)
        data['color_pairs'] = [
            [color_to_hex(fill), color_to_hex(stroke)] for fill, stroke in self.color_pairs
        ]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BurstStyle':
        """Create from dictionary, accepting hex colours and plain lists"""
        data = dict(data)

        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}

        for key in ('speed_range', 'size_range', 'angle_range', 'jitter', 'spin_range'):
            if key in filtered:
                low, high = filtered[key]
                filtered[key] = (float(low), float(high))

        if 'shape_policy' in filtered and not isinstance(filtered['shape_policy'], ShapePolicy):
            filtered['shape_policy'] = ShapePolicy(str(filtered['shape_policy']).lower())

        if 'fill_color' in filtered:
            filtered['fill_color'] = parse_color(filtered['fill_color'])

        if 'color_pairs' in filtered:
            filtered['color_pairs'] = [
                (parse_color(fill), parse_color(stroke))
                for fill, stroke in filtered['color_pairs']
            ]

        return cls(**filtered).validate()


# =============================================================================
# Built-in styles
# =============================================================================

HOT_PINK = (0xd1, 0x0b, 0x66)
SOFT_PINK = (0xff, 0x5a, 0xa5)

GAME_STYLE = BurstStyle(
    name="game",
    description="White pixel cubes that spin and fall",
    count=55,
    speed_range=(140.0, 360.0),
    size_range=(4.0, 10.0),
    gravity=520.0,
    drag=0.86,
    fade_rate=1.35,
    hollow_chance=0.0,
    shape_policy=ShapePolicy.SQUARE,
    fill_color=(255, 255, 255),
    tags=["game", "pixel"],
)

MEDIA_STYLE = BurstStyle(
    name="media",
    description="Pink and magenta circles, some hollow",
    count=45,
    speed_range=(110.0, 280.0),
    size_range=(3.0, 9.0),
    gravity=420.0,
    drag=0.88,
    fade_rate=1.2,
    hollow_chance=0.35,
    shape_policy=ShapePolicy.CIRCLE,
    color_pairs=[
        (HOT_PINK, SOFT_PINK),   # hot
        (SOFT_PINK, HOT_PINK),   # cool
    ],
    stroke_width=2.0,
    tags=["media", "circles"],
)

STYLES: Dict[str, BurstStyle] = {
    GAME_STYLE.name: GAME_STYLE,
    MEDIA_STYLE.name: MEDIA_STYLE,
}

# Resolvable by name: built-ins plus anything registered at runtime
_ACTIVE_STYLES: Dict[str, BurstStyle] = dict(STYLES)


def get_style(style: Union[BurstStyle, BurstKind, str]) -> BurstStyle:
    """
    Resolve a style, kind or name to a BurstStyle.

    Raises:
        UnknownStyleError: for unknown names and for BurstKind.NONE
        ValueError: if a BurstStyle passed in directly does not validate
    """
    if isinstance(style, BurstStyle):
        return style.validate()

    name = style.value if isinstance(style, BurstKind) else str(style).lower()
    if name in _ACTIVE_STYLES:
        return _ACTIVE_STYLES[name]

    available = sorted(_ACTIVE_STYLES)
    raise UnknownStyleError(f"Unknown style '{name}'. Available: {available}")


def register_style(style: BurstStyle) -> BurstStyle:
    """Make a style resolvable by name through get_style()"""
    style.validate()
    _ACTIVE_STYLES[style.name] = style
    return style


def reset_styles() -> None:
    """Forget registered styles, keeping only the built-ins"""
    _ACTIVE_STYLES.clear()
    _ACTIVE_STYLES.update(STYLES)


# =============================================================================
# YAML loading
# =============================================================================

def load_style_file(path: Union[str, Path]) -> Dict[str, BurstStyle]:
    """
    Load styles from a YAML file.

    The file either holds a single style (named after the file stem unless it
    sets `name`) or a `styles:` mapping of name -> settings. A style may set
    `base: game` to start from another style's values.
    """
    path = Path(path)
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Style file {path} must contain a mapping")

    if 'styles' in data:
        entries = data['styles'] or {}
        if not isinstance(entries, dict):
            raise ValueError(f"Style file {path}: 'styles' must map names to settings")
    else:
        entries = {data.get('name', path.stem): data}

    loaded = {}
    for name, settings in entries.items():
        name = str(name)
        if settings is not None and not isinstance(settings, dict):
            raise ValueError(f"Style file {path}: settings for '{name}' must be a mapping")
        settings = dict(settings or {})
        settings['name'] = name
        base_name = settings.pop('base', None)
        if base_name is not None:
            merged = get_style(base_name).to_dict()
            merged.update(settings)
            settings = merged
        loaded[name] = BurstStyle.from_dict(settings)

    return loaded


class StyleManager:
    """
    Built-in styles plus user styles from a directory of YAML files.
    """

    def __init__(self, user_styles_dir: Optional[Path] = None):
        """
        Args:
            user_styles_dir: Directory for user styles (default: ~/.particle-burst/styles)
        """
        self.user_styles_dir = Path(user_styles_dir) if user_styles_dir else (
            Path.home() / '.particle-burst' / 'styles'
        )

        self._builtin: Dict[str, BurstStyle] = {name: copy.deepcopy(s) for name, s in STYLES.items()}
        self._user: Dict[str, BurstStyle] = {}
        self._sources: Dict[str, List[Path]] = {}   # user style name -> files in user_styles_dir

        self._load_user_styles()

    def _load_user_styles(self) -> None:
        if not self.user_styles_dir.is_dir():
            return

        for yaml_file in sorted(self.user_styles_dir.glob('*.yaml')):
            try:
                loaded = load_style_file(yaml_file)
            except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
                logger.warning("Could not load style file %s: %s", yaml_file, e)
                continue
            self._user.update(loaded)
            for name in loaded:
                self._sources.setdefault(name, []).append(yaml_file)

    def get(self, name: str) -> Optional[BurstStyle]:
        """User styles override built-in styles with the same name"""
        return self._user.get(name) or self._builtin.get(name)

    def exists(self, name: str) -> bool:
        return name in self._user or name in self._builtin

    def list_all(self) -> List[str]:
        return sorted(set(self._builtin) | set(self._user))

    def list_by_tag(self, tag: str) -> List[str]:
        matches = []
        for name, style in {**self._builtin, **self._user}.items():
            if tag.lower() in [t.lower() for t in style.tags]:
                matches.append(name)
        return sorted(matches)

    def add_file(self, path: Union[str, Path]) -> List[str]:
        """Load an extra style file on top of the user styles (not owned, never deleted)"""
        loaded = load_style_file(path)
        self._user.update(loaded)
        for name in loaded:
            self._sources.pop(name, None)
        return sorted(loaded)

    def save_style(self, style: BurstStyle, filename: Optional[str] = None) -> Path:
        """Save a user style to YAML and return its path"""
        style.validate()
        filename = filename or f"{style.name}.yaml"
        if not filename.endswith('.yaml'):
            filename += '.yaml'

        self.user_styles_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.user_styles_dir / filename

        with open(filepath, 'w') as f:
            yaml.safe_dump(style.to_dict(), f, default_flow_style=False, sort_keys=False)

        self._user[style.name] = style
        sources = self._sources.setdefault(style.name, [])
        if filepath not in sources:
            sources.append(filepath)
        return filepath

    def delete_style(self, name: str) -> bool:
        """
        Delete a user style from every file it was loaded from or saved to.

        A style sharing a `styles:` file with others is removed from that file;
        the file itself goes once it holds nothing else.

        Returns:
            True if deleted, False for built-in styles, unknown names and
            styles that came from add_file()
        """
        sources = self._sources.get(name)
        if not sources:
            return False

        for source in sources:
            if source.exists():
                self._remove_from_file(source, name)

        del self._user[name]
        del self._sources[name]
        return True

    @staticmethod
    def _remove_from_file(path: Path, name: str) -> None:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        entries = data.get('styles') if isinstance(data, dict) else None
        if isinstance(entries, dict):
            remaining = {key: value for key, value in entries.items() if str(key) != name}
            if remaining:
                data['styles'] = remaining
                with open(path, 'w') as f:
                    yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
                return

        path.unlink()

    def register_all(self) -> None:
        """Make every user style resolvable through get_style()"""
        for style in self._user.values():
            register_style(style)
