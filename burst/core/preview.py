"""
Interactive Burst Preview

A two-panel launcher window: "GAME HUB" on the left, "MEDIA HUB" on the
right. Pressing a panel fires that panel's burst from its centre and, after a
short delay, calls the navigation callback with the panel's route.

Each panel owns its own drawing surface and BurstLoop; both loops share one
ManualScheduler that is ticked once per displayed frame.

Controls:
    Click           - Press the panel under the pointer
    ENTER/SPACE     - Press the focused panel
    TAB/LEFT/RIGHT  - Move focus between panels
    I               - Toggle info overlay
    ESC/Q           - Quit

Requires: pygame (pip install pygame)
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass

try:
    import pygame
    PYGAME_AVAILABLE = True
except ImportError:
    PYGAME_AVAILABLE = False
    pygame = None

from .loop import BurstLoop, LoopConfig
from .scheduler import ManualScheduler
from .styles import BurstKind, BurstStyle
from .surface import DrawingSurface, square_corners, rgba

logger = logging.getLogger(__name__)


# =============================================================================
# Preview Configuration
# =============================================================================

@dataclass
class PreviewConfig:
    """Configuration for the preview window"""
    window_width: int = 960
    window_height: int = 540
    window_title: str = "Particle Burst Preview"
    fps: int = 60

    game_background: Tuple[int, int, int] = (14, 14, 20)
    media_background: Tuple[int, int, int] = (34, 8, 22)
    pressed_boost: int = 18                 # added to each channel while pressed
    game_title: str = "GAME HUB"
    media_title: str = "MEDIA HUB"
    subtitle: str = "Tap to enter"

    navigate_delay: float = 0.22            # seconds between press and navigation
    game_route: str = "/game"
    media_route: str = "/media"

    show_info: bool = True


# =============================================================================
# pygame surface
# =============================================================================

class PygameSurface(DrawingSurface):
    """
    DrawingSurface over a pygame surface (typically a window subsurface).

    pygame.draw ignores alpha on opaque targets, so every shape is drawn on a
    small SRCALPHA patch and blitted.
    """

    def __init__(self, target, background: Tuple[int, int, int] = (0, 0, 0), pixel_ratio: float = 1.0):
        if not PYGAME_AVAILABLE:
            raise ImportError("pygame is required for PygameSurface. Install with: pip install pygame")
        if pixel_ratio <= 0:
            raise ValueError(f"pixel_ratio must be positive, got {pixel_ratio}")

        self.background = tuple(background)
        self.pixel_ratio = float(pixel_ratio)
        self.bind(target)

    def bind(self, target) -> None:
        """Point at a new pygame surface, e.g. after the window was recreated"""
        self.target = target
        self._width = target.get_width() / self.pixel_ratio
        self._height = target.get_height() / self.pixel_ratio

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    def resize(self, width: float, height: float) -> None:
        self._width = float(width)
        self._height = float(height)

    def clear(self, rect=None) -> None:
        if rect is None:
            self.target.fill(self.background)
            return
        s = self.pixel_ratio
        x, y, w, h = rect
        self.target.fill(self.background, pygame.Rect(int(x * s), int(y * s), int(w * s), int(h * s)))

    def fill_rect(self, cx, cy, size, rotation, color, alpha):
        s = self.pixel_ratio
        points = [(px * s, py * s) for px, py in square_corners(cx, cy, size, rotation)]
        x0 = int(min(p[0] for p in points)) - 1
        y0 = int(min(p[1] for p in points)) - 1
        x1 = int(max(p[0] for p in points)) + 2
        y1 = int(max(p[1] for p in points)) + 2

        patch = pygame.Surface((max(1, x1 - x0), max(1, y1 - y0)), pygame.SRCALPHA)
        pygame.draw.polygon(patch, rgba(color, alpha), [(px - x0, py - y0) for px, py in points])
        self.target.blit(patch, (x0, y0))

    def fill_circle(self, cx, cy, radius, color, alpha):
        self._circle(cx, cy, radius, color, alpha, 0)

    def stroke_circle(self, cx, cy, radius, color, alpha, width=1.0):
        self._circle(cx, cy, radius, color, alpha, max(1, int(round(width * self.pixel_ratio))))

    def _circle(self, cx, cy, radius, color, alpha, line_width):
        s = self.pixel_ratio
        r = max(1, int(round(radius * s)))
        d = 2 * r + 2
        patch = pygame.Surface((d, d), pygame.SRCALPHA)
        pygame.draw.circle(patch, rgba(color, alpha), (r + 1, r + 1), r, line_width)
        self.target.blit(patch, (int(round(cx * s)) - r - 1, int(round(cy * s)) - r - 1))


# =============================================================================
# Panels
# =============================================================================

class Panel:
    """One half of the launcher: a surface, a loop and a route"""

    def __init__(self, kind: BurstKind, title: str, route: str,
                 background: Tuple[int, int, int], loop: BurstLoop, style=None):
        self.kind = kind
        self.style = style if style is not None else kind
        self.title = title
        self.route = route
        self.base_background = background
        self.loop = loop
        self.rect = None
        self.surface: Optional[PygameSurface] = None

    def layout(self, screen, rect) -> None:
        """Re-bind the panel to a region of the (possibly recreated) window"""
        self.rect = rect
        sub = screen.subsurface(rect)
        if self.surface is None:
            self.surface = PygameSurface(sub, self.base_background)
            self.loop.attach(self.surface)
        else:
            # Particles keep their logical coordinates across resizes
            self.surface.bind(sub)

    def set_pressed(self, pressed: bool, boost: int) -> None:
        if pressed:
            self.surface.background = tuple(min(255, c + boost) for c in self.base_background)
        else:
            self.surface.background = self.base_background


# =============================================================================
# Preview Window
# =============================================================================

class PreviewWindow:
    """
    Two-panel launcher window.

    Example:
        window = PreviewWindow(on_navigate=lambda route: print(route))
        window.run()
    """

    def __init__(
        self,
        config: Optional[PreviewConfig] = None,
        on_navigate: Optional[Callable[[str], None]] = None,
        styles: Optional[Dict[BurstKind, BurstStyle]] = None,
        loop_config: Optional[LoopConfig] = None
    ):
        """
        Args:
            config: Preview configuration
            on_navigate: Called with the panel route once the delay elapses
            styles: Override the style used for a panel kind
            loop_config: Timing configuration shared by both loops
        """
        if not PYGAME_AVAILABLE:
            raise ImportError(
                "pygame is required for preview. Install with: pip install pygame"
            )

        self.config = config or PreviewConfig()
        self.on_navigate = on_navigate or self._default_navigate
        self.styles = styles or {}

        self.scheduler = ManualScheduler()
        self.pressed = BurstKind.NONE
        self.focus = 0
        self._navigate_at: Optional[float] = None
        self._pending_route: Optional[str] = None

        self._init_pygame()

        self.panels: List[Panel] = [
            self._make_panel(BurstKind.GAME, self.config.game_title, self.config.game_route,
                             self.config.game_background, loop_config),
            self._make_panel(BurstKind.MEDIA, self.config.media_title, self.config.media_route,
                             self.config.media_background, loop_config),
        ]
        self._layout(self.config.window_width, self.config.window_height)

    def _init_pygame(self):
        pygame.init()
        pygame.display.set_caption(self.config.window_title)

        self.screen = pygame.display.set_mode(
            (self.config.window_width, self.config.window_height),
            pygame.RESIZABLE
        )
        self.clock = pygame.time.Clock()

        self.font = pygame.font.Font(None, 20)
        self.font_title = pygame.font.Font(None, 64)

    def _make_panel(self, kind, title, route, background, loop_config) -> Panel:
        loop = BurstLoop(
            self.scheduler,
            config=loop_config,
            clock=self._clock,
            on_complete=lambda style, kind=kind: self._on_burst_complete(kind),
        )
        style = self.styles.get(kind, kind)
        return Panel(kind, title, route, background, loop, style)

    def _clock(self) -> float:
        return pygame.time.get_ticks() / 1000.0

    def _layout(self, width: int, height: int):
        half = width // 2
        rects = [pygame.Rect(0, 0, half, height), pygame.Rect(half, 0, width - half, height)]
        for panel, rect in zip(self.panels, rects):
            panel.layout(self.screen, rect)

    # -------------------------------------------------------------------------
    # Interaction
    # -------------------------------------------------------------------------

    def press(self, kind: BurstKind) -> None:
        """Fire a panel's burst and schedule navigation; re-pressing is ignored"""
        if kind is self.pressed:
            return

        self.pressed = kind
        for panel in self.panels:
            is_pressed = panel.kind is kind
            panel.set_pressed(is_pressed, self.config.pressed_boost)
            if is_pressed:
                panel.loop.activate(panel.style)
                self._pending_route = panel.route
            else:
                panel.loop.deactivate()
        self._navigate_at = self._clock() + self.config.navigate_delay
        logger.debug("Pressed %s, navigating in %.2fs", kind.value, self.config.navigate_delay)

    def panel_at(self, pos) -> Optional[Panel]:
        for panel in self.panels:
            if panel.rect is not None and panel.rect.collidepoint(pos):
                return panel
        return None

    def _on_burst_complete(self, kind: BurstKind):
        if self.pressed is not kind:
            return
        self.pressed = BurstKind.NONE
        for panel in self.panels:
            panel.set_pressed(False, self.config.pressed_boost)

    @staticmethod
    def _default_navigate(route: str):
        print(f"Navigate: {route}")

    def _handle_key(self, key: int) -> bool:
        """Handle keyboard input. Returns False to quit."""
        if key in (pygame.K_ESCAPE, pygame.K_q):
            return False
        elif key in (pygame.K_TAB, pygame.K_RIGHT, pygame.K_LEFT):
            self.focus = (self.focus + 1) % len(self.panels)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self.press(self.panels[self.focus].kind)
        elif key == pygame.K_i:
            self.config.show_info = not self.config.show_info
        return True

    def handle_event(self, event) -> bool:
        """Process one pygame event. Returns False to quit."""
        if event.type == pygame.QUIT:
            return False
        elif event.type == pygame.KEYDOWN:
            return self._handle_key(event.key)
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            panel = self.panel_at(event.pos)
            if panel is not None:
                self.focus = self.panels.index(panel)
                self.press(panel.kind)
        elif event.type == pygame.VIDEORESIZE:
            self.config.window_width = event.w
            self.config.window_height = event.h
            self.screen = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)
            self._layout(event.w, event.h)
        return True

    # -------------------------------------------------------------------------
    # Frame
    # -------------------------------------------------------------------------

    def update(self, now: float) -> None:
        """Advance one displayed frame at time `now` (seconds, same timebase as _clock)"""
        for panel in self.panels:
            panel.surface.clear()

        self.scheduler.tick(now)

        if self._navigate_at is not None and now >= self._navigate_at:
            self._navigate_at = None
            logger.info("Navigating to %s", self._pending_route)
            self.on_navigate(self._pending_route)

        self._render_overlay()

    def run(self):
        """Run the preview window main loop"""
        running = True

        while running:
            self.clock.tick(self.config.fps)

            for event in pygame.event.get():
                if not self.handle_event(event):
                    running = False
                    break

            self.update(self._clock())
            pygame.display.flip()

        for panel in self.panels:
            panel.loop.detach()
        pygame.quit()

    def _render_overlay(self):
        for index, panel in enumerate(self.panels):
            cx, cy = panel.rect.center
            title = self.font_title.render(panel.title, True, (240, 240, 240))
            self.screen.blit(title, title.get_rect(center=(cx, cy - 20)))
            subtitle = self.font.render(self.config.subtitle, True, (170, 170, 170))
            self.screen.blit(subtitle, subtitle.get_rect(center=(cx, cy + 24)))

            if index == self.focus:
                pygame.draw.rect(self.screen, (90, 90, 110), panel.rect.inflate(-8, -8), 2)

        if self.config.show_info:
            lines = [
                f"FPS: {self.clock.get_fps():.0f}",
            ] + [
                f"{p.kind.value}: {p.loop.state.value} ({p.loop.particle_count})"
                for p in self.panels
            ]
            y = 8
            for line in lines:
                text = self.font.render(line, True, (200, 200, 200))
                self.screen.blit(text, (8, y))
                y += 18


# =============================================================================
# Convenience Functions
# =============================================================================

def preview_bursts(
    on_navigate: Optional[Callable[[str], None]] = None,
    styles: Optional[Dict[BurstKind, BurstStyle]] = None,
    width: int = 960,
    height: int = 540,
    title: str = "Particle Burst Preview"
) -> None:
    """
    Open the launcher window.

    Args:
        on_navigate: Called with the route after a panel is pressed
        styles: Override the style used for a panel kind
        width, height: Initial window size
        title: Window title
    """
    if not PYGAME_AVAILABLE:
        print("Preview requires pygame. Install with: pip install pygame")
        print("Alternatively, export to GIF and view in external program.")
        return

    config = PreviewConfig(window_width=width, window_height=height, window_title=title)
    PreviewWindow(config, on_navigate=on_navigate, styles=styles).run()


def check_pygame_available() -> bool:
    """Check if pygame is available for preview"""
    return PYGAME_AVAILABLE
