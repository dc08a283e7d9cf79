"""
Pygame Renderer for Tearable Cloth

Draws what the simulation exposes each frame: particle positions and
the active links. Also maps mouse pixels back to world coordinates so
the host can build interaction events.

Features:
1. Links colored by strain (compression -> rest -> tension)
2. Pinned particles highlighted
3. Pointer radius and wind indicator
4. Info text overlay

Usage:
    from pygame_renderer import Renderer

    renderer = Renderer(window_width=1000, window_height=700, view=(-0.5, -2.4, 3.5))

    # In render loop:
    canvas = renderer.create_canvas()
    renderer.draw_links(canvas, links, positions, strains)
    renderer.draw_particles(canvas, positions, pinned)
    renderer.draw_info_text(canvas, [("FPS: 60", renderer.BLACK)])
"""

import numpy as np
import pygame
from typing import List, Optional, Tuple


class Renderer:
    """
    Pygame renderer for cloth visualization.

    All methods work with pygame surfaces and numpy arrays.
    """

    # ========================================================================
    # COLOR CONSTANTS
    # ========================================================================

    WHITE = (255, 255, 255)
    BLACK = (0, 0, 0)
    GREY = (100, 100, 100)
    LIGHT_GREY = (230, 230, 230)

    # Particle colors
    PARTICLE_FILL = (50, 50, 255)  # Blue
    PINNED_FILL = (255, 105, 180)  # Hot pink

    # Pointer colors
    PUSH_COLOR = (0, 170, 90)
    TEAR_COLOR = (220, 40, 40)

    # Wind indicator color
    WIND_COLOR = (0, 150, 200)     # Cyan

    # Link: Orange (compression) -> Grey (rest) -> Red (tension)
    LINK_COLORS = [(255, 165, 0), (90, 90, 90), (255, 0, 0)]

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    def __init__(
        self,
        window_width: int = 1000,
        window_height: int = 700,
        view: Tuple[float, float, float] = (-0.5, -2.4, 3.5),
        particle_radius: int = 2,
        pinned_radius: int = 4,
        link_width: int = 1,
        strain_scale: float = 0.1,
        font_size_small: int = 18,
    ):
        """
        Initialize the renderer.

        Args:
            window_width: Window width in pixels
            window_height: Window height in pixels
            view: (x_min, y_min, height) of the visible world rectangle
            particle_radius: Free particle circle radius
            pinned_radius: Pinned particle circle radius
            link_width: Link line width
            strain_scale: Strain mapped to full tension / compression color
            font_size_small: Font size for info text
        """
        self.window_width = window_width
        self.window_height = window_height
        self.view_x0, self.view_y0, view_height = view

        # Scale factor (pixels per world unit)
        self.scale = window_height / view_height

        self.particle_radius = particle_radius
        self.pinned_radius = pinned_radius
        self.link_width = link_width
        self.strain_scale = strain_scale

        # Fonts (initialized lazily)
        self._font_small = None
        self._font_size_small = font_size_small

    @property
    def font_small(self):
        """Lazy small font initialization."""
        if self._font_small is None:
            if not pygame.font.get_init():
                pygame.font.init()
            self._font_small = pygame.font.Font(None, self._font_size_small)
        return self._font_small

    # ========================================================================
    # COORDINATE CONVERSION
    # ========================================================================

    def world_to_screen(self, x: float, y: float) -> Tuple[int, int]:
        """Convert world coordinates to screen coordinates."""
        return (int((x - self.view_x0) * self.scale),
                int(self.window_height - (y - self.view_y0) * self.scale))

    def world_to_screen_array(self, positions: np.ndarray) -> np.ndarray:
        """
        Convert array of world positions to screen coordinates.

        Args:
            positions: Array of shape (N, 2) with [x, y] world coordinates

        Returns:
            Array of shape (N, 2) with [screen_x, screen_y] pixel coordinates
        """
        screen = np.zeros_like(positions, dtype=np.int32)
        screen[:, 0] = ((positions[:, 0] - self.view_x0) * self.scale).astype(int)
        screen[:, 1] = (self.window_height - (positions[:, 1] - self.view_y0) * self.scale).astype(int)
        return screen

    def screen_to_world(self, px: int, py: int) -> Tuple[float, float]:
        """Convert a mouse pixel to world coordinates."""
        return (px / self.scale + self.view_x0,
                (self.window_height - py) / self.scale + self.view_y0)

    # ========================================================================
    # CANVAS CREATION
    # ========================================================================

    def create_canvas(self, background_color=None) -> pygame.Surface:
        """
        Create a new canvas (pygame Surface) with background color.

        Args:
            background_color: RGB tuple or None for white

        Returns:
            pygame.Surface
        """
        canvas = pygame.Surface((self.window_width, self.window_height))
        canvas.fill(background_color or self.WHITE)
        return canvas

    # ========================================================================
    # LINK RENDERING
    # ========================================================================

    def draw_links(
        self,
        canvas: pygame.Surface,
        links: np.ndarray,
        positions: np.ndarray,
        strains: Optional[np.ndarray] = None,
    ):
        """
        Draw links with strain-based coloring.

        Args:
            canvas: pygame Surface to draw on
            links: Array of shape (M, 2) with particle index pairs
            positions: Array of shape (N, 2) with particle positions
            strains: Raw strain per link, or None
        """
        if links is None or len(links) == 0:
            return

        if strains is not None:
            colors = self._compute_link_colors(strains)
        else:
            colors = np.full((len(links), 3), self.LINK_COLORS[1], dtype=np.uint8)

        screen_i = self.world_to_screen_array(positions[links[:, 0]])
        screen_j = self.world_to_screen_array(positions[links[:, 1]])

        for k in range(len(links)):
            pygame.draw.line(
                canvas,
                tuple(int(c) for c in colors[k]),
                tuple(screen_i[k]),
                tuple(screen_j[k]),
                self.link_width,
            )

    def _compute_link_colors(self, strains: np.ndarray) -> np.ndarray:
        """
        Map strains to a diverging palette.

        Args:
            strains: Raw strain values

        Returns:
            RGB color array shape (M, 3)
        """
        t = np.clip(strains / self.strain_scale, -1.0, 1.0)
        low = np.array(self.LINK_COLORS[0], dtype=float)
        mid = np.array(self.LINK_COLORS[1], dtype=float)
        high = np.array(self.LINK_COLORS[2], dtype=float)

        w = np.abs(t)[:, None]
        target = np.where((t < 0.0)[:, None], low, high)
        return (mid * (1.0 - w) + target * w).astype(np.uint8)

    # ========================================================================
    # PARTICLE RENDERING
    # ========================================================================

    def draw_particles(
        self,
        canvas: pygame.Surface,
        positions: np.ndarray,
        pinned: Optional[np.ndarray] = None,
    ):
        """
        Draw particles as circles, pinned anchors larger.

        Args:
            canvas: pygame Surface to draw on
            positions: Array of shape (N, 2) with particle positions
            pinned: Boolean mask of pinned particles, or None
        """
        for k, pos in enumerate(positions):
            if np.isnan(pos[0]) or np.isnan(pos[1]):
                continue

            screen_pos = self.world_to_screen(pos[0], pos[1])
            if pinned is not None and pinned[k]:
                pygame.draw.circle(canvas, self.PINNED_FILL, screen_pos, self.pinned_radius)
            elif self.particle_radius > 0:
                pygame.draw.circle(canvas, self.PARTICLE_FILL, screen_pos, self.particle_radius)

    # ========================================================================
    # POINTER / WIND
    # ========================================================================

    def draw_pointer(self, canvas: pygame.Surface, anchor: Tuple[float, float], radius: float, tearing: bool):
        """Outline the interaction radius around the pointer."""
        color = self.TEAR_COLOR if tearing else self.PUSH_COLOR
        center = self.world_to_screen(anchor[0], anchor[1])
        pygame.draw.circle(canvas, color, center, max(1, int(radius * self.scale)), 1)

    def draw_wind_arrow(self, canvas: pygame.Surface, wind_force, origin: Optional[Tuple[int, int]] = None):
        """
        Draw wind force indicator arrow.

        Args:
            canvas: pygame Surface to draw on
            wind_force: Wind acceleration [wx, wy]
            origin: Screen position for wind arrow (default: bottom-left)
        """
        wind_force = np.asarray(wind_force, dtype=float)
        wind_mag = np.linalg.norm(wind_force)
        if wind_mag < 1e-6:
            return

        if origin is None:
            origin = (20, self.window_height - 15)

        arrow_length = 30.0
        wind_dir = wind_force / wind_mag

        # Flip y for screen coordinates
        end = (int(origin[0] + wind_dir[0] * arrow_length), int(origin[1] - wind_dir[1] * arrow_length))
        pygame.draw.line(canvas, self.WIND_COLOR, origin, end, 3)
        pygame.draw.circle(canvas, self.WIND_COLOR, end, 4)

        label = self.font_small.render(f"Wind [{wind_force[0]:.1f},{wind_force[1]:.1f}]", True, self.WIND_COLOR)
        canvas.blit(label, (origin[0] + 40, origin[1] - 8))

    # ========================================================================
    # UI TEXT
    # ========================================================================

    def draw_info_text(
        self,
        canvas: pygame.Surface,
        lines: List[Tuple[str, Tuple[int, int, int]]],
        position: Tuple[int, int] = (10, 10),
        line_spacing: int = 17,
    ):
        """
        Draw multiple lines of info text.

        Args:
            canvas: pygame Surface to draw on
            lines: List of (text, color) tuples
            position: Top-left position
            line_spacing: Vertical spacing between lines
        """
        x, y = position

        for i, (text, color) in enumerate(lines):
            text_surface = self.font_small.render(text, True, color)
            canvas.blit(text_surface, (x, y + i * line_spacing))
