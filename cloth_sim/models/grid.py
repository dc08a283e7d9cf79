# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Grid-based cloth model

import numpy as np

from ..sim.model import Model


PIN_POLICIES = ("top_row", "corners", "none")


class ClothGridModel(Model):
    """
    Cloth model with rectangular lattice geometry.

    Particle (r, c) sits at origin + (c * spacing, -r * spacing), so row 0
    is the top edge and rows hang downward. Particle index is r * cols + c.

    Structural links join (r, c)-(r, c+1) and (r, c)-(r+1, c). Shear links
    (both diagonals of each cell, rest spacing * sqrt(2)) and bend links
    (two cells apart, rest 2 * spacing) are optional.

    Args:
        rows: Number of rows (Y direction). Default 20.
        cols: Number of columns (X direction). Default 30.
        spacing: Distance between adjacent particles
        pin_policy: 'top_row', 'corners', 'none', or an iterable of particle indices
        origin: World position of particle (0, 0)
        gravity: Gravity vector (gx, gy)
        with_shear: If True, add diagonal shear links
        with_bend: If True, add flexion links spanning two cells
        device: Warp device ('cuda', 'cpu' or None)

    Example:
        >>> model = ClothGridModel(rows=3, cols=3, spacing=1.0, device='cpu')
        >>> state = model.state()
    """

    def __init__(self, rows: int = 20, cols: int = 30, spacing: float = 0.1,
                 pin_policy="top_row", origin=(0.0, 0.0), gravity=(0.0, -9.8),
                 with_shear: bool = False, with_bend: bool = False, device=None):

        if rows < 1 or cols < 1:
            raise ValueError(f"Grid needs at least one row and one column, got {rows}x{cols}")
        if spacing <= 0.0:
            raise ValueError(f"Grid spacing must be positive, got {spacing}")

        super().__init__(device=device)
        self.grid_rows = rows
        self.grid_cols = cols
        self.spacing = spacing

        positions = self._create_grid_positions(rows, cols, spacing, origin)
        pinned = self._pinned_indices(rows, cols, pin_policy)
        self.set_particles(positions, pinned)

        pairs, rest_lengths = self._create_links(rows, cols, spacing, with_shear, with_bend)
        self.set_links(pairs, rest_lengths)

        self.set_gravity(tuple(gravity))

        print(f"✓ Created {rows}x{cols} cloth grid = {self.particle_count} particles, "
              f"{self.link_count} links, {len(pinned)} pinned")

    def index(self, r: int, c: int) -> int:
        """Particle index of grid cell (r, c)."""
        return r * self.grid_cols + c

    def _create_grid_positions(self, rows, cols, spacing, origin):
        """Create lattice positions hanging down from origin."""
        ox, oy = origin
        positions = []
        for r in range(rows):
            for c in range(cols):
                positions.append([ox + c * spacing, oy - r * spacing])

        return np.array(positions, dtype=np.float32)

    def _pinned_indices(self, rows, cols, pin_policy):
        if isinstance(pin_policy, str):
            if pin_policy == "top_row":
                return list(range(cols))
            if pin_policy == "corners":
                return sorted({0, cols - 1})
            if pin_policy == "none":
                return []
            raise ValueError(f"Unknown pin policy '{pin_policy}', expected one of {PIN_POLICIES} or indices")

        return sorted({int(i) for i in pin_policy})

    def _create_links(self, rows, cols, spacing, with_shear, with_bend):
        """Create structural links, plus shear and bend links if requested."""
        pairs = []
        rest_lengths = []

        def sub2ind(r, c):
            return r * cols + c

        # Horizontal links
        for r in range(rows):
            for c in range(cols - 1):
                pairs.append((sub2ind(r, c), sub2ind(r, c + 1)))
                rest_lengths.append(spacing)

        # Vertical links
        for r in range(rows - 1):
            for c in range(cols):
                pairs.append((sub2ind(r, c), sub2ind(r + 1, c)))
                rest_lengths.append(spacing)

        # Shear links (both diagonals per cell)
        if with_shear:
            for r in range(rows - 1):
                for c in range(cols - 1):
                    pairs.append((sub2ind(r, c), sub2ind(r + 1, c + 1)))
                    rest_lengths.append(spacing * np.sqrt(2))
                    pairs.append((sub2ind(r, c + 1), sub2ind(r + 1, c)))
                    rest_lengths.append(spacing * np.sqrt(2))

        # Bend links (skip one particle)
        if with_bend:
            for r in range(rows):
                for c in range(cols - 2):
                    pairs.append((sub2ind(r, c), sub2ind(r, c + 2)))
                    rest_lengths.append(spacing * 2.0)
            for r in range(rows - 2):
                for c in range(cols):
                    pairs.append((sub2ind(r, c), sub2ind(r + 2, c)))
                    rest_lengths.append(spacing * 2.0)

        return np.array(pairs, dtype=np.int32).reshape(-1, 2), np.array(rest_lengths, dtype=np.float32)
