# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Verlet solver with iterative distance-link relaxation for 2D cloth

import numpy as np
import warp as wp

from ..solver import SolverBase
from ..coloring import color_launch_order, compute_particle_to_link_adjacency, link_coloring_2d
from .kernels_verlet import (
    integrate_particles_verlet_2d,
    mark_overstretched_links_2d,
    solve_distance_links_2d,
    validate_particles_2d,
)

# Wind region used when no rectangle is configured
_UNBOUNDED = 1.0e30


class SolverVerlet(SolverBase):
    """
    Position-based cloth solver: Verlet integration followed by K passes
    of distance-link relaxation.

    Algorithm:
    ----------
    For each frame:
    1. Clamp dt to [0, max_dt]
    2. For each substep (dt / substeps):
       a. Integrate unpinned particles:
          x_new = x + (x - x_prev) * damping + g * dt^2
       b. For K iterations, for each link color in ascending order
          (parallel inside a color):
          - correction = (x_b - x_a) * (len - rest) / len * 0.5
          - x_a += correction, x_b -= correction
            (a pinned endpoint passes its share to the other)
    3. Optionally remove links stretched beyond tear_stretch_ratio
    4. Repair non-finite positions and clamp into bounds

    Links of one color share no particle, so each launch behaves like a
    sequential sweep over that color. Visiting colors in a fixed order
    makes the whole pass a deterministic Gauss-Seidel sweep.

    Example:
        >>> model = ClothGridModel(rows=10, cols=10, spacing=0.1, device='cpu')
        >>> solver = SolverVerlet(model, iterations=5)
        >>> state = model.state()
        >>>
        >>> for i in range(100):
        >>>     solver.step(state, dt=1.0 / 60.0)
    """

    def __init__(
        self,
        model,
        iterations: int = 5,
        damping: float = 0.99,
        max_dt: float = 1.0 / 30.0,
        substeps: int = 1,
        tear_stretch_ratio=None,
        wind_enabled: bool = False,
        wind_force=(1.0, 0.3),
        wind_region=None,
        bounds=None,
    ):
        """
        Initialize the Verlet solver.

        Args:
            model: The 2D cloth Model to be simulated
            iterations: Relaxation passes per substep (K)
            damping: Velocity retention factor in (0, 1]; 1.0 = no damping
            max_dt: Upper bound applied to every incoming dt
            substeps: Integrate/relax repetitions per frame
            tear_stretch_ratio: Remove links longer than ratio * rest (None = off)
            wind_enabled: Apply wind acceleration in the integrator
            wind_force: Wind acceleration (wx, wy)
            wind_region: (xmin, ymin, xmax, ymax) or None for everywhere
            bounds: (xmin, ymin, xmax, ymax) clamp box or None
        """
        super().__init__(model)

        if iterations < 1:
            raise ValueError(f"iterations must be >= 1, got {iterations}")
        if not 0.0 < damping <= 1.0:
            raise ValueError(f"damping must be in (0, 1], got {damping}")
        if max_dt <= 0.0:
            raise ValueError(f"max_dt must be positive, got {max_dt}")
        if substeps < 1:
            raise ValueError(f"substeps must be >= 1, got {substeps}")
        if tear_stretch_ratio is not None and tear_stretch_ratio <= 1.0:
            raise ValueError(f"tear_stretch_ratio must be > 1, got {tear_stretch_ratio}")
        for name, box in (("wind_region", wind_region), ("bounds", bounds)):
            if box is not None and (box[0] > box[2] or box[1] > box[3]):
                raise ValueError(f"{name} must be (xmin, ymin, xmax, ymax) with min <= max, got {box}")

        self.iterations = iterations
        self.damping = damping
        self.max_dt = max_dt
        self.substeps = substeps
        self.tear_stretch_ratio = tear_stretch_ratio

        self.wind_enabled = wind_enabled
        self.wind_force = (float(wind_force[0]), float(wind_force[1]))
        if wind_region is None:
            wind_region = (-_UNBOUNDED, -_UNBOUNDED, _UNBOUNDED, _UNBOUNDED)
        self.wind_lo = wp.vec2(float(wind_region[0]), float(wind_region[1]))
        self.wind_hi = wp.vec2(float(wind_region[2]), float(wind_region[3]))

        self.bounds = bounds
        if bounds is not None:
            self.bounds_lo = wp.vec2(float(bounds[0]), float(bounds[1]))
            self.bounds_hi = wp.vec2(float(bounds[2]), float(bounds[3]))
        else:
            self.bounds_lo = wp.vec2(0.0, 0.0)
            self.bounds_hi = wp.vec2(0.0, 0.0)

        # Cache gravity to avoid repeated device->host transfers
        self._cached_gravity = None

        # ====================================================================
        # Link Coloring for Gauss-Seidel Relaxation
        # ====================================================================
        pairs = model.link_pairs()
        _, max_degree = compute_particle_to_link_adjacency(pairs, model.particle_count)
        coloring, _ = link_coloring_2d(pairs, model.particle_count)
        model.link_color = coloring

        self._topology_version = None
        self._refresh_color_order()

        print(f"✓ Verlet solver ready: {model.link_count} links, "
              f"{len(self._color_counts)} colors, particle max degree {max_degree}, K={iterations}")

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def clamp_dt(self, dt: float) -> float:
        """Bound dt to [0, max_dt]."""
        return min(max(float(dt), 0.0), self.max_dt)

    def set_wind(self, enabled: bool, force=None):
        """Toggle wind and optionally change its acceleration."""
        self.wind_enabled = bool(enabled)
        if force is not None:
            self.wind_force = (float(force[0]), float(force[1]))

    def invalidate_gravity_cache(self):
        """Call after model.set_gravity() so the next step picks it up."""
        self._cached_gravity = None

    def step(self, state, dt: float):
        """
        Advance the simulation by one frame, in place.

        Args:
            state: The state to advance
            dt: Elapsed frame time (in seconds), clamped to max_dt

        Returns:
            Number of links removed by stretch tearing
        """
        dt = self.clamp_dt(dt)
        if dt == 0.0 or self.model.particle_count == 0:
            return 0

        sub_dt = dt / self.substeps
        for _ in range(self.substeps):
            self.integrate(state, sub_dt)
            self.relax(state)

        torn = 0
        if self.tear_stretch_ratio is not None:
            torn = self.tear_overstretched(state)

        self.validate(state)

        return torn

    def integrate(self, state, dt: float):
        """Verlet-integrate all unpinned particles once."""
        model = self.model

        gravity_wp = self._get_gravity()
        if self.wind_enabled:
            wind_wp = wp.vec2(self.wind_force[0], self.wind_force[1])
        else:
            wind_wp = wp.vec2(0.0, 0.0)

        wp.launch(
            kernel=integrate_particles_verlet_2d,
            dim=model.particle_count,
            inputs=[
                state.particle_q,
                state.particle_q_prev,
                model.particle_pinned,
                gravity_wp,
                wind_wp,
                self.wind_lo,
                self.wind_hi,
                self.damping,
                dt,
            ],
            device=self.device,
        )

    def relax(self, state, iterations=None):
        """
        Run relaxation passes over every active link.

        Args:
            state: The state whose positions are corrected in place
            iterations: Number of passes (defaults to K)
        """
        model = self.model
        if model.link_count == 0:
            return

        self._refresh_color_order()

        if iterations is None:
            iterations = self.iterations

        for _ in range(iterations):
            for offset, count in zip(self._color_offsets, self._color_counts):
                if count == 0:
                    continue
                wp.launch(
                    kernel=solve_distance_links_2d,
                    dim=count,
                    inputs=[
                        state.particle_q,
                        model.particle_pinned,
                        model.link_indices,
                        model.link_rest_length,
                        self._color_order,
                        offset,
                    ],
                    device=self.device,
                )

    def tear_overstretched(self, state) -> int:
        """
        Remove links longer than tear_stretch_ratio * rest.

        Returns:
            Number of links removed
        """
        model = self.model
        if model.link_count == 0 or self.tear_stretch_ratio is None:
            return 0

        keep = wp.zeros(model.link_count, dtype=wp.int32, device=self.device)
        wp.launch(
            kernel=mark_overstretched_links_2d,
            dim=model.link_count,
            inputs=[
                state.particle_q,
                model.link_indices,
                model.link_rest_length,
                float(self.tear_stretch_ratio),
                keep,
            ],
            device=self.device,
        )

        return model.remove_links(keep.numpy() != 0)

    def validate(self, state):
        """Repair non-finite positions and apply the optional bounds clamp."""
        model = self.model

        wp.launch(
            kernel=validate_particles_2d,
            dim=model.particle_count,
            inputs=[
                state.particle_q,
                state.particle_q_prev,
                model.particle_q,
                model.particle_pinned,
                1 if self.bounds is not None else 0,
                self.bounds_lo,
                self.bounds_hi,
            ],
            device=self.device,
        )

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _get_gravity(self):
        if self._cached_gravity is None:
            g = self.model.gravity.numpy()[0]
            self._cached_gravity = wp.vec2(float(g[0]), float(g[1]))
        return self._cached_gravity

    def _refresh_color_order(self):
        """Rebuild the per-color launch order after the link set changed."""
        model = self.model
        if self._topology_version == model.topology_version:
            return

        order, offsets, counts = color_launch_order(model.link_color)
        self._color_order = wp.array(order, dtype=wp.int32, device=self.device)
        self._color_offsets = offsets
        self._color_counts = counts
        self._topology_version = model.topology_version
