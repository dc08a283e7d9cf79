# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# 2D Model class for tearable cloth simulations

import numpy as np
import warp as wp

from .state import State


class Model:
    """
    Represents the static definition of a 2D cloth.

    Stores the particle arena (initial positions, pinned flags) and the
    distance-link graph between particle indices. Links are referenced by
    index value only, so removing one is a compaction of the link arrays.

    Key Features:
        - Dense, index-addressed particle arrays with stable indices
        - Simple undirected link graph (no duplicates, no self-links)
        - Removal is the only topology change after construction
        - Physical parameters (gravity)
    """

    def __init__(self, device=None):
        """
        Initialize a 2D Model object.

        Args:
            device: Warp device on which the Model's data will be allocated
                ('cuda', 'cpu' or None for the Warp default device)
        """
        self.device = wp.get_device(device)

        # Particle properties
        self.particle_q = None              # Initial positions, shape [particle_count], vec2
        self.particle_pinned = None         # 1 = fixed anchor, 0 = free, shape [particle_count], int
        self.particle_count = 0             # Total number of particles

        # Link graph
        self.link_indices = None            # Link connectivity [a0, b0, a1, b1, ...], shape [link_count*2], int
        self.link_rest_length = None        # Rest length per link, shape [link_count], float
        self.link_count = 0                 # Number of active links
        self.link_color = None              # Host-side color per link (set by the solver), int32
        self.topology_version = 0           # Incremented on every removal

        # Host mirrors of the topology
        self._link_pairs = np.zeros((0, 2), dtype=np.int32)
        self._link_rest = np.zeros(0, dtype=np.float32)

        # Physical parameters
        self.gravity = None                 # Gravity vector, shape [1], vec2

    def state(self) -> State:
        """
        Create and return a new State object for this model.

        Positions and previous positions both start at the initial
        configuration, so every particle starts at rest.

        Returns:
            State: The state object
        """
        s = State()

        if self.particle_count > 0:
            s.particle_q = wp.clone(self.particle_q)
            s.particle_q_prev = wp.clone(self.particle_q)

        return s

    def set_gravity(self, gravity):
        """
        Set gravity for runtime modification.

        Args:
            gravity: Gravity vector as tuple (gx, gy) or wp.vec2
                     Common values: (0.0, -9.8) for Y-down
        """
        if self.gravity is None:
            self.gravity = wp.zeros(1, dtype=wp.vec2, device=self.device)

        if isinstance(gravity, (tuple, list)):
            self.gravity.assign([wp.vec2(float(gravity[0]), float(gravity[1]))])
        else:
            self.gravity.assign([gravity])

    def set_particles(self, positions, pinned=None):
        """
        Allocate the particle arena.

        Args:
            positions: Array-like of shape (N, 2)
            pinned: Optional iterable of particle indices to pin
        """
        pos_np = np.asarray(positions, dtype=np.float32).reshape(-1, 2)
        n_particles = len(pos_np)

        pinned_np = np.zeros(n_particles, dtype=np.int32)
        if pinned is not None:
            for idx in pinned:
                if idx < 0 or idx >= n_particles:
                    raise ValueError(f"Pinned particle index {idx} out of range [0, {n_particles})")
                pinned_np[idx] = 1

        self.particle_count = n_particles
        self.particle_q = wp.array(pos_np, dtype=wp.vec2, device=self.device)
        self.particle_pinned = wp.array(pinned_np, dtype=wp.int32, device=self.device)

    def set_links(self, pairs, rest_lengths):
        """
        Install the link graph. Called once, at build time.

        Every link must reference two distinct in-range particles, and no
        unordered pair may appear twice. Pairs are stored with a < b.

        Args:
            pairs: Array-like of shape (M, 2) with particle indices
            rest_lengths: Array-like of shape (M,) with positive rest lengths

        Raises:
            ValueError: If the topology violates any of the above
        """
        pairs_np = np.asarray(pairs, dtype=np.int64).reshape(-1, 2)
        rest_np = np.asarray(rest_lengths, dtype=np.float32).reshape(-1)

        if len(pairs_np) != len(rest_np):
            raise ValueError(f"Got {len(pairs_np)} links but {len(rest_np)} rest lengths")

        if len(pairs_np) > 0:
            if pairs_np.min() < 0 or pairs_np.max() >= self.particle_count:
                raise ValueError(f"Link index out of range [0, {self.particle_count})")
            if np.any(pairs_np[:, 0] == pairs_np[:, 1]):
                raise ValueError("Self-links are not allowed")
            if np.any(rest_np <= 0.0):
                raise ValueError("Link rest lengths must be positive")

        pairs_np = np.sort(pairs_np, axis=1)
        if len(pairs_np) > 0 and len(np.unique(pairs_np, axis=0)) != len(pairs_np):
            raise ValueError("Duplicate links are not allowed")

        self._link_pairs = pairs_np.astype(np.int32)
        self._link_rest = rest_np
        self.link_color = None
        self._upload_links()

    def remove_links(self, keep_mask) -> int:
        """
        Permanently remove every link whose mask entry is False.

        Link colors are filtered alongside the links; a subset of a valid
        coloring is still valid.

        Args:
            keep_mask: Boolean array of shape [link_count]

        Returns:
            Number of links removed
        """
        keep = np.asarray(keep_mask, dtype=bool)
        removed = int(self.link_count - np.count_nonzero(keep))
        if removed == 0:
            return 0

        self._link_pairs = self._link_pairs[keep]
        self._link_rest = self._link_rest[keep]
        if self.link_color is not None:
            self.link_color = self.link_color[keep]

        self._upload_links()
        self.topology_version += 1
        return removed

    def link_pairs(self) -> np.ndarray:
        """Active links as a read-only (M, 2) int32 array, a < b per row."""
        pairs = self._link_pairs.copy()
        pairs.flags.writeable = False
        return pairs

    def link_rest_lengths(self) -> np.ndarray:
        """Rest lengths of the active links, aligned with link_pairs()."""
        return self._link_rest.copy()

    def pinned_mask(self) -> np.ndarray:
        """Boolean mask of pinned particles."""
        return self.particle_pinned.numpy().astype(bool)

    def _upload_links(self):
        self.link_count = len(self._link_pairs)
        self.link_indices = wp.array(self._link_pairs.reshape(-1), dtype=int, device=self.device)
        self.link_rest_length = wp.array(self._link_rest, dtype=float, device=self.device)
