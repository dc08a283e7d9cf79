# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Pointer interaction kernels (push and tear)

import warp as wp


@wp.kernel
def apply_force_in_radius_2d(
    x: wp.array(dtype=wp.vec2),
    pinned: wp.array(dtype=wp.int32),
    anchor: wp.vec2,
    radius: float,
    force: wp.vec2,
    dt: float,
):
    """
    Displace free particles near the anchor by force * dt.

    The displacement goes straight into the position, not the previous
    position, so the next Verlet step sees it as velocity.
    """
    tid = wp.tid()

    if pinned[tid] != 0:
        return

    q = x[tid]
    if wp.length(q - anchor) <= radius:
        x[tid] = q + force * dt


@wp.kernel
def mark_links_near_point_2d(
    x: wp.array(dtype=wp.vec2),
    link_indices: wp.array(dtype=int),
    anchor: wp.vec2,
    radius: float,
    keep: wp.array(dtype=wp.int32),
):
    """Flag links whose midpoint lies within radius of anchor (keep = 0)."""
    tid = wp.tid()

    i = link_indices[tid * 2 + 0]
    j = link_indices[tid * 2 + 1]

    midpoint = (x[i] + x[j]) * 0.5
    if wp.length(midpoint - anchor) <= radius:
        keep[tid] = 0
    else:
        keep[tid] = 1
