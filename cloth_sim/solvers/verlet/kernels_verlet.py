# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# 2D Verlet integration and distance-link relaxation kernels

import warp as wp


@wp.kernel
def integrate_particles_verlet_2d(
    x: wp.array(dtype=wp.vec2),
    x_prev: wp.array(dtype=wp.vec2),
    pinned: wp.array(dtype=wp.int32),
    gravity: wp.vec2,
    wind: wp.vec2,
    wind_lo: wp.vec2,
    wind_hi: wp.vec2,
    damping: float,
    dt: float,
):
    """
    Position Verlet step with velocity damping.

    v = (x - x_prev) * damping
    x_new = x + v + a * dt^2

    where a is gravity plus wind for particles inside the wind region.
    Pinned particles are left unchanged.
    """
    tid = wp.tid()

    if pinned[tid] != 0:
        return

    q = x[tid]
    v = (q - x_prev[tid]) * damping

    acc = gravity
    if q[0] >= wind_lo[0] and q[0] <= wind_hi[0] and q[1] >= wind_lo[1] and q[1] <= wind_hi[1]:
        acc = acc + wind

    x_prev[tid] = q
    x[tid] = q + v + acc * (dt * dt)


@wp.kernel
def solve_distance_links_2d(
    x: wp.array(dtype=wp.vec2),
    pinned: wp.array(dtype=wp.int32),
    link_indices: wp.array(dtype=int),
    link_rest_lengths: wp.array(dtype=float),
    color_links: wp.array(dtype=wp.int32),
    color_offset: int,
):
    """
    Relax one color group of distance links.

    Each thread handles one link. Links in a color group share no
    particle, so the in-place writes never race.

    correction = delta * (len - rest) / len * 0.5

    A pinned endpoint has weight 0 and the free endpoint absorbs the
    whole correction.
    """
    tid = wp.tid()

    l = color_links[color_offset + tid]
    i = link_indices[l * 2 + 0]
    j = link_indices[l * 2 + 1]

    wi = 1.0
    if pinned[i] != 0:
        wi = 0.0
    wj = 1.0
    if pinned[j] != 0:
        wj = 0.0

    w = wi + wj
    if w == 0.0:
        return

    xi = x[i]
    xj = x[j]
    delta = xj - xi
    length = wp.length(delta)

    # Direction undefined
    if length < 1.0e-6:
        return

    diff = (length - link_rest_lengths[l]) / length
    correction = delta * diff

    if wi > 0.0:
        x[i] = xi + correction * (wi / w)
    if wj > 0.0:
        x[j] = xj - correction * (wj / w)


@wp.kernel
def mark_overstretched_links_2d(
    x: wp.array(dtype=wp.vec2),
    link_indices: wp.array(dtype=int),
    link_rest_lengths: wp.array(dtype=float),
    max_ratio: float,
    keep: wp.array(dtype=wp.int32),
):
    """Flag links stretched beyond max_ratio * rest for removal (keep = 0)."""
    tid = wp.tid()

    i = link_indices[tid * 2 + 0]
    j = link_indices[tid * 2 + 1]

    length = wp.length(x[j] - x[i])
    if length > max_ratio * link_rest_lengths[tid]:
        keep[tid] = 0
    else:
        keep[tid] = 1


@wp.kernel
def validate_particles_2d(
    x: wp.array(dtype=wp.vec2),
    x_prev: wp.array(dtype=wp.vec2),
    x_rest: wp.array(dtype=wp.vec2),
    pinned: wp.array(dtype=wp.int32),
    use_bounds: int,
    lo: wp.vec2,
    hi: wp.vec2,
):
    """
    Repair non-finite positions and optionally clamp into a box.

    A non-finite particle goes back to its previous position (or its
    rest position if that is bad too) with zero velocity. Clamping moves
    the previous position as well so it adds no velocity.
    """
    tid = wp.tid()

    if pinned[tid] != 0:
        return

    q = x[tid]
    qp = x_prev[tid]

    if not (wp.isfinite(qp[0]) and wp.isfinite(qp[1])):
        qp = x_rest[tid]

    if not (wp.isfinite(q[0]) and wp.isfinite(q[1])):
        q = qp

    if use_bounds != 0:
        q = wp.vec2(wp.clamp(q[0], lo[0], hi[0]), wp.clamp(q[1], lo[1], hi[1]))
        qp = wp.vec2(wp.clamp(qp[0], lo[0], hi[0]), wp.clamp(qp[1], lo[1], hi[1]))

    x[tid] = q
    x_prev[tid] = qp
