# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Translates pointer events into particle pushes or link removal

import warp as wp

from .events import ApplyForce, RemoveLinks
from .kernels_interaction import apply_force_in_radius_2d, mark_links_near_point_2d


class InteractionHandler:
    """
    Applies at most one pointer event per frame to a cloth.

    Modes:
        - ApplyForce: free particles within radius of the anchor are
          displaced by force * dt
        - RemoveLinks: links whose midpoint is within radius of the
          anchor are removed permanently

    A particle left without links keeps being integrated, so torn
    fragments fall under gravity.

    Example:
        >>> handler = InteractionHandler(model)
        >>> handler.apply(state, RemoveLinks(anchor=(0.5, -0.5), radius=0.1), dt=1.0 / 60.0)
    """

    def __init__(self, model):
        """
        Args:
            model: The 2D cloth Model whose links may be removed
        """
        self.model = model

    def apply(self, state, event, dt: float) -> int:
        """
        Dispatch one event.

        Args:
            state: State to mutate
            event: ApplyForce, RemoveLinks or None
            dt: Frame time used to scale the push

        Returns:
            Number of links removed (0 for pushes and no event)

        Raises:
            TypeError: If event is not one of the supported kinds
        """
        if event is None:
            return 0
        if isinstance(event, ApplyForce):
            self.apply_force(state, event.anchor, event.radius, event.force, dt)
            return 0
        if isinstance(event, RemoveLinks):
            return self.remove_links(state, event.anchor, event.radius)

        raise TypeError(f"Unsupported interaction event: {type(event).__name__}")

    def apply_force(self, state, anchor, radius: float, force, dt: float):
        """Push free particles within radius of anchor by force * dt."""
        model = self.model
        if model.particle_count == 0:
            return

        wp.launch(
            kernel=apply_force_in_radius_2d,
            dim=model.particle_count,
            inputs=[
                state.particle_q,
                model.particle_pinned,
                wp.vec2(float(anchor[0]), float(anchor[1])),
                float(radius),
                wp.vec2(float(force[0]), float(force[1])),
                float(dt),
            ],
            device=model.device,
        )

    def remove_links(self, state, anchor, radius: float) -> int:
        """
        Remove every link whose midpoint lies within radius of anchor.

        Returns:
            Number of links removed
        """
        model = self.model
        if model.link_count == 0:
            return 0

        keep = wp.zeros(model.link_count, dtype=wp.int32, device=model.device)
        wp.launch(
            kernel=mark_links_near_point_2d,
            dim=model.link_count,
            inputs=[
                state.particle_q,
                model.link_indices,
                wp.vec2(float(anchor[0]), float(anchor[1])),
                float(radius),
                keep,
            ],
            device=model.device,
        )

        return model.remove_links(keep.numpy() != 0)
