# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Tearable 2D cloth: Verlet particles linked by distance constraints

from .config import ClothConfig
from .interaction import ApplyForce, RemoveLinks
from .simulation import (
    Phase,
    SimulationState,
    build,
    link_count,
    links,
    particle_count,
    positions,
    queue_event,
    reset,
    set_gravity,
    set_wind,
    step,
)

__all__ = [
    "ApplyForce",
    "ClothConfig",
    "Phase",
    "RemoveLinks",
    "SimulationState",
    "build",
    "link_count",
    "links",
    "particle_count",
    "positions",
    "queue_event",
    "reset",
    "set_gravity",
    "set_wind",
    "step",
]
