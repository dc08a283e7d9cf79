# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Per-frame orchestration and the host-facing API

from dataclasses import replace
from enum import Enum

import numpy as np

from .config import ClothConfig
from .interaction import InteractionHandler
from .models import ClothGridModel
from .solvers import SolverVerlet


class Phase(Enum):
    IDLE = "idle"
    INTERACTION_PENDING = "interaction_pending"


class SimulationState:
    """
    Everything one cloth needs between frames.

    Hosts hold this object and pass it to step(); there is no global
    simulation state. Calls must not overlap.

    Attributes:
        config: The ClothConfig the cloth was built from
        model: ClothGridModel (particle arena + link graph)
        state: State (current and previous positions)
        solver: SolverVerlet (integrator + constraint solver)
        handler: InteractionHandler
        phase: IDLE, or INTERACTION_PENDING once an event is queued
        frame: Number of completed steps
        links_torn: Total links removed so far
    """

    def __init__(self, config: ClothConfig, model, state, solver, handler):
        self.config = config
        self.model = model
        self.state = state
        self.solver = solver
        self.handler = handler

        self.phase = Phase.IDLE
        self.pending_event = None
        self.frame = 0
        self.links_torn = 0


def build(rows=None, columns=None, spacing=None, pin_policy=None, config=None, **options) -> SimulationState:
    """
    Construct a cloth at rest.

    Explicit arguments override fields of config (or of the default
    ClothConfig); any other ClothConfig field may be passed by keyword.

    Example:
        >>> sim = build(3, 3, 1.0, "top_row", device="cpu")
        >>> step(sim, 1.0 / 60.0)
        >>> positions(sim).shape
        (9, 2)

    Raises:
        ValueError: On an invalid configuration
        TypeError: On an unknown option name
    """
    overrides = {
        key: value
        for key, value in (("rows", rows), ("cols", columns), ("spacing", spacing), ("pin_policy", pin_policy))
        if value is not None
    }
    overrides.update(options)
    config = replace(config or ClothConfig(), **overrides)

    model = ClothGridModel(
        rows=config.rows,
        cols=config.cols,
        spacing=config.spacing,
        pin_policy=config.pin_policy,
        origin=config.origin,
        gravity=config.gravity,
        with_shear=config.with_shear,
        with_bend=config.with_bend,
        device=config.device,
    )
    solver = SolverVerlet(
        model,
        iterations=config.iterations,
        damping=config.damping,
        max_dt=config.max_dt,
        substeps=config.substeps,
        tear_stretch_ratio=config.tear_stretch_ratio,
        wind_enabled=config.wind_enabled,
        wind_force=config.wind_force,
        wind_region=config.wind_region,
        bounds=config.bounds,
    )

    return SimulationState(config, model, model.state(), solver, InteractionHandler(model))


def queue_event(sim: SimulationState, event):
    """
    Queue the pointer event for the next step.

    Only one event is applied per frame; queuing again replaces it.
    Queuing None clears it.
    """
    sim.pending_event = event
    sim.phase = Phase.IDLE if event is None else Phase.INTERACTION_PENDING


def step(sim: SimulationState, dt: float, event=None):
    """
    Advance the cloth by one frame, in place.

    Order:
        1. Apply the interaction event (argument, else the queued one)
        2. Integrate
        3. Relax links K times
        4. Validate positions

    Args:
        sim: The simulation to advance
        dt: Elapsed frame time in seconds, clamped to config.max_dt
        event: ApplyForce, RemoveLinks or None

    Raises:
        TypeError: If the event is not ApplyForce or RemoveLinks
    """
    if event is None:
        event = sim.pending_event

    # The queued event is consumed even if dispatching it raises
    sim.pending_event = None
    sim.phase = Phase.IDLE

    dt = sim.solver.clamp_dt(dt)

    if event is not None:
        sim.links_torn += sim.handler.apply(sim.state, event, dt)

    sim.links_torn += sim.solver.step(sim.state, dt)
    sim.frame += 1


def positions(sim: SimulationState) -> np.ndarray:
    """Current particle positions, read-only (N, 2), ordered by particle index."""
    q = sim.state.particle_q.numpy().copy()
    q.flags.writeable = False
    return q


def links(sim: SimulationState) -> np.ndarray:
    """Active links as read-only (M, 2) index pairs with a < b."""
    return sim.model.link_pairs()


def particle_count(sim: SimulationState) -> int:
    return sim.model.particle_count


def link_count(sim: SimulationState) -> int:
    return sim.model.link_count


def set_wind(sim: SimulationState, enabled: bool, force=None):
    """Toggle wind at runtime."""
    sim.solver.set_wind(enabled, force)


def reset(sim: SimulationState) -> SimulationState:
    """Build a fresh cloth from the same configuration; sim is left untouched."""
    return build(config=sim.config)


def set_gravity(sim: SimulationState, gravity):
    """Change gravity at runtime; takes effect on the next step."""
    sim.model.set_gravity(tuple(gravity))
    sim.solver.invalidate_gravity_cache()
