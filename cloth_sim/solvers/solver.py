# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Base solver class for 2D cloth simulations

import numpy as np


class SolverBase:
    """
    Generic base class for 2D cloth solvers.

    Holds the model and defines the interface that concrete solvers
    must implement. Also provides the link strain readout used for
    visualization.
    """

    def __init__(self, model):
        """
        Initialize the solver with a model.

        Args:
            model: The 2D Model object containing system description
        """
        self.model = model

    @property
    def device(self):
        """
        Get the device used by the solver.

        Returns:
            The device used by the solver
        """
        return self.model.device

    def step(self, state, dt: float):
        """
        Advance the state in place by one frame.

        Must be implemented by concrete solver subclasses.

        Args:
            state: The state to advance
            dt: The time step (in seconds)
        """
        raise NotImplementedError("Concrete solvers must implement step()")

    def link_strains(self, state) -> np.ndarray:
        """
        Raw strain per active link, ε = (L - L₀) / L₀.

        Positive values are tension, negative values compression. The
        result is aligned with model.link_pairs().

        Args:
            state: The state to measure

        Returns:
            Strain array of shape [link_count]
        """
        model = self.model
        if model.link_count == 0:
            return np.zeros(0, dtype=np.float32)

        q = state.particle_q.numpy()
        pairs = model.link_pairs()
        rest = model.link_rest_lengths()

        lengths = np.linalg.norm(q[pairs[:, 1]] - q[pairs[:, 0]], axis=1)
        return (lengths - rest) / rest
