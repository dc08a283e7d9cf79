# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Solvers module for 2D cloth simulations

from .solver import SolverBase
from .verlet import SolverVerlet
from .coloring import link_coloring_2d, color_launch_order

__all__ = [
    "SolverBase",
    "SolverVerlet",
    "link_coloring_2d",
    "color_launch_order",
]
