# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Verlet integration + iterative distance-link relaxation for 2D cloth

from .solver_verlet import SolverVerlet

__all__ = [
    "SolverVerlet",
]
