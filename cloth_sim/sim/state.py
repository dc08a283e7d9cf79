# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# State class for 2D cloth simulations

class State:
    """
    Represents the time-varying state of a 2D cloth simulation.
    
    Velocity is implicit in Verlet integration: it is the difference
    between the current and the previous position.
    
    Attributes:
        particle_q: Positions (vec2), shape [particle_count]
        particle_q_prev: Positions at the prior integration step (vec2), shape [particle_count]
    """
    
    def __init__(self):
        self.particle_q = None        # Positions (vec2)
        self.particle_q_prev = None   # Previous positions (vec2)
