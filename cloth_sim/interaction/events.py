# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Pointer interaction events consumed once per frame

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ApplyForce:
    """Push every free particle within radius of anchor by force * dt."""
    anchor: Tuple[float, float]
    radius: float
    force: Tuple[float, float]


@dataclass(frozen=True)
class RemoveLinks:
    """Tear every link whose midpoint lies within radius of anchor."""
    anchor: Tuple[float, float]
    radius: float
