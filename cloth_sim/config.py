# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
#
# Configuration for cloth simulations

from dataclasses import dataclass
from typing import Optional, Tuple, Union, Sequence


@dataclass
class ClothConfig:
    """Configuration for a tearable cloth simulation."""
    # Grid
    rows: int = 20
    cols: int = 30
    spacing: float = 0.1
    pin_policy: Union[str, Sequence[int]] = "top_row"
    origin: Tuple[float, float] = (0.0, 0.0)
    with_shear: bool = False
    with_bend: bool = False

    # Physics
    gravity: Tuple[float, float] = (0.0, -9.8)
    damping: float = 0.99
    iterations: int = 5
    max_dt: float = 1.0 / 30.0
    substeps: int = 1
    device: Optional[str] = None

    # Tearing (None = only explicit tears)
    tear_stretch_ratio: Optional[float] = None

    # Wind
    wind_enabled: bool = False
    wind_force: Tuple[float, float] = (1.0, 0.3)
    wind_region: Optional[Tuple[float, float, float, float]] = None

    # Clamp box (xmin, ymin, xmax, ymax)
    bounds: Optional[Tuple[float, float, float, float]] = None
