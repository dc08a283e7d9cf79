# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0

from .state import State
from .model import Model

__all__ = [
    "Model",
    "State",
]
