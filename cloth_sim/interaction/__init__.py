# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0

from .events import ApplyForce, RemoveLinks
from .handler import InteractionHandler

__all__ = [
    "ApplyForce",
    "RemoveLinks",
    "InteractionHandler",
]
