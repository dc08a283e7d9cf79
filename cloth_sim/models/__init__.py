# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0

from .grid import ClothGridModel, PIN_POLICIES

__all__ = [
    "ClothGridModel",
    "PIN_POLICIES",
]
