"""
Pygame Renderer for Tearable Cloth.

This module provides the drawing side of the interactive demo (demo.py).
It only consumes positions and links exposed by cloth_sim.

Main classes:
- Renderer: pygame-based drawing and pixel <-> world mapping
"""

from .renderer import Renderer

__all__ = ['Renderer']
