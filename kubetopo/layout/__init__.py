"""Positioning of application groups and packing onto the canvas."""

from kubetopo.layout.engine import KIND_LANES, ComponentLayout, LayoutEngine
from kubetopo.layout.packer import Canvas, pack_applications

__all__ = [
    "KIND_LANES",
    "Canvas",
    "ComponentLayout",
    "LayoutEngine",
    "pack_applications",
]
