"""
Slicing module: plane sampling, colour mapping, caching and background work.
"""

from meshslice.slicing.sampler import (
    Axis,
    SliceSpec,
    RawSlice,
    SliceSampler,
    SliceCancelled,
)
from meshslice.slicing.colormap import (
    Palette,
    PALETTES,
    ColorMapper,
    get_palette,
)
from meshslice.slicing.cache import (
    SliceCache,
    SliceKey,
    SliceRaster,
    StaleGenerationError,
)
from meshslice.slicing.worker import SliceWorker

__all__ = [
    "Axis",
    "SliceSpec",
    "RawSlice",
    "SliceSampler",
    "SliceCancelled",
    "Palette",
    "PALETTES",
    "ColorMapper",
    "get_palette",
    "SliceCache",
    "SliceKey",
    "SliceRaster",
    "StaleGenerationError",
    "SliceWorker",
]
