"""
meshslice: mesh-clipped scalar slices of scattered 3D samples.

Loads a cloud of ``(x, y, z, value)`` samples and a closed triangle mesh,
interpolates the samples onto axis-aligned cutting planes with inverse
distance weighting, clips the result to the inside of the mesh, and returns
cached RGBA rasters ready to be used as textures.
"""

__version__ = "1.0.0"
__author__ = "meshslice Dev Team"

# Core imports for convenience
from meshslice.core.interfaces import (
    ScalarEstimator,
    ContainmentOracle,
)
from meshslice.samples import (
    SampleStore,
    SpatialIndex,
    IDWInterpolator,
    Estimate,
)
from meshslice.mesh import (
    MeshHandle,
    DisplayTransform,
    RayParityContainment,
    BoundingSphereContainment,
    make_containment_oracle,
)
from meshslice.slicing import (
    Axis,
    SliceSpec,
    SliceSampler,
    ColorMapper,
    PALETTES,
    SliceCache,
    SliceRaster,
    SliceWorker,
)
from meshslice.core.session import SliceSession, SessionConfig

__all__ = [
    "ScalarEstimator",
    "ContainmentOracle",
    "SampleStore",
    "SpatialIndex",
    "IDWInterpolator",
    "Estimate",
    "MeshHandle",
    "DisplayTransform",
    "RayParityContainment",
    "BoundingSphereContainment",
    "make_containment_oracle",
    "Axis",
    "SliceSpec",
    "SliceSampler",
    "ColorMapper",
    "PALETTES",
    "SliceCache",
    "SliceRaster",
    "SliceWorker",
    "SliceSession",
    "SessionConfig",
]
