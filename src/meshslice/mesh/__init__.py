"""
Mesh module: triangle meshes, display normalisation and containment tests.
"""

from meshslice.mesh.handle import MeshHandle, DisplayTransform
from meshslice.mesh.containment import (
    RayParityContainment,
    BoundingSphereContainment,
    make_containment_oracle,
    slice_intersects_bounds,
    STRATEGIES,
)

__all__ = [
    "MeshHandle",
    "DisplayTransform",
    "RayParityContainment",
    "BoundingSphereContainment",
    "make_containment_oracle",
    "slice_intersects_bounds",
    "STRATEGIES",
]
