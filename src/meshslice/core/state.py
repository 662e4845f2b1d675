"""
Immutable snapshot of everything a slice computation reads.

A SliceSession swaps one SessionState for the next as a single reference
assignment, so a reader that grabbed a snapshot keeps a consistent
(store, index, mesh, transform, oracle, generation) tuple even while a
reload is being built.
"""

from dataclasses import dataclass
from typing import Optional

from meshslice.core.interfaces import ContainmentOracle
from meshslice.mesh.handle import DisplayTransform, MeshHandle
from meshslice.samples.interpolator import IDWInterpolator
from meshslice.samples.spatial_index import SpatialIndex
from meshslice.samples.store import SampleStore


@dataclass(frozen=True)
class SessionState:
    """
    Attributes
    ----------
    generation : int
        Bumped on every sample, mesh or configuration change.
    store : SampleStore
        Active samples (possibly empty).
    index : SpatialIndex
        Index built from ``store``.
    interpolator : IDWInterpolator
        Estimator over ``index``.
    mesh : MeshHandle or None
        Mesh in its original frame.
    display_mesh : MeshHandle or None
        ``mesh`` mapped into the display frame.
    transform : DisplayTransform
        Original ↔ display mapping derived from ``mesh``.
    oracle : ContainmentOracle or None
        Inside test built for ``display_mesh``.
    """

    generation: int
    store: SampleStore
    index: SpatialIndex
    interpolator: IDWInterpolator
    mesh: Optional[MeshHandle] = None
    display_mesh: Optional[MeshHandle] = None
    transform: DisplayTransform = DisplayTransform()
    oracle: Optional[ContainmentOracle] = None

    @property
    def has_mesh(self) -> bool:
        return self.display_mesh is not None
