"""
Uniform-grid spatial index for scattered samples.

Samples are bucketed into cubic cells of side ``cell_size`` anchored at the
bounding-box minimum. Neighbourhood queries collect every sample in the
``(2r+1)^3`` cube of cells around the query cell.

Design:
- Built in one pass from a SampleStore, never partially updated
- Small cubes are walked cell by cell through the bucket dict; when the cube
  has more cells than there are occupied buckets, occupied keys are filtered
  with a vectorised Chebyshev-distance test instead
- Returned index lists are sorted, so downstream tie-breaking by sample index
  is deterministic
"""

from typing import Dict, List, Tuple
import numpy as np
import numpy.typing as npt

from meshslice.samples.store import SampleStore

NDArrayFloat = npt.NDArray[np.float64]
CellKey = Tuple[int, int, int]

DEFAULT_GRID_RESOLUTION = 50
DEFAULT_SEARCH_RADIUS = 2


class SpatialIndex:
    """
    Bucketed view over exactly one SampleStore.

    Attributes
    ----------
    store : SampleStore
        Samples the index was built from.
    cell_size : float
        Side length of one cubic bucket.
    origin : NDArrayFloat, shape (3,)
        Bounding-box minimum of the sample positions (zeros when empty).
    buckets : Dict[CellKey, List[int]]
        Sample indices per occupied cell, ascending.
    """

    def __init__(
        self,
        store: SampleStore,
        cell_size: float,
        origin: NDArrayFloat,
        buckets: Dict[CellKey, List[int]],
    ):
        self.store = store
        self.cell_size = float(cell_size)
        self.origin = np.asarray(origin, dtype=np.float64)
        self.buckets = buckets

        if buckets:
            self._keys = np.array(list(buckets.keys()), dtype=np.int64)
            self._key_min = self._keys.min(axis=0)
            self._key_max = self._keys.max(axis=0)
        else:
            self._keys = np.zeros((0, 3), dtype=np.int64)
            self._key_min = np.zeros(3, dtype=np.int64)
            self._key_max = np.zeros(3, dtype=np.int64)
        self._bucket_lists = list(buckets.values())

    @classmethod
    def build(
        cls,
        store: SampleStore,
        grid_resolution: int = DEFAULT_GRID_RESOLUTION,
    ) -> "SpatialIndex":
        """
        Bucket every sample of ``store``.

        Parameters
        ----------
        store : SampleStore
            Samples to index.
        grid_resolution : int, optional
            Number of cells along the longest bounding-box edge (default: 50).
            Larger values shrink buckets and candidate lists at the cost of
            more empty cells.

        Returns
        -------
        index : SpatialIndex

        Notes
        -----
        A zero extent (no sample, one sample, or all samples coincident)
        falls back to ``cell_size = 1``.
        """
        if grid_resolution < 1:
            raise ValueError(f"grid_resolution must be >= 1, got {grid_resolution}")

        if store.n_samples == 0:
            return cls(store, 1.0, np.zeros(3), {})

        pos_min, pos_max = store.bounds
        extent = float(np.max(pos_max - pos_min))
        cell_size = extent / grid_resolution if extent > 0.0 else 1.0

        cells = np.floor((store.positions - pos_min) / cell_size).astype(np.int64)

        buckets: Dict[CellKey, List[int]] = {}
        for i, (cx, cy, cz) in enumerate(cells.tolist()):
            buckets.setdefault((cx, cy, cz), []).append(i)

        return cls(store, cell_size, pos_min, buckets)

    @property
    def n_buckets(self) -> int:
        return len(self.buckets)

    def cell_of(self, point) -> CellKey:
        """Bucket key containing ``point``."""
        cell = np.floor((np.asarray(point, dtype=np.float64) - self.origin) / self.cell_size)
        return int(cell[0]), int(cell[1]), int(cell[2])

    def covering_radius(self, point) -> int:
        """
        Smallest search radius whose cube around ``point`` covers every
        occupied bucket.
        """
        if not self.buckets:
            return 0
        center = np.array(self.cell_of(point), dtype=np.int64)
        reach = np.maximum(np.abs(self._key_min - center), np.abs(self._key_max - center))
        return int(np.max(reach))

    def query_neighborhood(self, point, search_radius_cells: int = DEFAULT_SEARCH_RADIUS) -> List[int]:
        """
        Sample indices in the cube of buckets around ``point``.

        Parameters
        ----------
        point : array_like, shape (3,)
            Query position in the sample frame.
        search_radius_cells : int, optional
            Cube half-width in cells (default: 2). The cube spans
            ``(2r+1)^3`` cells.

        Returns
        -------
        indices : list of int
            Ascending sample indices. Growing the radius never drops an index.
        """
        if search_radius_cells < 0:
            raise ValueError(f"search_radius_cells must be >= 0, got {search_radius_cells}")
        if not self.buckets:
            return []

        r = int(search_radius_cells)
        cx, cy, cz = self.cell_of(point)
        found: List[int] = []

        if (2 * r + 1) ** 3 <= len(self.buckets):
            for i in range(cx - r, cx + r + 1):
                for j in range(cy - r, cy + r + 1):
                    for k in range(cz - r, cz + r + 1):
                        bucket = self.buckets.get((i, j, k))
                        if bucket:
                            found.extend(bucket)
        else:
            center = np.array([cx, cy, cz], dtype=np.int64)
            within = np.max(np.abs(self._keys - center), axis=1) <= r
            for b in np.flatnonzero(within):
                found.extend(self._bucket_lists[b])

        found.sort()
        return found

    def __repr__(self) -> str:
        return (
            f"SpatialIndex(n_samples={self.store.n_samples}, n_buckets={self.n_buckets}, "
            f"cell_size={self.cell_size:.4g})"
        )
