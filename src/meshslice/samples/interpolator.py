"""
k-nearest-neighbour inverse-distance-weighted (IDW) interpolation.

Given a query point in the sample frame, the estimator gathers candidates from
the SpatialIndex, keeps the k closest, and averages their values with weights

    w_i = 1 / (d_i² + ε),   ε = 1e-6

so a sample coinciding with the query point dominates the estimate.

Candidate search starts at the configured cube radius and doubles it while
fewer than k candidates are found and the cube does not yet cover every
occupied bucket. An empty neighbourhood yields ``Estimate(0.0, False)``: the
"no data" flag travels out of band so callers mask the pixel instead of
colouring a fake zero.
"""

from typing import NamedTuple
import numpy as np
import numpy.typing as npt

from meshslice.core.interfaces import ScalarEstimator
from meshslice.samples.spatial_index import SpatialIndex, DEFAULT_SEARCH_RADIUS

NDArrayFloat = npt.NDArray[np.float64]

IDW_EPSILON = 1e-6
DEFAULT_K = 4


class Estimate(NamedTuple):
    """Interpolated value plus a flag telling whether any sample contributed."""

    value: float
    has_data: bool


NO_DATA = Estimate(0.0, False)


def select_nearest(distances_sq: NDArrayFloat, candidate_indices: npt.NDArray[np.int64], k: int):
    """
    Pick the ``k`` smallest squared distances.

    Distance ties are broken by lowest sample index, whatever the order of
    ``candidate_indices``.

    Returns
    -------
    order : np.ndarray
        Positions into ``distances_sq`` of the selected candidates.
    """
    order = np.lexsort((candidate_indices, distances_sq))
    return order[:k]


def idw_average(distances_sq: NDArrayFloat, values: NDArrayFloat, epsilon: float = IDW_EPSILON) -> float:
    """
    Inverse-distance-weighted mean of ``values``.

    Weights are normalised before the dot product, so a single contributing
    sample returns its value exactly.
    """
    weights = 1.0 / (distances_sq + epsilon)
    weights = weights / np.sum(weights)
    return float(np.dot(weights, values))


class IDWInterpolator(ScalarEstimator):
    """
    IDW estimator over a SpatialIndex.

    Parameters
    ----------
    index : SpatialIndex
        Index over the active SampleStore.
    search_radius_cells : int, optional
        Initial neighbourhood radius in cells (default: 2).
    epsilon : float, optional
        Distance regulariser (default: 1e-6).

    Examples
    --------
    >>> store = SampleStore.load(["0 0 0 10", "10 0 0 20"])
    >>> interp = IDWInterpolator(SpatialIndex.build(store))
    >>> interp.estimate((5.0, 0.0, 0.0), k=2)
    Estimate(value=15.0, has_data=True)
    """

    def __init__(
        self,
        index: SpatialIndex,
        search_radius_cells: int = DEFAULT_SEARCH_RADIUS,
        epsilon: float = IDW_EPSILON,
    ):
        if search_radius_cells < 0:
            raise ValueError(f"search_radius_cells must be >= 0, got {search_radius_cells}")
        self.index = index
        self.search_radius_cells = int(search_radius_cells)
        self.epsilon = float(epsilon)

    def candidates(self, point, k: int):
        """
        Candidate sample indices for ``point``, expanding the cube until at
        least ``k`` are found or the whole grid is covered.
        """
        radius = self.search_radius_cells
        found = self.index.query_neighborhood(point, radius)
        if len(found) >= k:
            return found

        limit = self.index.covering_radius(point)
        while len(found) < k and radius < limit:
            radius = min(max(1, radius * 2), limit)
            found = self.index.query_neighborhood(point, radius)
        return found

    def estimate(self, point, k: int = DEFAULT_K) -> Estimate:
        """
        Interpolate the scalar field at ``point``.

        Parameters
        ----------
        point : array_like, shape (3,)
            Query position in the sample frame.
        k : int, optional
            Number of nearest neighbours to average (default: 4). Fewer are
            used when fewer exist.

        Returns
        -------
        estimate : Estimate
            ``(value, has_data)``; ``has_data`` is False when no sample is
            reachable, in which case ``value`` is 0.0.
        """
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")

        found = self.candidates(point, k)
        if not found:
            return NO_DATA

        store = self.index.store
        candidate_indices = np.asarray(found, dtype=np.int64)
        offsets = store.positions[candidate_indices] - np.asarray(point, dtype=np.float64)
        distances_sq = np.einsum("ij,ij->i", offsets, offsets)

        nearest = select_nearest(distances_sq, candidate_indices, k)
        value = idw_average(
            distances_sq[nearest],
            store.values[candidate_indices[nearest]],
            self.epsilon,
        )
        return Estimate(value, True)
