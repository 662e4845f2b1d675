"""
Regular-grid sampling of an axis-aligned slice plane.

For a ``resolution × resolution`` raster on the plane ``axis = value`` (display
frame), each pixel centre is mapped to a 3D point, tested against the
containment oracle, and, when inside, interpolated from the scattered samples
after mapping back into the sample frame.

Pixel layout: in-plane axes are z → (x, y), x → (y, z), y → (x, z). Pixel
``(i, j)`` sits at ``u = U[i]``, ``v = V[j]`` with ``U = V = linspace(-h, h, res)``
and is stored at ``[j, i]`` (row = v), matching the texture layout of the
viewer. ``h`` is the slice margin times the largest absolute bound of the
display-frame mesh on the two in-plane axes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, Union
import numpy as np
import numpy.typing as npt

from meshslice.core.state import SessionState
from meshslice.mesh.containment import slice_intersects_bounds
from meshslice.samples.interpolator import DEFAULT_K

NDArrayFloat = npt.NDArray[np.float64]
NDArrayBool = npt.NDArray[np.bool_]

DEFAULT_RESOLUTION = 64
DEFAULT_MARGIN = 1.1


class SliceCancelled(RuntimeError):
    """Raised inside a slice computation superseded by a newer request."""


class Axis(str, Enum):
    X = "x"
    Y = "y"
    Z = "z"

    @classmethod
    def parse(cls, axis: Union["Axis", str]) -> "Axis":
        if isinstance(axis, Axis):
            return axis
        try:
            return cls(str(axis).lower())
        except ValueError as e:
            raise ValueError(f"axis must be 'x', 'y', or 'z', got '{axis}'") from e

    @property
    def dim(self) -> int:
        return "xyz".index(self.value)

    @property
    def in_plane(self) -> Tuple[int, int]:
        """Coordinate indices spanned by ``(u, v)`` on a slice normal to this axis."""
        return {Axis.X: (1, 2), Axis.Y: (0, 2), Axis.Z: (0, 1)}[self]


@dataclass(frozen=True)
class SliceSpec:
    """
    Requested slice: plane ``axis = value`` in the display frame, sampled on
    a square ``resolution × resolution`` grid.
    """

    axis: Axis
    value: float
    resolution: int = DEFAULT_RESOLUTION

    def __post_init__(self):
        object.__setattr__(self, "axis", Axis.parse(self.axis))
        object.__setattr__(self, "value", float(self.value))
        if not np.isfinite(self.value):
            raise ValueError(f"slice value must be finite, got {self.value}")
        if int(self.resolution) != self.resolution or self.resolution < 1:
            raise ValueError(f"resolution must be a positive integer, got {self.resolution}")
        object.__setattr__(self, "resolution", int(self.resolution))


@dataclass(frozen=True)
class RawSlice:
    """
    Interpolated values and inside mask before colour mapping.

    Attributes
    ----------
    values : NDArrayFloat, shape (res, res)
        Estimates; 0.0 wherever ``mask`` is False.
    mask : NDArrayBool, shape (res, res)
        True where the pixel is inside the solid and has data.
    min_value, max_value : float or None
        Range over masked-in pixels; None when no pixel is inside.
    half_size : float
        Half-width of the sampled square in display units.
    """

    values: NDArrayFloat
    mask: NDArrayBool
    min_value: Optional[float]
    max_value: Optional[float]
    half_size: float = 0.0

    @property
    def n_inside(self) -> int:
        return int(np.count_nonzero(self.mask))

    @classmethod
    def masked(cls, resolution: int, half_size: float = 0.0) -> "RawSlice":
        """Fully masked-out raster."""
        return cls(
            np.zeros((resolution, resolution)),
            np.zeros((resolution, resolution), dtype=bool),
            None,
            None,
            half_size,
        )


def slice_half_size(bounds_min, bounds_max, axis: Axis, margin: float = DEFAULT_MARGIN) -> float:
    """Half-width of the square covering the mesh bounds on the in-plane axes."""
    a, b = axis.in_plane
    reach = np.max(np.abs([bounds_min[a], bounds_max[a], bounds_min[b], bounds_max[b]]))
    return float(margin * reach)


def plane_coordinates(resolution: int, half_size: float) -> NDArrayFloat:
    """In-plane pixel coordinates along one raster edge."""
    if resolution == 1:
        return np.zeros(1)
    return np.linspace(-half_size, half_size, resolution)


def slice_points(spec: SliceSpec, half_size: float) -> NDArrayFloat:
    """
    Display-frame positions of every pixel.

    Returns
    -------
    points : NDArrayFloat, shape (res, res, 3)
        ``points[j, i]`` is pixel ``(i, j)``.
    """
    coords = plane_coordinates(spec.resolution, half_size)
    U, V = np.meshgrid(coords, coords, indexing="xy")  # U[j, i] = coords[i]
    a, b = spec.axis.in_plane

    points = np.empty((spec.resolution, spec.resolution, 3), dtype=np.float64)
    points[..., spec.axis.dim] = spec.value
    points[..., a] = U
    points[..., b] = V
    return points


class SliceSampler:
    """
    Samples the interpolated scalar field on a slice plane.

    Parameters
    ----------
    k : int, optional
        Neighbour count handed to the estimator (default: 4).
    margin : float, optional
        Multiplier on the mesh extent used for the raster half-width
        (default: 1.1).
    """

    def __init__(self, k: int = DEFAULT_K, margin: float = DEFAULT_MARGIN):
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        if margin <= 0.0:
            raise ValueError(f"margin must be positive, got {margin}")
        self.k = int(k)
        self.margin = float(margin)

    def sample(
        self,
        spec: SliceSpec,
        state: SessionState,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> RawSlice:
        """
        Compute the raw slice for ``spec`` from one session snapshot.

        Parameters
        ----------
        spec : SliceSpec
            Plane and resolution in the display frame.
        state : SessionState
            Samples, index, mesh, transform and oracle to use.
        should_cancel : callable, optional
            Polled once per raster row; returning True aborts with
            SliceCancelled.

        Returns
        -------
        raw : RawSlice

        Raises
        ------
        RuntimeError
            ``state`` carries no mesh.
        SliceCancelled
            ``should_cancel`` returned True.
        """
        if not state.has_mesh:
            raise RuntimeError("No mesh loaded: slices are clipped to the mesh and need one")

        mesh = state.display_mesh
        res = spec.resolution
        half_size = slice_half_size(mesh.bounds_min, mesh.bounds_max, spec.axis, self.margin)

        # Plane misses the solid entirely, or nothing to interpolate from
        if not slice_intersects_bounds(mesh.bounds_min, mesh.bounds_max, spec.axis.dim, spec.value):
            return RawSlice.masked(res, half_size)
        if state.store.n_samples == 0:
            return RawSlice.masked(res, half_size)

        points = slice_points(spec, half_size)
        world = state.transform.to_world(points)

        values = np.zeros((res, res), dtype=np.float64)
        mask = np.zeros((res, res), dtype=bool)
        estimator = state.interpolator

        for j in range(res):
            if should_cancel is not None and should_cancel():
                raise SliceCancelled(f"Slice {spec} superseded")

            inside_row = state.oracle.contains(points[j])
            for i in np.flatnonzero(inside_row):
                estimate = estimator.estimate(world[j, i], self.k)
                if estimate.has_data:
                    values[j, i] = estimate.value
                    mask[j, i] = True

        if not np.any(mask):
            return RawSlice(values, mask, None, None, half_size)

        inside_values = values[mask]
        return RawSlice(
            values,
            mask,
            float(np.min(inside_values)),
            float(np.max(inside_values)),
            half_size,
        )
