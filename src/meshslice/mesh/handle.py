"""
Triangle mesh handle and display-frame transform.

The mesh is consumed only as a bounding volume: vertex/face arrays, its
axis-aligned bounds and bounding sphere. For display, the mesh is recentred
on its bounding-box centre and uniformly rescaled so its bounding sphere has a
fixed reference radius (50 units). Slices are requested in that display
frame, while samples live in the original frame, so every slice point goes
through ``DisplayTransform.to_world`` before interpolation.
"""

from dataclasses import dataclass
from typing import Tuple
import numpy as np
import numpy.typing as npt

NDArrayFloat = npt.NDArray[np.float64]
NDArrayInt = npt.NDArray[np.int64]

DEFAULT_TARGET_RADIUS = 50.0


class MeshHandle:
    """
    Immutable triangle soup with cached bounds.

    Attributes
    ----------
    vertices : NDArrayFloat, shape (V, 3)
    faces : NDArrayInt, shape (F, 3)
        Vertex indices per triangle.
    bounds_min, bounds_max : NDArrayFloat, shape (3,)
        Axis-aligned bounding box.
    """

    def __init__(self, vertices: NDArrayFloat, faces: NDArrayInt):
        vertices = np.array(vertices, dtype=np.float64).reshape(-1, 3)
        faces = np.array(faces, dtype=np.int64).reshape(-1, 3)

        if len(vertices) == 0:
            raise ValueError("Mesh has no vertices")
        if not np.all(np.isfinite(vertices)):
            raise ValueError("Mesh vertices contain NaN or infinite entries")
        if len(faces) and (faces.min() < 0 or faces.max() >= len(vertices)):
            raise ValueError("Mesh faces reference out-of-range vertices")

        vertices.setflags(write=False)
        faces.setflags(write=False)
        self.vertices = vertices
        self.faces = faces
        self.bounds_min = np.min(vertices, axis=0)
        self.bounds_max = np.max(vertices, axis=0)

    @classmethod
    def box(cls, lower=(-1.0, -1.0, -1.0), upper=(1.0, 1.0, 1.0)) -> "MeshHandle":
        """Closed, outward-wound axis-aligned box (12 triangles)."""
        (x0, y0, z0), (x1, y1, z1) = lower, upper
        vertices = [
            [x0, y0, z0], [x1, y0, z0], [x1, y1, z0], [x0, y1, z0],
            [x0, y0, z1], [x1, y0, z1], [x1, y1, z1], [x0, y1, z1],
        ]
        faces = [
            [0, 2, 1], [0, 3, 2],  # -z
            [4, 5, 6], [4, 6, 7],  # +z
            [0, 1, 5], [0, 5, 4],  # -y
            [3, 7, 6], [3, 6, 2],  # +y
            [0, 4, 7], [0, 7, 3],  # -x
            [1, 2, 6], [1, 6, 5],  # +x
        ]
        return cls(vertices, faces)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def triangles(self) -> NDArrayFloat:
        """Corner coordinates per face, shape (F, 3, 3)."""
        return self.vertices[self.faces]

    @property
    def center(self) -> NDArrayFloat:
        """Bounding-box centre."""
        return 0.5 * (self.bounds_min + self.bounds_max)

    @property
    def bounding_sphere(self) -> Tuple[NDArrayFloat, float]:
        """
        ``(center, radius)`` of the sphere around the bounding-box centre
        enclosing every vertex.
        """
        center = self.center
        radius = float(np.max(np.linalg.norm(self.vertices - center, axis=1)))
        return center, radius

    def transformed(self, transform: "DisplayTransform") -> "MeshHandle":
        """Copy of the mesh with vertices mapped into the display frame."""
        return MeshHandle(transform.to_display(self.vertices), self.faces)

    def __repr__(self) -> str:
        return f"MeshHandle(n_vertices={len(self.vertices)}, n_faces={self.n_faces})"


@dataclass(frozen=True)
class DisplayTransform:
    """
    Uniform recentre-and-scale mapping between the original mesh frame and
    the display frame.

    ``display = (world - center) * scale`` and
    ``world = display / scale + center``.
    """

    center: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    scale: float = 1.0

    def __post_init__(self):
        if not (np.isfinite(self.scale) and self.scale > 0.0):
            raise ValueError(f"scale must be finite and positive, got {self.scale}")

    @classmethod
    def from_mesh(cls, mesh: MeshHandle, target_radius: float = DEFAULT_TARGET_RADIUS) -> "DisplayTransform":
        """
        Transform that centres ``mesh`` on its bounding-box centre and maps
        its bounding-sphere radius to ``target_radius``.

        A degenerate (single point) mesh keeps ``scale = 1``.
        """
        center, radius = mesh.bounding_sphere
        scale = target_radius / radius if radius > 0.0 else 1.0
        return cls(center=tuple(float(c) for c in center), scale=float(scale))

    def to_display(self, points) -> NDArrayFloat:
        return (np.asarray(points, dtype=np.float64) - np.asarray(self.center)) * self.scale

    def to_world(self, points) -> NDArrayFloat:
        return np.asarray(points, dtype=np.float64) / self.scale + np.asarray(self.center)
