"""
Abstract base classes for the pluggable stages of the slice pipeline.

The slice sampler only talks to these interfaces, so the estimator and the
inside/outside test can be swapped (exact ray casting vs. bounding-sphere
heuristic, IDW vs. another scattered-data scheme) without touching the
sampling loop.
"""

from abc import ABC, abstractmethod
from typing import Any
import numpy as np
import numpy.typing as npt


NDArrayFloat = npt.NDArray[np.float64]
NDArrayBool = npt.NDArray[np.bool_]


class ScalarEstimator(ABC):
    """
    Estimates a scalar field at arbitrary points from scattered samples.

    Implementations: IDWInterpolator.
    """

    @abstractmethod
    def estimate(self, point: NDArrayFloat, k: int) -> Any:
        """
        Estimate the field at ``point``.

        Parameters
        ----------
        point : NDArrayFloat, shape (3,)
            Query position in the sample frame.
        k : int
            Neighbour count.

        Returns
        -------
        estimate : Estimate
            ``(value, has_data)`` pair.
        """
        pass


class ContainmentOracle(ABC):
    """
    Decides whether points lie inside the solid bounded by a mesh.

    Implementations: RayParityContainment (exact), BoundingSphereContainment
    (approximate). Both work in the display frame of the mesh they were
    built for.
    """

    @abstractmethod
    def contains(self, points: NDArrayFloat) -> NDArrayBool:
        """
        Vectorised inside test.

        Parameters
        ----------
        points : NDArrayFloat, shape (N, 3)
            Display-frame positions.

        Returns
        -------
        inside : NDArrayBool, shape (N,)
        """
        pass

    def is_inside(self, point: NDArrayFloat) -> bool:
        """Inside test for a single point."""
        return bool(self.contains(np.asarray(point, dtype=np.float64).reshape(1, 3))[0])

    @property
    @abstractmethod
    def strategy(self) -> str:
        """Name of the containment strategy ('raycast' or 'bounding_sphere')."""
        pass
