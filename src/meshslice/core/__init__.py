"""
Core module: interfaces, session state and the slice session orchestrator.

Only the interfaces are imported here; ``meshslice.core.state`` and
``meshslice.core.session`` depend on the samples, mesh and slicing
subpackages, which themselves implement these interfaces.
"""

from meshslice.core.interfaces import (
    ScalarEstimator,
    ContainmentOracle,
)

__all__ = [
    "ScalarEstimator",
    "ContainmentOracle",
]
