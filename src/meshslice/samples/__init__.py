"""
Samples module: scalar sample storage, spatial hashing and IDW interpolation.
"""

from meshslice.samples.store import (
    SampleStore,
    ScalarSample,
    ParseError,
    MalformedLine,
    parse_sample_line,
)
from meshslice.samples.spatial_index import SpatialIndex
from meshslice.samples.interpolator import (
    IDWInterpolator,
    Estimate,
    NO_DATA,
    idw_average,
)

__all__ = [
    "SampleStore",
    "ScalarSample",
    "ParseError",
    "MalformedLine",
    "parse_sample_line",
    "SpatialIndex",
    "IDWInterpolator",
    "Estimate",
    "NO_DATA",
    "idw_average",
]
