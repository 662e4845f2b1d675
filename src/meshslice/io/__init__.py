"""
I/O module: sample feeds and HDF5 slice export.
"""

from meshslice.io.samples import read_sample_file
from meshslice.io.hdf5 import (
    SliceWriter,
    write_slice,
    read_slice,
)

__all__ = [
    'read_sample_file',
    'SliceWriter',
    'write_slice',
    'read_slice',
]
