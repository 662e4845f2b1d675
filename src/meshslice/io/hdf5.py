"""
HDF5 export of rendered slices.

Stores the RGBA buffer together with the raw estimates, the inside mask and
the legend metadata, so a slice can be re-displayed or re-coloured later
without recomputing the interpolation.

Layout:
- /slice/pixels      uint8 (H, W, 4)
- /slice/values      float64 (H, W)
- /slice/mask        bool (H, W)
- /metadata attrs    axis, value, resolution, generation, palette_id,
                     min_value, max_value, half_size, code_version,
                     creation_time

Example usage:
    >>> writer = SliceWriter()
    >>> writer.write_slice("slice_z_0.h5", raster)
    >>> data = writer.read_slice("slice_z_0.h5")
"""

import h5py
import numpy as np
from typing import Dict, Any, Optional, Union
from pathlib import Path
from datetime import datetime

from meshslice.slicing.cache import SliceRaster

# Stand-in for an undefined min/max (nothing inside the solid)
_UNDEFINED = np.nan


class SliceWriter:
    """
    HDF5-based writer for SliceRaster objects.

    Attributes
    ----------
    compression : str
        Compression algorithm (default: 'gzip')
    compression_level : int
        Compression level 0-9 (default: 4)
    code_version : str
        Version identifier stored with each file
    """

    def __init__(
        self,
        compression: Optional[str] = "gzip",
        compression_level: int = 4,
        code_version: str = "1.0.0"
    ):
        self.compression = compression
        self.compression_level = compression_level if compression == "gzip" else None
        self.code_version = code_version

    def write_slice(
        self,
        filename: Union[str, Path],
        raster: SliceRaster,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Write a slice raster to an HDF5 file.

        Parameters
        ----------
        filename : str or Path
            Output path; parent directories are created.
        raster : SliceRaster
            Slice to store.
        metadata : Dict[str, Any], optional
            Extra scalar attributes (e.g. the source sample file name).
        """
        Path(filename).parent.mkdir(parents=True, exist_ok=True)

        with h5py.File(filename, 'w') as f:
            group = f.create_group('slice')
            for key, array in (('pixels', raster.pixels), ('values', raster.values), ('mask', raster.mask)):
                group.create_dataset(
                    key,
                    data=np.asarray(array),
                    compression=self.compression,
                    compression_opts=self.compression_level,
                )

            meta = f.create_group('metadata')
            meta.attrs['axis'] = raster.spec.axis.value
            meta.attrs['value'] = raster.spec.value
            meta.attrs['resolution'] = raster.spec.resolution
            meta.attrs['generation'] = raster.generation
            meta.attrs['palette_id'] = raster.palette_id
            meta.attrs['half_size'] = raster.half_size
            meta.attrs['min_value'] = _UNDEFINED if raster.min_value is None else raster.min_value
            meta.attrs['max_value'] = _UNDEFINED if raster.max_value is None else raster.max_value
            meta.attrs['code_version'] = self.code_version
            meta.attrs['creation_time'] = datetime.now().isoformat()

            if metadata is not None:
                for key, value in metadata.items():
                    if isinstance(value, (int, float, str, bool)):
                        meta.attrs[key] = value
                    else:
                        meta.attrs[key] = str(value)

    def read_slice(self, filename: Union[str, Path]) -> Dict[str, Any]:
        """
        Read a slice written by ``write_slice``.

        Returns
        -------
        data : Dict[str, Any]
            'pixels', 'values', 'mask' arrays plus a 'metadata' dict; an
            undefined min/max comes back as None.

        Raises
        ------
        FileNotFoundError
            File does not exist.
        """
        filepath = Path(filename)
        if not filepath.exists():
            raise FileNotFoundError(f"Slice file not found: {filepath}")

        with h5py.File(filepath, 'r') as f:
            data: Dict[str, Any] = {
                key: f['slice'][key][()] for key in ('pixels', 'values', 'mask')
            }
            metadata = {}
            for key, value in f['metadata'].attrs.items():
                if isinstance(value, bytes):
                    value = value.decode('utf-8')
                elif isinstance(value, np.generic):
                    value = value.item()
                metadata[key] = value

        for key in ('min_value', 'max_value'):
            if isinstance(metadata.get(key), float) and np.isnan(metadata[key]):
                metadata[key] = None

        data['metadata'] = metadata
        return data


def write_slice(filename: Union[str, Path], raster: SliceRaster, **kwargs) -> None:
    """Convenience wrapper around SliceWriter().write_slice."""
    SliceWriter().write_slice(filename, raster, **kwargs)


def read_slice(filename: Union[str, Path]) -> Dict[str, Any]:
    """Convenience wrapper around SliceWriter().read_slice."""
    return SliceWriter().read_slice(filename)
