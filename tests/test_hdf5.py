"""Tests for HDF5 export of slice rasters."""

import pytest
import numpy as np

from meshslice.core.session import SliceSession, SessionConfig
from meshslice.mesh.handle import MeshHandle
from meshslice.io import SliceWriter, write_slice, read_slice


@pytest.fixture
def raster():
    session = SliceSession(SessionConfig(default_resolution=12))
    session.load_samples(["-1 -1 0 0", "1 1 0 10", "0 0 0 4"])
    session.load_mesh(MeshHandle.box())
    return session.render_slice("z", 0.0, palette_id="plasma")


class TestSliceWriter:

    def test_round_trip(self, tmp_path, raster):
        path = tmp_path / "out" / "slice.h5"
        writer = SliceWriter()
        writer.write_slice(path, raster, metadata={"source": "field.txt"})

        data = writer.read_slice(path)
        np.testing.assert_array_equal(data["pixels"], raster.pixels)
        np.testing.assert_array_equal(data["values"], raster.values)
        np.testing.assert_array_equal(data["mask"], raster.mask)

        meta = data["metadata"]
        assert meta["axis"] == "z"
        assert meta["palette_id"] == "plasma"
        assert meta["resolution"] == 12
        assert meta["generation"] == raster.generation
        assert meta["min_value"] == pytest.approx(raster.min_value)
        assert meta["max_value"] == pytest.approx(raster.max_value)
        assert meta["source"] == "field.txt"
        assert "creation_time" in meta

    def test_undefined_range_reads_back_as_none(self, tmp_path):
        session = SliceSession()
        session.load_mesh(MeshHandle.box())
        empty = session.render_slice("x", 0.0, 4)

        path = tmp_path / "empty.h5"
        write_slice(path, empty)
        meta = read_slice(path)["metadata"]
        assert meta["min_value"] is None
        assert meta["max_value"] is None

    def test_uncompressed(self, tmp_path, raster):
        path = tmp_path / "plain.h5"
        SliceWriter(compression=None).write_slice(path, raster)
        assert read_slice(path)["pixels"].shape == (12, 12, 4)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Slice file not found"):
            read_slice(tmp_path / "missing.h5")
