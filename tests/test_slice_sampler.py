"""
Tests for slice-plane sampling.

Validates:
- Pixel layout and in-plane axis mapping
- Masking outside the mesh and for planes that miss it
- Display → sample frame mapping before interpolation
- Row-wise cancellation
"""

import pytest
import numpy as np

from meshslice.core.session import SliceSession, SessionConfig
from meshslice.mesh.handle import MeshHandle
from meshslice.samples.store import SampleStore
from meshslice.slicing.sampler import (
    Axis,
    SliceSpec,
    SliceSampler,
    SliceCancelled,
    RawSlice,
    plane_coordinates,
    slice_half_size,
    slice_points,
)


def _state(store, mesh, **config):
    session = SliceSession(SessionConfig(**config))
    session.set_store(store)
    session.load_mesh(mesh)
    return session.state


class TestAxisAndSpec:
    """Slice requests."""

    @pytest.mark.parametrize("text, axis", [("x", Axis.X), ("Y", Axis.Y), ("z", Axis.Z), (Axis.Z, Axis.Z)])
    def test_parse(self, text, axis):
        assert Axis.parse(text) is axis

    def test_parse_invalid(self):
        with pytest.raises(ValueError, match="axis must be"):
            Axis.parse("w")

    def test_in_plane_axes(self):
        assert Axis.Z.in_plane == (0, 1)
        assert Axis.X.in_plane == (1, 2)
        assert Axis.Y.in_plane == (0, 2)

    def test_spec_validation(self):
        spec = SliceSpec("Z", 3, 16)
        assert spec.axis is Axis.Z
        assert spec.value == 3.0
        with pytest.raises(ValueError, match="resolution"):
            SliceSpec(Axis.Z, 0.0, 0)
        with pytest.raises(ValueError, match="finite"):
            SliceSpec(Axis.Z, float("nan"), 8)


class TestPlaneGeometry:
    """Coordinates of pixel centres."""

    def test_plane_coordinates(self):
        np.testing.assert_allclose(plane_coordinates(5, 2.0), [-2, -1, 0, 1, 2])
        np.testing.assert_array_equal(plane_coordinates(1, 2.0), [0.0])

    def test_half_size_uses_in_plane_bounds(self):
        lo, hi = np.array([-1.0, -4.0, -20.0]), np.array([2.0, 3.0, 20.0])
        assert slice_half_size(lo, hi, Axis.Z, margin=1.0) == 4.0
        assert slice_half_size(lo, hi, Axis.X, margin=1.1) == pytest.approx(22.0)

    def test_slice_points_layout(self):
        points = slice_points(SliceSpec(Axis.X, 7.0, 3), half_size=1.0)
        assert points.shape == (3, 3, 3)
        np.testing.assert_array_equal(points[..., 0], 7.0)
        # column i walks u (= y), row j walks v (= z)
        np.testing.assert_array_equal(points[0, :, 1], [-1, 0, 1])
        np.testing.assert_array_equal(points[:, 0, 2], [-1, 0, 1])


class TestSliceSampler:
    """Whole-raster sampling."""

    def test_box_slice_mask(self):
        state = _state(SampleStore.load(["0 0 0 1", "1 1 1 2"]), MeshHandle.box())
        raw = SliceSampler().sample(SliceSpec(Axis.Z, 0.0, 8), state)

        # Display box half-width 50/sqrt(3); raster half-width is 1.1x that
        inner = np.zeros((8, 8), dtype=bool)
        inner[1:7, 1:7] = True
        np.testing.assert_array_equal(raw.mask, inner)
        assert raw.n_inside == 36
        assert raw.half_size == pytest.approx(1.1 * 50.0 / np.sqrt(3.0))
        assert np.all(raw.values[~raw.mask] == 0.0)
        assert 1.0 <= raw.min_value <= raw.max_value <= 2.0

    def test_constant_field(self):
        store = SampleStore.from_arrays(np.random.default_rng(0).uniform(-1, 1, (30, 3)), np.full(30, 7.0))
        state = _state(store, MeshHandle.box())
        raw = SliceSampler().sample(SliceSpec(Axis.Y, 0.0, 6), state)
        np.testing.assert_allclose(raw.values[raw.mask], 7.0)
        assert raw.min_value == pytest.approx(7.0)
        assert raw.max_value == pytest.approx(7.0)

    def test_empty_store_fully_masked(self):
        state = _state(SampleStore.empty(), MeshHandle.box())
        raw = SliceSampler().sample(SliceSpec(Axis.Z, 0.0, 8), state)
        assert raw.n_inside == 0
        assert raw.min_value is None
        assert raw.max_value is None

    def test_plane_outside_mesh_fully_masked(self):
        state = _state(SampleStore.load(["0 0 0 1"]), MeshHandle.box())
        raw = SliceSampler().sample(SliceSpec(Axis.Z, 40.0, 8), state)
        assert raw.n_inside == 0
        assert raw.min_value is None

    def test_slice_points_mapped_back_to_sample_frame(self):
        """
        Samples sit in the original frame far from the display origin; only
        an inverse-transformed lookup splits the slice into left and right.
        """
        store = SampleStore.load(["101 105 105 0", "109 105 105 100"])
        state = _state(store, MeshHandle.box((100, 100, 100), (110, 110, 110)), k_neighbours=1)

        raw = SliceSampler(k=1).sample(SliceSpec(Axis.Z, 0.0, 9), state)

        assert raw.mask[1:8, 1:8].all()
        np.testing.assert_array_equal(raw.values[1:8, 1:4], 0.0)
        np.testing.assert_array_equal(raw.values[1:8, 5:8], 100.0)

    def test_requires_mesh(self):
        session = SliceSession()
        session.set_store(SampleStore.load(["0 0 0 1"]))
        with pytest.raises(RuntimeError, match="No mesh"):
            SliceSampler().sample(SliceSpec(Axis.Z, 0.0, 4), session.state)

    def test_cancellation_checked_per_row(self):
        state = _state(SampleStore.load(["0 0 0 1"]), MeshHandle.box())
        calls = []

        def should_cancel():
            calls.append(1)
            return len(calls) > 2

        with pytest.raises(SliceCancelled):
            SliceSampler().sample(SliceSpec(Axis.Z, 0.0, 16), state, should_cancel)
        assert len(calls) == 3

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            SliceSampler(k=0)
        with pytest.raises(ValueError):
            SliceSampler(margin=0.0)


def test_masked_raw_slice():
    raw = RawSlice.masked(4, half_size=2.0)
    assert raw.values.shape == (4, 4)
    assert raw.n_inside == 0
    assert raw.half_size == 2.0
