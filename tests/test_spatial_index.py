"""Tests for the uniform-grid spatial index."""

import pytest
import numpy as np

from meshslice.samples.store import SampleStore
from meshslice.samples.spatial_index import SpatialIndex


def _random_store(n=200, seed=0):
    rng = np.random.default_rng(seed)
    return SampleStore.from_arrays(rng.uniform(-5.0, 5.0, (n, 3)), rng.normal(size=n))


class TestSpatialIndexBuild:
    """Bucketing rules."""

    def test_cell_size_from_longest_edge(self):
        store = SampleStore.load(["0 0 0 1", "10 2 1 2"])
        index = SpatialIndex.build(store, grid_resolution=50)
        assert index.cell_size == pytest.approx(0.2)
        np.testing.assert_array_equal(index.origin, [0, 0, 0])

    def test_zero_extent_uses_unit_cells(self):
        store = SampleStore.load(["3 3 3 1", "3 3 3 2"])
        index = SpatialIndex.build(store)
        assert index.cell_size == 1.0
        assert index.n_buckets == 1
        assert index.buckets[(0, 0, 0)] == [0, 1]

    def test_empty_store(self):
        index = SpatialIndex.build(SampleStore.empty())
        assert index.n_buckets == 0
        assert index.query_neighborhood((0, 0, 0), 5) == []
        assert index.covering_radius((0, 0, 0)) == 0

    def test_every_sample_in_exactly_one_bucket(self):
        store = _random_store()
        index = SpatialIndex.build(store, grid_resolution=7)
        all_indices = sorted(i for bucket in index.buckets.values() for i in bucket)
        assert all_indices == list(range(store.n_samples))

    def test_invalid_resolution(self):
        with pytest.raises(ValueError):
            SpatialIndex.build(SampleStore.empty(), grid_resolution=0)


class TestQueryNeighborhood:
    """Cube queries."""

    def test_results_are_sorted_and_unique(self):
        index = SpatialIndex.build(_random_store(), grid_resolution=10)
        found = index.query_neighborhood((0.0, 0.0, 0.0), 2)
        assert found == sorted(set(found))

    def test_growing_radius_never_drops_indices(self):
        index = SpatialIndex.build(_random_store(), grid_resolution=10)
        point = (1.0, -2.0, 0.5)
        previous = set()
        for r in range(0, 12):
            found = set(index.query_neighborhood(point, r))
            assert previous <= found
            previous = found
        assert len(previous) == index.store.n_samples

    def test_matches_brute_force_cube(self):
        """Dict walk and vectorised key filter agree with a direct cell test."""
        store = _random_store(n=300, seed=3)
        index = SpatialIndex.build(store, grid_resolution=12)
        cells = np.floor((store.positions - index.origin) / index.cell_size).astype(int)

        point = np.array([0.3, 0.1, -1.2])
        center = np.array(index.cell_of(point))
        for r in (0, 1, 2, 6):
            expected = np.flatnonzero(np.max(np.abs(cells - center), axis=1) <= r).tolist()
            assert index.query_neighborhood(point, r) == expected

    def test_far_query_outside_grid(self):
        index = SpatialIndex.build(_random_store(), grid_resolution=10)
        assert index.query_neighborhood((1000.0, 1000.0, 1000.0), 2) == []

    def test_covering_radius_reaches_every_bucket(self):
        index = SpatialIndex.build(_random_store(), grid_resolution=10)
        point = (40.0, 0.0, 0.0)
        r = index.covering_radius(point)
        assert len(index.query_neighborhood(point, r)) == index.store.n_samples
        if r > 0:
            assert len(index.query_neighborhood(point, r - 1)) < index.store.n_samples

    def test_negative_radius(self):
        index = SpatialIndex.build(_random_store())
        with pytest.raises(ValueError):
            index.query_neighborhood((0, 0, 0), -1)
