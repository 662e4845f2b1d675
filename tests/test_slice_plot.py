"""Tests for matplotlib slice plots."""

import pytest
import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from meshslice.core.session import SliceSession, SessionConfig
from meshslice.mesh.handle import MeshHandle
from meshslice.slicing.colormap import PALETTES
from meshslice.visualization import palette_to_colormap, plot_slice


@pytest.fixture
def session():
    session = SliceSession(SessionConfig(default_resolution=10))
    session.load_samples(["-1 0 0 1", "1 0 0 3"])
    session.load_mesh(MeshHandle.box())
    return session


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


class TestPaletteToColormap:

    def test_endpoints_match_palette(self):
        cmap = palette_to_colormap(PALETTES["blue-yellow-red"])
        np.testing.assert_allclose(cmap(0.0)[:3], (0.0, 0.0, 1.0))
        np.testing.assert_allclose(cmap(1.0)[:3], (1.0, 0.0, 0.0))
        assert cmap.name == "blue-yellow-red"


class TestPlotSlice:

    def test_plot_with_colorbar(self, session):
        raster = session.render_slice("y", 0.0)
        fig, ax = plot_slice(raster)
        assert ax.get_title() == "Y = 0"
        assert ax.get_xlabel() == "X"
        assert ax.get_ylabel() == "Z"
        assert len(fig.axes) == 2

    def test_empty_slice_has_no_colorbar(self, session):
        raster = session.render_slice("z", 45.0)
        fig, ax = plot_slice(raster)
        assert len(fig.axes) == 1

    def test_existing_axes_and_save(self, session, tmp_path):
        fig, ax = plt.subplots()
        path = tmp_path / "slice.png"
        out_fig, out_ax = plot_slice(session.render_slice("x", 2.0), ax=ax, title="X slice",
                                     show_colorbar=False, save_path=str(path))
        assert out_fig is fig
        assert out_ax is ax
        assert ax.get_title() == "X slice"
        assert path.exists()
