"""
Matplotlib rendering of slice rasters.

Provides pre-configured plots for inspecting a SliceRaster outside the
interactive viewer: the RGBA buffer shown over its display-space extent, with
a colorbar built from the same palette and normalisation range.

Design:
- The RGBA pixels are drawn as-is, so masked pixels stay transparent and the
  picture matches the texture handed to the viewer exactly.
- Palettes convert to LinearSegmentedColormap for the colorbar only.
"""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.cm import ScalarMappable
from matplotlib.colors import LinearSegmentedColormap, Normalize
from matplotlib.figure import Figure
from typing import Optional, Tuple

from meshslice.slicing.cache import SliceRaster
from meshslice.slicing.colormap import Palette, get_palette

_AXIS_LABELS = "XYZ"


def palette_to_colormap(palette: Palette, n_colors: int = 256) -> LinearSegmentedColormap:
    """
    Convert a Palette into a matplotlib colormap with the same stops.

    Examples
    --------
    >>> cmap = palette_to_colormap(PALETTES["viridis"])
    >>> cmap(0.0)
    """
    stops = [(t, (r / 255.0, g / 255.0, b / 255.0)) for t, r, g, b in palette.stops]
    return LinearSegmentedColormap.from_list(palette.palette_id, stops, N=n_colors)


def plot_slice(
    raster: SliceRaster,
    ax: Optional[Axes] = None,
    title: Optional[str] = None,
    show_colorbar: bool = True,
    figsize: Tuple[float, float] = (8, 7),
    save_path: Optional[str] = None
) -> Tuple[Figure, Axes]:
    """
    Plot a coloured slice with its legend.

    Parameters
    ----------
    raster : SliceRaster
        Slice produced by SliceSession.render_slice.
    ax : Axes, optional
        Axes to draw into; a new figure is created if None.
    title : str, optional
        Plot title (default: "<axis> = <value>").
    show_colorbar : bool, optional
        Draw a colorbar for the normalisation range (default: True). Skipped
        when nothing is inside the solid.
    figsize : tuple, optional
        Figure size in inches when a new figure is created.
    save_path : str, optional
        Path to save figure. If None, not saved.

    Returns
    -------
    fig : Figure
    ax : Axes

    Examples
    --------
    >>> raster = session.render_slice("z", 0.0)
    >>> fig, ax = plot_slice(raster, save_path="slice_z.png")
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    h = raster.half_size
    u_axis, v_axis = raster.spec.axis.in_plane

    # Row j is v, column i is u; row 0 at the bottom
    ax.imshow(
        np.asarray(raster.pixels),
        origin='lower',
        extent=[-h, h, -h, h],
        aspect='equal',
        interpolation='nearest'
    )

    if show_colorbar and raster.min_value is not None and raster.max_value is not None:
        mappable = ScalarMappable(
            norm=Normalize(vmin=raster.min_value, vmax=raster.max_value),
            cmap=palette_to_colormap(get_palette(raster.palette_id))
        )
        mappable.set_array(np.array([]))
        fig.colorbar(mappable, ax=ax, label='Value')

    if title is None:
        title = f"{raster.spec.axis.value.upper()} = {raster.spec.value:g}"

    ax.set_xlabel(_AXIS_LABELS[u_axis], fontsize=12)
    ax.set_ylabel(_AXIS_LABELS[v_axis], fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig, ax
