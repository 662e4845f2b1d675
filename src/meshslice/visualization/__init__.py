"""
Visualization module: matplotlib plots of slice rasters.
"""

from meshslice.visualization.slice_plot import (
    palette_to_colormap,
    plot_slice,
)

__all__ = [
    'palette_to_colormap',
    'plot_slice',
]
