"""
Palettes and scalar-to-RGBA colour mapping.

A palette is a piecewise-linear ramp over ordered ``(t, r, g, b)`` stops with
the first stop at t=0 and the last at t=1. Values are normalised against a
``(min, max)`` range, clamped to [0, 1], and channels are rounded half-up
(``floor(x + 0.5)``), so t=0.25 on blue-yellow-red is (128, 128, 128).

Built-in palettes mirror the heatmap schemes offered by the viewer UI;
``blue-yellow-red`` is the default diverging ramp.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple
import re
import warnings
import numpy as np
import numpy.typing as npt

NDArrayFloat = npt.NDArray[np.float64]
RGB = Tuple[int, int, int]
RGBA = Tuple[int, int, int, int]

NORMALISATION_EPSILON = 1e-6
DEFAULT_PALETTE_ID = "blue-yellow-red"
TRANSPARENT: RGBA = (0, 0, 0, 0)
_HEX_COLOR = re.compile(r"#?([0-9a-fA-F]{6})")


def round_half_up(x):
    """Round to the nearest integer, halves away from zero for positive input."""
    return np.floor(np.asarray(x, dtype=np.float64) + 0.5)


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """``(255, 0, 0)`` → ``'#ff0000'``."""
    return f"#{int(r):02x}{int(g):02x}{int(b):02x}"


def hex_to_rgb(hex_color: str) -> Optional[RGB]:
    """``'#FF0000'`` or ``'ff0000'`` → ``(255, 0, 0)``; None when not a 6-digit hex colour."""
    match = _HEX_COLOR.fullmatch(hex_color.strip())
    if match is None:
        return None
    value = int(match.group(1), 16)
    return (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF


@dataclass(frozen=True)
class Palette:
    """
    Piecewise-linear colour ramp.

    Attributes
    ----------
    palette_id : str
        Identifier used in cache keys and legend metadata.
    stops : tuple of (t, r, g, b)
        Strictly increasing ``t`` from 0 to 1; channels in [0, 255].
    description : str
        Human-readable summary for legends and selectors.
    """

    palette_id: str
    stops: Tuple[Tuple[float, int, int, int], ...]
    description: str = ""

    def __post_init__(self):
        stops = tuple(tuple(s) for s in self.stops)
        object.__setattr__(self, "stops", stops)

        if len(stops) < 2:
            raise ValueError(f"Palette '{self.palette_id}' needs at least two stops")
        t = [s[0] for s in stops]
        if t[0] != 0.0 or t[-1] != 1.0:
            raise ValueError(f"Palette '{self.palette_id}' must start at t=0 and end at t=1")
        if any(b <= a for a, b in zip(t, t[1:])):
            raise ValueError(f"Palette '{self.palette_id}' stops must be strictly increasing in t")
        for s in stops:
            if len(s) != 4 or not all(0 <= c <= 255 for c in s[1:]):
                raise ValueError(f"Palette '{self.palette_id}' has an invalid stop {s}")

    @classmethod
    def from_hex(cls, palette_id: str, stops: Sequence[Tuple[float, str]], description: str = "") -> "Palette":
        """
        Build a palette from ``(t, "#rrggbb")`` stops, as exported by colour
        pickers and legend editors.

        Raises
        ------
        ValueError
            A stop colour is not a 6-digit hex string.
        """
        rgb_stops = []
        for t, hex_color in stops:
            rgb = hex_to_rgb(hex_color)
            if rgb is None:
                raise ValueError(f"Palette '{palette_id}' has an invalid hex colour {hex_color!r}")
            rgb_stops.append((t,) + rgb)
        return cls(palette_id, tuple(rgb_stops), description)

    @property
    def positions(self) -> NDArrayFloat:
        return np.array([s[0] for s in self.stops], dtype=np.float64)

    @property
    def colors(self) -> NDArrayFloat:
        """Stop colours, shape (S, 3)."""
        return np.array([s[1:] for s in self.stops], dtype=np.float64)

    def colors_at(self, t) -> npt.NDArray[np.uint8]:
        """
        Vectorised ramp lookup.

        Parameters
        ----------
        t : array_like
            Normalised positions; values outside [0, 1] clamp.

        Returns
        -------
        rgb : np.ndarray of uint8, shape t.shape + (3,)
        """
        t = np.clip(np.asarray(t, dtype=np.float64), 0.0, 1.0)
        positions = self.positions
        colors = self.colors

        # Bracketing stop: the last stop position <= t, capped at the final segment
        seg = np.clip(np.searchsorted(positions, t, side="right") - 1, 0, len(positions) - 2)
        t0 = positions[seg]
        t1 = positions[seg + 1]
        local = (t - t0) / (t1 - t0)

        c0 = colors[seg]
        c1 = colors[seg + 1]
        rgb = c0 + (c1 - c0) * local[..., None]
        return round_half_up(rgb).astype(np.uint8)

    def color_at(self, t: float) -> RGB:
        r, g, b = self.colors_at(t).tolist()
        return r, g, b


PALETTES: Dict[str, Palette] = {
    p.palette_id: p
    for p in [
        Palette(
            "blue-yellow-red",
            ((0.0, 0, 0, 255), (0.5, 255, 255, 0), (1.0, 255, 0, 0)),
            "Classic heatmap: Blue (low) → Yellow (mid) → Red (high)",
        ),
        Palette(
            "viridis",
            ((0.0, 68, 1, 84), (0.33, 49, 104, 142), (0.66, 53, 183, 121), (1.0, 253, 231, 37)),
            "Scientific colormap: Purple → Blue → Green → Yellow",
        ),
        Palette(
            "plasma",
            ((0.0, 13, 8, 135), (0.33, 126, 3, 168), (0.66, 204, 71, 120), (1.0, 249, 148, 65)),
            "High contrast: Dark blue → Purple → Orange → Yellow",
        ),
        Palette(
            "inferno",
            ((0.0, 0, 0, 4), (0.33, 86, 16, 110), (0.66, 187, 55, 84), (1.0, 249, 140, 10)),
            "Fire-like: Black → Red → Orange → Yellow",
        ),
        Palette(
            "cool-warm",
            ((0.0, 59, 76, 192), (0.33, 107, 142, 35), (0.66, 255, 215, 0), (1.0, 255, 69, 0)),
            "Cool blues to warm reds",
        ),
        Palette(
            "rainbow",
            (
                (0.0, 255, 0, 0), (0.1, 255, 128, 0), (0.2, 255, 255, 0), (0.3, 128, 255, 0),
                (0.4, 0, 255, 0), (0.5, 0, 255, 128), (0.6, 0, 255, 255), (0.7, 0, 128, 255),
                (0.8, 0, 0, 255), (1.0, 128, 0, 255),
            ),
            "Full spectrum rainbow",
        ),
        Palette.from_hex(
            "grayscale",
            ((0.0, "#000000"), (0.5, "#808080"), (1.0, "#ffffff")),
            "Simple black to white",
        ),
        Palette(
            "green-red",
            ((0.0, 0, 255, 0), (0.5, 255, 255, 0), (1.0, 255, 0, 0)),
            "Green (low) to Red (high)",
        ),
    ]
}


def get_palette(palette_id: str) -> Palette:
    """
    Look up a built-in palette, falling back to blue-yellow-red with a
    warning for unknown ids.
    """
    palette = PALETTES.get(palette_id)
    if palette is None:
        warnings.warn(
            f"Unknown palette '{palette_id}', falling back to '{DEFAULT_PALETTE_ID}'. "
            f"Available: {sorted(PALETTES)}"
        )
        palette = PALETTES[DEFAULT_PALETTE_ID]
    return palette


def normalise(values, min_value: float, max_value: float, epsilon: float = NORMALISATION_EPSILON):
    """
    Map values to [0, 1] against ``[min_value, max_value]``.

    A range narrower than ``epsilon`` is widened to ``epsilon`` so a
    constant field maps to a single colour instead of dividing by zero.
    """
    span = max_value - min_value
    if span < epsilon:
        span = epsilon
    return np.clip((np.asarray(values, dtype=np.float64) - min_value) / span, 0.0, 1.0)


class ColorMapper:
    """
    Scalar → RGBA conversion with masking.

    Parameters
    ----------
    alpha : int, optional
        Alpha channel of masked-in pixels (default: 255). Masked-out pixels
        are always fully transparent.
    """

    def __init__(self, alpha: int = 255):
        if not (0 <= alpha <= 255):
            raise ValueError(f"alpha must be in [0, 255], got {alpha}")
        self.alpha = int(alpha)

    def to_rgba(self, value: float, min_value: float, max_value: float, palette: Palette) -> RGBA:
        r, g, b = palette.color_at(float(normalise(value, min_value, max_value)))
        return r, g, b, self.alpha

    def to_rgba_masked(
        self,
        value: float,
        min_value: float,
        max_value: float,
        inside: bool,
        palette: Palette,
    ) -> RGBA:
        if not inside:
            return TRANSPARENT
        return self.to_rgba(value, min_value, max_value, palette)

    def map_raster(
        self,
        values: NDArrayFloat,
        mask: npt.NDArray[np.bool_],
        min_value: Optional[float],
        max_value: Optional[float],
        palette: Palette,
    ) -> npt.NDArray[np.uint8]:
        """
        Colour a whole raster.

        Parameters
        ----------
        values : NDArrayFloat, shape (H, W)
        mask : np.ndarray of bool, shape (H, W)
            True where the pixel is inside the solid and has data.
        min_value, max_value : float or None
            Normalisation range; None means nothing is inside and the result
            is fully transparent.
        palette : Palette

        Returns
        -------
        pixels : np.ndarray of uint8, shape (H, W, 4)
        """
        values = np.asarray(values, dtype=np.float64)
        mask = np.asarray(mask, dtype=bool)
        pixels = np.zeros(values.shape + (4,), dtype=np.uint8)

        if min_value is None or max_value is None or not np.any(mask):
            return pixels

        t = normalise(values[mask], min_value, max_value)
        pixels[mask, :3] = palette.colors_at(t)
        pixels[mask, 3] = self.alpha
        return pixels


def palette_hex_colors(palette: Palette) -> Sequence[str]:
    """Stop colours as hex strings, e.g. for a palette selector swatch."""
    return [rgb_to_hex(*s[1:]) for s in palette.stops]
