"""
Memoisation of coloured slice rasters.

Entries are keyed by ``SliceKey(axis, value, resolution, generation, palette_id)``.
The generation counter changes whenever the samples, the mesh or the session
configuration change; the first request for a newer generation drops every
older entry, and requests for an older generation are refused, so a raster
for stale data is never returned.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional
import threading
import numpy as np
import numpy.typing as npt

from meshslice.slicing.sampler import Axis, SliceSpec

DEFAULT_MAX_ENTRIES = 256


class StaleGenerationError(RuntimeError):
    """Raised when a cache lookup names a generation older than the newest seen."""


class SliceKey(NamedTuple):
    axis: Axis
    value: float
    resolution: int
    generation: int
    palette_id: str

    @classmethod
    def from_spec(cls, spec: SliceSpec, generation: int, palette_id: str) -> "SliceKey":
        return cls(spec.axis, spec.value, spec.resolution, int(generation), palette_id)


@dataclass(frozen=True, eq=False)
class SliceRaster:
    """
    Coloured slice ready to be used as a texture.

    Attributes
    ----------
    spec : SliceSpec
    generation : int
    palette_id : str
    pixels : np.ndarray of uint8, shape (height, width, 4)
        Read-only RGBA buffer, row = v, column = u.
    min_value, max_value : float or None
        Normalisation range, for legend rendering.
    half_size : float
        Half-width of the covered square in display units.
    values : np.ndarray, shape (height, width)
        Read-only raw estimates (0 where masked).
    mask : np.ndarray of bool, shape (height, width)
        Read-only inside/has-data mask.
    """

    spec: SliceSpec
    generation: int
    palette_id: str
    pixels: npt.NDArray[np.uint8]
    min_value: Optional[float]
    max_value: Optional[float]
    half_size: float
    values: npt.NDArray[np.float64]
    mask: npt.NDArray[np.bool_]

    def __post_init__(self):
        for array in (self.pixels, self.values, self.mask):
            array.setflags(write=False)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def metadata(self) -> dict:
        """Legend metadata for the consuming UI."""
        return {
            "min": self.min_value,
            "max": self.max_value,
            "palette_id": self.palette_id,
            "axis": self.spec.axis.value,
            "value": self.spec.value,
            "resolution": self.spec.resolution,
            "generation": self.generation,
            "half_size": self.half_size,
        }


class SliceCache:
    """
    Thread-safe LRU cache of SliceRaster objects for the newest generation.

    Parameters
    ----------
    max_entries : int, optional
        Upper bound on stored rasters (default: 256).
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = int(max_entries)
        self._entries: "OrderedDict[SliceKey, SliceRaster]" = OrderedDict()
        self._generation: Optional[int] = None
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def generation(self) -> Optional[int]:
        return self._generation

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: SliceKey) -> bool:
        with self._lock:
            return key in self._entries

    def _advance(self, generation: int) -> None:
        """Adopt ``generation``; caller holds the lock."""
        if self._generation is None or generation > self._generation:
            self._entries.clear()
            self._generation = generation
        elif generation < self._generation:
            raise StaleGenerationError(
                f"Requested generation {generation} is older than cached generation {self._generation}"
            )

    def advance(self, generation: int) -> None:
        """
        Move the watermark to ``generation``, dropping older entries.

        Raises
        ------
        StaleGenerationError
            ``generation`` is older than the current watermark.
        """
        with self._lock:
            self._advance(int(generation))

    def get(self, key: SliceKey) -> Optional[SliceRaster]:
        with self._lock:
            raster = self._entries.get(key)
            if raster is not None:
                self._entries.move_to_end(key)
            return raster

    def put(self, key: SliceKey, raster: SliceRaster) -> SliceRaster:
        """
        Store ``raster``; returns the entry actually cached, which is an
        existing one if another thread stored the same key first.
        """
        with self._lock:
            self._advance(key.generation)
            existing = self._entries.get(key)
            if existing is not None:
                return existing
            self._entries[key] = raster
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
            return raster

    def get_or_compute(
        self,
        spec: SliceSpec,
        generation: int,
        palette_id: str,
        compute: Callable[[], SliceRaster],
    ) -> SliceRaster:
        """
        Return the cached raster for ``(spec, generation, palette_id)`` or
        build it with ``compute``.

        ``compute`` runs outside the lock so concurrent misses for different
        keys do not serialise.

        Raises
        ------
        StaleGenerationError
            ``generation`` is older than one already seen.
        """
        key = SliceKey.from_spec(spec, generation, palette_id)
        with self._lock:
            self._advance(key.generation)
            raster = self._entries.get(key)
            if raster is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                return raster
            self.misses += 1

        return self.put(key, compute())

    def resize(self, max_entries: int) -> None:
        """Change the size bound, evicting least-recently-used entries to fit."""
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        with self._lock:
            self.max_entries = int(max_entries)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate(self) -> None:
        """Drop every entry (the generation watermark is kept)."""
        with self._lock:
            self._entries.clear()
