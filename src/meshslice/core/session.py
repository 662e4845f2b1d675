"""
Slice session orchestrator for MeshSlice.

This module implements the SliceSession class that owns the active samples,
spatial index, mesh, display transform and containment oracle, and drives the
sample → colour → cache pipeline for each slice request.

Design:
- All shared data lives in one immutable SessionState swapped atomically
  after each rebuild; readers work on the snapshot they grabbed
- A generation counter is bumped on every sample, mesh or config change and
  keys the slice cache
- Background rendering goes through a latest-request-wins SliceWorker
"""

from concurrent.futures import Future
from typing import Callable, Iterable, Optional, Union
import threading
import warnings
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from meshslice.core.state import SessionState
from meshslice.mesh.containment import STRATEGIES, make_containment_oracle
from meshslice.mesh.handle import DEFAULT_TARGET_RADIUS, DisplayTransform, MeshHandle
from meshslice.samples.interpolator import IDWInterpolator
from meshslice.samples.spatial_index import SpatialIndex
from meshslice.samples.store import SampleStore
from meshslice.slicing.cache import SliceCache, SliceRaster, StaleGenerationError
from meshslice.slicing.colormap import PALETTES, ColorMapper, get_palette
from meshslice.slicing.sampler import Axis, SliceSampler, SliceSpec
from meshslice.slicing.worker import SliceWorker

# Attempts at rendering when a reload lands mid-computation
_STALE_RETRIES = 3


class SessionConfig(BaseModel):
    """
    Configuration for a slice session with Pydantic validation.

    Attributes
    ----------
    target_radius : float
        Bounding-sphere radius of the mesh in display units
    grid_resolution : int
        Spatial index cells along the longest sample-cloud edge
    search_radius_cells : int
        Initial neighbourhood cube half-width in cells
    k_neighbours : int
        Neighbour count for IDW interpolation
    default_resolution : int
        Raster side length when a request does not specify one
    slice_margin : float
        Raster half-width as a multiple of the mesh extent
    containment : str
        Inside test: "raycast" (exact) or "bounding_sphere" (approximate)
    sphere_fraction : float
        Fraction of the bounding-sphere radius counted as inside
    palette_id : str
        Default palette
    alpha : int
        Alpha of masked-in pixels
    cache_max_entries : int
        Upper bound on cached rasters
    verbose : bool
        Print progress messages
    """

    # Display frame
    target_radius: float = Field(default=DEFAULT_TARGET_RADIUS, gt=0.0, description="Display bounding-sphere radius")

    # Spatial index / interpolation
    grid_resolution: int = Field(default=50, ge=1, le=1024, description="Index cells along the longest edge")
    search_radius_cells: int = Field(default=2, ge=0, description="Initial neighbourhood radius in cells")
    k_neighbours: int = Field(default=4, ge=1, description="IDW neighbour count")

    # Slice sampling
    default_resolution: int = Field(default=64, ge=1, le=4096, description="Default raster side length")
    slice_margin: float = Field(default=1.1, ge=1.0, le=2.0, description="Raster half-width margin")

    # Containment
    containment: str = Field(default="raycast", description="Containment strategy")
    sphere_fraction: float = Field(default=0.8, gt=0.0, le=1.0, description="Bounding-sphere inside fraction")

    # Rendering
    palette_id: str = Field(default="blue-yellow-red", description="Default palette")
    alpha: int = Field(default=255, ge=0, le=255, description="Alpha of masked-in pixels")

    # Cache
    cache_max_entries: int = Field(default=256, ge=1, description="Maximum cached rasters")

    verbose: bool = Field(default=False, description="Enable verbose logging")

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
    )

    @field_validator('containment')
    @classmethod
    def validate_containment(cls, v: str) -> str:
        """Validate containment strategy."""
        if v not in STRATEGIES:
            raise ValueError(f"containment must be one of {list(STRATEGIES)}, got '{v}'")
        return v

    @field_validator('palette_id')
    @classmethod
    def validate_palette_id(cls, v: str) -> str:
        """Validate default palette."""
        if v not in PALETTES:
            raise ValueError(f"palette_id must be one of {sorted(PALETTES)}, got '{v}'")
        return v

    @model_validator(mode='after')
    def validate_configuration_consistency(self):
        """Cross-field sanity checks."""
        if self.k_neighbours > 64:
            warnings.warn(
                f"k_neighbours={self.k_neighbours} averages over a large neighbourhood; "
                "slices will look heavily smoothed."
            )
        return self


class SliceSession:
    """
    Explicit context object for slice rendering.

    Owns the active SampleStore, SpatialIndex, mesh and display transform,
    the slice cache and the background worker. No module-level state is
    used; two sessions are fully independent.

    Parameters
    ----------
    config : SessionConfig, optional
        Session parameters (default: SessionConfig()).

    Examples
    --------
    >>> session = SliceSession()
    >>> session.load_samples(open("field.txt"))
    >>> session.load_mesh(MeshHandle.box((-5, -5, -5), (5, 5, 5)))
    >>> raster = session.render_slice("z", 0.0)
    >>> raster.pixels.shape
    (64, 64, 4)
    """

    def __init__(self, config: Optional[SessionConfig] = None):
        self.config = config if config is not None else SessionConfig()
        self._write_lock = threading.Lock()

        store = SampleStore.empty()
        index = SpatialIndex.build(store, self.config.grid_resolution)
        self._state = SessionState(
            generation=0,
            store=store,
            index=index,
            interpolator=IDWInterpolator(index, self.config.search_radius_cells),
        )
        self.cache = SliceCache(self.config.cache_max_entries)
        self._worker: Optional[SliceWorker] = None

    def _log(self, message: str):
        """Log message if verbose."""
        if self.config.verbose:
            print(f"[gen {self._state.generation}] {message}")

    @property
    def state(self) -> SessionState:
        """Current snapshot; safe to hold while the session reloads."""
        return self._state

    @property
    def generation(self) -> int:
        return self._state.generation

    @property
    def store(self) -> SampleStore:
        return self._state.store

    @property
    def mesh(self) -> Optional[MeshHandle]:
        return self._state.mesh

    @property
    def transform(self) -> DisplayTransform:
        return self._state.transform

    # ------------------------------------------------------------------
    # Writers: build fully, then swap the snapshot in one assignment
    # ------------------------------------------------------------------

    def _build_sample_state(self, store: SampleStore) -> dict:
        index = SpatialIndex.build(store, self.config.grid_resolution)
        return dict(
            store=store,
            index=index,
            interpolator=IDWInterpolator(index, self.config.search_radius_cells),
        )

    def _build_mesh_state(self, mesh: Optional[MeshHandle]) -> dict:
        if mesh is None:
            return dict(mesh=None, display_mesh=None, transform=DisplayTransform(), oracle=None)
        transform = DisplayTransform.from_mesh(mesh, self.config.target_radius)
        display_mesh = mesh.transformed(transform)
        oracle = make_containment_oracle(
            display_mesh,
            self.config.containment,
            self.config.sphere_fraction,
        )
        return dict(mesh=mesh, display_mesh=display_mesh, transform=transform, oracle=oracle)

    def _swap(self, **parts) -> SessionState:
        """Publish a new snapshot with the generation bumped; caller holds the write lock."""
        current = self._state
        fields = dict(
            store=current.store,
            index=current.index,
            interpolator=current.interpolator,
            mesh=current.mesh,
            display_mesh=current.display_mesh,
            transform=current.transform,
            oracle=current.oracle,
        )
        fields.update(parts)
        new_state = SessionState(generation=current.generation + 1, **fields)
        self._state = new_state
        self.cache.advance(new_state.generation)
        return new_state

    def set_store(self, store: SampleStore) -> int:
        """
        Replace the active samples and rebuild the index.

        Returns
        -------
        generation : int
            Generation of the new snapshot.
        """
        with self._write_lock:
            parts = self._build_sample_state(store)
            state = self._swap(**parts)
        self._log(f"Loaded {store.n_samples} samples (value range {store.value_range})")
        return state.generation

    def load_samples(self, raw_lines: Iterable[str]) -> int:
        """
        Parse a sample feed and make it active.

        Raises
        ------
        ParseError
            Malformed feed; the previously active samples stay in place.
        """
        store = SampleStore.load(raw_lines)
        return self.set_store(store)

    def load_mesh(self, mesh: Optional[MeshHandle]) -> int:
        """
        Replace the mesh (None clears it), deriving the display transform
        and containment oracle.
        """
        with self._write_lock:
            parts = self._build_mesh_state(mesh)
            state = self._swap(**parts)
        if mesh is not None:
            self._log(
                f"Loaded mesh with {mesh.n_faces} faces "
                f"(scale {state.transform.scale:.4g}, containment '{state.oracle.strategy}')"
            )
        return state.generation

    def update_config(self, **changes) -> int:
        """
        Apply configuration changes and rebuild everything derived from them.

        Raises
        ------
        ValueError
            A change fails validation; the session keeps its old config.
        """
        try:
            new_config = self.config.model_copy()
            for key, value in changes.items():
                setattr(new_config, key, value)
        except ValueError as e:
            raise ValueError(f"Configuration update rejected: {e}") from e

        with self._write_lock:
            self.config = new_config
            self.cache.resize(new_config.cache_max_entries)
            parts = self._build_sample_state(self._state.store)
            parts.update(self._build_mesh_state(self._state.mesh))
            state = self._swap(**parts)
        self._log(f"Configuration updated: {sorted(changes)}")
        return state.generation

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def make_spec(self, axis: Union[Axis, str], value: float, resolution: Optional[int] = None) -> SliceSpec:
        if resolution is None:
            resolution = self.config.default_resolution
        return SliceSpec(Axis.parse(axis), value, resolution)

    def compute_raster(
        self,
        spec: SliceSpec,
        palette_id: str,
        state: SessionState,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> SliceRaster:
        """Run sampler and colour mapper for one snapshot, bypassing the cache."""
        palette = get_palette(palette_id)
        sampler = SliceSampler(k=self.config.k_neighbours, margin=self.config.slice_margin)
        raw = sampler.sample(spec, state, should_cancel)
        pixels = ColorMapper(self.config.alpha).map_raster(
            raw.values, raw.mask, raw.min_value, raw.max_value, palette
        )
        return SliceRaster(
            spec=spec,
            generation=state.generation,
            palette_id=palette.palette_id,
            pixels=pixels,
            min_value=raw.min_value,
            max_value=raw.max_value,
            half_size=raw.half_size,
            values=raw.values,
            mask=raw.mask,
        )

    def render_slice(
        self,
        axis: Union[Axis, str],
        value: float,
        resolution: Optional[int] = None,
        palette_id: Optional[str] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> SliceRaster:
        """
        Cached, synchronous slice render.

        Parameters
        ----------
        axis : Axis or str
            Slice normal: 'x', 'y' or 'z'.
        value : float
            Plane position in display units.
        resolution : int, optional
            Raster side length (default: config.default_resolution).
        palette_id : str, optional
            Palette (default: config.palette_id).
        should_cancel : callable, optional
            Polled per raster row during computation.

        Returns
        -------
        raster : SliceRaster
            Identical object on repeated calls within one generation.

        Raises
        ------
        RuntimeError
            No mesh loaded.
        SliceCancelled
            ``should_cancel`` fired.
        """
        spec = self.make_spec(axis, value, resolution)
        if palette_id is None:
            palette_id = self.config.palette_id

        for attempt in range(_STALE_RETRIES):
            state = self._state
            try:
                return self.cache.get_or_compute(
                    spec,
                    state.generation,
                    palette_id,
                    lambda: self.compute_raster(spec, palette_id, state, should_cancel),
                )
            except StaleGenerationError:
                self._log(f"Data changed while rendering {spec}; retrying ({attempt + 1}/{_STALE_RETRIES})")
                if attempt == _STALE_RETRIES - 1:
                    raise

    def request_slice(
        self,
        axis: Union[Axis, str],
        value: float,
        resolution: Optional[int] = None,
        palette_id: Optional[str] = None,
    ) -> Future:
        """
        Asynchronous render; a newer request supersedes this one.

        Returns
        -------
        future : concurrent.futures.Future
            Resolves to a SliceRaster, or is cancelled / fails with
            SliceCancelled when superseded.
        """
        if self._worker is None:
            self._worker = SliceWorker()
        return self._worker.submit(
            lambda should_cancel: self.render_slice(
                axis, value, resolution, palette_id, should_cancel=should_cancel
            )
        )

    def close(self) -> None:
        """Stop the background worker."""
        if self._worker is not None:
            self._worker.shutdown(wait=True)
            self._worker = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
