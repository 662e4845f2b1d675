"""
Scalar sample storage and sample-feed parsing.

This module implements the SampleStore that owns the scattered 3D samples
(position + one scalar value) feeding the slice interpolation pipeline.

Design:
- Built once from an already-read text feed, never mutated afterwards
- Arrays are stored in float64 and flagged read-only
- Malformed input rejects the whole load (no partial stores)
- NaN / Inf are rejected at the parse boundary so downstream code never
  needs to special-case them

Feed format (one sample per line)::

    # comment
    x y z value
"""

from typing import Iterable, Iterator, NamedTuple, Optional, Tuple
import warnings
import numpy as np
import numpy.typing as npt

NDArrayFloat = npt.NDArray[np.float64]

COMMENT_MARKER = "#"
BYTE_ORDER_MARK = "\ufeff"


class ParseError(ValueError):
    """Raised when a raw sample feed cannot be turned into a SampleStore."""


class MalformedLine(ParseError):
    """
    A non-skipped feed line did not yield exactly four finite numbers.

    Attributes
    ----------
    line_number : int
        1-based line number in the feed.
    line : str
        Offending line with surrounding whitespace stripped.
    reason : str
        Short description of what was wrong.
    """

    def __init__(self, line_number: int, line: str, reason: str):
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(f"Malformed sample on line {line_number}: {reason} ({line!r})")


class ScalarSample(NamedTuple):
    """A single scattered sample: position in the sample frame plus its value."""

    position: Tuple[float, float, float]
    value: float


def parse_sample_line(line: str, line_number: int) -> Optional[Tuple[float, float, float, float]]:
    """
    Parse one feed line.

    Returns None for blank and comment lines, otherwise the four floats
    ``(x, y, z, value)``.

    Raises
    ------
    MalformedLine
        Wrong field count, non-numeric field, or non-finite number.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith(COMMENT_MARKER):
        return None

    fields = stripped.split()
    if len(fields) != 4:
        raise MalformedLine(line_number, stripped, f"expected 4 fields, got {len(fields)}")

    try:
        numbers = tuple(float(f) for f in fields)
    except ValueError as e:
        raise MalformedLine(line_number, stripped, "non-numeric field") from e

    if not all(np.isfinite(numbers)):
        raise MalformedLine(line_number, stripped, "non-finite value")

    return numbers


class SampleStore:
    """
    Immutable collection of scalar samples.

    Attributes
    ----------
    positions : NDArrayFloat, shape (N, 3)
        Sample positions in the original (untransformed) mesh frame.
    values : NDArrayFloat, shape (N,)
        Scalar value carried by each sample.
    min_value, max_value : float or None
        Scan minimum / maximum of ``values``; None for an empty store.

    Notes
    -----
    Sample order follows the input order but carries no meaning beyond
    deterministic tie-breaking in the interpolator.
    """

    def __init__(self, positions: NDArrayFloat, values: NDArrayFloat):
        positions = np.array(positions, dtype=np.float64).reshape(-1, 3)
        values = np.array(values, dtype=np.float64).reshape(-1)

        if len(positions) != len(values):
            raise ValueError(
                f"positions length ({len(positions)}) != values length ({len(values)})"
            )
        if not (np.all(np.isfinite(positions)) and np.all(np.isfinite(values))):
            raise ParseError("Sample arrays contain NaN or infinite entries")

        positions.setflags(write=False)
        values.setflags(write=False)
        self.positions = positions
        self.values = values

        if len(values) > 0:
            self.min_value: Optional[float] = float(np.min(values))
            self.max_value: Optional[float] = float(np.max(values))
        else:
            self.min_value = None
            self.max_value = None

    @classmethod
    def load(cls, raw_lines: Iterable[str]) -> "SampleStore":
        """
        Build a store from raw feed lines.

        Parameters
        ----------
        raw_lines : iterable of str, or str
            Text lines, each ``x y z value``; ``#`` comments and blank lines
            are skipped. A single string is split into lines, and a leading
            UTF-8 byte-order mark is ignored.

        Returns
        -------
        store : SampleStore
            Samples in input order.

        Raises
        ------
        MalformedLine
            On the first line that is not four finite numbers. Nothing is
            returned for the lines parsed before it.

        Examples
        --------
        >>> store = SampleStore.load(["# header", "0 0 0 10", "10 0 0 20"])
        >>> len(store), store.value_range
        (2, (10.0, 20.0))
        """
        if isinstance(raw_lines, str):
            raw_lines = raw_lines.splitlines()

        rows = []
        for line_number, line in enumerate(raw_lines, start=1):
            if line_number == 1:
                line = line.lstrip(BYTE_ORDER_MARK)
            parsed = parse_sample_line(line, line_number)
            if parsed is not None:
                rows.append(parsed)

        if not rows:
            warnings.warn("Sample feed contained no samples; slices will be fully masked")
            return cls.empty()

        data = np.asarray(rows, dtype=np.float64)
        return cls(data[:, :3], data[:, 3])

    @classmethod
    def from_arrays(cls, positions: NDArrayFloat, values: NDArrayFloat) -> "SampleStore":
        """Build a store from arrays already in memory (validated like a feed)."""
        return cls(positions, values)

    @classmethod
    def empty(cls) -> "SampleStore":
        """Store holding no samples."""
        return cls(np.zeros((0, 3)), np.zeros(0))

    @property
    def n_samples(self) -> int:
        return len(self.values)

    @property
    def value_range(self) -> Optional[Tuple[float, float]]:
        if self.min_value is None:
            return None
        return (self.min_value, self.max_value)

    @property
    def bounds(self) -> Optional[Tuple[NDArrayFloat, NDArrayFloat]]:
        """Axis-aligned bounding box ``(min, max)`` of the positions."""
        if self.n_samples == 0:
            return None
        return np.min(self.positions, axis=0), np.max(self.positions, axis=0)

    def __len__(self) -> int:
        return self.n_samples

    def __getitem__(self, index: int) -> ScalarSample:
        x, y, z = (float(c) for c in self.positions[index])
        return ScalarSample((x, y, z), float(self.values[index]))

    def __iter__(self) -> Iterator[ScalarSample]:
        for i in range(self.n_samples):
            yield self[i]

    def __repr__(self) -> str:
        return f"SampleStore(n_samples={self.n_samples}, value_range={self.value_range})"
