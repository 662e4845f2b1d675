"""
Reading scalar sample feeds from disk.
"""

from pathlib import Path
from typing import Union

from meshslice.samples.store import SampleStore


def read_sample_file(filename: Union[str, Path]) -> SampleStore:
    """
    Load a UTF-8 ``x y z value`` sample file. A leading byte-order mark is
    ignored.

    Raises
    ------
    FileNotFoundError
        File does not exist.
    MalformedLine
        A line is not four finite numbers.
    """
    filepath = Path(filename)
    if not filepath.exists():
        raise FileNotFoundError(f"Sample file not found: {filepath}")

    with open(filepath, 'r', encoding='utf-8-sig') as f:
        return SampleStore.load(f)
