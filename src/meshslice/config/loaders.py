"""
Configuration loaders for YAML and JSON files.

This module provides functions to load and validate slice-session
configurations from YAML/JSON files, with nested sections flattened onto the
fields of SessionConfig.

Example file::

    interpolation:
      k: 6
      search_radius: 2
    slice:
      resolution: 96
      margin: 1.15
    containment:
      strategy: bounding_sphere
      sphere_fraction: 0.8
    render:
      palette: viridis
"""

from typing import Dict, Any, Union
from pathlib import Path
import yaml
import json

from meshslice.core.session import SessionConfig


# Nested section -> {key in file: SessionConfig field}
FIELD_MAPPINGS: Dict[str, Dict[str, str]] = {
    'display': {
        'target_radius': 'target_radius',
    },
    'index': {
        'grid_resolution': 'grid_resolution',
    },
    'interpolation': {
        'k': 'k_neighbours',
        'k_neighbours': 'k_neighbours',
        'search_radius': 'search_radius_cells',
        'search_radius_cells': 'search_radius_cells',
    },
    'slice': {
        'resolution': 'default_resolution',
        'margin': 'slice_margin',
    },
    'containment': {
        'strategy': 'containment',
        'sphere_fraction': 'sphere_fraction',
    },
    'render': {
        'palette': 'palette_id',
        'palette_id': 'palette_id',
        'alpha': 'alpha',
    },
    'cache': {
        'max_entries': 'cache_max_entries',
    },
}


def load_config(filename: Union[str, Path], **overrides) -> SessionConfig:
    """
    Load session configuration from YAML or JSON file.

    Parameters
    ----------
    filename : str or Path
        Path to configuration file (.yaml, .yml, or .json)
    **overrides : keyword arguments
        Override specific config values (e.g., k_neighbours=8)

    Returns
    -------
    config : SessionConfig
        Validated session configuration

    Raises
    ------
    FileNotFoundError
        If configuration file does not exist
    ValueError
        If file format is unsupported or config is invalid

    Examples
    --------
    >>> config = load_config("viewer.yaml")
    >>> config = load_config("viewer.yaml", palette_id="plasma")
    """
    filepath = Path(filename)

    if not filepath.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    suffix = filepath.suffix.lower()
    if suffix in ['.yaml', '.yml']:
        config_dict = load_yaml(filepath)
    elif suffix == '.json':
        config_dict = load_json(filepath)
    else:
        raise ValueError(
            f"Unsupported config file format: {suffix}. "
            "Use .yaml, .yml, or .json"
        )

    flat_config = flatten_config(config_dict)
    flat_config.update(overrides)

    try:
        config = SessionConfig(**flat_config)
    except Exception as e:
        raise ValueError(
            f"Configuration validation failed for {filepath}: {e}"
        ) from e

    return config


def load_yaml(filepath: Path) -> Dict[str, Any]:
    """Load YAML configuration file (an empty file gives an empty dict)."""
    with open(filepath, 'r', encoding='utf-8') as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        config_dict = {}
    if not isinstance(config_dict, dict):
        raise ValueError(f"Top level of {filepath} must be a mapping")

    return config_dict


def load_json(filepath: Path) -> Dict[str, Any]:
    """Load JSON configuration file."""
    with open(filepath, 'r', encoding='utf-8') as f:
        config_dict = json.load(f)

    if not isinstance(config_dict, dict):
        raise ValueError(f"Top level of {filepath} must be an object")

    return config_dict


def flatten_config(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten nested configuration dictionary.

    Converts nested structures like:
        {'interpolation': {'k': 6}, 'render': {'palette': 'viridis'}}
    to:
        {'k_neighbours': 6, 'palette_id': 'viridis'}

    Keys of mapped sections that have no mapping pass through unchanged, as
    do top-level scalars; SessionConfig rejects anything it does not know.

    Parameters
    ----------
    config_dict : Dict[str, Any]
        Nested configuration dictionary

    Returns
    -------
    flat_dict : Dict[str, Any]
        Flattened configuration dictionary
    """
    flat = {}

    for key, value in config_dict.items():
        if key in FIELD_MAPPINGS and isinstance(value, dict):
            for subkey, subvalue in value.items():
                flat[FIELD_MAPPINGS[key].get(subkey, subkey)] = subvalue
        elif isinstance(value, dict):
            flat.update(flatten_config(value))
        else:
            flat[key] = value

    return flat


def save_config(config: SessionConfig, filename: Union[str, Path]) -> None:
    """
    Save SessionConfig to a YAML or JSON file in the nested layout.

    Parameters
    ----------
    config : SessionConfig
        Configuration to save
    filename : str or Path
        Output file path (.yaml, .yml or .json)
    """
    filepath = Path(filename)
    config_dict = config.model_dump()

    organized = {
        'display': {
            'target_radius': config_dict['target_radius'],
        },
        'index': {
            'grid_resolution': config_dict['grid_resolution'],
        },
        'interpolation': {
            'k': config_dict['k_neighbours'],
            'search_radius': config_dict['search_radius_cells'],
        },
        'slice': {
            'resolution': config_dict['default_resolution'],
            'margin': config_dict['slice_margin'],
        },
        'containment': {
            'strategy': config_dict['containment'],
            'sphere_fraction': config_dict['sphere_fraction'],
        },
        'render': {
            'palette': config_dict['palette_id'],
            'alpha': config_dict['alpha'],
        },
        'cache': {
            'max_entries': config_dict['cache_max_entries'],
        },
        'verbose': config_dict['verbose'],
    }

    suffix = filepath.suffix.lower()
    if suffix in ['.yaml', '.yml']:
        with open(filepath, 'w', encoding='utf-8') as f:
            yaml.dump(organized, f, default_flow_style=False, sort_keys=False)
    elif suffix == '.json':
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(organized, f, indent=2)
    else:
        raise ValueError(f"Unsupported output format: {suffix}. Use .yaml or .json")


def config_from_dict(config_dict: Dict[str, Any]) -> SessionConfig:
    """
    Create SessionConfig from a (possibly nested) dictionary.

    Parameters
    ----------
    config_dict : Dict[str, Any]
        Configuration dictionary

    Returns
    -------
    config : SessionConfig
        Validated configuration
    """
    flat = flatten_config(config_dict)
    return SessionConfig(**flat)
