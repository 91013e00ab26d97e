"""
YAML configuration files for free-surface runs.

A configuration file holds up to three groups (grid, free_surface, timestep);
missing groups and keys take their defaults. Saved files can be loaded back
to an equal SimulationConfig.
"""

from pathlib import Path
from typing import Any

import yaml

from freesurface.params.schema import SimulationConfig, ValidationError


def _read_groups(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise FileNotFoundError(f"No configuration file at {path}")
    with path.open() as stream:
        data = yaml.safe_load(stream)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(
            f"{path}: top level must be a mapping of parameter groups, "
            f"got {type(data).__name__}"
        )
    return data


def load_config(path: str | Path) -> SimulationConfig:
    """
    Read a SimulationConfig from YAML.

    Raises:
        FileNotFoundError: If `path` is not a file
        ValidationError: If a group or value is invalid
        yaml.YAMLError: If the file is not valid YAML

    Example:
        config = load_config("configs/impulse.yaml")
    """
    return SimulationConfig.from_dict(_read_groups(Path(path)))


def save_config(config: SimulationConfig, path: str | Path) -> None:
    """Write `config` as YAML, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as stream:
        yaml.safe_dump(config.to_dict(), stream, default_flow_style=False, sort_keys=False)


def load_config_with_overrides(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> SimulationConfig:
    """
    Read a configuration (defaults when `path` is None) and update groups.

    Args:
        path: YAML file, or None for SimulationConfig()
        overrides: Group name -> {key: value} updates

    Example:
        config = load_config_with_overrides(
            "configs/impulse.yaml",
            overrides={"free_surface": {"solver_method": "fft"}},
        )
    """
    config = SimulationConfig() if path is None else load_config(path)
    return config.with_updates(**overrides) if overrides else config


def merge_configs(base: SimulationConfig, override: SimulationConfig) -> SimulationConfig:
    """Combine two configurations group by group; `override` wins on every key."""
    merged = base.to_dict()
    for group, values in override.to_dict().items():
        merged[group] = {**merged[group], **values}
    return SimulationConfig.from_dict(merged)
