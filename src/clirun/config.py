# ==================================================================================================
#                               Config loading
# ==================================================================================================
#
# Single entry point for reading runtime configuration from disk.
#
# The runtime itself needs very little configuration: where lock files live
# and how verbose logging should be. Both are read from one YAML file so the
# console entry point and embedding applications agree on the layout.
#
# This module only loads and packages raw config data. Interpreting fields
# (e.g. resolving `paths.lock_dir`) belongs to `clirun.paths`.
#

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml


# ==================================================================================================
#                                   TYPES
# ==================================================================================================

@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """
    Parsed runtime configuration.

    Parameters
    ----------
    raw
        Raw config dictionary loaded from YAML.

    Usage example
    -------------
        cfg = load_runtime_config(Path("config/clirun.yaml"))
        level = cfg.raw.get("logging", {}).get("level", "INFO")
    """

    raw: Dict[str, Any]

    @staticmethod
    def empty() -> "RuntimeConfig":
        """Configuration used when no file is supplied."""
        return RuntimeConfig(raw={})

    def section(self, name: str) -> Mapping[str, Any]:
        """
        Return a top-level mapping section, or an empty mapping if absent.

        Raises
        ------
        ValueError
            If the section exists but is not a mapping.
        """
        value = self.raw.get(name, None)
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ValueError(f"Config section '{name}' must be a mapping, got: {type(value)}")
        return value


# ==================================================================================================
#                                   IO
# ==================================================================================================

def load_runtime_config(config_path: Path) -> RuntimeConfig:
    """
    Load YAML config into a RuntimeConfig object.

    Parameters
    ----------
    config_path
        Path to YAML config file.

    Returns
    -------
    RuntimeConfig
        Loaded configuration.

    Usage example
    -------------
        cfg = load_runtime_config(Path("config/clirun.yaml"))
        print(cfg.raw["paths"]["lock_dir"])
    """
    with config_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    # An empty file is a valid "use all defaults" config.
    if data is None:
        return RuntimeConfig.empty()

    if not isinstance(data, Mapping):
        raise ValueError(f"Config must be a mapping at top-level, got: {type(data)}")

    return RuntimeConfig(raw=dict(data))
