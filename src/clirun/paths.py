# ==================================================================================================
#                               Runtime paths
# ==================================================================================================
#
# Converts loosely typed config entries into explicit Path objects. The lock
# directory is resolved once and passed around in `RuntimePaths` instead of
# raw dicts.

import tempfile
from dataclasses import dataclass
from pathlib import Path

from .config import RuntimeConfig

# ==================================================================================================
#                                   TYPES
# ==================================================================================================

@dataclass(frozen=True, slots=True)
class RuntimePaths:
    """
    Resolved runtime paths.

    Parameters
    ----------
    lock_dir
        Directory holding one lock file per logical command.

    Usage example
    -------------
        cfg = load_runtime_config(Path("config/clirun.yaml"))
        paths = RuntimePaths.from_config(cfg)
        print(paths.lock_dir)
    """

    lock_dir: Path

    @staticmethod
    def from_config(cfg: RuntimeConfig) -> "RuntimePaths":
        """
        Construct RuntimePaths from config.

        Parameters
        ----------
        cfg
            Runtime configuration.

        Returns
        -------
        RuntimePaths
            Resolved paths. `lock_dir` defaults to the system temp directory.
        """
        paths_cfg = cfg.section("paths")
        lock_dir = paths_cfg.get("lock_dir", None)
        if lock_dir is None:
            return RuntimePaths(lock_dir=Path(tempfile.gettempdir()))

        # Reject blanks early; an empty path would silently mean "cwd".
        if not str(lock_dir).strip():
            raise ValueError("Config entry paths.lock_dir must be a non-empty path")

        return RuntimePaths(lock_dir=Path(str(lock_dir)).expanduser())
