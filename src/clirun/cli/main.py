# ==================================================================================================
#                                   CLI
# ==================================================================================================
#
# Entry point for the `clirun` command-line interface.
#
# This module only wires things together:
# - load runtime config once (optional, from $CLIRUN_CONFIG)
# - configure logging
# - register the bundled commands
# - hand the argument vector to the dispatcher
#
# Command behavior lives in `clirun.cli.commands.*`; dispatch/locking logic
# lives in the library modules.
#
# ==================================================================================================
# Imports
# ==================================================================================================

import os
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence, TextIO

from clirun.cli.commands.say_hello import SayHello
from clirun.cli.commands.say_hello_dynamic import SayHelloDynamic
from clirun.config import RuntimeConfig, load_runtime_config
from clirun.dispatch import ExitFn, bootstrap
from clirun.lock import LockableCommand
from clirun.logging import configure_logging, level_from_name
from clirun.paths import RuntimePaths
from clirun.registry import CommandsRegistry

# ==================================================================================================
# Constants
# ==================================================================================================

CONFIG_ENV_VAR: str = "CLIRUN_CONFIG"
DEFAULT_LOG_LEVEL: str = "WARNING"


# ==================================================================================================
# Wiring
# ==================================================================================================

def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> RuntimeConfig:
    """
    Load the runtime config named by $CLIRUN_CONFIG, or an empty config.

    Parameters
    ----------
    environ
        Environment mapping; defaults to `os.environ`.
    """
    env = os.environ if environ is None else environ
    config_path = env.get(CONFIG_ENV_VAR, "").strip()
    if not config_path:
        return RuntimeConfig.empty()
    return load_runtime_config(Path(config_path))


def build_registry(lock_dir: Path) -> CommandsRegistry:
    """
    Register the bundled commands.

    `say-hello-dynamic` runs behind a file lock in `lock_dir`.

    Usage example
    -------------
        registry = build_registry(Path("/tmp"))
        sorted(registry.commands())  # ["say-hello", "say-hello-dynamic"]
    """
    registry = CommandsRegistry()
    registry.register(SayHello())
    registry.register(LockableCommand(SayHelloDynamic(), lock_dir))
    return registry


# ==================================================================================================
# Entry point
# ==================================================================================================

def main(
    argv: Optional[Sequence[str]] = None,
    sink: Optional[TextIO] = None,
    exit_fn: Optional[ExitFn] = None,
) -> int:
    """
    CLI entry point.

    Parameters
    ----------
    argv
        Optional argv for testing. If None, reads from sys.argv.
    sink
        Output sink; defaults to stdout.
    exit_fn
        Exit function; defaults to `sys.exit`.

    Returns
    -------
    int
        Exit status (only when `exit_fn` returns).

    Usage example
    -------------
        main(["say-hello-dynamic", "--name", "Ada", "--count-to", "2", "--count-delay", "10ms"])
    """
    args = list(sys.argv[1:] if argv is None else argv)

    cfg = load_config_from_env()
    level_name = cfg.section("logging").get("level", DEFAULT_LOG_LEVEL)
    configure_logging(level=level_from_name(level_name))

    paths = RuntimePaths.from_config(cfg)
    registry = build_registry(paths.lock_dir)
    return bootstrap(args, registry, sink=sink, exit_fn=exit_fn)


if __name__ == "__main__":
    main()
