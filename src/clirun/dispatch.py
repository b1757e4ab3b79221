# ==================================================================================================
#                                   Dispatcher
# ==================================================================================================
#
# Entry point for running one command from raw process arguments.
#
# This module is a thin dispatcher:
# - read the command name from the argument vector
# - resolve it against the registry (plus the built-in help command)
# - run it through the execution pipeline
# - write one diagnostic on failure and report the exit status
#
# Output sink and exit function are explicit arguments, defaulted here and
# nowhere else.
#

import logging
import sys
from typing import Any, Callable, Dict, List, Optional, Sequence, TextIO, Tuple

from clirun.command import Command
from clirun.constants import HELP_COMMAND_ID, STATUS_ERR, STATUS_OK
from clirun.errors import CommandError, CommandNotFound
from clirun.help import HelpCommand
from clirun.pipeline import run_command
from clirun.registry import CommandsRegistry

logger = logging.getLogger(__name__)

ExitFn = Callable[[int], Any]

# Leading token dropped before the command name (`clirun -- say-hello`).
ARGS_SEPARATOR = "--"


# ==================================================================================================
#                                   ARGUMENTS
# ==================================================================================================

def parse_command_input(args: Sequence[str]) -> Tuple[str, List[str]]:
    """
    Split raw arguments into the command name and the command's own arguments.

    Parameters
    ----------
    args
        Process arguments without the program name.

    Returns
    -------
    tuple[str, list[str]]
        Trimmed command name ("" if none) and the remaining arguments.

    Usage example
    -------------
        parse_command_input(["--", "greet", "--name", "Ada"])
        # ("greet", ["--name", "Ada"])
    """
    tokens = list(args)
    if tokens and tokens[0] == ARGS_SEPARATOR:
        tokens = tokens[1:]
    if not tokens:
        return "", []
    return tokens[0].strip(), tokens[1:]


def dispatch_table(registry: CommandsRegistry) -> Dict[str, Command]:
    """Registered commands plus a help command listing all of them."""
    commands = registry.commands()
    commands[HELP_COMMAND_ID] = HelpCommand(commands.values())
    return commands


# ==================================================================================================
#                                   ENTRY POINT
# ==================================================================================================

def bootstrap(
    args: Sequence[str],
    registry: CommandsRegistry,
    sink: Optional[TextIO] = None,
    exit_fn: Optional[ExitFn] = None,
) -> int:
    """
    Resolve and run the command named by `args`, then report the exit status.

    Parameters
    ----------
    args
        Process arguments without the program name.
    registry
        Available commands. It is not modified; the help command is added to
        a per-call copy.
    sink
        Where command output and diagnostics go. Defaults to `sys.stdout`.
    exit_fn
        Receives the exit status. Defaults to `sys.exit`.

    Returns
    -------
    int
        `STATUS_OK` or `STATUS_ERR` (only observable when `exit_fn` returns).

    Usage example
    -------------
        bootstrap(sys.argv[1:], registry)
    """
    if sink is None:
        sink = sys.stdout
    if exit_fn is None:
        exit_fn = sys.exit

    command_id, command_args = parse_command_input(args)
    if not command_id:
        command_id = HELP_COMMAND_ID

    status = STATUS_OK
    try:
        cmd = dispatch_table(registry).get(command_id)
        if cmd is None:
            raise CommandNotFound(command_id)
        run_command(cmd, command_args, sink)
    except CommandError as exc:
        status = STATUS_ERR
        logger.debug("%s failed at stage %s", exc.command_id, exc.stage)
        _report(sink, str(exc))

    exit_fn(status)
    return status


def _report(sink: TextIO, message: str) -> None:
    try:
        sink.write(message.rstrip("\n") + "\n")
        sink.flush()
    except (OSError, ValueError) as exc:
        # ValueError: write to a closed stream.
        logger.error("Error writing to the output sink %s: %s | %s", type(sink).__name__, exc, message)
