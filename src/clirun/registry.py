# ==================================================================================================
#                                   Command registry
# ==================================================================================================
#
# Maps unique command ids to commands. Registration is one-shot per id; read
# access hands out copies so callers can never mutate registry internals.
#
# The help command id is reserved: the dispatcher adds its own help command on
# every run, so user commands may not claim it.

from typing import Dict, Optional, Tuple

from clirun.command import Command
from clirun.constants import HELP_COMMAND_ID
from clirun.errors import DuplicateCommand


class CommandsRegistry:
    """
    Registry of available commands, keyed by `Command.id`.

    Usage example
    -------------
        registry = CommandsRegistry()
        registry.register(SayHello())
        cmd, found = registry.lookup("say-hello")
    """

    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}

    def register(self, cmd: Command) -> None:
        """
        Add a command.

        Raises
        ------
        ValueError
            If the command id is empty.
        DuplicateCommand
            If the id is already registered or reserved. The registry is left
            unchanged.
        """
        command_id = cmd.id
        if not command_id:
            raise ValueError("Command id must be a non-empty string")
        if command_id == HELP_COMMAND_ID:
            raise DuplicateCommand(command_id, "is reserved for the built-in help command")
        if command_id in self._commands:
            raise DuplicateCommand(command_id)
        self._commands[command_id] = cmd

    def commands(self) -> Dict[str, Command]:
        """Return a copy of the id -> command mapping."""
        return dict(self._commands)

    def lookup(self, command_id: str) -> Tuple[Optional[Command], bool]:
        """Return `(command, True)` if registered, else `(None, False)`."""
        cmd = self._commands.get(command_id)
        return cmd, cmd is not None

    def __contains__(self, command_id: object) -> bool:
        return command_id in self._commands

    def __len__(self) -> int:
        return len(self._commands)
