# ==================================================================================================
#                                   Help command
# ==================================================================================================
#
# Built-in `help` command: lists every registered command with its wrapped
# description and flags. The dispatcher builds a fresh instance on each run so
# the listing always reflects the current registry.

import textwrap
from typing import Iterable, List, TextIO

from clirun.command import BaseCommand, Command
from clirun.constants import HELP_COMMAND_ID, HELP_DESCRIPTION_WIDTH
from clirun.flags import ParsedFlags


def chunk_description(description: str, width: int = HELP_DESCRIPTION_WIDTH) -> List[str]:
    """
    Split a description into display lines.

    Explicit newlines are kept; long paragraphs are wrapped at `width`.
    Always returns at least one (possibly empty) line.
    """
    lines: List[str] = []
    for paragraph in description.splitlines():
        lines.extend(textwrap.wrap(paragraph, width=width) or [""])
    return lines or [""]


class HelpCommand(BaseCommand):
    """
    Lists all available commands.

    Parameters
    ----------
    commands
        Commands to list, excluding help itself.
    """

    command_id = HELP_COMMAND_ID
    command_description = "Lists all available commands"

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        self.commands = sorted(commands, key=lambda cmd: cmd.id)

    def exec(self, flags: ParsedFlags, sink: TextIO) -> None:
        column = max([len(self.id)] + [len(cmd.id) for cmd in self.commands]) + 4
        indent = " " * column

        rows = ["", f"{self.id:<{column}}{self.description}", ""]
        for cmd in self.commands:
            chunks = chunk_description(cmd.description)
            rows.append(f"{cmd.id:<{column}}{chunks[0]}".rstrip())
            rows.extend(f"{indent}{chunk}" for chunk in chunks[1:])

            definitions = list(cmd.flag_definitions().values())
            if definitions:
                rows.append(f"{indent}Flags:")
                rows.extend(
                    f"{indent}--{d.name} {d.description} (default {d.default})" for d in definitions
                )
            else:
                rows.append(f"{indent}Flags: none")
            rows.append("")

        sink.write("\n".join(rows) + "\n")
