# ==================================================================================================
#                               CLI: say-hello
# ==================================================================================================
#
# Command handler for: `clirun say-hello`
#
# Smallest possible command: no flags, fixed greeting.
#

from typing import TextIO

from clirun.command import BaseCommand
from clirun.flags import ParsedFlags

GREETING: str = "Hello there!"


class SayHello(BaseCommand):
    """
    Greets the user.

    Usage example
    -------------
        clirun say-hello
    """

    command_id = "say-hello"
    command_description = "A basic command that will greet the user."

    def exec(self, flags: ParsedFlags, sink: TextIO) -> None:
        sink.write(GREETING + "\n")
