# ==================================================================================================
#                               CLI: say-hello-dynamic
# ==================================================================================================
#
# Command handler for: `clirun say-hello-dynamic --name Ada --count-to 3 --count-delay 500ms`
#
# Responsibilities
# ----------------
# - declare flags (flag_definitions)
# - reject non-positive counts/delays (validate_flags)
# - greet `count-to` times, pausing `count-delay` between greetings (exec)
#
# The console entry point registers this command behind a LockableCommand, so
# only one instance greets at a time on a host.
#

import time
from datetime import timedelta
from typing import Callable, TextIO

from clirun.command import BaseCommand
from clirun.flags import FlagDefinitionMap, ParsedFlags, duration_flag, flag_map, int_flag, string_flag

# ==================================================================================================
# Constants
# ==================================================================================================

DEFAULT_COUNT_TO: int = 1
DEFAULT_COUNT_DELAY: timedelta = timedelta(seconds=1)


# ==================================================================================================
# Command
# ==================================================================================================

class SayHelloDynamic(BaseCommand):
    """
    Greets the user by name, a configurable number of times.

    Parameters
    ----------
    sleep
        Delay function, injectable for tests.
    """

    command_id = "say-hello-dynamic"
    command_description = "A basic command that will greet the user based on the given input."

    def __init__(self, sleep: Callable[[float], None] = time.sleep) -> None:
        self._sleep = sleep

    def flag_definitions(self) -> FlagDefinitionMap:
        return flag_map(
            string_flag("name", "Specify the user name to greet.", required=True),
            int_flag("count-to", "Specify the number of times to greet.", default=DEFAULT_COUNT_TO),
            duration_flag(
                "count-delay",
                "Specify the delay between greet repeats.",
                default=DEFAULT_COUNT_DELAY,
            ),
        )

    def validate_flags(self, flags: ParsedFlags) -> None:
        count_to = flags["count-to"]
        count_delay = flags["count-delay"]
        if count_to <= 0 or count_delay <= timedelta(0):
            raise ValueError(
                "count-to and count-delay must be greater than 0, "
                f"got {count_to}, {count_delay.total_seconds():g}s"
            )

    def exec(self, flags: ParsedFlags, sink: TextIO) -> None:
        count_to = flags["count-to"]
        delay_s = flags["count-delay"].total_seconds()
        for i in range(count_to):
            sink.write(f"Hello there {flags['name']}\n")
            if i < count_to - 1:
                self._sleep(delay_s)
