"""
Shared command contract.

This module defines the structural interface every runnable command satisfies.
The registry, pipeline and dispatcher operate only on this protocol, never on
concrete command classes.
"""

from abc import ABC, abstractmethod
from typing import ClassVar, Protocol, TextIO, runtime_checkable

from clirun.flags import FlagDefinitionMap, ParsedFlags

# ==================================================================================================
#                                   TYPES
# ==================================================================================================

@runtime_checkable
class Command(Protocol):
    """
    Structural interface for commands.

    Any object registered in a `CommandsRegistry` implements this protocol:
    - `id` is the unique, non-empty registry key (also the default lock name).
    - `description` is display text for the help listing.
    - `flag_definitions()` declares the command's options.
    - `validate_flags(...)` runs cross-flag checks and raises to reject.
    - `exec(...)` runs the command body and raises to fail.
    """

    @property
    def id(self) -> str: ...

    @property
    def description(self) -> str: ...

    def flag_definitions(self) -> FlagDefinitionMap: ...
    def validate_flags(self, flags: ParsedFlags) -> None: ...
    def exec(self, flags: ParsedFlags, sink: TextIO) -> None: ...


class BaseCommand(ABC):
    """
    Convenience base for commands without flags or custom validation.

    Subclasses set `command_id` and `command_description` and must implement
    `exec`; a subclass without it cannot be instantiated. They override
    `flag_definitions` / `validate_flags` when they take options.

    Usage example
    -------------
        class SayHello(BaseCommand):
            command_id = "say-hello"
            command_description = "Greets the user."

            def exec(self, flags, sink):
                sink.write("Hello there!")
    """

    command_id: ClassVar[str] = ""
    command_description: ClassVar[str] = ""

    @property
    def id(self) -> str:
        return self.command_id

    @property
    def description(self) -> str:
        return self.command_description

    def flag_definitions(self) -> FlagDefinitionMap:
        return {}

    def validate_flags(self, flags: ParsedFlags) -> None:
        return None

    @abstractmethod
    def exec(self, flags: ParsedFlags, sink: TextIO) -> None:
        """Run the command body, writing output to `sink`."""
