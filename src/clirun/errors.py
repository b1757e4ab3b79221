"""
Error taxonomy for command registration, dispatch and execution.

Every failure that reaches the dispatcher is a `CommandError`: it carries the
command id, the pipeline stage that failed and the underlying cause, and it
renders the same way regardless of where it was raised. This keeps the
dispatcher a single, uniform reporting point.

`StepFailure` is the structured record logged alongside a failure so that
tracebacks are available for debugging without ever reaching the output sink.
"""

import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

# ==================================================================================================
#                                   TYPES
# ==================================================================================================


class ClirunError(Exception):
    """Base class for every error raised by the runtime."""


class DuplicateCommand(ClirunError):
    """
    Raised when registering a command whose id is already taken.

    Usage example
    -------------
        try:
            registry.register(cmd)
        except DuplicateCommand as exc:
            print(exc.id)
    """

    def __init__(self, command_id: str, reason: str = "is already registered") -> None:
        self.id = command_id
        super().__init__(f"command '{command_id}' {reason}")


class FlagParseFailure(ClirunError):
    """Raised by the flag parser instead of exiting the process."""


class CommandError(ClirunError):
    """
    Failure of one command invocation, annotated with the command identity.

    Attributes
    ----------
    command_id : str
        Id of the command that failed.
    stage : str
        Pipeline stage that failed ("dispatch", "configure", "parse",
        "validate", "execute", "lock").
    cause : str
        Human-readable description of the underlying problem.

    Usage example
    -------------
        err = ExecutionError("greet", "boom")
        str(err)  # "Failed to execute command greet with error: boom"
    """

    stage: str = "execute"

    def __init__(self, command_id: str, cause: str, *, stage: Optional[str] = None) -> None:
        self.command_id = command_id
        self.cause = cause
        if stage is not None:
            self.stage = stage
        super().__init__(f"Failed to execute command {command_id} with error: {cause}")


class CommandNotFound(CommandError):
    """The requested command name is not registered."""

    stage = "dispatch"

    def __init__(self, command_id: str) -> None:
        super().__init__(command_id, f"The command {command_id} does not exist")


class ParseError(CommandError):
    """Malformed flag input (unknown flag, wrong type, missing value)."""

    stage = "parse"


class ValidationError(CommandError):
    """
    One or more flag constraints are unmet.

    All violations are reported together, one per line, so a user can fix
    every missing flag in a single pass.
    """

    stage = "validate"

    def __init__(self, command_id: str, violations: Sequence[str]) -> None:
        self.violations: List[str] = list(violations)
        super().__init__(command_id, "\n".join(self.violations))


class ExecutionError(CommandError):
    """The command body raised, or a flag binder was defective."""

    stage = "execute"


class LockContention(CommandError):
    """Another holder is running the same logical command."""

    stage = "lock"

    def __init__(self, command_id: str) -> None:
        super().__init__(command_id, "command is locked, skipping execution")


class LockInfrastructureError(CommandError):
    """The lock file could not be created, locked or released."""

    stage = "lock"


@dataclass(frozen=True)
class StepFailure:
    """
    Structured failure record for logs.

    Attributes
    ----------
    step : str
        Name of the stage that failed.
    command_id : str
        Command being run.
    exc_type : str
        Exception class name.
    message : str
        Exception message.
    traceback : str
        Full traceback.
    timestamp_utc : str
        ISO timestamp.
    """

    step: str
    command_id: str
    exc_type: str
    message: str
    traceback: str
    timestamp_utc: str

    @staticmethod
    def from_exception(step: str, command_id: str, exc: BaseException) -> "StepFailure":
        """
        Capture an exception as a failure record.

        Parameters
        ----------
        step
            Stage name.
        command_id
            Command id.
        exc
            The exception being handled.

        Returns
        -------
        StepFailure
            Record with formatted traceback and UTC timestamp.
        """
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return StepFailure(
            step=step,
            command_id=command_id,
            exc_type=type(exc).__name__,
            message=str(exc),
            traceback=tb,
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
        )
