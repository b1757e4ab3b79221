# ==================================================================================================
#                                   Execution pipeline
# ==================================================================================================
#
# Runs one command through a linear, retry-free sequence of stages:
#
#     configure -> parse -> validate -> execute
#
# Each stage either advances or fails. Failures are converted into a
# `CommandError` subclass annotated with the command id, so the dispatcher sees
# one error shape regardless of which stage broke. Exceptions raised by the
# command body are caught at this boundary and never unwind further.
#

import logging
from typing import List, Sequence, TextIO

from clirun.command import Command
from clirun.errors import (
    CommandError,
    ExecutionError,
    FlagParseFailure,
    ParseError,
    StepFailure,
    ValidationError,
)
from clirun.flags import CommandArgumentParser, ParsedFlags

logger = logging.getLogger(__name__)


# ==================================================================================================
#                                   STAGES
# ==================================================================================================

def setup_flag_parser(cmd: Command, sink: TextIO) -> CommandArgumentParser:
    """
    Build a flag parser scoped to `cmd.id` and bind every declared flag.

    Parameters
    ----------
    cmd
        Command whose flag definitions are bound.
    sink
        Output sink receiving usage text.

    Returns
    -------
    CommandArgumentParser
        Parser ready for `parse_args`.

    Usage example
    -------------
        parser = setup_flag_parser(cmd, sys.stdout)
        namespace = parser.parse_args(["--name", "Ada"])
    """
    parser = CommandArgumentParser(cmd.id, sink)
    for definition in cmd.flag_definitions().values():
        definition.binder(parser)
    return parser


def is_missing(value: object) -> bool:
    """A required flag is missing when unset, `None`, or an empty string."""
    return value is None or (isinstance(value, str) and value == "")


def validate_flags(cmd: Command, flags: ParsedFlags) -> List[str]:
    """
    Collect every flag violation for `cmd`.

    Required flags are checked first and all of them are reported. Custom
    validation only runs once every required flag is present; a rejection
    from it is added as one more violation.

    Returns
    -------
    list[str]
        Violation messages; empty when the flags are valid.
    """
    violations = [
        f"flag '{definition.name}' is required"
        for definition in cmd.flag_definitions().values()
        if definition.required and is_missing(flags.get(definition.name))
    ]
    if violations:
        return violations

    try:
        cmd.validate_flags(flags)
    except Exception as exc:  # noqa: BLE001 (boundary catch: custom validation)
        _log_failure("validate", cmd.id, exc)
        violations.append(str(exc) or type(exc).__name__)
    return violations


# ==================================================================================================
#                                   CORE LOGIC
# ==================================================================================================

def run_command(cmd: Command, args: Sequence[str], sink: TextIO) -> None:
    """
    Configure, parse, validate and execute one command.

    Parameters
    ----------
    cmd
        Command to run.
    args
        Arguments following the command name.
    sink
        Output sink handed to the command body.

    Raises
    ------
    CommandError
        `ParseError`, `ValidationError` or `ExecutionError` for the failing
        stage. Errors that already are `CommandError`s (e.g. lock contention
        from a wrapped command) propagate unchanged.

    Usage example
    -------------
        try:
            run_command(cmd, ["--name", "Ada"], sys.stdout)
        except CommandError as exc:
            print(exc)
    """
    command_id = cmd.id

    try:
        parser = setup_flag_parser(cmd, sink)
    except Exception as exc:  # noqa: BLE001 (boundary catch: defective binder)
        _log_failure("configure", command_id, exc)
        raise ExecutionError(command_id, _describe(exc), stage="configure") from exc
    logger.debug("%s: flags configured", command_id)

    try:
        namespace = parser.parse_args(list(args))
    except FlagParseFailure as exc:
        raise ParseError(command_id, str(exc)) from exc
    flags = ParsedFlags.from_namespace(namespace)
    logger.debug("%s: parsed flags %s", command_id, sorted(flags))

    violations = validate_flags(cmd, flags)
    if violations:
        raise ValidationError(command_id, violations)
    logger.debug("%s: flags validated", command_id)

    try:
        cmd.exec(flags, sink)
    except CommandError:
        raise
    except (Exception, SystemExit) as exc:  # noqa: BLE001 (boundary catch: command body)
        _log_failure("execute", command_id, exc)
        raise ExecutionError(command_id, _describe(exc)) from exc
    logger.debug("%s: executed", command_id)


# ==================================================================================================
#                                   HELPERS
# ==================================================================================================

def _describe(exc: BaseException) -> str:
    if isinstance(exc, SystemExit):
        return f"command requested process exit with status {exc.code}"
    message = str(exc)
    return message if message else type(exc).__name__


def _log_failure(step: str, command_id: str, exc: BaseException) -> None:
    failure = StepFailure.from_exception(step, command_id, exc)
    logger.debug(
        "%s failed at %s | %s: %s\n%s",
        failure.command_id,
        failure.step,
        failure.exc_type,
        failure.message,
        failure.traceback,
    )
