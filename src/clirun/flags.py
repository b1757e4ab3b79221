# ==================================================================================================
#                                   Flags
# ==================================================================================================
#
# Declarative flag contract for commands, and the argparse-backed parsing
# facility the pipeline feeds it into.
#
# A command describes its options as `FlagDefinition`s. Each definition keeps
# display metadata (description, required, default text) next to a *binder*
# that registers the concrete option on a parser. The typed constructors at
# the bottom of this module cover the supported scalar types.
#
# Parsed values are exposed as `ParsedFlags`, a read-only mapping keyed by the
# flag name exactly as declared (dashes included).

import argparse
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, TextIO

from clirun.errors import FlagParseFailure

# ==================================================================================================
#                                   TYPES
# ==================================================================================================

FlagBinder = Callable[[argparse.ArgumentParser], None]


@dataclass(frozen=True)
class FlagDefinition:
    """
    Definition of one command-line flag.

    Attributes
    ----------
    name : str
        Flag name without leading dashes, e.g. "count-to".
    description : str
        Help text.
    required : bool
        Whether a non-empty value must be present after parsing.
    default : str
        Default value rendered as display text. Required flags show it in help
        but do not bind it, so an omitted required flag parses as None.
    binder : FlagBinder
        Registers the concrete option on a parser.

    Usage example
    -------------
        definition = string_flag("name", "User to greet.", required=True)
        definition.binder(parser)
    """

    name: str
    description: str
    required: bool
    default: str
    binder: FlagBinder

    def __post_init__(self) -> None:
        if not self.name or self.name.startswith("-"):
            raise ValueError(f"Invalid flag name: {self.name!r}")


FlagDefinitionMap = Dict[str, FlagDefinition]


class ParsedFlags(Mapping[str, Any]):
    """
    Read-only view of parsed flag values, looked up by flag name.

    Usage example
    -------------
        flags = ParsedFlags({"name": "Ada", "count-to": 2})
        flags["count-to"]  # 2
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(values or {})

    @staticmethod
    def from_namespace(namespace: argparse.Namespace) -> "ParsedFlags":
        """Build a view from an argparse namespace."""
        return ParsedFlags(vars(namespace))

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ParsedFlags({self._values!r})"


# ==================================================================================================
#                                   PARSER
# ==================================================================================================

class CommandArgumentParser(argparse.ArgumentParser):
    """
    Flag parser scoped to one command.

    Usage and help text go to the command output sink. Malformed input and
    `-h/--help` raise `FlagParseFailure` instead of terminating the process,
    so the pipeline stays in charge of the exit status.

    Parameters
    ----------
    command_id
        Id of the command; used as `prog` and in the usage header.
    sink
        Text stream receiving usage/help output.
    """

    def __init__(self, command_id: str, sink: TextIO) -> None:
        super().__init__(prog=command_id, allow_abbrev=False)
        self.sink = sink

    def format_usage_text(self) -> str:
        """Usage block shown on parse errors: header plus the full option list."""
        return f"Usage of {self.prog}:\n{self.format_help()}"

    def print_usage(self, file: Optional[TextIO] = None) -> None:
        self._print_message(self.format_usage_text(), file or self.sink)

    def print_help(self, file: Optional[TextIO] = None) -> None:
        self._print_message(self.format_usage_text(), file or self.sink)

    def error(self, message: str) -> None:
        self.print_usage()
        raise FlagParseFailure(message)

    def exit(self, status: int = 0, message: Optional[str] = None) -> None:
        # Reached from the built-in help action after printing help.
        raise FlagParseFailure(message.strip() if message else "help requested")


# ==================================================================================================
#                                   DURATIONS
# ==================================================================================================

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration string such as "1s", "250ms" or "1h30m".

    A bare "0" is accepted; any other value needs a unit on every part.

    Raises
    ------
    ValueError
        If the text is not a valid duration.
    """
    raw = text.strip()
    sign = 1
    if raw[:1] in ("-", "+"):
        sign = -1 if raw[0] == "-" else 1
        raw = raw[1:]
    if raw == "0":
        return timedelta(0)
    if not raw:
        raise ValueError(f"invalid duration: {text!r}")

    total_seconds = 0.0
    pos = 0
    while pos < len(raw):
        match = _DURATION_PART.match(raw, pos)
        if match is None:
            raise ValueError(f"invalid duration: {text!r}")
        total_seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return timedelta(seconds=sign * total_seconds)


def format_duration(value: timedelta) -> str:
    """Render a timedelta the way `parse_duration` reads it ("1s", "1m30s", "250ms")."""
    micros = round(value / timedelta(microseconds=1))
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros == 0:
        return "0s"
    if micros < 1_000_000:
        if micros % 1000 == 0:
            return f"{sign}{micros // 1000}ms"
        return f"{sign}{micros}us"

    hours, rem = divmod(micros, 3_600_000_000)
    minutes, rem = divmod(rem, 60_000_000)
    out = ""
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    out += f"{rem / 1_000_000:g}s"
    return sign + out


def _duration_type(text: str) -> timedelta:
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


# ==================================================================================================
#                                   CONSTRUCTORS
# ==================================================================================================

def _option_binder(name: str, required: bool, default: Any, **kwargs: Any) -> FlagBinder:
    # Required flags bind no default so an omitted flag parses as None.
    bound_default = None if required else default

    def bind(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(f"--{name}", dest=name, default=bound_default, **kwargs)

    return bind


def string_flag(name: str, description: str, *, required: bool = False, default: str = "") -> FlagDefinition:
    """
    String flag `--<name> VALUE`.

    Usage example
    -------------
        string_flag("name", "Specify the user name to greet.", required=True)
    """
    binder = _option_binder(name, required, default, type=str, help=description, metavar="VALUE")
    return FlagDefinition(name, description, required, default, binder)


def int_flag(name: str, description: str, *, required: bool = False, default: int = 0) -> FlagDefinition:
    """Integer flag `--<name> N`."""
    binder = _option_binder(name, required, default, type=int, help=description, metavar="N")
    return FlagDefinition(name, description, required, str(default), binder)


def float_flag(name: str, description: str, *, required: bool = False, default: float = 0.0) -> FlagDefinition:
    """Float flag `--<name> X`."""
    binder = _option_binder(name, required, default, type=float, help=description, metavar="X")
    return FlagDefinition(name, description, required, str(default), binder)


def bool_flag(name: str, description: str, *, default: bool = False) -> FlagDefinition:
    """
    Boolean switch `--<name>` / `--no-<name>`.

    Boolean flags always carry a value, so they are never marked required.
    """
    binder = _option_binder(name, False, default, action=argparse.BooleanOptionalAction, help=description)
    return FlagDefinition(name, description, False, str(default).lower(), binder)


def duration_flag(
    name: str,
    description: str,
    *,
    required: bool = False,
    default: timedelta = timedelta(0),
) -> FlagDefinition:
    """Duration flag `--<name> 1s`, parsed into a `datetime.timedelta`."""
    binder = _option_binder(name, required, default, type=_duration_type, help=description, metavar="DURATION")
    return FlagDefinition(name, description, required, format_duration(default), binder)


def flag_map(*definitions: FlagDefinition) -> FlagDefinitionMap:
    """
    Key definitions by flag name.

    Raises
    ------
    ValueError
        If two definitions share a name.
    """
    out: FlagDefinitionMap = {}
    for definition in definitions:
        if definition.name in out:
            raise ValueError(f"Duplicate flag definition: {definition.name}")
        out[definition.name] = definition
    return out
