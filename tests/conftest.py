"""Shared pytest fixtures and lightweight test doubles for the clirun test suite.

Commands here are tiny stand-ins that record what the pipeline did to them, so
tests can assert on stage behavior without real command bodies.
"""

from dataclasses import dataclass, field
import io
from pathlib import Path
import sys
from typing import Any, Callable, Optional, TextIO

import pytest

# Ensure `import clirun` resolves to the in-repo source tree during tests.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from clirun.flags import FlagDefinitionMap, ParsedFlags  # noqa: E402


@dataclass
class RecordingCommand:
    """Configurable command double that records every exec call."""

    command_id: str = "test-cmd"
    command_description: str = "Test command"
    flags: FlagDefinitionMap = field(default_factory=dict)
    body: Optional[Callable[[ParsedFlags, TextIO], None]] = None
    validator: Optional[Callable[[ParsedFlags], None]] = None
    calls: list = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.command_id

    @property
    def description(self) -> str:
        return self.command_description

    def flag_definitions(self) -> FlagDefinitionMap:
        return dict(self.flags)

    def validate_flags(self, flags: ParsedFlags) -> None:
        if self.validator is not None:
            self.validator(flags)

    def exec(self, flags: ParsedFlags, sink: TextIO) -> None:
        self.calls.append(flags)
        if self.body is not None:
            self.body(flags, sink)

    @property
    def executed(self) -> bool:
        return bool(self.calls)


class ExitRecorder:
    """Exit-function double that remembers the reported status."""

    def __init__(self) -> None:
        self.codes: list[int] = []

    def __call__(self, code: int) -> Any:
        self.codes.append(code)

    @property
    def code(self) -> int:
        assert len(self.codes) == 1, f"expected exactly one exit call, got {self.codes}"
        return self.codes[0]


@pytest.fixture
def make_command() -> Callable[..., RecordingCommand]:
    """Factory for recording command doubles."""
    return RecordingCommand


@pytest.fixture
def sink() -> io.StringIO:
    """In-memory output sink."""
    return io.StringIO()


@pytest.fixture
def exit_recorder() -> ExitRecorder:
    """Fresh exit-function double."""
    return ExitRecorder()


@pytest.fixture
def sample_config_dict() -> dict[str, Any]:
    """Small config payload with lock directory and logging entries."""
    return {
        "paths": {"lock_dir": "locks"},
        "logging": {"level": "DEBUG"},
    }
