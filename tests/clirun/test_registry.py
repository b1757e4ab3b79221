"""Tests for command registration, lookup and copy-on-read behavior."""

import pytest

from clirun.errors import DuplicateCommand
from clirun.registry import CommandsRegistry


def test_register_rejects_duplicate_and_keeps_first(make_command) -> None:
    """A second command with the same id fails and leaves the first in place."""
    registry = CommandsRegistry()
    first = make_command(command_id="test-cmd", command_description="first")
    second = make_command(command_id="test-cmd", command_description="second")

    registry.register(first)
    with pytest.raises(DuplicateCommand, match="already registered") as info:
        registry.register(second)

    assert info.value.id == "test-cmd"
    cmd, found = registry.lookup("test-cmd")
    assert found is True
    assert cmd is first
    assert len(registry) == 1


def test_register_rejects_reserved_help_id(make_command) -> None:
    """User commands cannot take the built-in help id."""
    registry = CommandsRegistry()

    with pytest.raises(DuplicateCommand, match="reserved"):
        registry.register(make_command(command_id="help"))

    assert "help" not in registry


def test_register_rejects_empty_id(make_command) -> None:
    """An empty id is never a valid registry key."""
    registry = CommandsRegistry()

    with pytest.raises(ValueError, match="non-empty"):
        registry.register(make_command(command_id=""))


def test_commands_returns_copy(make_command) -> None:
    """Mutating the returned mapping must not affect the registry."""
    registry = CommandsRegistry()
    registry.register(make_command(command_id="cmd1"))
    registry.register(make_command(command_id="cmd2"))

    commands = registry.commands()
    assert sorted(commands) == ["cmd1", "cmd2"]

    del commands["cmd1"]
    commands["intruder"] = make_command(command_id="intruder")

    assert registry.lookup("cmd1")[1] is True
    assert registry.lookup("intruder") == (None, False)
    assert sorted(registry.commands()) == ["cmd1", "cmd2"]


def test_lookup_reports_absence_without_raising() -> None:
    """Unknown ids are a normal not-found result."""
    registry = CommandsRegistry()

    assert registry.lookup("non-existent") == (None, False)
