"""Sanity checks for exit codes and reserved names."""

from clirun.constants import HELP_COMMAND_ID, LOCK_FILE_SUFFIX, STATUS_ERR, STATUS_OK


def test_exit_codes_and_reserved_id() -> None:
    """Exit codes follow the shell convention; help is the reserved id."""
    assert STATUS_OK == 0
    assert STATUS_ERR == 1
    assert HELP_COMMAND_ID == "help"
    assert LOCK_FILE_SUFFIX == ".lock"
