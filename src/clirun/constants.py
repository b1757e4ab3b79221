# ==================================================================================================
#                                   Constants
# ==================================================================================================
#
# Process exit codes, the reserved help command id, and lock-file naming.
# Defining them once here keeps the dispatcher, help listing and lock in sync.

from typing import Final

# Exit status reported to the process exit function.
STATUS_OK: Final[int] = 0
STATUS_ERR: Final[int] = 1

# Reserved id, always owned by the built-in help command.
HELP_COMMAND_ID: Final[str] = "help"

# Lock files are named `<prefix>-<normalized name>-<sha256>.lock`.
LOCK_FILE_PREFIX: Final[str] = "clirun-command"
LOCK_FILE_SUFFIX: Final[str] = ".lock"
# Upper bound for the human-readable part of a lock file name.
LOCK_NAME_MAX_CHARS: Final[int] = 64

# Help listing wraps command descriptions at this width.
HELP_DESCRIPTION_WIDTH: Final[int] = 80
