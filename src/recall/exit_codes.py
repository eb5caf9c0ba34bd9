"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~recall.exceptions.RecallError` subclass.
Shell wrappers can inspect the exit code of the ``recall`` maintenance
command to tell failure classes apart without parsing stderr.

Example::

    $ recall config get jira.root
    $ echo $?
    2   # EXIT_INVALID_USAGE -- the key is not set
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command or API was used with invalid arguments."""

EXIT_STORE_FAILURE = 5
"""The persistent cache store could not be opened, read, or written."""
