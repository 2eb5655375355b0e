"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~clerklite.exceptions.ClerkliteError` subclass.
Shell scripts wrapping the ``clerklite`` CLI can inspect the exit code to
tell a wrong password apart from an unreachable instance without parsing
stderr.

Example::

    $ clerklite auth sign-in a@b.com
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the provider rejected the credentials
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""A flow step was called out of order or with an unsupported strategy."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed or no session is active."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The provider returned an error response or an unreadable body."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
