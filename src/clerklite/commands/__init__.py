"""Built-in CLI sub-commands for clerklite.

* :mod:`~clerklite.commands.init` -- create a profile for a Clerk instance.
* :mod:`~clerklite.commands.auth` -- sign in, sign up, sign out, tokens.
* :mod:`~clerklite.commands.orgs` -- organization listing and switching.
* :mod:`~clerklite.commands.config` -- view and modify settings.

:mod:`~clerklite.commands.runtime` holds what they share: profile
resolution, building a loaded :class:`~clerklite.sdk.ClerkSDK` on the
profile's disk storage, and running a coroutine with errors mapped to
exit codes.
"""
