"""Multi-step sign-in and sign-up wizards.

Each flow wraps one server-side attempt record. Every step sends one
request and replaces the flow's attempt with the one the server returns, so
``flow.attempt`` always reflects what the server last said, including after
a failed step when the error response carries the attempt.

Local preconditions (a step called before ``create``, a strategy the
attempt does not offer) raise :class:`~clerklite.exceptions.PreconditionError`
without touching the network. Provider errors are re-raised unchanged.

When a step completes the attempt, the flow picks the created session out of
the response's client payload and hands it to the ``on_complete`` callback,
which the SDK wires to its adopt transition.
"""

from clerklite.flows.sign_in import SignInFlow
from clerklite.flows.sign_up import SignUpFlow

__all__ = ["SignInFlow", "SignUpFlow"]
