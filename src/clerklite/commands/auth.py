"""Auth commands -- sign in, sign up, and manage the stored session.

Provides the ``clerklite auth`` sub-command group. Every command loads the
SDK against the active profile, which restores the session left by a
previous invocation from the profile's disk storage.

Typical workflow::

    clerklite auth sign-in a@b.com          # prompts for the password
    clerklite auth whoami
    clerklite auth token --template supabase
    clerklite auth sign-out
"""

from __future__ import annotations

from typing import Optional

import typer

from clerklite.commands.runtime import (
    loaded_sdk,
    organization_record,
    run,
    session_record,
    user_record,
)
from clerklite.exceptions import NotSignedInError, PreconditionError
from clerklite.flows.sign_in import SignInFlow
from clerklite.models import SignInAttempt
from clerklite.output import format_response, info, print_data, success, suggest
from clerklite.sdk import ClerkSDK

auth_app = typer.Typer(no_args_is_help=True)

SIGN_IN_STRATEGIES = ("password", "email_code", "phone_code")


def _require_signed_in(sdk: ClerkSDK) -> None:
    if not sdk.is_signed_in:
        raise NotSignedInError("Not signed in. Run 'clerklite auth sign-in <identifier>'.")


async def _finish_second_factor(flow: SignInFlow, attempt: SignInAttempt) -> SignInAttempt:
    if not attempt.supported_second_factors:
        raise PreconditionError("A second factor is required but none is offered")
    strategy = attempt.supported_second_factors[0].strategy
    if strategy == "phone_code":
        await flow.prepare_second_factor(strategy)
        info("A verification code was sent to your phone.")
    code = typer.prompt(f"Second factor code ({strategy})")
    return await flow.attempt_second_factor(strategy, code=code)


@auth_app.command("sign-in")
def auth_sign_in(
    ctx: typer.Context,
    identifier: str = typer.Argument(help="Email address, phone number, or username."),
    strategy: str = typer.Option(
        "password", "--strategy", "-s", help="password, email_code, or phone_code."
    ),
    password: Optional[str] = typer.Option(
        None, "--password", help="Password (prompted when omitted)."
    ),
    code: Optional[str] = typer.Option(
        None, "--code", help="Verification code (prompted when omitted)."
    ),
) -> None:
    """Sign in to the configured instance.

    With ``--strategy password`` the password is prompted for unless given.
    With a code strategy a code is sent first and then prompted for. A
    second factor, when the account requires one, is prompted for as well.

    Example::

        clerklite auth sign-in a@b.com
        clerklite auth sign-in a@b.com --strategy email_code
    """
    if strategy not in SIGN_IN_STRATEGIES:
        raise typer.BadParameter(
            f"must be one of: {', '.join(SIGN_IN_STRATEGIES)}", param_hint="--strategy"
        )

    async def _sign_in() -> None:
        async with loaded_sdk(ctx) as sdk:
            flow = sdk.sign_in()
            await flow.create(identifier)
            if not flow.supports(strategy):
                info(f"Available strategies: {', '.join(flow.supported_strategies) or 'none'}")
            if strategy == "password":
                secret = password or typer.prompt("Password", hide_input=True)
                attempt = await flow.attempt_first_factor("password", password=secret)
            else:
                await flow.prepare_first_factor(strategy)
                info("A verification code is on its way.")
                entered = code or typer.prompt("Verification code")
                attempt = await flow.attempt_first_factor(strategy, code=entered)

            if attempt.needs_second_factor:
                attempt = await _finish_second_factor(flow, attempt)

            if sdk.is_signed_in and sdk.session is not None:
                success(f"Signed in as {sdk.session.user.primary_email or identifier}.")
                suggest("Get a token: clerklite auth token")
            else:
                info(f"Sign-in incomplete (status: {attempt.status}).")

    run(_sign_in())


@auth_app.command("sign-up")
def auth_sign_up(
    ctx: typer.Context,
    email: Optional[str] = typer.Option(None, "--email", help="Email address to register."),
    phone: Optional[str] = typer.Option(None, "--phone", help="Phone number to register."),
    first_name: Optional[str] = typer.Option(None, "--first-name"),
    last_name: Optional[str] = typer.Option(None, "--last-name"),
) -> None:
    """Create an account and verify it with a one-time code.

    Example::

        clerklite auth sign-up --email a@b.com --first-name Ada
    """
    if bool(email) == bool(phone):
        raise typer.BadParameter("pass exactly one of --email or --phone")

    async def _sign_up() -> None:
        async with loaded_sdk(ctx) as sdk:
            flow = sdk.sign_up()
            password = typer.prompt("Password", hide_input=True, confirmation_prompt=True)
            if email:
                await flow.sign_up_with_email(email, password, first_name, last_name)
                info(f"A verification code was sent to {email}.")
                attempt = await flow.verify_email(typer.prompt("Verification code"))
            else:
                assert phone is not None
                await flow.sign_up_with_phone(phone, password, first_name, last_name)
                info(f"A verification code was sent to {phone}.")
                attempt = await flow.verify_phone(typer.prompt("Verification code"))

            if sdk.is_signed_in:
                success(f"Account created (user {attempt.created_user_id}).")
            else:
                info(f"Sign-up incomplete (status: {attempt.status}).")
                if flow.missing_fields:
                    info(f"Missing fields: {', '.join(flow.missing_fields)}")

    run(_sign_up())


@auth_app.command("sign-out")
def auth_sign_out(
    ctx: typer.Context,
    all_sessions: bool = typer.Option(False, "--all", help="End every session of this client."),
) -> None:
    """Sign out of the current session (or every session with ``--all``)."""

    async def _sign_out() -> None:
        async with loaded_sdk(ctx) as sdk:
            if all_sessions:
                await sdk.sign_out_all()
                success("Signed out of all sessions.")
                return
            if sdk.session is None:
                info("Not signed in.")
                return
            await sdk.sign_out()
            success("Signed out.")

    run(_sign_out())


@auth_app.command("whoami")
def auth_whoami(ctx: typer.Context) -> None:
    """Show the signed-in user, fetched fresh from the server."""

    async def _whoami() -> None:
        async with loaded_sdk(ctx) as sdk:
            _require_signed_in(sdk)
            user = await sdk.get_user()
            record = user_record(user)
            record["organization"] = organization_record(sdk.organization)
            format_response(record)

    run(_whoami())


@auth_app.command("token")
def auth_token(
    ctx: typer.Context,
    template: str = typer.Option("", "--template", "-t", help="JWT template name."),
) -> None:
    """Print a session JWT to stdout.

    Example::

        curl -H "Authorization: Bearer $(clerklite auth token)" https://api.example.com
    """

    async def _token() -> None:
        async with loaded_sdk(ctx) as sdk:
            _require_signed_in(sdk)
            print_data(await sdk.get_token(template))

    run(_token())


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show whether a session is active, without contacting ``/me``."""

    async def _status() -> None:
        async with loaded_sdk(ctx) as sdk:
            record: dict = {"domain": sdk.profile.domain}
            if sdk.environment is not None:
                record["instance"] = "development" if sdk.environment.is_development else "production"
            record["signed_in"] = sdk.is_signed_in
            if sdk.session is not None:
                record.update(session_record(sdk.session))
            format_response(record)
            if not sdk.is_signed_in:
                suggest("Sign in: clerklite auth sign-in <identifier>")

    run(_status())
