"""Command line entry point: ``groq-chat chat`` and ``groq-chat serve``."""

from __future__ import annotations

import asyncio
import sys

import click
from dotenv import load_dotenv
from loguru import logger

from groq_chat.app_config import AppConfig, RuntimeEnv, load_json_config, parse_app_config, resolve_runtime_env
from groq_chat.auth import AuthClient, AuthSession, SessionFile
from groq_chat.bootstrap import bootstrap_chat
from groq_chat.errors import AuthError, ConfigError
from groq_chat.modes import ChatMode
from groq_chat.store import create_supabase_client

_SESSION_FILE = ".groq_chat/session.json"


def _load_settings() -> tuple[AppConfig, RuntimeEnv]:
    load_dotenv()
    app = parse_app_config(load_json_config())
    return app, resolve_runtime_env(app.provider_name)


async def _sign_in(auth: AuthClient, session_file: SessionFile) -> AuthSession | None:
    """Prompt until the user is signed in. Provider errors are shown as reported."""
    saved = session_file.load()
    if saved is not None:
        try:
            session = await auth.restore(saved)
        except AuthError as ex:
            click.echo(click.style(f"Saved session is no longer valid: {ex}", fg="yellow"))
            session_file.clear()
        else:
            session_file.save(session)
            return session

    click.echo("Sign in to sync your chats.")
    while True:
        try:
            sign_up = click.confirm("Create a new account?", default=False)
            email = click.prompt("Email")
            password = click.prompt("Password", hide_input=True)
        except click.Abort:
            return None
        try:
            if sign_up:
                session = await auth.sign_up(email, password)
                if session is None:
                    click.echo("Check your email to confirm your account, then sign in.")
                    continue
            else:
                session = await auth.sign_in(email, password)
        except AuthError as ex:
            click.echo(click.style(str(ex), fg="red"))
            continue
        click.echo("Welcome back!" if not sign_up else "Account created.")
        session_file.save(session)
        return session


async def _chat_main(local: bool, mode: str | None) -> int:
    app, env = _load_settings()
    if mode:
        app.default_mode = ChatMode(mode)

    supabase = None
    auth: AuthClient | None = None
    auth_session: AuthSession | None = None
    session_file = SessionFile(_SESSION_FILE)
    if app.store_backend == "supabase" and env.supabase_url and env.supabase_anon_key:
        supabase = await create_supabase_client(env.supabase_url, env.supabase_anon_key)
        auth = AuthClient(supabase)
        auth_session = await _sign_in(auth, session_file)
        if auth_session is None:
            return 1

    async def logout() -> None:
        if auth is not None:
            try:
                await auth.sign_out()
            except AuthError as ex:
                click.echo(click.style(str(ex), fg="red"))
        session_file.clear()
        click.echo("Signed out.")

    def echo_chunk(text: str) -> None:
        print(text, end="", flush=True)

    try:
        runtime = bootstrap_chat(
            app,
            env,
            local=local,
            auth_session=auth_session,
            supabase=supabase,
            on_logout=logout if auth is not None else None,
            on_chunk=echo_chunk,
        )
    except ConfigError as ex:
        click.echo(click.style(str(ex), fg="red"), err=True)
        return 1

    console = runtime.console
    print(f"{console.greeting()} (type 'exit' to quit, '/help' for commands)")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()

    try:
        while not console.exit_requested:
            try:
                user_input = input(console.USER_PROMPT)
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()
            if trimmed in ("exit", "quit"):
                break
            if not trimmed:
                continue

            try:
                await console.handle_line(user_input)
                print()
            except Exception as ex:
                logger.error(f"Unhandled error: {ex}")
    finally:
        await runtime.close()
    return 0


@click.group()
def cli():
    """groq-chat: streamed LLM chat with modes, saved history and comments."""
    pass


@cli.command()
@click.option("--local", is_flag=True, help="Call the model directly instead of going through RelayUrl.")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ChatMode]),
    default=None,
    help="Start in this mode instead of DefaultMode.",
)
def chat(local: bool, mode: str | None):
    """Start an interactive chat in the terminal."""
    sys.exit(asyncio.run(_chat_main(local, mode)))


@cli.command()
@click.option("--host", default=None, help="Bind address (default: Host from config.json).")
@click.option("--port", type=int, default=None, help="Port (default: Port from config.json).")
def serve(host: str | None, port: int | None):
    """Run the HTTP completion relay."""
    import uvicorn

    from groq_chat.logging_config import setup_logging
    from groq_chat.server import create_app_from_config

    app, env = _load_settings()
    setup_logging(level=app.log_level, consumers=app.log_consumers, command="serve")
    try:
        api = create_app_from_config(app, env)
    except ConfigError as ex:
        logger.error(str(ex))
        sys.exit(1)
    uvicorn.run(api, host=host or app.host, port=port or app.port, log_config=None)


if __name__ == "__main__":
    cli()
