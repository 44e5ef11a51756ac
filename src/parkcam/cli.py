"""parkcam CLI - command-line interface for the parking camera agent."""

import json
import signal
from pathlib import Path
from typing import Any, NoReturn

import typer
from pydantic import ValidationError

from parkcam import __version__
from parkcam.auth import CredentialProvider
from parkcam.config import Settings, load_settings
from parkcam.coordinator import CoordinatorClient
from parkcam.errors import AuthorizationRequired, ParkcamError
from parkcam.logging import get_logger, log_fatal_error, setup_logging

app = typer.Typer(
    name="parkcam",
    help="parkcam - polls the coordinator, photographs the spot and publishes the image.",
    no_args_is_help=True,
)

logger = get_logger("parkcam.cli")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"parkcam-agent {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """parkcam - parking camera agent."""
    pass


def _output(data: dict, as_json: bool, human_message: str) -> None:
    """Output data as JSON or human-readable format."""
    if as_json:
        typer.echo(json.dumps(data))
    else:
        typer.echo(human_message)


def _settings(**overrides: Any) -> Settings:
    """Load settings or exit with the validation errors."""
    try:
        return load_settings(**overrides)
    except ValidationError as e:
        typer.echo(f"Invalid configuration:\n{e}", err=True)
        raise typer.Exit(2)


def _die(error: ParkcamError) -> NoReturn:
    log_fatal_error(logger, error)
    typer.echo(f"Dying with error:\n{error}", err=True)
    raise typer.Exit(1)


def _print_authorization_help(error: AuthorizationRequired) -> None:
    typer.echo("Visit URL to get a code then run again with --code=YOUR_CODE")
    typer.echo(error.auth_url)


@app.command()
def run(
    cache: Path = typer.Option(None, "--cache", help="Token cache file (default: cache.json)"),
    code: str = typer.Option(None, "--code", help="Authorization code"),
    test: bool = typer.Option(
        False,
        "--test",
        help="Run locally in test mode without raspistill",
    ),
    interval: float = typer.Option(
        None,
        "--interval",
        "-i",
        help="Poll interval in seconds (default: from config)",
    ),
    once: bool = typer.Option(False, "--once", help="Run a single poll cycle and exit"),
    log_level: str = typer.Option(None, "--log-level", help="Log level (default: from config)"),
) -> None:
    """Run the agent.

    Ensures the bucket exists, then polls the coordinator every interval and
    publishes a new picture whenever one is requested. Runs until a fatal
    error or Ctrl+C.
    """
    settings = _settings(
        cache_file=cache,
        test_mode=True if test else None,
        poll_interval=interval,
        log_level=log_level,
    )
    setup_logging(settings.log_level, settings.log_file, settings.location_name)

    # Import here to keep --help and --version fast
    from parkcam.engine import ParkcamAgent

    try:
        credentials = CredentialProvider(settings).get_credentials(code)
    except AuthorizationRequired as e:
        _print_authorization_help(e)
        raise typer.Exit(1)
    except ParkcamError as e:
        _die(e)

    agent = ParkcamAgent.from_credentials(settings, credentials)

    def handle_signal(signum: int, frame) -> None:
        logger.info("Stop requested", extra={"signal": signum})
        agent.stop()

    signal.signal(signal.SIGTERM, handle_signal)

    try:
        agent.start(max_cycles=1 if once else None)
    except ParkcamError as e:
        _die(e)
    except KeyboardInterrupt:
        typer.echo("\nStopping parkcam agent...")
    finally:
        agent.close()


@app.command()
def authorize(
    cache: Path = typer.Option(None, "--cache", help="Token cache file (default: cache.json)"),
    code: str = typer.Option(None, "--code", help="Authorization code"),
) -> None:
    """Cache a storage token.

    Without a code, prints the consent URL. With one, exchanges it and
    writes the token cache.
    """
    settings = _settings(cache_file=cache)
    setup_logging(settings.log_level, settings.log_file, settings.location_name)

    provider = CredentialProvider(settings)
    try:
        provider.get_credentials(code)
    except AuthorizationRequired as e:
        _print_authorization_help(e)
        raise typer.Exit(1)
    except ParkcamError as e:
        _die(e)

    typer.echo(f"Token is cached in {provider.cache_path}")


@app.command()
def check(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Poll the coordinator once and show whether a picture is requested."""
    settings = _settings()

    with CoordinatorClient(settings) as client:
        try:
            poll = client.check_for_request(settings.location_name)
        except ParkcamError as e:
            _output(
                {"status": "error", "message": str(e)},
                output_json,
                f"Check failed: {e}",
            )
            raise typer.Exit(1)

    _output(
        {"status": "ok", "location": settings.location_name, **poll.model_dump(by_alias=True)},
        output_json,
        f"{settings.location_name}: new picture requested = {poll.new_pic_requested}",
    )


if __name__ == "__main__":
    app()
