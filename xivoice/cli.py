"""Command-line interface for xivoice.

Provides ``xivoice voices``, ``voice``, ``models``, ``speak``, ``design``,
``create``, ``edit`` and ``delete`` commands.  The entry point is
registered via ``pyproject.toml`` as ``xivoice = "xivoice.cli:cli"``.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

import click

from xivoice.client import VoiceClient
from xivoice.config import ClientConfig, get_default_config
from xivoice.errors import XIVoiceError

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    """Send log output to stderr; DEBUG with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
    )


def _build_client(api_key: str | None, base_url: str | None) -> VoiceClient:
    """Create the VoiceClient used by every command."""
    config = get_default_config()
    if base_url:
        config = ClientConfig(api_key=config.api_key, base_url=base_url, timeout=config.timeout)
    return VoiceClient(api_key, config=config)


def _run(ctx: click.Context, action: Callable[[VoiceClient], Awaitable[Any]]) -> Any:
    """Run *action* against a fresh client, turning API errors into exit 1."""

    async def _main() -> Any:
        async with _build_client(ctx.obj["api_key"], ctx.obj["base_url"]) as client:
            return await action(client)

    try:
        return asyncio.run(_main())
    except XIVoiceError as exc:
        logger.debug("Command failed: %r", exc)
        click.echo(
            click.style(f"Error ({exc.kind.value}): {exc.message}", fg="red"),
            err=True,
        )
        raise SystemExit(1)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--api-key",
    envvar="XIVOICE_API_KEY",
    default=None,
    help="ElevenLabs API key (default: $XIVOICE_API_KEY)",
)
@click.option("--base-url", default=None, help="Override the API base URL")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, api_key: str | None, base_url: str | None, verbose: bool) -> None:
    """xivoice -- ElevenLabs voices and text-to-speech from the terminal."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["base_url"] = base_url


# ---------------------------------------------------------------------------
# voices / voice / models
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def voices(ctx: click.Context) -> None:
    """List the voices on the account."""
    listing = _run(ctx, lambda client: client.list_voices())
    for voice in listing.get("voices", []):
        click.echo(f"{voice.get('voice_id', '?')}  {voice.get('name', '')}")


@cli.command()
@click.argument("voice_id")
@click.pass_context
def voice(ctx: click.Context, voice_id: str) -> None:
    """Show one voice as JSON."""
    _echo_json(_run(ctx, lambda client: client.get_voice(voice_id)))


@cli.command()
@click.pass_context
def models(ctx: click.Context) -> None:
    """List the available synthesis models."""
    for model in _run(ctx, lambda client: client.list_models()):
        click.echo(f"{model.get('model_id', '?')}  {model.get('name', '')}")


# ---------------------------------------------------------------------------
# speak
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("voice_id")
@click.argument("text")
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="File to write the audio to",
)
@click.option("--model", "model_id", default=None, help="Synthesis model id")
@click.option("--stream", is_flag=True, help="Use the streaming endpoint")
@click.pass_context
def speak(
    ctx: click.Context,
    voice_id: str,
    text: str,
    output: Path,
    model_id: str | None,
    stream: bool,
) -> None:
    """Synthesize TEXT with VOICE_ID and save the audio."""
    if stream:
        # Chunks land in a sibling .part file, renamed only once the stream completes.
        partial = output.with_name(f"{output.name}.part")
        try:
            with partial.open("wb") as fh:
                _run(
                    ctx,
                    lambda client: client.text_to_speech_stream(
                        voice_id, text, fh.write, model_id=model_id
                    ),
                )
            partial.replace(output)
        finally:
            partial.unlink(missing_ok=True)
    else:
        audio = _run(ctx, lambda client: client.text_to_speech(voice_id, text, model_id=model_id))
        output.write_bytes(audio)

    click.echo(click.style(f"Wrote {output.stat().st_size} bytes to {output}", fg="green"))


# ---------------------------------------------------------------------------
# design
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("description")
@click.option("--text", default=None, help="Preview text (100-1000 characters)")
@click.option("--model", "model_id", default=None, help="Voice design model id")
@click.option("--seed", default=None, type=int, help="Generation seed")
@click.pass_context
def design(
    ctx: click.Context,
    description: str,
    text: str | None,
    model_id: str | None,
    seed: int | None,
) -> None:
    """Design a voice from DESCRIPTION and print the previews."""
    options = {"text": text, "model_id": model_id, "seed": seed}
    options = {key: value for key, value in options.items() if value is not None}
    if text is None:
        options["auto_generate_text"] = True
    _echo_json(_run(ctx, lambda client: client.design_voice(description, **options)))


# ---------------------------------------------------------------------------
# create / edit / delete
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("name")
@click.argument(
    "samples", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False)
)
@click.option("--description", default="", help="Voice description")
@click.pass_context
def create(ctx: click.Context, name: str, samples: tuple[str, ...], description: str) -> None:
    """Create a voice NAME from one or more audio SAMPLES."""
    result = _run(ctx, lambda client: client.create_voice(name, samples, description))
    click.echo(click.style(f"Created voice {result.get('voice_id', '?')}", fg="green"))


@cli.command()
@click.argument("voice_id")
@click.argument("samples", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option("--name", required=True, help="Voice name")
@click.option("--description", default="", help="Voice description")
@click.pass_context
def edit(
    ctx: click.Context,
    voice_id: str,
    samples: tuple[str, ...],
    name: str,
    description: str,
) -> None:
    """Update VOICE_ID, optionally adding SAMPLES."""
    _run(ctx, lambda client: client.edit_voice(voice_id, name, samples, description))
    click.echo(click.style(f"Updated voice {voice_id}", fg="green"))


@cli.command()
@click.argument("voice_id")
@click.confirmation_option(prompt="Delete this voice permanently?")
@click.pass_context
def delete(ctx: click.Context, voice_id: str) -> None:
    """Delete VOICE_ID from the account."""
    _run(ctx, lambda client: client.delete_voice(voice_id))
    click.echo(click.style(f"Deleted voice {voice_id}", fg="green"))
