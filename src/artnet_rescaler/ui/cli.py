"""
Command-Line Interface for the Art-Net Rescaler.

Provides commands for running the relay, checking a configuration file
and listing MIDI input ports.
"""

from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path
from typing import Optional

import click
import structlog

from artnet_rescaler import __version__

logger = structlog.get_logger()


def _load_settings(ctx: click.Context):
    from artnet_rescaler.core.config import Settings

    if ctx.obj["config_path"]:
        return Settings.from_yaml(ctx.obj["config_path"])
    return Settings()


def _configure_logging(level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to configuration file",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, config: Optional[str]) -> None:
    """
    Art-Net Rescaler - live rescale and remap relay for Art-Net universes.

    Receives ArtDmx frames, applies per-universe rescale and remap actions
    driven by a MIDI fader, and forwards them to the configured nodes.
    """
    ctx.ensure_object(dict)

    _configure_logging("DEBUG" if debug else "INFO")

    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config) if config else None


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Run the relay until interrupted."""
    from artnet_rescaler.core.config import validate_startup_config
    from artnet_rescaler.core.exceptions import RescalerError
    from artnet_rescaler.relay import build_relay

    click.echo(f"Art-Net Rescaler v{__version__}")
    click.echo("=" * 50)

    try:
        settings = _load_settings(ctx)
        if ctx.obj["debug"]:
            settings.debug = True
        else:
            _configure_logging(settings.log_level)
        validate_startup_config(settings)
        relay = build_relay(settings)
    except (RescalerError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        if ctx.obj["debug"]:
            raise
        sys.exit(1)

    if not settings.universes:
        logger.warning("No universes configured, every frame will be dropped")

    click.echo(f"Art-Net port: {settings.artnet.port}")
    click.echo(f"Universes: {', '.join(str(u) for u in sorted(settings.universes)) or 'none'}")
    click.echo(f"MIDI port: {settings.midi_port or 'none'}")
    click.echo("Press Ctrl+C to stop.")
    click.echo()

    def _handle_sigterm(signum, frame) -> None:
        # Must not touch the dispatch queue: the interrupted get() may hold its lock.
        # run_loop's finally stops the relay.
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, _handle_sigterm)

    try:
        relay.run_loop()
    except KeyboardInterrupt:
        click.echo("\nShutting down...")
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if ctx.obj["debug"]:
            raise
        sys.exit(1)


@cli.command()
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Validate the configuration and print the universe action table."""
    from artnet_rescaler.core.config import validate_startup_config
    from artnet_rescaler.core.exceptions import ConfigError

    try:
        settings = _load_settings(ctx)
        validate_startup_config(settings)
    except (ConfigError, ValueError) as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    click.echo("Universe actions:")
    click.echo("-" * 60)
    for universe, action in sorted(settings.universes.items()):
        click.echo(
            f"  [{universe:5d}] -> {action.destination}:{action.port}"
            f"  rescale={'yes' if action.rescale else 'no'}"
            f"  remap_rules={len(action.remap)}"
        )
    if not settings.universes:
        click.echo("  (no universes configured)")

    if settings.rescale_midi_control is not None:
        click.echo(f"Rescale control: {settings.rescale_midi_control}")
    if settings.osc_forward is not None:
        click.echo(
            f"OSC forward: {settings.osc_forward.host}:{settings.osc_forward.port} "
            f"({len(settings.osc_forward.mappings)} mappings)"
        )
    click.echo("Configuration OK")


@cli.command()
@click.pass_context
def list_midi(ctx: click.Context) -> None:
    """List available MIDI input ports."""
    from artnet_rescaler.relay.midi_input import list_input_ports

    ports = list_input_ports()

    click.echo("Available MIDI input ports:")
    click.echo("-" * 60)

    for port in ports:
        click.echo(f"  {port}")

    if not ports:
        click.echo("  (no MIDI ports found)")


def main() -> None:
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
