"""
Main entry point for the KraftCloud provider.

Runs the instance reconciler against a YAML manifest until interrupted.
"""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

import click

from kraftcloud_provider.config import Config, configure_logging, get_config
from kraftcloud_provider.events import EventRecorder
from kraftcloud_provider.manifest import ManifestContext
from kraftcloud_provider.plugins.reconcilers.instance import InstanceReconciler
from kraftcloud_provider.plugins.reconcilers.instance.connector import (
    kraftcloud_service_factory,
)

logger = logging.getLogger(__name__)


class Application:
    """Wires configuration, context and reconciler together."""

    def __init__(
        self,
        manifest_path: Path,
        status_path: Optional[Path] = None,
        config: Optional[Config] = None,
        allow_empty: bool = False,
    ):
        self.config = config or get_config()
        self.ctx = ManifestContext(
            manifest_path, status_path=status_path, allow_empty=allow_empty
        )
        self.reconciler = InstanceReconciler(
            config=self.config.controller,
            new_service_fn=kraftcloud_service_factory(self.config.kraftcloud),
            recorder=EventRecorder(),
        )

    async def start(self):
        """Start the reconciler loop."""
        logger.info(f"Starting KraftCloud provider for {self.ctx.manifest_path}")
        try:
            await self.reconciler.start(self.ctx)
        except asyncio.CancelledError:
            logger.info("Reconciler cancelled")

    async def stop(self):
        """Stop the reconciler gracefully."""
        logger.info("Stopping KraftCloud provider")
        self.ctx.shutdown_event.set()
        await self.reconciler.stop()


async def run(app: Application):
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.create_task(app.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await app.start()


@click.group()
def cli():
    """KraftCloud provider - reconciles Instance records against KraftCloud"""
    pass


@cli.command("run")
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--status-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write observed status of every instance to this YAML file",
)
@click.option("--poll-interval", type=int, default=None, help="Seconds between polls")
@click.option("--log-level", default=None, help="Log level (default from LOG_LEVEL)")
@click.option(
    "--allow-empty",
    is_flag=True,
    help="Treat a manifest with no documents as deleting every instance",
)
def run_command(manifest, status_file, poll_interval, log_level, allow_empty):
    """Reconcile the Instances declared in MANIFEST until interrupted"""
    config = get_config()
    if poll_interval is not None:
        config.controller.poll_interval = poll_interval
    if log_level is not None:
        config.logging.log_level = log_level.upper()

    configure_logging(config.logging)
    app = Application(
        manifest, status_path=status_file, config=config, allow_empty=allow_empty
    )
    asyncio.run(run(app))


if __name__ == "__main__":
    cli()
