"""CLI for the display launcher.

Runs the control service, or performs single gateway operations against the
configured device from the command line.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from display_launcher.config.loader import ConfigError, LauncherConfig, load_config
from display_launcher.gateway.launcher import AppLauncher
from display_launcher.gateway.staging import ArtifactStager
from display_launcher.platform.adb import AdbPlatform
from display_launcher.platform.base import AppPlatform
from display_launcher.system.launcher_service import LauncherService

logger = logging.getLogger(__name__)


def create_platform(config: LauncherConfig) -> AppPlatform:
    """Create the platform capability for the configured device."""
    return AdbPlatform(config.adb)


def create_launcher(config: LauncherConfig) -> AppLauncher:
    """Wire a gateway from configuration."""
    return AppLauncher(
        create_platform(config),
        host_package=config.host_package,
        filter_policy=config.app_filter,
        stager=ArtifactStager(config.staging),
    )


def parse_extras(pairs: Tuple[str, ...]) -> dict:
    """Parse KEY=VALUE pairs."""
    extras = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got '{pair}'", param_hint="--extra")
        extras[key] = value
    return extras


def _report(success: bool, ok_message: str, fail_message: str) -> None:
    if success:
        click.echo(f"✓ {ok_message}")
    else:
        click.echo(f"✗ {fail_message}", err=True)
        sys.exit(1)


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Path to configuration YAML")
@click.option("--log-level", default=None, help="Logging level (overrides config)")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]) -> None:
    """Display launcher control service."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))

    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = config


@cli.command()
@click.pass_obj
def serve(config: LauncherConfig) -> None:
    """Run the control API server."""
    service = LauncherService(config, create_launcher(config))
    try:
        asyncio.run(service.run())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
@click.pass_obj
def apps(config: LauncherConfig, as_json: bool) -> None:
    """List installed applications."""
    records = asyncio.run(create_launcher(config).list_applications())

    if as_json:
        click.echo(json.dumps([record.model_dump(by_alias=True) for record in records], indent=2))
        return

    if not records:
        click.echo("No apps found")
        return
    for record in records:
        marker = " [system]" if record.is_system_app else ""
        click.echo(f"{record.name:<32} {record.package_name}{marker}")


@cli.command()
@click.argument("package")
@click.option("--action", default=None, help="Intent action")
@click.option("--data", default=None, help="Intent data URI")
@click.option("--extra", "extras", multiple=True, help="String extra as KEY=VALUE")
@click.pass_obj
def launch(config: LauncherConfig, package: str, action: Optional[str],
           data: Optional[str], extras: Tuple[str, ...]) -> None:
    """Launch PACKAGE."""
    parsed = parse_extras(extras)
    launcher = create_launcher(config)
    if action is None and data is None and not parsed:
        success = asyncio.run(launcher.launch(package))
    else:
        success = asyncio.run(launcher.launch_with_intent(package, action, data, parsed or None))
    _report(success, f"Launched {package}", f"Failed to launch {package}")


@cli.command()
@click.argument("package")
@click.pass_obj
def uninstall(config: LauncherConfig, package: str) -> None:
    """Open the uninstall confirmation for PACKAGE."""
    success = asyncio.run(create_launcher(config).request_uninstall(package))
    _report(success, "Uninstall dialog opened", "Failed to open uninstall dialog")


@cli.command()
@click.argument("apk", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def install(config: LauncherConfig, apk: Path) -> None:
    """Open the install confirmation for APK."""
    launcher = create_launcher(config)

    async def _install() -> bool:
        launcher.sweep_stale_artifacts()
        staged = launcher.stager.stage_file(apk)
        success = await launcher.stage_and_request_install(staged)
        # Cleanup is scheduled after the install dialog opens; let it finish before exiting
        await launcher.stager.drain()
        return success

    _report(asyncio.run(_install()), f"Install dialog opened for {apk.name}",
            "Failed to open install dialog")


@cli.command()
@click.pass_obj
def sweep(config: LauncherConfig) -> None:
    """Remove stale staged install artifacts."""
    stager = ArtifactStager(config.staging)
    removed = stager.sweep()
    click.echo(f"Removed {removed} stale artifact(s) from {stager.directory}")


if __name__ == "__main__":
    cli()
