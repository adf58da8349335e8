"""Typer-powered CLI for box-cli.

Commands:
- `invoke`: Runs an installed plugin's generator against the project in the
  current directory.
  Arguments:
    - `plugin` (str): Short plugin name (e.g. `eslint`) or full package id.
    - `--registry` (str, optional): Registry used when installing new dependencies.
    - `--inline-options` (str, optional): Plugin options as a JSON object.
    - any other `--key value` flags are passed to the plugin as options.

- `versions`: Shows the running and the latest published version.

- `plugins`: Lists generator plugins installed in the Python environment.

- `preset`: Manages presets saved in the preferences file
  (`list`, `show`, `save`, `remove`).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from box_cli import __version__
from box_cli.config import RuntimeConfig
from box_cli.exceptions import BoxCLIError
from box_cli.invoke import invoke_and_report
from box_cli.log_config import setup_logging
from box_cli.options import INLINE_OPTIONS_KEY, parse_plugin_args
from box_cli.preferences import validate_preset
from box_cli.session import Session
from box_cli.versions import is_update_available

app = typer.Typer(add_completion=False, help="Invoke generator plugins against an existing project")
preset_app = typer.Typer(help="Manage saved presets")
app.add_typer(preset_app, name="preset")
logger = logging.getLogger("box_cli")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (default: INFO)"),
) -> None:
    if isinstance(ctx.obj, Session):
        runtime = ctx.obj.runtime
    else:
        runtime = RuntimeConfig.from_env()
        ctx.obj = Session.create(runtime)
    setup_logging(log_level or runtime.log_level, runtime.log_file)


@app.command(
    "invoke",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def invoke_command(
    ctx: typer.Context,
    plugin: str = typer.Argument(..., help="Plugin short name or package id"),
    registry: Optional[str] = typer.Option(None, "--registry", help="Registry for installing new dependencies"),
    inline_options: Optional[str] = typer.Option(None, "--inline-options", help="Plugin options as a JSON object"),
):
    """Invoke the generator of an installed plugin."""
    session: Session = ctx.obj
    options = parse_plugin_args(list(ctx.args))
    if registry:
        options["registry"] = registry
    if inline_options:
        options[INLINE_OPTIONS_KEY] = inline_options
    invoke_and_report(plugin, options, Path.cwd(), session=session)


@app.command()
def versions(ctx: typer.Context):
    """Show the current and the latest published version."""
    session: Session = ctx.obj
    result = session.version_checker.get_versions()
    logger.info(f"current: {result.current}")
    logger.info(f"latest:  {result.latest}")
    if result.error is not None:
        logger.warning(f"⚠️  Could not check for updates: {result.error}")
    if is_update_available(result):
        logger.info(f"🌟  New version available: {result.current} → {result.latest}")


@app.command()
def plugins(ctx: typer.Context):
    """List generator plugins installed in this environment."""
    session: Session = ctx.obj
    available = session.registry.get_available_plugins()
    if not available:
        logger.info("No generator plugins installed.")
        return
    logger.info("Available plugins:")
    for plugin_id in available:
        logger.info(f"  • {plugin_id}")


@preset_app.command("list")
def preset_list(ctx: typer.Context):
    """List saved presets."""
    session: Session = ctx.obj
    for name, preset in session.preferences.get_presets().items():
        plugin_ids = ", ".join(preset.get("plugins", {})) or "(no plugins)"
        logger.info(f"  {name}: {plugin_ids}")


@preset_app.command("show")
def preset_show(ctx: typer.Context, name: str = typer.Argument(...)):
    """Print a preset as JSON."""
    session: Session = ctx.obj
    presets = session.preferences.get_presets()
    if name not in presets:
        logger.error(f"Preset '{name}' not found.")
        raise typer.Exit(1)
    typer.echo(json.dumps(presets[name], indent=2))


@preset_app.command("save")
def preset_save(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    preset: str = typer.Argument(..., help="Preset as a JSON object"),
):
    """Save a preset to the preferences file."""
    session: Session = ctx.obj
    try:
        data = json.loads(preset)
    except json.JSONDecodeError as e:
        logger.error(f"Preset is not valid JSON: {e}")
        raise typer.Exit(1)
    if not isinstance(data, dict) or not validate_preset(data):
        raise typer.Exit(1)
    try:
        session.preferences.save_preset(name, data)
    except BoxCLIError as e:
        logger.error(f"Failed to save preset: {e}")
        raise typer.Exit(1)
    logger.info(f"✔  Preset '{name}' saved to {session.preferences.rc_path}")


@preset_app.command("remove")
def preset_remove(ctx: typer.Context, name: str = typer.Argument(...)):
    """Remove a saved preset."""
    session: Session = ctx.obj
    if not session.preferences.remove_preset(name):
        logger.error(f"Preset '{name}' is not saved.")
        raise typer.Exit(1)
    logger.info(f"✔  Preset '{name}' removed.")


if __name__ == "__main__":
    app()
