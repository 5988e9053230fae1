"""Command line interface for git-scope."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional, Tuple

import click
from rich.console import Console

from . import __version__
from .core.config import Config, default_config_path, smart_default_roots
from .core.errors import GitScopeError
from .core.logging import setup_logging
from .core.paths import expand_dirs
from .core.scanner import scan_roots

console = Console()


class DefaultGroup(click.Group):
    """Group that runs ``tui`` when the first argument is not a command.

    This lets ``git-scope ~/code ~/work`` open the dashboard directly.
    """

    def resolve_command(self, ctx: click.Context, args: List[str]) -> Any:
        if args and not args[0].startswith("-") and self.get_command(ctx, args[0]) is None:
            args = ["tui", *args]
        return super().resolve_command(ctx, args)


def _load_config(ctx: click.Context, dirs: Tuple[str, ...]) -> Config:
    """Load configuration and settle which roots to scan.

    Directories given on the command line win. Without them, and without a
    config file, common project directories on this machine are used.
    """
    config_path: Path = ctx.obj["config_path"]
    config = Config.load(config_path)
    if dirs:
        config.roots = expand_dirs(list(dirs))
    elif not Config.exists(config_path):
        config.roots = smart_default_roots()
    return config


@click.group(cls=DefaultGroup, invoke_without_command=True)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config file (default: ~/.config/git-scope/config.yml)",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write logs to this file")
@click.version_option(__version__, prog_name="git-scope")
@click.pass_context
def cli(
    ctx: click.Context, config_path: Optional[Path], debug: bool, log_file: Optional[str]
) -> None:
    """A fast dashboard for the status of all your git repositories.

    Run without a command to launch the dashboard. Directories given instead
    of a command are scanned in place of the configured roots.

    Main commands:

      tui       Launch the dashboard (default)
      scan      Scan and print repositories as JSON
      init      Create a config file interactively

    Examples:

      # Scan configured directories, or common project directories
      git-scope

      # Scan specific directories
      git-scope ~/code ~/work

      # Print the current directory's repositories as JSON
      git-scope scan .
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path or default_config_path()
    ctx.obj["debug"] = debug
    ctx.obj["log_file"] = log_file

    if ctx.invoked_subcommand is None:
        ctx.invoke(tui)


@cli.command()
@click.argument("dirs", nargs=-1)
@click.option("--refresh", is_flag=True, help="Ignore the cached scan and rescan now")
@click.pass_context
def tui(ctx: click.Context, dirs: Tuple[str, ...], refresh: bool) -> None:
    """Launch the interactive dashboard.

    DIRS override the configured roots for this session.
    """
    from .dashboard import Dashboard

    setup_logging(
        debug=ctx.obj["debug"],
        log_file=ctx.obj["log_file"],
        console_output=False,
    )
    try:
        config = _load_config(ctx, dirs)
        Dashboard(config, force_refresh=refresh).run()
    except (GitScopeError, ValueError) as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()


@cli.command()
@click.argument("dirs", nargs=-1)
@click.pass_context
def scan(ctx: click.Context, dirs: Tuple[str, ...]) -> None:
    """Scan for repositories and print them as JSON.

    DIRS override the configured roots. The cache is neither read nor written.

    Examples:

      # Scan the current directory
      git-scope scan .

      # Count dirty repositories with jq
      git-scope scan ~/code | jq '[.[] | select(.status.is_dirty)] | length'
    """
    setup_logging(debug=ctx.obj["debug"], log_file=ctx.obj["log_file"])
    try:
        config = _load_config(ctx, dirs)
        repos = scan_roots(config.roots, config.ignore)
    except (GitScopeError, ValueError) as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()

    repos.sort(key=lambda r: r.path)
    click.echo(json.dumps([repo.to_dict() for repo in repos], indent=2))


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create a config file interactively.

    Asks for the directories to scan and the editor command, then writes
    them to the config file.
    """
    config_path: Path = ctx.obj["config_path"]
    console.print("[bold]git-scope init[/bold]: set up your configuration\n")

    if Config.exists(config_path):
        console.print(f"Config file already exists at: {config_path}")
        if not click.confirm("Overwrite?", default=False):
            console.print("Aborted.")
            return

    console.print("Enter directories to scan for git repos (empty line to finish).")
    console.print("[dim]Examples: ~/code, ~/projects, ~/work[/dim]")
    dirs: List[str] = []
    while True:
        line = click.prompt(">", default="", show_default=False).strip()
        if not line:
            break
        dirs.append(line)

    if not dirs:
        detected = smart_default_roots()
        console.print("\nNo directories entered. Detected these on your system:")
        for d in detected:
            console.print(f"  - {d}")
        if not click.confirm("Use these?", default=True):
            console.print("No directories configured. Run 'git-scope init' again to set up.")
            return
        dirs = detected

    editor = click.prompt("Editor command", default="code")

    config = Config()
    config.load_from_dict({"roots": dirs, "editor": editor})
    try:
        written = config.write(config_path)
    except OSError as e:
        console.print(f"[red]Error: Failed to create config: {e}")
        raise click.Abort()

    console.print(f"\n[green]✓ Config created at: {written}")
    console.print("\nRun 'git-scope' to launch the dashboard!")


def main() -> None:
    """Entry point for the git-scope CLI."""
    cli()


if __name__ == "__main__":
    main()
