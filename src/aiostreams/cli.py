"""Command-line interface for the AIOStreams source."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from aiostreams import __version__
from aiostreams.api import APIError, ConfigurationError

if TYPE_CHECKING:
    from aiostreams.models import ShowPage
    from aiostreams.source import AIOStreamsSource

# Load environment variables from .env file
load_dotenv()

console = Console()


def _setup_logging(verbose: bool = False) -> None:
    """Log to stderr; DEBUG with --verbose, otherwise warnings only."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Reduce noise from the HTTP stack
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


@click.group()
@click.version_option(version=__version__, prog_name="aiostreams")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config file to use instead of the default locations",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_file: Path | None) -> None:
    """AIOStreams - Browse anime on AniList and resolve streams through AIOStreams."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_file"] = config_file


@contextmanager
def _open_source(ctx: click.Context) -> Iterator[AIOStreamsSource]:
    """Build a source from the config and turn API errors into exit code 1."""
    from aiostreams.config import get_config, load_config
    from aiostreams.source import AIOStreamsSource

    config_file = ctx.obj.get("config_file")
    cfg = load_config(config_file) if config_file else get_config()

    try:
        with AIOStreamsSource(cfg) as source:
            yield source
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    except APIError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid argument:[/red] {e}")
        sys.exit(1)


def _format_date(millis: int) -> str:
    if millis <= 0:
        return ""
    return datetime.fromtimestamp(millis / 1000, UTC).strftime("%Y-%m-%d")


def _print_show_page(source: AIOStreamsSource, page: ShowPage) -> None:
    if not page.shows:
        console.print("[dim]No results.[/dim]")
        return

    table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Title", style="white")
    table.add_column("Format", style="dim")
    table.add_column("Episodes", style="dim", justify="right")
    table.add_column("Status", style="dim")
    table.add_column("Seasons", style="dim")

    for show in page.shows:
        table.add_row(
            str(show.id),
            show.title,
            show.format.value if show.format else "",
            str(show.episodes) if show.episodes is not None else "?",
            show.status.value,
            "yes" if source.uses_seasons(show, from_list=True) else "",
        )
    console.print(table)
    if page.has_next_page:
        console.print("[dim]More results on the next page (--page).[/dim]")


@main.command()
@click.option("--page", "-p", type=int, default=1, show_default=True, help="Result page")
@click.pass_context
def popular(ctx: click.Context, page: int) -> None:
    """List the most popular anime."""
    with _open_source(ctx) as source:
        _print_show_page(source, source.popular(page))


@main.command()
@click.argument("query")
@click.option("--page", "-p", type=int, default=1, show_default=True, help="Result page")
@click.pass_context
def search(ctx: click.Context, query: str, page: int) -> None:
    """Search anime by title."""
    with _open_source(ctx) as source:
        _print_show_page(source, source.search(query, page))


@main.command()
@click.argument("show")
@click.pass_context
def details(ctx: click.Context, show: str) -> None:
    """Show details of an anime (AniList ID)."""
    with _open_source(ctx) as source:
        record = source.details(show)
        console.print(f"[bold]{record.title}[/bold] [dim]({record.id})[/dim]")
        if record.genre_text:
            console.print(f"[dim]{record.genre_text}[/dim]")
        console.print(f"Status: {record.status.value}")
        if source.uses_seasons(record):
            console.print("[cyan]Presented as seasons[/cyan]")
        console.print()
        console.print(record.details_text())


@main.command()
@click.argument("show")
@click.pass_context
def seasons(ctx: click.Context, show: str) -> None:
    """List the seasons of an anime (AniList ID)."""
    with _open_source(ctx) as source:
        entries = source.seasons(show)
        if not entries:
            console.print("[dim]No seasons found.[/dim]")
            return

        table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
        table.add_column("Season", style="cyan", justify="right")
        table.add_column("Title", style="white")
        table.add_column("URL", style="dim")
        table.add_column("Relation", style="dim")

        for entry in entries:
            table.add_row(
                str(entry.season_number),
                entry.title,
                entry.url,
                entry.relation_type.value if entry.relation_type else "",
            )
        console.print(table)


@main.command()
@click.argument("show")
@click.option(
    "--format",
    "-f",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.pass_context
def episodes(ctx: click.Context, show: str, format: str) -> None:
    """List the episodes of an anime or season ("21" or "21|season:2")."""
    verbose = ctx.obj.get("verbose", False)

    with _open_source(ctx) as source:
        records = source.episodes(show)

        if format == "json":
            output = [
                {
                    "episode_number": ep.episode_number,
                    "name": ep.name,
                    "date_upload": ep.date_upload,
                    "filler": ep.filler,
                    "summary": ep.summary,
                    "preview_url": ep.preview_url,
                    "url": ep.url,
                }
                for ep in records
            ]
            console.print_json(json.dumps(output))
            return

        if not records:
            console.print("[dim]No episodes found.[/dim]")
            return

        table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Name", style="white")
        table.add_column("Aired", style="dim")
        if verbose:
            table.add_column("URL", style="dim")

        for ep in records:
            number = f"{ep.episode_number:g}"
            name = f"[yellow]{ep.name}[/yellow]" if ep.filler else ep.name
            row = [number, name, _format_date(ep.date_upload)]
            if verbose:
                row.append(ep.url)
            table.add_row(*row)
        console.print(table)
        console.print(f"[dim]{len(records)} episodes[/dim]")


@main.command()
@click.argument("episode")
@click.option(
    "--format",
    "-f",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.pass_context
def streams(ctx: click.Context, episode: str, format: str) -> None:
    """Resolve streams for an episode URL as printed by `episodes -v`."""
    with _open_source(ctx) as source:
        candidates = source.streams(episode)

        if format == "json":
            output = [c.model_dump(mode="json") for c in candidates]
            console.print_json(json.dumps(output))
            return

        if not candidates:
            console.print("[dim]No playable streams after filtering.[/dim]")
            return

        table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
        table.add_column("Name", style="white")
        table.add_column("Type", style="dim")
        table.add_column("Hash", style="dim")

        for candidate in candidates:
            table.add_row(
                candidate.display_name,
                "P2P" if candidate.is_p2p else "direct",
                candidate.info_hash,
            )
        console.print(table)


@main.group()
def config() -> None:
    """Manage AIOStreams configuration."""
    pass


@config.command(name="show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    from aiostreams.config import ID_PRIORITY_CHOICES, get_config, get_config_path, load_config

    config_file = ctx.obj.get("config_file")
    cfg = load_config(config_file) if config_file else get_config()
    loaded_from = get_config_path()

    console.print("[bold]Current Configuration[/bold]")
    console.print()

    if loaded_from:
        console.print(f"[dim]Config file:[/dim] {loaded_from}")
    else:
        console.print("[dim]Config file:[/dim] (none - using defaults)")
    console.print()

    console.print("[bold]AIOStreams:[/bold]")
    console.print(f"  Manifest URL: {'(set)' if cfg.aiostreams.manifest_url else '(not set)'}")
    console.print()

    options = cfg.options
    labels = {value: label for label, value in ID_PRIORITY_CHOICES.items()}
    console.print("[bold]Options:[/bold]")
    console.print(f"  Use seasons: {options.use_seasons}")
    console.print(f"  ID priority: {labels.get(options.id_priority, options.id_priority)}")
    console.print(f"  Mark fillers: {options.mark_fillers}")
    console.print(f"  AniDB titles: {options.use_anidb_titles}")
    console.print(f"  Show P2P: {options.show_p2p}")
    console.print(f"  SeaDex highlight: {options.seadex_highlight}")
    console.print(f"  SeaDex sort: {options.seadex_sort}")
    console.print()

    console.print("[bold]TVDB:[/bold]")
    console.print(f"  API key: {'(set)' if cfg.tvdb.api_key else '(not set)'}")
    console.print()

    console.print("[bold]Cache:[/bold]")
    console.print(f"  Enabled: {cfg.cache.enabled}")
    console.print(f"  Max entries: {cfg.cache.max_entries}")
    console.print(f"  TTL: {cfg.cache.ttl_hours:g} hours")


@config.command(name="path")
def config_path() -> None:
    """Show configuration file paths."""
    from aiostreams.config import find_config_file, get_config_paths

    console.print("[bold]Configuration paths (in priority order):[/bold]")
    config_file = find_config_file()

    for path in get_config_paths():
        if path.exists():
            if path == config_file:
                console.print(f"  [green]{path}[/green] (active)")
            else:
                console.print(f"  {path} (exists)")
        else:
            console.print(f"  [dim]{path}[/dim]")

    console.print()
    console.print("[bold]Other paths:[/bold]")
    console.print(f"  .env file: {Path.cwd() / '.env'}")


@config.command(name="init")
@click.option("--force", is_flag=True, help="Overwrite existing config file")
@click.option("--manifest-url", default="", help="AIOStreams manifest URL to write")
@click.option("--tvdb-api-key", default="", help="TVDB API key to write")
def config_init(force: bool, manifest_url: str, tvdb_api_key: str) -> None:
    """Create a default configuration file."""
    from aiostreams.config import CONFIG_FILENAME, get_config_dir, save_default_config

    config_path = get_config_dir() / CONFIG_FILENAME

    if config_path.exists() and not force:
        console.print(f"[yellow]Config file already exists:[/yellow] {config_path}")
        console.print("Use --force to overwrite.")
        sys.exit(1)

    save_default_config(config_path, manifest_url=manifest_url, tvdb_api_key=tvdb_api_key)
    console.print(f"[green]Created config file:[/green] {config_path}")
    console.print("Edit this file to customize your settings.")


if __name__ == "__main__":
    main()
