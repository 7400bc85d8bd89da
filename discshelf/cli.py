"""
Command-line interface for discshelf.

This module implements the CLI using Click, with rich-click for help
formatting and colors.

Commands:
    discshelf update [-u USER] [-t TOKEN]   Mirror the Discogs collection locally
    discshelf query ALBUM [--wantlist]      Search the local catalog
    discshelf listen ALBUM                  Log a listen for a release
    discshelf random [--nolog]              Pick (and log) a random release
    discshelf profile                       Show the stored Discogs profile
    discshelf log [--limit N]               Show the listen log

Global Options:
    --config PATH                           Use another config.yaml
    --verbose                               Show debug messages
    --version                               Show version and exit

First Run:
    When the configuration file does not exist yet, the user is prompted for
    the Discogs username, a personal access token and the display timezone,
    and config.yaml is written.

Exit Codes:
    0   Success
    1   Configuration error
    2   Local store error
    3   Discogs error (network, authentication, malformed data)
    4   Other discshelf error (e.g. catalog not synced yet)
    5   Unexpected internal error (see the log files)
    130 Interrupted by user
"""

import sys
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Iterator

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.MAX_WIDTH = 100
click.rich_click.COMMAND_GROUPS = {
    "cli": [
        {
            "name": "Catalog",
            "commands": ["update", "query", "profile"],
        },
        {
            "name": "Listening",
            "commands": ["listen", "random", "log"],
        },
    ],
}

from discshelf import __version__
from discshelf.catalog import Release, Scope
from discshelf.catalog.service import Catalog
from discshelf.core import (
    Config,
    ConfigError,
    DiscshelfError,
    PersistenceError,
    default_config,
    default_config_path,
    get_logger,
    load_config,
    save_config,
    setup_logging,
    shutdown_logging,
    update_credentials,
)
from discshelf.core.config import MAX_TIMEZONE, MIN_TIMEZONE
from discshelf.core.exceptions import SyncError
from discshelf.utils import format_list, format_timestamp

logger = get_logger(__name__)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    envvar="DISCSHELF_CONFIG",
    metavar="<config.yaml>",
    help="Configuration file (default: ~/.config/discshelf/config.yaml)"
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show debug messages"
)
@click.version_option(__version__, prog_name="discshelf")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """
    discshelf: Keep track of your Discogs record collection.

    Mirrors your Discogs collection and wantlist into a local store,
    lets you search it, and keeps a log of what you listen to.

    \b
    BASIC USAGE:
        discshelf update                  # Download your collection
        discshelf query "kind of blue"    # Search it
        discshelf listen "kind of blue"   # Log that you're playing it
        discshelf random                  # Let discshelf choose
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path or default_config_path()
    ctx.obj["verbose"] = verbose


@contextmanager
def _session(ctx: click.Context) -> Iterator[Config]:
    """
    Load configuration, set up logging, and map errors to exit codes.

    Every command body runs inside this context manager.
    """
    try:
        config = _load_configuration(ctx.obj["config_path"])
        setup_logging(
            config.logging.directory,
            verbose=ctx.obj["verbose"],
            level=config.logging.level
        )
        yield config

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except PersistenceError as e:
        click.echo(f"Store error: {e.message}", err=True)
        logger.error(f"Store error: {e.message}", exc_info=True)
        sys.exit(2)

    except SyncError as e:
        click.echo(f"Discogs error: {e.message}", err=True)
        if getattr(e, "is_auth_error", False):
            click.echo("Check your username and token with 'discshelf update -u ... -t ...'", err=True)
        logger.error(f"Discogs error: {e.message}", exc_info=True)
        sys.exit(3)

    except DiscshelfError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.debug(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except (click.ClickException, click.Abort):
        raise

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(5)

    finally:
        shutdown_logging()


def _load_configuration(config_path: Path) -> Config:
    """
    Load config.yaml, running the first-run prompts if it does not exist.

    Raises:
        ConfigError: If configuration is invalid or cannot be written.
    """
    if config_path.exists():
        return load_config(config_path)

    click.echo(f"No configuration found at {config_path}, let's create one.")
    username = click.prompt("Discogs username")
    token = click.prompt("Discogs personal access token", hide_input=True)
    timezone = click.prompt(
        "Timezone (hours from UTC)",
        type=click.FloatRange(MIN_TIMEZONE, MAX_TIMEZONE),
        default=0.0
    )
    config = default_config(username, token, timezone)
    save_config(config, config_path)
    click.echo(f"Configuration saved to {config_path}")

    # Reload so environment overrides apply exactly as on later runs
    return load_config(config_path)


def _print_release(release: Release, config: Config) -> None:
    click.echo(click.style(release.title, bold=True))
    click.echo(f"  Artist:   {release.artist}")
    click.echo(f"  Year:     {release.year or '-'}")
    click.echo(f"  Labels:   {format_list(release.labels)}")
    click.echo(f"  Formats:  {format_list(release.formats)}")
    click.echo(f"  Added:    {format_timestamp(release.date_added, config.tzinfo)}")


def _one_line(release: Release) -> str:
    year = f" ({release.year})" if release.year else ""
    return f"{release.title} - {release.artist}{year}"


@cli.command()
@click.option("--username", "-u", default=None, help="Discogs username to store in the config")
@click.option("--token", "-t", default=None, help="Discogs token to store in the config")
@click.pass_context
def update(ctx: click.Context, username: str | None, token: str | None) -> None:
    """
    Mirror your Discogs collection, wantlist and profile locally.

    The local catalog is replaced only if everything was fetched; on any
    failure the previous catalog is kept as it was.
    """
    with _session(ctx) as config:
        if username or token:
            config = replace(config, discogs=replace(
                config.discogs,
                username=username or config.discogs.username,
                token=token or config.discogs.token,
            ))
            update_credentials(ctx.obj["config_path"], username=username or None, token=token or None)
            logger.info("Credentials updated")

        logger.info(f"Updating catalog for {config.discogs.username}")
        report = Catalog.from_config(config).sync(show_progress=True)
        click.echo(
            f"Updated: {report.collection} release(s) in {report.folders} folder(s), "
            f"{report.wantlist} in wantlist"
        )


@cli.command("query")
@click.argument("album", nargs=-1, required=True)
@click.option("--wantlist", "-w", is_flag=True, help="Search the wantlist instead of the collection")
@click.pass_context
def query_cmd(ctx: click.Context, album: tuple[str, ...], wantlist: bool) -> None:
    """Search the local catalog for ALBUM (title and artist, case-insensitive)."""
    text = " ".join(album)
    with _session(ctx) as config:
        catalog = Catalog.from_config(config)
        matches = catalog.query(text, Scope.WANTLIST if wantlist else Scope.COLLECTION)
        if not matches:
            click.echo(f"Nothing found for '{text}'")
            return
        for index, release in enumerate(matches):
            if index:
                click.echo()
            _print_release(release, config)


@cli.command()
@click.argument("album", nargs=-1, required=True)
@click.pass_context
def listen(ctx: click.Context, album: tuple[str, ...]) -> None:
    """Log that you are listening to ALBUM (from your collection)."""
    text = " ".join(album)
    with _session(ctx) as config:
        catalog = Catalog.from_config(config)
        matches = catalog.query(text)
        if not matches:
            click.echo(f"Nothing in your collection matches '{text}'")
            return

        if len(matches) == 1:
            release = matches[0]
        else:
            click.echo(f"Several releases match '{text}':")
            for number, candidate in enumerate(matches, start=1):
                click.echo(f"  [{number}] {_one_line(candidate)}")
            choice = click.prompt("Which one", type=click.IntRange(1, len(matches)))
            release = matches[choice - 1]

        entry = catalog.log_listen(release.id, release.title)
        click.echo(
            f"Listening to {_one_line(release)} "
            f"at {format_timestamp(entry.time, config.tzinfo)}"
        )


@cli.command("random")
@click.option("--nolog", is_flag=True, help="Do not record the pick in the listen log")
@click.pass_context
def random_cmd(ctx: click.Context, nolog: bool) -> None:
    """Pick a random release from your collection and log it."""
    with _session(ctx) as config:
        catalog = Catalog.from_config(config)
        release = catalog.random()
        click.echo(f"Your random pick: {_one_line(release)}")
        if not nolog:
            entry = catalog.log_listen(release.id, release.title)
            click.echo(f"Logged at {format_timestamp(entry.time, config.tzinfo)}")


@cli.command()
@click.pass_context
def profile(ctx: click.Context) -> None:
    """Show the Discogs profile stored by the last update."""
    with _session(ctx) as config:
        user = Catalog.from_config(config).profile()
        click.echo(click.style(user.username, bold=True))
        if user.real_name:
            click.echo(f"  Name:           {user.real_name}")
        click.echo(f"  Registered:     {format_timestamp(user.registered, config.tzinfo)}")
        click.echo(f"  Collection:     {user.collection}")
        click.echo(f"  Wantlist:       {user.wantlist}")
        click.echo(f"  For sale:       {user.listings}")
        click.echo(f"  Rated:          {user.rated} (average {user.average_rating:.2f})")


@cli.command("log")
@click.option("--limit", "-n", type=click.IntRange(min=1), default=None, help="Show only the last N listens")
@click.pass_context
def log_cmd(ctx: click.Context, limit: int | None) -> None:
    """Show the listen log, oldest first."""
    with _session(ctx) as config:
        listenlog = Catalog.from_config(config).listenlog()
        entries = listenlog.recent(limit) if limit else list(listenlog.entries())
        if not entries:
            click.echo("No listens logged yet")
            return
        for entry in entries:
            click.echo(f"{format_timestamp(entry.time, config.tzinfo)}  {entry.title}")


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `discshelf` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
