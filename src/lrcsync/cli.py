"""Command-line interface using Click."""

import sys
from pathlib import Path

import click

from . import __version__
from .config import get_database_path, load_settings
from .exceptions import LrcSyncError
from .core.database import LyricDatabase
from .core.prompt import ConsolePrompter, NonInteractivePrompter
from .core.runner import DEFAULT_WORKERS, LyricSyncRunner
from .utils.logging import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', type=click.Path(), help='Log to file')
@click.pass_context
def cli(ctx, verbose, log_file):
    """lrcsync - Attach synced lyrics to a local music collection."""
    ctx.ensure_object(dict)
    logger = setup_logging(
        level="DEBUG" if verbose else "INFO",
        log_file=Path(log_file) if log_file else None,
        verbose=verbose
    )
    ctx.obj['logger'] = logger
    ctx.obj['verbose'] = verbose


@cli.command()
@click.argument('directory', type=click.Path(exists=True, file_okay=False))
@click.option('-a', '--account', help='Phone number or email to log in with')
@click.option('-p', '--password', help='Account password')
@click.option('--update-only', is_flag=True,
              help='Only update lyrics of already matched files, never search')
@click.option('--batch', is_flag=True,
              help='Read tags of all files in parallel before matching')
@click.option('--workers', type=click.IntRange(min=1), default=DEFAULT_WORKERS,
              help='Tag reading threads in batch mode')
@click.option('--no-prompt', is_flag=True,
              help='Never ask; skip ambiguous matches')
@click.option('--settings', 'settings_file', type=click.Path(exists=True, dir_okay=False),
              help='JSON settings file')
@click.pass_context
def run(ctx, directory, account, password, update_only, batch, workers, no_prompt,
        settings_file):
    """Download or update lyrics for every audio file in DIRECTORY."""
    logger = ctx.obj['logger']

    if bool(account) != bool(password):
        raise click.BadParameter("--account and --password must be given together")

    try:
        settings = load_settings(Path(settings_file) if settings_file else None)
        runner = LyricSyncRunner(
            Path(directory).resolve(),
            settings,
            prompter=NonInteractivePrompter() if no_prompt else ConsolePrompter(),
            update_only=update_only,
            batch=batch,
            workers=workers,
        )
        stats = runner.run(account, password)
    except LrcSyncError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    click.echo(f"✅ {stats.summary()}")


@cli.group()
def db():
    """Lyric database commands."""
    pass


@db.command()
@click.argument('directory', type=click.Path(exists=True, file_okay=False))
@click.pass_context
def stats(ctx, directory):
    """Show database statistics for DIRECTORY."""
    logger = ctx.obj['logger']
    try:
        database = LyricDatabase.load(get_database_path(Path(directory)))
    except LrcSyncError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)
    info = database.stats()
    click.echo(f"Database: {info['path']}")
    click.echo(f"Format Version: {info['format_version']}")
    click.echo(f"Albums: {info['album_count']}")
    click.echo(f"Tracks: {info['track_count']}")
    click.echo(f"Lyrics: {info['lyric_count']}")


if __name__ == '__main__':
    cli()
