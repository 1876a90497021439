"""
Command line interface for lyricsync

Commands:
- search: query all enabled providers and print or save the best lyrics
- show: print an .lrc file, or the line active at a given position
- merge: attach a translation .lrc to an original .lrc
- follow: display lyrics in sync with a running mpv
- sources: list the known lyrics providers
- config show / config set: inspect and change the configuration
"""

import functools
import sys
import time
from pathlib import Path

import click

from . import __version__
from .config.settings import VALID_SOURCES, get_settings, reload_settings
from .exceptions import ConfigError, ParseError, PlayerError, TrackerError
from .lyrics.models import LyricsSource, SearchRequest
from .lyrics.parser import load_lrc, save_lrc, serialize
from .lyrics.resolver import active_line
from .lyrics.searcher import LyricsSearcher, rank_lyrics
from .player.follower import LyricsFollower
from .player.mpv import MpvPlayer
from .player.tracker import PlaybackTracker, TrackerEvent
from .utils.helpers import format_duration, parse_duration_string, sanitize_filename, truncate_string
from .utils.logger import configure_from_settings, create_operation_logger, get_current_log_file, get_logger


configure_from_settings()
logger = get_logger(__name__)


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Known lyricsync errors are shown as one line; anything else is logged
    before exiting with status 1.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)
        except (ConfigError, ParseError, PlayerError, TrackerError) as e:
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
        except Exception as e:
            logger.error(f"Command failed: {e}", exc_info=True)
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def _print_lyrics_summary(index: int, lyrics) -> None:
    title = truncate_string(lyrics.title or "?", 40)
    artist = truncate_string(lyrics.artist or "?", 30)
    extras = []
    if lyrics.has_translation:
        extras.append("translated")
    if lyrics.has_time_tags:
        extras.append("word timing")
    length = format_duration(lyrics.length) if lyrics.length else "-"
    suffix = f" [{', '.join(extras)}]" if extras else ""
    click.echo(
        f"  {index:>2}. {artist} - {title} ({length}) "
        f"{click.style(lyrics.metadata.source or '?', fg='cyan')}, {len(lyrics)} lines{suffix}"
    )


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    lyricsync - fetch timed lyrics and follow them during playback
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"lyricsync v{__version__}")
        return

    if config:
        reload_settings(config)
        configure_from_settings()
        click.echo(f"Loaded config: {config}")

    if verbose:
        ctx.obj['verbose'] = True
        logger.info("Verbose mode enabled")

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument('title')
@click.option('--artist', '-a', default="", help='Artist name')
@click.option('--album', default="", help='Album name')
@click.option('--duration', '-d', help='Song length (seconds or m:ss)')
@click.option('--source', '-s', 'sources', multiple=True, type=click.Choice(VALID_SOURCES),
              help='Limit the search to these sources')
@click.option('--all', 'show_all', is_flag=True, help='List every result instead of printing the best')
@click.option('--save', is_flag=True, help='Save the best result to the lyrics directory')
@click.option('--output', '-o', type=click.Path(), help='Save the best result to this file')
@handle_error
def search(title, artist, album, duration, sources, show_all, save, output):
    """
    Search lyrics for a song on all enabled providers
    """
    duration_seconds = parse_duration_string(duration) if duration else None
    if duration and duration_seconds is None:
        raise click.BadParameter(f"Invalid duration: {duration}", param_hint='--duration')

    request = SearchRequest(title=title, artist=artist, album=album, duration=duration_seconds)
    searcher = LyricsSearcher(sources=sources or None)

    operation = create_operation_logger(__name__, "Lyrics search")
    operation.start(f"Searching lyrics for: {request.search_term}")

    documents = []
    with searcher.search(request) as task:
        total = len(searcher.sources)
        for done, result in enumerate(task, 1):
            documents.extend(result.lyrics)
            operation.progress(f"{result.source.value}: {len(result.lyrics)} found", done, total)
        for source in task.timed_out:
            operation.warning(f"{source.value} timed out")

    ranked = rank_lyrics(documents, request)
    operation.complete(f"Found {len(ranked)} lyrics")

    if not ranked:
        click.echo(click.style("No lyrics found", fg='yellow'))
        return

    if show_all:
        for index, lyrics in enumerate(ranked, 1):
            _print_lyrics_summary(index, lyrics)
        return

    best = ranked[0]
    if save or output:
        if output:
            target = Path(output)
        else:
            name = sanitize_filename(f"{artist} - {title}" if artist else title)
            target = get_settings().get_save_directory() / f"{name}.lrc"
        save_lrc(best, target)
        click.echo(click.style(f"Saved lyrics from {best.metadata.source} to {target}", fg='green'))
    else:
        click.echo(serialize(best), nl=False)


@cli.command()
@click.argument('lrc_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--at', 'position', help='Print only the line active at this position (seconds or m:ss)')
@click.option('--offset', type=float, default=0.0, help='Extra offset in seconds')
@handle_error
def show(lrc_file, position, offset):
    """
    Print an .lrc file, or the line active at a position
    """
    lyrics = load_lrc(lrc_file)
    if lyrics is None:
        raise ParseError(f"No timed lines in {lrc_file}")
    if offset:
        lyrics.adjust_offset(offset)

    if position is None:
        for line in lyrics:
            translation = f"  ({line.translation})" if line.translation else ""
            click.echo(f"[{line.time_tag}] {line.content}{translation}")
        return

    seconds = parse_duration_string(position)
    if seconds is None:
        raise click.BadParameter(f"Invalid position: {position}", param_hint='--at')

    line = active_line(lyrics, seconds)
    if line is None:
        click.echo(click.style("(before the first line)", fg='yellow'))
    else:
        click.echo(line.content)
        if line.translation:
            click.echo(click.style(line.translation, fg='cyan'))


@cli.command()
@click.argument('original', type=click.Path(exists=True, dir_okay=False))
@click.argument('translation', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', type=click.Path(), help='Write the result here instead of stdout')
@click.option('--tolerance', type=float, help='Maximum distance in seconds between paired lines')
@handle_error
def merge(original, translation, output, tolerance):
    """
    Attach a translation .lrc to an original .lrc
    """
    lyrics = load_lrc(original)
    translated = load_lrc(translation)
    if lyrics is None:
        raise ParseError(f"No timed lines in {original}")
    if translated is None:
        raise ParseError(f"No timed lines in {translation}")

    if tolerance is None:
        tolerance = get_settings().lyrics.translation_tolerance
    merged = lyrics.merge_translation(translated, tolerance)
    logger.info(f"Merged {merged}/{len(lyrics)} lines from {translation}")

    if output:
        save_lrc(lyrics, output)
        click.echo(click.style(f"Merged {merged} of {len(lyrics)} lines into {output}", fg='green'))
    else:
        click.echo(serialize(lyrics), nl=False)


@cli.command()
@click.option('--socket', 'endpoint', help='mpv IPC endpoint (--input-ipc-server)')
@click.option('--translation/--no-translation', default=True, help='Show translations')
@handle_error
def follow(endpoint, translation):
    """
    Show lyrics in sync with a running mpv
    """
    settings = get_settings()
    player = MpvPlayer(endpoint)

    def on_lyrics(track, lyrics):
        if track is None:
            click.echo(click.style("Nothing playing", fg='yellow'))
        elif lyrics is None:
            click.echo(click.style(f"\n♪ {track.display_name}", fg='green', bold=True))
        else:
            click.echo(click.style(f"  lyrics from {lyrics.metadata.source}", fg='cyan'))

    def on_seek(position):
        logger.debug(f"Seek detected: {format_duration(position)}")

    try:
        with PlaybackTracker(player) as tracker:
            tracker.connect(TrackerEvent.POSITION_MUTATED, on_seek)
            follower = LyricsFollower(tracker, LyricsSearcher(), on_lyrics=on_lyrics)
            try:
                while player.is_running():
                    line = follower.tick()
                    if line is not None and line.content:
                        click.echo(line.content)
                        if translation and line.translation:
                            click.echo(click.style(f"  {line.translation}", fg='cyan'))
                    time.sleep(settings.tracker.refresh_rate)
            finally:
                follower.close()
    finally:
        player.close()

    click.echo("mpv exited")


@cli.command()
@handle_error
def sources():
    """
    List lyrics sources and whether they are enabled
    """
    enabled = get_settings().lyrics.enabled_sources
    click.echo("Lyrics sources:")
    for source in LyricsSource:
        state = click.style("enabled", fg='green') if source.value in enabled else click.style("disabled", fg='yellow')
        click.echo(f"   {source.value:<10} {state}")


@cli.group()
def config():
    """
    Configuration management
    """
    pass


@config.command(name='show')
@handle_error
def config_show():
    """
    Show current configuration
    """
    settings = get_settings()

    click.echo("Current Configuration:\n")

    click.echo("Lyrics:")
    click.echo(f"   Sources: {', '.join(settings.lyrics.enabled_sources)}")
    click.echo(f"   Provider timeout: {settings.lyrics.timeout}s")
    click.echo(f"   Results per provider: {settings.lyrics.max_results_per_provider}")
    click.echo(f"   Translations: {settings.lyrics.include_translations}")
    click.echo(f"   Translation tolerance: {settings.lyrics.translation_tolerance}s")
    click.echo(f"   Save directory: {settings.get_save_directory()}")

    click.echo("\nTracker:")
    click.echo(f"   Poll interval: {settings.tracker.poll_interval}s")
    click.echo(f"   Seek threshold: {settings.tracker.position_threshold}s")

    click.echo("\nPlayer:")
    click.echo(f"   Name: {settings.player.name}")
    click.echo(f"   mpv endpoint: {settings.player.mpv_ipc_endpoint or '(default)'}")

    click.echo("\nLogging:")
    click.echo(f"   Level: {settings.logging.level}")
    click.echo(f"   File: {settings.logging.file or '(none)'}")
    current_log = get_current_log_file()
    if current_log:
        click.echo(f"   Writing to: {current_log}")


@config.command(name='set')
@click.option('--sources', help='Comma separated list of enabled sources')
@click.option('--timeout', type=float, help='Provider timeout in seconds')
@click.option('--tolerance', type=float, help='Translation tolerance in seconds')
@click.option('--mpv-socket', help='mpv IPC endpoint')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']), help='Log level')
@handle_error
def config_set(sources, timeout, tolerance, mpv_socket, log_level):
    """
    Update configuration settings and save them
    """
    settings = get_settings()
    changes = []

    if sources:
        settings.lyrics.enabled_sources = [s.strip() for s in sources.split(',') if s.strip()]
        changes.append(f"Sources: {', '.join(settings.lyrics.enabled_sources)}")

    if timeout is not None:
        settings.lyrics.timeout = timeout
        changes.append(f"Provider timeout: {timeout}s")

    if tolerance is not None:
        settings.lyrics.translation_tolerance = tolerance
        changes.append(f"Translation tolerance: {tolerance}s")

    if mpv_socket:
        settings.player.mpv_ipc_endpoint = mpv_socket
        changes.append(f"mpv endpoint: {mpv_socket}")

    if log_level:
        settings.logging.level = log_level
        changes.append(f"Log level: {log_level}")

    if not changes:
        click.echo("No changes specified")
        return

    if not settings.validate():
        raise ConfigError("Configuration is invalid, not saved")

    settings.save_config()
    click.echo("Configuration updated:")
    for change in changes:
        click.echo(f"   {change}")


def main():
    cli()


if __name__ == '__main__':
    main()
