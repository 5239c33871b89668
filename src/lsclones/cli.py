import argparse
import io
import json
import logging
import os
import sys
import textwrap
from functools import wraps
from pathlib import Path
from typing import TextIO

from . import (
    ErrorBehavior, Interrupted, LsClonesError, CancellationToken, ConfigurationError, Report, ReportEntry,
    ReportOptions, ScanSession, Settings, load_clone_index)
from .views.diff import LocationDiff
from .views.groups import GroupReport
from .settings import (
    CLONES_LIST_ENVIRONMENT_VARIABLE, SETTING_CLONES_LIST, SETTING_ERROR_BEHAVIOR, SETTING_LOGGING_LEVEL,
    SETTING_LOGGING_PATH, SETTING_PRUNE)

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def needs_session(func):
    """Decorator for commands that report against the clone index.

    The decorated function will receive (session, output, args).
    The wrapper function takes (settings, token, output, args), loads the clone index
    and creates the ScanSession.
    """
    @wraps(func)
    def wrapper(settings: Settings, token: CancellationToken, output, args):
        clones_list = _clones_list_path(settings, args)
        prune = args.prune or settings.get_bool(SETTING_PRUNE)
        index = load_clone_index(clones_list, prune=prune)
        token.check()

        error_behavior = getattr(args, 'error_behavior', None) or settings.get_str(SETTING_ERROR_BEHAVIOR, 'display')
        try:
            error_behavior = ErrorBehavior(error_behavior)
        except ValueError as e:
            raise ConfigurationError(f"invalid error behavior: {error_behavior!r}") from e

        session = ScanSession(index, error_behavior=error_behavior, token=token)
        return func(session, output, args)
    return wrapper


def _clones_list_path(settings: Settings, args) -> Path:
    clones_list = args.clones_list
    if clones_list is None:
        clones_list = os.environ.get(CLONES_LIST_ENVIRONMENT_VARIABLE)
    if clones_list is None:
        clones_list = settings.get_str(SETTING_CLONES_LIST)
    if clones_list is None:
        raise ConfigurationError(
            f"no clones list given: use --clones-list, set {CLONES_LIST_ENVIRONMENT_VARIABLE} or set "
            f"{SETTING_CLONES_LIST} in {settings.path}")
    return Path(clones_list).expanduser()


def configure_logging(settings: Settings, args) -> None:
    """Send log records to --log-file, else to logging.path from the settings, else to stderr.

    The level comes from --log-level, else logging.level from the settings. It
    defaults to INFO when logging to a file and WARNING on stderr.
    """
    log_file = args.log_file or settings.get_str(SETTING_LOGGING_PATH)
    log_level = args.log_level or settings.get_str(SETTING_LOGGING_LEVEL)
    if log_level is None:
        log_level = 'INFO' if log_file else 'WARNING'

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"invalid logging level: {log_level!r}")

    if log_file:
        logging.basicConfig(filename=log_file, level=level, format=LOG_FORMAT)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='lsc',
        description='List files and directories whose content has copies elsewhere, using the duplicate groups '
                    'reported by fclones.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              fclones group --format json ~ > ~/clones.json
              lsc --clones-list ~/clones.json files -r ~/Downloads
              lsc --clones-list ~/clones.json dirs -r --map --diff ~/Backups
            ''').strip()
    )
    parser.add_argument(
        '--clones-list',
        metavar='PATH',
        help=f'Path to the JSON report written by "fclones group --format json". If not provided, uses the '
             f'{CLONES_LIST_ENVIRONMENT_VARIABLE} environment variable or clones_list from the settings file.')
    parser.add_argument(
        '--prune',
        action='store_true',
        help='Drop files from the clones list which no longer exist')
    parser.add_argument(
        '--config',
        metavar='PATH',
        help='Path to the settings file. If not provided, uses the LSCLONES_CONFIG environment variable or '
             '~/.config/lsclones/settings.toml.')
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Path to log file. If not provided, uses logging.path from the settings or logs to stderr.')
    parser.add_argument(
        '--log-level',
        metavar='LEVEL',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to INFO when logging to a file, '
             'WARNING otherwise.')
    parser.add_argument(
        '--format',
        choices=['text', 'json', 'msgpack'],
        default='text',
        help='Output format (default: text)')
    subparsers = parser.add_subparsers(
        dest='command',
        title='Commands',
        required=True,
        help='Use "lsc COMMAND --help" for command-specific help'
    )

    parser_files = subparsers.add_parser(
        'files',
        help='List clone or unique files',
        description='Lists the files below each PATH whose content also exists outside PATH. A file given as PATH '
                    'is evaluated against its parent directory.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              lsc files -r ~/Downloads
              lsc files -r --map --show-sources ~/Downloads
              lsc files -r --unique ~/Photos
              lsc files -r --groups --inside ~/Photos
            ''').strip())
    parser_files.add_argument(
        'paths',
        nargs='*',
        metavar='PATH',
        help='Files or directories to list (default: current working directory)')
    _add_common_arguments(parser_files)
    parser_files.add_argument(
        '-i', '--inside',
        action='store_true',
        help='Only list files with a duplicate inside the PATH they were found in')
    parser_files.add_argument(
        '-I', '--inside-only',
        action='store_true',
        help='Like --inside, leaving out the copies outside PATH (requires --groups)')
    parser_files.add_argument(
        '-o', '--outside',
        action='store_true',
        help='Only list files with a duplicate outside the PATH they were found in')
    parser_files.set_defaults(method=_files)

    parser_dirs = subparsers.add_parser(
        'dirs',
        help='List clone or unique directories',
        description='Lists the directories below each DIR whose whole content also exists outside them. With '
                    '--recursive, a clone directory is reported without its subdirectories.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              lsc dirs ~/Backups
              lsc dirs -r --map --diff ~/Backups
              lsc dirs -r --groups --map ~/Backups
            ''').strip())
    parser_dirs.add_argument(
        'paths',
        nargs='*',
        metavar='DIR',
        help='Directories to list (default: current working directory)')
    _add_common_arguments(parser_dirs)
    parser_dirs.add_argument(
        '-d', '--diff',
        action='store_true',
        help='Show the files missing from or extra in each location holding copies (requires --map)')
    parser_dirs.add_argument(
        '-E', '--error-behavior',
        choices=[str(behavior) for behavior in ErrorBehavior],
        help='What to do with unreadable directories: ignore, display (default) or stop')
    parser_dirs.set_defaults(method=_dirs)

    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '-r', '--recursive',
        action='store_true',
        help='Descend into subdirectories')
    parser.add_argument(
        '-u', '--unique',
        action='store_true',
        help='List unique entries instead of clones')
    parser.add_argument(
        '-m', '--map',
        action='store_true',
        help='Show the locations holding copies of each clone')
    parser.add_argument(
        '-s', '--show-sources',
        action='store_true',
        help='Show the individual copies in each location (requires --map)')
    parser.add_argument(
        '-S', '--stats',
        action='store_true',
        help='Show entry count and sizes')
    parser.add_argument(
        '-g', '--groups',
        action='store_true',
        help='Show clone groups: the copies inside PATH, then those outside it. For dirs, groups of '
             'directories with identical content')
    parser.add_argument(
        '-a', '--absolute-paths',
        action='store_true',
        help='Show absolute paths instead of paths relative to the current directory')
    parser.add_argument(
        '-0', '--null',
        action='store_true',
        help='Terminate listed paths with NUL instead of newline, for "xargs -0" (text output, no --map or '
             '--groups)')


def _options(args, diff: bool = False) -> ReportOptions:
    options = ReportOptions(
        recursive=args.recursive,
        unique_only=args.unique,
        show_map=args.map,
        show_sources=args.show_sources,
        show_diff=diff,
        show_groups=args.groups,
        inside=getattr(args, 'inside', False),
        inside_only=getattr(args, 'inside_only', False),
        outside=getattr(args, 'outside', False))
    try:
        options.validate(directories=diff or args.command == 'dirs')
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    if args.null and (args.format != 'text' or args.map or args.groups):
        raise ConfigurationError("NUL terminated output is only available for plain text listings")
    return options


@needs_session
def _files(session: ScanSession, output, args):
    options = _options(args)
    paths = args.paths or [os.curdir]
    if options.grouped_files:
        report = session.file_groups_report(paths, options)
    else:
        report = session.files_report(paths, options)
    write_report(report, output, args)


@needs_session
def _dirs(session: ScanSession, output, args):
    options = _options(args, diff=args.diff)
    paths = args.paths or [os.curdir]
    if options.show_groups:
        report = session.directory_groups_report(paths, options)
    else:
        report = session.directories_report(paths, options)
    write_report(report, output, args)


def write_report(report: Report | GroupReport, output: TextIO, args) -> None:
    if args.format == 'json':
        json.dump(report.to_dict(include_stats=args.stats), output, indent=2)
        output.write('\n')
    elif args.format == 'msgpack':
        output.flush()
        output.buffer.write(report.to_msgpack())
    else:
        # stats stay off a NUL terminated stream so that it can be piped as is
        stats_output = sys.stderr if args.null else output
        renderer = TextRenderer(output, absolute=args.absolute_paths, null=args.null, stats_output=stats_output)
        if isinstance(report, GroupReport):
            renderer.render_groups(report, stats=args.stats)
        else:
            renderer.render(report, stats=args.stats)


class TextRenderer:
    """Render a report as indented plain text."""

    def __init__(
            self,
            output: TextIO,
            absolute: bool = False,
            null: bool = False,
            stats_output: TextIO | None = None):
        self._output = output
        self._absolute = absolute
        self._terminator = '\0' if null else '\n'
        self._stats_output = stats_output if stats_output is not None else output
        self._cwd = os.getcwd()

    def display(self, path: str) -> str:
        if self._absolute:
            return path
        return os.path.relpath(path, self._cwd)

    def _write(self, line: str) -> None:
        self._output.write(line + self._terminator)

    def _write_stats(self, line: str) -> None:
        self._stats_output.write(line + '\n')

    def render(self, report: Report, stats: bool = False) -> None:
        for entry in report:
            self.render_entry(entry)
        if stats:
            self.render_stats(report)

    def render_entry(self, entry: ReportEntry) -> None:
        line = self.display(entry.path)
        if entry.deep_path is not None:
            line += f" (deep path: {os.path.relpath(entry.deep_path, entry.path)})"
        self._write(line)

        for location in entry.locations:
            self._write(f"    => {self.display(location)}")
            if entry.sources is not None:
                for source in entry.sources.get(location, ()):
                    self._write(f"        {os.path.basename(source)}")

        for diff in entry.diffs or ():
            self.render_diff(diff, indent='    ')

    def render_diff(self, diff: LocationDiff, indent: str = '') -> None:
        if diff.identical:
            self._write(f"{indent}{self.display(diff.location)}: identical")
            return
        self._write(f"{indent}{self.display(diff.location)}:")
        for path in diff.missing:
            self._write(f"{indent}    - {path}")
        for path in diff.extra:
            self._write(f"{indent}    + {path}")

    def render_stats(self, report: Report) -> None:
        stats = report.stats
        total = _size(stats.total_size)
        reclaimable = _size(stats.reclaimable_size)
        self._write_stats(f"{stats.count} entries, total size {total}, reclaimable {reclaimable}")

    def render_groups(self, report: GroupReport, stats: bool = False) -> None:
        if not report.grouped:
            for member in report.members():
                self._write(self.display(member))
        else:
            for position, group in enumerate(report):
                if position:
                    self._write('')
                for member in group.members:
                    self._write(self.display(member))
                if not group.references:
                    continue
                self._write('=>')
                if group.diffs is not None:
                    for diff in group.diffs:
                        self.render_diff(diff)
                else:
                    for reference in group.references:
                        self._write(self.display(reference))

        if stats:
            self.render_group_stats(report)

    def render_group_stats(self, report: GroupReport) -> None:
        stats = report.stats
        total = _size(stats.total_size)
        reclaimable = _size(stats.reclaimable_size)
        if report.query == 'dirs':
            self._write_stats(
                f"{stats.count} dirs in {stats.group_count} groups, total size {total}, "
                f"minimum reclaimable {reclaimable}")
        else:
            self._write_stats(
                f"{stats.count} inside files in {stats.group_count} groups, total size {total}, "
                f"{stats.reclaimable_count} reclaimable, size {reclaimable}")


def _size(size: int | None) -> str:
    return 'unknown' if size is None else f"{size} bytes"


def lsclones_main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    output = sys.stdout
    if isinstance(output, io.TextIOWrapper):
        # undecodable file names are carried as lone surrogates by os.fsdecode()
        output.reconfigure(errors='surrogateescape')

    try:
        settings = Settings(Path(args.config) if args.config else None)
        configure_logging(settings, args)
        with CancellationToken() as token:
            args.method(settings, token, output, args)
    except Interrupted:
        logger.info("Interrupted")
        return EXIT_INTERRUPTED
    except (LsClonesError, OSError) as e:
        logger.debug("Failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    return 0


if __name__ == '__main__':
    sys.exit(lsclones_main())
