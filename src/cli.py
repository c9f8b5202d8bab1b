"""Command line entry point: ``i18n-tools extract|export|sort|build``."""
import argparse
import logging
import sys
from typing import List, Optional

from src.app_config import I18nConfig, load_i18n_config, setup_logger_from_config
from src.errors import I18nError
from src.export import MissedBehavior, export_translations
from src.extractor import scan_sources
from src.logging_config import LOGGER_NAME, setup_logger
from src.message_table import MessageTable, parse_translate_arg, write_todo_file
from src.minify import MinifyOptions
from src.runtime import build_bundle
from src.sort import sort_locale_files

PROG = 'i18n-tools'

logger = logging.getLogger(LOGGER_NAME)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Extract translatable texts from Python sources and maintain locale files.",
    )
    parser.add_argument('-v', '--verbose', action='store_true', help="Log debug output.")
    parser.add_argument('--no-progress', action='store_true', help="Hide the scanning progress bar.")
    subparsers = parser.add_subparsers(dest='command', required=True)

    extract = subparsers.add_parser(
        'extract',
        help="Scan sources and add new texts to TODO.yml in the load path.",
    )
    extract.add_argument(
        '-t', '--translate', metavar='TEXT', action='append', type=parse_translate_arg, default=[],
        help='Add a text that cannot be found statically, optionally with its translation: '
             '-t "Hello, world! => Hola, world!". Whitespace around both parts is trimmed.',
    )
    extract.add_argument('source', nargs='?', default='.', help="Project root to scan (default: .).")

    export = subparsers.add_parser('export', help="Export all translations to a single file.")
    export.add_argument(
        '-l', '--locales', action='append', default=[],
        help="Locales to export. Bare locales select exactly those, '+locale' adds one, "
             "'!locale' removes one. Comma separated lists are accepted.",
    )
    export.add_argument(
        '-m', '--missed', choices=[b.value for b in MissedBehavior], default=MissedBehavior.DEFAULT.value,
        help="Missing translations: 'default' uses the default locale's text, 'empty' writes ''.",
    )
    export.add_argument(
        '-o', '--output', default='exported.csv',
        help="Output file; .csv, .json, .yaml, .yml or .toml (default: exported.csv).",
    )
    export.add_argument('root', nargs='?', default='.', help="Project root (default: .).")

    sort = subparsers.add_parser('sort', help="Sort locale files by key and locale.")
    sort.add_argument('-i', '--inplace', action='store_true', help="Overwrite the files instead of writing *-sorted files.")
    sort.add_argument('-r', '--reverse', action='store_true', help="Sort in descending order.")
    sort.add_argument('root', nargs='?', default='.', help="Project root (default: .).")

    build = subparsers.add_parser('build', help="Write all translations into a runtime bundle.")
    build.add_argument('-o', '--output', default='i18n-bundle.json', help="Bundle file (default: i18n-bundle.json).")
    build.add_argument('root', nargs='?', default='.', help="Project root (default: .).")

    return parser


def run_extract(args: argparse.Namespace, config: I18nConfig) -> None:
    table = MessageTable(MinifyOptions.from_config(config))
    table.extend(scan_sources(config.project_root, show_progress=not args.no_progress))
    table.add_translations(args.translate)
    logger.info("Collected %d distinct text(s).", len(table))
    write_todo_file(config.resolve_load_path(), config, table.messages())


def run_export(args: argparse.Namespace, config: I18nConfig) -> None:
    export_translations(config, args.output, args.locales, MissedBehavior(args.missed))


def run_sort(args: argparse.Namespace, config: I18nConfig) -> None:
    written = sort_locale_files(config, inplace=args.inplace, reverse=args.reverse)
    logger.info("Sorted %d file(s).", len(written))


def run_build(args: argparse.Namespace, config: I18nConfig) -> None:
    build_bundle(config, args.output)


COMMANDS = {
    'extract': run_extract,
    'export': run_export,
    'sort': run_sort,
    'build': run_build,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run one command.

    Returns:
        int: 0 on success, 1 when the command failed.
    """
    args = build_parser().parse_args(argv)
    root = args.source if args.command == 'extract' else args.root

    setup_logger("DEBUG" if args.verbose else "INFO")
    try:
        config = load_i18n_config(root)
        setup_logger_from_config(config, verbose=args.verbose)
        COMMANDS[args.command](args, config)
    except I18nError as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"{PROG}: {args.command} failed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
